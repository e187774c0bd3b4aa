from datetime import date

import pytest

from clinic.services.prescriptions import (
    adherence,
    expiration_alerts,
    expiry_urgency,
    generate_alerts,
    monitoring_report,
    refill_alerts,
)


def rx(**kw):
    base = {
        'id': 'rx1', 'patient_id': 'p1', 'medication_name': 'Metformin', 'status': 'active',
        'start_date': '2024-01-01', 'end_date': '2024-01-31', 'frequency': '2', 'frequency_unit': 'daily',
    }
    base.update(kw)
    return base


def test_adherence_from_reported_doses():
    a = adherence(rx(doses_taken=10), date(2024, 1, 11))
    assert a['days_passed'] == 10
    assert a['total_days'] == 30
    assert a['expected_doses'] == 20
    assert a['adherence_rate'] == 50
    assert a['missed_doses'] == 5
    assert a['reported'] is True


def test_unreported_is_fully_adherent():
    a = adherence(rx(), date(2024, 1, 11))
    assert a['adherence_rate'] == 100
    assert a['missed_doses'] == 0
    assert a['reported'] is False


def test_adherence_defaults_and_bounds():
    # no end date: duration_days, else 30 days
    assert adherence(rx(end_date='', duration_days='7'), date(2024, 3, 1))['total_days'] == 7
    assert adherence(rx(end_date=''), date(2024, 3, 1))['total_days'] == 30
    # before the start nothing is expected
    assert adherence(rx(doses_taken=0), date(2023, 12, 1))['adherence_rate'] == 100
    # more doses than expected caps at 100
    assert adherence(rx(doses_taken=99), date(2024, 1, 11))['adherence_rate'] == 100
    assert adherence(rx(start_date=''), date(2024, 1, 11)) is None


def test_generate_alerts():
    today = date(2024, 1, 11)
    alerts = generate_alerts([
        rx(doses_taken=10, side_effects_to_watch='Nausea', lab_monitoring='HbA1c'),
        rx(id='rx2', status='completed', doses_taken=0),
    ], today)
    kinds = [(a['type'], a['severity']) for a in alerts]
    assert kinds == [('warning', 'high'), ('critical', 'high'), ('info', 'low'), ('info', 'medium')]
    assert alerts[0]['message'] == 'Low adherence: 50% for Metformin'
    assert alerts[1]['message'] == '5 missed doses for Metformin'
    assert alerts[2]['message'] == 'Monitor for: Nausea'


def test_medium_adherence_warning():
    # 15 of 20 expected doses
    alerts = generate_alerts([rx(doses_taken=15)], date(2024, 1, 11))
    assert [(a['type'], a['severity']) for a in alerts] == [('warning', 'medium')]


@pytest.mark.parametrize('days,expected', [(-1, 'expired'), (0, 'critical'), (1, 'critical'), (3, 'urgent'), (7, 'soon')])
def test_expiry_urgency(days, expected):
    assert expiry_urgency(days) == expected


def test_expiration_alerts_order(mock_client):
    items = [
        rx(id='a', end_date='2024-01-20'),
        rx(id='b', end_date='2024-01-10'),
        rx(id='c', end_date='2024-01-16'),
        rx(id='d', end_date='2024-02-20'),
        rx(id='e', end_date='2024-01-16', status='discontinued'),
    ]
    alerts = expiration_alerts(items, date(2024, 1, 15))
    assert [a['prescription_id'] for a in alerts] == ['b', 'c', 'a']
    assert alerts[0]['is_expired'] is True
    assert alerts[0]['urgency'] == 'expired'
    assert alerts[1]['urgency'] == 'critical'


def test_refill_alerts(mock_client):
    seed = mock_client.manager('Prescription').list()
    alerts = refill_alerts(seed, date(2024, 1, 20))
    assert [(a['prescription_id'], a['urgency']) for a in alerts] == [('1', 'soon')]
    assert alerts[0]['refill_date'] == '2024-01-22'
    assert refill_alerts(seed, date(2024, 1, 22))[0]['urgency'] == 'urgent'
    assert refill_alerts([rx(refills=0, duration_days='10')], date(2024, 1, 11)) == []


def test_monitoring_report(mock_client):
    report = monitoring_report(mock_client.manager('Prescription').list(), date(2024, 1, 20))
    assert report['summary']['active_prescriptions'] == 2
    assert report['summary']['average_adherence'] == 100
    assert [a['prescription_id'] for a in report['expiration_alerts']] == ['1']

    only = monitoring_report(mock_client.manager('Prescription').list(), date(2024, 1, 20), patient_id='2')
    assert only['summary']['active_prescriptions'] == 1
    assert only['adherence'][0]['medication_name'] == 'Lisinopril'


@pytest.mark.django_db
def test_monitoring_endpoint(client_as):
    body = client_as('dr.smith').get('/api/prescriptions/monitoring?patient_id=1').json()
    assert body['data']['summary']['active_prescriptions'] == 1
    assert client_as('front.desk').get('/api/prescriptions/monitoring').status_code == 403
