import json
from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from clinic.http_client import ApiClientError
from clinic.management.commands import inventory_report


def run(*args):
    out = StringIO()
    call_command(*args, stdout=out)
    return out.getvalue()


def test_inventory_report_json():
    report = json.loads(run('inventory_report', '--json'))
    assert report['metrics']['total_items'] == 6
    reorder = {r['name']: r['reorder_quantity'] for r in report['reorder']}
    assert reorder == {
        'Glucose Test Strips': 975,
        'Microscope Slides': 2000,
        'Hemoglobin Reagent': 155,
        'Calcium Control Solution': 92,
    }


def test_inventory_report_filters():
    report = json.loads(run('inventory_report', '--json', '--category', 'reagents'))
    assert {i['name'] for i in report['items']} == {
        'Glucose Test Strips', 'Hemoglobin Reagent', 'Calcium Control Solution',
    }
    report = json.loads(run('inventory_report', '--json', '--status', 'out_of_stock'))
    assert [i['name'] for i in report['items']] == ['Microscope Slides']


def test_inventory_report_text():
    output = run('inventory_report')
    assert 'Microscope Slides: 0' in output
    assert 'Reorder Microscope Slides: 2000' in output
    assert 'Reported 6 items' in output


def test_inventory_report_remote_failure(monkeypatch):
    def broken():
        raise ApiClientError('connection refused')

    monkeypatch.setattr(inventory_report, 'get_api_client', broken)
    with pytest.raises(CommandError, match='connection refused'):
        run('inventory_report')


def test_prescription_alerts():
    report = json.loads(run('prescription_alerts', '--json', '--patient', '1'))
    assert report['summary']['active_prescriptions'] == 1
    assert {a['medication_name'] for a in report['expiration_alerts']} <= {'Amoxicillin'}

    output = run('prescription_alerts')
    assert '2 active prescriptions' in output
