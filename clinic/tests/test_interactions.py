import pytest

from clinic.services.interactions import check_interactions, drug_key, highest_severity


def test_drug_key_finds_generic_name():
    assert drug_key('Amoxicillin 500mg capsules') == 'amoxicillin'
    assert drug_key('  Unknownium ') == 'unknownium'


def test_no_current_medications_no_interactions():
    assert check_interactions('Ibuprofen', [], []) == []


def test_class_level_interaction():
    [w] = check_interactions('Ibuprofen 400mg', ['Warfarin 5mg'])
    assert w['type'] == 'interaction'
    assert w['severity'] == 'major'
    assert w['interacting_with'] == 'Warfarin 5mg'
    assert w['message'] == 'Increased bleeding risk'


def test_specific_pair_wins_over_class_rule():
    [w] = check_interactions('Warfarin', ['Amiodarone'])
    assert 'INR' in w['message']


def test_rule_is_symmetric():
    a = check_interactions('Lisinopril', ['Spironolactone'])
    b = check_interactions('Spironolactone', ['Lisinopril'])
    assert a[0]['message'] == b[0]['message'] == 'Risk of hyperkalemia'


def test_duplicate_therapy():
    [w] = check_interactions('Metformin', ['metformin 500 mg'])
    assert (w['type'], w['severity']) == ('duplicate', 'moderate')
    [w] = check_interactions('Ibuprofen', ['Naproxen'])
    assert (w['type'], w['severity']) == ('duplicate_class', 'minor')


@pytest.mark.parametrize('medication,allergy,severity', [
    ('Amoxicillin', 'Penicillin', 'critical'),
    ('Cephalexin', 'Penicillin', 'moderate'),
    ('Sulfamethoxazole/Trimethoprim', 'Sulfa drugs', 'critical'),
    ('Ibuprofen', 'Aspirin', 'critical'),
    ('Codeine', 'codeine', 'critical'),
])
def test_allergy_warnings(medication, allergy, severity):
    [w] = check_interactions(medication, [], [allergy])
    assert w['type'] == 'allergy'
    assert w['severity'] == severity


def test_unrelated_allergy_is_ignored():
    assert check_interactions('Metformin', [], ['Latex', '']) == []


def test_most_severe_first():
    warnings = check_interactions('Amoxicillin', ['Warfarin'], ['Penicillin'])
    assert [w['severity'] for w in warnings] == ['critical', 'minor']
    assert highest_severity(warnings) == 'critical'
    assert highest_severity([]) is None


@pytest.mark.django_db
def test_interactions_endpoint_uses_patient_record(client_as):
    client = client_as('dr.smith')
    # John Doe is allergic to penicillin and takes metformin
    body = client.post('/api/prescriptions/interactions', {
        'patient_id': '1', 'medication_name': 'Ampicillin',
    }, format='json').json()['data']
    assert body['highest_severity'] == 'critical'
    assert 'Metformin' in body['current_medications']
    assert 'Amoxicillin' in body['current_medications']

    body = client.post('/api/prescriptions/interactions', {
        'medication_name': 'Ibuprofen', 'current_medications': ['Lisinopril'],
    }, format='json').json()['data']
    assert body['warnings'][0]['severity'] == 'moderate'


@pytest.mark.django_db
def test_interactions_endpoint_validation(client_as):
    client = client_as('dr.smith')
    assert client.post('/api/prescriptions/interactions', {'medication_name': 'X'}, format='json').status_code == 400
    r = client.post('/api/prescriptions/interactions', {'patient_id': 'nope', 'medication_name': 'X'}, format='json')
    assert r.status_code == 404
