import pytest

from clinic.services.documents import document_number, generate_document, long_date, render_template

PATIENT = {'id': '1', 'first_name': 'John', 'last_name': 'Doe', 'date_of_birth': '1985-06-15', 'address': '123 Main St'}


def test_long_date():
    assert long_date('2024-01-05') == 'January 5, 2024'
    assert long_date('') == ''
    assert long_date(None) == ''


def test_standard_placeholders(settings):
    settings.CLINIC_NAME = 'Test Clinic'
    content = (
        '{{clinic_name}}: {{patient_name}} ({{patient_dob}}), {{patient_address}}. '
        'Issued {{date}} by {{doctor_name}}, valid {{valid_from}} to {{valid_until}}.'
    )
    out = render_template(content, patient=PATIENT, issued_by='Dr. Smith', issue_date='2024-01-15',
                          valid_from='2024-01-15', valid_until='2024-01-20')
    assert out == (
        'Test Clinic: John Doe (June 15, 1985), 123 Main St. '
        'Issued January 15, 2024 by Dr. Smith, valid January 15, 2024 to January 20, 2024.'
    )


def test_missing_values():
    out = render_template('{{doctor_name}} / {{valid_until}} / {{patient_name}}')
    assert out == '[Doctor Name] /  / '


def test_template_variables_and_unknown_placeholders():
    variables = [
        {'name': 'condition', 'label': 'Condition'},
        {'name': 'rest_days', 'label': 'Rest days', 'default_value': '3'},
        {'name': 'reason', 'label': 'Reason'},
    ]
    out = render_template(
        '{{condition}}|{{condition}}|{{rest_days}}|{{reason}}|{{mystery}}',
        variables=variables,
        values={'condition': 'Influenza', 'reason': ''},
    )
    assert out == 'Influenza|Influenza|3|[Reason]|{{mystery}}'


def test_document_number_format():
    number = document_number()
    assert number.startswith('DOC-')
    assert number[4:].isdigit()


def test_generate_document_stores_record(mock_client):
    template = mock_client.manager('DocumentTemplate').get('1')
    before = mock_client.manager('MedicalDocument').count()
    record = generate_document(
        mock_client, template, PATIENT, issued_by='Dr. Smith', issue_date='2024-01-15',
        valid_from='2024-01-15', valid_until='2024-01-17', values={'condition': 'influenza'},
    )
    assert mock_client.manager('MedicalDocument').count() == before + 1
    assert record['patient_name'] == 'John Doe'
    assert record['document_title'] == 'Sick Note'
    assert record['status'] == 'issued'
    assert 'due to influenza' in record['generated_content']
    assert 'January 17, 2024' in record['generated_content']


@pytest.mark.django_db
def test_render_endpoint(client_as):
    client = client_as('dr.smith')
    body = client.post('/api/documents/render', {
        'template_id': '2', 'patient_id': '1', 'issue_date': '2024-01-15',
        'variables': {'specialist': 'Dr. House'},
    }, format='json').json()['data']
    assert 'Dear Dr. House' in body['content']
    assert '[Reason for Referral]' in body['content']
    assert 'Robert Smith' in body['content']

    body = client.post('/api/documents/render', {
        'template_content': 'Hello {{patient_name}}', 'patient_id': '2',
    }, format='json').json()['data']
    assert body['content'] == 'Hello Maria Garcia'

    assert client.post('/api/documents/render', {}, format='json').status_code == 400
    assert client.post('/api/documents/render', {'template_id': '99'}, format='json').status_code == 404


@pytest.mark.django_db
def test_generate_endpoint(client_as, mock_client):
    response = client_as('dr.smith').post('/api/medical-documents/generate', {
        'template_id': '1', 'patient_id': '2', 'issue_date': '2024-02-01',
        'variables': {'condition': 'back pain'},
    }, format='json')
    assert response.status_code == 201
    record = response.json()['data']
    assert record['document_number'].startswith('DOC-')
    assert record['patient_name'] == 'Maria Garcia'
    assert mock_client.manager('MedicalDocument').get(record['id'])['generated_content'] == record['generated_content']

    assert client_as('front.desk').post('/api/medical-documents/generate', {
        'template_id': '1', 'patient_id': '2',
    }, format='json').status_code == 403
