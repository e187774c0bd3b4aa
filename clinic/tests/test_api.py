"""
Integration tests for the generic CRUD routes.

Covers the response envelope, pagination and search, validation,
role gates, merge semantics of PUT/PATCH and the audit/broadcast side
effects of writes.
"""
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from clinic.authentication import ClinicUser
from clinic.mock_client import get_mock_client
from clinic.models import AuditEvent


class EntityAPITests(APITestCase):
    def authenticate(self, username: str) -> APIClient:
        """Return an APIClient authenticated as a seeded user."""
        client = APIClient()
        client.force_authenticate(user=ClinicUser(get_mock_client().find_user(username)))
        return client

    def setUp(self) -> None:
        self.admin = self.authenticate('admin')
        self.doctor = self.authenticate('dr.smith')
        self.reception = self.authenticate('front.desk')

    def test_list_envelope_and_pagination(self):
        response = self.admin.get('/api/inventory-items?limit=4&sort=name&order=asc')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        body = response.json()
        self.assertTrue(body['success'])
        self.assertEqual(body['pagination'], {'page': 1, 'limit': 4, 'total': 6, 'pages': 2})
        names = [i['name'] for i in body['data']]
        self.assertEqual(names, sorted(names))
        self.assertIn('timestamp', body)

        page2 = self.admin.get('/api/inventory-items?limit=4&page=2').json()
        self.assertEqual(len(page2['data']), 2)

    def test_limit_is_capped(self):
        body = self.admin.get('/api/inventory-items?limit=1000').json()
        self.assertEqual(body['pagination']['limit'], 100)

    def test_search_and_field_filters(self):
        body = self.admin.get('/api/inventory-items?search=glucose').json()
        self.assertEqual([i['id'] for i in body['data']], ['2'])
        body = self.admin.get('/api/inventory-items?category=reagents').json()
        self.assertEqual(sorted(i['id'] for i in body['data']), ['2', '4', '6'])
        body = self.admin.get('/api/users?is_active=true').json()
        self.assertEqual(body['pagination']['total'], 3)

    def test_numeric_sort(self):
        body = self.admin.get('/api/inventory-items?sort=current_stock&order=desc').json()
        self.assertEqual(body['data'][0]['name'], 'Disposable Pipette Tips')

    def test_unknown_resource_is_404(self):
        response = self.admin.get('/api/spaceships')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.json()['error']['code'], 'not_found')

    def test_get_missing_record_is_404(self):
        response = self.admin.get('/api/patients/does-not-exist')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.json()['error']['message'], 'Patient not found')

    def test_create_patient(self):
        payload = {
            'first_name': 'Ada<script>alert(1)</script>',
            'last_name': 'Lovelace',
            'date_of_birth': '1990-12-10',
            'gender': 'female',
            'allergies': ['Sulfa'],
            'unknown_field': 'dropped',
        }
        response = self.doctor.post('/api/patients', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data = response.json()['data']
        self.assertEqual(data['first_name'], 'Adaalert(1)')
        self.assertNotIn('unknown_field', data)
        self.assertEqual(data['status'], 'active')
        self.assertEqual(get_mock_client().manager('Patient').get(data['id'])['last_name'], 'Lovelace')
        self.assertTrue(AuditEvent.objects.filter(action='create', object_type='Patient', object_id=data['id']).exists())

    def test_create_validation_error(self):
        response = self.doctor.post('/api/patients', {'first_name': 'A'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        error = response.json()['error']
        self.assertEqual(error['code'], 'validation_error')
        self.assertIn('last_name', error['details'])

    def test_role_gates(self):
        # receptionists cannot create patients or read users
        response = self.reception.post('/api/patients', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.json()['error']['code'], 'forbidden')
        self.assertEqual(self.reception.get('/api/users').status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(self.doctor.get('/api/billings').status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(self.doctor.delete('/api/patients/1').status_code, status.HTTP_403_FORBIDDEN)
        # but can book appointments
        response = self.reception.post('/api/appointments', {
            'patient_id': '1', 'doctor_id': '2', 'appointment_date': '2030-05-01',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_put_and_patch_merge(self):
        response = self.doctor.put('/api/patients/1', {'phone': '+1-555-9999'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()['data']
        self.assertEqual(data['phone'], '+1-555-9999')
        self.assertEqual(data['first_name'], 'John')
        self.assertIn('updated_at', data)

        response = self.doctor.patch('/api/patients/1', {'status': 'inactive'}, format='json')
        self.assertEqual(response.json()['data']['phone'], '+1-555-9999')

    def test_update_missing_is_404(self):
        response = self.doctor.patch('/api/patients/404', {'phone': '1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_delete(self):
        response = self.admin.delete('/api/patients/2')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.json()['data'])
        self.assertEqual(self.admin.delete('/api/patients/2').status_code, status.HTTP_404_NOT_FOUND)
        self.assertTrue(AuditEvent.objects.filter(action='delete', object_id='2').exists())

    def test_users_never_expose_password_hash(self):
        body = self.admin.get('/api/users').json()
        for user in body['data']:
            self.assertNotIn('password_hash', user)
            self.assertNotIn('password', user)

        response = self.admin.post('/api/users', {
            'username': 'nurse.joy', 'email': 'joy@mediflow.com', 'role': 'nurse', 'password': 'long-enough-1',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertNotIn('password_hash', response.json()['data'])
        # the new user can log in
        result = get_mock_client().authenticate('nurse.joy', 'long-enough-1')
        self.assertEqual(result['user']['role'], 'nurse')

    def test_duplicate_username_rejected(self):
        response = self.admin.post('/api/users', {
            'username': 'ADMIN', 'email': 'other@mediflow.com', 'role': 'nurse', 'password': 'long-enough-1',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('username', response.json()['error']['details'])

        # a user may keep their own username on update
        response = self.admin.patch('/api/users/1', {'username': 'admin'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_prescription_dates_validated(self):
        response = self.doctor.post('/api/prescriptions', {
            'patient_id': '1', 'medication_name': 'Ibuprofen', 'dosage': '400',
            'start_date': '2024-02-10', 'end_date': '2024-02-01',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('end_date', response.json()['error']['details'])

    def test_partial_update_checked_against_stored_record(self):
        response = self.doctor.patch('/api/prescriptions/1', {'end_date': '1900-01-01'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('end_date', response.json()['error']['details'])
        self.assertEqual(get_mock_client().manager('Prescription').get('1')['end_date'], '2024-01-22')

        response = self.admin.patch('/api/inventory-items/1', {'maximum_stock': 10}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('maximum_stock', response.json()['error']['details'])

        response = self.admin.patch('/api/qc-tests/1', {'acceptable_range_min': 200}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('acceptable_range_max', response.json()['error']['details'])

        response = self.admin.patch('/api/prescriptions/1', {'end_date': '2024-01-30'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_free_text_keeps_ampersands_and_angle_brackets(self):
        response = self.admin.post('/api/patients', {
            'first_name': 'Ann', 'last_name': 'Lee', 'date_of_birth': '1990-04-01',
            'address': 'Smith & Sons Rd, unit <b>4</b>',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        patient = response.json()['data']
        self.assertEqual(patient['address'], 'Smith & Sons Rd, unit 4')

        response = self.admin.post('/api/document-templates', {
            'template_name': 'Address Note',
            'template_content': 'A & B < C: {{patient_address}}',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        template = response.json()['data']
        self.assertEqual(template['template_content'], 'A & B < C: {{patient_address}}')

        response = self.admin.post('/api/documents/render', {
            'template_id': template['id'], 'patient_id': patient['id'],
        }, format='json')
        self.assertEqual(response.json()['data']['content'], 'A & B < C: Smith & Sons Rd, unit 4')

    def test_document_template_with_variables(self):
        response = self.admin.post('/api/document-templates', {
            'template_name': 'Fitness Certificate',
            'template_content': '{{patient_name}} is fit for {{activity}}.',
            'variables': [{'name': 'activity', 'label': 'Activity'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.json()['data']['variables'][0]['type'], 'text')


class HealthTests(APITestCase):
    def test_healthz(self):
        response = self.client.get('/healthz')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], 'healthy')
        self.assertTrue(response.json()['db'])

    def test_api_health_is_public(self):
        response = self.client.get('/api/health')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['status'], 'healthy')
