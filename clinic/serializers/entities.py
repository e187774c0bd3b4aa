"""
Input serializers for the generic CRUD routes.

One serializer per entity type.  They validate and normalise incoming
payloads only; output is the stored record itself.  Fields not declared
here are dropped, free text is passed through ``bleach`` and dates are kept
as ISO strings so the in-memory records look the same as the seed data.
"""
from __future__ import annotations

import html
from datetime import date, datetime

import bleach
from django.contrib.auth.hashers import make_password
from django.utils import timezone
from rest_framework import serializers

from ..permissions import ROLES


class CleanCharField(serializers.CharField):
    """CharField that strips markup from the value.

    bleach escapes bare ``&`` and ``<``; the store holds plain text, so the
    entities are unescaped again after the tags are gone.
    """

    def __init__(self, **kwargs):
        kwargs.setdefault('required', False)
        kwargs.setdefault('allow_blank', True)
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        return html.unescape(bleach.clean(value, tags=set(), strip=True))


class DateString(serializers.CharField):
    """``YYYY-MM-DD`` kept as a string; blank allowed unless required."""

    def __init__(self, **kwargs):
        kwargs.setdefault('required', False)
        kwargs.setdefault('allow_blank', not kwargs.get('required', False))
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        value = super().to_internal_value(data).strip()
        if not value:
            return value
        try:
            return date.fromisoformat(value[:10]).isoformat()
        except ValueError:
            raise serializers.ValidationError('Enter a valid date (YYYY-MM-DD).')


class DateTimeString(serializers.CharField):
    """ISO-8601 timestamp kept as a string."""

    def to_internal_value(self, data):
        value = super().to_internal_value(data).strip()
        if not value:
            return value
        try:
            datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError:
            raise serializers.ValidationError('Enter a valid ISO-8601 date/time.')
        return value


def _text_list(**kwargs):
    kwargs.setdefault('required', False)
    return serializers.ListField(child=CleanCharField(max_length=200), **kwargs)


def _check_order(attrs, low, high, message, stored=None):
    """Compare two fields, taking the stored value for whichever one the update leaves out."""
    stored = stored or {}
    lo = attrs[low] if low in attrs else stored.get(low)
    hi = attrs[high] if high in attrs else stored.get(high)
    if lo not in (None, '') and hi not in (None, '') and lo > hi:
        raise serializers.ValidationError({high: message})


class PatientSerializer(serializers.Serializer):
    first_name = CleanCharField(max_length=64, required=True, allow_blank=False)
    last_name = CleanCharField(max_length=64, required=True, allow_blank=False)
    date_of_birth = DateString(required=True)
    gender = serializers.ChoiceField(choices=['male', 'female', 'other'])
    phone = CleanCharField(max_length=32)
    email = serializers.EmailField(required=False, allow_blank=True)
    address = CleanCharField(max_length=255)
    city = CleanCharField(max_length=64)
    state = CleanCharField(max_length=64)
    zip_code = CleanCharField(max_length=16)
    emergency_contact_name = CleanCharField(max_length=128)
    emergency_contact_phone = CleanCharField(max_length=32)
    insurance_provider = CleanCharField(max_length=128)
    insurance_number = CleanCharField(max_length=64)
    allergies = _text_list()
    medications = _text_list()
    medical_history = _text_list()
    blood_type = serializers.ChoiceField(
        choices=['A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-', ''], required=False
    )
    status = serializers.ChoiceField(choices=['active', 'inactive', 'archived'], default='active')

    def validate_date_of_birth(self, v):
        if v and v > date.today().isoformat():
            raise serializers.ValidationError('Date of birth cannot be in the future.')
        return v


class AppointmentSerializer(serializers.Serializer):
    patient_id = serializers.CharField(max_length=32)
    doctor_id = serializers.CharField(max_length=32)
    appointment_date = DateString(required=True)
    appointment_time = serializers.RegexField(r'^([01]\d|2[0-3]):[0-5]\d$', required=False)
    duration = serializers.IntegerField(min_value=5, max_value=480, default=30)
    type = CleanCharField(max_length=64, default='consultation')
    status = serializers.ChoiceField(
        choices=['scheduled', 'completed', 'cancelled', 'no_show'], default='scheduled'
    )
    notes = CleanCharField(max_length=2000)
    diagnosis = CleanCharField(max_length=2000)
    treatment_plan = CleanCharField(max_length=2000)


class UserSerializer(serializers.Serializer):
    username = serializers.RegexField(r'^[\w.@+-]{3,64}$')
    email = serializers.EmailField()
    first_name = CleanCharField(max_length=64)
    last_name = CleanCharField(max_length=64)
    role = serializers.ChoiceField(choices=list(ROLES))
    organization_id = serializers.CharField(max_length=32, required=False, allow_blank=True)
    is_active = serializers.BooleanField(default=True)
    permissions = _text_list()
    password = serializers.CharField(min_length=8, max_length=128, write_only=True)

    def _taken(self, field, value):
        manager = self.context.get('manager')
        if manager is None:
            return False
        current = self.context.get('record_id')
        value = (value or '').lower()
        return any(
            str(u.get(field) or '').lower() == value and str(u.get('id')) != str(current)
            for u in manager.list()
        )

    def validate_username(self, v):
        if self._taken('username', v):
            raise serializers.ValidationError('Username already exists.')
        return v

    def validate_email(self, v):
        if self._taken('email', v):
            raise serializers.ValidationError('Email already exists.')
        return v

    def validate(self, attrs):
        raw = attrs.pop('password', None)
        if raw:
            attrs['password_hash'] = make_password(raw)
        return attrs


class OrganizationSerializer(serializers.Serializer):
    name = CleanCharField(max_length=128, required=True, allow_blank=False)
    type = serializers.ChoiceField(choices=['clinic', 'hospital', 'pharmacy', 'lab'])
    address = CleanCharField(max_length=255)
    city = CleanCharField(max_length=64)
    state = CleanCharField(max_length=64)
    zip_code = CleanCharField(max_length=16)
    phone = CleanCharField(max_length=32)
    email = serializers.EmailField(required=False, allow_blank=True)
    license_number = CleanCharField(max_length=64)
    is_active = serializers.BooleanField(default=True)


class LabOrderSerializer(serializers.Serializer):
    patient_id = serializers.CharField(max_length=32)
    doctor_id = serializers.CharField(max_length=32)
    test_type = CleanCharField(max_length=64, required=True, allow_blank=False)
    test_name = CleanCharField(max_length=128, required=True, allow_blank=False)
    status = serializers.ChoiceField(
        choices=['pending', 'processing', 'completed', 'cancelled'], default='pending'
    )
    ordered_date = DateString()
    completed_date = DateString()
    results = CleanCharField(max_length=4000)
    notes = CleanCharField(max_length=2000)
    priority = serializers.ChoiceField(choices=['routine', 'urgent', 'stat'], default='routine')


class InventoryItemSerializer(serializers.Serializer):
    name = CleanCharField(max_length=128, required=True, allow_blank=False)
    category = serializers.ChoiceField(
        choices=['reagents', 'consumables', 'equipment', 'supplies', 'chemicals', 'medications']
    )
    description = CleanCharField(max_length=1000)
    current_stock = serializers.IntegerField(min_value=0)
    minimum_stock = serializers.IntegerField(min_value=0)
    maximum_stock = serializers.IntegerField(min_value=0, required=False)
    unit = CleanCharField(max_length=32, required=True, allow_blank=False)
    cost_per_unit = serializers.FloatField(min_value=0, default=0)
    supplier = CleanCharField(max_length=128)
    expiry_date = DateString()
    lot_number = CleanCharField(max_length=64)
    storage_location = CleanCharField(max_length=128)
    notes = CleanCharField(max_length=2000)

    def validate(self, attrs):
        _check_order(attrs, 'minimum_stock', 'maximum_stock',
                     'Maximum stock must not be below minimum stock.',
                     stored=self.context.get('record'))
        if {'current_stock', 'minimum_stock', 'maximum_stock'} & attrs.keys():
            attrs['last_updated'] = timezone.now().strftime('%Y-%m-%dT%H:%M:%SZ')
        return attrs


class EquipmentSerializer(serializers.Serializer):
    name = CleanCharField(max_length=128, required=True, allow_blank=False)
    type = serializers.ChoiceField(
        choices=['analyzer', 'microscope', 'centrifuge', 'incubator', 'refrigerator', 'autoclave', 'other']
    )
    model = CleanCharField(max_length=128)
    serial_number = CleanCharField(max_length=64)
    manufacturer = CleanCharField(max_length=128)
    purchase_date = DateString()
    warranty_expiry = DateString()
    location = CleanCharField(max_length=128)
    status = serializers.ChoiceField(
        choices=['operational', 'maintenance', 'out_of_order', 'calibration', 'retired'],
        default='operational',
    )
    description = CleanCharField(max_length=1000)
    notes = CleanCharField(max_length=2000)
    last_maintenance = DateString()
    next_maintenance = DateString()
    utilization_rate = serializers.FloatField(min_value=0, max_value=100, default=0)


class MaintenanceRecordSerializer(serializers.Serializer):
    equipment_id = serializers.CharField(max_length=32)
    type = serializers.ChoiceField(choices=['preventive', 'corrective', 'calibration', 'inspection'])
    description = CleanCharField(max_length=1000, required=True, allow_blank=False)
    scheduled_date = DateString(required=True)
    completed_date = DateString()
    technician = CleanCharField(max_length=128)
    cost = serializers.FloatField(min_value=0, default=0)
    notes = CleanCharField(max_length=2000)
    status = serializers.ChoiceField(
        choices=['scheduled', 'in_progress', 'completed', 'cancelled'], default='scheduled'
    )


class QCTestSerializer(serializers.Serializer):
    test_name = CleanCharField(max_length=128, required=True, allow_blank=False)
    type = serializers.ChoiceField(
        choices=['internal', 'external', 'proficiency', 'calibration', 'maintenance']
    )
    description = CleanCharField(max_length=1000)
    target_value = serializers.FloatField(required=False)
    acceptable_range_min = serializers.FloatField(required=False)
    acceptable_range_max = serializers.FloatField(required=False)
    actual_value = serializers.FloatField(required=False)
    status = serializers.ChoiceField(
        choices=['passed', 'failed', 'pending', 'in_progress', 'cancelled'], default='pending'
    )
    performed_by = CleanCharField(max_length=128)
    performed_date = DateString()
    notes = CleanCharField(max_length=2000)
    corrective_action = CleanCharField(max_length=2000)

    def validate(self, attrs):
        _check_order(attrs, 'acceptable_range_min', 'acceptable_range_max',
                     'Range maximum must not be below range minimum.',
                     stored=self.context.get('record'))
        return attrs


class ComplianceRecordSerializer(serializers.Serializer):
    area = CleanCharField(max_length=128, required=True, allow_blank=False)
    requirement = CleanCharField(max_length=255, required=True, allow_blank=False)
    status = serializers.ChoiceField(
        choices=['compliant', 'non_compliant', 'warning', 'pending_review'], default='pending_review'
    )
    last_review = DateString()
    next_review = DateString()
    responsible_person = CleanCharField(max_length=128)
    notes = CleanCharField(max_length=2000)


class TelemedicineSerializer(serializers.Serializer):
    session_date = DateTimeString()
    session_topic = CleanCharField(max_length=255, required=True, allow_blank=False)
    status = serializers.ChoiceField(
        choices=['scheduled', 'in_progress', 'completed', 'cancelled'], default='scheduled'
    )
    session_type = serializers.ChoiceField(
        choices=['consultation', 'follow_up', 'emergency'], default='consultation'
    )
    patient_id = serializers.CharField(max_length=32)
    patient_name = CleanCharField(max_length=128)
    provider_id = serializers.CharField(max_length=32)
    provider_name = CleanCharField(max_length=128)
    duration_minutes = serializers.IntegerField(min_value=5, max_value=480, default=30)
    meeting_link = serializers.URLField(required=False, allow_blank=True)
    recording_consent = serializers.BooleanField(default=False)
    notes = CleanCharField(max_length=2000)


class FollowUpSerializer(serializers.Serializer):
    date = DateString()
    time = CleanCharField(max_length=8)
    doctor = CleanCharField(max_length=128)
    notes = CleanCharField(max_length=1000)


class ProceduralReportSerializer(serializers.Serializer):
    patient_id = serializers.CharField(max_length=32)
    procedure_name = CleanCharField(max_length=128, required=True, allow_blank=False)
    procedure_type = CleanCharField(max_length=64)
    procedure_date = DateString(required=True)
    performed_by = CleanCharField(max_length=128)
    location = CleanCharField(max_length=128)
    indication = CleanCharField(max_length=1000)
    procedure_details = CleanCharField(max_length=4000)
    findings = CleanCharField(max_length=4000)
    complications = CleanCharField(max_length=2000)
    specimens_collected = CleanCharField(max_length=1000)
    status = serializers.ChoiceField(
        choices=['scheduled', 'in_progress', 'completed', 'cancelled'], default='completed'
    )
    follow_up_required = serializers.BooleanField(default=False)
    follow_up_details = FollowUpSerializer(required=False)
    notes = CleanCharField(max_length=2000)
    cost = CleanCharField(max_length=16)
    duration_minutes = CleanCharField(max_length=8)
    anesthesia_used = serializers.BooleanField(default=False)
    anesthesia_type = CleanCharField(max_length=128)
    pre_procedure_medications = CleanCharField(max_length=1000)
    post_procedure_medications = CleanCharField(max_length=1000)
    discharge_instructions = CleanCharField(max_length=2000)
    digital_signature = serializers.CharField(required=False, allow_blank=True)
    signed_by = CleanCharField(max_length=128)
    signature_date = DateString()


class PrescriptionSerializer(serializers.Serializer):
    patient_id = serializers.CharField(max_length=32)
    medication_name = CleanCharField(max_length=128, required=True, allow_blank=False)
    dosage = CleanCharField(max_length=32, required=True, allow_blank=False)
    dosage_unit = CleanCharField(max_length=16, default='mg')
    frequency = CleanCharField(max_length=32)
    frequency_unit = CleanCharField(max_length=32, default='daily')
    quantity = CleanCharField(max_length=16)
    refills = serializers.IntegerField(min_value=0, max_value=12, default=0)
    start_date = DateString(required=True)
    end_date = DateString()
    prescribing_doctor = CleanCharField(max_length=128)
    pharmacy_name = CleanCharField(max_length=128)
    pharmacy_phone = CleanCharField(max_length=32)
    status = serializers.ChoiceField(
        choices=['active', 'completed', 'discontinued', 'on_hold'], default='active'
    )
    notes = CleanCharField(max_length=2000)
    special_instructions = CleanCharField(max_length=2000)
    indication = CleanCharField(max_length=255)
    route = serializers.ChoiceField(
        choices=['oral', 'topical', 'injection', 'intravenous', 'inhalation', 'sublingual', 'rectal', 'other'],
        default='oral',
    )
    duration_days = serializers.IntegerField(min_value=1, max_value=3650, required=False)
    monitoring_required = serializers.BooleanField(default=False)
    lab_monitoring = CleanCharField(max_length=255)
    side_effects_to_watch = CleanCharField(max_length=255)
    doses_taken = serializers.IntegerField(min_value=0, required=False)

    def validate(self, attrs):
        _check_order(attrs, 'start_date', 'end_date', 'End date must not be before start date.',
                     stored=self.context.get('record'))
        return attrs


class EncounterSerializer(serializers.Serializer):
    patient_id = serializers.CharField(max_length=32)
    doctor_id = serializers.CharField(max_length=32)
    encounter_date = DateString(required=True)
    type = CleanCharField(max_length=50, required=True, allow_blank=False)
    chief_complaint = CleanCharField(max_length=2000)
    history_of_present_illness = CleanCharField(max_length=4000)
    physical_examination = CleanCharField(max_length=4000)
    assessment = CleanCharField(max_length=4000)
    plan = CleanCharField(max_length=4000)
    notes = CleanCharField(max_length=2000)


class BillingSerializer(serializers.Serializer):
    patient_id = serializers.CharField(max_length=32)
    encounter_id = serializers.CharField(max_length=32, required=False, allow_blank=True)
    amount = serializers.FloatField(min_value=0.01)
    description = CleanCharField(max_length=1000, required=True, allow_blank=False)
    billing_date = DateString()
    due_date = DateString()
    status = serializers.ChoiceField(choices=['pending', 'paid', 'overdue', 'cancelled'], default='pending')
    payment_date = DateString()
    payment_method = CleanCharField(max_length=50)

    def validate(self, attrs):
        if not self.partial and not attrs.get('billing_date'):
            attrs['billing_date'] = date.today().isoformat()
        _check_order(attrs, 'billing_date', 'due_date', 'Due date must not be before billing date.',
                     stored=self.context.get('record'))
        return attrs


class TemplateVariableSerializer(serializers.Serializer):
    name = serializers.RegexField(r'^[A-Za-z_]\w{0,63}$')
    label = CleanCharField(max_length=128, required=True, allow_blank=False)
    type = serializers.ChoiceField(choices=['text', 'textarea', 'date', 'select', 'number'], default='text')
    required = serializers.BooleanField(default=False)
    options = _text_list()
    default_value = CleanCharField(max_length=255)


class DocumentTemplateSerializer(serializers.Serializer):
    template_name = CleanCharField(max_length=128, required=True, allow_blank=False)
    document_type = CleanCharField(max_length=64, default='sick_note')
    category = CleanCharField(max_length=64, default='general')
    description = CleanCharField(max_length=1000)
    template_content = CleanCharField(max_length=20000, required=True, allow_blank=False)
    variables = TemplateVariableSerializer(many=True, required=False)
    is_active = serializers.BooleanField(default=True)


class MedicalDocumentSerializer(serializers.Serializer):
    document_number = CleanCharField(max_length=32)
    document_title = CleanCharField(max_length=255)
    template_id = serializers.CharField(max_length=32, required=False, allow_blank=True)
    template_name = CleanCharField(max_length=128)
    document_type = CleanCharField(max_length=64)
    patient_id = serializers.CharField(max_length=32)
    patient_name = CleanCharField(max_length=128)
    issued_by = CleanCharField(max_length=128)
    issue_date = DateString()
    valid_from = DateString()
    valid_until = DateString()
    variable_data = serializers.DictField(child=CleanCharField(max_length=2000), required=False)
    generated_content = CleanCharField(max_length=40000)
    status = serializers.ChoiceField(choices=['draft', 'issued', 'revoked'], default='issued')
    notes = CleanCharField(max_length=2000)
