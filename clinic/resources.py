"""
Registry of the REST resources served by the generic CRUD views.

Each entry maps a URL slug to the mock client's entity name, the input
serializer, the fields searched by ``?search=`` and the role gates.  A gate
of ``None`` means any authenticated user.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, Optional, Tuple

from .mock_client import public_user
from .permissions import (
    ADMIN,
    BILLING,
    DOCTOR,
    LAB_TECHNICIAN,
    NURSE,
    PHARMACIST,
    RECEPTIONIST,
    SUPERADMIN,
)
from .serializers.entities import (
    AppointmentSerializer,
    BillingSerializer,
    ComplianceRecordSerializer,
    DocumentTemplateSerializer,
    EncounterSerializer,
    EquipmentSerializer,
    InventoryItemSerializer,
    LabOrderSerializer,
    MaintenanceRecordSerializer,
    MedicalDocumentSerializer,
    OrganizationSerializer,
    PatientSerializer,
    PrescriptionSerializer,
    ProceduralReportSerializer,
    QCTestSerializer,
    TelemedicineSerializer,
    UserSerializer,
)

Roles = Optional[FrozenSet[str]]


def roles(*names: str) -> FrozenSet[str]:
    return frozenset((SUPERADMIN, ADMIN) + names)


ADMINS = roles()
LAB = roles(LAB_TECHNICIAN)


@dataclass(frozen=True)
class Resource:
    slug: str
    entity: str
    serializer: type
    search_fields: Tuple[str, ...] = ()
    label: str = ''
    read: Roles = None
    create: Roles = ADMINS
    update: Roles = ADMINS
    delete: Roles = ADMINS
    present: Optional[Callable[[dict], dict]] = field(default=None, compare=False)

    def roles_for(self, action: str) -> Roles:
        return getattr(self, action)

    @property
    def title(self) -> str:
        return self.label or self.entity

    def output(self, record):
        if record is None or self.present is None:
            return record
        return self.present(record)


_RESOURCES = (
    Resource('patients', 'Patient', PatientSerializer,
             ('first_name', 'last_name', 'email', 'phone', 'insurance_number'),
             create=roles(DOCTOR), update=roles(DOCTOR, NURSE)),
    Resource('appointments', 'Appointment', AppointmentSerializer,
             ('type', 'notes', 'status'),
             create=roles(DOCTOR, RECEPTIONIST), update=roles(DOCTOR, NURSE, RECEPTIONIST),
             delete=roles(RECEPTIONIST)),
    Resource('users', 'User', UserSerializer,
             ('username', 'email', 'first_name', 'last_name'),
             read=ADMINS, present=public_user),
    Resource('organizations', 'Organization', OrganizationSerializer,
             ('name', 'city', 'email'),
             read=ADMINS, create=frozenset({SUPERADMIN}), delete=frozenset({SUPERADMIN})),
    Resource('lab-orders', 'LabOrder', LabOrderSerializer,
             ('test_name', 'test_type', 'notes'), label='Lab order',
             create=roles(DOCTOR), update=roles(DOCTOR, LAB_TECHNICIAN)),
    Resource('inventory-items', 'InventoryItem', InventoryItemSerializer,
             ('name', 'description', 'supplier', 'lot_number'), label='Inventory item',
             create=roles(LAB_TECHNICIAN, PHARMACIST), update=roles(LAB_TECHNICIAN, PHARMACIST)),
    Resource('equipment', 'Equipment', EquipmentSerializer,
             ('name', 'model', 'serial_number', 'manufacturer', 'location'),
             create=LAB, update=LAB),
    Resource('maintenance-records', 'MaintenanceRecord', MaintenanceRecordSerializer,
             ('description', 'technician', 'notes'), label='Maintenance record',
             create=LAB, update=LAB),
    Resource('qc-tests', 'QCTest', QCTestSerializer,
             ('test_name', 'description', 'performed_by'), label='QC test',
             create=LAB, update=LAB),
    Resource('compliance-records', 'ComplianceRecord', ComplianceRecordSerializer,
             ('area', 'requirement', 'responsible_person'), label='Compliance record',
             create=LAB, update=LAB),
    Resource('telemedicine-sessions', 'Telemedicine', TelemedicineSerializer,
             ('session_topic', 'patient_name', 'provider_name'), label='Telemedicine session',
             create=roles(DOCTOR, RECEPTIONIST), update=roles(DOCTOR, RECEPTIONIST)),
    Resource('procedural-reports', 'ProceduralReport', ProceduralReportSerializer,
             ('procedure_name', 'procedure_type', 'performed_by', 'findings'), label='Procedural report',
             create=roles(DOCTOR), update=roles(DOCTOR)),
    Resource('prescriptions', 'Prescription', PrescriptionSerializer,
             ('medication_name', 'prescribing_doctor', 'indication'),
             create=roles(DOCTOR), update=roles(DOCTOR, PHARMACIST)),
    Resource('encounters', 'Encounter', EncounterSerializer,
             ('type', 'chief_complaint', 'assessment'),
             create=roles(DOCTOR), update=roles(DOCTOR)),
    Resource('billings', 'Billing', BillingSerializer,
             ('description', 'status', 'payment_method'),
             read=roles(BILLING), create=roles(BILLING), update=roles(BILLING)),
    Resource('document-templates', 'DocumentTemplate', DocumentTemplateSerializer,
             ('template_name', 'document_type', 'category'), label='Document template'),
    Resource('medical-documents', 'MedicalDocument', MedicalDocumentSerializer,
             ('document_number', 'document_title', 'patient_name'), label='Medical document',
             create=roles(DOCTOR), update=roles(DOCTOR)),
)

RESOURCES: Dict[str, Resource] = {r.slug: r for r in _RESOURCES}
SLUG_BY_ENTITY: Dict[str, str] = {r.entity: r.slug for r in _RESOURCES}
