"""
Medical document generation from templates.

Templates carry ``{{placeholder}}`` markers.  The standard ones are filled
from the patient, the issuing doctor and the document dates; the template's
own variables are filled from the values supplied by the caller.  Anything
else is left in place so a half-filled template is easy to spot.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, Iterable, Optional

from django.conf import settings

from .inventory import parse_date

logger = logging.getLogger(__name__)

DOCTOR_PLACEHOLDER = '[Doctor Name]'


def long_date(value: Any) -> str:
    """``2024-01-05`` -> ``January 5, 2024``; blank for missing/bad dates."""
    d = parse_date(value)
    if d is None:
        return ''
    return f'{d:%B} {d.day}, {d.year}'


def patient_name(patient: Optional[Dict[str, Any]]) -> str:
    if not patient:
        return ''
    return f"{patient.get('first_name') or ''} {patient.get('last_name') or ''}".strip()


def standard_values(
    patient: Optional[Dict[str, Any]],
    issued_by: Optional[str] = None,
    issue_date: Any = None,
    valid_from: Any = None,
    valid_until: Any = None,
) -> Dict[str, str]:
    patient = patient or {}
    return {
        'patient_name': patient_name(patient),
        'date': long_date(issue_date),
        'patient_dob': long_date(patient.get('date_of_birth')),
        'patient_address': patient.get('address') or '',
        'doctor_name': issued_by or DOCTOR_PLACEHOLDER,
        'clinic_name': getattr(settings, 'CLINIC_NAME', ''),
        'valid_from': long_date(valid_from),
        'valid_until': long_date(valid_until),
    }


def render_template(
    content: str,
    patient: Optional[Dict[str, Any]] = None,
    issued_by: Optional[str] = None,
    issue_date: Any = None,
    valid_from: Any = None,
    valid_until: Any = None,
    variables: Iterable[Dict[str, Any]] = (),
    values: Optional[Dict[str, Any]] = None,
) -> str:
    values = values or {}
    out = content or ''
    for key, value in standard_values(patient, issued_by, issue_date, valid_from, valid_until).items():
        out = out.replace('{{%s}}' % key, value)
    for variable in variables or ():
        name = variable.get('name')
        if not name:
            continue
        value = values.get(name) or variable.get('default_value') or f"[{variable.get('label') or name}]"
        out = out.replace('{{%s}}' % name, str(value))
    return out


def document_number() -> str:
    return f'DOC-{int(time.time() * 1000)}'


def generate_document(
    client,
    template: Dict[str, Any],
    patient: Dict[str, Any],
    issued_by: Optional[str] = None,
    issue_date: Any = None,
    valid_from: Any = None,
    valid_until: Any = None,
    values: Optional[Dict[str, Any]] = None,
    document_title: Optional[str] = None,
    notes: str = '',
) -> Dict[str, Any]:
    """Render ``template`` for ``patient`` and store it as a MedicalDocument."""
    values = dict(values or {})
    content = render_template(
        template.get('template_content') or '',
        patient=patient,
        issued_by=issued_by,
        issue_date=issue_date,
        valid_from=valid_from,
        valid_until=valid_until,
        variables=template.get('variables') or (),
        values=values,
    )
    record = client.manager('MedicalDocument').create({
        'document_number': document_number(),
        'document_title': document_title or template.get('template_name') or '',
        'template_id': template.get('id'),
        'template_name': template.get('template_name'),
        'document_type': template.get('document_type'),
        'patient_id': patient.get('id'),
        'patient_name': patient_name(patient),
        'issued_by': issued_by or '',
        'issue_date': str(issue_date or ''),
        'valid_from': str(valid_from or ''),
        'valid_until': str(valid_until or ''),
        'variable_data': values,
        'generated_content': content,
        'status': 'issued',
        'notes': notes,
    })
    logger.info('Generated %s for patient %s', record['document_number'], patient.get('id'))
    return record
