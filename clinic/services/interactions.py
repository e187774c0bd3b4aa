"""
Drug interaction and allergy screening.

A small static knowledge base: drugs map to therapeutic classes, and
interaction rules are written against either a drug or a class.  This is a
screening aid for the prescription form, not a clinical reference.
"""
from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional, Tuple

SEVERITY_RANK = {'critical': 4, 'major': 3, 'moderate': 2, 'minor': 1}

DRUG_CLASSES: Dict[str, str] = {
    # antibiotics
    'amoxicillin': 'penicillins', 'ampicillin': 'penicillins', 'penicillin': 'penicillins',
    'piperacillin': 'penicillins', 'dicloxacillin': 'penicillins',
    'cephalexin': 'cephalosporins', 'cefuroxime': 'cephalosporins', 'ceftriaxone': 'cephalosporins',
    'clarithromycin': 'macrolides', 'erythromycin': 'macrolides', 'azithromycin': 'macrolides',
    'sulfamethoxazole': 'sulfonamides', 'sulfasalazine': 'sulfonamides',
    # analgesics
    'ibuprofen': 'nsaids', 'naproxen': 'nsaids', 'aspirin': 'nsaids', 'diclofenac': 'nsaids',
    'celecoxib': 'nsaids',
    'oxycodone': 'opioids', 'morphine': 'opioids', 'fentanyl': 'opioids', 'tramadol': 'opioids',
    'codeine': 'opioids', 'hydrocodone': 'opioids',
    # cardiovascular
    'warfarin': 'anticoagulants', 'apixaban': 'anticoagulants', 'rivaroxaban': 'anticoagulants',
    'lisinopril': 'ace_inhibitors', 'enalapril': 'ace_inhibitors', 'ramipril': 'ace_inhibitors',
    'spironolactone': 'potassium_sparing', 'amiloride': 'potassium_sparing',
    'simvastatin': 'statins', 'atorvastatin': 'statins', 'rosuvastatin': 'statins',
    'nitroglycerin': 'nitrates', 'isosorbide': 'nitrates',
    'digoxin': 'cardiac_glycosides',
    'amiodarone': 'antiarrhythmics',
    # neuro / psych
    'fluoxetine': 'ssris', 'sertraline': 'ssris', 'citalopram': 'ssris', 'escitalopram': 'ssris',
    'phenelzine': 'maois', 'selegiline': 'maois', 'tranylcypromine': 'maois',
    'sumatriptan': 'triptans', 'rizatriptan': 'triptans',
    'alprazolam': 'benzodiazepines', 'diazepam': 'benzodiazepines', 'lorazepam': 'benzodiazepines',
    # other
    'sildenafil': 'pde5_inhibitors', 'tadalafil': 'pde5_inhibitors',
    'metformin': 'biguanides',
}

# (a, b, severity, message, recommendation); a/b name a drug or a class.
INTERACTION_RULES: Tuple[Tuple[str, str, str, str, str], ...] = (
    ('warfarin', 'amiodarone', 'major',
     'Amiodarone inhibits warfarin metabolism and raises INR',
     'Reduce warfarin dose and monitor INR closely'),
    ('simvastatin', 'clarithromycin', 'major',
     'Clarithromycin raises simvastatin levels; risk of myopathy and rhabdomyolysis',
     'Avoid combination; suspend the statin during the course'),
    ('digoxin', 'amiodarone', 'major',
     'Amiodarone increases digoxin levels',
     'Halve the digoxin dose and monitor levels'),
    ('anticoagulants', 'nsaids', 'major',
     'Increased bleeding risk',
     'Avoid combination or monitor for bleeding'),
    ('ace_inhibitors', 'potassium_sparing', 'major',
     'Risk of hyperkalemia',
     'Monitor serum potassium'),
    ('ssris', 'maois', 'major',
     'Risk of serotonin syndrome',
     'Contraindicated; allow a washout period'),
    ('nitrates', 'pde5_inhibitors', 'major',
     'Severe hypotension',
     'Contraindicated'),
    ('opioids', 'benzodiazepines', 'major',
     'Additive respiratory depression',
     'Avoid combination; if required use lowest doses'),
    ('warfarin', 'macrolides', 'moderate',
     'Macrolides may increase INR',
     'Monitor INR during and after the course'),
    ('statins', 'macrolides', 'moderate',
     'Macrolides may raise statin levels',
     'Monitor for muscle pain'),
    ('digoxin', 'macrolides', 'moderate',
     'Macrolides may increase digoxin levels',
     'Monitor digoxin levels'),
    ('ace_inhibitors', 'nsaids', 'moderate',
     'NSAIDs reduce the antihypertensive effect and may impair renal function',
     'Monitor blood pressure and renal function'),
    ('ssris', 'nsaids', 'moderate',
     'Increased risk of gastrointestinal bleeding',
     'Consider gastroprotection'),
    ('ssris', 'triptans', 'moderate',
     'Possible serotonin syndrome',
     'Monitor for agitation, tremor and hyperthermia'),
    ('penicillins', 'anticoagulants', 'minor',
     'Antibiotics may potentiate anticoagulant effect',
     'Monitor INR if on warfarin'),
)

# allergy keyword -> (drug class, cross-reactive classes)
ALLERGY_CLASSES: Dict[str, Tuple[str, Tuple[str, ...]]] = {
    'penicillin': ('penicillins', ('cephalosporins',)),
    'cephalosporin': ('cephalosporins', ('penicillins',)),
    'sulfa': ('sulfonamides', ()),
    'sulfonamide': ('sulfonamides', ()),
    'nsaid': ('nsaids', ()),
    'aspirin': ('nsaids', ()),
    'macrolide': ('macrolides', ()),
    'opioid': ('opioids', ()),
    'codeine': ('opioids', ()),
    'statin': ('statins', ()),
}


def drug_key(name: str) -> str:
    """Known generic name found in ``name`` (e.g. ``"Amoxicillin 500mg"``), else the cleaned name."""
    lower = (name or '').strip().lower()
    for token in re.findall(r'[a-z]+', lower):
        if token in DRUG_CLASSES:
            return token
    return lower


def drug_class(name: str) -> Optional[str]:
    return DRUG_CLASSES.get(drug_key(name))


def _matches(term: str, key: str, cls: Optional[str]) -> bool:
    return term == key or (cls is not None and term == cls)


def _rule_for(a_key, a_cls, b_key, b_cls):
    for first, second, severity, message, recommendation in INTERACTION_RULES:
        if (_matches(first, a_key, a_cls) and _matches(second, b_key, b_cls)) or (
            _matches(first, b_key, b_cls) and _matches(second, a_key, a_cls)
        ):
            return severity, message, recommendation
    return None


def _warning(type_, severity, medication, other, message, recommendation):
    return {
        'type': type_,
        'severity': severity,
        'medication': medication,
        'interacting_with': other,
        'message': message,
        'recommendation': recommendation,
    }


def allergy_warnings(medication_name: str, allergies: Iterable[str]) -> List[dict]:
    key = drug_key(medication_name)
    cls = drug_class(medication_name)
    med_lower = (medication_name or '').strip().lower()
    out = []
    for allergy in allergies or ():
        allergy_lower = (allergy or '').strip().lower()
        if not allergy_lower:
            continue
        if allergy_lower in med_lower or med_lower in allergy_lower or allergy_lower == key:
            out.append(_warning('allergy', 'critical', medication_name, allergy,
                                f'Patient has allergy to {allergy}',
                                'Consider alternative medication'))
            continue
        for keyword, (allergy_cls, cross) in ALLERGY_CLASSES.items():
            if keyword not in allergy_lower or cls is None:
                continue
            if cls == allergy_cls:
                out.append(_warning('allergy', 'critical', medication_name, allergy,
                                    f'{medication_name} belongs to the same class as the {allergy} allergy',
                                    'Consider alternative medication'))
            elif cls in cross:
                out.append(_warning('allergy', 'moderate', medication_name, allergy,
                                    f'Possible cross-reactivity between {medication_name} and {allergy} allergy',
                                    'Use with caution; monitor for hypersensitivity'))
            break
    return out


def check_interactions(
    medication_name: str,
    current_medications: Iterable[str] = (),
    allergies: Iterable[str] = (),
) -> List[dict]:
    """Warnings for adding ``medication_name`` to a patient's regimen.

    Ordered by severity, most severe first.
    """
    key = drug_key(medication_name)
    cls = drug_class(medication_name)
    warnings = allergy_warnings(medication_name, allergies)

    for current in current_medications or ():
        if not current:
            continue
        cur_key = drug_key(current)
        cur_cls = drug_class(current)
        if cur_key == key:
            warnings.append(_warning('duplicate', 'moderate', medication_name, current,
                                     f'Patient is already taking {current}',
                                     'Avoid duplicate therapy; review the existing prescription'))
            continue
        rule = _rule_for(key, cls, cur_key, cur_cls)
        if rule is not None:
            severity, message, recommendation = rule
            warnings.append(_warning('interaction', severity, medication_name, current, message, recommendation))
        elif cls is not None and cls == cur_cls:
            warnings.append(_warning('duplicate_class', 'minor', medication_name, current,
                                     f'{medication_name} and {current} are in the same class ({cls})',
                                     'Confirm both are intended'))

    warnings.sort(key=lambda w: SEVERITY_RANK.get(w['severity'], 0), reverse=True)
    return warnings


def highest_severity(warnings: Iterable[dict]) -> Optional[str]:
    best = None
    for w in warnings:
        if best is None or SEVERITY_RANK.get(w['severity'], 0) > SEVERITY_RANK.get(best, 0):
            best = w['severity']
    return best
