"""
Custom permission classes for role based access control.

Roles are plain strings carried on the in-memory User record and copied
into the JWT; see ``clinic.authentication``.
"""
from rest_framework.permissions import BasePermission, SAFE_METHODS

SUPERADMIN = "superadmin"
ADMIN = "admin"
DOCTOR = "doctor"
NURSE = "nurse"
RECEPTIONIST = "receptionist"
BILLING = "billing"
LAB_TECHNICIAN = "lab_technician"
PHARMACIST = "pharmacist"

ROLES = (SUPERADMIN, ADMIN, DOCTOR, NURSE, RECEPTIONIST, BILLING, LAB_TECHNICIAN, PHARMACIST)
ADMIN_ROLES = {SUPERADMIN, ADMIN}


def _role(request):
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return None
    return getattr(user, "role", None)


def action_for_method(method: str) -> str:
    if method in SAFE_METHODS:
        return "read"
    if method == "POST":
        return "create"
    if method == "DELETE":
        return "delete"
    return "update"


class IsClinicalRole(BasePermission):
    """Doctors, nurses, pharmacists and administrators."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in ADMIN_ROLES | {DOCTOR, NURSE, PHARMACIST}


class IsLabRole(BasePermission):
    """Lab technicians and administrators."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in ADMIN_ROLES | {LAB_TECHNICIAN}


class HasResourceRole(BasePermission):
    """Role gate for the generic CRUD routes.

    Looks the ``resource`` URL kwarg up in ``clinic.resources.RESOURCES`` and
    checks the caller's role against the gate for the request's action.
    Unknown resources pass through so the view can answer 404.
    """
    message = "Your role does not allow this operation."

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        from .resources import RESOURCES

        role = _role(request)
        if role is None:
            return False
        resource = RESOURCES.get((getattr(view, "kwargs", None) or {}).get("resource"))
        if resource is None:
            return True
        allowed = resource.roles_for(action_for_method(request.method))
        return allowed is None or role in allowed


class IsDoctorRole(BasePermission):
    """Doctors and administrators."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in ADMIN_ROLES | {DOCTOR}
