import logging
from typing import Any, Dict, Optional

from django.db import DatabaseError

from clinic.models import AuditEvent

logger = logging.getLogger(__name__)


def log_action(*, actor=None, action: str, object_type: Optional[str] = None,
               object_id: Optional[Any] = None, detail: Optional[Dict[str, Any]] = None) -> Optional[AuditEvent]:
    """Record an audit event; returns ``None`` if the row could not be written."""
    try:
        return AuditEvent.objects.create(
            actor_id=str(getattr(actor, 'id', '') or ''),
            actor_username=getattr(actor, 'username', '') or '',
            action=action,
            object_type=object_type or '',
            object_id='' if object_id is None else str(object_id),
            detail=detail or {},
        )
    except DatabaseError:
        logger.exception('Could not write audit event %s %s/%s', action, object_type, object_id)
        return None
