"""
Database models for the clinic backend.

Clinical records live in the in-memory mock client, not here.  The database
only keeps the audit trail of changes made through the API.
"""
from __future__ import annotations

from django.db import models


class AuditEvent(models.Model):
    # actor/object ids are the mock client's string ids, not foreign keys
    actor_id = models.CharField(max_length=64, blank=True)
    actor_username = models.CharField(max_length=150, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True)
    object_id = models.CharField(max_length=64, blank=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['action', 'created_at'], name='clinic_audit_action_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='clinic_audit_object_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.action} {self.object_type}/{self.object_id}"
