"""Django admin registration for the audit trail."""

from django.contrib import admin

from .models import AuditEvent


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'action', 'object_type', 'object_id', 'actor_username')
    list_filter = ('action', 'object_type')
    search_fields = ('object_id', 'actor_username')
    readonly_fields = ('created_at',)
