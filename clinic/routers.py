"""
URL mappings for the clinic API.

Specific routes come before the generic ``api/<resource>`` pair so that
paths such as ``api/inventory/status`` or ``api/prescriptions/monitoring``
are not taken for a resource id.  Trailing slashes are omitted.
"""
from django.urls import include, path

from .auth_views import login_view, logout_view, me_view, refresh_view
from .views import dashboard, documents, entities, health, inventory, laboratory, prescriptions

urlpatterns = [
    path('', include('django_prometheus.urls')),
    path('healthz', health.healthz, name='healthz'),
    path('api/health', health.api_health, name='api_health'),
    # Authentication
    path('api/auth/login', login_view, name='login_view'),
    path('api/auth/logout', logout_view, name='logout_view'),
    path('api/auth/refresh', refresh_view, name='refresh_view'),
    path('api/auth/me', me_view, name='me_view'),
    # Dashboard
    path('api/dashboard', dashboard.dashboard, name='dashboard'),
    # Inventory
    path('api/inventory/status', inventory.inventory_status, name='inventory_status'),
    path('api/inventory/metrics', inventory.inventory_metrics_view, name='inventory_metrics'),
    path('api/inventory/reorder', inventory.inventory_reorder, name='inventory_reorder'),
    # Laboratory
    path('api/equipment/metrics', laboratory.equipment_metrics_view, name='equipment_metrics'),
    path('api/quality/metrics', laboratory.quality_metrics_view, name='quality_metrics'),
    path('api/qc-tests/<str:pk>/evaluate', laboratory.evaluate_qc_test, name='qc_evaluate'),
    # Prescriptions
    path('api/prescriptions/monitoring', prescriptions.monitoring, name='prescription_monitoring'),
    path('api/prescriptions/interactions', prescriptions.interactions, name='prescription_interactions'),
    # Documents
    path('api/documents/render', documents.render_document, name='document_render'),
    path('api/medical-documents/generate', documents.generate_medical_document, name='document_generate'),
    # Generic CRUD
    path('api/<slug:resource>', entities.entity_collection, name='entity_collection'),
    path('api/<slug:resource>/<str:pk>', entities.entity_detail, name='entity_detail'),
]
