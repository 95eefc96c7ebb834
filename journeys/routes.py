"""
URL mappings for the journey API.

Trailing slashes are deliberately omitted.
"""
from django.urls import include, path

from .views import health
from .views.auth import jwt_refresh_view, login_view
from .views.departments import recount_department_queues
from .views.hospitals import hospital_journeys, hospitals
from .views.journeys import journey_checkpoint, journey_detail, journey_share, journeys
from .views.queue import queue_predict, queue_stats_log

urlpatterns = [
    # Prometheus exposes /metrics
    path('', include('django_prometheus.urls')),
    path('healthz', health.healthz, name='healthz'),
    # Auth
    path('api/auth/login', login_view, name='login_view'),
    path('api/auth/refresh', jwt_refresh_view, name='jwt_refresh_view'),
    # Hospitals and departments
    path('api/hospitals', hospitals),
    path('api/hospitals/<str:pk>/journeys', hospital_journeys),
    path('api/admin/departments/recount', recount_department_queues),
    # Queue wait prediction
    path('api/queue/predict', queue_predict, name='queue_predict'),
    path('api/queue/stats/log', queue_stats_log, name='queue_stats_log'),
    # Journeys
    path('api/journey', journeys, name='journeys'),
    path('api/journey/<str:pk>', journey_detail, name='journey_detail'),
    path('api/journey/<str:pk>/checkpoint', journey_checkpoint, name='journey_checkpoint'),
    path('api/journey/<str:pk>/share', journey_share, name='journey_share'),
]
