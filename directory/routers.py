"""
URL mappings for the directory API.

Trailing slashes are omitted to match the paths the public site calls.
"""
from django.urls import path, include

from .views import health
from .views import search

urlpatterns = [
    path('metrics', include('django_prometheus.urls')),
    path('healthz', health.healthz, name='healthz'),
    # Search page
    path('api/search', search.search, name='search'),
    path('api/search/live', search.live_search, name='search-live'),
    path('api/search/specializations', search.specializations, name='search-specializations'),
    path('api/search/cities', search.cities, name='search-cities'),
    # Directory pages
    path('api/doctors/top', search.top_doctors, name='doctors-top'),
    path('api/hospitals/<int:pk>', search.hospital_detail, name='hospital-detail'),
    path('api/departments/<int:pk>', search.department_detail, name='department-detail'),
]
