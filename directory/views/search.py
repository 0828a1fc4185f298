"""
Public directory search endpoints.

These endpoints back the search page of the public site: the faceted
result list, the autocomplete box, the dropdown values of the filter
sidebar, the "top doctors" strip and the hospital/department detail
pages.  None of them require authentication.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle, ScopedRateThrottle

from directory.serializers.search import (
    LiveSearchQuerySerializer,
    SearchQuerySerializer,
    TopDoctorsQuerySerializer,
)
from directory.services.lookups import (
    get_cities,
    get_department_detail,
    get_hospital_detail,
    get_specializations,
    get_top_doctors,
)
from directory.services.search import search_healthcare, search_healthcare_items

THROTTLES = [AnonRateThrottle, ScopedRateThrottle]


@api_view(['GET'])
@permission_classes([AllowAny])
@throttle_classes(THROTTLES)
def search(request):
    """Faceted search over doctors, hospitals or departments.

    Query params mirror the search page state:
      - type: doctor|hospital|department (default doctor)
      - query, specialization, city, minRating, gender, experience
      - sortBy: e.g. name_az, rating_high, price_low, doctors_high
      - page, limit
    Always answers 200; a failed search comes back empty.
    """
    q = SearchQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    return Response(search_healthcare(q.validated_data))


search.cls.throttle_scope = 'search'


@api_view(['GET'])
@permission_classes([AllowAny])
@throttle_classes(THROTTLES)
def live_search(request):
    """Autocomplete suggestions; needs at least two characters of ``query``."""
    q = LiveSearchQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    return Response(search_healthcare_items(q.validated_data))


live_search.cls.throttle_scope = 'search'


@api_view(['GET'])
@permission_classes([AllowAny])
def specializations(request):
    return Response({'ok': True, 'data': get_specializations()})


@api_view(['GET'])
@permission_classes([AllowAny])
def cities(request):
    return Response({'ok': True, 'data': get_cities()})


@api_view(['GET'])
@permission_classes([AllowAny])
def top_doctors(request):
    q = TopDoctorsQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    return Response({'ok': True, 'data': get_top_doctors(q.validated_data['limit'])})


@api_view(['GET'])
@permission_classes([AllowAny])
def hospital_detail(request, pk: int):
    data = get_hospital_detail(pk)
    if data is None:
        return Response({'ok': False, 'detail': 'not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response({'ok': True, 'data': data})


@api_view(['GET'])
@permission_classes([AllowAny])
def department_detail(request, pk: int):
    data = get_department_detail(pk)
    if data is None:
        return Response({'ok': False, 'detail': 'not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response({'ok': True, 'data': data})
