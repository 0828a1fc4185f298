"""
Public directory search.

``search_healthcare`` serves the faceted result page: it resolves the
request, builds the store predicate and ranking plan, fetches one page,
derives ratings and experience, applies the post-filter and post-sort
stages and attaches the facet histograms.  Any failure collapses the
whole response to the empty shape instead of propagating.

``search_healthcare_items`` is the lighter autocomplete lookup; unlike
the main search it raises :class:`SearchError` on failure.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from django.conf import settings
from django.db.models import Avg, Q

from directory.exceptions import SearchError, SearchTimeout
from directory.models import Department, Doctor, Hospital
from directory.services.derived import compute_derived
from directory.services.facets import aggregate_facets, empty_facets
from directory.services.filter_specs import (
    DEPARTMENT,
    DOCTOR,
    HOSPITAL,
    SearchRequest,
    clean_text,
    resolve_search_request,
)
from directory.services.formatters import format_department, format_doctor, format_hospital
from directory.services.predicates import build_predicate
from directory.services.ranking import apply_post_filter, post_sort, resolve_ranking_plan
from directory.services.store import Deadline, DirectoryStore, fetch_page

logger = logging.getLogger(__name__)

ITEM_KEYS = {
    DOCTOR: 'doctors',
    HOSPITAL: 'hospitals',
    DEPARTMENT: 'departments',
}

FORMATTERS = {
    DOCTOR: format_doctor,
    HOSPITAL: format_hospital,
    DEPARTMENT: format_department,
}

LIVE_SEARCH_MIN_QUERY = 2


def empty_response() -> dict:
    return {
        'doctors': [],
        'hospitals': [],
        'departments': [],
        'totalCount': 0,
        'facets': empty_facets(),
    }


def run_search(request: SearchRequest, store: DirectoryStore) -> dict:
    predicate = build_predicate(request.filters)
    plan = resolve_ranking_plan(request.entity_type, request.sort_key)
    page = fetch_page(request, predicate, plan, store)

    records = [compute_derived(request.entity_type, item) for item in page.items]
    records = apply_post_filter(records, request.filters)
    records = post_sort(records, plan)

    facets = aggregate_facets(request.entity_type, store)

    response = empty_response()
    formatter = FORMATTERS[request.entity_type]
    response[ITEM_KEYS[request.entity_type]] = [formatter(record) for record in records]
    # counted before the post-filter, see apply_post_filter
    response['totalCount'] = page.total_count
    response['facets'] = facets
    return response


def search_healthcare(params: Mapping[str, Any], *, store: Optional[DirectoryStore] = None) -> dict:
    """Run a faceted directory search; never raises."""
    try:
        request = resolve_search_request(params)
    except ValueError as exc:
        logger.debug("search: %s", exc)
        return empty_response()
    try:
        logger.debug(
            "search(%s): sort=%s page=%d limit=%d filters=%s",
            request.entity_type, request.sort_key, request.page, request.limit, request.filters,
        )
        return run_search(request, store or DirectoryStore(Deadline.from_settings()))
    except SearchTimeout as exc:
        logger.warning("Search timed out (type=%r): %s", params.get('type'), exc)
    except Exception:
        logger.exception("Error searching healthcare (type=%r)", params.get('type'))
    return empty_response()


def _live_limit(value: Any) -> int:
    default = getattr(settings, 'LIVE_SEARCH_DEFAULT_LIMIT', 10)
    try:
        limit = int(value) if value is not None else default
    except (TypeError, ValueError):
        limit = default
    return min(max(1, limit), getattr(settings, 'SEARCH_MAX_LIMIT', 100))


def _live_doctors(query: str, specialization: Optional[str], city: Optional[str], limit: int) -> list[dict]:
    qs = Doctor.objects.filter(user__name__icontains=query)
    if specialization:
        qs = qs.filter(specialization=specialization)
    if city:
        qs = qs.filter(hospital__city=city)
    qs = (
        qs.select_related('user', 'user__profile', 'hospital')
        .annotate(rating=Avg('reviews__rating'))
        .order_by('id')[:limit]
    )
    results = []
    for doctor in qs:
        profile = getattr(doctor.user, 'profile', None)
        results.append({
            'id': doctor.id,
            'type': DOCTOR,
            'name': doctor.user.name or doctor.user.username,
            'specialization': doctor.specialization,
            'city': doctor.hospital.city if doctor.hospital else None,
            'imageUrl': (profile.avatar_url or None) if profile else None,
            'rating': doctor.rating,
        })
    return results


def _live_hospitals(query: str, city: Optional[str], limit: int) -> list[dict]:
    qs = Hospital.objects.filter(Q(name__icontains=query) | Q(description__icontains=query))
    if city:
        qs = qs.filter(city=city)
    qs = qs.annotate(rating=Avg('reviews__rating')).order_by('id')[:limit]
    return [
        {
            'id': hospital.id,
            'type': HOSPITAL,
            'name': hospital.name,
            'city': hospital.city,
            'imageUrl': hospital.logo_url or None,
            'rating': hospital.rating,
        }
        for hospital in qs
    ]


def _live_departments(query: str, limit: int) -> list[dict]:
    qs = Department.objects.filter(name__icontains=query).select_related('hospital').order_by('id')[:limit]
    return [
        {
            'id': department.id,
            'type': DEPARTMENT,
            'name': department.name,
            'hospitalName': department.hospital.name if department.hospital else None,
            'imageUrl': department.hospital.logo_url if department.hospital else '',
        }
        for department in qs
    ]


def search_healthcare_items(params: Mapping[str, Any]) -> dict:
    """Autocomplete lookup returning a flat ``results`` list.

    Queries shorter than two characters return no results without
    touching the database.
    """
    query = (params.get('query') or '').strip()
    if len(query) < LIVE_SEARCH_MIN_QUERY:
        return {'results': []}

    entity_type = params.get('type')
    specialization = clean_text(params.get('specialization'))
    city = clean_text(params.get('city'))
    limit = _live_limit(params.get('limit'))

    try:
        if entity_type == DOCTOR:
            results = _live_doctors(query, specialization, city, limit)
        elif entity_type == HOSPITAL:
            results = _live_hospitals(query, city, limit)
        elif entity_type == DEPARTMENT:
            results = _live_departments(query, limit)
        else:
            results = []
    except Exception as exc:
        logger.exception("Live search failed (type=%r)", entity_type)
        raise SearchError() from exc
    return {'results': results}
