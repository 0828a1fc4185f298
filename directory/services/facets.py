"""
Facet histograms for the search filter widgets.

Facets are counted against a fixed visibility baseline, not against
the caller's current filters, so the counts do not shrink while a user
narrows a search.
"""
from __future__ import annotations

from typing import Any

from django.db.models import Q

from directory.models import Doctor, Hospital, UserProfile
from directory.services.filter_specs import DOCTOR
from directory.services.store import DirectoryStore

# Placeholder buckets; experience is free text and is not aggregated yet
EXPERIENCE_LEVELS = ('1-5', '5-10', '10+')


def empty_facets() -> dict[str, list]:
    return {
        'specializations': [],
        'cities': [],
        'ratings': [],
        'genders': [],
        'experienceLevels': [],
    }


def _buckets(rows: list[dict[str, Any]], field_name: str, label: str) -> list[dict[str, Any]]:
    buckets = [
        {label: row[field_name], 'count': row['count']}
        for row in rows
        if row[field_name] not in (None, '')
    ]
    return sorted(buckets, key=lambda b: (-b['count'], str(b[label])))


def specialization_facet(store: DirectoryStore) -> list[dict[str, Any]]:
    baseline = (
        Q(is_verified=True, user__is_active=True, user__is_approved=True)
        & ~Q(specialization='')
    )
    return _buckets(store.group_by(Doctor, 'specialization', baseline), 'specialization', 'name')


def city_facet(store: DirectoryStore) -> list[dict[str, Any]]:
    baseline = Q(is_verified=True) & ~Q(city='')
    return _buckets(store.group_by(Hospital, 'city', baseline), 'city', 'name')


def gender_facet(store: DirectoryStore) -> list[dict[str, Any]]:
    baseline = Q(user__doctor__is_verified=True) & ~Q(gender='')
    return _buckets(store.group_by(UserProfile, 'gender', baseline), 'gender', 'value')


def aggregate_facets(entity_type: str, store: DirectoryStore) -> dict[str, list]:
    facets = empty_facets()
    if entity_type == DOCTOR:
        facets['specializations'] = specialization_facet(store)
        facets['cities'] = city_facet(store)
        facets['genders'] = gender_facet(store)
        facets['experienceLevels'] = [{'value': level, 'count': 0} for level in EXPERIENCE_LEVELS]
    else:
        facets['cities'] = city_facet(store)
    return facets
