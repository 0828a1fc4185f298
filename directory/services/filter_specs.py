"""
Filter specifications for the directory search.

Each searchable entity type declares which filters it accepts and which
sort keys it can honour.  Incoming request parameters are resolved
against that declaration into a typed :class:`SearchRequest`: keys the
entity type does not know about, empty values and the ``"all"``
sentinel used by the filter widgets are dropped instead of rejected.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from django.conf import settings

logger = logging.getLogger(__name__)

DOCTOR = 'doctor'
HOSPITAL = 'hospital'
DEPARTMENT = 'department'
ENTITY_TYPES = (DOCTOR, HOSPITAL, DEPARTMENT)

# Value the filter widgets send for "no restriction"
ANY_VALUE = 'all'

# Request keys that are not filters
CONTROL_KEYS = frozenset({'type', 'sortBy', 'page', 'limit'})


@dataclass(frozen=True)
class DoctorFilters:
    query: Optional[str] = None
    specialization: Optional[str] = None
    city: Optional[str] = None
    min_rating: Optional[float] = None
    gender: Optional[str] = None
    experience: Optional[str] = None


@dataclass(frozen=True)
class HospitalFilters:
    query: Optional[str] = None
    city: Optional[str] = None


@dataclass(frozen=True)
class DepartmentFilters:
    query: Optional[str] = None
    city: Optional[str] = None


Filters = Union[DoctorFilters, HospitalFilters, DepartmentFilters]


@dataclass(frozen=True)
class FilterSpec:
    """Static search configuration of one entity type.

    ``params`` maps the public (camelCase) request key to the field of
    ``filters_class`` it populates.
    """
    entity_type: str
    filters_class: type
    params: Mapping[str, str]
    sort_keys: tuple[str, ...]

    def allows_sort(self, sort_key: Optional[str]) -> bool:
        return sort_key in self.sort_keys


FILTER_SPECS: dict[str, FilterSpec] = {
    DOCTOR: FilterSpec(
        entity_type=DOCTOR,
        filters_class=DoctorFilters,
        params={
            'query': 'query',
            'specialization': 'specialization',
            'city': 'city',
            'minRating': 'min_rating',
            'gender': 'gender',
            'experience': 'experience',
        },
        sort_keys=(
            'name_az', 'price_low', 'price_high', 'rating_high',
            'reviews_high', 'experience_high', 'newest',
        ),
    ),
    HOSPITAL: FilterSpec(
        entity_type=HOSPITAL,
        filters_class=HospitalFilters,
        params={'query': 'query', 'city': 'city'},
        sort_keys=(
            'name_az', 'rating_high', 'reviews_high',
            'doctors_high', 'departments_high', 'newest',
        ),
    ),
    DEPARTMENT: FilterSpec(
        entity_type=DEPARTMENT,
        filters_class=DepartmentFilters,
        params={'query': 'query', 'city': 'city'},
        sort_keys=('name_az', 'doctors_high', 'newest'),
    ),
}


@dataclass(frozen=True)
class SearchRequest:
    entity_type: str
    filters: Filters
    sort_key: Optional[str]
    page: int
    limit: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def clean_text(value: Any) -> Optional[str]:
    """Return a stripped string, or ``None`` for empty and ``"all"`` values."""
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() == ANY_VALUE:
        return None
    return text


def _clean_float(value: Any) -> Optional[float]:
    text = clean_text(value)
    if text is None:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def _positive_int(value: Any, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number >= 1 else default


_COERCERS = {
    'min_rating': _clean_float,
}


def get_filter_spec(entity_type: Any) -> FilterSpec:
    try:
        return FILTER_SPECS[entity_type]
    except (KeyError, TypeError):
        raise ValueError(f"unknown entity type: {entity_type!r}") from None


def resolve_search_request(params: Mapping[str, Any]) -> SearchRequest:
    """Build a :class:`SearchRequest` from raw request parameters.

    Raises ``ValueError`` only for an unknown entity ``type``; every other
    problem (unknown filter keys, unsupported sort keys, unparsable
    numbers) degrades to "not given".
    """
    spec = get_filter_spec(params.get('type'))

    values: dict[str, Any] = {}
    for key, field_name in spec.params.items():
        coerce = _COERCERS.get(field_name, clean_text)
        value = coerce(params.get(key))
        if value is not None:
            values[field_name] = value

    ignored = sorted(k for k in params if k not in spec.params and k not in CONTROL_KEYS)
    if ignored:
        logger.debug("search(%s): ignoring filters %s", spec.entity_type, ignored)

    sort_key = clean_text(params.get('sortBy'))
    if sort_key is not None and not spec.allows_sort(sort_key):
        logger.debug("search(%s): ignoring sort key %r", spec.entity_type, sort_key)
        sort_key = None

    default_limit = getattr(settings, 'SEARCH_DEFAULT_LIMIT', 10)
    max_limit = getattr(settings, 'SEARCH_MAX_LIMIT', 100)
    page = _positive_int(params.get('page'), 1)
    limit = min(_positive_int(params.get('limit'), default_limit), max_limit)

    return SearchRequest(
        entity_type=spec.entity_type,
        filters=spec.filters_class(**values),
        sort_key=sort_key,
        page=page,
        limit=limit,
    )
