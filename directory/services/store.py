"""
Narrow query interface between the search pipeline and the Django ORM.

The pipeline only needs three reads: a count, a paginated fetch with
eager-loaded relations and a grouped count.  Keeping them behind
:class:`DirectoryStore` lets one request share a single deadline over
all of its queries and lets tests substitute a failing store.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from django.conf import settings
from django.db.models import Count, Model, Prefetch, Q

from directory.exceptions import SearchTimeout
from directory.models import Department, Doctor, Hospital
from directory.services.filter_specs import DEPARTMENT, DOCTOR, HOSPITAL, SearchRequest
from directory.services.ranking import RankingPlan

logger = logging.getLogger(__name__)


class Deadline:
    """Request-scoped time budget checked before every store call.

    ``seconds`` of ``None`` or ``0`` never expires.
    """

    def __init__(self, seconds: Optional[float] = None, *, clock=time.monotonic):
        self._clock = clock
        self.expires_at = clock() + seconds if seconds else None

    @classmethod
    def from_settings(cls) -> 'Deadline':
        return cls(getattr(settings, 'SEARCH_DEADLINE_SECONDS', 0))

    def remaining(self) -> Optional[float]:
        if self.expires_at is None:
            return None
        return self.expires_at - self._clock()

    def check(self, operation: str) -> None:
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            raise SearchTimeout(f"search deadline expired before {operation}")


@dataclass(frozen=True)
class Include:
    """Relations to eager-load: ``select`` joins and ``prefetch`` lookups."""
    select: tuple[str, ...] = ()
    prefetch: tuple[Any, ...] = ()


class DirectoryStore:
    def __init__(self, deadline: Optional[Deadline] = None, *, using: str = 'default'):
        self.deadline = deadline or Deadline()
        self.using = using

    def _queryset(self, model: type[Model], predicate: Q):
        return model._default_manager.using(self.using).filter(predicate)

    def count(self, model: type[Model], predicate: Q) -> int:
        self.deadline.check(f"count({model.__name__})")
        return self._queryset(model, predicate).count()

    def find_many(
        self,
        model: type[Model],
        predicate: Q,
        *,
        include: Include = Include(),
        order_by: tuple[Any, ...] = (),
        annotations: Optional[Mapping[str, Any]] = None,
        skip: int = 0,
        take: Optional[int] = None,
    ) -> list[Model]:
        self.deadline.check(f"find_many({model.__name__})")
        qs = self._queryset(model, predicate)
        if annotations:
            qs = qs.annotate(**annotations)
        if include.select:
            qs = qs.select_related(*include.select)
        if include.prefetch:
            qs = qs.prefetch_related(*include.prefetch)
        if order_by:
            qs = qs.order_by(*order_by)
        end = skip + take if take is not None else None
        return list(qs[skip:end])

    def group_by(self, model: type[Model], field_name: str, predicate: Q) -> list[dict[str, Any]]:
        self.deadline.check(f"group_by({model.__name__}.{field_name})")
        rows = (
            self._queryset(model, predicate)
            .values(field_name)
            .annotate(count=Count('id'))
            .order_by('-count', field_name)
        )
        return list(rows)


def _verified_doctors(*, with_reviews: bool = False) -> Prefetch:
    queryset = Doctor.objects.filter(is_verified=True).select_related('user').order_by('id')
    if with_reviews:
        queryset = queryset.prefetch_related('reviews')
    return Prefetch('doctors', queryset=queryset)


def include_for(entity_type: str) -> Include:
    # built per call: Prefetch objects are mutated while a queryset is evaluated
    if entity_type == DOCTOR:
        return Include(
            select=('user', 'user__profile', 'hospital', 'department'),
            prefetch=('reviews',),
        )
    if entity_type == HOSPITAL:
        return Include(prefetch=('departments', _verified_doctors(), 'reviews'))
    if entity_type == DEPARTMENT:
        return Include(select=('hospital',), prefetch=(_verified_doctors(with_reviews=True),))
    raise ValueError(f"unknown entity type: {entity_type!r}")


MODELS: dict[str, type[Model]] = {
    DOCTOR: Doctor,
    HOSPITAL: Hospital,
    DEPARTMENT: Department,
}


@dataclass
class FetchedPage:
    total_count: int
    items: list[Model] = field(default_factory=list)


def fetch_page(request: SearchRequest, predicate: Q, plan: RankingPlan, store: DirectoryStore) -> FetchedPage:
    """Run the count and the page fetch against the same predicate."""
    model = MODELS[request.entity_type]
    total = store.count(model, predicate)
    items = store.find_many(
        model,
        predicate,
        include=include_for(request.entity_type),
        order_by=plan.order_by,
        annotations=plan.annotations,
        skip=request.skip,
        take=request.limit,
    )
    logger.debug(
        "search(%s): total=%d page=%d fetched=%d", request.entity_type, total, request.page, len(items)
    )
    return FetchedPage(total_count=total, items=items)
