"""
Ranking plans for the directory search.

A sort request is split in two stages.  The store stage is an
``order_by`` (plus whatever annotations it needs, e.g. the average of
related review ratings) that the database can evaluate before
pagination.  The in-memory stage only exists for keys that depend on
values parsed out of free text, such as years of experience; those
plans fall back to a recency store order and re-sort the fetched page.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from operator import attrgetter
from typing import Any, Iterable, Mapping, Optional

from django.db.models import Avg, Count, F, Q, Value
from django.db.models.functions import Coalesce, Lower, NullIf

from directory.services.derived import RankedRecord
from directory.services.filter_specs import DOCTOR, Filters, get_filter_spec

DEFAULT_SORT_KEY = 'name_az'


@dataclass(frozen=True)
class RankingPlan:
    order_by: tuple[Any, ...]
    annotations: Mapping[str, Any] = field(default_factory=dict)
    needs_post_sort: bool = False
    post_sort_key: Optional[str] = None


def _by_name(entity_type: str) -> RankingPlan:
    if entity_type == DOCTOR:
        # doctors without a display name are listed under their username
        name = Coalesce(NullIf('user__name', Value('')), 'user__username')
    else:
        name = F('name')
    return RankingPlan(order_by=(Lower(name).asc(), 'id'))


def _by_recency() -> RankingPlan:
    return RankingPlan(order_by=('-created_at', '-id'))


def _by_annotation(alias: str, aggregate: Any) -> RankingPlan:
    return RankingPlan(
        order_by=(F(alias).desc(nulls_last=True), 'id'),
        annotations={alias: aggregate},
    )


def _store_plan(entity_type: str, sort_key: str) -> RankingPlan:
    if sort_key == 'newest':
        return _by_recency()
    if sort_key == 'price_low':
        return RankingPlan(order_by=(F('consultation_fee').asc(nulls_last=True), 'id'))
    if sort_key == 'price_high':
        return RankingPlan(order_by=(F('consultation_fee').desc(nulls_last=True), 'id'))
    if sort_key == 'rating_high':
        return _by_annotation('rating_avg', Avg('reviews__rating'))
    if sort_key == 'reviews_high':
        return _by_annotation('review_total', Count('reviews', distinct=True))
    if sort_key == 'doctors_high':
        return _by_annotation(
            'doctor_total', Count('doctors', filter=Q(doctors__is_verified=True), distinct=True)
        )
    if sort_key == 'departments_high':
        return _by_annotation('department_total', Count('departments', distinct=True))
    return _by_name(entity_type)


def resolve_ranking_plan(entity_type: str, sort_key: Optional[str]) -> RankingPlan:
    """Return the two-stage plan for ``sort_key`` on ``entity_type``.

    Keys outside the entity's allow-list fall back to the default
    alphabetical order.
    """
    spec = get_filter_spec(entity_type)
    if sort_key is None or not spec.allows_sort(sort_key):
        sort_key = DEFAULT_SORT_KEY
    if sort_key == 'experience_high':
        # experience is free text; recency keeps the page deterministic
        return RankingPlan(
            order_by=_by_recency().order_by,
            needs_post_sort=True,
            post_sort_key='exp_years',
        )
    return _store_plan(entity_type, sort_key)


def apply_post_filter(records: Iterable[RankedRecord], filters: Filters) -> list[RankedRecord]:
    """Drop records below the requested minimum rating.

    Runs on the fetched page only, so the page may come back shorter
    than ``limit`` while the reported total still counts every match.
    """
    min_rating = getattr(filters, 'min_rating', None)
    if min_rating is None:
        return list(records)
    return [record for record in records if record.avg_rating >= min_rating]


def post_sort(records: Iterable[RankedRecord], plan: RankingPlan) -> list[RankedRecord]:
    if not plan.needs_post_sort:
        return list(records)
    # sorted() is stable with reverse=True, so ties keep the store order
    return sorted(records, key=attrgetter(plan.post_sort_key), reverse=True)
