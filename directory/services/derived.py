"""
Attributes computed from fetched rows rather than stored columns.

Everything here is pure and works on instances whose relations were
already prefetched, so no query is issued while deriving.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable

from directory.services.filter_specs import DEPARTMENT, DOCTOR, HOSPITAL

# Leading integer; for a range such as "5-10 ans" this is the lower bound
_LEADING_NUMBER = re.compile(r'\s*([0-9]+)')


@dataclass
class RankedRecord:
    instance: Any
    avg_rating: float = 0.0
    review_count: int = 0
    exp_years: int = 0


def average_rating(ratings: Iterable[float]) -> float:
    """Mean of ``ratings``; ``0.0`` when there are none."""
    values = list(ratings)
    if not values:
        return 0.0
    return sum(values) / len(values)


def parse_experience_years(text: Any) -> int:
    """Years of experience written at the start of a free-text field.

    >>> parse_experience_years("7 years")
    7
    >>> parse_experience_years("10+ ans")
    10
    >>> parse_experience_years("n/a")
    0
    """
    if text is None:
        return 0
    if not isinstance(text, str):
        try:
            text = str(text)
        except Exception:
            return 0
    match = _LEADING_NUMBER.match(text)
    return int(match.group(1)) if match else 0


def _review_ratings(instance: Any) -> list[int]:
    return [review.rating for review in instance.reviews.all()]


def _department_ratings(department: Any) -> list[int]:
    return [
        review.rating
        for doctor in department.doctors.all()
        for review in doctor.reviews.all()
    ]


def compute_derived(entity_type: str, instance: Any) -> RankedRecord:
    if entity_type == DEPARTMENT:
        ratings = _department_ratings(instance)
    elif entity_type in (DOCTOR, HOSPITAL):
        ratings = _review_ratings(instance)
    else:
        raise ValueError(f"unknown entity type: {entity_type!r}")
    record = RankedRecord(
        instance=instance,
        avg_rating=average_rating(ratings),
        review_count=len(ratings),
    )
    if entity_type == DOCTOR:
        record.exp_years = parse_experience_years(instance.experience)
    return record
