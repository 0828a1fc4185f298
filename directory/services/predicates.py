"""
Translate resolved search filters into Django ``Q`` predicates.

The result is always a conjunction.  Filters that were not given add no
clause, and every entity type carries its own visibility baseline
(verified records only, active doctor accounts).
"""
from __future__ import annotations

from django.db.models import Q

from directory.services.filter_specs import (
    DepartmentFilters,
    DoctorFilters,
    Filters,
    HospitalFilters,
)


def doctor_predicate(filters: DoctorFilters) -> Q:
    clauses = [Q(is_verified=True), Q(user__is_active=True)]
    if filters.query:
        clauses.append(Q(user__name__icontains=filters.query))
    if filters.specialization:
        clauses.append(Q(specialization__icontains=filters.specialization))
    if filters.city:
        # a doctor matches on either their own city or their hospital's
        clauses.append(
            Q(user__profile__city__icontains=filters.city)
            | Q(hospital__city__icontains=filters.city)
        )
    if filters.gender:
        clauses.append(Q(user__profile__gender=filters.gender))
    if filters.experience:
        clauses.append(Q(experience__icontains=filters.experience))
    return Q(*clauses)


def hospital_predicate(filters: HospitalFilters) -> Q:
    clauses = [Q(is_verified=True)]
    if filters.query:
        clauses.append(Q(name__icontains=filters.query) | Q(description__icontains=filters.query))
    if filters.city:
        clauses.append(Q(city__icontains=filters.city))
    return Q(*clauses)


def department_predicate(filters: DepartmentFilters) -> Q:
    clauses = [Q(hospital__is_verified=True)]
    if filters.query:
        clauses.append(Q(name__icontains=filters.query))
    if filters.city:
        clauses.append(Q(hospital__city__icontains=filters.city))
    return Q(*clauses)


_BUILDERS = {
    DoctorFilters: doctor_predicate,
    HospitalFilters: hospital_predicate,
    DepartmentFilters: department_predicate,
}


def build_predicate(filters: Filters) -> Q:
    """Return the store predicate for one resolved filter set."""
    try:
        builder = _BUILDERS[type(filters)]
    except KeyError:
        raise TypeError(f"no predicate builder for {type(filters).__name__}") from None
    return builder(filters)
