"""
Read-only directory lookups used next to the search page: dropdown
values, the top-rated doctors strip and hospital/department detail.
"""
from __future__ import annotations

import logging
import math
from typing import Optional

from django.db.models import Count, Prefetch

from directory.models import Department, Doctor, Hospital, Review, UserProfile
from directory.services.derived import average_rating, compute_derived
from directory.services.filter_specs import DOCTOR
from directory.services.formatters import (
    format_doctor_detail,
    format_review,
    format_user,
)

logger = logging.getLogger(__name__)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def get_specializations() -> list[str]:
    try:
        values = (
            Doctor.objects.exclude(specialization='')
            .values_list('specialization', flat=True)
            .distinct()
        )
        return sorted(set(values))
    except Exception:
        logger.exception("Error fetching specializations")
        return []


def get_cities() -> list[str]:
    """Cities known from hospitals and from user profiles, deduplicated."""
    try:
        hospital_cities = Hospital.objects.exclude(city='').values_list('city', flat=True).distinct()
        profile_cities = UserProfile.objects.exclude(city='').values_list('city', flat=True).distinct()
        return sorted(set(hospital_cities) | set(profile_cities))
    except Exception:
        logger.exception("Error fetching cities")
        return []


def get_top_doctors(limit: int = 6) -> list[dict]:
    doctors = (
        Doctor.objects.filter(user__is_active=True, user__is_approved=True)
        .annotate(review_total=Count('reviews'))
        .filter(review_total__gt=0)
        .select_related('user', 'user__profile')
        .prefetch_related('reviews')
        .order_by('id')
    )
    rows = []
    for doctor in doctors:
        record = compute_derived(DOCTOR, doctor)
        user = format_user(doctor.user)
        rows.append({
            'id': doctor.id,
            'name': user['name'],
            'specialization': doctor.specialization,
            'avatarUrl': user['avatarUrl'],
            'isVerified': doctor.user.is_approved,
            'rating': _round_half_up(record.avg_rating),
            'reviews': record.review_count,
            'gender': user['gender'],
            'city': user['city'],
            'experience': doctor.experience or None,
        })
    rows.sort(key=lambda row: row['rating'], reverse=True)
    return rows[:limit]


def _reviews_with_authors():
    return Review.objects.select_related('author', 'author__profile').order_by('-created_at', '-id')


def _doctors_with_reviews():
    return Doctor.objects.select_related('user', 'user__profile', 'department').prefetch_related(
        Prefetch('reviews', queryset=_reviews_with_authors())
    ).order_by('id')


def get_hospital_detail(hospital_id: int) -> Optional[dict]:
    try:
        hospital = (
            Hospital.objects.select_related('admin', 'admin__profile')
            .prefetch_related(
                Prefetch(
                    'departments',
                    queryset=Department.objects.prefetch_related(
                        Prefetch('doctors', queryset=Doctor.objects.select_related('user', 'user__profile'))
                    ).order_by('name'),
                ),
                Prefetch('doctors', queryset=_doctors_with_reviews()),
                Prefetch(
                    'reviews',
                    queryset=_reviews_with_authors().filter(status='APPROVED'),
                    to_attr='approved_reviews',
                ),
            )
            .filter(pk=hospital_id)
            .first()
        )
        if hospital is None:
            return None
        return {
            'id': hospital.id,
            'name': hospital.name,
            'admin': format_user(hospital.admin) if hospital.admin else None,
            'address': hospital.address or None,
            'city': hospital.city,
            'phone': hospital.phone or None,
            'email': hospital.email or None,
            'website': hospital.website or None,
            'description': hospital.description or None,
            'logoUrl': hospital.logo_url or None,
            'isVerified': hospital.is_verified,
            'createdAt': hospital.created_at.isoformat(),
            'updatedAt': hospital.updated_at.isoformat(),
            'doctors': [format_doctor_detail(d) for d in hospital.doctors.all()],
            'departments': [
                {
                    'id': d.id,
                    'name': d.name,
                    'description': d.description or None,
                    'doctors': [{'id': doc.id, 'user': format_user(doc.user)} for doc in d.doctors.all()],
                }
                for d in hospital.departments.all()
            ],
            'reviews': [format_review(r) for r in hospital.approved_reviews],
            'avgRating': average_rating(r.rating for r in hospital.approved_reviews),
        }
    except Exception:
        logger.exception("Error fetching hospital %s", hospital_id)
        return None


def get_department_detail(department_id: int) -> Optional[dict]:
    try:
        department = (
            Department.objects.select_related('hospital')
            .prefetch_related(Prefetch('doctors', queryset=_doctors_with_reviews()))
            .filter(pk=department_id)
            .first()
        )
        if department is None:
            return None
        hospital = department.hospital
        return {
            'id': department.id,
            'name': department.name,
            'description': department.description or None,
            'hospital': {
                'id': hospital.id,
                'name': hospital.name,
                'city': hospital.city,
                'website': hospital.website,
                'description': hospital.description,
                'logoUrl': hospital.logo_url,
                'isVerified': hospital.is_verified,
            },
            'doctors': [format_doctor_detail(d) for d in department.doctors.all()],
        }
    except Exception:
        logger.exception("Error fetching department %s", department_id)
        return None
