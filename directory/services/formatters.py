"""
JSON shapes returned by the directory endpoints.

Search items are built from :class:`RankedRecord` so that derived values
(average rating, review count, parsed experience) travel with the row.
"""
from __future__ import annotations

from typing import Any, Optional

from directory.services.derived import RankedRecord, average_rating


def _profile(user) -> Optional[Any]:
    # reverse one-to-one raises when the profile row is missing
    return getattr(user, 'profile', None)


def _fee(value) -> Optional[float]:
    return float(value) if value is not None else None


def _display_name(user) -> str:
    # same fallback as the name ordering in ranking._by_name
    return user.name or user.username


def format_user(user) -> dict:
    profile = _profile(user)
    return {
        'id': user.id,
        'name': _display_name(user),
        'city': profile.city if profile else None,
        'gender': (profile.gender or None) if profile else None,
        'avatarUrl': (profile.avatar_url or None) if profile else None,
    }


def format_doctor(record: RankedRecord) -> dict:
    doctor = record.instance
    profile = _profile(doctor.user)
    hospital = doctor.hospital
    department = doctor.department
    city = (profile.city if profile else '') or (hospital.city if hospital else '')
    return {
        'id': doctor.id,
        'name': _display_name(doctor.user),
        'specialization': doctor.specialization,
        'experience': doctor.experience or None,
        'expYears': record.exp_years,
        'education': doctor.education or None,
        'consultationFee': _fee(doctor.consultation_fee),
        'isVerified': doctor.is_verified,
        'city': city or None,
        'gender': (profile.gender or None) if profile else None,
        'avatarUrl': (profile.avatar_url or None) if profile else None,
        'hospital': {'id': hospital.id, 'name': hospital.name, 'city': hospital.city} if hospital else None,
        'department': {'id': department.id, 'name': department.name} if department else None,
        'avgRating': record.avg_rating,
        'reviewCount': record.review_count,
        'createdAt': doctor.created_at.isoformat(),
    }


def _doctor_summary(doctor) -> dict:
    return {
        'id': doctor.id,
        'name': _display_name(doctor.user),
        'specialization': doctor.specialization,
    }


def format_hospital(record: RankedRecord) -> dict:
    hospital = record.instance
    departments = list(hospital.departments.all())
    doctors = list(hospital.doctors.all())
    return {
        'id': hospital.id,
        'name': hospital.name,
        'description': hospital.description or None,
        'city': hospital.city,
        'address': hospital.address or None,
        'phone': hospital.phone or None,
        'logoUrl': hospital.logo_url or None,
        'isVerified': hospital.is_verified,
        'departments': [{'id': d.id, 'name': d.name} for d in departments],
        'doctors': [_doctor_summary(d) for d in doctors],
        'departmentCount': len(departments),
        'doctorCount': len(doctors),
        'avgRating': record.avg_rating,
        'reviewCount': record.review_count,
        'createdAt': hospital.created_at.isoformat(),
    }


def format_department(record: RankedRecord) -> dict:
    department = record.instance
    hospital = department.hospital
    doctors = list(department.doctors.all())
    return {
        'id': department.id,
        'name': department.name,
        'description': department.description or None,
        'hospital': {
            'id': hospital.id,
            'name': hospital.name,
            'city': hospital.city,
            'logoUrl': hospital.logo_url or None,
        },
        'doctors': [_doctor_summary(d) for d in doctors],
        'doctorCount': len(doctors),
        'avgRating': record.avg_rating,
        'reviewCount': record.review_count,
        'createdAt': department.created_at.isoformat(),
    }


def format_review(review) -> dict:
    author = review.author
    return {
        'id': review.id,
        'title': review.title,
        'content': review.content,
        'rating': review.rating,
        'status': review.status,
        'createdAt': review.created_at.isoformat(),
        'author': format_user(author),
    }


def format_doctor_detail(doctor) -> dict:
    reviews = list(doctor.reviews.all())
    department = doctor.department
    return {
        'id': doctor.id,
        'specialization': doctor.specialization,
        'licenseNumber': doctor.license_number or None,
        'experience': doctor.experience or None,
        'education': doctor.education or None,
        'isVerified': doctor.is_verified,
        'consultationFee': _fee(doctor.consultation_fee),
        'user': format_user(doctor.user),
        'department': {'id': department.id, 'name': department.name} if department else None,
        'reviews': [format_review(r) for r in reviews],
        'avgRating': average_rating(r.rating for r in reviews),
    }
