"""
Database models for the healthcare directory.

These models capture the public directory: hospitals and their
departments, doctors attached to them and the reviews patients leave.
Users carry a display name and approval flags; demographic details such
as city and gender live on :class:`UserProfile`.  The search services
only ever read from these tables.
"""
from __future__ import annotations

from django.contrib.auth.models import AbstractUser
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

MAX_RATING = 5


class User(AbstractUser):
    """Custom user model with a role, a display name and an approval flag.

    ``is_active`` comes from :class:`AbstractUser`; ``is_approved`` is set
    by platform administrators once a practitioner's documents were
    checked.
    """
    ROLE_CHOICES = [
        ('patient', 'Patient'),
        ('doctor', 'Doctor'),
        ('hospital_admin', 'Hospital administrator'),
        ('super', 'Super Administrator'),
    ]
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='patient')
    # Display name shown in the directory; name search and sorting use it
    name = models.CharField(max_length=255, blank=True, db_index=True)
    is_approved = models.BooleanField(default=False)

    def __str__(self) -> str:
        return f"{self.name or self.username} ({self.role})"


class UserProfile(models.Model):
    GENDER_CHOICES = [
        ('MALE', 'Male'),
        ('FEMALE', 'Female'),
    ]
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='profile')
    city = models.CharField(max_length=100, blank=True, db_index=True)
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES, blank=True)
    avatar_url = models.URLField(max_length=500, blank=True)
    bio = models.TextField(blank=True)

    def __str__(self) -> str:
        return f"profile of {self.user_id} ({self.city})"


class Hospital(models.Model):
    """A hospital or clinic listed in the directory.

    Only verified hospitals are visible in public search results and
    facet counts.
    """
    name = models.CharField(max_length=255, db_index=True)
    description = models.TextField(blank=True)
    city = models.CharField(max_length=100, blank=True, db_index=True)
    address = models.CharField(max_length=255, blank=True)
    phone = models.CharField(max_length=32, blank=True)
    email = models.EmailField(blank=True)
    website = models.URLField(blank=True)
    logo_url = models.URLField(max_length=500, blank=True)
    is_verified = models.BooleanField(default=False, db_index=True)
    admin = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='administered_hospitals'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.name} ({self.city})"


class Department(models.Model):
    hospital = models.ForeignKey(Hospital, on_delete=models.CASCADE, related_name='departments')
    name = models.CharField(max_length=255, db_index=True)
    description = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.name} @ {self.hospital_id}"


class Doctor(models.Model):
    """A practitioner linked to a user account.

    ``experience`` is free text entered by the doctor (e.g. "12 ans
    d'expérience en cardiologie"); numeric experience is derived from it
    at search time.
    """
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='doctor')
    hospital = models.ForeignKey(
        Hospital, null=True, blank=True, on_delete=models.SET_NULL, related_name='doctors'
    )
    department = models.ForeignKey(
        Department, null=True, blank=True, on_delete=models.SET_NULL, related_name='doctors'
    )
    specialization = models.CharField(max_length=255, blank=True, db_index=True)
    license_number = models.CharField(max_length=64, blank=True)
    experience = models.CharField(max_length=255, blank=True)
    education = models.CharField(max_length=255, blank=True)
    consultation_fee = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    is_verified = models.BooleanField(default=False, db_index=True)
    is_independent = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['is_verified', 'created_at'], name='doctor_verified_created_idx'),
        ]

    def __str__(self) -> str:
        return f"Doctor({self.user_id}, {self.specialization})"


class Review(models.Model):
    """A patient review of a doctor or a hospital."""
    STATUS_CHOICES = [
        ('PENDING', 'Pending'),
        ('APPROVED', 'Approved'),
        ('REJECTED', 'Rejected'),
    ]
    author = models.ForeignKey(User, on_delete=models.CASCADE, related_name='reviews_written')
    doctor = models.ForeignKey(
        Doctor, null=True, blank=True, on_delete=models.CASCADE, related_name='reviews'
    )
    hospital = models.ForeignKey(
        Hospital, null=True, blank=True, on_delete=models.CASCADE, related_name='reviews'
    )
    rating = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(MAX_RATING)]
    )
    title = models.CharField(max_length=255, blank=True)
    content = models.TextField(blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='PENDING', db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['doctor', 'created_at'], name='review_doctor_created_idx'),
            models.Index(fields=['hospital', 'status', 'created_at'], name='review_hospital_status_idx'),
        ]

    def __str__(self) -> str:
        return f"Review {self.rating}/{MAX_RATING} by {self.author_id}"
