"""
Django admin registrations for the directory models.

Platform administrators verify hospitals and doctors and moderate
reviews from here; only verified rows show up in public search.
"""

from django.contrib import admin

from .models import Department, Doctor, Hospital, Review, User, UserProfile


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'name', 'role', 'is_active', 'is_approved')
    list_filter = ('role', 'is_active', 'is_approved')
    search_fields = ('username', 'name', 'email')


@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display = ('user', 'city', 'gender')
    list_filter = ('gender',)
    search_fields = ('user__username', 'user__name', 'city')


@admin.register(Hospital)
class HospitalAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'city', 'is_verified', 'created_at')
    list_filter = ('is_verified', 'city')
    search_fields = ('name', 'city', 'description')


@admin.register(Department)
class DepartmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'hospital', 'created_at')
    list_filter = ('hospital',)
    search_fields = ('name', 'hospital__name')


@admin.register(Doctor)
class DoctorAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'specialization', 'hospital', 'is_verified', 'consultation_fee')
    list_filter = ('is_verified', 'is_independent', 'specialization')
    search_fields = ('user__name', 'user__username', 'specialization', 'license_number')
    list_select_related = ('user', 'hospital')


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ('id', 'author', 'doctor', 'hospital', 'rating', 'status', 'created_at')
    list_filter = ('status', 'rating')
    search_fields = ('title', 'content', 'author__username')
