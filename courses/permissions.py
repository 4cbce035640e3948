"""
Role-based access control for course staff.
"""
from rest_framework import permissions

from .models import Enrollment, Profile


def get_role(user):
    if not user or not user.is_authenticated:
        return None
    if user.is_superuser:
        return Profile.ROLE_ADMIN
    try:
        return user.profile.role
    except Profile.DoesNotExist:
        return Profile.ROLE_STUDENT


class IsInstructorOrAdmin(permissions.BasePermission):
    """Only instructors and admins"""
    message = "Instructor or admin role required"

    def has_permission(self, request, view):
        return get_role(request.user) in (Profile.ROLE_INSTRUCTOR, Profile.ROLE_ADMIN)


def can_manage_course(user, course):
    """
    Admins manage every course; instructors only the courses they teach.
    """
    role = get_role(user)
    if role == Profile.ROLE_ADMIN:
        return True
    if role == Profile.ROLE_INSTRUCTOR:
        return course.instructor_id == user.pk
    return False


def has_content_access(user, course_id, lesson=None):
    """
    Any enrollment in the course opens its quizzes and assignments; content
    attached to a free lesson is open to every signed-in user.
    """
    if lesson is not None and lesson.is_free:
        return True
    return Enrollment.objects.filter(student=user, course_id=course_id).exists()
