from django.urls import path

from .api_views import enrollment_api, lesson_complete_api

urlpatterns = [
    path("api/enrollments/", enrollment_api, name="api_enrollments"),
    path("api/lessons/<int:lesson_id>/complete/", lesson_complete_api, name="api_lesson_complete"),
]
