from django.urls import path
from . import api_views

urlpatterns = [
    path('api/quiz/<int:quiz_id>/attempt/', api_views.quiz_attempt_api, name='quiz_attempt'),
    path('api/quiz/<int:quiz_id>/attempt/<int:attempt_id>/grade/', api_views.grade_attempt_api, name='quiz_attempt_grade'),
]
