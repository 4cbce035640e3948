from django.urls import path

from .api_views import assignment_api, assignment_submit_api

urlpatterns = [
    path("api/assignments/<int:assignment_id>/", assignment_api, name="api_assignment"),
    path("api/assignments/<int:assignment_id>/submit/", assignment_submit_api, name="api_assignment_submit"),
]
