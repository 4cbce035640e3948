from django.urls import path
from . import views

urlpatterns = [
    path('verify/<uuid:verification_code>/', views.verify_certificate, name='verify_certificate'),
    path('api/certificates/', views.my_certificates_api, name='api_certificates'),
    path('certificates/<int:certificate_id>/download/', views.download_certificate, name='download_certificate'),
]
