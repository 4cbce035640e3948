"""
URL configuration for learnhub project.
"""
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    # 🔧 DJANGO ADMIN
    path('admin/', admin.site.urls),

    # 📚 Enrollments and lesson progress
    path('', include('courses.urls')),

    # 🧩 Quiz attempts
    path('', include('quizzes.urls')),

    # 📜 Certificates, badges and verification
    path('', include('certificates.urls')),

    # 📝 Assignment submissions
    path('', include('assignments.urls')),
]
