import io

import qrcode
from qrcode.constants import ERROR_CORRECT_L
from django.conf import settings
from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from reportlab.lib.pagesizes import landscape, letter
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from .models import Certificate, UserBadge


def verification_url(certificate):
    base = settings.CERTIFICATE_VERIFY_BASE_URL.rstrip('/')
    return f"{base}/verify/{certificate.verification_code}/"


@api_view(["GET"])
@permission_classes([AllowAny])
def verify_certificate(request, verification_code):
    certificate = get_object_or_404(
        Certificate.objects.select_related('student', 'course'),
        verification_code=verification_code
    )

    if certificate.is_revoked:
        return Response({
            "status": "success",
            "is_valid": False,
            "is_revoked": True,
            "certificate_number": certificate.certificate_number,
        })

    is_valid = certificate.compute_hash() == certificate.certificate_hash

    return Response({
        "status": "success",
        "is_valid": is_valid,
        "is_revoked": False,
        "certificate_number": certificate.certificate_number,
        "student": certificate.student.get_full_name() or certificate.student.username,
        "course": certificate.course.title,
        "issued_at": certificate.issued_at.isoformat(),
        "anchor_transaction_id": certificate.anchor_transaction_id or None,
    })


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def my_certificates_api(request):
    """
    Certificates and badges earned by the logged-in student
    """
    certificates = Certificate.objects.filter(
        student=request.user
    ).select_related('course').order_by('-issued_at')
    badges = UserBadge.objects.filter(user=request.user).select_related('badge').order_by('-earned_at')

    return Response({
        "status": "success",
        "certificates": [
            {
                "id": c.id,
                "certificate_number": c.certificate_number,
                "course_id": c.course_id,
                "course": c.course.title,
                "issued_at": c.issued_at.isoformat(),
                "is_revoked": c.is_revoked,
                "verification_url": verification_url(c),
            }
            for c in certificates
        ],
        "badges": [
            {
                "name": ub.badge.name,
                "badge_type": ub.badge.badge_type,
                "earned_at": ub.earned_at.isoformat(),
                "metadata": ub.metadata,
            }
            for ub in badges
        ],
    })


def render_certificate_pdf(certificate, buffer):
    """
    Draw the certificate onto ``buffer`` with a QR code linking to the
    verification page.
    """
    qr = qrcode.QRCode(
        version=1,
        error_correction=ERROR_CORRECT_L,
        box_size=10,
        border=4,
    )
    qr.add_data(verification_url(certificate))
    qr.make(fit=True)

    qr_image = qr.make_image(fill_color="black", back_color="white")
    qr_buffer = io.BytesIO()
    qr_image.save(qr_buffer, format='PNG')
    qr_buffer.seek(0)

    page_size = landscape(letter)
    p = canvas.Canvas(buffer, pagesize=page_size)
    width, height = page_size

    p.setFont("Helvetica-Bold", 14)
    p.drawCentredString(width/2, height - 60, settings.CERTIFICATE_ORGANIZATION_NAME)

    p.setFont("Times-Bold", 28)
    p.drawCentredString(width/2, height - 120, "CERTIFICATE OF COMPLETION")

    student_name = certificate.student.get_full_name() or certificate.student.username
    p.setFont("Helvetica", 16)
    p.drawCentredString(width/2, height - 190, "This certifies that")
    p.setFont("Helvetica-Bold", 22)
    p.drawCentredString(width/2, height - 230, student_name)
    p.setFont("Helvetica", 16)
    p.drawCentredString(width/2, height - 270, "has successfully completed")
    p.setFont("Helvetica-Bold", 18)
    p.drawCentredString(width/2, height - 310, certificate.course.title)

    p.setFont("Helvetica", 11)
    p.drawCentredString(width/2, 90, f"Certificate No: {certificate.certificate_number}")
    p.drawCentredString(width/2, 72, f"Issued on: {certificate.issued_at.strftime('%B %d, %Y')}")

    p.drawImage(ImageReader(qr_buffer), width - 150, 40, width=100, height=100)
    p.setFont("Helvetica", 8)
    p.drawString(width - 150, 30, "Scan to verify")

    p.showPage()
    p.save()


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def download_certificate(request, certificate_id):
    """
    PDF download, only for the certificate's owner.
    """
    certificate = get_object_or_404(
        Certificate.objects.select_related('student', 'course'),
        id=certificate_id,
        student=request.user
    )

    response = HttpResponse(content_type='application/pdf')
    response['Content-Disposition'] = f'attachment; filename="certificate_{certificate.certificate_number}.pdf"'
    response['Cache-Control'] = 'no-cache, no-store, must-revalidate'
    render_certificate_pdf(certificate, response)
    return response
