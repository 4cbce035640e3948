import re
from unittest import mock

from django.db import IntegrityError
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework.test import APITestCase

from quizzes.factories import make_course, make_user

from .anchoring import AnchorError, anchor_certificate, submit_anchor
from .models import Badge, Certificate, UserBadge
from .services import award_badge, generate_certificate_number, issue_certificate


class IssuanceTests(TestCase):
    def setUp(self):
        self.student = make_user("student")
        self.course, _ = make_course()

    def test_certificate_number_format(self):
        number = generate_certificate_number()
        self.assertRegex(number, r'^CERT-\d{13}-[A-Z0-9]{9}$')
        self.assertNotEqual(number, generate_certificate_number())

    def test_issue_is_idempotent(self):
        first, created = issue_certificate(self.student, self.course)
        second, created_again = issue_certificate(self.student, self.course)

        self.assertTrue(created)
        self.assertFalse(created_again)
        self.assertEqual(first.pk, second.pk)
        self.assertEqual(len(first.certificate_hash), 64)

    def test_award_badge_is_idempotent(self):
        first = award_badge(self.student, Badge.BadgeType.COURSE_COMPLETION)
        second = award_badge(self.student, Badge.BadgeType.COURSE_COMPLETION)

        self.assertEqual(first.pk, second.pk)
        self.assertEqual(UserBadge.objects.filter(user=self.student).count(), 1)

    def test_award_badge_without_catalog_entry(self):
        self.assertIsNone(award_badge(self.student, Badge.BadgeType.STREAK))

    def test_number_collision_is_retried_with_a_fresh_number(self):
        taken, _ = issue_certificate(make_user("first"), self.course)

        with mock.patch(
            'certificates.services.generate_certificate_number',
            side_effect=[taken.certificate_number, 'CERT-1700000000000-RETRY0001'],
        ):
            certificate, created = issue_certificate(self.student, self.course)

        self.assertTrue(created)
        self.assertEqual(certificate.certificate_number, 'CERT-1700000000000-RETRY0001')

    def test_repeated_number_collision_is_raised(self):
        taken, _ = issue_certificate(make_user("first"), self.course)

        with mock.patch('certificates.services.generate_certificate_number', return_value=taken.certificate_number):
            with self.assertRaises(IntegrityError):
                issue_certificate(self.student, self.course)

        self.assertFalse(Certificate.objects.filter(student=self.student).exists())


class AnchoringTests(TestCase):
    def setUp(self):
        student = make_user("student")
        course, _ = make_course()
        self.certificate, _ = issue_certificate(student, course)

    @override_settings(CERTIFICATE_ANCHOR_URL='https://anchor.example.com/v1/anchor')
    def test_anchor_stores_transaction_id(self):
        with mock.patch('certificates.anchoring.requests.post') as post:
            post.return_value.status_code = 200
            post.return_value.json.return_value = {'transaction_id': 'tx-123'}
            self.assertEqual(anchor_certificate(self.certificate.pk), 'tx-123')

        self.certificate.refresh_from_db()
        self.assertEqual(self.certificate.anchor_transaction_id, 'tx-123')
        self.assertIsNotNone(self.certificate.anchored_at)
        self.assertEqual(post.call_args.kwargs['json']['hash'], self.certificate.certificate_hash)

    @override_settings(CERTIFICATE_ANCHOR_URL='https://anchor.example.com/v1/anchor')
    def test_rejected_anchor_is_logged_not_raised(self):
        with mock.patch('certificates.anchoring.requests.post') as post:
            post.return_value.status_code = 503
            with self.assertRaises(AnchorError):
                submit_anchor(self.certificate)
            self.assertIsNone(anchor_certificate(self.certificate.pk))

        self.certificate.refresh_from_db()
        self.assertEqual(self.certificate.anchor_transaction_id, '')


class CertificateViewTests(APITestCase):
    def setUp(self):
        self.student = make_user("student")
        self.course, _ = make_course(title="Data Science 101")
        self.certificate, _ = issue_certificate(self.student, self.course)

    def test_verify_valid_certificate(self):
        response = self.client.get(reverse("verify_certificate", args=[self.certificate.verification_code]))

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data["is_valid"])
        self.assertEqual(response.data["course"], "Data Science 101")

    def test_verify_detects_tampering_and_revocation(self):
        Certificate.objects.filter(pk=self.certificate.pk).update(certificate_hash="0" * 64)
        response = self.client.get(reverse("verify_certificate", args=[self.certificate.verification_code]))
        self.assertFalse(response.data["is_valid"])

        Certificate.objects.filter(pk=self.certificate.pk).update(is_revoked=True)
        response = self.client.get(reverse("verify_certificate", args=[self.certificate.verification_code]))
        self.assertTrue(response.data["is_revoked"])
        self.assertFalse(response.data["is_valid"])

    def test_owner_downloads_pdf(self):
        self.client.force_authenticate(user=self.student)

        response = self.client.get(reverse("download_certificate", args=[self.certificate.id]))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response["Content-Type"], "application/pdf")
        self.assertTrue(response.content.startswith(b"%PDF"))
        self.assertTrue(re.search(self.certificate.certificate_number, response["Content-Disposition"]))

    def test_other_user_cannot_download(self):
        self.client.force_authenticate(user=make_user("other"))

        response = self.client.get(reverse("download_certificate", args=[self.certificate.id]))
        self.assertEqual(response.status_code, 404)

    def test_my_certificates_lists_certificates_and_badges(self):
        award_badge(self.student, Badge.BadgeType.COURSE_COMPLETION, metadata={'course_id': self.course.id})
        self.client.force_authenticate(user=self.student)

        response = self.client.get(reverse("api_certificates"))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data["certificates"]), 1)
        self.assertTrue(response.data["certificates"][0]["verification_url"].endswith(
            f"/verify/{self.certificate.verification_code}/"
        ))
        self.assertEqual(response.data["badges"][0]["name"], "Course Completion")
