from django.test import TestCase

from quizzes.factories import make_course, make_user

from .models import AuditLog, ImmutableRecordError
from .utils import create_log, verify_chain


class AuditLogTests(TestCase):
    def setUp(self):
        self.user = make_user("student")
        self.course, (self.lesson,) = make_course()

    def test_entries_are_hash_chained(self):
        first = create_log(self.user, 'attempt_started', {'attempt_id': 1}, course=self.course)
        second = create_log(self.user, 'attempt_submitted', {'attempt_id': 1}, course=self.course, lesson=self.lesson)

        self.assertEqual(first.previous_hash, "0" * 64)
        self.assertEqual(second.previous_hash, first.current_hash)
        self.assertIsNone(verify_chain(AuditLog.objects.order_by('created_at', 'id')))

    def test_tampered_entry_is_found(self):
        create_log(self.user, 'attempt_started', {})
        second = create_log(self.user, 'attempt_submitted', {})
        AuditLog.objects.filter(pk=second.pk).update(event_type='attempt_expired')

        broken = verify_chain(AuditLog.objects.order_by('created_at', 'id'))
        self.assertEqual(broken.pk, second.pk)

    def test_tampered_metadata_or_course_is_found(self):
        other_course, _ = make_course(title="Other")
        log = create_log(self.user, 'attempt_submitted', {'percentage': 40, 'passed': False}, course=self.course)

        AuditLog.objects.filter(pk=log.pk).update(metadata={'percentage': 90, 'passed': True})
        self.assertEqual(verify_chain(AuditLog.objects.order_by('created_at', 'id')).pk, log.pk)

        AuditLog.objects.filter(pk=log.pk).update(
            metadata={'percentage': 40, 'passed': False}, course=other_course
        )
        self.assertEqual(verify_chain(AuditLog.objects.order_by('created_at', 'id')).pk, log.pk)

    def test_chain_survives_course_removal(self):
        course, _ = make_course(title="Retired")
        create_log(self.user, 'course_completed', {'progress': 100}, course=course)
        course_id = course.pk

        course.delete()

        log = AuditLog.objects.get(event_type='course_completed')
        self.assertEqual(log.course_id, course_id)
        self.assertIsNone(verify_chain(AuditLog.objects.order_by('created_at', 'id')))

    def test_entries_cannot_change(self):
        log = create_log(self.user, 'attempt_started', {})

        with self.assertRaises(ImmutableRecordError):
            log.save()
        with self.assertRaises(ImmutableRecordError):
            log.delete()
