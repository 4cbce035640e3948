from rest_framework.throttling import UserRateThrottle


class QuizAttemptThrottle(UserRateThrottle):
    """
    Per-user limit on start/submit calls. Counters live in the configured
    Django cache and expire with the rate window.
    """
    scope = 'quiz_attempt'
