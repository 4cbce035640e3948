from rest_framework import serializers

from .models import Question, QuizAttempt


class DeliveredQuestionSerializer(serializers.ModelSerializer):
    """A question as shown while an attempt is live: no answer, no explanation."""

    class Meta:
        model = Question
        fields = ['id', 'question_type', 'text', 'options', 'order', 'points']


class QuizAttemptSerializer(serializers.ModelSerializer):
    class Meta:
        model = QuizAttempt
        fields = [
            'id', 'quiz', 'attempt_number', 'status',
            'started_at', 'submitted_at',
            'score', 'max_score', 'percentage', 'is_passed',
            'answers', 'time_spent_seconds',
            'needs_manual_grading', 'graded_at',
        ]
        read_only_fields = fields


class SubmitAttemptSerializer(serializers.Serializer):
    attempt_id = serializers.IntegerField(min_value=1)
    answers = serializers.DictField(child=serializers.JSONField(), allow_empty=True)


class AttemptQuerySerializer(serializers.Serializer):
    attempt_id = serializers.IntegerField(min_value=1, required=False)


class ManualGradeSerializer(serializers.Serializer):
    essay_points = serializers.DictField(child=serializers.IntegerField(min_value=0))
