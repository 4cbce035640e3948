from rest_framework import serializers

from .models import Assignment, AssignmentSubmission, SubmissionFile


class SubmissionFileSerializer(serializers.ModelSerializer):
    file_size = serializers.IntegerField(min_value=0)

    class Meta:
        model = SubmissionFile
        fields = ['id', 'filename', 'file_url', 'file_size', 'file_type']
        read_only_fields = ['id']


class AssignmentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Assignment
        fields = [
            'id', 'course', 'lesson', 'title', 'description', 'instructions',
            'due_date', 'max_points', 'submission_type',
            'allowed_file_types', 'max_file_size', 'max_files',
        ]
        read_only_fields = fields


class AssignmentSubmissionSerializer(serializers.ModelSerializer):
    files = SubmissionFileSerializer(many=True, read_only=True)

    class Meta:
        model = AssignmentSubmission
        fields = [
            'id', 'assignment', 'status', 'text_content', 'files',
            'submitted_at', 'points', 'feedback', 'graded_at',
        ]
        read_only_fields = fields


class SubmitAssignmentSerializer(serializers.Serializer):
    text_content = serializers.CharField(required=False, allow_blank=True, default='')
    files = SubmissionFileSerializer(many=True, required=False, default=list)
