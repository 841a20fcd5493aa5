from rest_framework import serializers

from livepoll.polls.models import PollSession
from livepoll.polls.models import Question


class PollSessionSerializer(serializers.ModelSerializer[PollSession]):
    presenter_id = serializers.IntegerField(read_only=True)
    presenter_email = serializers.EmailField(source="presenter.email", read_only=True)
    presenter_first_name = serializers.CharField(
        source="presenter.first_name",
        read_only=True,
    )
    presenter_last_name = serializers.CharField(
        source="presenter.last_name",
        read_only=True,
    )
    selected_question_id = serializers.IntegerField(read_only=True, allow_null=True)
    question_count = serializers.IntegerField(read_only=True, default=None)
    participant_count = serializers.IntegerField(read_only=True, default=None)

    class Meta:
        model = PollSession
        fields = [
            "id",
            "title",
            "description",
            "is_active",
            "join_code",
            "selected_question_id",
            "created_at",
            "closed_at",
            "presenter_id",
            "presenter_email",
            "presenter_first_name",
            "presenter_last_name",
            "question_count",
            "participant_count",
        ]
        read_only_fields = fields


class PollSessionCreateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class PollSessionUpdateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    isActive = serializers.BooleanField(required=False)  # noqa: N815


class SelectQuestionSerializer(serializers.Serializer):
    questionId = serializers.IntegerField(allow_null=True)  # noqa: N815


class QuestionSerializer(serializers.ModelSerializer[Question]):
    session_id = serializers.IntegerField(read_only=True)
    presenter_id = serializers.IntegerField(read_only=True)
    response_count = serializers.IntegerField(read_only=True, default=None)

    class Meta:
        model = Question
        fields = [
            "id",
            "session_id",
            "presenter_id",
            "question_text",
            "question_type",
            "options",
            "correct_answer",
            "time_limit",
            "is_active",
            "created_at",
            "closed_at",
            "response_count",
        ]
        read_only_fields = fields


class QuestionWriteSerializer(serializers.ModelSerializer[Question]):
    """Accepts the camelCase request body used by the presenter UI."""

    questionText = serializers.CharField(source="question_text")  # noqa: N815
    questionType = serializers.ChoiceField(  # noqa: N815
        source="question_type",
        choices=Question.QuestionType.choices,
    )
    options = serializers.JSONField(required=False, allow_null=True)
    correctAnswer = serializers.CharField(  # noqa: N815
        source="correct_answer",
        required=False,
        allow_blank=True,
        allow_null=True,
    )
    timeLimit = serializers.IntegerField(  # noqa: N815
        source="time_limit",
        required=False,
        allow_null=True,
        min_value=0,
    )
    isActive = serializers.BooleanField(source="is_active", required=False)  # noqa: N815

    class Meta:
        model = Question
        fields = [
            "questionText",
            "questionType",
            "options",
            "correctAnswer",
            "timeLimit",
            "isActive",
        ]

    def validate_options(self, value):
        if value is not None and not isinstance(value, list):
            msg = "Options must be a list"
            raise serializers.ValidationError(msg)
        return value
