from rest_framework import serializers

from livepoll.audience.models import ANSWER_MAX_LENGTH
from livepoll.audience.models import DISPLAY_NAME_MAX_LENGTH


class JoinSessionSerializer(serializers.Serializer):
    joinCode = serializers.CharField(max_length=4, min_length=4)  # noqa: N815
    displayName = serializers.CharField(max_length=DISPLAY_NAME_MAX_LENGTH)  # noqa: N815

    def validate_joinCode(self, value: str) -> str:  # noqa: N802
        return value.lower()


class SubmitResponseSerializer(serializers.Serializer):
    questionId = serializers.IntegerField()  # noqa: N815
    answerText = serializers.CharField(max_length=ANSWER_MAX_LENGTH, trim_whitespace=False)  # noqa: N815
    responseTime = serializers.IntegerField(required=False, allow_null=True, min_value=0)  # noqa: N815
