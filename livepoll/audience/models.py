import secrets

from django.db import models

ANONYMOUS_TOKEN_BYTES = 32
DISPLAY_NAME_MAX_LENGTH = 50
ANSWER_MAX_LENGTH = 1000


def generate_anonymous_token() -> str:
    return secrets.token_hex(ANONYMOUS_TOKEN_BYTES)


class AnonymousParticipant(models.Model):
    session = models.ForeignKey(
        "polls.PollSession",
        on_delete=models.CASCADE,
        related_name="participants",
    )
    anonymous_token = models.CharField(
        max_length=ANONYMOUS_TOKEN_BYTES * 2,
        unique=True,
        default=generate_anonymous_token,
    )
    display_name = models.CharField(max_length=DISPLAY_NAME_MAX_LENGTH)
    created_at = models.DateTimeField(auto_now_add=True)
    last_active_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]

    def __str__(self) -> str:
        return self.display_name


class AnonymousResponse(models.Model):
    question = models.ForeignKey(
        "polls.Question",
        on_delete=models.CASCADE,
        related_name="responses",
    )
    participant = models.ForeignKey(
        AnonymousParticipant,
        on_delete=models.CASCADE,
        related_name="responses",
    )
    answer_text = models.TextField(max_length=ANSWER_MAX_LENGTH)
    response_time = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["question", "participant"],
                name="unique_response_per_participant",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"Response({self.question_id}, {self.participant_id})"
