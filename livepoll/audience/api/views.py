import logging

from django.db import IntegrityError
from django.db import transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from livepoll.audience.authentication import AnonymousTokenAuthentication
from livepoll.audience.authentication import HasAnonymousParticipant
from livepoll.audience.models import AnonymousParticipant
from livepoll.audience.models import AnonymousResponse
from livepoll.polls.models import PollSession
from livepoll.polls.models import Question
from livepoll.realtime.events import polls as realtime_events

from .serializers import JoinSessionSerializer
from .serializers import SubmitResponseSerializer

logger = logging.getLogger(__name__)


def _error(message: str, http_status: int) -> Response:
    return Response({"error": message}, status=http_status)


@extend_schema(tags=["Audience"])
class SessionByCodeView(APIView):
    permission_classes = [AllowAny]
    authentication_classes: list = []

    def get(self, request, code):
        session = get_object_or_404(
            PollSession.objects.select_related("presenter"),
            join_code=code.lower(),
        )
        if not session.is_active:
            return _error("Session is no longer active", status.HTTP_400_BAD_REQUEST)

        selected = None
        if session.selected_question_id:
            question = Question.objects.filter(
                pk=session.selected_question_id,
                is_active=True,
            ).first()
            if question is not None:
                selected = realtime_events.build_question_payload(question)

        presenter = session.presenter
        return Response(
            {
                "session": {
                    "id": session.pk,
                    "title": session.title,
                    "description": session.description,
                    "presenterName": f"{presenter.first_name} {presenter.last_name}".strip(),
                    "selectedQuestionId": session.selected_question_id,
                },
                "selectedQuestion": selected,
                "anonymousParticipantCount": session.participants.count(),
            },
        )


@extend_schema(tags=["Audience"], request=JoinSessionSerializer)
class JoinSessionView(APIView):
    permission_classes = [AllowAny]
    authentication_classes: list = []

    def post(self, request):
        serializer = JoinSessionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        session = get_object_or_404(
            PollSession,
            join_code=serializer.validated_data["joinCode"],
        )
        if not session.is_active:
            return _error("Session is no longer active", status.HTTP_400_BAD_REQUEST)

        participant = AnonymousParticipant.objects.create(
            session=session,
            display_name=serializer.validated_data["displayName"].strip(),
        )
        logger.info("Participant %s joined session %s", participant.pk, session.pk)
        return Response(
            {
                "message": "Joined session successfully",
                "token": participant.anonymous_token,
                "participantId": participant.pk,
                "sessionId": session.pk,
            },
            status=status.HTTP_201_CREATED,
        )


@extend_schema(tags=["Audience"], request=SubmitResponseSerializer)
class SubmitResponseView(APIView):
    authentication_classes = [AnonymousTokenAuthentication]
    permission_classes = [HasAnonymousParticipant]

    def post(self, request):
        participant = request.auth
        serializer = SubmitResponseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        question_id = serializer.validated_data["questionId"]

        question = Question.objects.select_related("session").filter(pk=question_id).first()
        if question is None:
            return _error("Question not found", status.HTTP_404_NOT_FOUND)
        if not question.is_active:
            return _error("Question is no longer active", status.HTTP_400_BAD_REQUEST)
        if question.session_id != participant.session_id:
            return _error(
                "Question does not belong to your session",
                status.HTTP_403_FORBIDDEN,
            )
        if question.session.selected_question_id != question.pk:
            return _error(
                "This question is not currently active for responses",
                status.HTTP_400_BAD_REQUEST,
            )

        try:
            with transaction.atomic():
                response = AnonymousResponse.objects.create(
                    question=question,
                    participant_id=participant.id,
                    answer_text=serializer.validated_data["answerText"],
                    response_time=serializer.validated_data.get("responseTime"),
                )
        except IntegrityError:
            return _error(
                "You have already responded to this question",
                status.HTTP_409_CONFLICT,
            )

        AnonymousParticipant.objects.filter(pk=participant.id).update(
            last_active_at=timezone.now(),
        )
        realtime_events.publish_anonymous_response(question.session_id, response)
        return Response(
            {"message": "Response submitted successfully", "responseId": response.pk},
            status=status.HTTP_201_CREATED,
        )


@extend_schema(tags=["Audience"])
class MyResponseView(APIView):
    authentication_classes = [AnonymousTokenAuthentication]
    permission_classes = [HasAnonymousParticipant]

    def get(self, request, question_id):
        response = AnonymousResponse.objects.filter(
            question_id=question_id,
            participant_id=request.auth.id,
        ).first()
        if response is None:
            return Response({"hasResponded": False, "response": None})
        return Response(
            {
                "hasResponded": True,
                "response": {
                    "id": response.pk,
                    "answer_text": response.answer_text,
                    "created_at": response.created_at,
                },
            },
        )
