import logging

from django.db.models import Count
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema
from drf_spectacular.utils import extend_schema_view
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.generics import ListAPIView
from rest_framework.mixins import DestroyModelMixin
from rest_framework.mixins import RetrieveModelMixin
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework.viewsets import GenericViewSet

from livepoll.audience.models import AnonymousResponse
from livepoll.polls.models import PollSession
from livepoll.polls.models import Question
from livepoll.polls.services import build_response_stats
from livepoll.polls.services import generate_unique_join_code
from livepoll.realtime.events import polls as realtime_events
from livepoll.users.api.permissions import IsAdminRole
from livepoll.users.api.permissions import IsOwnerOrAdmin
from livepoll.users.api.permissions import IsPresenterOrAdmin

from .filters import AdminSessionFilter
from .serializers import PollSessionCreateSerializer
from .serializers import PollSessionSerializer
from .serializers import PollSessionUpdateSerializer
from .serializers import QuestionSerializer
from .serializers import QuestionWriteSerializer
from .serializers import SelectQuestionSerializer

logger = logging.getLogger(__name__)


def _error(message: str, http_status: int) -> Response:
    return Response({"error": message}, status=http_status)


def _sessions_with_counts():
    return PollSession.objects.select_related("presenter").annotate(
        question_count=Count("questions", distinct=True),
        participant_count=Count("participants", distinct=True),
    )


def _questions_with_counts():
    return Question.objects.annotate(response_count=Count("responses"))


@extend_schema_view(
    list=extend_schema(tags=["Sessions"]),
    create=extend_schema(tags=["Sessions"], request=PollSessionCreateSerializer),
    retrieve=extend_schema(tags=["Sessions"]),
    update=extend_schema(tags=["Sessions"], request=PollSessionUpdateSerializer),
    active=extend_schema(tags=["Sessions"]),
    select_question=extend_schema(tags=["Sessions"], request=SelectQuestionSerializer),
)
class PollSessionViewSet(RetrieveModelMixin, GenericViewSet):
    serializer_class = PollSessionSerializer
    permission_classes = [IsPresenterOrAdmin, IsOwnerOrAdmin]
    queryset = PollSession.objects.select_related("presenter")
    pagination_class = None

    def list(self, request):
        qs = _sessions_with_counts().filter(presenter=request.user)
        if request.query_params.get("active") == "true":
            qs = qs.filter(is_active=True)
        return Response({"sessions": PollSessionSerializer(qs, many=True).data})

    def create(self, request):
        serializer = PollSessionCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        session = PollSession.objects.create(
            presenter=request.user,
            title=serializer.validated_data["title"],
            description=serializer.validated_data.get("description") or None,
            join_code=generate_unique_join_code(),
        )
        logger.info("User %s created session %s", request.user.pk, session.pk)
        return Response(
            {
                "message": "Session created successfully",
                "sessionId": session.pk,
                "joinCode": session.join_code,
            },
            status=status.HTTP_201_CREATED,
        )

    @action(detail=False, methods=["get"])
    def active(self, request):
        qs = PollSession.objects.select_related("presenter").annotate(
            question_count=Count("questions", filter=Q(questions__is_active=True)),
        )
        qs = qs.filter(is_active=True)
        return Response({"sessions": PollSessionSerializer(qs, many=True).data})

    def retrieve(self, request, *args, **kwargs):
        session = self.get_object()
        questions = _questions_with_counts().filter(session=session)
        return Response(
            {
                "session": PollSessionSerializer(session).data,
                "questions": QuestionSerializer(questions, many=True).data,
                "anonymousParticipantCount": session.participants.count(),
                "connectedParticipantCount": realtime_events.participant_count(session.pk),
            },
        )

    def update(self, request, *args, **kwargs):
        session = self.get_object()
        serializer = PollSessionUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        if not data:
            return _error("No updates provided", status.HTTP_400_BAD_REQUEST)

        if "title" in data:
            session.title = data["title"]
        if "description" in data:
            session.description = data["description"]
        is_active = data.get("isActive")
        if is_active is not None:
            session.is_active = is_active
            session.closed_at = None if is_active else timezone.now()
        session.save()

        if is_active is False:
            realtime_events.publish_session_closed(session.pk)
        elif is_active is True:
            realtime_events.publish_session_reopened(session.pk)
        return Response({"message": "Session updated successfully"})

    @action(detail=True, methods=["put"], url_path="select-question")
    def select_question(self, request, pk=None):
        session = self.get_object()
        serializer = SelectQuestionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        question_id = serializer.validated_data["questionId"]
        previous_question_id = session.selected_question_id

        if question_id is None:
            session.selected_question = None
            session.save(update_fields=["selected_question"])
            realtime_events.publish_question_deselected(session.pk)
            return Response({"message": "Question deselected"})

        question = Question.objects.filter(pk=question_id, session=session).first()
        if question is None:
            return _error("Question not found in this session", status.HTTP_404_NOT_FOUND)

        if not question.is_active:
            # Presenting a closed question reopens it.
            question.is_active = True
            question.closed_at = None
            question.save(update_fields=["is_active", "closed_at"])
            realtime_events.publish_question_reopened(question)

        session.selected_question = question
        session.save(update_fields=["selected_question"])
        realtime_events.publish_question_selected(
            session.pk,
            question,
            previous_question_id,
        )
        return Response(
            {"message": "Question selected", "selectedQuestionId": question.pk},
        )


@extend_schema_view(
    list=extend_schema(tags=["Questions"]),
    create=extend_schema(tags=["Questions"], request=QuestionWriteSerializer),
    retrieve=extend_schema(tags=["Questions"]),
    update=extend_schema(tags=["Questions"], request=QuestionWriteSerializer),
    destroy=extend_schema(tags=["Questions"]),
    active=extend_schema(tags=["Questions"]),
    close=extend_schema(tags=["Questions"], request=None),
    cancel_close=extend_schema(tags=["Questions"], request=None),
    reopen=extend_schema(tags=["Questions"], request=None),
)
class QuestionViewSet(RetrieveModelMixin, DestroyModelMixin, GenericViewSet):
    serializer_class = QuestionSerializer
    permission_classes = [IsPresenterOrAdmin, IsOwnerOrAdmin]
    pagination_class = None

    def get_queryset(self):  # type: ignore[override]
        return _questions_with_counts()

    def _session_from_query(self, request) -> PollSession | Response:
        session_id = request.query_params.get("sessionId")
        if not session_id:
            return _error("Session ID is required", status.HTTP_400_BAD_REQUEST)
        session = get_object_or_404(PollSession, pk=session_id)
        self.check_object_permissions(request, session)
        return session

    def list(self, request):
        session = self._session_from_query(request)
        if isinstance(session, Response):
            return session
        qs = self.get_queryset().filter(session=session)
        return Response({"questions": QuestionSerializer(qs, many=True).data})

    @action(detail=False, methods=["get"])
    def active(self, request):
        session = self._session_from_query(request)
        if isinstance(session, Response):
            return session
        qs = self.get_queryset().filter(session=session, is_active=True)
        return Response({"questions": QuestionSerializer(qs, many=True).data})

    def create(self, request):
        session_id = request.data.get("sessionId")
        if not session_id:
            return _error("Session ID is required", status.HTTP_400_BAD_REQUEST)
        session = get_object_or_404(PollSession, pk=session_id)
        self.check_object_permissions(request, session)
        if not session.is_active:
            return _error(
                "Cannot add questions to inactive session",
                status.HTTP_400_BAD_REQUEST,
            )
        serializer = QuestionWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        question = serializer.save(session=session, presenter=session.presenter)
        return Response(
            {"message": "Question created successfully", "questionId": question.pk},
            status=status.HTTP_201_CREATED,
        )

    def retrieve(self, request, *args, **kwargs):
        question = self.get_object()
        data = QuestionSerializer(question).data
        data["is_closing"] = realtime_events.is_question_closing(question.pk)
        return Response({"question": data})

    def update(self, request, *args, **kwargs):
        question = self.get_object()
        serializer = QuestionWriteSerializer(question, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        if not serializer.validated_data:
            return _error("No updates provided", status.HTTP_400_BAD_REQUEST)
        serializer.save()
        return Response({"message": "Question updated successfully"})

    def destroy(self, request, *args, **kwargs):
        question = self.get_object()
        question.delete()
        return Response({"message": "Question deleted successfully"})

    @action(detail=True, methods=["put"])
    def close(self, request, pk=None):
        question = self.get_object()
        if not question.is_active:
            return _error("Question is already closed", status.HTTP_400_BAD_REQUEST)
        realtime_events.publish_question_closing(question)
        return Response(
            {
                "message": "Question closing initiated",
                "countdown": realtime_events.closing_countdown(),
            },
        )

    @action(detail=True, methods=["put"], url_path="cancel-close")
    def cancel_close(self, request, pk=None):
        question = self.get_object()
        if not realtime_events.publish_question_close_cancelled(question):
            return _error(
                "Question is not currently closing",
                status.HTTP_400_BAD_REQUEST,
            )
        return Response({"message": "Question close cancelled"})

    @action(detail=True, methods=["put"])
    def reopen(self, request, pk=None):
        question = self.get_object()
        if question.is_active:
            return _error("Question is already open", status.HTTP_400_BAD_REQUEST)
        if not realtime_events.publish_question_reopened(question):
            return _error("Question not found", status.HTTP_404_NOT_FOUND)
        return Response({"message": "Question reopened successfully"})


class _QuestionResponsesBase(APIView):
    permission_classes = [IsPresenterOrAdmin, IsOwnerOrAdmin]

    def get_question(self, request, question_id) -> Question:
        question = get_object_or_404(Question.objects.select_related("session"), pk=question_id)
        self.check_object_permissions(request, question.session)
        return question


@extend_schema(tags=["Responses"])
class QuestionResponsesView(_QuestionResponsesBase):
    def get(self, request, question_id):
        question = self.get_question(request, question_id)
        responses = AnonymousResponse.objects.filter(question=question).select_related(
            "participant",
        )
        return Response(
            {
                "responses": [
                    {
                        "id": r.pk,
                        "question_id": r.question_id,
                        "answer_text": r.answer_text,
                        "response_time": r.response_time,
                        "created_at": r.created_at,
                        "display_name": r.participant.display_name,
                        "isAnonymous": True,
                    }
                    for r in responses
                ],
            },
        )


@extend_schema(tags=["Responses"])
class QuestionResponseStatsView(_QuestionResponsesBase):
    def get(self, request, question_id):
        question = self.get_question(request, question_id)
        return Response(build_response_stats(question))


@extend_schema(tags=["Admin"])
class AdminSessionListView(ListAPIView):
    serializer_class = PollSessionSerializer
    permission_classes = [IsAdminRole]
    filter_backends = [DjangoFilterBackend]
    filterset_class = AdminSessionFilter
    pagination_class = None

    def get_queryset(self):  # type: ignore[override]
        return _sessions_with_counts().order_by("-created_at")

    def list(self, request, *args, **kwargs):
        qs = self.filter_queryset(self.get_queryset())
        return Response({"sessions": self.get_serializer(qs, many=True).data})
