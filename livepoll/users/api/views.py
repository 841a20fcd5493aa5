import logging

from django.contrib.auth import authenticate
from django.db.models import Count
from drf_spectacular.utils import extend_schema
from drf_spectacular.utils import extend_schema_view
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.mixins import CreateModelMixin
from rest_framework.mixins import DestroyModelMixin
from rest_framework.mixins import ListModelMixin
from rest_framework.mixins import UpdateModelMixin
from rest_framework.permissions import AllowAny
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework.viewsets import GenericViewSet
from rest_framework_simplejwt.views import TokenRefreshView

from livepoll.users.authentication import TokenVersionRefreshSerializer
from livepoll.users.authentication import issue_tokens
from livepoll.users.models import User

from .permissions import IsAdminRole
from .permissions import IsPresenterOrAdmin
from .serializers import AdminUserSerializer
from .serializers import ChangePasswordSerializer
from .serializers import LoginSerializer
from .serializers import RegisterSerializer
from .serializers import ResetPasswordSerializer
from .serializers import UserSerializer

logger = logging.getLogger(__name__)


@extend_schema(tags=["Authentication"], request=RegisterSerializer)
class RegisterView(APIView):
    permission_classes = [AllowAny]
    authentication_classes: list = []

    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        logger.info("Registered presenter %s", user.pk)
        return Response(
            {"message": "User registered successfully", "userId": user.pk},
            status=status.HTTP_201_CREATED,
        )


@extend_schema(tags=["Authentication"], request=LoginSerializer)
class LoginView(APIView):
    permission_classes = [AllowAny]
    authentication_classes: list = []

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = authenticate(
            request,
            username=serializer.validated_data["email"],
            password=serializer.validated_data["password"],
        )
        if user is None:
            return Response(
                {"error": "Invalid credentials"},
                status=status.HTTP_401_UNAUTHORIZED,
            )
        if user.role not in (User.Role.PRESENTER, User.Role.ADMIN):
            return Response(
                {
                    "error": "Only presenter and admin accounts can log in here. "
                    "Audience members join sessions with a join code.",
                },
                status=status.HTTP_403_FORBIDDEN,
            )
        tokens = issue_tokens(user)
        return Response(
            {
                "token": tokens["access"],
                "refresh": tokens["refresh"],
                "user": UserSerializer(user).data,
            },
        )


@extend_schema_view(post=extend_schema(tags=["Authentication"]))
class TokenVersionRefreshView(TokenRefreshView):
    serializer_class = TokenVersionRefreshSerializer


@extend_schema(tags=["Authentication"])
class ProfileView(APIView):
    permission_classes = [IsPresenterOrAdmin]
    serializer_class = UserSerializer

    def get(self, request):
        return Response(UserSerializer(request.user).data)

    def put(self, request):
        if not request.data.get("email"):
            return Response(
                {"error": "Email is required"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        serializer = UserSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)


@extend_schema(tags=["Authentication"], request=ChangePasswordSerializer)
class ChangePasswordView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = ChangePasswordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = request.user
        if not user.check_password(serializer.validated_data["currentPassword"]):
            return Response(
                {"error": "Current password is incorrect"},
                status=status.HTTP_401_UNAUTHORIZED,
            )
        user.set_password(serializer.validated_data["newPassword"])
        user.invalidate_tokens()
        user.save(update_fields=["password", "token_version", "updated_at"])
        logger.info("User %s changed their password", user.pk)
        return Response({"message": "Password changed successfully. Please log in again."})


@extend_schema_view(
    list=extend_schema(tags=["Admin"]),
    create=extend_schema(tags=["Admin"]),
    update=extend_schema(tags=["Admin"]),
    partial_update=extend_schema(tags=["Admin"]),
    destroy=extend_schema(tags=["Admin"]),
    reset_password=extend_schema(tags=["Admin"], request=ResetPasswordSerializer),
)
class AdminUserViewSet(
    ListModelMixin,
    CreateModelMixin,
    UpdateModelMixin,
    DestroyModelMixin,
    GenericViewSet,
):
    serializer_class = AdminUserSerializer
    permission_classes = [IsAdminRole]
    pagination_class = None

    def get_queryset(self):  # type: ignore[override]
        return User.objects.annotate(session_count=Count("poll_sessions")).order_by(
            "-created_at",
        )

    def list(self, request, *args, **kwargs):
        serializer = self.get_serializer(self.get_queryset(), many=True)
        return Response({"users": serializer.data})

    def update(self, request, *args, **kwargs):
        instance = self.get_object()
        role = request.data.get("role")
        if instance.pk == request.user.pk and role and role != request.user.role:
            return Response(
                {"error": "Cannot change your own role"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        kwargs["partial"] = True
        return super().update(request, *args, **kwargs)

    def perform_update(self, serializer):  # type: ignore[override]
        instance = serializer.save()
        logger.info("Admin %s updated user %s", self.request.user.pk, instance.pk)

    def destroy(self, request, *args, **kwargs):
        instance = self.get_object()
        if instance.pk == request.user.pk:
            return Response(
                {"error": "Cannot delete your own account"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        instance.delete()
        logger.info("Admin %s deleted user %s", request.user.pk, kwargs.get("pk"))
        return Response({"message": "User deleted successfully"})

    @action(detail=True, methods=["post"], url_path="reset-password")
    def reset_password(self, request, pk=None):
        instance = self.get_object()
        serializer = ResetPasswordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        instance.set_password(serializer.validated_data["newPassword"])
        instance.invalidate_tokens()
        instance.save(update_fields=["password", "token_version", "updated_at"])
        logger.info("Admin %s reset password of user %s", request.user.pk, instance.pk)
        return Response({"message": "Password reset successfully"})
