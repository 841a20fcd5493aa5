from django.conf import settings
from django.urls import include
from django.urls import path
from rest_framework.routers import DefaultRouter
from rest_framework.routers import SimpleRouter

from livepoll.polls.api.views import AdminSessionListView
from livepoll.polls.api.views import PollSessionViewSet
from livepoll.polls.api.views import QuestionViewSet
from livepoll.users.api.views import AdminUserViewSet

router = DefaultRouter() if settings.DEBUG else SimpleRouter()

router.register("sessions", PollSessionViewSet, basename="sessions")
router.register("questions", QuestionViewSet, basename="questions")
router.register("admin/users", AdminUserViewSet, basename="admin-users")


app_name = "api"
urlpatterns = [
    path("auth/", include("livepoll.users.api.urls")),
    path("responses/", include("livepoll.polls.api.urls")),
    path("anonymous/", include("livepoll.audience.api.urls")),
    path("admin/sessions/", AdminSessionListView.as_view(), name="admin-sessions"),
    *router.urls,
]
