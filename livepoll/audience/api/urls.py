from django.urls import path

from .views import JoinSessionView
from .views import MyResponseView
from .views import SessionByCodeView
from .views import SubmitResponseView

urlpatterns = [
    path("session/<str:code>/", SessionByCodeView.as_view(), name="anonymous-session"),
    path("join/", JoinSessionView.as_view(), name="anonymous-join"),
    path("response/", SubmitResponseView.as_view(), name="anonymous-response"),
    path(
        "my-response/<int:question_id>/",
        MyResponseView.as_view(),
        name="anonymous-my-response",
    ),
]
