from django.urls import path

from .views import QuestionResponsesView
from .views import QuestionResponseStatsView

urlpatterns = [
    path(
        "question/<int:question_id>/",
        QuestionResponsesView.as_view(),
        name="question-responses",
    ),
    path(
        "question/<int:question_id>/stats/",
        QuestionResponseStatsView.as_view(),
        name="question-response-stats",
    ),
]
