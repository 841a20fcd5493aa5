from django.contrib import admin

from .models import PollSession
from .models import Question


class QuestionInline(admin.TabularInline):
    model = Question
    extra = 0
    fields = ("question_text", "question_type", "is_active", "closed_at")
    readonly_fields = ("closed_at",)


@admin.register(PollSession)
class PollSessionAdmin(admin.ModelAdmin):
    list_display = ("title", "join_code", "presenter", "is_active", "created_at")
    list_filter = ("is_active",)
    search_fields = ("title", "join_code", "presenter__email")
    raw_id_fields = ("presenter", "selected_question")
    inlines = [QuestionInline]


@admin.register(Question)
class QuestionAdmin(admin.ModelAdmin):
    list_display = ("id", "session", "question_type", "is_active", "created_at")
    list_filter = ("question_type", "is_active")
    search_fields = ("question_text",)
    raw_id_fields = ("session", "presenter")
