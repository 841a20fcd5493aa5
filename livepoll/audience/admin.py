from django.contrib import admin

from .models import AnonymousParticipant
from .models import AnonymousResponse


@admin.register(AnonymousParticipant)
class AnonymousParticipantAdmin(admin.ModelAdmin):
    list_display = ("display_name", "session", "created_at", "last_active_at")
    search_fields = ("display_name",)
    raw_id_fields = ("session",)
    exclude = ("anonymous_token",)


@admin.register(AnonymousResponse)
class AnonymousResponseAdmin(admin.ModelAdmin):
    list_display = ("question", "participant", "response_time", "created_at")
    raw_id_fields = ("question", "participant")
