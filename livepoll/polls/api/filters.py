import django_filters

from livepoll.polls.models import PollSession


class AdminSessionFilter(django_filters.FilterSet):
    presenterId = django_filters.NumberFilter(field_name="presenter_id")  # noqa: N815
    status = django_filters.ChoiceFilter(
        choices=[("open", "open"), ("closed", "closed")],
        method="filter_status",
    )
    search = django_filters.CharFilter(field_name="title", lookup_expr="icontains")

    class Meta:
        model = PollSession
        fields = ["presenterId", "status", "search"]

    def filter_status(self, queryset, name, value):
        return queryset.filter(is_active=value == "open")
