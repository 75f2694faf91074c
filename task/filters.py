import django_filters
from django.db.models import Q

from project.models import normalize_tag_name
from task.models import Task, Status, Priority


class TaskFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=Status.choices)
    priority = django_filters.ChoiceFilter(choices=Priority.choices)
    projectId = django_filters.NumberFilter(field_name='project_id')
    dueFrom = django_filters.DateFilter(field_name='due_date', lookup_expr='date__gte')
    dueTo = django_filters.DateFilter(field_name='due_date', lookup_expr='date__lte')
    q = django_filters.CharFilter(method='filter_text')
    tag = django_filters.CharFilter(method='filter_tag')

    class Meta:
        model = Task
        fields = []

    def filter_text(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(Q(title__icontains=value) | Q(description__icontains=value))

    def filter_tag(self, queryset, name, value):
        tag = normalize_tag_name(value)
        if not tag:
            return queryset
        # legacy_tags holds a JSON array of strings
        return queryset.filter(
            Q(tags__name=tag) | Q(legacy_tags__icontains=f'"{value.strip()}"')
        ).distinct()
