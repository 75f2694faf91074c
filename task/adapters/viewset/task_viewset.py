import logging

from django.db.models import Q
from django.http import QueryDict
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema, OpenApiParameter
from rest_framework import viewsets, status, exceptions
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from project.models import ProjectMember
from task.filters import TaskFilter
from task.models import Task, TaskActivity, Status
from task.permission import TaskAccessPermission
from task.policy import check_update_permissions
from user.models import GlobalRole, get_global_role
from utils.custom_paginator import TaskPaginator
from ..serializers.task_serializer import (
    TaskSerializer,
    TaskDetailSerializer,
    TaskProjectListsSerializer,
    TaskDashboardSerializer,
    TaskActivitySerializer,
    TaskUpdateSerializer,
    TaskCreateSerializer,
)

logger = logging.getLogger(__name__)

TASK_SCOPES = ("all", "assigned", "projects")
LIST_VIEWS = {
    "default": TaskSerializer,
    "projectLists": TaskProjectListsSerializer,
    "dashboard": TaskDashboardSerializer,
}
ACTIVITY_LIMIT = 200


def normalize_tasks_view(value):
    return value if value in LIST_VIEWS else "default"


class TaskViewset(viewsets.ModelViewSet):
    """
    Tasks API.

    - list: scoped to what the caller can see, filtered by ``TaskFilter``,
      response shape chosen by ``?view=``
    - retrieve/update/destroy: ``TaskAccessPermission`` object checks, then
      field level rules from ``task.policy`` on update
    """
    queryset = Task.objects.all()
    permission_classes = [IsAuthenticated, TaskAccessPermission]
    pagination_class = TaskPaginator
    filter_backends = [DjangoFilterBackend]
    filterset_class = TaskFilter
    http_method_names = ["get", "post", "put", "delete", "head", "options"]
    # form bodies repeat these keys
    list_fields = ("tagIds", "assigneeIds")

    def get_queryset(self):
        qs = Task.objects.select_related("project", "task_list").prefetch_related(
            "tags", "assignments__user",
        )

        if self.action != "list":
            return qs.prefetch_related("project__members__user")

        user = self.request.user
        scope = self.request.query_params.get("scope", "all")
        if scope == "assigned":
            qs = qs.filter(assignments__user=user)
        elif scope == "projects":
            qs = qs.filter(project__members__user=user)
        elif get_global_role(user) != GlobalRole.ADMIN:
            qs = qs.filter(Q(assignments__user=user) | Q(project__members__user=user))

        if "status" not in self.request.query_params:
            qs = qs.exclude(status=Status.ARCHIVED)

        return qs.distinct().order_by("-created_at", "-id")

    def get_serializer_class(self):
        if self.action == "list":
            return LIST_VIEWS[normalize_tasks_view(self.request.query_params.get("view"))]
        if self.action == "retrieve" and self.request.query_params.get("view") != "light":
            return TaskDetailSerializer
        if self.action == "activity":
            return TaskActivitySerializer
        return TaskSerializer

    @extend_schema(
        parameters=[
            OpenApiParameter("scope", enum=TASK_SCOPES),
            OpenApiParameter("view", enum=tuple(LIST_VIEWS)),
        ]
    )
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)

    @extend_schema(parameters=[OpenApiParameter("view", enum=("light", "full"))])
    def retrieve(self, request, *args, **kwargs):
        return super().retrieve(request, *args, **kwargs)

    @extend_schema(request=TaskCreateSerializer, responses={201: TaskSerializer})
    def create(self, request, *args, **kwargs):
        write_serializer = TaskCreateSerializer(data=request.data, context={"request": request})
        write_serializer.is_valid(raise_exception=True)

        project = write_serializer.validated_data["projectId"]
        is_member = ProjectMember.objects.filter(project=project, user=request.user).exists()
        if not is_member and get_global_role(request.user) != GlobalRole.ADMIN:
            raise exceptions.PermissionDenied("Not a project member")

        task = write_serializer.save()
        logger.info(f"Task {task.id} created in project {project.id} by user {request.user.id}")

        read_serializer = TaskSerializer(self.get_queryset().get(pk=task.pk), context={"request": request})
        return Response({"task": read_serializer.data}, status=status.HTTP_201_CREATED)

    @extend_schema(request=TaskUpdateSerializer, responses={200: TaskSerializer})
    def update(self, request, *args, **kwargs):
        task = self.get_object()
        body = request.data
        if isinstance(body, QueryDict):
            body = {
                key: body.getlist(key) if key in self.list_fields else body.get(key)
                for key in body
            }
        elif isinstance(body, dict):
            body = dict(body)
        else:
            raise exceptions.ValidationError({"error": "Request body must be a JSON object"})

        if isinstance(body.get("status"), str):
            body["status"] = body["status"].strip()
            if not body["status"]:
                del body["status"]

        check_update_permissions(task, self.task_permissions, body)

        write_serializer = TaskUpdateSerializer(
            task, data=body, partial=True, context={"request": request}
        )
        write_serializer.is_valid(raise_exception=True)
        write_serializer.save()

        read_serializer = TaskSerializer(self.get_queryset().get(pk=task.pk), context={"request": request})
        return Response(read_serializer.data)

    def destroy(self, request, *args, **kwargs):
        task = self.get_object()
        task_id = task.id
        task.delete()
        logger.info(f"Task {task_id} deleted by user {request.user.id}")
        return Response({"success": True})

    @action(detail=True, methods=["get"])
    def activity(self, request, pk=None):
        task = self.get_object()
        events = (
            TaskActivity.objects.filter(task=task)
            .select_related("actor")
            .order_by("-created_at", "-id")[:ACTIVITY_LIMIT]
        )
        return Response({"events": TaskActivitySerializer(events, many=True).data})
