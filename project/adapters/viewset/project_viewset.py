from project.permission import (
    ProjectAccessPermission,
    visible_projects,
    authorize_bulk_action,
    BULK_ARCHIVE,
    BULK_DELETE,
)
from project.models import Project, ProjectStatus
from rest_framework import viewsets, filters
from rest_framework.response import Response
from rest_framework import status
from django.db import transaction
from django.db.models import Count
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema
from project.adapters.serializers.project_serializer import (
    ProjectSerializer,
    ProjectWriteSerializer,
    BulkProjectActionSerializer,
)
from user.models import get_global_role
from utils.custom_paginator import ProjectPaginator
from rest_framework.permissions import IsAuthenticated
import logging

logger = logging.getLogger(__name__)


class ProjectViewSet(viewsets.ModelViewSet):
    """
    Projects API with:
    - list filtering/search/ordering
    - visibility scoping in get_queryset() (admins see everything)
    - object-level permissions via ProjectAccessPermission
    - read/write serializer switching
    - bulk archive/delete on PATCH of the collection
    - single delete for the creator, a project owner or an admin
    """
    serializer_class = ProjectSerializer
    pagination_class = ProjectPaginator
    permission_classes = [IsAuthenticated, ProjectAccessPermission]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ["status", "priority"]
    search_fields = ["name", "description"]
    ordering_fields = ["name", "status", "priority", "end_date", "created_at"]
    ordering = ["-created_at"]
    http_method_names = ["get", "post", "put", "patch", "delete", "head", "options"]

    def get_queryset(self):
        return (
            visible_projects(self.request.user)
            .select_related("creator")
            .prefetch_related("members__user")
            .annotate(task_count=Count("tasks", distinct=True))
        )

    def get_serializer_class(self):
        if self.action in ("create", "partial_update"):
            return ProjectWriteSerializer
        if self.action == "bulk_update":
            return BulkProjectActionSerializer
        return ProjectSerializer

    @extend_schema(request=ProjectWriteSerializer, responses={201: ProjectSerializer})
    def create(self, request, *args, **kwargs):
        write_serializer = self.get_serializer(data=request.data)
        write_serializer.is_valid(raise_exception=True)
        with transaction.atomic():
            instance = write_serializer.save()
        logger.info(f"Project {instance.id} created by user {request.user.id}")

        read_serializer = ProjectSerializer(self.get_queryset().get(pk=instance.pk))
        return Response({"project": read_serializer.data}, status=status.HTTP_201_CREATED)

    def retrieve(self, request, *args, **kwargs):
        instance = self.get_object()
        return Response({"project": ProjectSerializer(instance).data})

    @extend_schema(request=ProjectWriteSerializer, responses={200: ProjectSerializer})
    def partial_update(self, request, *args, **kwargs):
        instance = self.get_object()
        write_serializer = self.get_serializer(instance, data=request.data, partial=True)
        write_serializer.is_valid(raise_exception=True)
        write_serializer.save()

        read_serializer = ProjectSerializer(self.get_queryset().get(pk=instance.pk))
        return Response({"project": read_serializer.data})

    def destroy(self, request, *args, **kwargs):
        instance = self.get_object()
        project_id = instance.pk
        with transaction.atomic():
            instance.delete()
        logger.info(f"Project {project_id} deleted by user {request.user.id}")
        return Response({"message": "Project deleted successfully"})

    @extend_schema(request=BulkProjectActionSerializer)
    def bulk_update(self, request, *args, **kwargs):
        """
        PATCH /api/projects/ with {"ids": [...], "action": "archive"|"delete"}.

        Only the ids the caller may act on are processed; the rest are
        reported back. 403 when nothing could be processed.
        """
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ids = serializer.validated_data["ids"]
        action = serializer.validated_data["action"]

        authorized, unauthorized = authorize_bulk_action(
            request.user, ids, action, global_role=get_global_role(request.user)
        )

        if authorized:
            with transaction.atomic():
                projects = Project.objects.filter(id__in=authorized)
                if action == BULK_DELETE:
                    projects.delete()
                elif action == BULK_ARCHIVE:
                    projects.update(status=ProjectStatus.ARCHIVED)

        result = {
            "action": action,
            "requested": len(ids),
            "processed": len(authorized),
            "unauthorized": len(unauthorized),
            "unauthorizedIds": unauthorized,
        }
        logger.info(
            f"Bulk {action} by user {request.user.id}: "
            f"{len(authorized)} processed, {len(unauthorized)} unauthorized"
        )

        if not authorized:
            return Response(
                {"error": "Insufficient permissions", **result},
                status=status.HTTP_403_FORBIDDEN,
            )
        return Response(result, status=status.HTTP_200_OK)
