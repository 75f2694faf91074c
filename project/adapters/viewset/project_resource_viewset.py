"""
Endpoints nested under a single project: members, task lists and tags.

Reading needs project membership (admins always pass); writing needs an
admin or a project owner/manager.
"""
import logging

from django.contrib.auth.models import User
from django.db import IntegrityError, transaction
from django.db.models import Count
from django.shortcuts import get_object_or_404
from drf_spectacular.utils import extend_schema
from rest_framework import viewsets, status, exceptions
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from project.adapters.serializers.project_serializer import (
    ProjectMemberSerializer,
    ProjectMemberWriteSerializer,
    ProjectTaskListSerializer,
    ProjectTagSerializer,
)
from project.models import Project, ProjectMember, ProjectRole, ProjectTag
from project.permission import can_manage_project, get_project_role
from task.models import Task, TaskList, DEFAULT_LIST_NAME
from user.models import GlobalRole, get_global_role

logger = logging.getLogger(__name__)


class ProjectScopedViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated]

    def get_project(self, write=False):
        project = get_object_or_404(Project, pk=self.kwargs["project_pk"])
        global_role = get_global_role(self.request.user)
        project_role = get_project_role(self.request.user, project.pk)

        if project_role is None and global_role != GlobalRole.ADMIN:
            raise exceptions.PermissionDenied("Not a project member")
        if write and not can_manage_project(global_role, project_role):
            raise exceptions.PermissionDenied("Forbidden")

        self.global_role = global_role
        return project


class ProjectMemberViewSet(ProjectScopedViewSet):

    def _members(self, project):
        return ProjectMember.objects.filter(project=project).select_related("user").order_by("joined_at", "id")

    @extend_schema(responses={200: ProjectMemberSerializer(many=True)})
    def list(self, request, project_pk=None):
        project = self.get_project()
        return Response({"members": ProjectMemberSerializer(self._members(project), many=True).data})

    @extend_schema(request=ProjectMemberWriteSerializer, responses={201: ProjectMemberSerializer})
    def create(self, request, project_pk=None):
        project = self.get_project(write=True)
        serializer = ProjectMemberWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = User.objects.filter(pk=serializer.validated_data["userId"]).first()
        if user is None:
            raise exceptions.NotFound("User not found")

        try:
            with transaction.atomic():
                member = ProjectMember.objects.create(
                    project=project,
                    user=user,
                    role=serializer.validated_data.get("role", ProjectRole.MEMBER),
                )
        except IntegrityError:
            return Response({"error": "User already a member"}, status=status.HTTP_409_CONFLICT)

        logger.info(f"User {user.id} added to project {project.id} as {member.role}")
        return Response({"member": ProjectMemberSerializer(member).data}, status=status.HTTP_201_CREATED)

    @extend_schema(request=ProjectMemberWriteSerializer, responses={200: ProjectMemberSerializer})
    def partial_update(self, request, project_pk=None):
        project = self.get_project(write=True)
        serializer = ProjectMemberWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        member = self._members(project).filter(user_id=serializer.validated_data["userId"]).first()
        if member is None:
            raise exceptions.NotFound("Member not found")

        member.role = serializer.validated_data.get("role", ProjectRole.MEMBER)
        member.save(update_fields=["role"])
        return Response({"member": ProjectMemberSerializer(member).data})

    @extend_schema(request=ProjectMemberWriteSerializer)
    def destroy(self, request, project_pk=None):
        project = self.get_project(write=True)
        user_id = request.data.get("userId") if isinstance(request.data, dict) else None
        if not user_id:
            return Response({"error": "userId required"}, status=status.HTTP_400_BAD_REQUEST)

        member = ProjectMember.objects.filter(project=project, user_id=user_id).first()
        if member is None:
            raise exceptions.NotFound("Member not found")
        if member.role == ProjectRole.OWNER and self.global_role != GlobalRole.ADMIN:
            return Response({"error": "Cannot remove owner"}, status=status.HTTP_400_BAD_REQUEST)

        member.delete()
        logger.info(f"User {user_id} removed from project {project.id} by user {request.user.id}")
        return Response({"success": True})


class ProjectTaskListViewSet(ProjectScopedViewSet):

    @extend_schema(responses={200: ProjectTaskListSerializer(many=True)})
    def list(self, request, project_pk=None):
        project = self.get_project()
        lists = (
            TaskList.objects.filter(project=project)
            .annotate(task_count=Count("tasks"))
            .order_by("-updated_at", "-id")
        )
        return Response({
            "lists": ProjectTaskListSerializer(lists, many=True).data,
            "defaultListName": DEFAULT_LIST_NAME,
        })

    @extend_schema(request=ProjectTaskListSerializer, responses={201: ProjectTaskListSerializer})
    def create(self, request, project_pk=None):
        project = self.get_project(write=True)
        serializer = ProjectTaskListSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            with transaction.atomic():
                task_list = TaskList.objects.create(project=project, name=serializer.validated_data["name"])
        except IntegrityError:
            return Response({"error": "List name already exists"}, status=status.HTTP_409_CONFLICT)

        task_list.task_count = 0
        return Response({"list": ProjectTaskListSerializer(task_list).data}, status=status.HTTP_201_CREATED)

    def _get_list(self, project, list_pk):
        task_list = TaskList.objects.filter(project=project, pk=list_pk).first()
        if task_list is None:
            raise exceptions.NotFound("List not found")
        return task_list

    @extend_schema(request=ProjectTaskListSerializer, responses={200: ProjectTaskListSerializer})
    def update(self, request, project_pk=None, list_pk=None):
        project = self.get_project(write=True)
        serializer = ProjectTaskListSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        name = serializer.validated_data["name"]
        if name == DEFAULT_LIST_NAME:
            return Response({"error": "Reserved list name"}, status=status.HTTP_400_BAD_REQUEST)

        task_list = self._get_list(project, list_pk)
        task_list.name = name
        try:
            with transaction.atomic():
                task_list.save(update_fields=["name", "updated_at"])
        except IntegrityError:
            return Response({"error": "List name already exists"}, status=status.HTTP_409_CONFLICT)

        task_list.task_count = task_list.tasks.count()
        return Response({"list": ProjectTaskListSerializer(task_list).data})

    def destroy(self, request, project_pk=None, list_pk=None):
        """Delete a list; its tasks move to the project's default list."""
        project = self.get_project(write=True)
        task_list = self._get_list(project, list_pk)
        if task_list.name == DEFAULT_LIST_NAME:
            return Response({"error": "Cannot delete default list"}, status=status.HTTP_400_BAD_REQUEST)

        with transaction.atomic():
            default_list = TaskList.objects.default_for(project.pk)
            moved = Task.objects.filter(project=project, task_list=task_list).update(task_list=default_list)
            task_list.delete()

        logger.info(f"List {list_pk} deleted from project {project.id}, {moved} task(s) moved to the default list")
        return Response({"success": True})


class ProjectTagViewSet(ProjectScopedViewSet):

    @extend_schema(responses={200: ProjectTagSerializer(many=True)})
    def list(self, request, project_pk=None):
        project = self.get_project()
        tags = ProjectTag.objects.filter(project=project).order_by("name")
        return Response({"tags": ProjectTagSerializer(tags, many=True).data})

    @extend_schema(request=ProjectTagSerializer, responses={201: ProjectTagSerializer})
    def create(self, request, project_pk=None):
        project = self.get_project(write=True)
        serializer = ProjectTagSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            with transaction.atomic():
                tag = serializer.save(project=project)
        except IntegrityError:
            return Response({"error": "Tag already exists"}, status=status.HTTP_409_CONFLICT)

        return Response({"tag": ProjectTagSerializer(tag).data}, status=status.HTTP_201_CREATED)

    def _get_tag(self, project, tag_pk):
        tag = ProjectTag.objects.filter(project=project, pk=tag_pk).first()
        if tag is None:
            raise exceptions.NotFound("Tag not found")
        return tag

    @extend_schema(request=ProjectTagSerializer, responses={200: ProjectTagSerializer})
    def update(self, request, project_pk=None, tag_pk=None):
        project = self.get_project(write=True)
        serializer = ProjectTagSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        tag = self._get_tag(project, tag_pk)
        tag.name = serializer.validated_data["name"]
        # color is kept when omitted or blank
        if serializer.validated_data.get("color"):
            tag.color = serializer.validated_data["color"]
        try:
            with transaction.atomic():
                tag.save()
        except IntegrityError:
            return Response({"error": "Tag already exists"}, status=status.HTTP_409_CONFLICT)

        return Response({"tag": ProjectTagSerializer(tag).data})

    def destroy(self, request, project_pk=None, tag_pk=None):
        project = self.get_project(write=True)
        tag = self._get_tag(project, tag_pk)
        tag.delete()
        logger.info(f"Tag {tag_pk} deleted from project {project.id} by user {request.user.id}")
        return Response({"success": True})
