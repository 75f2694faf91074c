"""
Endpoints nested under a single task: subtasks, their checklists with
items, and comments.

Reading needs ``can_read`` on the task. Creating and changing subtasks,
checklists and items needs ``can_work_subtasks``. Comments can be added by
anyone who may work on subtasks; editing or deleting one is open to its
author and to whoever may edit the task's meta fields.
"""
import logging

from django.db import transaction
from django.db.models import Max
from drf_spectacular.utils import extend_schema
from rest_framework import viewsets, status, exceptions
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from task.models import Task, Subtask, SubtaskChecklist, SubtaskChecklistItem, SubtaskComment
from task.permission import get_task_permissions
from task.policy import INSUFFICIENT_PERMISSIONS
from task.side_effects import queue_subtask_activity
from ..serializers.subtask_serializer import (
    SubtaskSerializer,
    SubtaskReorderSerializer,
    SubtaskChecklistSerializer,
    SubtaskChecklistItemSerializer,
    SubtaskCommentSerializer,
)

logger = logging.getLogger(__name__)


def next_position(queryset):
    last = queryset.aggregate(last=Max("position"))["last"]
    return 0 if last is None else last + 1


class TaskScopedViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated]

    def get_task(self, write=False):
        task = Task.objects.filter(pk=self.kwargs["task_pk"]).first()
        if task is None:
            raise exceptions.NotFound("Task not found")

        permissions = get_task_permissions(self.request.user, task)
        if not permissions.can_read:
            raise exceptions.PermissionDenied(INSUFFICIENT_PERMISSIONS)
        if write and not permissions.can_work_subtasks:
            raise exceptions.PermissionDenied(INSUFFICIENT_PERMISSIONS)

        self.task_permissions = permissions
        return task

    def get_subtask(self, task):
        subtask = Subtask.objects.filter(task=task, pk=self.kwargs["subtask_pk"]).first()
        if subtask is None:
            raise exceptions.NotFound("Subtask not found")
        return subtask

    def get_checklist(self, subtask):
        checklist = SubtaskChecklist.objects.filter(subtask=subtask, pk=self.kwargs["checklist_pk"]).first()
        if checklist is None:
            raise exceptions.NotFound("Checklist not found")
        return checklist

    def update_fields(self, serializer):
        """Validate a partial body and refuse one that changes nothing."""
        serializer.is_valid(raise_exception=True)
        if not serializer.validated_data:
            raise exceptions.ValidationError({"error": "No fields to update"})
        return serializer.save()


class SubtaskViewSet(TaskScopedViewSet):

    @extend_schema(responses={200: SubtaskSerializer(many=True)})
    def list(self, request, task_pk=None):
        task = self.get_task()
        return Response({"subtasks": SubtaskSerializer(task.subtasks.all(), many=True).data})

    @extend_schema(request=SubtaskSerializer, responses={201: SubtaskSerializer})
    def create(self, request, task_pk=None):
        task = self.get_task(write=True)
        serializer = SubtaskSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        with transaction.atomic():
            subtask = serializer.save(task=task, position=next_position(task.subtasks.all()))
        logger.info(f"Subtask {subtask.id} added to task {task.id} by user {request.user.id}")
        return Response({"subtask": SubtaskSerializer(subtask).data}, status=status.HTTP_201_CREATED)

    @extend_schema(request=SubtaskSerializer, responses={200: SubtaskSerializer})
    def update(self, request, task_pk=None, subtask_pk=None):
        task = self.get_task(write=True)
        subtask = self.get_subtask(task)
        subtask = self.update_fields(SubtaskSerializer(subtask, data=request.data, partial=True))
        return Response({"subtask": SubtaskSerializer(subtask).data})

    def destroy(self, request, task_pk=None, subtask_pk=None):
        task = self.get_task(write=True)
        self.get_subtask(task).delete()
        logger.info(f"Subtask {subtask_pk} deleted from task {task.id} by user {request.user.id}")
        return Response({"success": True})

    @extend_schema(request=SubtaskReorderSerializer)
    def reorder(self, request, task_pk=None):
        """Set positions from the order of ``subtaskIds``."""
        task = self.get_task(write=True)
        serializer = SubtaskReorderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ids = serializer.validated_data["subtaskIds"]

        subtasks = {s.pk: s for s in task.subtasks.filter(pk__in=ids)}
        unknown = [pk for pk in ids if pk not in subtasks]
        if unknown:
            return Response(
                {"error": "Unknown subtask ids", "unknownIds": unknown},
                status=status.HTTP_400_BAD_REQUEST,
            )

        with transaction.atomic():
            for position, pk in enumerate(ids):
                subtasks[pk].position = position
            Subtask.objects.bulk_update(subtasks.values(), ["position"])
        return Response({"success": True})


class SubtaskChecklistViewSet(TaskScopedViewSet):

    def _checklists(self, subtask):
        return subtask.checklists.prefetch_related("items")

    @extend_schema(responses={200: SubtaskChecklistSerializer(many=True)})
    def list(self, request, task_pk=None, subtask_pk=None):
        subtask = self.get_subtask(self.get_task())
        return Response({"checklists": SubtaskChecklistSerializer(self._checklists(subtask), many=True).data})

    @extend_schema(request=SubtaskChecklistSerializer, responses={201: SubtaskChecklistSerializer})
    def create(self, request, task_pk=None, subtask_pk=None):
        subtask = self.get_subtask(self.get_task(write=True))
        serializer = SubtaskChecklistSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        checklist = SubtaskChecklist.objects.create(
            subtask=subtask,
            title=serializer.validated_data.get("title", "Checklist"),
            position=next_position(subtask.checklists.all()),
        )
        return Response({"checklist": SubtaskChecklistSerializer(checklist).data}, status=status.HTTP_201_CREATED)

    @extend_schema(request=SubtaskChecklistSerializer, responses={200: SubtaskChecklistSerializer})
    def update(self, request, task_pk=None, subtask_pk=None, checklist_pk=None):
        checklist = self.get_checklist(self.get_subtask(self.get_task(write=True)))
        checklist = self.update_fields(SubtaskChecklistSerializer(checklist, data=request.data, partial=True))
        return Response({"checklist": SubtaskChecklistSerializer(checklist).data})

    def destroy(self, request, task_pk=None, subtask_pk=None, checklist_pk=None):
        self.get_checklist(self.get_subtask(self.get_task(write=True))).delete()
        return Response({"success": True})


class SubtaskChecklistItemViewSet(TaskScopedViewSet):

    def _get_item(self, checklist):
        item = SubtaskChecklistItem.objects.filter(checklist=checklist, pk=self.kwargs["item_pk"]).first()
        if item is None:
            raise exceptions.NotFound("Item not found")
        return item

    @extend_schema(request=SubtaskChecklistItemSerializer, responses={201: SubtaskChecklistItemSerializer})
    def create(self, request, task_pk=None, subtask_pk=None, checklist_pk=None):
        checklist = self.get_checklist(self.get_subtask(self.get_task(write=True)))
        serializer = SubtaskChecklistItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        item = serializer.save(checklist=checklist, position=next_position(checklist.items.all()))
        return Response({"item": SubtaskChecklistItemSerializer(item).data}, status=status.HTTP_201_CREATED)

    @extend_schema(request=SubtaskChecklistItemSerializer, responses={200: SubtaskChecklistItemSerializer})
    def update(self, request, task_pk=None, subtask_pk=None, checklist_pk=None, item_pk=None):
        checklist = self.get_checklist(self.get_subtask(self.get_task(write=True)))
        item = self._get_item(checklist)
        item = self.update_fields(SubtaskChecklistItemSerializer(item, data=request.data, partial=True))
        return Response({"item": SubtaskChecklistItemSerializer(item).data})

    def destroy(self, request, task_pk=None, subtask_pk=None, checklist_pk=None, item_pk=None):
        checklist = self.get_checklist(self.get_subtask(self.get_task(write=True)))
        self._get_item(checklist).delete()
        return Response({"success": True})


class SubtaskCommentViewSet(TaskScopedViewSet):

    def _get_comment(self, subtask):
        comment = SubtaskComment.objects.filter(subtask=subtask, pk=self.kwargs["comment_pk"]).first()
        if comment is None:
            raise exceptions.NotFound("Comment not found")

        permissions = self.task_permissions
        if comment.user_id != self.request.user.pk and not permissions.can_edit_meta:
            raise exceptions.PermissionDenied(INSUFFICIENT_PERMISSIONS)
        return comment

    @extend_schema(responses={200: SubtaskCommentSerializer(many=True)})
    def list(self, request, task_pk=None, subtask_pk=None):
        subtask = self.get_subtask(self.get_task())
        comments = subtask.comments.select_related("user")
        return Response({"comments": SubtaskCommentSerializer(comments, many=True).data})

    @extend_schema(request=SubtaskCommentSerializer, responses={201: SubtaskCommentSerializer})
    def create(self, request, task_pk=None, subtask_pk=None):
        task = self.get_task(write=True)
        subtask = self.get_subtask(task)
        serializer = SubtaskCommentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        with transaction.atomic():
            comment = serializer.save(subtask=subtask, user=request.user)
            queue_subtask_activity(task, request.user, "subtask.comment_added", subtask, comment)
        return Response({"comment": SubtaskCommentSerializer(comment).data}, status=status.HTTP_201_CREATED)

    @extend_schema(request=SubtaskCommentSerializer, responses={200: SubtaskCommentSerializer})
    def update(self, request, task_pk=None, subtask_pk=None, comment_pk=None):
        task = self.get_task()
        subtask = self.get_subtask(task)
        comment = self._get_comment(subtask)
        serializer = SubtaskCommentSerializer(comment, data=request.data)
        serializer.is_valid(raise_exception=True)

        with transaction.atomic():
            comment = serializer.save()
            queue_subtask_activity(task, request.user, "subtask.comment_updated", subtask, comment)
        return Response({"comment": SubtaskCommentSerializer(comment).data})

    def destroy(self, request, task_pk=None, subtask_pk=None, comment_pk=None):
        task = self.get_task()
        subtask = self.get_subtask(task)
        comment = self._get_comment(subtask)

        with transaction.atomic():
            queue_subtask_activity(task, request.user, "subtask.comment_deleted", subtask, comment)
            comment.delete()
        return Response({"success": True})
