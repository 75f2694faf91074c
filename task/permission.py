from dataclasses import dataclass
from typing import Optional

from rest_framework.permissions import BasePermission, SAFE_METHODS

from project.models import ProjectMember
from project.permission import is_project_manager_role
from task.models import TaskAssignee
from user.models import GlobalRole, get_global_role


@dataclass(frozen=True)
class TaskAccessContext:
    global_role: str
    project_role: Optional[str] = None
    is_assignee: bool = False


@dataclass(frozen=True)
class TaskPermissions:
    global_role: str
    is_project_member: bool
    is_project_manager: bool
    is_assignee: bool
    can_read: bool
    can_write: bool
    can_edit_meta: bool
    can_edit_status: bool
    can_delete: bool
    # assigneeIds and listId changes
    can_reassign: bool
    # subtasks, their checklists and comments
    can_work_subtasks: bool


def resolve_permissions(context: TaskAccessContext) -> TaskPermissions:
    """
    Single source of truth for who may do what on a task.

    Combines the caller's global role, their membership role in the task's
    project (``None`` when not a member) and whether they are assigned to
    the task.
    """
    role = context.global_role or GlobalRole.MEMBER
    is_admin = role == GlobalRole.ADMIN
    is_manager = role == GlobalRole.MANAGER
    is_member = role == GlobalRole.MEMBER

    is_project_member = context.project_role is not None
    is_project_manager = is_project_manager_role(context.project_role)

    can_edit_meta = is_admin or is_project_manager or (is_manager and is_project_member)

    return TaskPermissions(
        global_role=role,
        is_project_member=is_project_member,
        is_project_manager=is_project_manager,
        is_assignee=context.is_assignee,
        can_read=is_admin or context.is_assignee or is_project_member,
        can_write=(
            is_admin
            or is_project_manager
            or (is_manager and is_project_member)
            or (is_member and is_project_member)
        ),
        can_edit_meta=can_edit_meta,
        can_edit_status=can_edit_meta or (is_member and context.is_assignee),
        can_delete=can_edit_meta,
        can_reassign=is_admin or is_manager or is_project_manager,
        can_work_subtasks=can_edit_meta or (is_member and context.is_assignee),
    )


def get_task_permissions(user, task) -> TaskPermissions:
    project_role = (
        ProjectMember.objects.filter(project_id=task.project_id, user_id=user.pk)
        .values_list("role", flat=True)
        .first()
    )
    is_assignee = TaskAssignee.objects.filter(task_id=task.pk, user_id=user.pk).exists()
    return resolve_permissions(
        TaskAccessContext(
            global_role=get_global_role(user),
            project_role=project_role,
            is_assignee=is_assignee,
        )
    )


class TaskAccessPermission(BasePermission):
    """
    Object permission for task detail routes.

    GET needs ``can_read``, PUT the general ``can_write`` gate (field level
    rules run afterwards), DELETE ``can_delete``.
    """
    message = "Insufficient permissions"

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated)

    def has_object_permission(self, request, view, obj):
        permissions = get_task_permissions(request.user, obj)
        view.task_permissions = permissions

        if request.method in SAFE_METHODS:
            return permissions.can_read
        if request.method == "DELETE":
            return permissions.can_delete
        return permissions.can_write
