"""
Field level rules for task updates.

The permission table in ``task.permission`` says who may write a task at all;
the checks here look at which keys the request body carries and reject the
whole request before anything is written.
"""
from rest_framework import exceptions

from task.models import Status
from user.models import GlobalRole

INSUFFICIENT_PERMISSIONS = "Insufficient permissions"

# keys a plain member (not project owner/manager) may send
MEMBER_TASK_EDITABLE_KEYS = ("title", "description", "status", "priority", "dueDate")

# keys that need ``can_edit_meta``
META_KEYS = ("tagIds", "tags", "amountCents")


def validate_member_task_update_keys(body):
    """Keys of ``body`` outside the member allow-list, in request order."""
    if not isinstance(body, dict):
        return []
    return [key for key in body if key not in MEMBER_TASK_EDITABLE_KEYS]


def is_archive_toggle(current_status, requested_status):
    archiving = requested_status == Status.ARCHIVED and current_status != Status.ARCHIVED
    unarchiving = requested_status != Status.ARCHIVED and current_status == Status.ARCHIVED
    return archiving or unarchiving


def check_update_permissions(task, permissions, body):
    """
    Raise ``PermissionDenied`` (403) or ``ValidationError`` (400) when the
    caller may not apply ``body`` to ``task``.

    Assumes the caller already passed the general ``can_write`` gate.
    """
    status = body.get("status")
    if isinstance(status, str) and status.strip():
        status = status.strip()
        if status not in Status.values:
            raise exceptions.ValidationError({"error": "Invalid status"})
        if is_archive_toggle(task.status, status):
            if not permissions.can_edit_meta:
                raise exceptions.PermissionDenied(INSUFFICIENT_PERMISSIONS)
        elif status != task.status and not permissions.can_edit_status:
            raise exceptions.PermissionDenied(INSUFFICIENT_PERMISSIONS)

    if permissions.global_role == GlobalRole.MEMBER and not permissions.is_project_manager:
        invalid = validate_member_task_update_keys(body)
        if invalid:
            raise exceptions.ValidationError({
                "error": "Members can only update " + ", ".join(MEMBER_TASK_EDITABLE_KEYS),
                "invalid": invalid,
            })

    if "assigneeIds" in body and not permissions.can_reassign:
        raise exceptions.PermissionDenied(INSUFFICIENT_PERMISSIONS)

    if any(key in body for key in META_KEYS) and not permissions.can_edit_meta:
        raise exceptions.PermissionDenied(INSUFFICIENT_PERMISSIONS)

    if "listId" in body and not permissions.can_reassign:
        raise exceptions.PermissionDenied(INSUFFICIENT_PERMISSIONS)
