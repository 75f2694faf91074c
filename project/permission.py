from django.db.models import Q
from rest_framework.permissions import BasePermission, SAFE_METHODS

from project.models import Project, ProjectMember, ProjectRole
from user.models import GlobalRole, get_global_role

BULK_ARCHIVE = "archive"
BULK_DELETE = "delete"
BULK_ACTIONS = (BULK_ARCHIVE, BULK_DELETE)

# project roles allowed to run each bulk action (the creator always may)
BULK_ACTION_ROLES = {
    BULK_DELETE: (ProjectRole.OWNER,),
    BULK_ARCHIVE: (ProjectRole.OWNER, ProjectRole.MANAGER),
}


def normalize_project_member_role(role):
    if role in ProjectRole.values:
        return role
    return ProjectRole.MEMBER


def is_project_manager_role(project_role):
    return project_role in (ProjectRole.OWNER, ProjectRole.MANAGER)


def can_manage_project(global_role, project_role):
    """Admins and project owners/managers manage members, lists and tags."""
    if global_role == GlobalRole.ADMIN:
        return True
    return is_project_manager_role(project_role)


def get_project_role(user, project_id):
    return (
        ProjectMember.objects.filter(project_id=project_id, user_id=user.pk)
        .values_list("role", flat=True)
        .first()
    )


def visible_projects(user, global_role=None):
    """Admins see every project, everyone else what they created or joined."""
    global_role = global_role or get_global_role(user)
    qs = Project.objects.all()
    if global_role != GlobalRole.ADMIN:
        qs = qs.filter(Q(creator_id=user.pk) | Q(members__user_id=user.pk))
    return qs.distinct()


def authorize_bulk_action(user, project_ids, action, global_role=None):
    """
    Split ``project_ids`` into (authorized, unauthorized) for ``action``.

    Admins are authorized for every id without looking at the rows. Other
    callers need to be the creator or hold one of the action's project roles;
    ids that do not exist end up unauthorized. Input order is preserved.
    """
    global_role = global_role or get_global_role(user)
    if global_role == GlobalRole.ADMIN:
        return list(project_ids), []

    roles = BULK_ACTION_ROLES[action]
    allowed = set(
        Project.objects.filter(id__in=project_ids)
        .filter(
            Q(creator_id=user.pk)
            | Q(members__user_id=user.pk, members__role__in=roles)
        )
        .values_list("id", flat=True)
    )
    authorized = [pid for pid in project_ids if pid in allowed]
    unauthorized = [pid for pid in project_ids if pid not in allowed]
    return authorized, unauthorized


class ProjectAccessPermission(BasePermission):
    """
    Global role + project membership permission.

    - admin: full access
    - project owner/manager or creator: read/write
    - project owner or creator: delete
    - project member: read-only
    """
    message = "Insufficient permissions"

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated)

    def has_object_permission(self, request, view, obj):
        user = request.user
        global_role = get_global_role(user)
        if global_role == GlobalRole.ADMIN:
            return True

        is_creator = obj.creator_id == user.pk
        project_role = get_project_role(user, obj.pk)

        if request.method in SAFE_METHODS:
            return is_creator or project_role is not None

        if request.method == "DELETE":
            return is_creator or project_role == ProjectRole.OWNER

        return is_creator or is_project_manager_role(project_role)
