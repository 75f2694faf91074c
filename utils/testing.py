"""Fixtures shared by the app test suites."""
from django.contrib.auth.models import User

from project.models import Project, ProjectMember
from task.models import Task, TaskList
from user.models import UserProfile


def make_user(username, role=None, **extra):
    user = User.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password="pass12345",
        **extra,
    )
    if role:
        UserProfile.objects.create(user=user, role=role)
    return user


def make_project(creator, name="Apollo", members=None, **extra):
    """
    ``members`` maps users to project roles; the creator is added as owner
    unless listed with another role.
    """
    project = Project.objects.create(name=name, creator=creator, **extra)
    roles = {creator: "owner"} if creator else {}
    roles.update(members or {})
    for user, role in roles.items():
        ProjectMember.objects.create(project=project, user=user, role=role)
    return project


def make_task(project, title="Write report", assignees=(), **extra):
    extra.setdefault("task_list", TaskList.objects.default_for(project.pk))
    task = Task.objects.create(project=project, title=title, **extra)
    if assignees:
        task.assignees.set(assignees)
    return task
