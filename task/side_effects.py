"""
Best-effort side effects of task mutations: activity records and
assignment notifications, both delivered through the outbox.
"""
import logging

from outbox.dispatcher import enqueue
from task.assignment import build_task_assigned_notifications, get_added_assignee_ids
from task.changes import Change
from task.models import TaskActivity
from user.models import display_name

logger = logging.getLogger(__name__)


def record_task_activity(payload):
    """Outbox handler: append one TaskActivity row per change."""
    TaskActivity.objects.bulk_create([
        TaskActivity(
            task_id=payload["task_id"],
            actor_id=payload.get("actor_id"),
            type=change["type"],
            metadata=change.get("metadata") or {},
        )
        for change in payload.get("changes", [])
    ])


def queue_task_activity(task, actor, changes):
    if not changes:
        return None
    logger.debug(f"Queueing {len(changes)} activity record(s) for task {task.pk}")
    return enqueue("task.activity", {
        "task_id": task.pk,
        "actor_id": actor.pk,
        "changes": [change.as_dict() for change in changes],
    })


def queue_assignment_notifications(task, actor, prev_assignee_ids, next_assignee_ids):
    added = get_added_assignee_ids(prev_assignee_ids, next_assignee_ids, actor.pk)
    if not added:
        return None
    notifications = build_task_assigned_notifications(
        added,
        actor_label=display_name(actor),
        task_id=task.pk,
        task_title=task.title,
        project_name=task.project.name,
    )
    return enqueue("notification.create", {"notifications": notifications})


def queue_subtask_activity(task, actor, activity_type, subtask, comment):
    change = Change(activity_type, {"subtaskId": subtask.pk, "commentId": comment.pk})
    return queue_task_activity(task, actor, [change])
