"""
Change sets for task updates.

Every field that produces an activity record is declared once in
``WATCHED_FIELDS``. A snapshot is taken before and after the write for the
keys the request carried, and ``diff`` turns every difference into one
``{type, metadata}`` record.
"""
from dataclasses import dataclass, field
from datetime import timezone
from typing import Any, Callable, Dict, List

from task.models import TaskAssignee, Task


def _iso(value):
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat()


def _assignee_ids(task):
    return sorted(TaskAssignee.objects.filter(task_id=task.pk).values_list("user_id", flat=True))


def _tag_ids(task):
    return sorted(
        Task.tags.through.objects.filter(task_id=task.pk).values_list("projecttag_id", flat=True)
    )


@dataclass(frozen=True)
class WatchedField:
    key: str
    activity_type: str
    read: Callable[[Task], Any]
    from_key: str = "from"
    to_key: str = "to"


WATCHED_FIELDS = (
    WatchedField("status", "task.status_changed", lambda task: task.status),
    WatchedField("priority", "task.priority_changed", lambda task: task.priority),
    WatchedField("dueDate", "task.due_date_changed", lambda task: _iso(task.due_date)),
    WatchedField("title", "task.title_changed", lambda task: task.title),
    WatchedField("description", "task.description_changed", lambda task: task.description),
    WatchedField("list", "task.list_changed", lambda task: task.list_label),
    WatchedField(
        "listId", "task.list_changed", lambda task: task.task_list_id,
        from_key="fromListId", to_key="toListId",
    ),
    WatchedField("storyPoints", "task.story_points_changed", lambda task: task.story_points),
    WatchedField("amountCents", "task.amount_changed", lambda task: task.amount_cents),
    WatchedField("tags", "task.legacy_tags_changed", lambda task: task.legacy_tags),
    WatchedField("tagIds", "task.tags_changed", _tag_ids),
    # sorted so a reordered but identical set is not a change
    WatchedField("assigneeIds", "task.assignees_changed", _assignee_ids),
)


@dataclass
class Change:
    type: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    def as_dict(self):
        return {"type": self.type, "metadata": self.metadata}


def snapshot(task, keys):
    """Current values of the watched fields named in ``keys``."""
    return {
        watched.key: watched.read(task)
        for watched in WATCHED_FIELDS
        if watched.key in keys
    }


def diff(before, after) -> List[Change]:
    changes = []
    for watched in WATCHED_FIELDS:
        if watched.key not in before or watched.key not in after:
            continue
        old, new = before[watched.key], after[watched.key]
        if old != new:
            changes.append(Change(
                type=watched.activity_type,
                metadata={watched.from_key: old, watched.to_key: new},
            ))
    return changes
