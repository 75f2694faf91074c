from urllib.parse import quote

TASK_ASSIGNED = "task_assigned"


def unique_ids(ids):
    """Drop duplicates and keep first-seen order."""
    seen = set()
    result = []
    for value in ids:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


def get_added_assignee_ids(prev_assignee_ids, next_assignee_ids, actor_id):
    """
    Users present in ``next_assignee_ids`` but not in ``prev_assignee_ids``.
    The acting user never notifies themselves.
    """
    prev = set(prev_assignee_ids)
    return [
        user_id for user_id in unique_ids(next_assignee_ids)
        if user_id != actor_id and user_id not in prev
    ]


def task_link(task_id):
    return f"/tasks?taskId={quote(str(task_id))}"


def build_task_assigned_notifications(assignee_ids, actor_label, task_id, task_title, project_name=None):
    actor = actor_label or "A teammate"
    project = f" ({project_name})" if project_name else ""
    message = f"{actor} assigned you: {task_title or 'Task'}{project}"
    return [
        {
            "user_id": user_id,
            "type": TASK_ASSIGNED,
            "title": "You were assigned to a task",
            "message": message,
            "link": task_link(task_id),
        }
        for user_id in assignee_ids
    ]
