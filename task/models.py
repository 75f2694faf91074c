from django.conf import settings
from django.db import models

DEFAULT_LIST_NAME = 'Untitled list'


class Status(models.TextChoices):
    TODO = 'todo', 'To Do'
    IN_PROGRESS = 'in_progress', 'In Progress'
    DONE = 'done', 'Done'
    ARCHIVED = 'archived', 'Archived'


class Priority(models.TextChoices):
    LOW = 'low', 'Low'
    MEDIUM = 'medium', 'Medium'
    HIGH = 'high', 'High'


class TaskListManager(models.Manager):
    def default_for(self, project_id):
        """Project's default list, created on first use."""
        task_list, _ = self.get_or_create(project_id=project_id, name=DEFAULT_LIST_NAME)
        return task_list


class TaskList(models.Model):
    project = models.ForeignKey('project.Project', on_delete=models.CASCADE, related_name='task_lists')
    name = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TaskListManager()

    class Meta:
        unique_together = ('project', 'name')
        ordering = ['-updated_at']

    def __str__(self):
        return f"{self.name} ({self.project})"


class Task(models.Model):
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default='')
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.TODO)
    priority = models.CharField(max_length=20, choices=Priority.choices, default=Priority.MEDIUM)
    due_date = models.DateTimeField(null=True, blank=True)
    project = models.ForeignKey('project.Project', on_delete=models.CASCADE, related_name='tasks')
    task_list = models.ForeignKey(
        TaskList, on_delete=models.SET_NULL, null=True, blank=True, related_name='tasks'
    )
    # free-text list label kept for older clients; task_list replaces it
    list_label = models.CharField(max_length=255, null=True, blank=True)
    # JSON encoded list of strings, superseded by ``tags``
    legacy_tags = models.TextField(null=True, blank=True)
    tags = models.ManyToManyField('project.ProjectTag', blank=True, related_name='tasks')
    assignees = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        through='TaskAssignee',
        related_name='assigned_tasks',
        blank=True,
    )
    story_points = models.IntegerField(null=True, blank=True)
    amount_cents = models.PositiveIntegerField(null=True, blank=True)
    creator = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_tasks',
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.title

    class Meta:
        ordering = ['-created_at']


class TaskAssignee(models.Model):
    task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name='assignments')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='task_assignments')
    assigned_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ('task', 'user')
        ordering = ['assigned_at', 'id']


class TaskActivity(models.Model):
    task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name='activities')
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )
    type = models.CharField(max_length=100)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = "Task activities"
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"{self.type} on {self.task_id}"


class Subtask(models.Model):
    task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name='subtasks')
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default='')
    completed = models.BooleanField(default=False)
    position = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['position', 'id']

    def __str__(self):
        return self.title


class SubtaskChecklist(models.Model):
    subtask = models.ForeignKey(Subtask, on_delete=models.CASCADE, related_name='checklists')
    title = models.CharField(max_length=255, default='Checklist')
    position = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['position', 'id']

    def __str__(self):
        return self.title


class SubtaskChecklistItem(models.Model):
    checklist = models.ForeignKey(SubtaskChecklist, on_delete=models.CASCADE, related_name='items')
    content = models.CharField(max_length=500)
    completed = models.BooleanField(default=False)
    position = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['position', 'id']

    def __str__(self):
        return self.content


class SubtaskComment(models.Model):
    subtask = models.ForeignKey(Subtask, on_delete=models.CASCADE, related_name='comments')
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='subtask_comments'
    )
    content = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['created_at', 'id']

    def __str__(self):
        return f"Comment {self.pk} on {self.subtask_id}"
