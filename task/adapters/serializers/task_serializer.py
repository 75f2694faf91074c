import json

from django.contrib.auth.models import User
from django.db import transaction
from rest_framework import serializers

from project.models import Project, ProjectMember, ProjectTag
from task.assignment import unique_ids
from task.changes import diff, snapshot
from task.models import Task, TaskActivity, TaskList, Status, Priority
from task.side_effects import queue_assignment_notifications, queue_task_activity
from user.adapters.serializers.user_serializers import UserSummarySerializer


class TaskProjectSerializer(serializers.ModelSerializer):
    class Meta:
        model = Project
        fields = ['id', 'name']


class TaskProjectMemberSerializer(serializers.ModelSerializer):
    userId = serializers.IntegerField(source='user_id', read_only=True)
    user = UserSummarySerializer(read_only=True)

    class Meta:
        model = ProjectMember
        fields = ['userId', 'role', 'user']


class TaskProjectWithMembersSerializer(TaskProjectSerializer):
    members = TaskProjectMemberSerializer(many=True, read_only=True)

    class Meta(TaskProjectSerializer.Meta):
        fields = TaskProjectSerializer.Meta.fields + ['members']


class TaskListSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = TaskList
        fields = ['id', 'name']


class TaskTagSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProjectTag
        fields = ['id', 'name', 'color']


class TaskAssigneeSerializer(serializers.Serializer):
    userId = serializers.IntegerField(source='user_id')
    user = UserSummarySerializer()


class TaskBaseSerializer(serializers.ModelSerializer):
    dueDate = serializers.DateTimeField(source='due_date', read_only=True)

    class Meta:
        model = Task
        fields = ['id', 'title', 'description', 'status', 'priority', 'dueDate']


class TaskSerializer(TaskBaseSerializer):
    """Full task shape, project without its members."""
    projectId = serializers.IntegerField(source='project_id', read_only=True)
    listId = serializers.IntegerField(source='task_list_id', read_only=True)
    list = serializers.CharField(source='list_label', read_only=True)
    legacyTags = serializers.CharField(source='legacy_tags', read_only=True)
    storyPoints = serializers.IntegerField(source='story_points', read_only=True)
    amountCents = serializers.IntegerField(source='amount_cents', read_only=True)
    project = TaskProjectSerializer(read_only=True)
    taskList = TaskListSummarySerializer(source='task_list', read_only=True)
    tags = TaskTagSerializer(many=True, read_only=True)
    assignees = TaskAssigneeSerializer(source='assignments', many=True, read_only=True)
    counts = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta(TaskBaseSerializer.Meta):
        fields = TaskBaseSerializer.Meta.fields + [
            'projectId', 'listId', 'list', 'legacyTags', 'storyPoints', 'amountCents',
            'project', 'taskList', 'tags', 'assignees', 'counts', 'createdAt', 'updatedAt',
        ]

    def get_counts(self, obj):
        return {
            'assignees': len(obj.assignments.all()),
            'tags': len(obj.tags.all()),
            'activities': obj.activities.count(),
        }

    def to_representation(self, instance):
        data = super().to_representation(instance)
        data['_count'] = data.pop('counts')
        return data


class TaskDetailSerializer(TaskSerializer):
    """``view=full``: also lists the project's members with their roles."""
    project = TaskProjectWithMembersSerializer(read_only=True)


class TaskProjectListsSerializer(TaskBaseSerializer):
    """Minimal rows for the project board lists."""
    listId = serializers.IntegerField(source='task_list_id', read_only=True)
    taskList = TaskListSummarySerializer(source='task_list', read_only=True)
    legacyTags = serializers.CharField(source='legacy_tags', read_only=True)
    tags = TaskTagSerializer(many=True, read_only=True)
    amountCents = serializers.IntegerField(source='amount_cents', read_only=True)

    class Meta(TaskBaseSerializer.Meta):
        fields = TaskBaseSerializer.Meta.fields + ['listId', 'taskList', 'legacyTags', 'tags', 'amountCents']


class TaskDashboardSerializer(TaskBaseSerializer):
    project = TaskProjectSerializer(read_only=True)
    counts = serializers.SerializerMethodField()

    class Meta(TaskBaseSerializer.Meta):
        fields = TaskBaseSerializer.Meta.fields + ['project', 'counts']

    def get_counts(self, obj):
        return {'activities': obj.activities.count()}

    def to_representation(self, instance):
        data = super().to_representation(instance)
        data['_count'] = data.pop('counts')
        return data


class TaskActivitySerializer(serializers.ModelSerializer):
    taskId = serializers.IntegerField(source='task_id', read_only=True)
    actor = UserSummarySerializer(read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = TaskActivity
        fields = ['id', 'taskId', 'type', 'metadata', 'actor', 'createdAt']


# marks "move to the project's default list"
DEFAULT_LIST = object()


def resolve_list_id(value, project_id):
    """
    ``None`` selects the project's default list, a blank string detaches the
    task, anything else must be a list of ``project_id``.
    """
    if value is None:
        return DEFAULT_LIST
    candidate = str(value).strip()
    if not candidate:
        return None
    if not candidate.isdigit():
        raise serializers.ValidationError("Invalid listId for project")
    task_list = TaskList.objects.filter(pk=int(candidate), project_id=project_id).first()
    if task_list is None:
        raise serializers.ValidationError("Invalid listId for project")
    return task_list


def validate_assignee_ids(value):
    ids = unique_ids(value)
    known = set(User.objects.filter(pk__in=ids, is_active=True).values_list('pk', flat=True))
    unknown = [user_id for user_id in ids if user_id not in known]
    if unknown:
        raise serializers.ValidationError(f"Unknown user ids: {', '.join(map(str, unknown))}")
    return ids


class TaskUpdateSerializer(serializers.Serializer):
    """
    Sparse patch of a task. Only keys present in the body are validated and
    written; every written key is diffed into activity records afterwards.
    Permission checks happen before this serializer runs.
    """
    # body key -> model attribute for plain column updates
    COLUMN_FIELDS = {
        'title': 'title',
        'description': 'description',
        'status': 'status',
        'priority': 'priority',
        'dueDate': 'due_date',
        'list': 'list_label',
        'storyPoints': 'story_points',
        'amountCents': 'amount_cents',
        'tags': 'legacy_tags',
    }

    title = serializers.CharField(max_length=255)
    description = serializers.CharField(allow_blank=True, trim_whitespace=False)
    status = serializers.ChoiceField(choices=Status.choices)
    priority = serializers.ChoiceField(choices=Priority.choices)
    dueDate = serializers.DateTimeField(allow_null=True)
    list = serializers.CharField(max_length=255, allow_blank=True, allow_null=True)
    listId = serializers.CharField(allow_blank=True, allow_null=True)
    storyPoints = serializers.IntegerField(min_value=0, allow_null=True)
    amountCents = serializers.IntegerField(min_value=0, allow_null=True)
    tags = serializers.JSONField(allow_null=True)
    tagIds = serializers.ListField(child=serializers.IntegerField(min_value=1))
    assigneeIds = serializers.ListField(child=serializers.IntegerField(min_value=1))

    def validate_tags(self, value):
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, list):
            return json.dumps([str(item) for item in value])
        raise serializers.ValidationError("tags must be an array, a string or null")

    def validate_listId(self, value):
        return resolve_list_id(value, self.instance.project_id)

    def validate_tagIds(self, value):
        ids = unique_ids(value)
        in_project = ProjectTag.objects.filter(project_id=self.instance.project_id, pk__in=ids).count()
        if in_project != len(ids):
            raise serializers.ValidationError("tagIds must belong to the task's project")
        return ids

    def validate_assigneeIds(self, value):
        return validate_assignee_ids(value)

    def update(self, task, validated_data):
        actor = self.context['request'].user
        keys = set(validated_data)

        with transaction.atomic():
            before = snapshot(task, keys | {'assigneeIds'})
            prev_assignee_ids = before['assigneeIds']
            if 'assigneeIds' not in keys:
                del before['assigneeIds']

            update_fields = []
            for key, attr in self.COLUMN_FIELDS.items():
                if key in validated_data:
                    setattr(task, attr, validated_data[key])
                    update_fields.append(attr)

            if 'listId' in validated_data:
                task_list = validated_data['listId']
                if task_list is DEFAULT_LIST:
                    task_list = TaskList.objects.default_for(task.project_id)
                task.task_list = task_list
                update_fields.append('task_list')

            if update_fields:
                task.save(update_fields=update_fields + ['updated_at'])
            if 'tagIds' in validated_data:
                task.tags.set(validated_data['tagIds'])
            if 'assigneeIds' in validated_data:
                task.assignees.set(validated_data['assigneeIds'])

            after = snapshot(task, keys)
            queue_task_activity(task, actor, diff(before, after))
            if 'assigneeIds' in validated_data:
                queue_assignment_notifications(
                    task, actor, prev_assignee_ids, validated_data['assigneeIds']
                )

        return task


class TaskCreateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255)
    description = serializers.CharField(allow_blank=True, required=False, default='', trim_whitespace=False)
    projectId = serializers.IntegerField()
    priority = serializers.ChoiceField(choices=Priority.choices, required=False, default=Priority.MEDIUM)
    status = serializers.ChoiceField(choices=Status.choices, required=False, default=Status.TODO)
    dueDate = serializers.DateTimeField(allow_null=True, required=False, default=None)
    assigneeIds = serializers.ListField(child=serializers.IntegerField(min_value=1), required=False, default=list)
    listId = serializers.CharField(allow_blank=True, allow_null=True, required=False)

    def validate_projectId(self, value):
        project = Project.objects.filter(pk=value).first()
        if project is None:
            raise serializers.ValidationError("Unknown project")
        return project

    def validate_assigneeIds(self, value):
        return validate_assignee_ids(value)

    def validate(self, attrs):
        if 'listId' in attrs:
            try:
                attrs['listId'] = resolve_list_id(attrs['listId'], attrs['projectId'].pk)
            except serializers.ValidationError as e:
                raise serializers.ValidationError({'listId': e.detail})
        else:
            attrs['listId'] = DEFAULT_LIST
        return attrs

    def create(self, validated_data):
        actor = self.context['request'].user
        project = validated_data['projectId']

        with transaction.atomic():
            task_list = validated_data['listId']
            if task_list is DEFAULT_LIST:
                task_list = TaskList.objects.default_for(project.pk)

            task = Task.objects.create(
                title=validated_data['title'],
                description=validated_data['description'],
                project=project,
                priority=validated_data['priority'],
                status=validated_data['status'],
                due_date=validated_data['dueDate'],
                task_list=task_list,
                creator=actor,
            )
            if validated_data['assigneeIds']:
                task.assignees.set(validated_data['assigneeIds'])
                queue_assignment_notifications(task, actor, [], validated_data['assigneeIds'])

        return task
