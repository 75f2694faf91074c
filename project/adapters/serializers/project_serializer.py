from rest_framework import serializers
from project.models import Project, ProjectMember, ProjectTag, normalize_tag_name
from project.permission import normalize_project_member_role, BULK_ACTIONS, BULK_ARCHIVE
from django.contrib.auth.models import User
from task.models import TaskList
from user.adapters.serializers.user_serializers import UserSummarySerializer


class ProjectMemberSerializer(serializers.ModelSerializer):
    userId = serializers.IntegerField(source='user_id', read_only=True)
    user = UserSummarySerializer(read_only=True)
    joinedAt = serializers.DateTimeField(source='joined_at', read_only=True)

    class Meta:
        model = ProjectMember
        fields = ('userId', 'role', 'user', 'joinedAt')


class ProjectSerializer(serializers.ModelSerializer):
    startDate = serializers.DateField(source='start_date', read_only=True)
    endDate = serializers.DateField(source='end_date', read_only=True)
    creator = UserSummarySerializer(read_only=True)
    members = ProjectMemberSerializer(many=True, read_only=True)
    taskCount = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Project
        fields = (
            'id', 'name', 'description', 'status', 'priority', 'startDate', 'endDate',
            'creator', 'members', 'taskCount', 'createdAt', 'updatedAt',
        )

    def get_taskCount(self, obj):
        count = getattr(obj, 'task_count', None)
        return count if count is not None else obj.tasks.count()


class ProjectWriteSerializer(serializers.ModelSerializer):
    startDate = serializers.DateField(source='start_date', required=False, allow_null=True)
    endDate = serializers.DateField(source='end_date', required=False, allow_null=True)
    members = serializers.ListField(
        child=serializers.JSONField(),
        required=False,
        allow_empty=True
    )

    class Meta:
        model = Project
        fields = (
            'name',
            'description',
            'status',
            'priority',
            'startDate',
            'endDate',
            'members',
        )

    def validate_members(self, value):
        """
        Accepts both formats:
        - user ids: [1, 2, 3] (role defaults to member)
        - objects: [{"user": 1, "role": "manager"}, ...]

        Returns [{"user": User instance, "role": str}, ...]
        """
        if not value:
            return []

        normalized = []
        for item in value:
            if isinstance(item, int) and not isinstance(item, bool):
                user_id, role = item, None
            elif isinstance(item, dict):
                user_id, role = item.get('user'), item.get('role')
                if not user_id:
                    raise serializers.ValidationError("Each member must have a 'user' field")
            else:
                raise serializers.ValidationError("Members must be either user IDs or objects with 'user' and 'role' fields")

            user = User.objects.filter(pk=user_id).first()
            if user is None:
                raise serializers.ValidationError(f"User with id {user_id} does not exist")
            normalized.append({"user": user, "role": normalize_project_member_role(role)})

        return normalized

    def create(self, validated_data):
        members_data = validated_data.pop('members', [])
        creator = self.context['request'].user
        project = Project.objects.create(creator=creator, **validated_data)

        ProjectMember.objects.create(project=project, user=creator, role='owner')
        for member_data in members_data:
            if member_data['user'].pk == creator.pk:
                continue
            ProjectMember.objects.get_or_create(
                project=project,
                user=member_data['user'],
                defaults={'role': member_data['role']},
            )

        return project

    def update(self, instance, validated_data):
        # membership changes go through the members endpoint
        validated_data.pop('members', None)
        return super().update(instance, validated_data)


class BulkProjectActionSerializer(serializers.Serializer):
    ids = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=False)
    action = serializers.ChoiceField(choices=BULK_ACTIONS, required=False, default=BULK_ARCHIVE)

    def validate_ids(self, value):
        return list(dict.fromkeys(value))


class ProjectMemberWriteSerializer(serializers.Serializer):
    userId = serializers.IntegerField(min_value=1)
    role = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate_role(self, value):
        return normalize_project_member_role(value)


class ProjectTaskListSerializer(serializers.ModelSerializer):
    taskCount = serializers.IntegerField(source='task_count', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = TaskList
        fields = ('id', 'name', 'updatedAt', 'taskCount')

    def validate_name(self, value):
        name = value.strip()
        if not name:
            raise serializers.ValidationError("name required")
        return name


class ProjectTagSerializer(serializers.ModelSerializer):
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)
    color = serializers.RegexField(r'^#[0-9a-fA-F]{6}$', required=False, allow_blank=True)

    class Meta:
        model = ProjectTag
        fields = ('id', 'name', 'color', 'createdAt', 'updatedAt')
        # uniqueness per project is checked in the view, where the project is known
        validators = []

    def validate_name(self, value):
        name = normalize_tag_name(value)
        if not name:
            raise serializers.ValidationError("name required")
        return name
