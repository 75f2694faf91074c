from rest_framework import serializers

from task.models import Subtask, SubtaskChecklist, SubtaskChecklistItem, SubtaskComment
from user.adapters.serializers.user_serializers import UserSummarySerializer


class SubtaskSerializer(serializers.ModelSerializer):
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Subtask
        fields = ['id', 'title', 'description', 'completed', 'position', 'createdAt', 'updatedAt']
        read_only_fields = ['position']


class SubtaskReorderSerializer(serializers.Serializer):
    subtaskIds = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=False)


class SubtaskChecklistItemSerializer(serializers.ModelSerializer):
    position = serializers.IntegerField(min_value=0, required=False)

    class Meta:
        model = SubtaskChecklistItem
        fields = ['id', 'content', 'completed', 'position']


class SubtaskChecklistSerializer(serializers.ModelSerializer):
    title = serializers.CharField(max_length=255, required=False)
    position = serializers.IntegerField(min_value=0, required=False)
    items = SubtaskChecklistItemSerializer(many=True, read_only=True)

    class Meta:
        model = SubtaskChecklist
        fields = ['id', 'title', 'position', 'items']


class SubtaskCommentSerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = SubtaskComment
        fields = ['id', 'content', 'user', 'createdAt', 'updatedAt']
