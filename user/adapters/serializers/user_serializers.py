from rest_framework import serializers
from django.contrib.auth.models import User
from user.models import UserProfile, get_global_role


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField()


class ProfileSerializer(serializers.ModelSerializer):
    profile_picture = serializers.SerializerMethodField()

    class Meta:
        model = UserProfile
        fields = ('role', 'profile_picture')

    def get_profile_picture(self, obj):
        if obj.profile_picture:
            request = self.context.get('request')
            if request is not None:
                return request.build_absolute_uri(obj.profile_picture.url)
            return obj.profile_picture.url
        return None


class UserSummarySerializer(serializers.ModelSerializer):
    """Compact user shape embedded in tasks, members and activity."""
    firstName = serializers.CharField(source='first_name', read_only=True)
    lastName = serializers.CharField(source='last_name', read_only=True)
    name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ('id', 'email', 'name', 'firstName', 'lastName')

    def get_name(self, obj):
        return obj.get_full_name() or obj.username


class UserSerializer(UserSummarySerializer):
    role = serializers.SerializerMethodField()
    profile = serializers.SerializerMethodField()

    class Meta(UserSummarySerializer.Meta):
        fields = UserSummarySerializer.Meta.fields + ('username', 'role', 'profile')

    def get_role(self, obj):
        return get_global_role(obj)

    def get_profile(self, obj):
        if hasattr(obj, 'profile') and obj.profile:
            return ProfileSerializer(obj.profile, context=self.context).data
        return None
