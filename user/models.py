from django.db import models
from django.contrib.auth.models import User


class GlobalRole(models.TextChoices):
    ADMIN = 'admin', 'Admin'
    MANAGER = 'manager', 'Manager'
    MEMBER = 'member', 'Member'


class UserProfile(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='profile')
    role = models.CharField(max_length=20, choices=GlobalRole.choices, default=GlobalRole.MEMBER)
    profile_picture = models.ImageField(upload_to='profile_pics/', blank=True, null=True)
    google_id = models.CharField(max_length=555, blank=True, null=True)

    def __str__(self):
        return f"{self.user.username} ({self.role})"


def get_global_role(user):
    """
    Global role of ``user``. Users without a profile are plain members,
    except superusers who always act as admin.
    """
    if user is None or not user.is_authenticated:
        return None
    profile = UserProfile.objects.filter(user_id=user.pk).values_list('role', flat=True).first()
    if profile in GlobalRole.values:
        return profile
    if user.is_superuser:
        return GlobalRole.ADMIN
    return GlobalRole.MEMBER


def display_name(user):
    return user.get_full_name() or user.username
