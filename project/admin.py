from django.contrib import admin
from django_summernote.admin import SummernoteModelAdmin

from project.models import Project, ProjectMember, ProjectTag


class ProjectMemberInline(admin.TabularInline):
    model = ProjectMember
    extra = 1


class ProjectTagInline(admin.TabularInline):
    model = ProjectTag
    extra = 0


@admin.register(Project)
class ProjectAdmin(SummernoteModelAdmin):
    list_display = ('name', 'priority', 'status', 'creator', 'end_date', 'created_at', 'updated_at')
    search_fields = ('name', 'description')
    list_filter = ('priority', 'status')
    inlines = [ProjectMemberInline, ProjectTagInline]
    summernote_fields = ('description',)


@admin.register(ProjectTag)
class ProjectTagAdmin(admin.ModelAdmin):
    list_display = ('name', 'color', 'project', 'created_at')
    search_fields = ('name', 'project__name')
