from django.contrib import admin
from django_summernote.admin import SummernoteModelAdmin

from .models import (
    Task,
    TaskActivity,
    TaskAssignee,
    TaskList,
    Subtask,
    SubtaskChecklist,
    SubtaskChecklistItem,
    SubtaskComment,
)


class TaskAssigneeInline(admin.TabularInline):
    model = TaskAssignee
    extra = 1


class SubtaskInline(admin.TabularInline):
    model = Subtask
    extra = 0
    fields = ('title', 'completed', 'position')


@admin.register(Task)
class TaskAdmin(SummernoteModelAdmin):
    list_display = ('title', 'project', 'status', 'priority', 'due_date', 'task_list', 'amount_cents')
    list_filter = ('status', 'priority', 'project')
    search_fields = ('title', 'description')
    filter_horizontal = ('tags',)
    inlines = [TaskAssigneeInline, SubtaskInline]
    summernote_fields = ('description',)


@admin.register(TaskList)
class TaskListAdmin(admin.ModelAdmin):
    list_display = ('name', 'project', 'updated_at')
    search_fields = ('name', 'project__name')


@admin.register(TaskActivity)
class TaskActivityAdmin(admin.ModelAdmin):
    list_display = ('task', 'type', 'actor', 'created_at')
    list_filter = ('type', 'created_at')
    search_fields = ('task__title',)
    readonly_fields = ('task', 'actor', 'type', 'metadata', 'created_at')


class SubtaskChecklistItemInline(admin.TabularInline):
    model = SubtaskChecklistItem
    extra = 0


class SubtaskCommentInline(admin.TabularInline):
    model = SubtaskComment
    extra = 0
    readonly_fields = ('user', 'created_at')


@admin.register(Subtask)
class SubtaskAdmin(admin.ModelAdmin):
    list_display = ('title', 'task', 'completed', 'position')
    list_filter = ('completed',)
    search_fields = ('title', 'task__title')
    inlines = [SubtaskCommentInline]


@admin.register(SubtaskChecklist)
class SubtaskChecklistAdmin(admin.ModelAdmin):
    list_display = ('title', 'subtask', 'position')
    inlines = [SubtaskChecklistItemInline]
