from django.urls import path, include
from rest_framework.routers import DefaultRouter
from task.adapters.viewset.task_viewset import TaskViewset
from task.adapters.viewset.subtask_viewset import (
    SubtaskViewSet,
    SubtaskChecklistViewSet,
    SubtaskChecklistItemViewSet,
    SubtaskCommentViewSet,
)

router = DefaultRouter()
router.register(r'tasks', TaskViewset, basename='task')

subtask_collection = SubtaskViewSet.as_view({'get': 'list', 'post': 'create'})
subtask_reorder = SubtaskViewSet.as_view({'put': 'reorder'})
subtask_detail = SubtaskViewSet.as_view({'put': 'update', 'delete': 'destroy'})
checklist_collection = SubtaskChecklistViewSet.as_view({'get': 'list', 'post': 'create'})
checklist_detail = SubtaskChecklistViewSet.as_view({'put': 'update', 'delete': 'destroy'})
checklist_items = SubtaskChecklistItemViewSet.as_view({'post': 'create'})
checklist_item_detail = SubtaskChecklistItemViewSet.as_view({'put': 'update', 'delete': 'destroy'})
comment_collection = SubtaskCommentViewSet.as_view({'get': 'list', 'post': 'create'})
comment_detail = SubtaskCommentViewSet.as_view({'put': 'update', 'delete': 'destroy'})

subtask_prefix = 'tasks/<int:task_pk>/subtasks/'
subtask_item_prefix = subtask_prefix + '<int:subtask_pk>/'
checklist_prefix = subtask_item_prefix + 'checklists/<int:checklist_pk>/'

urlpatterns = [
    path(subtask_prefix, subtask_collection, name='subtask-list'),
    path(subtask_prefix + 'reorder/', subtask_reorder, name='subtask-reorder'),
    path(subtask_item_prefix, subtask_detail, name='subtask-detail'),
    path(subtask_item_prefix + 'checklists/', checklist_collection, name='subtask-checklists'),
    path(checklist_prefix, checklist_detail, name='subtask-checklist-detail'),
    path(checklist_prefix + 'items/', checklist_items, name='subtask-checklist-items'),
    path(checklist_prefix + 'items/<int:item_pk>/', checklist_item_detail, name='subtask-checklist-item-detail'),
    path(subtask_item_prefix + 'comments/', comment_collection, name='subtask-comments'),
    path(subtask_item_prefix + 'comments/<int:comment_pk>/', comment_detail, name='subtask-comment-detail'),
    path('', include(router.urls)),
]
