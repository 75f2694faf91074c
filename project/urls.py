from django.urls import path
from project.adapters.viewset.project_viewset import ProjectViewSet
from project.adapters.viewset.project_resource_viewset import (
    ProjectMemberViewSet,
    ProjectTaskListViewSet,
    ProjectTagViewSet,
)

project_collection = ProjectViewSet.as_view({'get': 'list', 'post': 'create', 'patch': 'bulk_update'})
project_detail = ProjectViewSet.as_view({
    'get': 'retrieve',
    'put': 'partial_update',
    'patch': 'partial_update',
    'delete': 'destroy',
})
project_members = ProjectMemberViewSet.as_view({
    'get': 'list',
    'post': 'create',
    'patch': 'partial_update',
    'delete': 'destroy',
})
project_lists = ProjectTaskListViewSet.as_view({'get': 'list', 'post': 'create'})
project_list_detail = ProjectTaskListViewSet.as_view({'put': 'update', 'delete': 'destroy'})
project_tags = ProjectTagViewSet.as_view({'get': 'list', 'post': 'create'})
project_tag_detail = ProjectTagViewSet.as_view({'put': 'update', 'delete': 'destroy'})

urlpatterns = [
    path('projects/', project_collection, name='project-list'),
    path('projects/<int:pk>/', project_detail, name='project-detail'),
    path('projects/<int:project_pk>/members/', project_members, name='project-members'),
    path('projects/<int:project_pk>/lists/', project_lists, name='project-lists'),
    path('projects/<int:project_pk>/lists/<int:list_pk>/', project_list_detail, name='project-list-detail'),
    path('projects/<int:project_pk>/tags/', project_tags, name='project-tags'),
    path('projects/<int:project_pk>/tags/<int:tag_pk>/', project_tag_detail, name='project-tag-detail'),
]
