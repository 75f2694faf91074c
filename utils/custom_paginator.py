from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class CustomPaginator(PageNumberPagination):
    """
    ``?page=&pageSize=`` pagination answering
    ``{<results_key>, page, pageSize, total, totalPages}``.
    """
    page_size = 20
    page_size_query_param = 'pageSize'
    max_page_size = 100
    results_key = 'results'

    def get_paginated_response(self, data):
        return Response({
            self.results_key: data,
            'page': self.page.number,
            'pageSize': self.get_page_size(self.request),
            'total': self.page.paginator.count,
            'totalPages': self.page.paginator.num_pages,
        })


class ProjectPaginator(CustomPaginator):
    results_key = 'projects'


class TaskPaginator(CustomPaginator):
    page_size = 50
    max_page_size = 200
    results_key = 'tasks'
