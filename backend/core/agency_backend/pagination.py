from django.conf import settings
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class PageLimitPagination(PageNumberPagination):
    """``?page=&limit=`` pagination answering ``{<results_key>: [...], "pagination": {...}}``."""

    page_query_param = "page"
    page_size_query_param = "limit"
    results_key = "results"

    def __init__(self):
        self.page_size = getattr(settings, "API_DEFAULT_PAGE_SIZE", 10)
        self.max_page_size = getattr(settings, "API_MAX_PAGE_SIZE", 100)

    def get_paginated_response(self, data):
        paginator = self.page.paginator
        return Response(
            {
                self.results_key: data,
                "pagination": {
                    "page": self.page.number,
                    "limit": paginator.per_page,
                    "total": paginator.count,
                    "pages": paginator.num_pages,
                },
            }
        )


class PolicyPagination(PageLimitPagination):
    results_key = "policies"


class SalePagination(PageLimitPagination):
    results_key = "sales"
