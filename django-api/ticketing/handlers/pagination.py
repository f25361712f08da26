"""Page-number pagination sized from the TICKETING settings."""

from django.conf import settings
from rest_framework.pagination import PageNumberPagination


class TicketingPagination(PageNumberPagination):
    page_size_query_param = "pageSize"

    def __init__(self) -> None:
        config = getattr(settings, "TICKETING", {})
        self.page_size = config.get("DEFAULT_PAGE_SIZE", 20)
        self.max_page_size = config.get("MAX_PAGE_SIZE", 100)
