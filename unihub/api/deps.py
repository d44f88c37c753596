"""
Shared route dependencies and the response envelope.
"""

from typing import Any, Optional

from fastapi import BackgroundTasks, Query, Request

from unihub.services.notifier import Notifier
from unihub.services.pagination import Pagination

MAX_PAGE_SIZE = 100


def get_notifier(request: Request, background_tasks: BackgroundTasks) -> Notifier:
    """Request-scoped notifier; emails go out after the response is sent."""
    return Notifier(request.app.state.mailer, background_tasks)


def get_image_store(request: Request):
    return request.app.state.image_store


def get_pagination(
    page: int = Query(1, ge=1, description="Page number (1-based)"),
    limit: int = Query(20, ge=1, description="Page size, capped at 100"),
) -> Pagination:
    return Pagination(page=page, limit=min(limit, MAX_PAGE_SIZE))


def success(data: Any = None, message: Optional[str] = None) -> dict:
    body = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body
