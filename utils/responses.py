import math
from typing import Any, Optional
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def error_response(
    message: str = "Error occurred",
    errors: Optional[Any] = None,
    status_code: int = 400,
    headers: Optional[dict] = None
) -> JSONResponse:
    """Standard error response"""
    content = {
        "success": False,
        "message": message
    }

    if errors:
        content["errors"] = errors

    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(content),
        headers=headers
    )


def build_pagination(total: int, page: int, limit: int) -> dict:
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": math.ceil(total / limit) if limit else 0
    }


def paginated_response(
    items: list,
    page: int,
    limit: int,
    total: int,
    message: str = "Success"
) -> dict:
    """Paginated response: {items, pagination: {total, page, limit, totalPages}}"""
    return {
        "success": True,
        "message": message,
        "items": items,
        "pagination": build_pagination(total, page, limit)
    }
