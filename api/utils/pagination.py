from typing import Tuple

from flask import request

from api.errors import ValidationFailed

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


def parse_pagination() -> Tuple[int, int]:
    """page/limit from the query string; page >= 1, 1 <= limit <= MAX_LIMIT."""
    try:
        page = int(request.args.get("page", "1"))
        limit = int(request.args.get("limit", str(DEFAULT_LIMIT)))
    except ValueError:
        raise ValidationFailed("page and limit must be integers")
    page = max(page, 1)
    limit = max(1, min(limit, MAX_LIMIT))
    return page, limit


def paginate(query, page: int, limit: int):
    """Run query for one page; returns (rows, pagination meta)."""
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    return rows, {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": (total + limit - 1) // limit,
    }
