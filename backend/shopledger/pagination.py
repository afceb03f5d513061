from __future__ import annotations

from .validation import coerce_int


DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100


def page_args(args) -> tuple[int, int]:
    """Read ``page`` / ``per_page`` from request args (defaults 1 / 20, max 100)."""
    page = coerce_int(args.get("page", 1), "page") if args.get("page") not in (None, "") else 1
    per_page = (
        coerce_int(args.get("per_page"), "per_page")
        if args.get("per_page") not in (None, "")
        else DEFAULT_PER_PAGE
    )
    return max(page, 1), min(max(per_page, 1), MAX_PER_PAGE)


def paginate_query(query, *, page: int = 1, per_page: int = DEFAULT_PER_PAGE, serialize=None) -> dict:
    """
    Run an ordered query one page at a time.

    Returns {"items", "count", "pagination": {page, per_page, total,
    total_pages, has_next, has_prev}}.
    """
    per_page = min(per_page or DEFAULT_PER_PAGE, MAX_PER_PAGE)
    page = max(page, 1)

    total = query.order_by(None).count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    rows = query.offset((page - 1) * per_page).limit(per_page).all()
    serialize = serialize or (lambda row: row.to_dict())

    return {
        "items": [serialize(row) for row in rows],
        "count": len(rows),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }
