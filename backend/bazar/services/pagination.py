# Overview: Offset pagination shared by every list endpoint.

from __future__ import annotations

from ..errors import ValidationError

DEFAULT_PER_PAGE = 10
MAX_PER_PAGE = 100


def read_page_args(args) -> tuple[int, int]:
    """Read page/limit from request args (limit and per_page are synonyms)."""
    page = args.get("page", 1, type=int) or 1
    per_page = args.get("limit", type=int) or args.get("per_page", type=int) or DEFAULT_PER_PAGE
    return max(page, 1), min(max(per_page, 1), MAX_PER_PAGE)


def paginate(query, *, page: int = 1, per_page: int = DEFAULT_PER_PAGE):
    """
    Apply offset/limit to an ordered query.

    Returns (items, pagination) where pagination is the envelope block:
        {current_page, total_pages, total_docs, per_page, has_next_page, has_prev_page}
    """
    per_page = min(max(per_page or DEFAULT_PER_PAGE, 1), MAX_PER_PAGE)
    page = max(page or 1, 1)

    total = query.order_by(None).count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    items = query.offset((page - 1) * per_page).limit(per_page).all()

    return items, {
        "current_page": page,
        "total_pages": total_pages,
        "total_docs": total,
        "per_page": per_page,
        "has_next_page": page < total_pages,
        "has_prev_page": page > 1,
    }


def sort_clause(sort: str | None, fields: dict, *, default: tuple, tiebreak=None) -> tuple:
    """
    Translate a "field" / "-field" sort parameter into ORDER BY clauses.

    fields maps public names to columns; tiebreak (usually the primary key)
    keeps paging stable when the sort column has duplicates.
    """
    if not sort:
        return default
    descending = sort.startswith("-")
    column = fields.get(sort.lstrip("-"))
    if column is None:
        raise ValidationError(f"sort must be one of: {', '.join(fields)}")
    clauses = [column.desc() if descending else column.asc()]
    if tiebreak is not None:
        clauses.append(tiebreak.desc() if descending else tiebreak.asc())
    return tuple(clauses)
