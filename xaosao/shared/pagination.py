"""Offset pagination helpers shared by list endpoints"""

import math


def page_offset(page: int, limit: int) -> int:
    return (max(page, 1) - 1) * limit


def build_pagination(page: int, limit: int, total_count: int) -> dict:
    """Pagination block returned alongside list results"""
    total_pages = math.ceil(total_count / limit) if limit else 0
    return {
        "currentPage": page,
        "limit": limit,
        "totalCount": total_count,
        "totalPages": total_pages,
        "hasNextPage": page < total_pages,
        "hasPreviousPage": page > 1,
    }


def paginate_list(items: list, page: int, limit: int) -> tuple[list, dict]:
    """Paginate an already filtered in-memory list"""
    start = page_offset(page, limit)
    return items[start : start + limit], build_pagination(page, limit, len(items))
