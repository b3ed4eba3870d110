from __future__ import annotations
import math
from typing import Any, Mapping, Tuple
from sqlalchemy.orm import Query
from helpdesk.config.pagination import normalize_pagination
from helpdesk.errors import ValidationError


def parse_pagination(args: Mapping[str, Any]) -> Tuple[int, int]:
    """Read page/page_size from query args; page_size is clamped, garbage is a 400."""
    try:
        return normalize_pagination(args.get('page'), args.get('page_size'))
    except ValueError as e:
        raise ValidationError([str(e)])


def apply_pagination(q: Query, page: int, page_size: int) -> Tuple[list, int]:
    total = q.order_by(None).count()
    rows = q.offset((page - 1) * page_size).limit(page_size).all()
    return rows, total


def pagination_meta(total: int, page: int, page_size: int, returned: int):
    return {
        'current_page': page,
        'page_size': page_size,
        'total_pages': math.ceil(total / page_size) if page_size else 0,
        'total_count': total,
        'returned': returned,
        'has_next': (page - 1) * page_size + returned < total,
        'has_prev': page > 1,
    }


def build_list_payload(key: str, rows: list, total: int, page: int, page_size: int):
    return {
        key: rows,
        'pagination': pagination_meta(total, page, page_size, len(rows)),
    }

__all__ = ['parse_pagination', 'apply_pagination', 'pagination_meta', 'build_list_payload']
