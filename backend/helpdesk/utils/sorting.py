"""Query-string sorting for list endpoints.

``sort`` is a comma-separated list of keys, each optionally prefixed with ``-`` for
descending order (``sort=-priority,created_at``). A key maps either to a column or to
a ``(column, ranked_values)`` pair for enumerated fields whose names do not sort
meaningfully; priorities order by severity, statuses by lifecycle position.
"""
from __future__ import annotations
from typing import List, Mapping, Optional, Sequence
from sqlalchemy import case
from helpdesk.errors import ValidationError


def _sort_expression(target):
    if isinstance(target, tuple):
        column, ranked = target
        return case({value: rank for rank, value in enumerate(ranked)}, value=column, else_=len(ranked))
    return target


def parse_sort(sort_expr: str, allowed: Mapping) -> List:
    clauses, errors = [], []
    for token in (raw.strip() for raw in sort_expr.split(',')):
        if not token:
            continue
        descending = token.startswith('-')
        key = token[1:] if descending else token
        target = allowed.get(key)
        if target is None:
            errors.append(f'Invalid sort field {key}')
            continue
        expr = _sort_expression(target)
        clauses.append(expr.desc() if descending else expr.asc())
    if errors:
        raise ValidationError(errors)
    return clauses


def apply_sort(query, sort_expr: Optional[str], allowed: Mapping, default: Sequence, tie_breaker):
    """Order ``query`` by the requested keys, or by ``default`` when none are given.

    ``tie_breaker`` follows explicit keys so equal rows keep a stable page order.
    """
    clauses = parse_sort(sort_expr, allowed) if sort_expr else []
    if not clauses:
        return query.order_by(*default)
    return query.order_by(*clauses, tie_breaker)


__all__ = ['parse_sort', 'apply_sort']
