"""Domain error kinds raised by services and rendered by the app-level error handler.

Each class is a Werkzeug HTTPException so services can raise them directly and the
unified handler in create_app turns them into the standard JSON error shape:

    {"error": {"status": 403, "title": "Forbidden", "kind": "forbidden", "detail": "..."}}

ValidationError additionally carries every violated constraint in ``errors``.
"""
from __future__ import annotations
from typing import Iterable, List, Optional
from werkzeug import exceptions as wz


class ValidationError(wz.BadRequest):
    kind = 'validation_error'

    def __init__(self, errors: Iterable[str], description: Optional[str] = None):
        self.errors: List[str] = list(errors)
        super().__init__(description=description or 'Validation failed')


class Unauthorized(wz.Unauthorized):
    kind = 'unauthorized'


class Forbidden(wz.Forbidden):
    kind = 'forbidden'


class SelfActionForbidden(Forbidden):
    """An administrator tried to deactivate or delete their own account."""
    kind = 'self_action_forbidden'


class NotFound(wz.NotFound):
    kind = 'not_found'


class Conflict(wz.Conflict):
    kind = 'conflict'


_KIND_BY_STATUS = {
    400: 'validation_error',
    401: 'unauthorized',
    403: 'forbidden',
    404: 'not_found',
    405: 'method_not_allowed',
    409: 'conflict',
}


def kind_for(exc: wz.HTTPException) -> str:
    """Stable error category for any HTTPException, including Werkzeug's own (e.g. routing 404s)."""
    kind = getattr(exc, 'kind', None)
    if kind:
        return kind
    return _KIND_BY_STATUS.get(exc.code or 500, 'http_error' if (exc.code or 500) < 500 else 'internal')


def error_payload(status: int, title: str, kind: str, detail: str, errors: Optional[List[str]] = None):
    body = {
        'status': status,
        'title': title,
        'kind': kind,
        'detail': detail,
    }
    if errors:
        body['errors'] = errors
    return {'error': body}

__all__ = [
    'ValidationError', 'Unauthorized', 'Forbidden', 'SelfActionForbidden', 'NotFound', 'Conflict',
    'kind_for', 'error_payload',
]
