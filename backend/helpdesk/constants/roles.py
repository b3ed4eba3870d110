"""Closed set of actor roles.

Every policy decision branches on all members explicitly; adding a role means
touching each decision in services/policy.py, which raise on an unhandled member.
"""
from __future__ import annotations
from enum import Enum
from typing import Tuple


class Role(str, Enum):
    END_USER = 'end_user'
    IT_USER = 'it_user'
    IT_ADMIN = 'it_admin'

    @property
    def is_it_staff(self) -> bool:
        return self in IT_STAFF_ROLES


IT_STAFF_ROLES: Tuple[Role, ...] = (Role.IT_USER, Role.IT_ADMIN)
ALL_ROLES: Tuple[str, ...] = tuple(r.value for r in Role)

__all__ = ['Role', 'IT_STAFF_ROLES', 'ALL_ROLES']
