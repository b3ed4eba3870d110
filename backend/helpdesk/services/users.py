"""Actor accounts: registration, authentication, profile and administration.

Email addresses are stored lowercased, so the uniqueness check (and login) is
case-insensitive. Password hashes never leave the User model.
"""
from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional
from flask import current_app
from sqlalchemy import or_, select
from helpdesk import get_db
from helpdesk.constants.roles import ALL_ROLES, IT_STAFF_ROLES, Role
from helpdesk.errors import Conflict, Forbidden, NotFound, SelfActionForbidden, Unauthorized
from helpdesk.models.user import User
from helpdesk.services import policy
from helpdesk.utils.filters import apply_filters
from helpdesk.utils.listing import apply_pagination, build_list_payload, parse_pagination
from helpdesk.utils.validation import (
    DEPARTMENT_MAX_LENGTH, NAME_LENGTH, check_choice, check_email, check_optional_text,
    check_password, check_phone, check_text, raise_if_errors,
)

PROFILE_FIELDS = ('first_name', 'last_name', 'department', 'phone')


def _find_by_email(email: str) -> Optional[User]:
    return get_db().execute(select(User).where(User.email == email)).scalar_one_or_none()


def _load_user(user_id: int) -> User:
    user = get_db().get(User, user_id)
    if user is None:
        raise NotFound(description='User not found')
    return user


def _check_profile(errors: List[str], data: Mapping[str, Any], required: bool) -> Dict[str, Any]:
    clean: Dict[str, Any] = {}
    for field in ('first_name', 'last_name'):
        if field in data:
            clean[field] = check_text(errors, field, data[field], NAME_LENGTH)
        elif required:
            errors.append(f'{field} is required')
    if 'department' in data:
        clean['department'] = check_optional_text(errors, 'department', data['department'], DEPARTMENT_MAX_LENGTH)
    if 'phone' in data:
        clean['phone'] = check_phone(errors, data['phone'])
    return clean


def _ensure_email_free(email: Optional[str], exclude_id: Optional[int] = None):
    if email is None:
        return
    existing = _find_by_email(email)
    if existing is not None and existing.id != exclude_id:
        raise Conflict(description='User with this email already exists')


def _require_manager(actor: User):
    if not policy.can_manage_users(actor):
        raise Forbidden(description='Insufficient permissions')


def register_user(data: Mapping[str, Any]) -> User:
    """Self-registration. The new account is always an end user, whatever role is sent."""
    errors: List[str] = []
    email = check_email(errors, data.get('email'))
    password = check_password(errors, data.get('password'))
    fields = _check_profile(errors, data, required=True)
    raise_if_errors(errors)
    _ensure_email_free(email)
    user = User(email=email, role=Role.END_USER, is_active=True, **fields)
    user.set_password(password)
    session = get_db()
    session.add(user)
    session.commit()
    current_app.logger.info('New user registered: %s', user.email)
    return user


def authenticate(email: Any, password: Any) -> User:
    errors: List[str] = []
    normalized = check_email(errors, email)
    if not isinstance(password, str) or not password:
        errors.append('Password is required')
    raise_if_errors(errors)
    user = _find_by_email(normalized)
    if user is None or not user.verify_password(password):
        raise Unauthorized(description='Invalid email or password')
    if not user.is_active:
        raise Unauthorized(description='Account is deactivated')
    current_app.logger.info('User logged in: %s', user.email)
    return user


def update_profile(actor: User, data: Mapping[str, Any]) -> User:
    """Self-service edit of name, department and phone only."""
    errors: List[str] = []
    fields = _check_profile(errors, data, required=False)
    raise_if_errors(errors)
    for field, value in fields.items():
        setattr(actor, field, value)
    get_db().commit()
    current_app.logger.info('Profile updated for user: %s', actor.email)
    return actor


def change_password(actor: User, data: Mapping[str, Any]) -> None:
    errors: List[str] = []
    current = data.get('current_password')
    if not isinstance(current, str) or not current:
        errors.append('Current password is required')
    new = check_password(errors, data.get('new_password'), field='new_password')
    if new is not None and data.get('confirm_password') != new:
        errors.append('Password confirmation does not match new password')
    raise_if_errors(errors)
    if not actor.verify_password(current):
        raise Unauthorized(description='Current password is incorrect')
    actor.set_password(new)
    get_db().commit()
    current_app.logger.info('Password changed for user: %s', actor.email)


def _search(q, term: str):
    pattern = f"%{term}%"
    return q.filter(or_(User.first_name.ilike(pattern), User.last_name.ilike(pattern), User.email.ilike(pattern)))


def _parse_active(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered not in ('true', 'false', '1', '0'):
        raise ValueError(value)
    return lowered in ('true', '1')


USER_FILTERS = {
    'role': {'op': lambda q, v: q.filter(User.role == Role(v)), 'validate': lambda v: v in ALL_ROLES},
    'is_active': {'op': lambda q, v: q.filter(User.is_active.is_(v)), 'coerce': _parse_active},
    'department': {'op': lambda q, v: q.filter(User.department == v)},
    'search': {'op': _search, 'coerce': str.strip},
}


def list_users(actor: User, args: Mapping[str, Any]):
    if not policy.can_view_users(actor):
        raise Forbidden(description='Insufficient permissions')
    page, page_size = parse_pagination(args)
    q = apply_filters(get_db().query(User), USER_FILTERS, dict(args))
    q = q.order_by(User.created_at.desc(), User.id.desc())
    rows, total = apply_pagination(q, page, page_size)
    return build_list_payload('users', [u.to_json() for u in rows], total, page, page_size)


def list_it_users(actor: User) -> List[User]:
    """Active IT staff, as offered when picking an assignee."""
    if not policy.can_view_users(actor):
        raise Forbidden(description='Insufficient permissions')
    stmt = (
        select(User)
        .where(User.role.in_(IT_STAFF_ROLES), User.is_active.is_(True))
        .order_by(User.first_name.asc(), User.last_name.asc(), User.id.asc())
    )
    return list(get_db().execute(stmt).scalars())


def get_user(actor: User, user_id: int) -> User:
    if not policy.can_view_users(actor):
        raise Forbidden(description='Insufficient permissions')
    return _load_user(user_id)


def create_user(actor: User, data: Mapping[str, Any]) -> User:
    _require_manager(actor)
    errors: List[str] = []
    email = check_email(errors, data.get('email'))
    password = check_password(errors, data.get('password'))
    role = check_choice(errors, 'role', data.get('role', Role.END_USER.value), ALL_ROLES)
    fields = _check_profile(errors, data, required=True)
    raise_if_errors(errors)
    _ensure_email_free(email)
    user = User(email=email, role=Role(role), is_active=True, **fields)
    user.set_password(password)
    session = get_db()
    session.add(user)
    session.commit()
    current_app.logger.info('User created by admin %s: %s', actor.email, user.email)
    return user


def update_user(actor: User, user_id: int, data: Mapping[str, Any]) -> User:
    _require_manager(actor)
    user = _load_user(user_id)
    errors: List[str] = []
    fields = _check_profile(errors, data, required=False)
    if 'email' in data:
        fields['email'] = check_email(errors, data['email'])
    if 'role' in data:
        role = check_choice(errors, 'role', data['role'], ALL_ROLES)
        fields['role'] = Role(role) if role else None
    if 'is_active' in data:
        if not isinstance(data['is_active'], bool):
            errors.append('is_active must be a boolean')
        else:
            fields['is_active'] = data['is_active']
    raise_if_errors(errors)
    if fields.get('is_active') is False and policy.self_action_denied(actor, user.id):
        raise SelfActionForbidden(description='Cannot deactivate your own account')
    _ensure_email_free(fields.get('email'), exclude_id=user.id)
    for field, value in fields.items():
        setattr(user, field, value)
    get_db().commit()
    current_app.logger.info('User updated by admin %s: %s', actor.email, user.email)
    return user


def set_active(actor: User, user_id: int, active: bool) -> User:
    _require_manager(actor)
    user = _load_user(user_id)
    if not active and policy.self_action_denied(actor, user.id):
        raise SelfActionForbidden(description='Cannot deactivate your own account')
    user.is_active = active
    get_db().commit()
    current_app.logger.info(
        'User %s by admin %s: %s', 'activated' if active else 'deactivated', actor.email, user.email
    )
    return user


def delete_user(actor: User, user_id: int) -> None:
    """Removes the user along with the tickets they requested; their assignments become unassigned."""
    _require_manager(actor)
    user = _load_user(user_id)
    if policy.self_action_denied(actor, user.id):
        raise SelfActionForbidden(description='Cannot delete your own account')
    session = get_db()
    for ticket in list(user.assigned_tickets):
        ticket.assignee = None
    session.delete(user)
    session.commit()
    current_app.logger.info('User deleted by admin %s: %s', actor.email, user.email)

__all__ = [
    'register_user', 'authenticate', 'update_profile', 'change_password', 'list_users', 'list_it_users',
    'get_user', 'create_user', 'update_user', 'set_active', 'delete_user',
]
