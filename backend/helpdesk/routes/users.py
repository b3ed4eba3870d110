from flask import Blueprint, request
from helpdesk.decorators.auth import require_actor, current_actor
from helpdesk.services import users as user_service
from helpdesk.utils.validation import json_body

users_bp = Blueprint('users', __name__)


@users_bp.get('')
@require_actor
def list_users():
    return user_service.list_users(current_actor(), request.args)


@users_bp.get('/it-users')
@require_actor
def list_it_users():
    return {'users': [u.to_json() for u in user_service.list_it_users(current_actor())]}


@users_bp.get('/<int:user_id>')
@require_actor
def get_user(user_id: int):
    return {'user': user_service.get_user(current_actor(), user_id).to_json()}


@users_bp.post('')
@require_actor
def create_user():
    user = user_service.create_user(current_actor(), json_body())
    return {'message': 'User created successfully', 'user': user.to_json()}, 201


@users_bp.put('/<int:user_id>')
@require_actor
def update_user(user_id: int):
    user = user_service.update_user(current_actor(), user_id, json_body())
    return {'message': 'User updated successfully', 'user': user.to_json()}


@users_bp.patch('/<int:user_id>/deactivate')
@require_actor
def deactivate_user(user_id: int):
    user = user_service.set_active(current_actor(), user_id, False)
    return {'message': 'User deactivated successfully', 'user': user.to_json()}


@users_bp.patch('/<int:user_id>/activate')
@require_actor
def activate_user(user_id: int):
    user = user_service.set_active(current_actor(), user_id, True)
    return {'message': 'User activated successfully', 'user': user.to_json()}


@users_bp.delete('/<int:user_id>')
@require_actor
def delete_user(user_id: int):
    user_service.delete_user(current_actor(), user_id)
    return {'message': 'User deleted successfully'}
