from flask import Blueprint, current_app
from flask_jwt_extended import create_access_token
from helpdesk.decorators.auth import require_actor, current_actor
from helpdesk.services import users as user_service
from helpdesk.utils.validation import json_body

auth_bp = Blueprint('auth', __name__)


def _issue_token(user):
    # JWT identity must be a string (flask-jwt-extended v4 requirement)
    return create_access_token(identity=str(user.id), additional_claims={'role': user.role.value})


@auth_bp.post('/register')
def register():
    user = user_service.register_user(json_body())
    return {'message': 'User registered successfully', 'access_token': _issue_token(user), 'user': user.to_json()}, 201


@auth_bp.post('/login')
def login():
    data = json_body()
    user = user_service.authenticate(data.get('email'), data.get('password'))
    return {'message': 'Login successful', 'access_token': _issue_token(user), 'user': user.to_json()}


@auth_bp.get('/profile')
@require_actor
def profile():
    return {'user': current_actor().to_json()}


@auth_bp.put('/profile')
@require_actor
def update_profile():
    user = user_service.update_profile(current_actor(), json_body())
    return {'message': 'Profile updated successfully', 'user': user.to_json()}


@auth_bp.post('/change-password')
@require_actor
def change_password():
    user_service.change_password(current_actor(), json_body())
    return {'message': 'Password changed successfully'}


@auth_bp.post('/refresh-token')
@require_actor
def refresh_token():
    return {'message': 'Token refreshed successfully', 'access_token': _issue_token(current_actor())}


@auth_bp.post('/logout')
@require_actor
def logout():
    # Tokens are stateless; the client discards its copy
    current_app.logger.info('User logged out: %s', current_actor().email)
    return {'message': 'Logout successful'}
