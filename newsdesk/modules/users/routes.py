"""
User Admin Routes
=================

Admin only. Admins cannot delete or deactivate their own account.
"""

from flask import flash, redirect, render_template, request, url_for

from . import users_bp
from .service import UserService
from ..auth.gate import current_session, requires_roles
from ..auth.roles import Role
from ...core.errors import AuthenticationError, BackendError
from ...core.extension import get_identity, get_store
from ...core.logging_service import LoggingService

SAVE_ERROR = 'Failed to save user'

SIGN_UP_MESSAGES = {
    'EMAIL_EXISTS': 'An account with this email already exists',
    'INVALID_EMAIL': 'Please enter a valid email address',
    'WEAK_PASSWORD': 'Password must be at least 6 characters',
}


def _service():
    return UserService(get_store(), get_identity())


def _is_self(user_id):
    return current_session().user_id == user_id


@users_bp.route('/')
@requires_roles(Role.ADMIN)
def users_page():
    role = request.args.get('role') or None
    users = []
    try:
        users = _service().list_users(role=role)
    except ValueError as e:
        flash(str(e), 'error')
    except BackendError as e:
        LoggingService.error('users', 'Failed to load users', {'error': str(e)})
        flash('Failed to load users', 'error')
    return render_template('users/users.html', users=users, roles=[r.value for r in Role],
                           current_role=role)


@users_bp.route('/create', methods=['POST'])
@requires_roles(Role.ADMIN)
def create_user():
    email = request.form.get('email', '').strip()
    password = request.form.get('password', '')
    if not email or not password:
        flash('Email and password are required', 'error')
        return redirect(url_for('users.users_page'))

    try:
        uid = _service().create_user(
            email, password, request.form.get('role', Role.AUTHOR.value),
            display_name=request.form.get('display_name', '').strip() or None,
            first_name=request.form.get('first_name', '').strip() or None,
            last_name=request.form.get('last_name', '').strip() or None,
        )
    except ValueError as e:
        flash(str(e), 'error')
        return redirect(url_for('users.users_page'))
    except AuthenticationError as e:
        flash(SIGN_UP_MESSAGES.get(e.code, 'Could not create the account'), 'error')
        return redirect(url_for('users.users_page'))
    except BackendError as e:
        LoggingService.error('users', SAVE_ERROR, {'error': str(e)})
        flash(SAVE_ERROR, 'error')
        return redirect(url_for('users.users_page'))

    LoggingService.log_user_action('users', 'create', details={'created_user_id': uid})
    flash(f"User {email} created", 'success')
    return redirect(url_for('users.users_page'))


@users_bp.route('/<user_id>/edit', methods=['GET', 'POST'])
@requires_roles(Role.ADMIN)
def edit_user(user_id):
    try:
        user = _service().get_user(user_id)
    except BackendError as e:
        LoggingService.error('users', 'Failed to load user', {'error': str(e)})
        flash('Failed to load user', 'error')
        return redirect(url_for('users.users_page'))

    if user is None:
        flash('User not found', 'error')
        return redirect(url_for('users.users_page'))

    if request.method == 'POST':
        data = {
            'display_name': request.form.get('display_name', '').strip(),
            'first_name': request.form.get('first_name', '').strip(),
            'last_name': request.form.get('last_name', '').strip(),
            'bio': request.form.get('bio', '').strip(),
            'role': request.form.get('role', user.get('role')),
            'active': request.form.get('active') in ('on', '1', 'true'),
        }
        if _is_self(user_id) and (not data['active'] or data['role'] != Role.ADMIN.value):
            flash('You cannot deactivate or demote your own account', 'error')
            return render_template('users/edit.html', user=user, roles=[r.value for r in Role]), 400
        try:
            _service().update_user(user_id, data)
        except ValueError as e:
            flash(str(e), 'error')
            return render_template('users/edit.html', user=user, roles=[r.value for r in Role]), 400
        except BackendError as e:
            LoggingService.error('users', SAVE_ERROR, {'error': str(e)})
            flash(SAVE_ERROR, 'error')
            return render_template('users/edit.html', user=user, roles=[r.value for r in Role]), 500

        LoggingService.log_user_action('users', 'update', details={'target_user_id': user_id, 'role': data['role']})
        flash('User updated', 'success')
        return redirect(url_for('users.users_page'))

    return render_template('users/edit.html', user=user, roles=[r.value for r in Role])


@users_bp.route('/<user_id>/delete', methods=['POST'])
@requires_roles(Role.ADMIN)
def delete_user(user_id):
    if _is_self(user_id):
        flash('You cannot delete your own account', 'error')
        return redirect(url_for('users.users_page'))

    try:
        if _service().delete_user(user_id):
            LoggingService.log_user_action('users', 'delete', details={'target_user_id': user_id})
            flash('User deleted', 'success')
        else:
            flash('User not found', 'error')
    except BackendError as e:
        LoggingService.error('users', 'Failed to delete user', {'error': str(e)})
        flash('Failed to delete user', 'error')
    return redirect(url_for('users.users_page'))


@users_bp.route('/<user_id>/reset-password', methods=['POST'])
@requires_roles(Role.ADMIN)
def reset_password(user_id):
    try:
        if _service().send_password_reset(user_id):
            flash('Password reset email sent', 'success')
        else:
            flash('User not found', 'error')
    except AuthenticationError as e:
        LoggingService.warning('users', 'Password reset refused', {'code': e.code, 'target_user_id': user_id})
        flash('Could not send a password reset email for this user', 'error')
    except BackendError as e:
        LoggingService.error('users', 'Password reset failed', {'error': str(e)})
        flash('Failed to send password reset email', 'error')
    return redirect(url_for('users.users_page'))
