"""
Admin Auth Routes
=================

Login, logout and the unauthorized landing page.
"""

from flask import current_app, render_template, request, redirect, url_for, flash, jsonify, session as cookie

from . import auth_bp
from .gate import session_manager
from ...core.errors import AuthenticationError, BackendError
from ...core.logging_service import LoggingService


def _safe_next(target):
    """Only follow relative in-app redirects"""
    if target and target.startswith('/') and not target.startswith('//'):
        return target
    return None


@auth_bp.route('/login', methods=['GET', 'POST'])
def login():
    """Admin login route"""
    if request.method == 'POST':
        email = request.form.get('email', '').strip().lower()
        password = request.form.get('password', '')

        if not email or not password:
            flash('Please enter both email and password', 'error')
            return render_template('auth/login.html'), 400

        try:
            session = session_manager().sign_in(email, password)
        except AuthenticationError as e:
            flash(e.message, 'error')
            return render_template('auth/login.html'), 401
        except BackendError as e:
            LoggingService.error('auth', 'Login failed: backend unavailable', {'error': str(e)})
            flash('Sign-in is temporarily unavailable. Please try again.', 'error')
            return render_template('auth/login.html'), 503

        flash(f"Welcome back{', ' + session.display_name if session.display_name else ''}", 'success')
        return redirect(_safe_next(request.args.get('next')) or url_for('admin.dashboard'))

    return render_template('auth/login.html')


@auth_bp.route('/logout')
def logout():
    """Admin logout route"""
    manager = session_manager()
    user_id = cookie.get('uid')
    manager.sign_out()
    if user_id:
        current_app.extensions['newsdesk'].dashboards.discard(user_id)
    LoggingService.log_user_action('auth', 'logout')
    flash('You have been logged out', 'info')
    return redirect(url_for('auth.login'))


@auth_bp.route('/unauthorized')
def unauthorized():
    """Shown when a signed-in user lacks the role a page requires"""
    return render_template('auth/unauthorized.html'), 403


@auth_bp.route('/session')
def session_status():
    """Check admin login status (API endpoint)"""
    session = session_manager().refresh()
    if session is None:
        return jsonify({'logged_in': False}), 401
    return jsonify({
        'logged_in': True,
        'user_id': session.user_id,
        'display_name': session.display_name,
        'email': session.email,
        'role': session.role.value if session.role else None,
    })
