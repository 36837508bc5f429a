"""
Access Gate
===========

View decorator wrapping every protected admin page and API endpoint.
The session refresh always completes before the decision is made, so
protected content is never produced for a visitor who fails the check.
"""

from functools import wraps

from flask import current_app, g, jsonify, redirect, request, url_for

from ...core.logging_service import LoggingService
from .roles import DEFAULT_REQUIRED_ROLES, GateDecision, Role, gate_decision


def session_manager():
    return current_app.extensions['newsdesk'].sessions


def current_session():
    """Session established by the gate for this request (None outside gated views)"""
    return g.get('current_session')


def requires_roles(*roles, api=False):
    """
    Decorator to require a signed-in user whose role is in ``roles``

    Args:
        roles: Role members (or their string values); defaults to admin/editor/author
        api: answer 401/403 JSON instead of redirecting
    """
    required = frozenset(Role(r) for r in roles) if roles else DEFAULT_REQUIRED_ROLES

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            session = session_manager().refresh()
            decision = gate_decision(session, required)

            if decision is GateDecision.LOGIN:
                if api:
                    return jsonify({'error': 'Authentication required'}), 401
                return redirect(url_for('auth.login', next=request.path))

            if decision is GateDecision.UNAUTHORIZED:
                LoggingService.log_security_event('Access denied', {
                    'path': request.path,
                    'user_id': session.user_id,
                    'role': session.role.value if session.role else None,
                    'required': sorted(r.value for r in required),
                })
                if api:
                    return jsonify({'error': 'Insufficient permissions'}), 403
                return redirect(url_for('auth.unauthorized'))

            g.current_session = session
            return f(*args, **kwargs)
        return decorated_function
    return decorator
