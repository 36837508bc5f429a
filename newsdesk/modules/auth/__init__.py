"""
Newsdesk Auth Module

Provides admin authentication and access control:
- Email/password sign-in against the hosted auth service
- Session refresh and sign-out
- Role-based access gate for admin views
- Role-filtered admin navigation
"""

from flask import Blueprint

auth_bp = Blueprint(
    'auth',
    __name__,
    url_prefix='/admin',
    template_folder='templates'
)

from . import routes
from .gate import requires_roles, current_session
from .roles import (Role, Session, GateDecision, ADMIN_ROLES, DEFAULT_REQUIRED_ROLES,
                    is_authorized, gate_decision, visible_navigation)
from .session import SessionManager

__all__ = ['auth_bp', 'requires_roles', 'current_session', 'Role', 'Session', 'GateDecision',
           'ADMIN_ROLES', 'DEFAULT_REQUIRED_ROLES', 'is_authorized', 'gate_decision',
           'visible_navigation', 'SessionManager']
