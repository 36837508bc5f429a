"""
Users Module

Admin-only management of staff accounts, roles and activation.
"""

from flask import Blueprint

users_bp = Blueprint(
    'users',
    __name__,
    url_prefix='/admin/users',
    template_folder='templates'
)

from . import routes
from .service import UserService

__all__ = ['users_bp', 'UserService']
