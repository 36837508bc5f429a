"""
Public Module

Landing page and the endpoints the public news site calls: contact form
submission and newsletter subscribe/unsubscribe.
"""

from flask import Blueprint

public_bp = Blueprint(
    'public',
    __name__,
    template_folder='templates'
)

from . import routes

__all__ = ['public_bp']
