"""
Comments Module

Moderation queue for reader comments: approve, reject, delete.
"""

from flask import Blueprint

comments_bp = Blueprint(
    'comments',
    __name__,
    url_prefix='/admin/comments',
    template_folder='templates'
)

from . import routes
from .service import CommentService

__all__ = ['comments_bp', 'CommentService']
