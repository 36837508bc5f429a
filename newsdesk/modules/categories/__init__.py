"""
Categories Module

Admin management of the categories articles are filed under.
"""

from flask import Blueprint

categories_bp = Blueprint(
    'categories',
    __name__,
    url_prefix='/admin/categories',
    template_folder='templates'
)

from . import routes
from .service import CategoryService

__all__ = ['categories_bp', 'CategoryService']
