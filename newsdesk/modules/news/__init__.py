"""
News Admin Module
=================

Admin interface for article management.

Provides:
- Article listing with status, featured and category filters
- Creation and editing with automatic slugs
- Draft/publish/archive workflow and featured flag
"""

from flask import Blueprint

news_bp = Blueprint(
    'news_admin',
    __name__,
    url_prefix='/admin/articles',
    template_folder='templates'
)

from . import routes
from .service import ArticleService

__all__ = ['news_bp', 'ArticleService']
