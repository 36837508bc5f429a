"""
Newsletter Module

Admin view of newsletter subscribers with CSV export. Public
subscribe/unsubscribe endpoints live in the public module.
"""

from flask import Blueprint

newsletter_bp = Blueprint(
    'newsletter',
    __name__,
    url_prefix='/admin/newsletter',
    template_folder='templates'
)

from . import routes
from .service import NewsletterService, AlreadySubscribedError

__all__ = ['newsletter_bp', 'NewsletterService', 'AlreadySubscribedError']
