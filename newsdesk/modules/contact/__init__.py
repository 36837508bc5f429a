"""
Contact Module

Admin inbox for messages sent through the public contact form.
"""

from flask import Blueprint

contact_bp = Blueprint(
    'contact',
    __name__,
    url_prefix='/admin/contact',
    template_folder='templates'
)

from . import routes
from .service import ContactService

__all__ = ['contact_bp', 'ContactService']
