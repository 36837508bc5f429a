"""
Newsdesk - Admin Dashboard for a News Platform
==============================================

A modular Flask admin for a news site backed by a hosted document database
and authentication service:
- Role-gated admin area (admin / editor / author)
- Statistics dashboard with date range presets
- Article, category, comment, contact, newsletter and user management

Usage:
    from flask import Flask
    from newsdesk import Newsdesk

    app = Flask(__name__)
    Newsdesk(app)
"""

__version__ = '0.1.0'

from .core.extension import Newsdesk

__all__ = ['Newsdesk']
