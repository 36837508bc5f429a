"""
Newsdesk Flask Extension
========================

``Newsdesk(app)`` wires the admin into a Flask application:

- copies deployment configuration into ``app.config`` and validates it
  (missing required keys stop the app from starting)
- builds the document store, identity client and session manager
- registers the enabled feature blueprints
- registers Jinja filters and the template context (brand, navigation)

Usage:
    from flask import Flask
    from newsdesk import Newsdesk

    app = Flask(__name__)
    Newsdesk(app, {'features': {'newsletter': False}, 'brand_name': 'Daily Wire'})
"""

import logging

from flask import current_app

from .config import CONFIG_KEYS, Config, origin_list, validate_config
from .helpers import format_change, format_date, slugify, truncate_text

logger = logging.getLogger(__name__)

# Feature name -> (module path, blueprint attribute)
MODULES = {
    'auth': ('newsdesk.modules.auth', 'auth_bp'),
    'dashboard': ('newsdesk.modules.dashboard', 'dashboard_bp'),
    'news': ('newsdesk.modules.news', 'news_bp'),
    'categories': ('newsdesk.modules.categories', 'categories_bp'),
    'comments': ('newsdesk.modules.comments', 'comments_bp'),
    'contact': ('newsdesk.modules.contact', 'contact_bp'),
    'newsletter': ('newsdesk.modules.newsletter', 'newsletter_bp'),
    'users': ('newsdesk.modules.users', 'users_bp'),
    'public': ('newsdesk.modules.public', 'public_bp'),
}

# The admin cannot run without these
REQUIRED_MODULES = ('auth', 'dashboard')


class Newsdesk:
    """
    Flask extension for the Newsdesk admin

    Args:
        app: Flask application (or None to call init_app later)
        config: optional dict with
            features: {module name: bool} to switch modules off
            brand_name: name shown in the admin header
            store / identity: pre-built backends (tests, custom deployments)
    """

    def __init__(self, app=None, config=None):
        self.config = config or {}
        self.store = None
        self.identity = None
        self.sessions = None
        self.dashboards = None
        self._registered = []
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        from ..backend import build_backend
        from ..modules.auth.session import SessionManager, cookie_id_token
        from ..modules.dashboard.state import ControllerRegistry
        from ..modules.dashboard.stats import DashboardAggregator

        for key in CONFIG_KEYS:
            if not app.config.get(key):
                app.config[key] = getattr(Config, key)
        if self.config.get('brand_name'):
            app.config['BRAND_NAME'] = self.config['brand_name']
        # read by flask_cors on every public API request
        app.config['CORS_ORIGINS'] = origin_list(app.config['CORS_ORIGINS'])

        validate_config(app.config)

        self.store = self.config.get('store')
        self.identity = self.config.get('identity')
        if self.store is None or self.identity is None:
            store, identity = build_backend(app.config, token_provider=cookie_id_token)
            self.store = self.store or store
            self.identity = self.identity or identity
        self.sessions = SessionManager(self.identity, self.store)
        self.dashboards = ControllerRegistry(
            lambda date_range: DashboardAggregator(self.store).get_stats(date_range))

        app.extensions['newsdesk'] = self

        self._register_modules(app)
        self._register_filters(app)
        self._register_context(app)

        logger.info(f"Newsdesk initialised ({app.config['NEWSDESK_BACKEND']} backend, "
                    f"modules: {', '.join(self._registered)})")

    def _feature_enabled(self, name):
        if name in REQUIRED_MODULES:
            return True
        return self.config.get('features', {}).get(name, True)

    def _register_modules(self, app):
        import importlib

        for name, (module_path, attr) in MODULES.items():
            if not self._feature_enabled(name):
                continue
            module = importlib.import_module(module_path)
            app.register_blueprint(getattr(module, attr))
            self._registered.append(name)

    def _register_filters(self, app):
        app.jinja_env.filters['slugify'] = slugify
        app.jinja_env.filters['truncate_text'] = truncate_text
        app.jinja_env.filters['format_date'] = format_date
        app.jinja_env.filters['format_change'] = format_change

    def _register_context(self, app):
        from ..modules.auth.gate import current_session
        from ..modules.auth.roles import visible_navigation

        @app.context_processor
        def inject_newsdesk():
            session = current_session()
            return {
                'newsdesk_config': self.config,
                'brand_name': app.config.get('BRAND_NAME') or 'Newsdesk',
                'current_session': session,
                'navigation': visible_navigation(session, set(app.view_functions)),
            }

    def get_registered_modules(self):
        return list(self._registered)


def get_extension() -> Newsdesk:
    return current_app.extensions['newsdesk']


def get_store():
    """Document store of the current app"""
    return get_extension().store


def get_identity():
    """Identity service of the current app"""
    return get_extension().identity
