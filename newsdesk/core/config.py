import os
from dotenv import load_dotenv

from .errors import ConfigurationError

load_dotenv(override=True)

class Config:
    """
    Base configuration for the Newsdesk admin.
    Deployments provide backend credentials via environment variables.
    """
    # Flask settings
    SECRET_KEY = os.getenv('FLASK_SECRET_KEY')

    # Backend selection: 'firestore' (hosted) or 'memory' (local development)
    NEWSDESK_BACKEND = os.getenv('NEWSDESK_BACKEND', 'firestore')

    # Hosted backend credentials
    FIREBASE_API_KEY = os.getenv('FIREBASE_API_KEY')
    FIREBASE_PROJECT_ID = os.getenv('FIREBASE_PROJECT_ID')
    FIREBASE_AUTH_DOMAIN = os.getenv('FIREBASE_AUTH_DOMAIN')
    FIREBASE_STORAGE_BUCKET = os.getenv('FIREBASE_STORAGE_BUCKET')

    # Seconds before a backend HTTP call is abandoned
    BACKEND_TIMEOUT = float(os.getenv('BACKEND_TIMEOUT', '15'))

    # Origins allowed to call the public API (comma separated)
    CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*')

    BRAND_NAME = os.getenv('BRAND_NAME', 'Newsdesk')

    # Collection names
    ARTICLES_COLLECTION = 'articles'
    CATEGORIES_COLLECTION = 'categories'
    COMMENTS_COLLECTION = 'comments'
    CONTACT_COLLECTION = 'contact_messages'
    NEWSLETTER_COLLECTION = 'newsletter_subscribers'
    USERS_COLLECTION = 'users'
    PAGE_VIEWS_COLLECTION = 'page_views'

    # Port for local server
    port = int(os.getenv('PORT', '5000'))


# Keys copied into app.config when the app does not set them itself
CONFIG_KEYS = (
    'SECRET_KEY', 'NEWSDESK_BACKEND', 'FIREBASE_API_KEY', 'FIREBASE_PROJECT_ID',
    'FIREBASE_AUTH_DOMAIN', 'FIREBASE_STORAGE_BUCKET', 'BACKEND_TIMEOUT',
    'CORS_ORIGINS', 'BRAND_NAME',
)

REQUIRED_KEYS = {
    'firestore': ('SECRET_KEY', 'FIREBASE_API_KEY', 'FIREBASE_PROJECT_ID'),
    'memory': ('SECRET_KEY',),
}


def get_config_value(key, default=None):
    """Get configuration value: Flask app config first, then Config, then env var"""
    try:
        from flask import current_app
        val = current_app.config.get(key)
        if val:
            return val
    except RuntimeError:
        pass
    val = getattr(Config, key, None)
    if val:
        return val
    return os.getenv(key, default)


def origin_list(value):
    """Comma separated origins as a list (lists pass through)"""
    if isinstance(value, str):
        return [origin.strip() for origin in value.split(',') if origin.strip()]
    return list(value or [])


def validate_config(config):
    """
    Check that everything the selected backend needs is present.

    Args:
        config: mapping of configuration values (usually app.config)

    Raises:
        ConfigurationError: backend is unknown or required keys are missing
    """
    backend = config.get('NEWSDESK_BACKEND') or 'firestore'
    if backend not in REQUIRED_KEYS:
        raise ConfigurationError(f"Unknown NEWSDESK_BACKEND '{backend}' (expected one of {sorted(REQUIRED_KEYS)})")

    missing = [key for key in REQUIRED_KEYS[backend] if not config.get(key)]
    if missing:
        raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")
