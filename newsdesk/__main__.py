"""
Development server

Run with:
    python -m newsdesk

Set NEWSDESK_BACKEND=memory to run without the hosted services; a demo
admin (admin@example.com / admin123) is created in that case.
"""

import logging

from flask import Flask

from . import Newsdesk
from .core.config import Config
from .core.dates import utcnow


def create_app(config=None):
    app = Flask(__name__)
    newsdesk = Newsdesk(app, config)

    if app.config['NEWSDESK_BACKEND'] == 'memory':
        _seed_demo_admin(newsdesk)
    return app


def _seed_demo_admin(newsdesk):
    uid = newsdesk.identity.create_account('admin@example.com', 'admin123', 'Demo Admin')
    now = utcnow()
    newsdesk.store.add(Config.USERS_COLLECTION, {
        'email': 'admin@example.com',
        'display_name': 'Demo Admin',
        'role': 'admin',
        'active': True,
        'created_at': now,
        'updated_at': now,
    }, doc_id=uid)


def main():
    logging.basicConfig(level=logging.INFO)
    app = create_app()

    print("\n" + "=" * 60)
    print(f"{app.config['BRAND_NAME']} admin")
    print("=" * 60)
    print(f"Homepage:        http://localhost:{Config.port}")
    print(f"Admin Panel:     http://localhost:{Config.port}/admin")
    print(f"Admin Login:     http://localhost:{Config.port}/admin/login")
    print("=" * 60 + "\n")

    app.run(host='0.0.0.0', port=Config.port, debug=True)


if __name__ == '__main__':
    main()
