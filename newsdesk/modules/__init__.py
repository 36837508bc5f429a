"""
Newsdesk Modules
================

Each feature is a Flask blueprint package with its own routes and
templates. The Newsdesk extension registers them; they can also be
registered by hand:

    from newsdesk.modules.auth import auth_bp
    app.register_blueprint(auth_bp)
"""
