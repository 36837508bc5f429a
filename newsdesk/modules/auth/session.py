"""
Session Management
==================

SessionManager owns the signed-in user's lifecycle:

- sign_in:  password sign-in, profile and role checks, tokens into the cookie
- refresh:  run before every gate evaluation; any failure means signed out
- sign_out: clear everything

Tokens live in the signed Flask session cookie. One manager is created per
app by the Newsdesk extension and handed to the gate; nothing here is a
module-level singleton.
"""

import logging
import time
from typing import Optional

from flask import has_request_context, session as cookie

from ...core.config import Config
from ...core.dates import utcnow
from ...core.errors import AuthenticationError, BackendError
from ...core.logging_service import LoggingService
from .roles import ADMIN_ROLES, Role, Session

logger = logging.getLogger(__name__)

# Refresh this many seconds before the provider's expiry
EXPIRY_MARGIN = 60

_COOKIE_KEYS = ('uid', 'id_token', 'refresh_token', 'token_expires_at')

SIGN_IN_MESSAGES = {
    'EMAIL_NOT_FOUND': 'Invalid email or password',
    'INVALID_PASSWORD': 'Invalid email or password',
    'INVALID_LOGIN_CREDENTIALS': 'Invalid email or password',
    'INVALID_EMAIL': 'Invalid email or password',
    'USER_DISABLED': 'Your account has been deactivated. Contact the administrator.',
    'TOO_MANY_ATTEMPTS_TRY_LATER': 'Too many failed attempts. Please try again later.',
    'PROFILE_NOT_FOUND': 'User not found in the database',
    'INSUFFICIENT_ROLE': 'Access denied. You do not have sufficient rights.',
    'ACCOUNT_DISABLED': 'Your account has been deactivated. Contact the administrator.',
}


def cookie_id_token():
    """Token provider for the document store: the signed-in user's id token"""
    if not has_request_context():
        return None
    return cookie.get('id_token')


class SessionManager:
    """Sign-in state for the admin area"""

    def __init__(self, identity, store, users_collection=None):
        self.identity = identity
        self.store = store
        self.users_collection = users_collection or Config.USERS_COLLECTION

    # --- cookie handling ---

    def _save_tokens(self, tokens):
        cookie['uid'] = tokens['uid']
        cookie['id_token'] = tokens['id_token']
        cookie['refresh_token'] = tokens['refresh_token']
        cookie['token_expires_at'] = time.time() + tokens.get('expires_in', 3600)

    def _token_expired(self):
        expires_at = cookie.get('token_expires_at') or 0
        return time.time() >= expires_at - EXPIRY_MARGIN

    # --- profile checks ---

    def _profile_problem(self, profile):
        """Error code when a profile may not use the admin area, else None"""
        if profile is None:
            return 'PROFILE_NOT_FOUND'
        if Role.parse(profile.get('role')) not in ADMIN_ROLES:
            return 'INSUFFICIENT_ROLE'
        if not profile.get('active', False):
            return 'ACCOUNT_DISABLED'
        return None

    @staticmethod
    def _to_session(uid, profile, account=None):
        account = account or {}
        return Session(
            user_id=uid,
            role=Role.parse(profile.get('role')),
            display_name=profile.get('display_name') or account.get('display_name'),
            email=profile.get('email') or account.get('email'),
        )

    # --- lifecycle ---

    def sign_in(self, email, password) -> Session:
        """
        Sign in with email and password

        Raises:
            AuthenticationError: credentials rejected or user not allowed in
                (``message`` is safe to show)
            BackendError: the hosted services could not be reached
        """
        try:
            tokens = self.identity.sign_in_with_password(email, password)
        except AuthenticationError as e:
            LoggingService.log_security_event('Failed admin login', {'email': email, 'code': e.code})
            raise AuthenticationError(e.code, SIGN_IN_MESSAGES.get(e.code, 'Sign-in failed')) from e

        self._save_tokens(tokens)
        uid = tokens['uid']
        profile = self.store.get(self.users_collection, uid)

        problem = self._profile_problem(profile)
        if problem:
            self.sign_out()
            LoggingService.log_security_event('Admin login refused', {'email': email, 'code': problem})
            raise AuthenticationError(problem, SIGN_IN_MESSAGES[problem])

        try:
            self.store.update(self.users_collection, uid, {'last_login_at': utcnow()})
        except BackendError as e:
            logger.warning(f"Could not record last login for {uid}: {e}")

        LoggingService.log_user_action('auth', 'login', user_id=uid)
        return self._to_session(uid, profile, tokens)

    def refresh(self) -> Optional[Session]:
        """
        Re-validate the cookie session against the hosted services

        Returns the current Session, or None (and clears the cookie) when the
        visitor is not signed in or any check fails. Never retries.
        """
        uid = cookie.get('uid')
        if not uid:
            return None

        try:
            if self._token_expired():
                tokens = self.identity.refresh(cookie.get('refresh_token'))
                self._save_tokens(tokens)

            account = self.identity.lookup(cookie.get('id_token'))
            if account is None or account.get('disabled') or account.get('uid') != uid:
                self.sign_out()
                return None

            profile = self.store.get(self.users_collection, uid)
        except (AuthenticationError, BackendError) as e:
            logger.info(f"Session refresh failed for {uid}: {e}")
            self.sign_out()
            return None

        if self._profile_problem(profile):
            self.sign_out()
            return None

        return self._to_session(uid, profile, account)

    def sign_out(self):
        for key in _COOKIE_KEYS:
            cookie.pop(key, None)
