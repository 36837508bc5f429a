"""
User Management
===============

Admin users live in two places: an account with the hosted auth service
(email + password) and a profile document in the users collection keyed by
the account's uid. The profile carries the role and the active flag the
access gate checks.
"""

import logging

from ...backend.query import Query
from ...core.config import Config
from ...core.dates import utcnow
from ...core.errors import AuthenticationError, BackendError
from ..auth.roles import Role

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ('display_name', 'first_name', 'last_name', 'bio', 'role', 'active')


class UserService:
    def __init__(self, store, identity, collection=None):
        self.store = store
        self.identity = identity
        self.collection = collection or Config.USERS_COLLECTION

    def list_users(self, role=None):
        query = Query(self.collection)
        if role:
            if Role.parse(role) is None:
                raise ValueError(f"Unknown role '{role}'")
            query = query.where('role', '==', Role.parse(role).value)
        return self.store.query(query.order_by('created_at', 'desc'))

    def get_user(self, user_id):
        return self.store.get(self.collection, user_id)

    def create_user(self, email, password, role, display_name=None, first_name=None, last_name=None):
        """
        Create the auth account and its profile; returns the uid

        Raises:
            ValueError: unknown role or password too short
            AuthenticationError: the auth service refused the account (e.g. EMAIL_EXISTS)
            BackendError: the profile could not be written; the new account is removed again
        """
        parsed = Role.parse(role)
        if parsed is None:
            raise ValueError(f"Unknown role '{role}'")
        if len(password or '') < 6:
            raise ValueError('Password must be at least 6 characters')

        email = email.strip().lower()
        account = self.identity.sign_up(email, password, display_name)
        uid = account['uid']
        now = utcnow()
        try:
            self.store.add(self.collection, {
                'email': email,
                'display_name': display_name or email.split('@')[0],
                'first_name': first_name or '',
                'last_name': last_name or '',
                'role': parsed.value,
                'bio': '',
                'active': True,
                'articles_count': 0,
                'created_at': now,
                'updated_at': now,
                'last_login_at': None,
            }, doc_id=uid)
        except BackendError:
            self._remove_account(account)
            raise
        logger.info(f"User created: {uid} ({parsed.value})")
        return uid

    def _remove_account(self, account):
        try:
            self.identity.delete_account(account['id_token'])
        except (AuthenticationError, BackendError) as e:
            logger.error(f"Could not remove account {account['uid']} after failed profile write: {e}")
        else:
            logger.warning(f"Removed account {account['uid']}: profile could not be written")

    def update_user(self, user_id, data):
        changes = {key: data[key] for key in PROFILE_FIELDS if key in data}
        if 'role' in changes:
            parsed = Role.parse(changes['role'])
            if parsed is None:
                raise ValueError(f"Unknown role '{changes['role']}'")
            changes['role'] = parsed.value
        if 'active' in changes:
            changes['active'] = bool(changes['active'])
        changes['updated_at'] = utcnow()
        return self.store.update(self.collection, user_id, changes)

    def delete_user(self, user_id):
        """Remove the profile; the auth account then has no access to the admin"""
        return self.store.delete(self.collection, user_id)

    def send_password_reset(self, user_id):
        """Email a password reset link; False when the user has no profile"""
        user = self.get_user(user_id)
        if user is None or not user.get('email'):
            return False
        self.identity.send_password_reset(user['email'])
        return True
