"""
Identity REST Client
====================

Password sign-in, token refresh and account management against the
hosted authentication service (Identity Toolkit + Secure Token APIs).
"""

import logging

import requests

from ..core.errors import AuthenticationError, BackendError

logger = logging.getLogger(__name__)

IDENTITY_BASE = "https://identitytoolkit.googleapis.com/v1"
TOKEN_URL = "https://securetoken.googleapis.com/v1/token"


class IdentityClient:
    """Hosted authentication service client"""

    def __init__(self, api_key, timeout=15, http=None):
        self.api_key = api_key
        self.timeout = timeout
        self.http = http or requests.Session()

    def _post(self, url, json=None, data=None):
        try:
            resp = self.http.post(url, params={'key': self.api_key}, json=json, data=data, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Identity call {url} failed: {e}")
            raise BackendError(f"Authentication service unreachable: {e}") from e

        if resp.status_code == 400:
            # Provider reports rejected credentials/tokens as 400 with an error code
            try:
                code = resp.json().get('error', {}).get('message', 'UNKNOWN')
            except ValueError:
                code = 'UNKNOWN'
            raise AuthenticationError(code.split(' ')[0])
        if resp.status_code >= 400:
            logger.error(f"Identity call {url} returned {resp.status_code}: {resp.text}")
            raise BackendError(f"Authentication service error {resp.status_code}", resp.status_code)

        return resp.json()

    @staticmethod
    def _tokens(payload):
        return {
            'uid': payload.get('localId') or payload.get('user_id'),
            'id_token': payload.get('idToken') or payload.get('id_token'),
            'refresh_token': payload.get('refreshToken') or payload.get('refresh_token'),
            'expires_in': int(payload.get('expiresIn') or payload.get('expires_in') or 3600),
            'email': payload.get('email'),
            'display_name': payload.get('displayName'),
        }

    def sign_in_with_password(self, email, password):
        """Returns {uid, id_token, refresh_token, expires_in, email, display_name}"""
        payload = self._post(f"{IDENTITY_BASE}/accounts:signInWithPassword", json={
            'email': email,
            'password': password,
            'returnSecureToken': True,
        })
        return self._tokens(payload)

    def refresh(self, refresh_token):
        """Exchange a refresh token for a fresh id token"""
        payload = self._post(TOKEN_URL, data={
            'grant_type': 'refresh_token',
            'refresh_token': refresh_token,
        })
        return self._tokens(payload)

    def lookup(self, id_token):
        """Account record for an id token, or None when the token names no account"""
        payload = self._post(f"{IDENTITY_BASE}/accounts:lookup", json={'idToken': id_token})
        users = payload.get('users') or []
        if not users:
            return None
        user = users[0]
        return {
            'uid': user.get('localId'),
            'email': user.get('email'),
            'display_name': user.get('displayName'),
            'disabled': bool(user.get('disabled', False)),
        }

    def sign_up(self, email, password, display_name=None):
        """Create an account; returns the new account's tokens (same shape as sign-in)"""
        payload = self._post(f"{IDENTITY_BASE}/accounts:signUp", json={
            'email': email,
            'password': password,
            'displayName': display_name,
            'returnSecureToken': True,
        })
        return self._tokens(payload)

    def delete_account(self, id_token):
        """Delete the account the id token belongs to"""
        self._post(f"{IDENTITY_BASE}/accounts:delete", json={'idToken': id_token})
        return True

    def send_password_reset(self, email):
        self._post(f"{IDENTITY_BASE}/accounts:sendOobCode", json={
            'requestType': 'PASSWORD_RESET',
            'email': email,
        })
        return True
