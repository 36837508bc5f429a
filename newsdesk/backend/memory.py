"""
In-Memory Backend
=================

Process-local document store and identity service with the same interface
as the hosted clients. Selected with NEWSDESK_BACKEND=memory for local
development and used by the test-suite.
"""

import copy
import secrets
import threading
from datetime import date, datetime

from werkzeug.security import check_password_hash, generate_password_hash

from ..core.dates import FirestoreTimestamp, EpochMillis, to_datetime
from ..core.errors import AuthenticationError

_MISSING = object()


def _normalize(value):
    if isinstance(value, (datetime, date, FirestoreTimestamp, EpochMillis)):
        return to_datetime(value)
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    if isinstance(value, dict):
        return {k: _normalize(v) for k, v in value.items()}
    return value


def _lookup(data, field_path):
    current = data
    for part in field_path.split('.'):
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current


def _sort_key(value):
    # nulls sort first, as in the hosted database
    return (value is not None, value)


def _matches(data, flt):
    actual = _lookup(data, flt.field)
    if actual is _MISSING:
        return False
    expected = _normalize(flt.value)
    try:
        if flt.op == '==':
            return actual == expected
        if flt.op == '!=':
            return actual is not None and actual != expected
        if flt.op == '<':
            return actual < expected
        if flt.op == '<=':
            return actual <= expected
        if flt.op == '>':
            return actual > expected
        if flt.op == '>=':
            return actual >= expected
        if flt.op == 'array-contains':
            return isinstance(actual, list) and expected in actual
        if flt.op == 'in':
            return actual in expected
    except TypeError:
        # mixed types never compare in the hosted database either
        return False
    raise ValueError(f"Unsupported query operator: {flt.op}")


class InMemoryDocumentStore:
    """Dict-backed document store"""

    def __init__(self):
        self._collections = {}
        self._lock = threading.Lock()

    def _collection(self, name):
        return self._collections.setdefault(name, {})

    def get(self, collection, doc_id):
        with self._lock:
            data = self._collection(collection).get(doc_id)
            if data is None:
                return None
            result = copy.deepcopy(data)
        result['id'] = doc_id
        return result

    def add(self, collection, data, doc_id=None):
        doc_id = doc_id or secrets.token_hex(10)
        record = {k: _normalize(v) for k, v in data.items() if k != 'id'}
        with self._lock:
            self._collection(collection)[doc_id] = record
        return doc_id

    def update(self, collection, doc_id, data):
        with self._lock:
            docs = self._collection(collection)
            if doc_id not in docs:
                return False
            docs[doc_id].update({k: _normalize(v) for k, v in data.items() if k != 'id'})
            return True

    def delete(self, collection, doc_id):
        with self._lock:
            return self._collection(collection).pop(doc_id, None) is not None

    def increment(self, collection, doc_id, field_path, amount=1):
        with self._lock:
            record = self._collection(collection).setdefault(doc_id, {})
            record[field_path] = (record.get(field_path) or 0) + amount

    def query(self, query):
        with self._lock:
            rows = [dict(copy.deepcopy(data), id=doc_id)
                    for doc_id, data in self._collection(query.collection).items()]

        rows = [row for row in rows if all(_matches(row, f) for f in query.filters)]

        # documents lacking an ordered field are left out, like the hosted database
        for order in query.orders:
            rows = [row for row in rows if _lookup(row, order.field) is not _MISSING]
        for order in reversed(query.orders):
            rows.sort(key=lambda row, path=order.field: _sort_key(_lookup(row, path)),
                      reverse=order.descending)

        rows = rows[query.offset_count:]
        if query.limit_count is not None:
            rows = rows[:query.limit_count]
        return rows

    def count(self, query):
        return len(self.query(query.limit(None).offset(0)))


class InMemoryIdentity:
    """Password accounts and opaque tokens kept in process memory"""

    def __init__(self):
        self._accounts = {}
        self._id_tokens = {}
        self._refresh_tokens = {}
        self.password_resets = []

    def create_account(self, email, password, display_name=None, uid=None, disabled=False):
        email = email.strip().lower()
        if email in self._accounts:
            raise AuthenticationError('EMAIL_EXISTS')
        uid = uid or secrets.token_hex(14)
        self._accounts[email] = {
            'uid': uid,
            'email': email,
            'password_hash': generate_password_hash(password),
            'display_name': display_name,
            'disabled': disabled,
        }
        return uid

    def _issue(self, account):
        id_token = secrets.token_urlsafe(24)
        refresh_token = secrets.token_urlsafe(24)
        self._id_tokens[id_token] = account['email']
        self._refresh_tokens[refresh_token] = (account['email'], id_token)
        return {
            'uid': account['uid'],
            'id_token': id_token,
            'refresh_token': refresh_token,
            'expires_in': 3600,
            'email': account['email'],
            'display_name': account['display_name'],
        }

    def sign_in_with_password(self, email, password):
        account = self._accounts.get((email or '').strip().lower())
        if not account or not check_password_hash(account['password_hash'], password or ''):
            raise AuthenticationError('INVALID_LOGIN_CREDENTIALS')
        if account['disabled']:
            raise AuthenticationError('USER_DISABLED')
        return self._issue(account)

    def refresh(self, refresh_token):
        email, old_id_token = self._refresh_tokens.pop(refresh_token, (None, None))
        if email is None or email not in self._accounts:
            raise AuthenticationError('INVALID_REFRESH_TOKEN')
        self._id_tokens.pop(old_id_token, None)
        return self._issue(self._accounts[email])

    def lookup(self, id_token):
        email = self._id_tokens.get(id_token)
        if email is None:
            raise AuthenticationError('INVALID_ID_TOKEN')
        account = self._accounts.get(email)
        if account is None:
            return None
        return {
            'uid': account['uid'],
            'email': account['email'],
            'display_name': account['display_name'],
            'disabled': account['disabled'],
        }

    def sign_up(self, email, password, display_name=None):
        self.create_account(email, password, display_name)
        return self._issue(self._accounts[email.strip().lower()])

    def delete_account(self, id_token):
        email = self._id_tokens.get(id_token)
        if email is None:
            raise AuthenticationError('INVALID_ID_TOKEN')
        self._accounts.pop(email, None)
        self._id_tokens = {t: e for t, e in self._id_tokens.items() if e != email}
        self._refresh_tokens = {t: v for t, v in self._refresh_tokens.items() if v[0] != email}
        return True

    def send_password_reset(self, email):
        if (email or '').strip().lower() not in self._accounts:
            raise AuthenticationError('EMAIL_NOT_FOUND')
        self.password_resets.append(email.strip().lower())
        return True

    def revoke(self, id_token):
        """Invalidate an id token (used to simulate expiry)"""
        self._id_tokens.pop(id_token, None)
