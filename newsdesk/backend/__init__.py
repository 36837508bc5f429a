"""
Newsdesk Backends
=================

Data-access boundary to the hosted document database and authentication
service. ``build_backend`` picks the implementation from configuration:

- ``firestore``: Cloud Firestore + Identity Toolkit REST APIs
- ``memory``: in-process store and identity for development and tests

Both expose the same methods:

    store.get / add / update / delete / increment / query / count
    identity.sign_in_with_password / refresh / lookup / sign_up / delete_account / send_password_reset
"""

from .query import Query
from .firestore import FirestoreClient
from .identity import IdentityClient
from .memory import InMemoryDocumentStore, InMemoryIdentity


def build_backend(config, token_provider=None):
    """
    Create (store, identity) for the configured backend

    Args:
        config: mapping of configuration values (usually app.config)
        token_provider: callable returning the signed-in user's id token
    """
    backend = config.get('NEWSDESK_BACKEND') or 'firestore'
    if backend == 'memory':
        return InMemoryDocumentStore(), InMemoryIdentity()

    timeout = float(config.get('BACKEND_TIMEOUT') or 15)
    store = FirestoreClient(
        project_id=config['FIREBASE_PROJECT_ID'],
        api_key=config['FIREBASE_API_KEY'],
        token_provider=token_provider,
        timeout=timeout,
    )
    identity = IdentityClient(config['FIREBASE_API_KEY'], timeout=timeout)
    return store, identity


__all__ = ['Query', 'FirestoreClient', 'IdentityClient', 'InMemoryDocumentStore',
           'InMemoryIdentity', 'build_backend']
