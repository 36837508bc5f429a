"""
Backend clients: Firestore value codec and structured queries, HTTP error
mapping for the REST clients (requests mocked), and the in-memory store.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
import requests

from newsdesk.backend import (FirestoreClient, IdentityClient, InMemoryDocumentStore,
                              InMemoryIdentity, Query)
from newsdesk.backend.firestore import (build_structured_query, decode_document, decode_value,
                                        encode_value)
from newsdesk.core.dates import FirestoreTimestamp
from newsdesk.core.errors import AuthenticationError, BackendError, PermissionDeniedError


def _response(status_code=200, payload=None, text=''):
    resp = MagicMock()
    resp.status_code = status_code
    resp.content = b'x' if payload is not None else b''
    resp.json.return_value = payload
    resp.text = text
    return resp


@pytest.fixture
def http():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def firestore(http):
    return FirestoreClient('demo', api_key='k', token_provider=lambda: 'id-token', http=http)


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------

def test_encode_scalars():
    assert encode_value(None) == {'nullValue': None}
    assert encode_value(True) == {'booleanValue': True}
    assert encode_value(3) == {'integerValue': '3'}
    assert encode_value(1.5) == {'doubleValue': 1.5}
    assert encode_value('hi') == {'stringValue': 'hi'}


def test_encode_timestamp_variants_agree():
    when = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
    expected = {'timestampValue': '2024-03-01T12:00:00.000000Z'}
    assert encode_value(when) == expected
    assert encode_value(FirestoreTimestamp.from_datetime(when)) == expected


def test_encode_nested():
    assert encode_value({'tags': ['a']}) == {
        'mapValue': {'fields': {'tags': {'arrayValue': {'values': [{'stringValue': 'a'}]}}}}
    }


def test_encode_rejects_unknown_types():
    with pytest.raises(TypeError):
        encode_value(object())


def test_decode_document():
    document = {
        'name': 'projects/demo/databases/(default)/documents/articles/abc123',
        'fields': {
            'title': {'stringValue': 'Hello'},
            'view_count': {'integerValue': '42'},
            'published_at': {'timestampValue': '2024-03-01T12:00:00.123456789Z'},
            'category_ids': {'arrayValue': {}},
            'author': {'referenceValue': 'projects/demo/databases/(default)/documents/users/u1'},
        },
    }
    data = decode_document(document)
    assert data == {
        'id': 'abc123',
        'title': 'Hello',
        'view_count': 42,
        'published_at': datetime(2024, 3, 1, 12, 0, 0, 123456, tzinfo=timezone.utc),
        'category_ids': [],
        'author': 'u1',
    }


def test_decode_unknown_value():
    with pytest.raises(ValueError):
        decode_value({'mysteryValue': 1})


def test_structured_query():
    query = (Query('articles')
             .where('status', '==', 'published')
             .where('category_ids', 'array-contains', 'c1')
             .order_by('published_at', 'desc')
             .limit(5)
             .offset(10))
    assert build_structured_query(query) == {
        'from': [{'collectionId': 'articles'}],
        'where': {'compositeFilter': {'op': 'AND', 'filters': [
            {'fieldFilter': {'field': {'fieldPath': 'status'}, 'op': 'EQUAL',
                             'value': {'stringValue': 'published'}}},
            {'fieldFilter': {'field': {'fieldPath': 'category_ids'}, 'op': 'ARRAY_CONTAINS',
                             'value': {'stringValue': 'c1'}}},
        ]}},
        'orderBy': [{'field': {'fieldPath': 'published_at'}, 'direction': 'DESCENDING'}],
        'limit': 5,
        'offset': 10,
    }


def test_single_filter_is_not_composite():
    structured = build_structured_query(Query('users').where('active', '==', True))
    assert 'fieldFilter' in structured['where']


def test_query_rejects_unknown_operator():
    with pytest.raises(ValueError):
        Query('articles').where('title', 'like', 'x')


# ---------------------------------------------------------------------------
# Firestore client
# ---------------------------------------------------------------------------

def test_get_sends_token_and_key(firestore, http):
    http.request.return_value = _response(payload={
        'name': 'projects/demo/databases/(default)/documents/users/u1',
        'fields': {'role': {'stringValue': 'admin'}},
    })

    assert firestore.get('users', 'u1') == {'id': 'u1', 'role': 'admin'}

    method, url = http.request.call_args.args
    kwargs = http.request.call_args.kwargs
    assert method == 'GET'
    assert url.endswith('/documents/users/u1')
    assert ('key', 'k') in kwargs['params']
    assert kwargs['headers']['Authorization'] == 'Bearer id-token'


def test_get_missing_document_is_none(firestore, http):
    http.request.return_value = _response(404, {'error': {}})
    assert firestore.get('users', 'nobody') is None


def test_permission_denied(firestore, http):
    http.request.return_value = _response(403, {'error': {}})
    with pytest.raises(PermissionDeniedError):
        firestore.get('users', 'u1')


def test_server_error(firestore, http):
    http.request.return_value = _response(500, {'error': {}}, text='boom')
    with pytest.raises(BackendError) as excinfo:
        firestore.query(Query('articles'))
    assert excinfo.value.status_code == 500


def test_network_error(firestore, http):
    http.request.side_effect = requests.ConnectionError('no route')
    with pytest.raises(BackendError):
        firestore.count(Query('articles'))


def test_update_uses_field_mask(firestore, http):
    http.request.return_value = _response(payload={'name': '.../articles/a1'})

    assert firestore.update('articles', 'a1', {'title': 'New', 'featured': True}) is True

    params = http.request.call_args.kwargs['params']
    assert ('updateMask.fieldPaths', 'title') in params
    assert ('updateMask.fieldPaths', 'featured') in params
    assert ('currentDocument.exists', 'true') in params


def test_update_missing_document(firestore, http):
    http.request.return_value = _response(404, {'error': {}})
    assert firestore.update('articles', 'gone', {'title': 'x'}) is False


def test_add_with_document_id(firestore, http):
    http.request.return_value = _response(payload={'name': 'projects/demo/databases/(default)/documents/users/u9'})
    assert firestore.add('users', {'role': 'author'}, doc_id='u9') == 'u9'
    assert http.request.call_args.kwargs['params'][0] == ('documentId', 'u9')


def test_increment_commits_field_transform(firestore, http):
    http.request.return_value = _response(payload={'writeResults': []})
    firestore.increment('articles', 'a1', 'comment_count')

    url = http.request.call_args.args[1]
    body = http.request.call_args.kwargs['json']
    assert url.endswith('/documents:commit')
    transform = body['writes'][0]['transform']
    assert transform['document'] == 'projects/demo/databases/(default)/documents/articles/a1'
    assert transform['fieldTransforms'] == [{'fieldPath': 'comment_count', 'increment': {'integerValue': '1'}}]


def test_query_and_count(firestore, http):
    http.request.return_value = _response(payload=[
        {'document': {'name': '.../articles/a1', 'fields': {'title': {'stringValue': 'One'}}}},
        {'readTime': '2024-03-01T00:00:00Z'},
    ])
    assert firestore.query(Query('articles')) == [{'id': 'a1', 'title': 'One'}]

    http.request.return_value = _response(payload=[
        {'result': {'aggregateFields': {'total': {'integerValue': '7'}}}},
    ])
    assert firestore.count(Query('articles').where('status', '==', 'published')) == 7
    body = http.request.call_args.kwargs['json']
    assert body['structuredAggregationQuery']['aggregations'] == [{'alias': 'total', 'count': {}}]


# ---------------------------------------------------------------------------
# Identity client
# ---------------------------------------------------------------------------

def test_sign_in_returns_tokens(http):
    http.post.return_value = _response(payload={
        'localId': 'u1', 'idToken': 'id', 'refreshToken': 'r', 'expiresIn': '3600',
        'email': 'a@example.com', 'displayName': 'Ada',
    })
    tokens = IdentityClient('k', http=http).sign_in_with_password('a@example.com', 'pw')
    assert tokens == {'uid': 'u1', 'id_token': 'id', 'refresh_token': 'r', 'expires_in': 3600,
                      'email': 'a@example.com', 'display_name': 'Ada'}


def test_sign_in_rejected_maps_error_code(http):
    http.post.return_value = _response(400, {'error': {'message': 'TOO_MANY_ATTEMPTS_TRY_LATER : slow down'}})
    with pytest.raises(AuthenticationError) as excinfo:
        IdentityClient('k', http=http).sign_in_with_password('a@example.com', 'pw')
    assert excinfo.value.code == 'TOO_MANY_ATTEMPTS_TRY_LATER'


def test_identity_outage_is_backend_error(http):
    http.post.return_value = _response(503, {}, text='unavailable')
    with pytest.raises(BackendError):
        IdentityClient('k', http=http).lookup('id')

    http.post.side_effect = requests.Timeout()
    with pytest.raises(BackendError):
        IdentityClient('k', http=http).lookup('id')


def test_lookup(http):
    http.post.return_value = _response(payload={'users': [{'localId': 'u1', 'email': 'a@example.com',
                                                           'disabled': True}]})
    account = IdentityClient('k', http=http).lookup('id')
    assert account['uid'] == 'u1'
    assert account['disabled'] is True

    http.post.return_value = _response(payload={})
    assert IdentityClient('k', http=http).lookup('id') is None


def test_refresh_posts_form(http):
    http.post.return_value = _response(payload={'user_id': 'u1', 'id_token': 'new', 'refresh_token': 'r2',
                                                'expires_in': '3600'})
    tokens = IdentityClient('k', http=http).refresh('r1')
    assert tokens['id_token'] == 'new'
    assert http.post.call_args.kwargs['data'] == {'grant_type': 'refresh_token', 'refresh_token': 'r1'}


def test_sign_up_returns_tokens(http):
    http.post.return_value = _response(payload={'localId': 'u2', 'idToken': 'id', 'refreshToken': 'r',
                                                'expiresIn': '3600', 'email': 'b@example.com'})
    tokens = IdentityClient('k', http=http).sign_up('b@example.com', 'pw123456')
    assert tokens['uid'] == 'u2'
    assert tokens['id_token'] == 'id'


def test_delete_account_posts_id_token(http):
    http.post.return_value = _response(payload={'kind': 'identitytoolkit#DeleteAccountResponse'})
    assert IdentityClient('k', http=http).delete_account('id') is True
    url = http.post.call_args.args[0]
    assert url.endswith('/accounts:delete')
    assert http.post.call_args.kwargs['json'] == {'idToken': 'id'}


# ---------------------------------------------------------------------------
# In-memory identity
# ---------------------------------------------------------------------------

def test_memory_passwords_are_salted():
    identity = InMemoryIdentity()
    identity.create_account('a@example.com', 'same-password')
    identity.create_account('b@example.com', 'same-password')
    hashes = {account['password_hash'] for account in identity._accounts.values()}
    assert len(hashes) == 2
    assert 'same-password' not in ''.join(hashes)
    assert identity.sign_in_with_password('a@example.com', 'same-password')['email'] == 'a@example.com'


def test_memory_refresh_retires_old_id_token():
    identity = InMemoryIdentity()
    identity.create_account('a@example.com', 'secret123')
    tokens = identity.sign_in_with_password('a@example.com', 'secret123')

    fresh = identity.refresh(tokens['refresh_token'])
    assert identity.lookup(fresh['id_token'])['email'] == 'a@example.com'
    with pytest.raises(AuthenticationError):
        identity.lookup(tokens['id_token'])
    with pytest.raises(AuthenticationError):
        identity.refresh(tokens['refresh_token'])


def test_memory_delete_account():
    identity = InMemoryIdentity()
    tokens = identity.sign_up('a@example.com', 'secret123')
    assert identity.delete_account(tokens['id_token']) is True
    with pytest.raises(AuthenticationError):
        identity.sign_in_with_password('a@example.com', 'secret123')
    with pytest.raises(AuthenticationError):
        identity.refresh(tokens['refresh_token'])
    # the email is free again
    identity.create_account('a@example.com', 'secret123')


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------

def test_memory_store_round_trip():
    store = InMemoryDocumentStore()
    doc_id = store.add('articles', {'title': 'One', 'published_at': FirestoreTimestamp(1709294400)})

    article = store.get('articles', doc_id)
    assert article['published_at'] == datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
    assert store.update('articles', doc_id, {'title': 'Two'}) is True
    assert store.update('articles', 'missing', {'title': 'x'}) is False
    assert store.delete('articles', doc_id) is True
    assert store.delete('articles', doc_id) is False


def test_memory_store_query_semantics():
    store = InMemoryDocumentStore()
    store.add('articles', {'title': 'B', 'views': 5, 'tags': ['x']})
    store.add('articles', {'title': 'A', 'views': 9, 'tags': ['y']})
    store.add('articles', {'title': 'C'})

    ordered = store.query(Query('articles').order_by('views', 'desc'))
    # documents without the ordered field are left out
    assert [a['title'] for a in ordered] == ['A', 'B']

    tagged = store.query(Query('articles').where('tags', 'array-contains', 'x'))
    assert [a['title'] for a in tagged] == ['B']

    assert store.count(Query('articles').where('views', '>', 4).limit(1)) == 2
    assert store.count(Query('articles').where('title', 'in', ['A', 'C'])) == 2


def test_memory_returned_documents_are_copies():
    store = InMemoryDocumentStore()
    doc_id = store.add('articles', {'tags': ['x']})
    store.get('articles', doc_id)['tags'].append('y')
    assert store.get('articles', doc_id)['tags'] == ['x']
