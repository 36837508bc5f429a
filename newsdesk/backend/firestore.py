"""
Firestore REST Client
=====================

Document database access over the Cloud Firestore REST API.
Documents come back as plain dicts with an ``id`` key; typed Firestore
values are decoded here, including timestamps, so nothing above this
layer deals with the wire representation.
"""

import logging
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional

import requests

from ..core.dates import FirestoreTimestamp, EpochMillis, parse_rfc3339, to_rfc3339
from ..core.errors import BackendError, PermissionDeniedError
from .query import Query

logger = logging.getLogger(__name__)

API_BASE = "https://firestore.googleapis.com/v1"

_OPERATORS = {
    '==': 'EQUAL',
    '!=': 'NOT_EQUAL',
    '<': 'LESS_THAN',
    '<=': 'LESS_THAN_OR_EQUAL',
    '>': 'GREATER_THAN',
    '>=': 'GREATER_THAN_OR_EQUAL',
    'array-contains': 'ARRAY_CONTAINS',
    'in': 'IN',
}


# ===== Value codec =====

def encode_value(value):
    """Encode a Python value as a Firestore typed value"""
    if value is None:
        return {'nullValue': None}
    if isinstance(value, bool):
        return {'booleanValue': value}
    if isinstance(value, int):
        return {'integerValue': str(value)}
    if isinstance(value, float):
        return {'doubleValue': value}
    if isinstance(value, str):
        return {'stringValue': value}
    if isinstance(value, (datetime, date, FirestoreTimestamp, EpochMillis)):
        return {'timestampValue': to_rfc3339(value)}
    if isinstance(value, (list, tuple)):
        return {'arrayValue': {'values': [encode_value(v) for v in value]}}
    if isinstance(value, dict):
        return {'mapValue': {'fields': encode_fields(value)}}
    raise TypeError(f"Cannot store value of type {type(value).__name__}")


def encode_fields(data):
    return {key: encode_value(val) for key, val in data.items() if key != 'id'}


def decode_value(value):
    """Decode a Firestore typed value into a Python value"""
    if 'nullValue' in value:
        return None
    if 'booleanValue' in value:
        return value['booleanValue']
    if 'integerValue' in value:
        return int(value['integerValue'])
    if 'doubleValue' in value:
        return float(value['doubleValue'])
    if 'stringValue' in value:
        return value['stringValue']
    if 'timestampValue' in value:
        return parse_rfc3339(value['timestampValue'])
    if 'arrayValue' in value:
        return [decode_value(v) for v in value['arrayValue'].get('values', [])]
    if 'mapValue' in value:
        return decode_fields(value['mapValue'].get('fields', {}))
    if 'referenceValue' in value:
        return value['referenceValue'].rsplit('/', 1)[-1]
    if 'geoPointValue' in value:
        return value['geoPointValue']
    if 'bytesValue' in value:
        return value['bytesValue']
    raise ValueError(f"Unknown Firestore value: {value}")


def decode_fields(fields):
    return {key: decode_value(val) for key, val in fields.items()}


def decode_document(document):
    data = decode_fields(document.get('fields', {}))
    data['id'] = document['name'].rsplit('/', 1)[-1]
    return data


def build_structured_query(query: Query) -> Dict[str, Any]:
    """Translate a backend-neutral Query into a Firestore structuredQuery"""
    structured = {'from': [{'collectionId': query.collection}]}

    filters = [{
        'fieldFilter': {
            'field': {'fieldPath': f.field},
            'op': _OPERATORS[f.op],
            'value': encode_value(list(f.value) if f.op == 'in' else f.value),
        }
    } for f in query.filters]

    if len(filters) == 1:
        structured['where'] = filters[0]
    elif filters:
        structured['where'] = {'compositeFilter': {'op': 'AND', 'filters': filters}}

    if query.orders:
        structured['orderBy'] = [{
            'field': {'fieldPath': o.field},
            'direction': 'DESCENDING' if o.descending else 'ASCENDING',
        } for o in query.orders]

    if query.limit_count is not None:
        structured['limit'] = query.limit_count
    if query.offset_count:
        structured['offset'] = query.offset_count

    return structured


# ===== Client =====

class FirestoreClient:
    """Document store backed by the Cloud Firestore REST API"""

    def __init__(self, project_id: str, api_key: str = None,
                 token_provider: Callable[[], Optional[str]] = None,
                 timeout: float = 15, http: requests.Session = None):
        self.project_id = project_id
        self.api_key = api_key
        self.token_provider = token_provider
        self.timeout = timeout
        self.http = http or requests.Session()
        self.database_path = f"projects/{project_id}/databases/(default)"
        self.documents_url = f"{API_BASE}/{self.database_path}/documents"

    # --- transport ---

    def _headers(self):
        headers = {'Content-Type': 'application/json', 'Accept': 'application/json'}
        token = self.token_provider() if self.token_provider else None
        if token:
            headers['Authorization'] = f"Bearer {token}"
        return headers

    def _request(self, method, url, params=None, json=None, allow_missing=False):
        # list of pairs so repeated keys (updateMask.fieldPaths) survive
        params = list(params.items()) if isinstance(params, dict) else list(params or [])
        if self.api_key:
            params.append(('key', self.api_key))

        try:
            resp = self.http.request(method, url, params=params, json=json,
                                     headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Firestore {method} {url} failed: {e}")
            raise BackendError(f"Document database unreachable: {e}") from e

        if resp.status_code == 404 and allow_missing:
            return None
        if resp.status_code in (401, 403):
            raise PermissionDeniedError(f"Permission denied for {method} {url}", resp.status_code)
        if resp.status_code >= 400:
            logger.error(f"Firestore {method} {url} returned {resp.status_code}: {resp.text}")
            raise BackendError(f"Document database error {resp.status_code}", resp.status_code)

        return resp.json() if resp.content else {}

    # --- documents ---

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        document = self._request('GET', f"{self.documents_url}/{collection}/{doc_id}", allow_missing=True)
        return decode_document(document) if document else None

    def add(self, collection: str, data: Dict[str, Any], doc_id: str = None) -> str:
        params = {'documentId': doc_id} if doc_id else None
        document = self._request('POST', f"{self.documents_url}/{collection}",
                                 params=params, json={'fields': encode_fields(data)})
        return document['name'].rsplit('/', 1)[-1]

    def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> bool:
        """Patch the given fields; False when the document does not exist"""
        fields = encode_fields(data)
        params = [('updateMask.fieldPaths', key) for key in fields]
        params.append(('currentDocument.exists', 'true'))
        document = self._request('PATCH', f"{self.documents_url}/{collection}/{doc_id}",
                                 params=params, json={'fields': fields}, allow_missing=True)
        return document is not None

    def delete(self, collection: str, doc_id: str) -> bool:
        result = self._request('DELETE', f"{self.documents_url}/{collection}/{doc_id}",
                               params={'currentDocument.exists': 'true'}, allow_missing=True)
        return result is not None

    def increment(self, collection: str, doc_id: str, field_path: str, amount: int = 1) -> None:
        write = {
            'transform': {
                'document': f"{self.database_path}/documents/{collection}/{doc_id}",
                'fieldTransforms': [{
                    'fieldPath': field_path,
                    'increment': encode_value(amount),
                }],
            }
        }
        self._request('POST', f"{self.documents_url}:commit", json={'writes': [write]})

    # --- queries ---

    def query(self, query: Query) -> List[Dict[str, Any]]:
        results = self._request('POST', f"{self.documents_url}:runQuery",
                                json={'structuredQuery': build_structured_query(query)})
        return [decode_document(row['document']) for row in results or [] if 'document' in row]

    def count(self, query: Query) -> int:
        body = {
            'structuredAggregationQuery': {
                'structuredQuery': build_structured_query(query),
                'aggregations': [{'alias': 'total', 'count': {}}],
            }
        }
        results = self._request('POST', f"{self.documents_url}:runAggregationQuery", json=body)
        for row in results or []:
            fields = row.get('result', {}).get('aggregateFields', {})
            if 'total' in fields:
                return decode_value(fields['total'])
        return 0
