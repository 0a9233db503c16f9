# conftest.py
"""
테스트 공용 fixture.

실제 Firestore 대신 메모리 기반 FakeFirestore를 서비스에 주입합니다.
서비스 코드가 사용하는 범위(문서 CRUD, 서브컬렉션, where/order_by/limit/start_after,
count 집계, batch, Increment/ArrayUnion/ArrayRemove)만 흉내냅니다.
"""
import copy
import uuid
from types import SimpleNamespace

import pytest
from google.api_core.exceptions import NotFound
from google.cloud.firestore_v1.transforms import ArrayRemove, ArrayUnion, Increment
from flask_jwt_extended import create_access_token

from app import create_app

_MISSING = object()

def _get_field(data, field_path):
    value = data
    for part in field_path.split('.'):
        if not isinstance(value, dict) or part not in value:
            return _MISSING
        value = value[part]
    return value

def _apply_value(current, value):
    if isinstance(value, Increment):
        return (current if isinstance(current, (int, float)) else 0) + value.value
    if isinstance(value, ArrayUnion):
        result = list(current) if isinstance(current, list) else []
        for item in value.values:
            if item not in result:
                result.append(item)
        return result
    if isinstance(value, ArrayRemove):
        result = list(current) if isinstance(current, list) else []
        return [item for item in result if item not in value.values]
    if isinstance(value, dict):
        return {k: _apply_value(_MISSING, v) for k, v in value.items()}
    return copy.deepcopy(value)

def _merge(target, updates):
    for key, value in updates.items():
        current = target.get(key, _MISSING)
        if isinstance(value, dict) and isinstance(current, dict):
            _merge(current, value)
        else:
            target[key] = _apply_value(current, value)

def _matches(data, field_path, op, expected):
    value = _get_field(data, field_path)
    if value is _MISSING:
        return False
    if op == '==':
        return value == expected
    if op == '!=':
        return value != expected
    if op == '<':
        return value < expected
    if op == '<=':
        return value <= expected
    if op == '>':
        return value > expected
    if op == '>=':
        return value >= expected
    if op == 'in':
        return value in expected
    if op == 'not-in':
        return value not in expected
    if op == 'array_contains':
        return isinstance(value, list) and expected in value
    if op == 'array_contains_any':
        return isinstance(value, list) and any(item in value for item in expected)
    raise ValueError(f"지원하지 않는 연산자: {op}")


class FakeDocumentSnapshot:
    def __init__(self, reference, data):
        self.reference = reference
        self.id = reference.id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None

    def get(self, field_path):
        value = _get_field(self._data or {}, field_path)
        return None if value is _MISSING else copy.deepcopy(value)


class FakeDocumentReference:
    def __init__(self, store, path):
        self._store = store
        self.path = path
        self.id = path[-1]

    def collection(self, name):
        return FakeCollectionReference(self._store, self.path + (name,))

    def get(self):
        return FakeDocumentSnapshot(self, self._store.docs.get(self.path))

    def set(self, data, merge=False):
        if merge and self.path in self._store.docs:
            _merge(self._store.docs[self.path], data)
        else:
            self._store.docs[self.path] = {k: _apply_value(_MISSING, v) for k, v in data.items()}

    def update(self, data):
        if self.path not in self._store.docs:
            raise NotFound(f"No document to update: {'/'.join(self.path)}")
        document = self._store.docs[self.path]
        for key, value in data.items():
            document[key] = _apply_value(document.get(key, _MISSING), value)

    def delete(self):
        self._store.docs.pop(self.path, None)


class FakeQuery:
    def __init__(self, store, path, filters=(), orders=(), limit_count=None, after_id=None):
        self._store = store
        self._path = path
        self._filters = tuple(filters)
        self._orders = tuple(orders)
        self._limit = limit_count
        self._after_id = after_id

    def _copy(self, **changes):
        params = dict(filters=self._filters, orders=self._orders, limit_count=self._limit, after_id=self._after_id)
        params.update(changes)
        return FakeQuery(self._store, self._path, **params)

    def where(self, field_path=None, op_string=None, value=None, *, filter=None):
        if filter is not None:
            field_path, op_string, value = filter.field_path, filter.op_string, filter.value
        return self._copy(filters=self._filters + ((field_path, op_string, value),))

    def order_by(self, field_path, direction='ASCENDING'):
        return self._copy(orders=self._orders + ((field_path, direction),))

    def limit(self, count):
        return self._copy(limit_count=count)

    def start_after(self, snapshot):
        return self._copy(after_id=snapshot.id)

    def _documents(self):
        results = []
        depth = len(self._path) + 1
        for path, data in self._store.docs.items():
            if len(path) != depth or path[:-1] != self._path:
                continue
            if all(_matches(data, f, op, v) for f, op, v in self._filters):
                results.append((path, data))
        for field_path, direction in reversed(self._orders):
            results = [r for r in results if _get_field(r[1], field_path) is not _MISSING]
            results.sort(key=lambda r: _get_field(r[1], field_path), reverse=(direction == 'DESCENDING'))
        if self._after_id is not None:
            ids = [path[-1] for path, _ in results]
            if self._after_id in ids:
                results = results[ids.index(self._after_id) + 1:]
        if self._limit is not None:
            results = results[:self._limit]
        return results

    def stream(self):
        for path, data in self._documents():
            yield FakeDocumentSnapshot(FakeDocumentReference(self._store, path), data)

    def get(self):
        return list(self.stream())

    def count(self):
        query = self
        return SimpleNamespace(get=lambda: [[SimpleNamespace(value=len(query._documents()))]])


class FakeCollectionReference(FakeQuery):
    def __init__(self, store, path):
        super().__init__(store, path)
        self.id = path[-1]

    def document(self, document_id=None):
        return FakeDocumentReference(self._store, self._path + (document_id or uuid.uuid4().hex,))


class FakeWriteBatch:
    def __init__(self):
        self._operations = []

    def set(self, reference, data, merge=False):
        self._operations.append(lambda: reference.set(data, merge=merge))

    def update(self, reference, data):
        self._operations.append(lambda: reference.update(data))

    def delete(self, reference):
        self._operations.append(reference.delete)

    def commit(self):
        for operation in self._operations:
            operation()
        self._operations = []


class FakeFirestore:
    """메모리 기반 Firestore 클라이언트. 문서는 경로 튜플 -> dict 로 저장됩니다."""
    def __init__(self):
        self.docs = {}

    def collection(self, name):
        return FakeCollectionReference(self, (name,))

    def batch(self):
        return FakeWriteBatch()


# --- fixtures ---

@pytest.fixture
def db():
    return FakeFirestore()

@pytest.fixture
def add_user(db):
    """users/{user_id} 프로필 문서를 만듭니다."""
    def _add_user(user_id, display_name, **fields):
        data = {
            'user_id': user_id,
            'email': f"{user_id}@example.com",
            'display_name': display_name,
            'photo_url': fields.pop('photo_url', f"https://example.com/{user_id}.png"),
            'notification_count': 0,
            'subscribed_tags': [],
        }
        data.update(fields)
        db.collection('users').document(user_id).set(data)
        return data
    return _add_user

@pytest.fixture
def app(db):
    flask_app = create_app('testing', db=db)
    flask_app.config.update(
        JWT_SECRET_KEY='test-jwt-secret-key-for-ocean-backend',
        MODERATION_CALLBACK_TOKEN='moderation-callback-token',
    )
    return flask_app

@pytest.fixture
def client(app):
    return app.test_client()

@pytest.fixture
def auth_headers(app):
    """사용자 ID로 Access Token을 발급해 Authorization 헤더를 만듭니다."""
    def _auth_headers(user_id):
        with app.app_context():
            token = create_access_token(identity=user_id)
        return {'Authorization': f"Bearer {token}"}
    return _auth_headers
