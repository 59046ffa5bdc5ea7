import json
import sys
from pathlib import Path

import pytest

# Ensure the package (under src/) is importable when running pytest
SRC_DIR = Path(__file__).resolve().parents[1] / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from vassistant.config import Settings  # noqa: E402  (import after sys.path tweak)
from vassistant.errors import StoreFailure  # noqa: E402
from vassistant.main import App  # noqa: E402


class FakeStore:
    """In-memory stand-in for the DynamoDB adapter.

    Query results come back in insertion order unless a sort key is
    registered for the table or index, in which case they are ordered the
    way DynamoDB orders a range key.
    """

    def __init__(self, tables=None, sort_keys=None):
        self.tables = {name: list(items) for name, items in (tables or {}).items()}
        self.sort_keys = dict(sort_keys or {})
        self.calls = []
        self.failing = set()
        self.last_query = None
        self.last_batch = None

    def _check(self, operation, table):
        self.calls.append((operation, table))
        if operation in self.failing:
            raise StoreFailure(operation, table, "InternalServerError")

    def get(self, table, key):
        self._check("get", table)
        for item in self.tables.get(table, []):
            if all(item.get(attr) == value for attr, value in key.items()):
                return dict(item)
        return None

    def put(self, table, item):
        self._check("put", table)
        self.tables.setdefault(table, []).append(dict(item))

    def query(self, table, key_condition, index_name=None, descending=False, projection=None):
        self._check("query", table)
        self.last_query = {
            "table": table,
            "key": (key_condition.attribute, key_condition.value),
            "index_name": index_name,
            "descending": descending,
            "projection": tuple(projection) if projection else None,
        }
        items = [
            dict(item)
            for item in self.tables.get(table, [])
            if item.get(key_condition.attribute) == key_condition.value
        ]
        sort_key = self.sort_keys.get(index_name or table)
        if sort_key:
            items.sort(key=lambda item: item.get(sort_key, ""), reverse=descending)
        return items

    def batch_get(self, table, key_name, values):
        self._check("batch_get", table)
        self.last_batch = list(values)
        wanted = set(self.last_batch)
        return {
            item[key_name]: dict(item)
            for item in self.tables.get(table, [])
            if item.get(key_name) in wanted
        }

    def operations(self):
        return [operation for operation, _table in self.calls]


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def app(store, settings):
    return App(store, settings)


@pytest.fixture
def make_event():
    def _make(path, method="GET", body=None, sub="test-user-id", username="test-user", claims=None):
        request_context = {"http": {"method": method, "path": path}, "requestId": "req-1"}
        if claims is not None:
            request_context["authorizer"] = {"claims": claims}
        elif sub is not None:
            token = {"sub": sub}
            if username:
                token["cognito:username"] = username
            request_context["authorizer"] = {"claims": token}
        return {
            "rawPath": path,
            "body": json.dumps(body) if isinstance(body, (dict, list)) else body,
            "requestContext": request_context,
        }

    return _make
