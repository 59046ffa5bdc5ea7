import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from .errors import StoreFailure
from .records import UserView

logger = logging.getLogger(__name__)
logging.getLogger("botocore").setLevel(logging.WARNING)
logging.getLogger("boto3").setLevel(logging.WARNING)

# BatchGetItem accepts at most 100 keys per call.
BATCH_GET_LIMIT = 100
BATCH_GET_ATTEMPTS = 2


@dataclass(frozen=True)
class KeyCondition:
    """Equality on a partition key, the only key condition the handlers use."""

    attribute: str
    value: Any


class StoreAdapter(Protocol):
    def get(self, table: str, key: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        ...

    def put(self, table: str, item: Mapping[str, Any]) -> None:
        ...

    def query(
        self,
        table: str,
        key_condition: KeyCondition,
        index_name: Optional[str] = None,
        descending: bool = False,
        projection: Optional[Iterable[str]] = None,
    ) -> List[Dict[str, Any]]:
        ...

    def batch_get(self, table: str, key_name: str, values: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        ...


def _error_code(exc: ClientError) -> Optional[str]:
    error = exc.response.get("Error", {}) if isinstance(exc.response, dict) else {}
    return error.get("Code")


class DynamoStore:
    """:class:`StoreAdapter` over a boto3 DynamoDB service resource."""

    def __init__(self, dynamodb=None):
        self.dynamodb = dynamodb if dynamodb is not None else boto3.resource("dynamodb")

    def _failure(self, exc: ClientError, operation: str, table: str) -> StoreFailure:
        code = _error_code(exc)
        logger.exception(
            json.dumps({"event": "StoreCallFailed", "operation": operation, "table": table, "code": code})
        )
        return StoreFailure(operation, table, code)

    def get(self, table: str, key: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        try:
            result = self.dynamodb.Table(table).get_item(Key=dict(key))
        except ClientError as exc:
            raise self._failure(exc, "GetItem", table) from exc
        return result.get("Item")

    def put(self, table: str, item: Mapping[str, Any]) -> None:
        try:
            self.dynamodb.Table(table).put_item(Item=dict(item))
        except ClientError as exc:
            raise self._failure(exc, "PutItem", table) from exc

    def query(
        self,
        table: str,
        key_condition: KeyCondition,
        index_name: Optional[str] = None,
        descending: bool = False,
        projection: Optional[Iterable[str]] = None,
    ) -> List[Dict[str, Any]]:
        query_kwargs: Dict[str, Any] = {
            "KeyConditionExpression": Key(key_condition.attribute).eq(key_condition.value),
            "ScanIndexForward": not descending,
        }
        if index_name:
            query_kwargs["IndexName"] = index_name
        if projection:
            names = list(projection)
            query_kwargs["ProjectionExpression"] = ", ".join(f"#p{i}" for i in range(len(names)))
            query_kwargs["ExpressionAttributeNames"] = {f"#p{i}": name for i, name in enumerate(names)}
        try:
            result = self.dynamodb.Table(table).query(**query_kwargs)
        except ClientError as exc:
            raise self._failure(exc, "Query", table) from exc
        return result.get("Items", [])

    def batch_get(self, table: str, key_name: str, values: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        """Fetch items by a single-attribute key.

        The result maps key value -> item and may be partial: keys with no
        item, and keys still unprocessed after a retry, are simply absent.
        """
        unique = list(dict.fromkeys(value for value in values if value))
        found: Dict[str, Dict[str, Any]] = {}
        for start in range(0, len(unique), BATCH_GET_LIMIT):
            keys = [{key_name: value} for value in unique[start:start + BATCH_GET_LIMIT]]
            # Unprocessed keys (throttling) get one more attempt.
            for _attempt in range(BATCH_GET_ATTEMPTS):
                try:
                    result = self.dynamodb.batch_get_item(RequestItems={table: {"Keys": keys}})
                except ClientError as exc:
                    raise self._failure(exc, "BatchGetItem", table) from exc
                for item in result.get("Responses", {}).get(table, []):
                    found[item[key_name]] = item
                keys = result.get("UnprocessedKeys", {}).get(table, {}).get("Keys", [])
                if not keys:
                    break
            if keys:
                logger.warning(
                    json.dumps({"event": "BatchGetUnprocessed", "table": table, "count": len(keys)})
                )
        return found


def user_fetcher(store: StoreAdapter, users_table: str):
    """Return a batched fetch resolving user ids to :class:`UserView` values."""

    def fetch(user_ids: List[str]) -> Dict[str, UserView]:
        items = store.batch_get(users_table, "userId", user_ids)
        return {user_id: UserView.from_item(item) for user_id, item in items.items()}

    return fetch
