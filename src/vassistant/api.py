import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict

from .claims import Claims, extract_claims
from .errors import ValidationError

logger = logging.getLogger(__name__)

HEADERS = {"Content-Type": "application/json", "Cache-Control": "no-store"}
FALLBACK_ERROR_BODY = '{"error":"Internal server error"}'


def _json_default(value):
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def response(status: int, body: Any) -> Dict[str, Any]:
    try:
        encoded = json.dumps(body, default=_json_default)
    except (TypeError, ValueError):
        logger.exception(json.dumps({"event": "SerializationFailed", "status": status}))
        return {"statusCode": 500, "headers": dict(HEADERS), "body": FALLBACK_ERROR_BODY}
    return {"statusCode": status, "headers": dict(HEADERS), "body": encoded}


def error_response(status: int, message: str) -> Dict[str, Any]:
    return response(status, {"error": message})


@dataclass
class Request:
    method: str
    path: str
    event: Dict[str, Any] = field(default_factory=dict)
    context: Any = None
    body: Any = None
    base64_encoded: bool = False
    query: Dict[str, str] = field(default_factory=dict)
    request_id: str = "unknown"
    path_variables: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_event(cls, event: Dict[str, Any], context=None) -> "Request":
        request_context = event.get("requestContext") or {}
        http_info = request_context.get("http") or {}
        method = http_info.get("method") or event.get("httpMethod") or "UNKNOWN"
        path = event.get("rawPath") or http_info.get("path") or event.get("path") or ""
        request_id = request_context.get("requestId") or getattr(context, "aws_request_id", "unknown")
        return cls(
            method=method.upper(),
            path=path,
            event=event,
            context=context,
            body=event.get("body"),
            base64_encoded=bool(event.get("isBase64Encoded")),
            query=dict(event.get("queryStringParameters") or {}),
            request_id=request_id,
        )

    def claims(self) -> Claims:
        return extract_claims(self.event)

    def require(self, name: str, message: str) -> str:
        value = (self.path_variables.get(name) or "").strip()
        if not value:
            raise ValidationError(message)
        return value

    def json(self, message: str = "Invalid request body") -> Dict[str, Any]:
        try:
            payload = json.loads(_decode_body(self.body, self.base64_encoded) or "{}")
        except json.JSONDecodeError:
            raise ValidationError(message) from None
        if not isinstance(payload, dict):
            raise ValidationError(message)
        return payload


def _decode_body(body: Any, base64_encoded: bool) -> str:
    if not body:
        return ""
    if base64_encoded:
        try:
            body = base64.b64decode(body)
        except (binascii.Error, ValueError):
            raise ValidationError("Invalid request body") from None
    if isinstance(body, (bytes, bytearray)):
        try:
            body = body.decode()
        except UnicodeDecodeError:
            raise ValidationError("Invalid request body") from None
    return body
