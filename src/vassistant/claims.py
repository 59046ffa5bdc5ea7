from dataclasses import dataclass
from typing import Any, Dict, Optional

from .errors import AuthorizationError

INVALID_CLAIMS = "Unauthorized: Invalid claims format"


@dataclass(frozen=True)
class Claims:
    """Identity claims validated by the gateway authorizer."""

    subject_id: str
    display_name: Optional[str] = None

    def require_display_name(self) -> str:
        if not self.display_name:
            raise AuthorizationError("Unauthorized: Missing username claim")
        return self.display_name


def _claims_map(event: Dict[str, Any]) -> Any:
    authorizer = (event.get("requestContext") or {}).get("authorizer")
    if not isinstance(authorizer, dict):
        return None
    if "claims" in authorizer:
        return authorizer["claims"]
    # HTTP API JWT authorizers nest the claims one level deeper.
    jwt = authorizer.get("jwt")
    if isinstance(jwt, dict):
        return jwt.get("claims")
    return None


def extract_claims(event: Dict[str, Any]) -> Claims:
    claims = _claims_map(event)
    if not isinstance(claims, dict):
        raise AuthorizationError(INVALID_CLAIMS)
    subject_id = claims.get("sub")
    if not subject_id or not isinstance(subject_id, str):
        raise AuthorizationError(INVALID_CLAIMS)
    display_name = claims.get("cognito:username") or claims.get("username")
    if not isinstance(display_name, str):
        display_name = None
    return Claims(subject_id=subject_id, display_name=display_name or None)
