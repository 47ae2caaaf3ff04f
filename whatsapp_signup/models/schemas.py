from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

UNKNOWN = "desconhecido"


class SendTextRequest(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    # all optional: missing fields are answered with our own 400, not a 422
    phone_number_id: Optional[str] = None
    to: Optional[str] = None
    text: Optional[str] = None
    token: Optional[str] = None


@dataclass(frozen=True)
class TokenResponse:
    access_token: str
    token_type: Optional[str] = None
    expires_in: Optional[int] = None

    @classmethod
    def from_payload(cls, data: Any) -> Optional["TokenResponse"]:
        if not isinstance(data, dict):
            return None
        token = data.get("access_token")
        if not token or not isinstance(token, str):
            return None
        return cls(token, data.get("token_type"), data.get("expires_in"))


@dataclass(frozen=True)
class TokenDebugInfo:
    is_valid: bool
    app_id_matches: bool
    token_type: str = UNKNOWN
    expires_at: str = UNKNOWN
    scopes: List[str] = field(default_factory=list)

    @property
    def has_business_management(self) -> bool:
        return "business_management" in self.scopes

    @classmethod
    def from_payload(cls, payload: Any, app_id: str) -> "TokenDebugInfo":
        """
        Project a /debug_token response:
          {"data": {"app_id", "type", "expires_at", "is_valid", "scopes", ...}}
        Anything missing or malformed degrades to "not valid" / unknown.
        """
        data: Dict[str, Any] = {}
        if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
            data = payload["data"]

        expires_at = UNKNOWN
        raw_exp = data.get("expires_at")
        if isinstance(raw_exp, (int, float)) and raw_exp > 0:
            expires_at = datetime.fromtimestamp(raw_exp, tz=timezone.utc).isoformat()

        scopes = data.get("scopes")
        if not isinstance(scopes, list):
            scopes = []

        return cls(
            is_valid=data.get("is_valid") is True,
            app_id_matches=str(data.get("app_id") or "") == str(app_id),
            token_type=str(data.get("type") or UNKNOWN),
            expires_at=expires_at,
            scopes=[str(s) for s in scopes],
        )


def token_preview(token: str, length: int = 20) -> str:
    # never more than half of the token, so short tokens are not shown whole
    return f"{token[:min(length, len(token) // 2)]}..."
