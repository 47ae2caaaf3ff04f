# whatsapp_signup/utils/state_codec.py
#
# OAuth `state` <-> {tenantId, csrf, mode}
# The csrf value is only carried through the round trip; nothing checks it
# on return.

from __future__ import annotations

import base64
import binascii
import json
import secrets
from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import unquote

UNKNOWN_TENANT = "tenant-unknown"


class FlowMode(str, Enum):
    EMBEDDED_SIGNUP = "es"
    LOGIN = "login"

    @property
    def label(self) -> str:
        if self is FlowMode.LOGIN:
            return "Login puro (sem config_id)"
        return "Embedded Signup (com config_id)"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["FlowMode"]:
        if value is None:
            return cls.EMBEDDED_SIGNUP
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class StateDecodeResult:
    tenant_id: str
    mode: FlowMode
    ok: bool
    reason: Optional[str] = None


def _fallback(reason: str) -> StateDecodeResult:
    return StateDecodeResult(
        tenant_id=UNKNOWN_TENANT,
        mode=FlowMode.EMBEDDED_SIGNUP,
        ok=False,
        reason=reason,
    )


def encode_state(tenant_id: str, mode: FlowMode, nbytes: int = 8) -> str:
    payload = {
        "tenantId": tenant_id,
        "csrf": secrets.token_hex(nbytes),
        "mode": FlowMode(mode).value,
    }
    raw = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii")


def decode_state(state: Optional[str]) -> StateDecodeResult:
    """
    Best-effort decode. Never raises: anything unreadable falls back to
    (tenant-unknown, es) with ok=False and a reason.
    """
    if not state:
        return _fallback("missing state")

    text = unquote(str(state)).strip()
    # standard base64 ('+', '/') is accepted too
    text = text.replace("+", "-").replace("/", "_")
    text += "=" * (-len(text) % 4)

    try:
        raw = base64.urlsafe_b64decode(text.encode("ascii"))
        data = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeError, ValueError, RecursionError) as e:
        return _fallback(f"undecodable state: {e}")

    if not isinstance(data, dict):
        return _fallback("state payload is not an object")

    tenant = data.get("tenantId")
    tenant_id = str(tenant) if tenant else UNKNOWN_TENANT

    mode = FlowMode.parse(data.get("mode"))
    if mode is None:
        return StateDecodeResult(
            tenant_id=tenant_id,
            mode=FlowMode.EMBEDDED_SIGNUP,
            ok=False,
            reason=f"unknown mode {data.get('mode')!r}",
        )

    return StateDecodeResult(tenant_id=tenant_id, mode=mode, ok=True)
