# whatsapp_signup/config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_PUBLIC_DIR = BASE_DIR / "public"

CALLBACK_PATH = "/integrations/meta/whatsapp/callback"

_TRUE_VALUES = {"1", "true", "yes", "on"}


class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class Settings:
    """
    Process-wide settings read from the environment (and .env).

    Only META_APP_ID and META_APP_SECRET are mandatory. Everything else
    has a default; the test-form prefill values are never used by the
    OAuth flow itself.
    """

    app_id: str
    app_secret: str
    api_version: str = "v20.0"
    config_id: Optional[str] = None
    port: int = 3000
    use_ngrok: bool = True
    ngrok_authtoken: Optional[str] = None
    public_url: Optional[str] = None
    default_phone_number_id: Optional[str] = None
    waba_permanent_token: Optional[str] = None
    http_timeout_s: int = 20
    public_dir: Path = DEFAULT_PUBLIC_DIR
    log_level: str = "INFO"


def _get(env: Mapping[str, str], key: str) -> Optional[str]:
    value = env.get(key)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _get_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = _get(env, key)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from e


def _get_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = _get(env, key)
    if raw is None:
        return default
    return raw.lower() in _TRUE_VALUES


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from `env` (defaults to os.environ after loading .env).
    Raises ConfigError when META_APP_ID / META_APP_SECRET are missing.
    """
    if env is None:
        load_dotenv()  # loads .env from current working directory by default
        env = os.environ

    app_id = _get(env, "META_APP_ID")
    app_secret = _get(env, "META_APP_SECRET")
    if not app_id or not app_secret:
        raise ConfigError("❌ Preencha .env: META_APP_ID e META_APP_SECRET")

    public_url = _get(env, "PUBLIC_URL")
    if public_url:
        public_url = public_url.rstrip("/")

    public_dir = _get(env, "PUBLIC_DIR")

    return Settings(
        app_id=app_id,
        app_secret=app_secret,
        api_version=_get(env, "META_API_VERSION") or "v20.0",
        config_id=_get(env, "CONFIG_ID"),
        port=_get_int(env, "PORT", 3000),
        use_ngrok=_get_bool(env, "USE_NGROK", True),
        ngrok_authtoken=_get(env, "NGROK_AUTHTOKEN"),
        public_url=public_url,
        default_phone_number_id=_get(env, "DEFAULT_PHONE_NUMBER_ID"),
        waba_permanent_token=_get(env, "WABA_PERMANENT_TOKEN"),
        http_timeout_s=_get_int(env, "HTTP_TIMEOUT_SECONDS", 20),
        public_dir=Path(public_dir) if public_dir else DEFAULT_PUBLIC_DIR,
        log_level=(_get(env, "LOG_LEVEL") or "INFO").upper(),
    )
