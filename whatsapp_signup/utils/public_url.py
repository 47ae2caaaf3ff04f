# whatsapp_signup/utils/public_url.py
from __future__ import annotations

import logging
from typing import Optional

from pyngrok import ngrok
from pyngrok.exception import PyngrokError

from whatsapp_signup.config import CALLBACK_PATH, Settings

logger = logging.getLogger(__name__)


class PublicUrlProvisioner:
    """
    Resolves the public base URL used for redirect/callback URLs:
      - PUBLIC_URL from config wins (used verbatim, no tunnel)
      - else, if USE_NGROK, open an ngrok http tunnel to PORT
      - else None (routes that need it answer 500)
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._tunnel_url: Optional[str] = None

    def resolve(self) -> Optional[str]:
        if self.settings.public_url:
            self._log_redirect_uri(self.settings.public_url)
            return self.settings.public_url

        if not self.settings.use_ngrok:
            logger.warning(
                "ℹ️ USE_NGROK=false, mas PUBLIC_URL não definido. Defina PUBLIC_URL no .env."
            )
            return None

        try:
            if self.settings.ngrok_authtoken:
                ngrok.set_auth_token(self.settings.ngrok_authtoken)
            tunnel = ngrok.connect(self.settings.port, "http")
        except PyngrokError as e:
            logger.error("Erro ao abrir ngrok: %s", e)
            logger.info("Defina PUBLIC_URL no .env se não for usar ngrok.")
            return None

        self._tunnel_url = str(tunnel.public_url).rstrip("/")
        logger.info("🌐 ngrok: %s", self._tunnel_url)
        self._log_redirect_uri(self._tunnel_url)
        return self._tunnel_url

    def close(self) -> None:
        if not self._tunnel_url:
            return
        try:
            ngrok.disconnect(self._tunnel_url)
        except PyngrokError as e:
            logger.warning("Failed to close ngrok tunnel %s: %s", self._tunnel_url, e)
        finally:
            self._tunnel_url = None

    @staticmethod
    def _log_redirect_uri(public_url: str) -> None:
        logger.info("PUBLIC_URL: %s", public_url)
        logger.info("👉 Redirect URI (cole no painel da Meta): %s%s", public_url, CALLBACK_PATH)
