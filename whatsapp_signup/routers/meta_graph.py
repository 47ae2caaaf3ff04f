# whatsapp_signup/routers/meta_graph.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import requests

from whatsapp_signup.utils.state_codec import FlowMode


class OAuthError(Exception):
    pass


@dataclass(frozen=True)
class GraphResponse:
    status_code: int
    payload: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class MetaGraph:
    """
    Meta Graph API helper for the Embedded Signup demo:
      - build auth URLs (embedded signup with config_id, or plain login)
      - exchange code -> access token
      - debug_token with the app token
      - /me and /me/businesses (WABAs + phone numbers)
      - send a WhatsApp text message

    Upstream error payloads are returned as GraphResponse, not raised:
    callers render them verbatim. OAuthError is only for transport failures
    and non-JSON bodies.
    """

    BUSINESS_FIELDS = (
        "id,name,owned_whatsapp_business_accounts"
        "{id,name,phone_numbers{id,display_phone_number}}"
    )

    def __init__(
        self,
        app_id: str,
        app_secret: str,
        graph_version: str = "v20.0",
        session: Optional[requests.Session] = None,
        timeout_s: int = 20,
    ) -> None:
        self.app_id = app_id
        self.app_secret = app_secret
        self.graph_version = graph_version
        self.http = session or requests.Session()
        self.timeout_s = timeout_s

    @property
    def graph_base(self) -> str:
        return f"https://graph.facebook.com/{self.graph_version}"

    def build_auth_url(
        self,
        redirect_uri: str,
        state: str,
        mode: FlowMode = FlowMode.EMBEDDED_SIGNUP,
        config_id: Optional[str] = None,
    ) -> str:
        """
        Embedded Signup needs config_id (the Configuration controls permissions).
        Plain login leaves it out entirely.
        """
        base = f"https://www.facebook.com/{self.graph_version}/dialog/oauth"
        url = (
            f"{base}"
            f"?client_id={requests.utils.quote(str(self.app_id), safe='')}"
            f"&redirect_uri={requests.utils.quote(redirect_uri, safe='')}"
            f"&response_type=code"
            f"&state={requests.utils.quote(state, safe='')}"
        )
        if mode is FlowMode.EMBEDDED_SIGNUP:
            if not config_id:
                raise OAuthError("config_id is required for Embedded Signup")
            url += f"&config_id={requests.utils.quote(str(config_id), safe='')}"
        return url

    def exchange_code_for_token(self, code: str, redirect_uri: str) -> GraphResponse:
        params = {
            "client_id": self.app_id,
            "client_secret": self.app_secret,
            "redirect_uri": redirect_uri,
            "code": code,
        }
        return self._request("GET", f"{self.graph_base}/oauth/access_token", params=params)

    def debug_token(self, input_token: str) -> GraphResponse:
        params = {
            "input_token": input_token,
            "access_token": f"{self.app_id}|{self.app_secret}",
        }
        return self._request("GET", f"{self.graph_base}/debug_token", params=params)

    def get_me(self, access_token: str) -> GraphResponse:
        return self._request(
            "GET",
            f"{self.graph_base}/me",
            params={"fields": "id,name"},
            token=access_token,
        )

    def get_businesses(self, access_token: str) -> GraphResponse:
        return self._request(
            "GET",
            f"{self.graph_base}/me/businesses",
            params={"fields": self.BUSINESS_FIELDS},
            token=access_token,
        )

    def send_text_message(
        self,
        phone_number_id: str,
        to: str,
        text: str,
        access_token: str,
    ) -> GraphResponse:
        url = f"{self.graph_base}/{requests.utils.quote(str(phone_number_id), safe='')}/messages"
        body = {
            "messaging_product": "whatsapp",
            "to": to,
            "type": "text",
            "text": {"body": text},
        }
        return self._request("POST", url, json_body=body, token=access_token)

    def _request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
        token: Optional[str] = None,
    ) -> GraphResponse:
        headers = {"Authorization": f"Bearer {token}"} if token else None
        try:
            resp = self.http.request(
                method,
                url,
                params=params,
                json=json_body,
                headers=headers,
                timeout=self.timeout_s,
            )
        except requests.RequestException as e:
            # the exception text carries the full URL (tokens in the query string)
            path = urlparse(url).path
            raise OAuthError(f"HTTP error calling {method} {path}: {type(e).__name__}") from None

        try:
            data = resp.json()
        except ValueError as e:
            raise OAuthError("Non-JSON response from Meta.") from e

        return GraphResponse(status_code=resp.status_code, payload=data)
