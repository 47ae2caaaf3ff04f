# whatsapp_signup/routers/signup_callback.py
#
# OAuth redirect target. One linear pass per request:
#   error? -> code? -> state -> token exchange -> debug_token -> /me
#   -> /me/businesses (only with business_management) -> HTML report
# Any stage can stop the pass with a ready response (_StopFlow).

from __future__ import annotations

import html
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse, PlainTextResponse, Response

from whatsapp_signup.config import Settings
from whatsapp_signup.models.schemas import TokenDebugInfo, TokenResponse, token_preview
from whatsapp_signup.routers.deps import (
    callback_url,
    get_meta_graph,
    get_public_base_url,
    get_settings,
)
from whatsapp_signup.routers.meta_graph import GraphResponse, MetaGraph
from whatsapp_signup.utils.state_codec import StateDecodeResult, decode_state

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Meta OAuth"])

BUSINESS_SKIPPED = {"skipped": True, "reason": "missing business_management scope"}


class _StopFlow(Exception):
    def __init__(self, response: Response) -> None:
        super().__init__(response.status_code)
        self.response = response


@dataclass(frozen=True)
class SignupReport:
    state: StateDecodeResult
    redirect_uri: str
    token: TokenResponse
    debug: TokenDebugInfo
    me: GraphResponse
    businesses: Any

    @property
    def auth_ok(self) -> bool:
        return self.debug.is_valid and self.debug.app_id_matches and self.me.ok


def _pretty(data: Any) -> str:
    return html.escape(json.dumps(data, indent=2, ensure_ascii=False), quote=False)


def _render_provider_error(
    error: str,
    error_reason: Optional[str],
    error_description: Optional[str],
) -> HTMLResponse:
    details = {
        "error": error,
        "error_reason": error_reason,
        "error_description": error_description,
    }
    return HTMLResponse(
        f"""
        <h2>❌ OAuth Error recebido do Facebook</h2>
        <pre>{_pretty(details)}</pre>
        <p>Verifique a <b>Valid OAuth Redirect URI</b> e o domínio em <b>Configurações → Básico</b>.</p>
        """,
        status_code=400,
    )


def render_report(report: SignupReport) -> HTMLResponse:
    debug = report.debug
    heading = "✅ Autenticação válida" if report.auth_ok else "❌ Autenticação inválida"
    scopes = ", ".join(debug.scopes) or "(vazio)"

    body = f"""
    <h2>{heading}</h2>
    <p><b>Modo:</b> {html.escape(report.state.mode.label)}</p>
    <p><b>Tenant:</b> {html.escape(report.state.tenant_id)}</p>
    <p><b>Redirect URI usada:</b> {html.escape(report.redirect_uri)}</p>

    <h3>Debug do Token</h3>
    <ul>
      <li><b>is_valid:</b> {str(debug.is_valid).lower()}</li>
      <li><b>app_id confere:</b> {str(debug.app_id_matches).lower()}</li>
      <li><b>tipo:</b> {html.escape(debug.token_type)}</li>
      <li><b>expira em:</b> {html.escape(debug.expires_at)}</li>
      <li><b>scopes:</b> {html.escape(scopes)}</li>
      <li><b>business_management?</b> {str(debug.has_business_management).lower()}</li>
    </ul>

    <h3>/me</h3>
    <pre>{_pretty(report.me.payload)}</pre>

    <h3>/me/businesses</h3>
    <pre>{_pretty(report.businesses)}</pre>

    <h3>Token (parcial)</h3>
    <pre>{html.escape(token_preview(report.token.access_token))} (não exponha em produção)</pre>

    <hr/>
    <p>Para testar envio, abra <a href="/try-send">/try-send</a>.</p>
    """
    return HTMLResponse(body, status_code=200 if report.auth_ok else 400)


class SignupCallbackFlow:
    def __init__(self, graph: MetaGraph, settings: Settings, public_base_url: Optional[str]) -> None:
        self.graph = graph
        self.settings = settings
        self.public_base_url = public_base_url

    def run(
        self,
        code: Optional[str],
        state: Optional[str],
        error: Optional[str] = None,
        error_reason: Optional[str] = None,
        error_description: Optional[str] = None,
    ) -> Response:
        try:
            if error is not None:
                raise _StopFlow(_render_provider_error(error, error_reason, error_description))
            if not code:
                raise _StopFlow(PlainTextResponse("Faltou ?code na URL.", status_code=400))

            decoded = decode_state(state)
            if not decoded.ok:
                logger.info("state not decoded (%s); using defaults", decoded.reason)

            redirect_uri = self._redirect_uri()
            token = self._exchange(code, redirect_uri)
            debug = TokenDebugInfo.from_payload(
                self.graph.debug_token(token.access_token).payload,
                self.settings.app_id,
            )
            me = self.graph.get_me(token.access_token)
            businesses = self._businesses(token, debug)

            report = SignupReport(
                state=decoded,
                redirect_uri=redirect_uri,
                token=token,
                debug=debug,
                me=me,
                businesses=businesses,
            )
            logger.info(
                "callback done: tenant=%s mode=%s auth_ok=%s token=%s",
                decoded.tenant_id,
                decoded.mode.value,
                report.auth_ok,
                token_preview(token.access_token),
            )
            return render_report(report)

        except _StopFlow as stop:
            return stop.response
        except Exception:
            logger.exception("Erro no callback")
            return PlainTextResponse("Erro no callback.", status_code=500)

    def _redirect_uri(self) -> str:
        if not self.public_base_url:
            raise _StopFlow(
                PlainTextResponse("PUBLIC_URL não definido no callback.", status_code=500)
            )
        return callback_url(self.public_base_url)

    def _exchange(self, code: str, redirect_uri: str) -> TokenResponse:
        resp = self.graph.exchange_code_for_token(code, redirect_uri)
        token = TokenResponse.from_payload(resp.payload) if resp.ok else None
        if token is None:
            logger.error("Token error payload: %s", resp.payload)
            raise _StopFlow(
                HTMLResponse(
                    f"<pre>Falha ao obter access_token:\n{_pretty(resp.payload)}</pre>",
                    status_code=400,
                )
            )
        return token

    def _businesses(self, token: TokenResponse, debug: TokenDebugInfo) -> Any:
        # without business_management the call would only produce a permission error
        if not debug.has_business_management:
            return BUSINESS_SKIPPED
        return self.graph.get_businesses(token.access_token).payload


@router.get("/integrations/meta/whatsapp/callback", response_class=HTMLResponse)
def whatsapp_signup_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    error_reason: Optional[str] = None,
    error_description: Optional[str] = None,
    settings: Settings = Depends(get_settings),
    public_base_url: Optional[str] = Depends(get_public_base_url),
    graph: MetaGraph = Depends(get_meta_graph),
):
    flow = SignupCallbackFlow(graph, settings, public_base_url)
    return flow.run(code, state, error, error_reason, error_description)
