# whatsapp_signup/routers/connect.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse, RedirectResponse

from whatsapp_signup.config import Settings
from whatsapp_signup.routers.deps import (
    callback_url,
    get_meta_graph,
    get_public_base_url,
    get_settings,
)
from whatsapp_signup.routers.meta_graph import MetaGraph
from whatsapp_signup.utils.state_codec import UNKNOWN_TENANT, FlowMode, encode_state

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Meta OAuth"])


@router.get("/connect")
def connect(
    mode: Optional[str] = None,
    tenantId: Optional[str] = None,
    settings: Settings = Depends(get_settings),
    public_base_url: Optional[str] = Depends(get_public_base_url),
    graph: MetaGraph = Depends(get_meta_graph),
):
    """
    Starts the flow:
      /connect?mode=es     -> Embedded Signup (uses CONFIG_ID)
      /connect?mode=login  -> plain Facebook Login (no CONFIG_ID)
    """
    flow_mode = FlowMode.parse(mode)
    if flow_mode is None:
        return PlainTextResponse(
            f"mode inválido: {mode!r}. Use mode=es ou mode=login.",
            status_code=400,
        )

    if not public_base_url:
        return PlainTextResponse(
            "PUBLIC_URL não definido. Suba com ngrok (USE_NGROK=true) ou defina PUBLIC_URL no .env",
            status_code=500,
        )

    if flow_mode is FlowMode.EMBEDDED_SIGNUP and not settings.config_id:
        return PlainTextResponse(
            "CONFIG_ID ausente. Defina CONFIG_ID no .env para usar Embedded Signup.",
            status_code=400,
        )

    state = encode_state(tenantId or UNKNOWN_TENANT, flow_mode)
    login_url = graph.build_auth_url(
        redirect_uri=callback_url(public_base_url),
        state=state,
        mode=flow_mode,
        config_id=settings.config_id,
    )

    logger.info("➡️  /connect (%s) -> %s", flow_mode.value, login_url)
    return RedirectResponse(url=login_url, status_code=302)
