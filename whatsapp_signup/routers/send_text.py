# whatsapp_signup/routers/send_text.py
from __future__ import annotations

import html
import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import ValidationError

from whatsapp_signup.config import Settings
from whatsapp_signup.models.schemas import SendTextRequest
from whatsapp_signup.routers.deps import get_meta_graph, get_settings
from whatsapp_signup.routers.meta_graph import MetaGraph

logger = logging.getLogger(__name__)

router = APIRouter(tags=["WhatsApp"])

DEFAULT_TEXT = "Olá!"


@router.get("/try-send", response_class=HTMLResponse)
def try_send_form(settings: Settings = Depends(get_settings)):
    phone_number_id = html.escape(settings.default_phone_number_id or "")
    token = html.escape(settings.waba_permanent_token or "")

    return HTMLResponse(
        f"""
    <h2>Teste de envio (WhatsApp Cloud API)</h2>
    <form id="f" onsubmit="send(event)">
      <label>phone_number_id <input name="phone_number_id" value="{phone_number_id}" required/></label><br/>
      <label>Token (WABA permanent) <input name="token" value="{token}" required/></label><br/>
      <label>Para (E.164) <input name="to" placeholder="55XXXXXXXXXXX" required/></label><br/>
      <label>Texto <input name="text" value="Olá! Teste OK."/></label><br/>
      <button type="submit">Enviar texto</button>
    </form>
    <pre id="out"></pre>
    <script>
      async function send(ev){{
        ev.preventDefault();
        const fd = new FormData(document.getElementById('f'));
        const payload = {{
          phone_number_id: fd.get('phone_number_id'),
          token: fd.get('token'),
          to: fd.get('to'),
          text: fd.get('text') || '{DEFAULT_TEXT}'
        }};
        const r = await fetch('/whatsapp/send-text', {{
          method: 'POST',
          headers: {{ 'Content-Type': 'application/json' }},
          body: JSON.stringify(payload)
        }});
        const j = await r.json();
        document.getElementById('out').textContent = JSON.stringify(j, null, 2);
      }}
    </script>
    """
    )


@router.post("/whatsapp/send-text")
async def send_text(
    request: Request,
    graph: MetaGraph = Depends(get_meta_graph),
):
    # validated here, so bad bodies get our 400 instead of FastAPI's 422
    raw = await request.body()
    try:
        data = json.loads(raw) if raw.strip() else {}
        body = SendTextRequest.model_validate(data)
    except (ValueError, ValidationError, RecursionError):
        return JSONResponse({"error": "Corpo JSON inválido"}, status_code=400)

    if not body.phone_number_id or not body.to or not body.token:
        return JSONResponse(
            {"error": "Informe phone_number_id, to e token"},
            status_code=400,
        )

    try:
        resp = await run_in_threadpool(
            graph.send_text_message,
            phone_number_id=body.phone_number_id,
            to=body.to,
            text=body.text or DEFAULT_TEXT,
            access_token=body.token,
        )
    except Exception:
        logger.exception("Falha ao enviar mensagem para %s", body.to)
        return JSONResponse({"error": "Falha ao enviar mensagem"}, status_code=500)

    if not resp.ok:
        logger.warning("send-text rejected by Meta (%s): %s", resp.status_code, resp.payload)
    return JSONResponse(resp.payload, status_code=200 if resp.ok else 400)
