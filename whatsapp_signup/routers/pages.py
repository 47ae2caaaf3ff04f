# whatsapp_signup/routers/pages.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse, HTMLResponse, PlainTextResponse

from whatsapp_signup.config import Settings
from whatsapp_signup.routers.deps import get_settings

router = APIRouter(tags=["Pages"])

FALLBACK_INDEX = """
    <h1>Meta OAuth / WhatsApp Embedded Signup</h1>
    <ul>
      <li><a href="/connect?mode=es">Embedded Signup (com config_id)</a></li>
      <li><a href="/connect?mode=login">Login puro (sem config_id)</a></li>
      <li><a href="/try-send">Teste de envio (WhatsApp Cloud API)</a></li>
    </ul>
    <p>Tenant opcional: acrescente <code>?tenantId=meu-tenant</code> no /connect.</p>
"""


@router.get("/")
def index(settings: Settings = Depends(get_settings)):
    index_path = settings.public_dir / "index.html"
    if index_path.is_file():
        return FileResponse(index_path, media_type="text/html")
    return HTMLResponse(FALLBACK_INDEX)


@router.get("/health", response_class=PlainTextResponse)
def health():
    return PlainTextResponse("ok")
