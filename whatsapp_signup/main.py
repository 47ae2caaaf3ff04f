from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

import requests
import uvicorn
from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool
from fastapi.staticfiles import StaticFiles

from whatsapp_signup.config import ConfigError, Settings, load_settings
from whatsapp_signup.routers.connect import router as connect_router
from whatsapp_signup.routers.pages import router as pages_router
from whatsapp_signup.routers.send_text import router as send_text_router
from whatsapp_signup.routers.signup_callback import router as signup_callback_router
from whatsapp_signup.utils.public_url import PublicUrlProvisioner

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings,
    provisioner: Optional[PublicUrlProvisioner] = None,
) -> FastAPI:
    provisioner = provisioner or PublicUrlProvisioner(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # resolved once, before requests are served; read-only afterwards
        app.state.public_base_url = await run_in_threadpool(provisioner.resolve)
        logger.info("Abra a página de teste: %s/", app.state.public_base_url or "(sem PUBLIC_URL)")
        try:
            yield
        finally:
            provisioner.close()
            app.state.http_session.close()

    app = FastAPI(title="WhatsApp Embedded Signup", lifespan=lifespan)
    app.state.settings = settings
    app.state.public_base_url = settings.public_url
    app.state.http_session = requests.Session()

    # ---------------- Routers ----------------
    app.include_router(pages_router)
    app.include_router(connect_router)
    app.include_router(signup_callback_router)
    app.include_router(send_text_router)

    # ---------------- Static files (after routes, so routes win) ----------------
    if settings.public_dir.is_dir():
        app.mount("/", StaticFiles(directory=str(settings.public_dir)), name="public")

    return app


def run() -> None:
    try:
        settings = load_settings()
    except ConfigError as e:
        print(e, file=sys.stderr)
        sys.exit(1)

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("🚀 Server on http://localhost:%s", settings.port)
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
