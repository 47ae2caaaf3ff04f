# whatsapp_signup/routers/deps.py
from __future__ import annotations

from typing import Optional

from fastapi import Request

from whatsapp_signup.config import CALLBACK_PATH, Settings
from whatsapp_signup.routers.meta_graph import MetaGraph


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_public_base_url(request: Request) -> Optional[str]:
    # set once in the app lifespan (or from PUBLIC_URL at construction)
    return request.app.state.public_base_url or None


def get_meta_graph(request: Request) -> MetaGraph:
    settings: Settings = request.app.state.settings
    return MetaGraph(
        app_id=settings.app_id,
        app_secret=settings.app_secret,
        graph_version=settings.api_version,
        session=request.app.state.http_session,
        timeout_s=settings.http_timeout_s,
    )


def callback_url(public_base_url: str) -> str:
    return f"{public_base_url}{CALLBACK_PATH}"
