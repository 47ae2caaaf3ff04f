from typing import Any, Dict, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient

from whatsapp_signup.config import Settings
from whatsapp_signup.main import create_app
from whatsapp_signup.routers.deps import get_meta_graph
from whatsapp_signup.routers.meta_graph import GraphResponse, MetaGraph

APP_ID = "1234567890"
APP_SECRET = "app-secret"
PUBLIC_URL = "https://demo.ngrok.example"


class FakeGraph(MetaGraph):
    """MetaGraph with canned responses; records every outbound call."""

    def __init__(self, **responses: GraphResponse) -> None:
        super().__init__(app_id=APP_ID, app_secret=APP_SECRET)
        self.responses: Dict[str, GraphResponse] = responses
        self.calls: List[Tuple[str, Any]] = []

    def _reply(self, name: str, *args: Any) -> GraphResponse:
        self.calls.append((name, args))
        reply = self.responses.get(name)
        if isinstance(reply, Exception):
            raise reply
        if reply is None:
            raise AssertionError(f"unexpected call to {name}")
        return reply

    def called(self, name: str) -> bool:
        return any(call[0] == name for call in self.calls)

    def exchange_code_for_token(self, code, redirect_uri):
        return self._reply("exchange_code_for_token", code, redirect_uri)

    def debug_token(self, input_token):
        return self._reply("debug_token", input_token)

    def get_me(self, access_token):
        return self._reply("get_me", access_token)

    def get_businesses(self, access_token):
        return self._reply("get_businesses", access_token)

    def send_text_message(self, phone_number_id, to, text, access_token):
        return self._reply("send_text_message", phone_number_id, to, text, access_token)


def make_settings(tmp_path=None, **overrides: Any) -> Settings:
    values: Dict[str, Any] = dict(
        app_id=APP_ID,
        app_secret=APP_SECRET,
        config_id="cfg-42",
        use_ngrok=False,
        public_url=PUBLIC_URL,
    )
    if tmp_path is not None:
        values["public_dir"] = tmp_path
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def fake_graph() -> FakeGraph:
    return FakeGraph()


@pytest.fixture
def make_client(tmp_path, fake_graph):
    def _make(graph: Optional[MetaGraph] = None, **overrides: Any) -> TestClient:
        app = create_app(make_settings(tmp_path, **overrides))
        used = graph or fake_graph
        app.dependency_overrides[get_meta_graph] = lambda: used
        return TestClient(app)

    return _make
