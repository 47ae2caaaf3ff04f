from types import SimpleNamespace
from urllib import parse as urlparse

import pytest
import requests

from whatsapp_signup.routers.meta_graph import MetaGraph, OAuthError
from whatsapp_signup.utils.state_codec import FlowMode


def _graph(monkeypatch, status=200, payload=None, exc=None, captured=None):
    graph = MetaGraph(app_id="111", app_secret="shh", graph_version="v20.0", timeout_s=7)

    def fake_request(method, url, params=None, json=None, headers=None, timeout=None):
        if captured is not None:
            captured.append(
                dict(method=method, url=url, params=params, json=json, headers=headers, timeout=timeout)
            )
        if exc is not None:
            raise exc

        def _json():
            if payload is None:
                raise ValueError("no json")
            return payload

        return SimpleNamespace(status_code=status, json=_json)

    monkeypatch.setattr(graph.http, "request", fake_request)
    return graph


def test_build_auth_url_embedded_signup_includes_config_id():
    graph = MetaGraph(app_id="111", app_secret="shh", graph_version="v20.0")
    url = graph.build_auth_url(
        redirect_uri="https://x.example/integrations/meta/whatsapp/callback",
        state="abc=",
        mode=FlowMode.EMBEDDED_SIGNUP,
        config_id="cfg-1",
    )
    parsed = urlparse.urlparse(url)
    query = urlparse.parse_qs(parsed.query)
    assert parsed.netloc == "www.facebook.com"
    assert parsed.path == "/v20.0/dialog/oauth"
    assert query["client_id"] == ["111"]
    assert query["redirect_uri"] == ["https://x.example/integrations/meta/whatsapp/callback"]
    assert query["response_type"] == ["code"]
    assert query["state"] == ["abc="]
    assert query["config_id"] == ["cfg-1"]


def test_build_auth_url_login_omits_config_id():
    graph = MetaGraph(app_id="111", app_secret="shh")
    url = graph.build_auth_url("https://x.example/cb", "s", mode=FlowMode.LOGIN, config_id="cfg-1")
    assert "config_id" not in url


def test_build_auth_url_embedded_signup_requires_config_id():
    graph = MetaGraph(app_id="111", app_secret="shh")
    with pytest.raises(OAuthError):
        graph.build_auth_url("https://x.example/cb", "s", mode=FlowMode.EMBEDDED_SIGNUP)


def test_exchange_code_sends_client_credentials(monkeypatch):
    captured = []
    graph = _graph(monkeypatch, payload={"access_token": "EAAB"}, captured=captured)
    resp = graph.exchange_code_for_token("the-code", "https://x.example/cb")

    assert resp.ok
    assert resp.payload == {"access_token": "EAAB"}
    call = captured[0]
    assert call["url"] == "https://graph.facebook.com/v20.0/oauth/access_token"
    assert call["params"] == {
        "client_id": "111",
        "client_secret": "shh",
        "redirect_uri": "https://x.example/cb",
        "code": "the-code",
    }
    assert call["timeout"] == 7


def test_debug_token_uses_app_token(monkeypatch):
    captured = []
    graph = _graph(monkeypatch, payload={"data": {}}, captured=captured)
    graph.debug_token("EAAB")
    assert captured[0]["params"] == {"input_token": "EAAB", "access_token": "111|shh"}
    assert captured[0]["headers"] is None


def test_me_and_businesses_use_bearer_header(monkeypatch):
    captured = []
    graph = _graph(monkeypatch, payload={"id": "1"}, captured=captured)
    graph.get_me("EAAB")
    graph.get_businesses("EAAB")

    assert captured[0]["url"].endswith("/me")
    assert captured[0]["params"] == {"fields": "id,name"}
    assert captured[0]["headers"] == {"Authorization": "Bearer EAAB"}
    assert captured[1]["url"].endswith("/me/businesses")
    assert "owned_whatsapp_business_accounts" in captured[1]["params"]["fields"]


def test_send_text_message_body(monkeypatch):
    captured = []
    graph = _graph(monkeypatch, payload={"messages": [{"id": "wamid"}]}, captured=captured)
    resp = graph.send_text_message("10987", "5511999999999", "Oi", "EAAG")

    assert resp.ok
    call = captured[0]
    assert call["method"] == "POST"
    assert call["url"] == "https://graph.facebook.com/v20.0/10987/messages"
    assert call["json"] == {
        "messaging_product": "whatsapp",
        "to": "5511999999999",
        "type": "text",
        "text": {"body": "Oi"},
    }
    assert call["headers"] == {"Authorization": "Bearer EAAG"}


def test_error_payload_is_returned_not_raised(monkeypatch):
    graph = _graph(monkeypatch, status=400, payload={"error": {"message": "bad code"}})
    resp = graph.exchange_code_for_token("x", "https://x.example/cb")
    assert not resp.ok
    assert resp.payload["error"]["message"] == "bad code"


def test_transport_failure_raises_oauth_error(monkeypatch):
    graph = _graph(monkeypatch, exc=requests.ConnectionError("down"))
    with pytest.raises(OAuthError):
        graph.get_me("EAAB")


def test_non_json_response_raises_oauth_error(monkeypatch):
    graph = _graph(monkeypatch, status=502, payload=None)
    with pytest.raises(OAuthError) as exc:
        graph.get_me("EAAB")
    assert "Non-JSON" in str(exc.value)


def test_transport_failure_message_hides_url_and_tokens(monkeypatch):
    leaky = requests.ConnectionError(
        "Max retries exceeded with url: /v20.0/debug_token?input_token=EAABsecret&access_token=111%7Cshh"
    )
    graph = _graph(monkeypatch, exc=leaky)
    with pytest.raises(OAuthError) as exc:
        graph.debug_token("EAABsecret")

    assert str(exc.value) == "HTTP error calling GET /v20.0/debug_token: ConnectionError"
    assert exc.value.__cause__ is None
    assert exc.value.__suppress_context__
