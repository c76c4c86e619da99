import asyncio

import httpx
import pytest

from isthisnormal.config import Settings
from isthisnormal.services.gateway import GatewayClient
from isthisnormal.utils.exceptions import (
    ConfigurationError,
    ProviderUnavailableError,
    RateLimitError,
)

from .conftest import GATEWAY_URL, completion

MESSAGES = [{"role": "system", "content": "s"}, {"role": "user", "content": "u"}]


def run(gateway: GatewayClient):
    return asyncio.run(gateway.generate_chat(MESSAGES))


def make_gateway(handler, **settings_kw) -> GatewayClient:
    kw = {"api_key": "k", "gateway_url": GATEWAY_URL}
    kw.update(settings_kw)
    return GatewayClient(Settings(**kw), transport=httpx.MockTransport(handler))


def test_returns_completion_content():
    gw = make_gateway(lambda req: httpx.Response(200, json=completion("hello")))
    assert run(gw) == "hello"


def test_missing_key_raises_before_any_request():
    calls = []

    def handler(req):
        calls.append(req)
        return httpx.Response(200, json=completion("x"))

    with pytest.raises(ConfigurationError) as exc_info:
        run(make_gateway(handler, api_key=""))
    assert exc_info.value.status_code == 500
    assert calls == []


def test_upstream_429_is_a_rate_limit_error():
    with pytest.raises(RateLimitError) as exc_info:
        run(make_gateway(lambda req: httpx.Response(429)))
    assert exc_info.value.message == "Service is busy. Please try again in a moment."
    assert exc_info.value.retry_after is None


def test_upstream_402_keeps_its_status():
    with pytest.raises(ProviderUnavailableError) as exc_info:
        run(make_gateway(lambda req: httpx.Response(402)))
    assert exc_info.value.status_code == 402


def test_non_json_success_body_counts_as_empty_content():
    with pytest.raises(ProviderUnavailableError) as exc_info:
        run(make_gateway(lambda req: httpx.Response(200, content=b"<html>")))
    assert exc_info.value.message == "Unable to generate response. Please try again."


@pytest.mark.parametrize("data", [{}, {"choices": []}, {"choices": [{"message": {}}]}, {"choices": [{"message": {"content": 5}}]}])
def test_malformed_envelopes_count_as_empty_content(data):
    with pytest.raises(ProviderUnavailableError) as exc_info:
        run(make_gateway(lambda req: httpx.Response(200, json=data)))
    assert exc_info.value.status_code == 500


def test_timeout_setting_is_applied():
    seen = {}

    def handler(req):
        seen["timeout"] = req.extensions.get("timeout")
        return httpx.Response(200, json=completion("ok"))

    run(make_gateway(handler, timeout_s=12.5))
    assert seen["timeout"]["read"] == 12.5


def test_request_is_not_retried():
    calls = []

    def handler(req):
        calls.append(req)
        return httpx.Response(503)

    with pytest.raises(ProviderUnavailableError):
        run(make_gateway(handler))
    assert len(calls) == 1
