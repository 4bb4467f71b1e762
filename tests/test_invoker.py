"""Tests for HttpInvoker and the function response contract."""

from __future__ import annotations

import httpx
import pytest

from faas_pipeline.errors import ContractViolation, RemoteInvocationFailure
from faas_pipeline.invoker import HttpInvoker, InvocationResponse, RemoteInvoker


def parse(response: httpx.Response) -> InvocationResponse:
    return HttpInvoker.parse_response("fn1", response)


@pytest.mark.unit
class TestParseResponse:
    def test_result(self):
        parsed = parse(httpx.Response(200, json={"result": {"a": 1}}))

        assert parsed.result == {"a": 1}
        assert parsed.metrics is None

    def test_null_result_is_valid(self):
        assert parse(httpx.Response(200, json={"result": None})).result is None

    def test_metrics_travel_beside_result(self):
        parsed = parse(
            httpx.Response(200, json={"result": {"a": 1}, "metrics": [{"metric": 1}]})
        )

        assert parsed.result == {"a": 1}
        assert parsed.metrics == [{"metric": 1}]

    def test_malformed_metrics(self):
        with pytest.raises(ContractViolation) as excinfo:
            parse(httpx.Response(200, json={"result": {}, "metrics": "fast"}))

        assert str(excinfo.value) == (
            "Failed FaaS pipeline contract: function fn1 returned malformed metrics"
        )

    def test_http_error_status(self):
        with pytest.raises(RemoteInvocationFailure) as excinfo:
            parse(httpx.Response(404, text="Cannot find service: fn1."))

        assert str(excinfo.value) == '404 - "Cannot find service: fn1."'
        assert excinfo.value.function == "fn1"
        assert not isinstance(excinfo.value, ContractViolation)

    @pytest.mark.parametrize("status", [101, 302, 304])
    def test_non_success_status_with_result_body(self, status):
        with pytest.raises(RemoteInvocationFailure) as excinfo:
            parse(httpx.Response(status, json={"result": {"moved": True}}))

        assert str(excinfo.value).startswith(f"{status} - ")
        assert not isinstance(excinfo.value, ContractViolation)

    @pytest.mark.parametrize("text", ["", "not json", "{broken"])
    def test_not_json(self, text):
        with pytest.raises(ContractViolation) as excinfo:
            parse(httpx.Response(200, text=text))

        assert str(excinfo.value) == (
            "Failed FaaS pipeline contract: function fn1 didn't return JSON"
        )

    @pytest.mark.parametrize("body", [{}, {"status": "ok"}, [1, 2], "text"])
    def test_neither_result_nor_error(self, body):
        with pytest.raises(ContractViolation) as excinfo:
            parse(httpx.Response(200, json=body))

        assert str(excinfo.value) == (
            "Failed FaaS pipeline contract: function fn1 didn't return either result or error"
        )

    @pytest.mark.parametrize(
        "error, message",
        [
            ("yet another error", "yet another error"),
            ({"message": "disk full", "code": 28}, "disk full"),
            ({"code": 28}, '{"code": 28}'),
            (["a", "b"], '["a", "b"]'),
        ],
    )
    def test_error_field(self, error, message):
        with pytest.raises(RemoteInvocationFailure) as excinfo:
            parse(httpx.Response(200, json={"error": error}))

        assert str(excinfo.value) == message

    def test_empty_error_is_not_a_failure(self):
        assert parse(httpx.Response(200, json={"error": None, "result": 5})).result == 5


@pytest.mark.unit
class TestHttpInvoker:
    def test_satisfies_protocol(self):
        assert isinstance(HttpInvoker("http://gw"), RemoteInvoker)

    def test_url_for_trims_trailing_slash(self):
        assert HttpInvoker("http://gw/function/").url_for("fn1") == "http://gw/function/fn1"

    @pytest.mark.asyncio
    async def test_posts_payload_and_params(self, fake_gateway, gateway_url):
        gateway = fake_gateway({"fn1": (200, {"result": {"done": True}})})

        async with gateway.client() as client:
            invoker = HttpInvoker(gateway_url, client=client)
            parsed = await invoker.invoke("fn1", {"level": 3}, {"doc": "x"})

        assert parsed.result == {"done": True}
        assert gateway.called == ["fn1"]
        assert gateway.requests[0].method == "POST"
        assert str(gateway.requests[0].url) == f"{gateway_url}/fn1"
        assert gateway.body_of("fn1") == {"payload": {"doc": "x"}, "params": {"level": 3}}

    @pytest.mark.asyncio
    async def test_transport_errors_become_remote_failures(self, gateway_url):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(refuse)) as client:
            invoker = HttpInvoker(gateway_url, client=client)
            with pytest.raises(RemoteInvocationFailure) as excinfo:
                await invoker.invoke("fn1", {}, {})

        assert str(excinfo.value) == "connection refused"
        assert isinstance(excinfo.value.__cause__, httpx.ConnectError)
