"""Remote function invocation over HTTP.

Every leaf of a pipeline becomes one ``POST <gateway>/<name>`` whose JSON
body is ``{"payload": ..., "params": ...}``.  The function must answer with a
JSON object holding either ``result`` or ``error``; ``metrics`` may travel
next to ``result``.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Protocol, runtime_checkable

import httpx
from pydantic import BaseModel, Field, ValidationError

from .errors import ContractViolation, RemoteInvocationFailure

logger = logging.getLogger(__name__)


class InvocationResponse(BaseModel):
    """Successful answer of a remote function."""

    result: Any = Field(default=None, description="Value that replaces the payload")
    metrics: Optional[List[Dict[str, Any]]] = Field(
        default=None, description="Per-call metric records, never propagated"
    )


@runtime_checkable
class RemoteInvoker(Protocol):
    """Anything able to execute a named function on a payload.

    :class:`HttpInvoker` is the production implementation; tests plug in
    in-memory fakes.
    """

    async def invoke(
        self, name: str, params: Mapping[str, Any], payload: Any
    ) -> InvocationResponse: ...


def _error_message(error: Any) -> str:
    if isinstance(error, Mapping) and "message" in error:
        return str(error["message"])
    if isinstance(error, str):
        return error
    return json.dumps(error, ensure_ascii=False)


class HttpInvoker:
    """Call functions behind a FaaS gateway with ``httpx``.

    Args:
        gateway_url: Base address, e.g. ``http://127.0.0.1:8080/function``.
        client: Shared ``httpx.AsyncClient``. When omitted a short-lived
            client is opened per call.
        timeout: Per-request timeout in seconds, ``None`` for no limit.
            Only used for the short-lived clients.
    """

    def __init__(
        self,
        gateway_url: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.gateway_url = gateway_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    def url_for(self, name: str) -> str:
        return f"{self.gateway_url}/{name}"

    async def invoke(
        self, name: str, params: Mapping[str, Any], payload: Any
    ) -> InvocationResponse:
        url = self.url_for(name)
        body = {"payload": payload, "params": dict(params)}
        logger.debug("Invoking %s at %s", name, url)

        try:
            if self._client is not None:
                response = await self._client.post(url, json=body)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(url, json=body)
        except httpx.HTTPError as exc:
            raise RemoteInvocationFailure(
                str(exc) or exc.__class__.__name__, function=name
            ) from exc

        logger.debug("%s answered with status %d", name, response.status_code)
        return self.parse_response(name, response)

    @staticmethod
    def parse_response(name: str, response: httpx.Response) -> InvocationResponse:
        """Apply the function response contract to *response*."""
        if not response.is_success:
            raise RemoteInvocationFailure(
                f"{response.status_code} - {json.dumps(response.text, ensure_ascii=False)}",
                function=name,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise ContractViolation(
                f"Failed FaaS pipeline contract: function {name} didn't return JSON",
                function=name,
            ) from exc

        if not isinstance(body, dict) or ("result" not in body and "error" not in body):
            raise ContractViolation(
                f"Failed FaaS pipeline contract: function {name} didn't return "
                "either result or error",
                function=name,
            )

        error = body.get("error")
        if error:
            raise RemoteInvocationFailure(_error_message(error), function=name)

        try:
            return InvocationResponse.model_validate(body)
        except ValidationError as exc:
            raise ContractViolation(
                f"Failed FaaS pipeline contract: function {name} returned malformed metrics",
                function=name,
            ) from exc
