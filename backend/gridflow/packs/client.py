"""HTTP client for the out-of-process pack runner."""
from typing import Any

import httpx
from loguru import logger

from ..models.schemas import RunnerResponse


class RunnerError(RuntimeError):
    pass


class RunnerClient:
    """Posts ``{slug, payload}`` to the runner endpoint and decodes the reply."""

    def __init__(
        self,
        url: str,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self.transport = transport

    async def call(self, slug: str, payload: dict[str, Any]) -> RunnerResponse:
        async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
            try:
                response = await client.post(self.url, json={"slug": slug, "payload": payload})
            except httpx.HTTPError as e:
                raise RunnerError(f"Runner unreachable: {e}") from e

        if response.status_code >= 400:
            raise RunnerError(f"Runner HTTP {response.status_code}: {response.text or response.reason_phrase}")
        try:
            data = response.json()
        except ValueError as e:
            raise RunnerError("Runner returned invalid JSON") from e
        if not isinstance(data, dict):
            raise RunnerError("Runner returned a non-object response")

        result = RunnerResponse.model_validate(data)
        if result.error:
            raise RunnerError(result.error)
        logger.debug(f"Runner {slug}: outputs {sorted(result.outputs or {})}")
        return result
