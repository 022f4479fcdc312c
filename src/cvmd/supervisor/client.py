"""Supervisor API client."""

import asyncio
import logging
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from ..exceptions import (
    SupervisorConnectionError,
    SupervisorError,
    SupervisorTimeoutError,
)
from ..models.config import SupervisorConfig
from ..models.process import ProcessConfig, ProcessInfo

logger = logging.getLogger(__name__)


def _segment(value: str) -> str:
    """Quote value as a single URL path segment."""
    quoted = quote(value, safe="")
    if quoted in (".", ".."):
        quoted = quoted.replace(".", "%2E")
    return quoted


class SupervisorClient:
    """Async client for the process supervisor.

    The supervisor is reached over a unix domain socket, or a TCP base URL
    when one is configured. Every response is an envelope carrying either
    ``data`` or ``error``.
    """

    def __init__(
        self,
        config: SupervisorConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize supervisor client.

        Args:
            config: Supervisor connection settings
            transport: Custom transport (overrides socket/URL selection)
        """
        self.config = config
        if config.url:
            self.base_url = config.url.rstrip("/")
        else:
            self.base_url = "http://supervisor"
        if transport is None and not config.url:
            transport = httpx.AsyncHTTPTransport(uds=str(config.sock))
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "SupervisorClient":
        """Async context manager entry.

        Returns:
            Self
        """
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def connect(self) -> None:
        """Open the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                transport=self._transport,
                timeout=self.config.timeout,
            )

    async def close(self) -> None:
        """Close the client connection."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_connected(self) -> httpx.AsyncClient:
        """Ensure client is connected.

        Returns:
            HTTP client

        Raises:
            RuntimeError: If not connected
        """
        if not self._client:
            raise RuntimeError("Client not connected. Use async with or call connect().")
        return self._client

    async def _request(
        self,
        method: str,
        endpoint: str,
        operation: str,
        json: Any = None,
        retry_count: int = 1,
        allow_not_found: bool = False,
    ) -> Any:
        """Make a supervisor request.

        Args:
            method: HTTP method
            endpoint: API endpoint
            operation: Operation description used in error messages
            json: Request body
            retry_count: Attempts for timeouts and transport failures
            allow_not_found: Return None instead of raising on 404

        Returns:
            The envelope's data

        Raises:
            SupervisorError: On error responses
            SupervisorConnectionError: On transport errors
            SupervisorTimeoutError: On timeout
        """
        client = self._ensure_connected()

        for attempt in range(retry_count):
            try:
                response = await client.request(method, endpoint, json=json)
            except httpx.TimeoutException as e:
                if attempt < retry_count - 1:
                    await asyncio.sleep(2**attempt)
                    continue
                raise SupervisorTimeoutError(f"{operation}: supervisor request timed out", operation) from e
            except httpx.TransportError as e:
                if attempt < retry_count - 1:
                    await asyncio.sleep(2**attempt)
                    continue
                raise SupervisorConnectionError(f"{operation}: supervisor unreachable: {e}", operation) from e

            if response.status_code == 404 and allow_not_found:
                return None
            if response.status_code >= 400:
                raise SupervisorError(
                    f"{operation}: {self._extract_error_message(response)}",
                    operation,
                    status_code=response.status_code,
                )

            try:
                body = response.json()
            except ValueError as e:
                raise SupervisorError(f"{operation}: invalid response from supervisor", operation) from e
            if isinstance(body, dict) and body.get("error"):
                raise SupervisorError(f"{operation}: {body['error']}", operation)
            return body.get("data") if isinstance(body, dict) else None

        raise SupervisorError(f"{operation}: max retries exceeded", operation)

    def _extract_error_message(self, response: httpx.Response) -> str:
        """Extract error message from response.

        Args:
            response: HTTP response

        Returns:
            Error message
        """
        try:
            data = response.json()
            if isinstance(data, dict) and data.get("error"):
                return str(data["error"])
        except ValueError:
            pass
        return response.text or f"HTTP {response.status_code}"

    @staticmethod
    def _parse_info(data: Any, operation: str) -> ProcessInfo:
        try:
            return ProcessInfo.model_validate(data)
        except ValidationError as e:
            raise SupervisorError(f"{operation}: malformed process record: {e}", operation) from e

    async def ping(self) -> None:
        """Check that the supervisor answers."""
        await self._request("GET", "/ping", "ping", retry_count=3)

    async def deploy(self, config: ProcessConfig) -> None:
        """Deploy and start a process.

        Args:
            config: Process specification
        """
        logger.debug("Deploying process %s", config.id)
        await self._request(
            "POST", "/deploy", f"deploy {config.id}", json=config.model_dump(mode="json")
        )

    async def start(self, process_id: str) -> None:
        """Start an existing, stopped process."""
        await self._request("POST", f"/start/{_segment(process_id)}", f"start {process_id}")

    async def stop(self, process_id: str) -> None:
        """Stop a process."""
        await self._request("POST", f"/stop/{_segment(process_id)}", f"stop {process_id}")

    async def remove(self, process_id: str) -> None:
        """Remove a stopped process from the supervisor."""
        await self._request("POST", f"/remove/{_segment(process_id)}", f"remove {process_id}")

    async def clear(self) -> None:
        """Remove every stopped process."""
        await self._request("POST", "/clear", "clear")

    async def info(self, process_id: str) -> ProcessInfo | None:
        """Get a single process record.

        Args:
            process_id: Process id (the VM id)

        Returns:
            Process record, or None if the supervisor does not know the id
        """
        operation = f"info {process_id}"
        data = await self._request(
            "GET", f"/info/{_segment(process_id)}", operation, retry_count=3, allow_not_found=True
        )
        if data is None:
            return None
        return self._parse_info(data, operation)

    async def list(self) -> list[ProcessInfo]:
        """List every process known to the supervisor.

        Returns:
            Process records
        """
        data = await self._request("GET", "/list", "list", retry_count=3)
        return [self._parse_info(item, "list") for item in data or []]
