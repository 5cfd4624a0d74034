"""
Dispense commerce backend client for Gateway.
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote

import httpx

from shared.config import GatewayConfig
from shared.errors import ConfigurationError, UpstreamUnavailableError
from shared.logging import get_logger
from shared.metrics import MetricsCollector


API_KEY_HEADER = "x-dispense-api-key"

STOREFRONT_CREDENTIAL = "storefront"
ORG_CREDENTIAL = "org"

# credential -> (config attribute, env var named in errors)
_CREDENTIAL_SETTINGS = {
    STOREFRONT_CREDENTIAL: ("api_key", "DISPENSE_API_KEY"),
    ORG_CREDENTIAL: ("org_api_key", "DISPENSE_ORG_API_KEY"),
}


@dataclass(frozen=True)
class UpstreamCredentials:
    """Base URL and service key used for one upstream call."""

    base_url: str
    api_key: str

    def __repr__(self) -> str:
        return f"UpstreamCredentials(base_url={self.base_url!r}, api_key='***')"


def encode_path_segment(value: str) -> str:
    """Percent-encode a caller-supplied identifier for use as one path segment."""
    return quote(value, safe="")


class DispenseClient:
    """Issues single, unretried requests to the Dispense API.

    Credentials are resolved from the config object on every call, so a
    missing key surfaces as ``ConfigurationError`` before any network I/O.
    """

    def __init__(
        self,
        config: GatewayConfig,
        credential: str = STOREFRONT_CREDENTIAL,
        *,
        metrics: Optional[MetricsCollector] = None,
    ):
        if credential not in _CREDENTIAL_SETTINGS:
            raise ValueError(f"Unknown credential {credential!r}")
        self.config = config
        self.credential = credential
        self.metrics = metrics
        self.logger = get_logger("gateway.dispense_client")

    def credentials(self) -> UpstreamCredentials:
        """Resolve base URL and API key, failing fast when the key is missing."""
        attribute, setting = _CREDENTIAL_SETTINGS[self.credential]
        api_key = getattr(self.config, attribute)
        if not api_key:
            raise ConfigurationError(setting)
        return UpstreamCredentials(base_url=self.config.base_url, api_key=api_key)

    async def send(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        content: Optional[bytes] = None,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        operation: Optional[str] = None,
    ) -> httpx.Response:
        """Send one request and return the raw upstream response.

        ``headers`` are forwarded unchanged (used for the caller's bearer
        token). Transport failures raise ``UpstreamUnavailableError``;
        non-success statuses are returned for the caller to translate.
        """
        credentials = self.credentials()
        operation = operation or f"{method.upper()} {path}"
        url = f"{credentials.base_url}/{path.lstrip('/')}"

        request_headers: Dict[str, str] = dict(headers or {})
        request_headers[API_KEY_HEADER] = credentials.api_key
        if json is not None or content is not None:
            request_headers["content-type"] = "application/json"

        start_time = time.time()
        try:
            async with httpx.AsyncClient(timeout=self.config.upstream_timeout_seconds) as client:
                response = await client.request(
                    method.upper(),
                    url,
                    json=json,
                    content=content,
                    params=params,
                    headers=request_headers,
                )
        except httpx.TransportError as exc:
            duration = time.time() - start_time
            self._record(operation, "error", duration)
            self.logger.error(
                "Dispense API unreachable",
                operation=operation,
                url=url,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise UpstreamUnavailableError() from exc

        duration = time.time() - start_time
        self._record(operation, response.status_code, duration)
        log = self.logger.debug if response.is_success else self.logger.warning
        log(
            "Dispense API response",
            operation=operation,
            url=url,
            status_code=response.status_code,
            duration_ms=round(duration * 1000, 2),
        )
        return response

    def _record(self, operation: str, status_code: Any, duration: float) -> None:
        if self.metrics:
            self.metrics.record_upstream_request(operation, status_code, duration)
