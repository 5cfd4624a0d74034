"""
Translation of Dispense responses into gateway responses.
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional

import httpx
from fastapi import Response
from fastapi.responses import JSONResponse

from shared.errors import UpstreamError
from shared.logging import get_logger


CACHE_TAG_HEADER = "Cache-Tag"


@dataclass(frozen=True)
class CachePolicy:
    """Cache-Control value plus an optional invalidation tag."""

    cache_control: str
    tag: Optional[str] = None

    def apply(self, response: Response) -> Response:
        response.headers["cache-control"] = self.cache_control
        if self.tag:
            response.headers[CACHE_TAG_HEADER] = self.tag
        return response


NO_STORE = CachePolicy("private, max-age=0, no-store")
PRODUCT_CACHE = CachePolicy("public, s-maxage=30, stale-while-revalidate=60", tag="dispense:product")
PRODUCT_LIST_CACHE = CachePolicy("public, s-maxage=15, stale-while-revalidate=30", tag="dispense:products")


def read_error_details(upstream: httpx.Response) -> str:
    """Best-effort upstream body text; empty when it cannot be read."""
    try:
        return upstream.text
    except (httpx.HTTPError, httpx.StreamError, UnicodeDecodeError, LookupError):
        return ""


def is_json_response(upstream: httpx.Response) -> bool:
    content_type = upstream.headers.get("content-type", "")
    return "json" in content_type.lower()


class ResponseTranslator:
    """Maps raw upstream responses onto the gateway response contract."""

    def __init__(self):
        self.logger = get_logger("gateway.response_translator")

    def raise_for_status(self, upstream: httpx.Response, error_summary: str) -> None:
        """Raise ``UpstreamError`` carrying the upstream status for non-success responses."""
        if upstream.is_success:
            return
        raise UpstreamError(
            status_code=upstream.status_code,
            message=error_summary,
            details=read_error_details(upstream),
        )

    def translate(
        self,
        upstream: httpx.Response,
        *,
        error_summary: str,
        cache_policy: Optional[CachePolicy] = None,
        transform: Optional[Callable[[Any], Any]] = None,
    ) -> Response:
        """Pass a successful body through with a cache policy, or normalize the error."""
        if not upstream.is_success:
            self.logger.warning(
                "Upstream returned error",
                status_code=upstream.status_code,
                summary=error_summary,
            )
            return UpstreamError(
                status_code=upstream.status_code,
                message=error_summary,
                details=read_error_details(upstream),
            ).to_json_response()

        response = self._success_body(upstream, transform)
        if cache_policy is not None:
            cache_policy.apply(response)
        return response

    def passthrough(self, upstream: httpx.Response) -> Response:
        """Relay body, status and content type unchanged, success or not."""
        return Response(
            content=upstream.content,
            status_code=upstream.status_code,
            media_type=upstream.headers.get("content-type") or "application/json",
        )

    def _success_body(self, upstream: httpx.Response, transform: Optional[Callable[[Any], Any]]) -> Response:
        if upstream.status_code == 204 or not upstream.content:
            data: Any = {}
        elif is_json_response(upstream):
            try:
                data = upstream.json()
            except ValueError:
                self.logger.warning("Upstream sent malformed JSON, relaying as text")
                return self._text_body(upstream)
        else:
            return self._text_body(upstream)

        if transform is not None:
            data = transform(data)
        return JSONResponse(content=data)

    @staticmethod
    def _text_body(upstream: httpx.Response) -> Response:
        return Response(
            content=upstream.content,
            status_code=200,
            media_type=upstream.headers.get("content-type") or "text/plain",
        )
