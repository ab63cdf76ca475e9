"""Upstream proxy - relays every inbound request to the fixed upstream."""

import httpx
from fastapi import Request, Response
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask
from starlette.requests import ClientDisconnect

from tool_call_adapter.config import Settings
from tool_call_adapter.core.diagnostics import Diagnostics, StructlogDiagnostics
from tool_call_adapter.core.interceptor import RequestInterceptor
from tool_call_adapter.exceptions import (
    BodyReadError,
    BodyTooLargeError,
    ProxyError,
    UpstreamConfigError,
    UpstreamTimeoutError,
    UpstreamTransportError,
)
from tool_call_adapter.utils import get_logger

logger = get_logger(__name__)

HOP_BY_HOP_HEADERS = frozenset({
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "proxy-connection",
    "te",
    "trailer",
    "transfer-encoding",
    "upgrade",
})


def join_paths(base: str, path: str) -> str:
    """Join the upstream base path and the inbound path with one slash.

    Args:
        base: Path of the upstream base URL (e.g. "/v1")
        path: Inbound request path (e.g. "/models")

    Returns:
        Combined path ("/v1/models")
    """
    if not base:
        return path or "/"
    if not path:
        return base
    if base.endswith("/") and path.startswith("/"):
        return base + path[1:]
    if not base.endswith("/") and not path.startswith("/"):
        return base + "/" + path
    return base + path


def filter_response_headers(headers: httpx.Headers) -> list[tuple[bytes, bytes]]:
    """Drop hop-by-hop headers, keeping repeated headers such as Set-Cookie."""
    return [
        (name, value)
        for name, value in headers.raw
        if name.decode("latin-1").lower() not in HOP_BY_HOP_HEADERS
    ]


def error_response(error: ProxyError) -> JSONResponse:
    """Render a proxy-generated error."""
    return JSONResponse(
        status_code=error.status_code,
        content={"error": {"message": error.message, "type": type(error).__name__}},
    )


class UpstreamProxy:
    """Forwards requests to the upstream and streams responses back.

    POST bodies are buffered (up to ``max_body_size``) and passed through
    the interceptor; all other bodies stream through untouched. Upstream
    responses are relayed without decoding.
    """

    def __init__(
        self,
        settings: Settings,
        interceptor: RequestInterceptor,
        client: httpx.AsyncClient | None = None,
        diagnostics: Diagnostics | None = None,
    ) -> None:
        """Initialize proxy.

        Args:
            settings: Application settings
            interceptor: Rewrites POST bodies
            client: HTTP client for upstream calls, created from settings if omitted
            diagnostics: Receives rejections and upstream failures
        """
        self.settings = settings
        self.interceptor = interceptor
        self.diagnostics = diagnostics or StructlogDiagnostics()
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.request_timeout, connect=settings.connect_timeout),
            follow_redirects=False,
        )

    def upstream_url(self, raw_path: bytes, query: bytes) -> httpx.URL:
        """Build the upstream URL for an inbound path and query.

        The base URL is parsed on every call, so a bad value fails the
        request rather than the process.

        Raises:
            UpstreamConfigError: If the base URL is not an absolute http(s) URL
        """
        try:
            base = httpx.URL(self.settings.target_base_url)
        except httpx.InvalidURL as e:
            raise UpstreamConfigError(f"Invalid target URL: {e}") from e
        if base.scheme not in ("http", "https") or not base.host:
            raise UpstreamConfigError(
                f"Invalid target URL: {self.settings.target_base_url!r}"
            )

        base_path = base.raw_path.split(b"?", 1)[0].decode("ascii")
        path = join_paths(base_path, raw_path.decode("latin-1"))
        if base.query and query:
            merged_query = base.query + b"&" + query
        else:
            merged_query = base.query or query

        url = f"{base.scheme}://{base.netloc.decode('ascii')}{path}"
        if merged_query:
            url += "?" + merged_query.decode("latin-1")
        return httpx.URL(url)

    async def read_body(self, request: Request) -> bytes:
        """Buffer the whole request body.

        Raises:
            BodyTooLargeError: If the body exceeds max_body_size
            BodyReadError: If the client goes away mid-body
        """
        limit = self.settings.max_body_size
        declared = request.headers.get("content-length", "")
        if limit and declared.isdigit() and int(declared) > limit:
            raise BodyTooLargeError(
                f"Request body of {declared} bytes exceeds limit of {limit} bytes"
            )

        body = bytearray()
        try:
            async for chunk in request.stream():
                body += chunk
                if limit and len(body) > limit:
                    raise BodyTooLargeError(
                        f"Request body exceeds limit of {limit} bytes"
                    )
        except ClientDisconnect as e:
            raise BodyReadError("Error reading request body: client disconnected") from e
        return bytes(body)

    def forward_headers(self, request: Request, is_post: bool) -> list[tuple[str, str]]:
        """Select inbound headers to send upstream.

        Hop-by-hop headers, Host, and headers named in Connection are
        dropped. Content-Length is dropped for POST since the body may
        change. The client address is appended to X-Forwarded-For.
        """
        dropped = set(HOP_BY_HOP_HEADERS) | {"host"}
        for token in request.headers.get("connection", "").split(","):
            if token.strip():
                dropped.add(token.strip().lower())
        if is_post:
            dropped.add("content-length")
        if request.client:
            dropped.add("x-forwarded-for")

        headers = [
            (name, value)
            for name, value in request.headers.items()
            if name.lower() not in dropped
        ]

        if request.client:
            prior = request.headers.getlist("x-forwarded-for")
            headers.append(("x-forwarded-for", ", ".join([*prior, request.client.host])))
        return headers

    def build_request(
        self,
        request: Request,
        url: httpx.URL,
        content,
        is_post: bool,
    ) -> httpx.Request:
        """Build the upstream request without the client's default headers."""
        headers = self.forward_headers(request, is_post)
        upstream_request = self.client.build_request(
            request.method,
            url,
            headers=headers,
            content=content,
        )

        # httpx adds Accept, Accept-Encoding and User-Agent when absent
        keep = {name.lower() for name, _ in headers}
        keep.update({"host", "content-length", "transfer-encoding", "connection"})
        for name in list(upstream_request.headers.keys()):
            if name.lower() not in keep:
                del upstream_request.headers[name]
        return upstream_request

    async def forward(self, request: Request) -> Response:
        """Relay one inbound request.

        Args:
            request: Inbound request

        Returns:
            Streaming upstream response, or a JSON error from the proxy
        """
        try:
            url = self.upstream_url(
                request.scope.get("raw_path") or request.url.path.encode("ascii"),
                request.scope.get("query_string", b""),
            )

            is_post = request.method.upper() == "POST"
            if is_post:
                body = await self.read_body(request)
                result = self.interceptor.intercept(request.method, body)
                content = result.body
                self.diagnostics.body_forwarded(len(content), result.modified)
            elif "content-length" in request.headers or "transfer-encoding" in request.headers:
                content = request.stream()
            else:
                content = None

            upstream_request = self.build_request(request, url, content, is_post)
            logger.debug("proxy.forward", method=request.method, url=str(url))

            try:
                upstream_response = await self.client.send(upstream_request, stream=True)
            except httpx.TimeoutException as e:
                self.diagnostics.upstream_failed(str(url), e)
                raise UpstreamTimeoutError(f"Upstream timed out: {e}") from e
            except httpx.TransportError as e:
                self.diagnostics.upstream_failed(str(url), e)
                raise UpstreamTransportError(f"Upstream unreachable: {e}") from e
        except ProxyError as e:
            self.diagnostics.request_rejected(e.status_code, e.message)
            return error_response(e)

        response = StreamingResponse(
            upstream_response.aiter_raw(),
            status_code=upstream_response.status_code,
            background=BackgroundTask(upstream_response.aclose),
        )
        response.raw_headers = filter_response_headers(upstream_response.headers)
        return response

    async def aclose(self) -> None:
        """Close the upstream HTTP client."""
        await self.client.aclose()


def create_proxy(
    settings: Settings,
    interceptor: RequestInterceptor,
    client: httpx.AsyncClient | None = None,
    diagnostics: Diagnostics | None = None,
) -> UpstreamProxy:
    """Factory for upstream proxy.

    Args:
        settings: Application settings
        interceptor: Request interceptor
        client: Optional preconfigured HTTP client
        diagnostics: Diagnostics collaborator

    Returns:
        Configured proxy
    """
    return UpstreamProxy(settings, interceptor, client, diagnostics)
