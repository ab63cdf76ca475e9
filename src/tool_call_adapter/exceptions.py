"""Errors the proxy reports to callers."""

from fastapi import status


class ProxyError(Exception):
    """Base error for a request the proxy could not complete."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UpstreamConfigError(ProxyError):
    """The configured upstream base URL cannot be used."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class BodyReadError(ProxyError):
    """The inbound request body could not be read."""

    status_code = status.HTTP_400_BAD_REQUEST


class BodyTooLargeError(ProxyError):
    """The inbound request body exceeds the configured limit."""

    status_code = status.HTTP_413_CONTENT_TOO_LARGE


class UpstreamTransportError(ProxyError):
    """The upstream could not be reached or dropped the connection."""

    status_code = status.HTTP_502_BAD_GATEWAY


class UpstreamTimeoutError(UpstreamTransportError):
    """The upstream did not answer within the configured deadline."""

    status_code = status.HTTP_504_GATEWAY_TIMEOUT
