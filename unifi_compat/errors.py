# SPDX-License-Identifier: MIT
"""Exceptions raised by the controller client.

Callers can tell apart bad input (NoParams, NoSiteProvided), a rejecting
server (AuthenticationFailed, InvalidStatusCode), a refusing TLS layer
(InvalidSignature) and payloads that match no known shape (DecodeError).
"""

from __future__ import annotations

from typing import Optional


class UnifiError(Exception):
    """Base exception for all controller client errors."""


class DecodeError(UnifiError):
    """A response payload could not be decoded."""


class UnsupportedShapeError(DecodeError):
    """A flexible scalar received a JSON shape it cannot interpret."""

    def __init__(self, type_name: str, raw) -> None:
        self.type_name = type_name
        self.raw = raw
        super().__init__(f"cannot decode {type(raw).__name__} into {type_name}: {raw!r}")


class RecordShapeError(DecodeError):
    """A record body matched none of the shapes its model accepts."""


class InvalidSignatureError(UnifiError):
    """The peer certificate does not match any pinned fingerprint."""

    def __init__(self, message: str = "certificate signature does not match") -> None:
        super().__init__(message)


class AuthenticationFailedError(UnifiError):
    """Login returned something other than 200."""

    def __init__(self, username: str, url: str, status: int) -> None:
        self.username = username
        self.url = url
        self.status = status
        super().__init__(f"authentication failed (user: {username}): {url} (status: {status})")


class InvalidStatusCodeError(UnifiError):
    """A request returned something other than 200.

    The response body is kept on ``body`` since controllers put diagnostic
    payloads in error responses.
    """

    def __init__(self, url: str, status: int, body: bytes = b"") -> None:
        self.url = url
        self.status = status
        self.body = body
        super().__init__(f"invalid status code from server: {url}: {status}")


class NoParamsError(UnifiError):
    """A call that requires parameters was invoked without any."""

    def __init__(self, message: str = "requested PUT with no parameters") -> None:
        super().__init__(message)


class NoSiteProvidedError(UnifiError):
    """A site-scoped call was invoked without a site name."""

    def __init__(self, message: str = "site not provided or site name is empty") -> None:
        super().__init__(message)


class UnifiRequestError(UnifiError):
    """Transport failure (timeout, refused connection, TLS error, ...).

    Carries the request context so log lines and tracebacks show where the
    call was going and how long it ran before failing.
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        method: Optional[str] = None,
        latency_ms: Optional[int] = None,
        last_error: Optional[BaseException] = None,
    ) -> None:
        self.url = url
        self.method = method
        self.latency_ms = latency_ms
        self.last_error = last_error
        super().__init__(message)

    def __str__(self) -> str:
        context_parts = []
        if self.method:
            context_parts.append(f"method={self.method}")
        if self.url:
            context_parts.append(f"url={self.url}")
        if self.latency_ms is not None:
            context_parts.append(f"latency_ms={self.latency_ms}")
        if self.last_error is not None:
            context_parts.append(f"error={self.last_error!r}")
        if context_parts:
            return f"{super().__str__()} ({', '.join(context_parts)})"
        return super().__str__()
