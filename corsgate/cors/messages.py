"""
CORS Gate - HTTP Messages
=========================
Request/response views consumed by the CORS policy engine
"""

from dataclasses import dataclass, field, replace
from typing import Callable, Mapping, Optional, Protocol, Tuple

from starlette.datastructures import Headers
from starlette.requests import Request
from starlette.responses import Response


# =============================================================================
# Protocols
# =============================================================================


class HttpRequest(Protocol):
    """Read-only view of an incoming request."""

    @property
    def method(self) -> str:
        ...

    def has_header(self, name: str) -> bool:
        ...

    def get_header_line(self, name: str) -> str:
        ...


class HttpResponse(Protocol):
    """Response value whose header updates return a new response."""

    @property
    def status_code(self) -> int:
        ...

    def has_header(self, name: str) -> bool:
        ...

    def get_header_line(self, name: str) -> str:
        ...

    def with_header(self, name: str, value: str) -> "HttpResponse":
        ...


ResponseFactory = Callable[[int], HttpResponse]


# =============================================================================
# Request
# =============================================================================


@dataclass(frozen=True)
class RequestMessage:
    """Immutable request view backed by case-insensitive Starlette headers."""

    method: str
    headers: Headers = field(default_factory=Headers)

    @classmethod
    def build(
        cls, method: str, headers: Optional[Mapping[str, str]] = None
    ) -> "RequestMessage":
        return cls(method=method, headers=Headers(headers=dict(headers or {})))

    @classmethod
    def from_starlette(cls, request: Request) -> "RequestMessage":
        return cls(method=request.method, headers=request.headers)

    def has_header(self, name: str) -> bool:
        return name in self.headers

    def get_header_line(self, name: str) -> str:
        return ", ".join(self.headers.getlist(name))


# =============================================================================
# Response
# =============================================================================


@dataclass(frozen=True)
class ResponseMessage:
    """
    Immutable response value.

    Header names keep the casing they were set with; lookups ignore case.
    ``with_header`` replaces every existing value of a header, so the
    original response is never modified.
    """

    status_code: int = 200
    headers: Tuple[Tuple[str, str], ...] = ()

    @classmethod
    def create(cls, status_code: int = 200) -> "ResponseMessage":
        """Fresh response with no headers and no body."""
        return cls(status_code=status_code)

    @classmethod
    def from_starlette(cls, response: Response) -> "ResponseMessage":
        return cls(
            status_code=response.status_code,
            headers=tuple(response.headers.items()),
        )

    def has_header(self, name: str) -> bool:
        key = name.lower()
        return any(k.lower() == key for k, _ in self.headers)

    def get_header_line(self, name: str) -> str:
        key = name.lower()
        return ", ".join(v for k, v in self.headers if k.lower() == key)

    def with_header(self, name: str, value: str) -> "ResponseMessage":
        key = name.lower()
        headers = tuple((k, v) for k, v in self.headers if k.lower() != key)
        return replace(self, headers=headers + ((name, value),))

    def to_starlette(self) -> Response:
        """Materialize as an empty-bodied Starlette response."""
        response = Response(status_code=self.status_code)
        for name, value in self.headers:
            response.headers.append(name, value)
        return response
