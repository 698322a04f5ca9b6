"""A small GraphQL-over-HTTP client used to query downstream services."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping, Optional, Sequence, Union

import requests

from .config import VERSION

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESPONSE_SIZE = 1024 * 1024
DEFAULT_TIMEOUT = 5.0

_OPERATION_TYPES = ("query", "mutation", "subscription")
_CHUNK_SIZE = 64 * 1024

HeaderValues = Union[str, Sequence[str]]


class ClientError(Exception):
    """A downstream GraphQL request failed."""


@dataclass
class GraphqlError:
    """A single error as returned in a GraphQL response."""

    message: str = ""
    path: Optional[list] = None
    extensions: Optional[dict] = None

    @classmethod
    def from_json(cls, data: Any) -> "GraphqlError":
        if not isinstance(data, dict):
            raise ClientError(f"error decoding response: invalid error entry {data!r}")
        return cls(
            message=str(data.get("message", "")),
            path=data.get("path"),
            extensions=data.get("extensions"),
        )

    def to_json(self) -> dict:
        result: dict[str, Any] = {"message": self.message}
        if self.path:
            result["path"] = self.path
        result["extensions"] = self.extensions
        return result


class GraphqlErrors(ClientError):
    """The list of errors carried by a GraphQL response."""

    def __init__(self, errors: Sequence[GraphqlError]):
        self.errors = list(errors)
        super().__init__(",".join(e.message for e in self.errors))

    def __iter__(self) -> Iterator[GraphqlError]:
        return iter(self.errors)

    def __len__(self) -> int:
        return len(self.errors)

    def __getitem__(self, index: int) -> GraphqlError:
        return self.errors[index]


def normalize_operation_type(operation: str) -> str:
    """Lower-case the operation type; anything unknown becomes "query"."""
    op = operation.lower()
    return op if op in _OPERATION_TYPES else "query"


@dataclass
class Request:
    """A GraphQL request."""

    query: str = ""
    operation_type: str = ""
    operation_name: str = ""
    variables: Optional[dict] = None
    headers: Optional[Mapping[str, HeaderValues]] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.operation_type:
            self.operation_type = normalize_operation_type(self.operation_type)

    def to_json(self) -> dict:
        """The request body; headers are not part of it."""
        body: dict[str, Any] = {}
        if self.operation_type:
            body["operationType"] = self.operation_type
        body["query"] = self.query
        if self.operation_name:
            body["operationName"] = self.operation_name
        if self.variables:
            body["variables"] = self.variables
        return body


def _header_value(value: HeaderValues) -> str:
    if isinstance(value, str):
        return value
    return ", ".join(value)


def _lookup(data: dict, key: str) -> Any:
    if key in data:
        return data[key]
    return next((v for k, v in data.items() if k.lower() == key), None)


class GraphQLClient:
    """Sends GraphQL requests over HTTP and decodes the responses."""

    timeout: float = DEFAULT_TIMEOUT

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        max_response_size: int = DEFAULT_MAX_RESPONSE_SIZE,
        user_agent: str = "",
        keep_alive: bool = True,
    ):
        self.session = session if session is not None else requests.Session()
        self.max_response_size = max_response_size
        self.user_agent = user_agent
        self.keep_alive = keep_alive

    def _build_headers(self, request: Request) -> dict[str, str]:
        headers = {name: _header_value(value) for name, value in (request.headers or {}).items()}
        headers["Content-Type"] = "application/json; charset=utf-8"
        headers["Accept"] = "application/json"
        if self.user_agent:
            headers["User-Agent"] = self.user_agent
        if not self.keep_alive:
            headers["Connection"] = "close"
        return headers

    def _read_limited(self, response: requests.Response, limit: int) -> tuple[bytes, bool]:
        """Read at most ``limit`` bytes; report whether the limit was reached."""
        buffer = bytearray()
        for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
            buffer.extend(chunk)
            if len(buffer) >= limit:
                return bytes(buffer[:limit]), True
        return bytes(buffer), False

    def request(self, url: str, request: Request) -> Any:
        """Execute the request and return the response's data.

        Timeouts are raised as they come from the HTTP layer so that callers
        can retry; other failures raise ClientError, and errors in the
        response raise GraphqlErrors.
        """
        try:
            payload = json.dumps(request.to_json())
        except (TypeError, ValueError) as exc:
            raise ClientError(f"unable to encode request body: {exc}") from exc

        try:
            response = self.session.post(
                url,
                data=payload.encode("utf-8"),
                headers=self._build_headers(request),
                timeout=self.timeout,
                stream=True,
            )
        except requests.Timeout:
            logger.debug("request to %s timed out", url)
            raise
        except requests.RequestException as exc:
            raise ClientError(f"error during request: {exc}") from exc

        with response:
            if response.status_code != 200:
                raise ClientError(f"unexpected response code: {response.status_code} {response.reason}")
            limit = self.max_response_size or float("inf")
            try:
                body, limit_reached = self._read_limited(response, limit)
            except requests.Timeout:
                raise
            except requests.RequestException as exc:
                raise ClientError(f"error decoding response: {exc}") from exc

        decoded = self._decode(body, limit_reached)
        errors = decoded.get("errors") or []
        if not isinstance(errors, list):
            raise ClientError("error decoding response: errors is not a list")
        if errors:
            raise GraphqlErrors([GraphqlError.from_json(e) for e in errors])
        return _lookup(decoded, "data")

    def _decode(self, body: bytes, limit_reached: bool) -> dict:
        text = body.decode("utf-8", errors="replace").lstrip()
        if not text:
            raise ClientError("error decoding response: EOF")
        try:
            decoded, _ = json.JSONDecoder().raw_decode(text)
        except json.JSONDecodeError as exc:
            if limit_reached and exc.pos >= len(text):
                raise ClientError(
                    f"response exceeded maximum size of {self.max_response_size} bytes"
                ) from exc
            raise ClientError(f"error decoding response: {exc}") from exc
        if not isinstance(decoded, dict):
            raise ClientError("error decoding response: response is not a JSON object")
        return decoded


def generate_user_agent(operation: str) -> str:
    """The user agent sent for the given kind of operation."""
    return f"GqlFederate/{VERSION} ({operation})"