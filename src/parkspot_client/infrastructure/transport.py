# File: src/parkspot_client/infrastructure/transport.py
"""
HTTP Transport

Thin wrapper over a requests.Session with a base address, default headers
and a fixed per-request timeout. Cross-cutting behavior (credentials,
authorization-failure handling) is attached through request and response
hooks rather than built in.

No retries happen here. Mutating calls (reserve, pay) must stay single-shot;
callers may retry idempotent reads themselves.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

import requests

from ..config import DEFAULT_TIMEOUT_SECONDS
from ..domain.errors import TransportError, TransportErrorKind


@dataclass
class RequestContext:
    """Outgoing request as seen by hooks; hooks may edit headers"""
    method: str
    path: str
    url: str
    headers: Dict[str, str]
    anonymous: bool = False
    token: Optional[str] = None


@dataclass(frozen=True)
class RawResponse:
    status: int
    body: Any
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


RequestHook = Callable[[RequestContext], None]
ResponseHook = Callable[[RequestContext, RawResponse], None]


class Transport:
    """Issues JSON requests against the backend"""

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        default_headers: Optional[Mapping[str, str]] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.default_headers: Dict[str, str] = dict(default_headers or {})
        self._session = session or requests.Session()
        self._request_hooks: List[RequestHook] = []
        self._response_hooks: List[ResponseHook] = []
        self.logger = logging.getLogger(self.__class__.__name__)

    def add_request_hook(self, hook: RequestHook) -> None:
        self._request_hooks.append(hook)

    def add_response_hook(self, hook: ResponseHook) -> None:
        self._response_hooks.append(hook)

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def send(
        self,
        method: str,
        path: str,
        body: Any = None,
        query: Optional[Mapping[str, Any]] = None,
        anonymous: bool = False,
        headers: Optional[Mapping[str, str]] = None,
    ) -> RawResponse:
        """
        Perform one request

        Every response, successful or not, passes through the response hooks
        exactly once before a non-2xx status is raised as TransportError.
        """
        context = RequestContext(
            method=method.upper(),
            path=path,
            url=self.url_for(path),
            headers={**self.default_headers, **(headers or {})},
            anonymous=anonymous,
        )
        for hook in self._request_hooks:
            hook(context)

        params = {k: v for k, v in (query or {}).items() if v is not None} or None
        self.logger.debug(f"{context.method} {context.url}")
        try:
            response = self._session.request(
                context.method,
                context.url,
                json=body,
                params=params,
                headers=context.headers,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as exc:
            raise TransportError(
                TransportErrorKind.TIMEOUT,
                f"{context.method} {path} timed out after {self.timeout:g}s",
            ) from exc
        except requests.exceptions.RequestException as exc:
            raise TransportError(
                TransportErrorKind.NETWORK,
                f"{context.method} {path} could not reach the server: {exc}",
            ) from exc

        raw = RawResponse(
            status=response.status_code,
            body=self._parse_body(response),
            headers=dict(response.headers),
        )
        for hook in self._response_hooks:
            hook(context, raw)

        if not raw.ok:
            self.logger.debug(f"{context.method} {context.url} -> {raw.status}")
            raise TransportError(
                TransportErrorKind.HTTP,
                f"{context.method} {path} failed with status {raw.status}",
                status=raw.status,
                body=raw.body,
            )
        return raw

    @staticmethod
    def _parse_body(response: requests.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def close(self) -> None:
        self._session.close()
