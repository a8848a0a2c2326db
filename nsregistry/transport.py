"""
Transport Layer

Performs the GET that retrieves a remote code unit, blocking or as a
coroutine.

SELECTION:
==========
A TransportChain holds ordered construction strategies, newest first
(httpx, then requests). The first strategy that constructs is cached and
used for every later load. If none constructs, TransportUnavailable is
raised: fatal, never retried, never swallowed.

STATUS SEMANTICS:
=================
- Network responses report their HTTP status
- Network failures (connect error, timeout) report status 0
- Local sources (plain paths, file: URIs) report NO status (None) on
  success, 404/403 when the file cannot be read

A missing status counts as success only for a local origin.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple
from urllib.parse import urlparse
from urllib.request import url2pathname
import asyncio
import logging
import threading

import httpx
import requests

from .config import RegistryConfig
from .contracts.base import Error, ErrorCode, TransportUnavailable

logger = logging.getLogger(__name__)

LOCAL_SCHEMES = frozenset({"", "file"})

# 1223: legacy user agents report a 204 as 1223
_EXTRA_SUCCESS_STATUSES = frozenset({304, 1223})


# =============================================================================
# STATUS EVALUATION
# =============================================================================

def origin_scheme(uri: str) -> str:
    """Scheme of a URI, with Windows drive letters treated as no scheme."""
    scheme = urlparse(uri).scheme.lower()
    if len(scheme) == 1:
        return ""
    return scheme


def is_local_uri(uri: str) -> bool:
    return origin_scheme(uri) in LOCAL_SCHEMES


def is_http_request_successful(status: Optional[int], uri: str) -> bool:
    """
    Success predicate for a settled request.

    2xx, 304 and 1223 succeed. A missing status succeeds only when the
    request was served from a non-network origin.
    """
    if status:
        return 200 <= status < 300 or status in _EXTRA_SUCCESS_STATUSES
    return is_local_uri(uri)


@dataclass(frozen=True)
class TransportResponse:
    """Settled request: status is None when the origin reports none."""
    uri: str
    status: Optional[int]
    text: str

    @property
    def ok(self) -> bool:
        return is_http_request_successful(self.status, self.uri)


def local_path(uri: str) -> Path:
    parsed = urlparse(uri)
    if parsed.scheme.lower() == "file":
        return Path(url2pathname(parsed.path))
    return Path(uri)


def read_local(method: str, uri: str) -> TransportResponse:
    """Serve a request from the filesystem."""
    if method not in ("GET", "HEAD"):
        return TransportResponse(uri=uri, status=405, text="")
    path = local_path(uri)
    try:
        text = path.read_text(encoding="utf-8")
    except (FileNotFoundError, NotADirectoryError):
        logger.warning("Local source not found: %s", path)
        return TransportResponse(uri=uri, status=404, text="")
    except (IsADirectoryError, PermissionError) as exc:
        logger.warning("Local source unreadable: %s (%s)", path, exc)
        return TransportResponse(uri=uri, status=403, text="")
    return TransportResponse(uri=uri, status=None, text=text if method == "GET" else "")


# =============================================================================
# TRANSPORTS
# =============================================================================

class Transport(ABC):
    """
    Base transport. Local URIs are served here; subclasses implement
    the network round-trip.
    """

    name = "abstract"

    def __init__(self, config: RegistryConfig):
        self._config = config

    def _headers(self) -> Dict[str, str]:
        return {'User-Agent': self._config.user_agent}

    def request(
        self,
        method: str,
        uri: str,
        body: Optional[bytes] = None
    ) -> TransportResponse:
        """Blocking request. Returns once the response has settled."""
        method = method.upper()
        if is_local_uri(uri):
            return read_local(method, uri)
        return self._request_remote(method, uri, body)

    async def request_async(
        self,
        method: str,
        uri: str,
        body: Optional[bytes] = None
    ) -> TransportResponse:
        """Coroutine form of `request`."""
        method = method.upper()
        if is_local_uri(uri):
            return read_local(method, uri)
        return await self._request_remote_async(method, uri, body)

    def get(self, uri: str) -> TransportResponse:
        return self.request("GET", uri)

    async def get_async(self, uri: str) -> TransportResponse:
        return await self.request_async("GET", uri)

    @abstractmethod
    def _request_remote(
        self, method: str, uri: str, body: Optional[bytes]
    ) -> TransportResponse:
        pass

    @abstractmethod
    async def _request_remote_async(
        self, method: str, uri: str, body: Optional[bytes]
    ) -> TransportResponse:
        pass


class HttpxTransport(Transport):
    """Preferred transport: native sync and async clients."""

    name = "httpx"

    def __init__(self, config: RegistryConfig):
        super().__init__(config)
        # Capability probe: client construction reads proxy/env settings.
        httpx.Client(timeout=config.timeout_seconds).close()

    def _request_remote(
        self, method: str, uri: str, body: Optional[bytes]
    ) -> TransportResponse:
        try:
            with httpx.Client(timeout=self._config.timeout_seconds) as client:
                response = client.request(
                    method,
                    uri,
                    content=body,
                    headers=self._headers(),
                    follow_redirects=True
                )
        except httpx.TimeoutException:
            logger.warning("Timed out fetching %s", uri)
            return TransportResponse(uri=uri, status=0, text="")
        except httpx.TransportError as exc:
            logger.warning("Network error fetching %s: %s", uri, exc)
            return TransportResponse(uri=uri, status=0, text="")
        return TransportResponse(uri=uri, status=response.status_code, text=response.text)

    async def _request_remote_async(
        self, method: str, uri: str, body: Optional[bytes]
    ) -> TransportResponse:
        try:
            async with httpx.AsyncClient(timeout=self._config.timeout_seconds) as client:
                response = await client.request(
                    method,
                    uri,
                    content=body,
                    headers=self._headers(),
                    follow_redirects=True
                )
        except httpx.TimeoutException:
            logger.warning("Timed out fetching %s", uri)
            return TransportResponse(uri=uri, status=0, text="")
        except httpx.TransportError as exc:
            logger.warning("Network error fetching %s: %s", uri, exc)
            return TransportResponse(uri=uri, status=0, text="")
        return TransportResponse(uri=uri, status=response.status_code, text=response.text)


class RequestsTransport(Transport):
    """
    Legacy fallback. requests has no async client, so the coroutine form
    runs the blocking call in the loop's default executor.
    """

    name = "requests"

    def _request_remote(
        self, method: str, uri: str, body: Optional[bytes]
    ) -> TransportResponse:
        try:
            response = requests.request(
                method,
                uri,
                data=body,
                headers=self._headers(),
                timeout=self._config.timeout_seconds
            )
        except requests.Timeout:
            logger.warning("Timed out fetching %s", uri)
            return TransportResponse(uri=uri, status=0, text="")
        except requests.RequestException as exc:
            logger.warning("Network error fetching %s: %s", uri, exc)
            return TransportResponse(uri=uri, status=0, text="")
        return TransportResponse(uri=uri, status=response.status_code, text=response.text)

    async def _request_remote_async(
        self, method: str, uri: str, body: Optional[bytes]
    ) -> TransportResponse:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, partial(self._request_remote, method, uri, body)
        )


# =============================================================================
# SELECTION
# =============================================================================

TransportFactory = Callable[[RegistryConfig], Transport]

DEFAULT_STRATEGIES: Tuple[TransportFactory, ...] = (HttpxTransport, RequestsTransport)


class TransportChain:
    """
    Ordered fallback of transport construction strategies.

    The winner is selected once, on first acquire, and reused.
    """

    def __init__(
        self,
        config: RegistryConfig,
        strategies: Optional[Iterable[TransportFactory]] = None
    ):
        self._config = config
        self._strategies: Tuple[TransportFactory, ...] = (
            tuple(strategies) if strategies is not None else DEFAULT_STRATEGIES
        )
        self._selected: Optional[Transport] = None
        self._lock = threading.Lock()

    @classmethod
    def fixed(cls, transport: Transport) -> 'TransportChain':
        """Chain that always yields `transport` (dependency injection)."""
        chain = cls(RegistryConfig(), strategies=())
        chain._selected = transport
        return chain

    @property
    def selected(self) -> Optional[Transport]:
        return self._selected

    def acquire(self) -> Transport:
        """Return the selected transport, selecting it on first use."""
        if self._selected is not None:
            return self._selected
        with self._lock:
            if self._selected is not None:
                return self._selected
            failures: List[str] = []
            for strategy in self._strategies:
                label = getattr(strategy, 'name', None) or getattr(strategy, '__name__', repr(strategy))
                try:
                    transport = strategy(self._config)
                except Exception as exc:
                    logger.debug("Transport strategy %s unavailable: %s", label, exc)
                    failures.append(f"{label}: {exc}")
                    continue
                logger.debug("Selected transport %s", transport.name)
                self._selected = transport
                return transport

            error = Error(
                code=ErrorCode.TRANSPORT_UNAVAILABLE,
                message="No transport strategy could be constructed"
            ).with_context('attempted', "; ".join(failures) or "none")
            logger.error("%s (%s)", error.message, error.context_value('attempted'))
            raise TransportUnavailable(error)
