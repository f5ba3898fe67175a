"""
vCenter Session Management

Establishes the authenticated SOAP session used by every later step and
runs blocking pyVmomi calls off the event loop.

Author: uldyssian-sh
License: MIT
"""

import asyncio
import functools
import ssl
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional, TypeVar
from urllib.parse import urlparse

import structlog
from pyVim.connect import SmartConnect, Disconnect
from pyVmomi import vim

from .exceptions import VCenterConnectionError, VCenterAuthenticationError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

AUTH_FAULTS = (vim.fault.InvalidLogin, vim.fault.NotAuthenticated)

DISCONNECT_TIMEOUT = 5.0


class RemoteExecutor:
    """
    Worker threads for blocking pyVmomi calls.

    Awaiting ``call`` from a task that gets cancelled returns control at
    once; the worker thread finishes on its own and its result is dropped.
    ``shutdown(wait=False)`` releases the pool without joining threads that
    are still stuck in a remote call.
    """

    def __init__(self, max_workers: Optional[int] = None):
        self.thread_pool = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="vcenter-call"
        )

    def submit(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> "Future[T]":
        return self.thread_pool.submit(func, *args, **kwargs)

    async def call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.thread_pool, functools.partial(func, *args, **kwargs))

    def shutdown(self, wait: bool = True) -> None:
        self.thread_pool.shutdown(wait=wait, cancel_futures=True)


class Session:
    """Authenticated vCenter session"""

    def __init__(self, endpoint_url: str, username: str, service_instance: Any, content: Any,
                 executor: Optional[RemoteExecutor] = None):
        self.endpoint_url = endpoint_url
        self.username = username
        self.service_instance = service_instance
        self.content = content
        self.executor = executor or RemoteExecutor()
        self._closed = False

    @property
    def root_folder(self) -> Any:
        return self.content.rootFolder

    @property
    def perf_manager(self) -> Any:
        return self.content.perfManager

    @property
    def closed(self) -> bool:
        return self._closed

    def require_open(self) -> None:
        """Raise if the session has been closed"""
        if self._closed:
            raise VCenterConnectionError(f"Session to {self.endpoint_url} is closed")

    async def call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run a blocking remote call on this session's worker threads"""
        return await self.executor.call(func, *args, **kwargs)

    def close(self) -> None:
        """Log out from vCenter; safe to call more than once"""
        if self._closed:
            return
        self._closed = True
        self._logout()

    async def aclose(self, timeout: float = DISCONNECT_TIMEOUT) -> None:
        """Log out without blocking the event loop, giving up after timeout seconds"""
        if self._closed:
            return
        self._closed = True
        try:
            await asyncio.wait_for(self.executor.call(self._logout), timeout)
        except asyncio.TimeoutError:
            logger.warning("Disconnect timed out", endpoint=self.endpoint_url, timeout=timeout)

    def abandon(self) -> None:
        """Mark the session closed without a remote logout; the server expires it"""
        if not self._closed:
            self._closed = True
            logger.info("Session abandoned", endpoint=self.endpoint_url)

    def _logout(self) -> None:
        try:
            Disconnect(self.service_instance)
            logger.info("Disconnected from vCenter", endpoint=self.endpoint_url)
        except Exception as e:
            logger.warning("Disconnect error", endpoint=self.endpoint_url, error=str(e))

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<Session {self.username}@{self.endpoint_url} {state}>"


def _ssl_context(insecure: bool) -> Optional[ssl.SSLContext]:
    if not insecure:
        return None
    ssl_context = ssl.create_default_context()
    ssl_context.check_hostname = False
    ssl_context.verify_mode = ssl.CERT_NONE
    return ssl_context


def _open(endpoint_url: str, username: str, password: str, insecure: bool,
          timeout: float, executor: RemoteExecutor) -> Session:
    url = urlparse(endpoint_url)
    if not url.hostname:
        raise VCenterConnectionError(f"Invalid endpoint URL: {endpoint_url}")

    try:
        service_instance = SmartConnect(
            host=url.hostname,
            user=username,
            pwd=password,
            port=url.port or 443,
            path=url.path or "/sdk",
            sslContext=_ssl_context(insecure),
            httpConnectionTimeout=timeout
        )
    except AUTH_FAULTS as e:
        raise VCenterAuthenticationError(
            f"Credentials rejected by {url.hostname} for user {username}: {e.msg or e}"
        ) from e
    except Exception as e:
        raise VCenterConnectionError(f"Could not reach {endpoint_url}: {e}") from e

    if not service_instance:
        raise VCenterConnectionError(f"Failed to connect to vCenter {url.hostname}")

    try:
        content = service_instance.RetrieveContent()
    except Exception as e:
        try:
            Disconnect(service_instance)
        except Exception as disconnect_error:
            logger.warning("Disconnect error", endpoint=endpoint_url, error=str(disconnect_error))
        raise VCenterConnectionError(f"Could not retrieve service content from {endpoint_url}: {e}") from e

    return Session(endpoint_url, username, service_instance, content, executor)


def _close_late_session(pending: "Future[Session]") -> None:
    """Done callback for a login the caller stopped waiting for"""
    if pending.cancelled() or pending.exception() is not None:
        return
    session = pending.result()
    logger.warning("Closing session opened after connect was abandoned", endpoint=session.endpoint_url)
    session.close()


async def connect(endpoint_url: str, username: str, password: str,
                  insecure: bool = False, timeout: float = 60,
                  executor: Optional[RemoteExecutor] = None) -> Session:
    """
    Open an authenticated session to the vCenter SDK endpoint.

    Args:
        endpoint_url: SDK URL, e.g. https://vcenter.example.com/sdk
        username: vCenter user
        password: vCenter password
        insecure: Skip certificate verification when True
        timeout: Connection timeout in seconds, also the socket timeout of
            every later call on the session
        executor: Worker threads for the session's remote calls

    Raises:
        VCenterAuthenticationError: The credentials were rejected
        VCenterConnectionError: The endpoint could not be reached
    """
    if insecure:
        logger.warning("Certificate verification disabled", endpoint=endpoint_url)

    executor = executor or RemoteExecutor()
    pending = executor.submit(_open, endpoint_url, username, password, insecure, timeout, executor)
    try:
        session = await asyncio.wait_for(asyncio.wrap_future(pending), timeout)
    except asyncio.TimeoutError:
        pending.add_done_callback(_close_late_session)
        raise VCenterConnectionError(
            f"Timed out after {timeout}s connecting to {endpoint_url}"
        ) from None
    except asyncio.CancelledError:
        pending.add_done_callback(_close_late_session)
        raise
    logger.info("Connected to vCenter", endpoint=endpoint_url, user=username)
    return session
