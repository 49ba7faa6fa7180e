"""Google Drive API service factory."""

from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from threading import Lock
from typing import Any, Optional

from googleapiclient.discovery import build

from ..common.constants import SERVICE_READY_TIMEOUT
from ..common.exceptions import AuthenticationError, SourceUnavailableError
from ..common.logging import get_logger
from .oauth import OAuthManager

logger = get_logger(__name__)


class DriveServiceFactory:
    """Creates authenticated Drive API service instances.

    The shared service is built once in the background; callers wait on the
    resulting future with a bounded timeout instead of polling for readiness.
    """

    def __init__(
        self,
        oauth_manager: OAuthManager,
        ready_timeout: float = SERVICE_READY_TIMEOUT,
    ) -> None:
        """Initialize service factory.

        Args:
            oauth_manager: OAuth manager for authentication
            ready_timeout: Seconds to wait for the shared service
        """
        self.oauth_manager = oauth_manager
        self.ready_timeout = ready_timeout
        self._ready: Optional[Future] = None
        self._lock = Lock()

    def create_service(self) -> Any:
        """Build a new authenticated Drive API service.

        httplib2 connections are not thread-safe, so each worker thread
        needs its own service instance.

        Raises:
            AuthenticationError: If not authenticated
        """
        creds = self.oauth_manager.require_credentials()

        try:
            service = build("drive", "v3", credentials=creds, cache_discovery=False)
        except Exception as e:
            raise SourceUnavailableError(f"Failed to create Drive service: {e}") from e

        logger.debug("Created Drive API service")
        return service

    def start(self) -> Future:
        """Begin building the shared service if not already started."""
        with self._lock:
            if self._ready is None:
                executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="drive-init")
                self._ready = executor.submit(self.create_service)
                executor.shutdown(wait=False)
            return self._ready

    def get_service(self, timeout: Optional[float] = None) -> Any:
        """Wait for the shared service.

        Args:
            timeout: Seconds to wait (defaults to ready_timeout)

        Raises:
            AuthenticationError: If not authenticated
            SourceUnavailableError: If the service is not ready in time
        """
        timeout = self.ready_timeout if timeout is None else timeout
        future = self.start()

        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError as e:
            raise SourceUnavailableError(
                f"Drive client was not ready after {timeout:.0f}s"
            ) from e
        except (AuthenticationError, SourceUnavailableError):
            self.invalidate()
            raise

    def invalidate(self) -> None:
        """Drop the shared service so the next call rebuilds it."""
        with self._lock:
            self._ready = None
