"""Google Drive file source."""

import threading
from typing import Any, Optional

from googleapiclient.errors import HttpError

from ..audit.models import FileRecord, TrashFailureReason
from ..auth.service import DriveServiceFactory
from ..common.constants import FILE_FIELDS, MAX_FILES, PAGE_SIZE
from ..common.exceptions import (
    AuthenticationError,
    RemediationItemError,
    SourceUnavailableError,
)
from ..common.logging import get_logger
from ..common.rate_limiter import TokenBucketRateLimiter
from ..common.retry import exponential_backoff, http_status, is_rate_limited
from .base import FileSource, record_from_api

logger = get_logger(__name__)


def trash_failure_reason(error: HttpError) -> TrashFailureReason:
    """Map a Drive API error to a trash failure reason."""
    status = http_status(error)

    if status == 404:
        return TrashFailureReason.NOT_FOUND
    if status == 401:
        return TrashFailureReason.UNAUTHORIZED
    if is_rate_limited(error):
        return TrashFailureReason.TRANSIENT
    if status == 403:
        return TrashFailureReason.FORBIDDEN
    return TrashFailureReason.TRANSIENT


class DriveFileSource(FileSource):
    """Lists and trashes files in the authenticated user's Drive."""

    name = "drive"

    def __init__(
        self,
        service_factory: DriveServiceFactory,
        rate_limiter: TokenBucketRateLimiter,
        page_size: int = PAGE_SIZE,
        max_files: int = MAX_FILES,
    ) -> None:
        """Initialize Drive source.

        Args:
            service_factory: Factory for creating Drive API service
            rate_limiter: Rate limiter for API requests
            page_size: Number of files to fetch per page
            max_files: Stop listing after this many files
        """
        self.service_factory = service_factory
        self.rate_limiter = rate_limiter
        self.page_size = page_size
        self.max_files = max_files
        self._local = threading.local()

    def list_files(self) -> list[FileRecord]:
        """List non-trashed files, most recently modified first.

        Raises:
            AuthenticationError: If not authenticated or the token is rejected
            SourceUnavailableError: If listing fails
        """
        service = self.service_factory.get_service()
        files: list[FileRecord] = []
        page_token: Optional[str] = None

        try:
            while len(files) < self.max_files:
                page_size = min(self.page_size, self.max_files - len(files))
                response = self._fetch_page(service, page_token, page_size)

                for file_data in response.get("files", []):
                    try:
                        files.append(record_from_api(file_data))
                    except (KeyError, ValueError) as e:
                        logger.warning(f"Failed to parse file {file_data.get('id')}: {e}")

                page_token = response.get("nextPageToken")
                if not page_token:
                    break

        except HttpError as e:
            if http_status(e) == 401:
                self.service_factory.invalidate()
                raise AuthenticationError(f"Drive rejected the stored token: {e}") from e
            raise SourceUnavailableError(f"Failed to list Drive files: {e}") from e
        except Exception as e:
            raise SourceUnavailableError(f"Failed to list Drive files: {e}") from e

        files = files[: self.max_files]
        logger.info(f"Listed {len(files)} files")
        return files

    @exponential_backoff()
    def _fetch_page(
        self,
        service: Any,
        page_token: Optional[str],
        page_size: int,
    ) -> dict[str, Any]:
        self.rate_limiter.acquire()
        return (
            service.files()
            .list(
                q="trashed = false",
                pageSize=page_size,
                pageToken=page_token,
                fields=f"nextPageToken, files({FILE_FIELDS})",
                orderBy="modifiedTime desc",
            )
            .execute()
        )

    def _thread_service(self) -> Any:
        service = getattr(self._local, "service", None)
        if service is None:
            service = self.service_factory.create_service()
            self._local.service = service
        return service

    def trash_file(self, file_id: str) -> None:
        """Move one file to the trash with a single API call.

        Raises:
            RemediationItemError: If the file could not be trashed
        """
        try:
            service = self._thread_service()
        except AuthenticationError as e:
            raise RemediationItemError(file_id, TrashFailureReason.UNAUTHORIZED, str(e)) from e
        except SourceUnavailableError as e:
            raise RemediationItemError(file_id, TrashFailureReason.TRANSIENT, str(e)) from e

        self.rate_limiter.acquire()

        try:
            # Only ever set trashed=True; files.delete() is never used
            service.files().update(
                fileId=file_id,
                body={"trashed": True},
                fields="id, trashed",
            ).execute()
        except HttpError as e:
            reason = trash_failure_reason(e)
            raise RemediationItemError(
                file_id, reason, f"Failed to trash file {file_id}: {e}"
            ) from e
        except Exception as e:
            raise RemediationItemError(
                file_id, TrashFailureReason.TRANSIENT, f"Failed to trash file {file_id}: {e}"
            ) from e

        logger.info(f"Trashed file: {file_id}")
