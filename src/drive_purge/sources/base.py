"""File source interface and Drive metadata parsing."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from ..audit.models import FileOrigin, FileRecord


class FileSource(ABC):
    """Lists non-trashed files and trashes them by id."""

    name = "source"

    @abstractmethod
    def list_files(self) -> list[FileRecord]:
        """List files that are not in the trash.

        Raises:
            SourceUnavailableError: If listing fails
            AuthenticationError: If the account is not authorized
        """

    @abstractmethod
    def trash_file(self, file_id: str) -> None:
        """Move one file to the trash.

        Raises:
            RemediationItemError: If the file could not be trashed
        """


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 timestamp as returned by the Drive API."""
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def record_from_api(data: dict[str, Any], origin: FileOrigin = FileOrigin.LIVE) -> FileRecord:
    """Build a FileRecord from a Drive API file resource.

    Drive reports ``size`` as a decimal string and omits it for Google
    Workspace documents and shortcuts; those sizes stay unknown.

    Raises:
        KeyError: If id, name or modifiedTime is missing
        ValueError: If size or modifiedTime cannot be parsed
    """
    size = data.get("size")

    return FileRecord(
        file_id=data["id"],
        name=data["name"],
        size=int(size) if size not in (None, "") else None,
        mime_type=data.get("mimeType", ""),
        modified_time=parse_timestamp(data["modifiedTime"]),
        md5=data.get("md5Checksum"),
        web_view_link=data.get("webViewLink"),
        thumbnail_link=data.get("thumbnailLink"),
        origin=origin,
    )
