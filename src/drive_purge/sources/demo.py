"""Fixed demonstration file set usable without a Drive account."""

from ..audit.models import FileOrigin, FileRecord
from ..common.logging import get_logger
from .base import FileSource, record_from_api

logger = get_logger(__name__)

DEMO_FILES = [
    {
        "id": "m1",
        "name": "Annual_Report_2019_Draft.pdf",
        "size": "12000000",
        "mimeType": "application/pdf",
        "modifiedTime": "2019-03-12T10:00:00Z",
    },
    {
        "id": "m2",
        "name": "Annual_Report_2019_Draft.pdf",
        "size": "12000000",
        "mimeType": "application/pdf",
        "modifiedTime": "2019-03-12T10:00:00Z",
    },
    {
        "id": "m3",
        "name": "Event_Video_Raw_Unedited.mov",
        "size": "2400000000",
        "mimeType": "video/quicktime",
        "modifiedTime": "2021-11-20T15:30:00Z",
    },
    {
        "id": "m4",
        "name": "Temp_Backup_01.zip",
        "size": "450000000",
        "mimeType": "application/zip",
        "modifiedTime": "2022-04-10T09:15:00Z",
    },
    {
        "id": "m5",
        "name": "Old_Notes_v1.txt",
        "size": "1500",
        "mimeType": "text/plain",
        "modifiedTime": "2018-01-01T12:00:00Z",
    },
]


class DemoFileSource(FileSource):
    """Serves the built-in demo files. Trashing is a no-op."""

    name = "demo"

    def list_files(self) -> list[FileRecord]:
        files = [record_from_api(data, origin=FileOrigin.DEMO) for data in DEMO_FILES]
        logger.info(f"Loaded {len(files)} demo files")
        return files

    def trash_file(self, file_id: str) -> None:
        logger.info(f"[DEMO] Would trash file: {file_id}")
