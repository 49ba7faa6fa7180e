"""Gemini-backed file classifier."""

import json
from datetime import date
from typing import Any, Optional, Sequence

from google import genai
from google.genai import errors, types

from ..audit.models import Analysis, FileRecord
from ..common.constants import DEFAULT_GEMINI_MODEL
from ..common.exceptions import ClassificationError
from ..common.logging import get_logger
from .base import Classifier
from .schema import ResponseSchema, parse_analysis

logger = get_logger(__name__)

SYSTEM_INSTRUCTION = """\
You are a storage auditing agent reviewing a user's Google Drive.
Identify files that are good candidates for moving to the trash:
- duplicate: same name, size, type and modification time, or same checksum,
  as another file. Flag every copy except one.
- large: files of several hundred megabytes or more that look disposable,
  such as raw footage, temporary archives or backups.
- old: files untouched for years that look like drafts, notes or temporary work.
Only use ids that appear in the file list. Give each candidate a short reason
and a confidence between 0 and 1. Leave out files that look important.
Finish with a one-paragraph summary of what you found, written for the user.
"""


def describe_files(files: Sequence[FileRecord]) -> list[dict[str, Any]]:
    """File metadata sent to the model."""
    return [
        {
            "id": f.file_id,
            "name": f.name,
            "size": f.size,
            "mimeType": f.mime_type,
            "modifiedTime": f.modified_time.isoformat(),
            "md5Checksum": f.md5,
        }
        for f in files
    ]


class GeminiClassifier(Classifier):
    """Classifies files with a Gemini model using a JSON response schema."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_GEMINI_MODEL,
        client: Optional[Any] = None,
    ) -> None:
        """Initialize the classifier.

        Args:
            api_key: Gemini API key (ignored if client is given)
            model: Model name
            client: Preconfigured genai client

        Raises:
            ClassificationError: If neither an API key nor a client is given
        """
        if client is None:
            if not api_key:
                raise ClassificationError(
                    "No Gemini API key configured. Set DRIVE_PURGE_GEMINI_API_KEY "
                    "or run 'drive-purge config set gemini_api_key <key>'."
                )
            client = genai.Client(api_key=api_key)

        self.client = client
        self.model = model

    def build_prompt(self, files: Sequence[FileRecord]) -> str:
        return (
            f"Today's date is {date.today().isoformat()}.\n"
            f"Files ({len(files)}):\n"
            f"{json.dumps(describe_files(files), indent=1)}"
        )

    def classify(self, files: Sequence[FileRecord]) -> Analysis:
        """Ask the model for cleanup candidates.

        Raises:
            ClassificationError: If the request fails or the response is unusable
        """
        if not files:
            return Analysis(candidates=[], summary="No files to analyze.")

        logger.info(f"Classifying {len(files)} files with {self.model}")

        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=self.build_prompt(files),
                config=types.GenerateContentConfig(
                    system_instruction=SYSTEM_INSTRUCTION,
                    response_mime_type="application/json",
                    response_schema=ResponseSchema,
                    temperature=0.2,
                ),
            )
        except errors.APIError as e:
            raise ClassificationError(f"Gemini API error {e.code}: {e.message}") from e
        except Exception as e:
            raise ClassificationError(f"Gemini request failed: {e}") from e

        text = getattr(response, "text", None)
        if not text:
            raise ClassificationError("Gemini returned an empty response")

        analysis = parse_analysis(text)
        logger.info(f"Classifier proposed {len(analysis.candidates)} candidates")
        return analysis
