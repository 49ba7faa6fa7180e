"""Classifier interface."""

from abc import ABC, abstractmethod
from typing import Sequence

from ..audit.models import Analysis, FileRecord


class Classifier(ABC):
    """Maps a file set to cleanup candidates and a summary."""

    @abstractmethod
    def classify(self, files: Sequence[FileRecord]) -> Analysis:
        """Classify files as cleanup candidates.

        Implementations may be slow and their output is treated as
        untrusted by the caller.

        Raises:
            ClassificationError: If the call fails or returns unusable data
        """
