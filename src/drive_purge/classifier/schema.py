"""Validation of classifier responses."""

import json
from typing import Any, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from ..audit.models import Analysis, CleanupCandidate, CleanupCategory, clamp_confidence
from ..common.exceptions import ClassificationError
from ..common.logging import get_logger

logger = get_logger(__name__)


class ResponseCandidate(BaseModel):
    """Candidate shape requested from the model."""

    id: str
    category: str = Field(description="One of: duplicate, old, large")
    reason: str
    confidence: float = Field(description="Confidence between 0 and 1")


class ResponseSchema(BaseModel):
    """Response shape requested from the model."""

    candidates: list[ResponseCandidate]
    summary: str


class CandidatePayload(BaseModel):
    """One candidate as actually returned, validated leniently."""

    model_config = ConfigDict(extra="ignore")

    file_id: str = Field(validation_alias=AliasChoices("id", "file_id", "fileId"), min_length=1)
    category: str
    reason: str = ""
    confidence: float = Field(allow_inf_nan=False)


class AnalysisPayload(BaseModel):
    """Top-level response envelope. Items are validated one by one."""

    model_config = ConfigDict(extra="ignore")

    candidates: list[Any] = Field(default_factory=list)
    summary: str = ""


def to_candidate(item: Any) -> CleanupCandidate:
    """Validate one raw candidate.

    Raises:
        ValueError: If the item is not an object, is malformed or its
            category is unknown
    """
    if not isinstance(item, dict):
        raise ValueError(f"Candidate is not an object: {item!r}")

    try:
        payload = CandidatePayload.model_validate(item)
    except ValidationError as e:
        raise ValueError(f"Malformed candidate: {e.errors()[0]['msg']}") from e

    return CleanupCandidate(
        file_id=payload.file_id,
        category=CleanupCategory.parse(payload.category),
        reason=payload.reason.strip(),
        confidence=clamp_confidence(payload.confidence),
    )


def parse_analysis(raw: Union[str, bytes, dict[str, Any]]) -> Analysis:
    """Parse and validate a classifier response.

    Candidates with unknown categories or unusable confidence are dropped;
    a response that is not a valid envelope is an error.

    Raises:
        ClassificationError: If the response cannot be used at all
    """
    try:
        if isinstance(raw, (str, bytes)):
            envelope = AnalysisPayload.model_validate(json.loads(raw))
        else:
            envelope = AnalysisPayload.model_validate(raw)
    except (json.JSONDecodeError, ValidationError) as e:
        raise ClassificationError(f"Classifier returned malformed data: {e}") from e

    candidates = []
    for item in envelope.candidates:
        try:
            candidates.append(to_candidate(item))
        except ValueError as e:
            label = item.get("id") if isinstance(item, dict) else item
            logger.warning(f"Dropping candidate {label!r}: {e}")

    return Analysis(candidates=candidates, summary=envelope.summary.strip())
