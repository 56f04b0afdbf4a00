"""Evaluation context DTO."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class EvaluationContext:
    """Subject, point in time and resource snapshot a decision is made against.

    ``timestamp`` is the single notion of "now" for expiry checks and
    time-bounded conditions.
    """

    subject_id: str
    timestamp: datetime
    resource: Mapping[str, Any] | None = None
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def as_mapping(self) -> dict[str, Any]:
        """Root object for condition field paths."""
        root: dict[str, Any] = dict(self.attributes)
        root["subject_id"] = self.subject_id
        root["timestamp"] = self.timestamp
        root["resource"] = self.resource
        return root
