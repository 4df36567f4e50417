#!/usr/bin/env python3
"""
Scoring Models - Data structures for signals, weights and scoring results.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Dict, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


@dataclass(frozen=True)
class SignalInput:
    """One provider measurement, keyed by the matching WeightConfig.key."""
    key: str
    raw_value: float


class WeightConfig(BaseModel):
    """Administrator-owned scoring weight, validated at the cache boundary."""
    model_config = ConfigDict(frozen=True, allow_inf_nan=False, extra='ignore')

    key: str = Field(min_length=1)
    weight: float = Field(ge=0.0, le=1.0)
    threshold: float
    minimum: float

    @field_validator('key')
    @classmethod
    def _strip_key(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("weight key must not be blank")
        return value


@dataclass(frozen=True)
class SignalBreakdown:
    raw_value: float
    normalized_value: float
    weight: float
    weighted_contribution: float


@dataclass
class ScoringResult:
    """Complete scoring result written into the owning Application."""
    score: float = 0.0
    breakdown: Dict[str, SignalBreakdown] = field(default_factory=dict)
    passed: bool = False
    passing_threshold: float = 70.0

    def breakdown_as_dict(self) -> Dict[str, Dict[str, float]]:
        """JSON-serializable breakdown for Application.score_breakdown."""
        return {key: asdict(item) for key, item in self.breakdown.items()}

    def to_dict(self) -> Dict[str, Any]:
        return {
            'score': self.score,
            'breakdown': self.breakdown_as_dict(),
            'passed': self.passed,
            'passing_threshold': self.passing_threshold,
        }


class Decision(str, Enum):
    """Tri-state admission outcome."""
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    UNDER_REVIEW = "UNDER_REVIEW"

    @property
    def is_terminal_for_user(self) -> bool:
        """APPROVED and REJECTED are mirrored onto the user account."""
        return self in (Decision.APPROVED, Decision.REJECTED)

