#!/usr/bin/env python3
"""
Scoring Module - deterministic admission scoring.

Public API:
- normalize / compute_score / derive_decision: pure scoring functions
- SignalInput, WeightConfig, ScoringResult, Decision: data structures

- models.py: Data structures
- engine.py: Normalization, weighted aggregation, decision derivation
"""

from core.scorer.models import (
    SignalInput,
    WeightConfig,
    SignalBreakdown,
    ScoringResult,
    Decision,
)
from core.scorer.engine import normalize, compute_score, derive_decision

__all__ = [
    'SignalInput',
    'WeightConfig',
    'SignalBreakdown',
    'ScoringResult',
    'Decision',
    'normalize',
    'compute_score',
    'derive_decision',
]
