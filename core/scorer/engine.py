#!/usr/bin/env python3
"""
Scoring Engine - pure, deterministic admission scoring.

No I/O, no shared state. Every function here is referentially transparent:

- normalize: raw signal value -> 0..100 via linear interpolation
- compute_score: weighted mean of the normalized signals that are present
- derive_decision: score -> APPROVED / REJECTED / UNDER_REVIEW
"""

from typing import Iterable

from core.scorer.models import (
    Decision,
    ScoringResult,
    SignalBreakdown,
    SignalInput,
    WeightConfig,
)

DEFAULT_PASSING_THRESHOLD = 70.0


def _round(value: float, decimals: int = 2) -> float:
    return round(value, decimals)


def normalize(value: float, minimum: float, threshold: float) -> float:
    """
    Map a raw value onto 0..100.

    value <= minimum -> 0, value >= threshold -> 100, linear in between, so a
    developer just under the threshold still scores close to 100. When
    threshold <= minimum there is no range to interpolate over and the
    function becomes a step at the threshold.
    """
    if threshold <= minimum:
        return 100.0 if value >= threshold else 0.0
    if value <= minimum:
        return 0.0
    if value >= threshold:
        return 100.0
    return (value - minimum) / (threshold - minimum) * 100.0


def compute_score(
    signals: Iterable[SignalInput],
    weights: Iterable[WeightConfig],
    passing_threshold: float = DEFAULT_PASSING_THRESHOLD,
) -> ScoringResult:
    """
    Weighted average of normalized signals.

    Score = sum(weight_i * normalized_i) / sum(weight_i) over the weights that
    have a matching signal. Weights without a signal are skipped rather than
    counted as zero. If nothing matched, or the matched weights sum to zero,
    the score is 0.
    """
    by_key = {}
    for signal in signals:
        by_key.setdefault(signal.key, signal)

    breakdown = {}
    weighted_sum = 0.0
    used_weight = 0.0

    for weight_cfg in weights:
        signal = by_key.get(weight_cfg.key)
        if signal is None:
            continue

        normalized_value = normalize(signal.raw_value, weight_cfg.minimum, weight_cfg.threshold)
        weighted_contribution = weight_cfg.weight * normalized_value

        weighted_sum += weighted_contribution
        used_weight += weight_cfg.weight

        breakdown[weight_cfg.key] = SignalBreakdown(
            raw_value=signal.raw_value,
            normalized_value=_round(normalized_value),
            weight=weight_cfg.weight,
            weighted_contribution=_round(weighted_contribution),
        )

    score = weighted_sum / used_weight if used_weight > 0 else 0.0

    return ScoringResult(
        score=_round(score),
        breakdown=breakdown,
        passed=score >= passing_threshold,
        passing_threshold=passing_threshold,
    )


def derive_decision(
    score: float,
    auto_approve_threshold: float,
    auto_reject_threshold: float,
) -> Decision:
    """
    Bucket a score:
        score >= auto_approve -> APPROVED
        score <  auto_reject  -> REJECTED
        otherwise             -> UNDER_REVIEW (needs a human)
    """
    if score >= auto_approve_threshold:
        return Decision.APPROVED
    if score < auto_reject_threshold:
        return Decision.REJECTED
    return Decision.UNDER_REVIEW

