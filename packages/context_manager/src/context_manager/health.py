"""Session health scoring.

The score starts at 1.0 and is reduced by weighted penalties. Each factor is
a penalty in [0, 1] where 0 means healthy:

- ``drift``: the last measured topic drift.
- ``errors``: errors per message, capped at 1.
- ``length``: estimated tokens over ``TOKEN_PENALTY_DIVISOR``, capped at 1.
- ``activity``: idle time since the last event over
  ``ACTIVITY_STALE_AFTER_SECONDS``, capped at 1.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from context_manager.config import thresholds
from context_manager.utils import clamp, utc_now

if TYPE_CHECKING:
    from datetime import datetime

    from context_manager.models import Session


class HealthStatus(StrEnum):
    """Display bands for a health score."""

    CRITICAL = "critical"
    WARNING = "warning"
    FAIR = "fair"
    GOOD = "good"


def classify_score(score: float) -> HealthStatus:
    """Map a raw 0..1 score to its band."""
    if score < thresholds.HEALTH_CRITICAL:
        return HealthStatus.CRITICAL
    if score < thresholds.HEALTH_WARNING:
        return HealthStatus.WARNING
    if score < thresholds.HEALTH_GOOD:
        return HealthStatus.FAIR
    return HealthStatus.GOOD


def to_display_score(score: float) -> int:
    """Rescale a raw score to 0..100."""
    return round(clamp(score) * 100)


@dataclass(frozen=True)
class HealthWeights:
    """Penalty weight per factor."""

    drift: float = thresholds.WEIGHT_DRIFT
    errors: float = thresholds.WEIGHT_ERRORS
    length: float = thresholds.WEIGHT_LENGTH
    activity: float = thresholds.WEIGHT_ACTIVITY


@dataclass(frozen=True)
class HealthFactors:
    """Penalty values, each in [0, 1]."""

    drift: float
    errors: float
    length: float
    activity: float

    def weighted_sum(self, weights: HealthWeights) -> float:
        return (
            self.drift * weights.drift
            + self.errors * weights.errors
            + self.length * weights.length
            + self.activity * weights.activity
        )

    def to_dict(self) -> dict[str, float]:
        return {
            "drift": self.drift,
            "errors": self.errors,
            "length": self.length,
            "activity": self.activity,
        }


@dataclass(frozen=True)
class HealthAnalysis:
    """Composite health score with its breakdown."""

    score: float
    status: HealthStatus
    factors: HealthFactors
    recommendations: list[str] = field(default_factory=list)

    @property
    def display_score(self) -> int:
        return to_display_score(self.score)


def compute_factors(session: Session, now: datetime) -> HealthFactors:
    """Derive the penalty factors for ``session`` at time ``now``."""
    metrics = session.metrics
    idle_seconds = max(0.0, (now - session.last_activity()).total_seconds())
    return HealthFactors(
        drift=clamp(metrics.drift_score),
        errors=clamp(metrics.error_count / max(metrics.message_count, 1)),
        length=clamp(metrics.total_tokens / thresholds.TOKEN_PENALTY_DIVISOR),
        activity=clamp(idle_seconds / thresholds.ACTIVITY_STALE_AFTER_SECONDS),
    )


def build_recommendations(factors: HealthFactors, score: float) -> list[str]:
    """Return advisory messages for factors in poor ranges."""
    recommendations: list[str] = []
    if factors.drift > thresholds.DRIFT_RECOMMENDATION:
        recommendations.append("Topic drift is high: consider starting a new session")
    if factors.errors > thresholds.ERROR_RATE_RECOMMENDATION:
        recommendations.append("Error rate is elevated: verify recent changes")
    if factors.length > thresholds.LENGTH_RECOMMENDATION:
        recommendations.append("Session history is long: compact older events")
    if factors.activity > thresholds.IDLE_RECOMMENDATION:
        recommendations.append("Session has been idle: snapshot before resuming work")
    if score < thresholds.HEALTH_CRITICAL:
        recommendations.append("Health is critical: restore the healthiest snapshot or start fresh")
    return recommendations


class HealthAnalyzer:
    """Compute :class:`HealthAnalysis` values from session data."""

    def __init__(self, weights: HealthWeights | None = None) -> None:
        self._weights = weights or HealthWeights()

    @property
    def weights(self) -> HealthWeights:
        return self._weights

    def analyze(self, session: Session, now: datetime | None = None) -> HealthAnalysis:
        """Score ``session``; the result does not depend on anything but its inputs."""
        factors = compute_factors(session, now or utc_now())
        score = clamp(1.0 - factors.weighted_sum(self._weights))
        return HealthAnalysis(
            score=score,
            status=classify_score(score),
            factors=factors,
            recommendations=build_recommendations(factors, score),
        )
