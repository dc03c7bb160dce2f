"""
Report Aggregator

Deterministic lifecycle report calculations over reconciled warranty records:
- Status counts and distribution
- Expiring-soon detection (next 90 days)
- Weighted health score and grade
- Ordered narrative insights

All calculations are deterministic: same records and same ``now`` give the
same report. Every function takes an optional ``now`` for that reason.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Sequence
from pydantic import BaseModel, Field

from ..models.warranty import WarrantyRecord
from .rounding import percent, round_half_up
from .status import (
    WarrantyStatus,
    classify,
    is_expiring_soon,
    parse_warranty_date,
    utc_now,
    whole_months_since,
)


# Points per bucket for the health score
ACTIVE_POINTS = 100
EXPIRING_SOON_POINTS = 60
UNKNOWN_POINTS = 30
EXPIRED_POINTS = 0

# (lower bound inclusive, grade, color), highest first
GRADE_THRESHOLDS = [
    (85, "Excellent", "green"),
    (70, "Good", "blue"),
    (55, "Fair", "yellow"),
    (40, "Poor", "orange"),
]

EXPIRED_WARNING_RATIO = 0.3
ACTIVE_SUCCESS_RATIO = 0.7


class WarrantyStats(BaseModel):
    """Status counts across a device population."""
    active: int = 0
    expired: int = 0
    unknown: int = 0
    total: int = 0


class HealthScore(BaseModel):
    """Weighted 0-100 warranty health of a device population."""
    score: int = 0
    grade: str = "N/A"
    color: str = "gray"


class InsightType(str, Enum):
    """Insight severity."""
    WARNING = "warning"
    SUCCESS = "success"
    INFO = "info"


class Insight(BaseModel):
    """Narrative observation shown on the lifecycle report."""
    type: InsightType
    message: str


class LifecycleReport(BaseModel):
    """View model handed to report consumers (screen, print, text, CSV)."""
    stats: WarrantyStats
    distribution: Dict[str, int] = Field(default_factory=dict)
    expiring_soon: List[WarrantyRecord] = Field(default_factory=list)
    health: HealthScore = Field(default_factory=HealthScore)
    insights: List[Insight] = Field(default_factory=list)
    records: List[WarrantyRecord] = Field(default_factory=list)
    client_name: Optional[str] = None
    generated_at: datetime


def get_warranty_stats(
    records: Sequence[WarrantyRecord],
    now: Optional[datetime] = None
) -> WarrantyStats:
    """Count records per status."""
    now = now or utc_now()
    counts = {status: 0 for status in WarrantyStatus}
    for record in records:
        counts[classify(record.end_date, now=now)] += 1

    return WarrantyStats(
        active=counts[WarrantyStatus.ACTIVE],
        expired=counts[WarrantyStatus.EXPIRED],
        unknown=counts[WarrantyStatus.UNKNOWN],
        total=len(records),
    )


def status_distribution(stats: WarrantyStats) -> Dict[str, int]:
    """
    Percentage of devices per status, for chart legends.

    Statuses with no devices are left out.
    """
    distribution = {}
    for status in WarrantyStatus:
        count = getattr(stats, status.value)
        if count > 0:
            distribution[status.value] = percent(count, stats.total)
    return distribution


def get_expiring_soon(
    records: Sequence[WarrantyRecord],
    now: Optional[datetime] = None,
    days: int = 90
) -> List[WarrantyRecord]:
    """
    Records whose warranty ends within the next ``days`` days.

    Args:
        records: Reconciled warranty records
        now: Reference instant
        days: Window length

    Returns:
        Records with a parseable end date in ``(now, now + days]``, in input order
    """
    now = now or utc_now()
    return [r for r in records if is_expiring_soon(r.end_date, now=now, days=days)]


def grade_for_score(score: int) -> HealthScore:
    """Map a 0-100 score to its grade and color."""
    for lower_bound, grade, color in GRADE_THRESHOLDS:
        if score >= lower_bound:
            return HealthScore(score=score, grade=grade, color=color)
    return HealthScore(score=score, grade="Critical", color="red")


def score_from_counts(
    active: int,
    expiring_soon: int,
    expired: int,
    unknown: int
) -> HealthScore:
    """
    Calculate the health score from bucket counts.

    Args:
        active: All active records, including the expiring-soon ones
        expiring_soon: Active records ending within the expiring-soon window
        expired: Expired records
        unknown: Records without a usable end date

    Returns:
        HealthScore; score 0 and grade "N/A" for an empty population
    """
    total = active + expired + unknown
    if total == 0:
        return HealthScore()

    active_not_expiring = active - expiring_soon
    points = (
        active_not_expiring * ACTIVE_POINTS
        + expiring_soon * EXPIRING_SOON_POINTS
        + unknown * UNKNOWN_POINTS
        + expired * EXPIRED_POINTS
    )
    return grade_for_score(round_half_up(points / total))


def calculate_health_score(
    records: Sequence[WarrantyRecord],
    now: Optional[datetime] = None,
    expiring_days: int = 90
) -> HealthScore:
    """Weighted health score of a record population."""
    now = now or utc_now()
    stats = get_warranty_stats(records, now=now)
    expiring = get_expiring_soon(records, now=now, days=expiring_days)
    return score_from_counts(
        active=stats.active,
        expiring_soon=len(expiring),
        expired=stats.expired,
        unknown=stats.unknown,
    )


def _oldest_expired_end(
    records: Sequence[WarrantyRecord],
    now: datetime
) -> Optional[datetime]:
    expired_ends = []
    for record in records:
        if classify(record.end_date, now=now) != WarrantyStatus.EXPIRED:
            continue
        end = parse_warranty_date(record.end_date)
        if end is not None:
            expired_ends.append(end)
    return min(expired_ends) if expired_ends else None


def generate_insights(
    records: Sequence[WarrantyRecord],
    stats: WarrantyStats,
    now: Optional[datetime] = None,
    aging_months_threshold: int = 12
) -> List[Insight]:
    """
    Build the ordered list of report insights.

    Order is fixed: high expired rate, strong coverage, unknown devices,
    aging equipment. Each one is emitted independently.
    """
    now = now or utc_now()
    insights = []
    if stats.total == 0:
        return insights

    if stats.expired / stats.total > EXPIRED_WARNING_RATIO:
        insights.append(Insight(
            type=InsightType.WARNING,
            message=(
                f"{percent(stats.expired, stats.total)}% of devices have expired "
                "warranties - consider renewal prioritization."
            ),
        ))

    if stats.active / stats.total > ACTIVE_SUCCESS_RATIO:
        insights.append(Insight(
            type=InsightType.SUCCESS,
            message=(
                f"Strong warranty coverage with {percent(stats.active, stats.total)}% "
                "of devices under active warranty."
            ),
        ))

    if stats.unknown > 0:
        insights.append(Insight(
            type=InsightType.INFO,
            message=f"{stats.unknown} device(s) need warranty status verification.",
        ))

    oldest = _oldest_expired_end(records, now)
    if oldest is not None:
        months_expired = whole_months_since(oldest, now=now)
        if months_expired > aging_months_threshold:
            insights.append(Insight(
                type=InsightType.WARNING,
                message=(
                    f"Some devices have been out of warranty for {months_expired}+ months "
                    "- replacement may be more cost-effective than repair."
                ),
            ))

    return insights


def build_lifecycle_report(
    records: Sequence[WarrantyRecord],
    client_name: Optional[str] = None,
    now: Optional[datetime] = None,
    expiring_days: int = 90,
    aging_months_threshold: int = 12
) -> LifecycleReport:
    """
    Aggregate reconciled records into the lifecycle report view model.

    Every record passed in is counted. To report on a single client, filter
    the records to that client's devices before calling; ``client_name`` only
    labels the report header and does not filter anything.

    Args:
        records: One record per device, in device order, already filtered to
            the client when the report is client-scoped
        client_name: Label for the report header, if any
        now: Reference instant shared by every calculation
        expiring_days: Expiring-soon window
        aging_months_threshold: Months past expiry that trigger the aging insight

    Returns:
        LifecycleReport
    """
    now = now or utc_now()
    stats = get_warranty_stats(records, now=now)
    expiring = get_expiring_soon(records, now=now, days=expiring_days)
    health = score_from_counts(
        active=stats.active,
        expiring_soon=len(expiring),
        expired=stats.expired,
        unknown=stats.unknown,
    )

    return LifecycleReport(
        stats=stats,
        distribution=status_distribution(stats),
        expiring_soon=expiring,
        health=health,
        insights=generate_insights(
            records, stats, now=now, aging_months_threshold=aging_months_threshold
        ),
        records=list(records),
        client_name=client_name,
        generated_at=now,
    )
