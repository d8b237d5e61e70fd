"""Deadline ranges, deadline validation and timeline estimates per category."""

import logging
import statistics
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from src.exceptions import ValidationError
from src.models import Category, CategoryStats
from src.models.mixins import ensure_utc, utcnow
from src.services.repositories import CategoryStatsRepository, WorkItemRepository

logger = logging.getLogger(__name__)

DEFAULT_MIN_HOURS = 4.0
DEFAULT_MAX_HOURS = 72.0
DEFAULT_SUGGESTED_HOURS = 24.0
DEFAULT_DURATION_HOURS = 24.0
TRIAGE_BUFFER_HOURS = 2.0
STATS_SAMPLE_SIZE = 20


@dataclass(frozen=True)
class DeadlineBounds:
    min_hours: float
    max_hours: float
    suggested_hours: float


@dataclass(frozen=True)
class DeadlineRange:
    min: datetime
    max: datetime
    suggested: datetime
    bounds: DeadlineBounds


@dataclass
class DeadlineValidation:
    is_valid: bool
    is_too_short: bool
    is_too_long: bool
    hours_until_deadline: float
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class TimelineEstimate:
    estimated_start: datetime
    estimated_end: datetime
    estimated_duration_hours: float


def resolve_bounds(category: Category, stats: CategoryStats | None) -> DeadlineBounds:
    """Configured category overrides win, then historical stats, then defaults."""
    min_hours = DEFAULT_MIN_HOURS
    max_hours = DEFAULT_MAX_HOURS
    suggested_hours = DEFAULT_SUGGESTED_HOURS

    if stats is not None and stats.sample_size:
        min_hours = stats.min_hours
        max_hours = stats.max_hours
        suggested_hours = stats.median_hours

    if category.min_deadline_hours is not None:
        min_hours = category.min_deadline_hours
    if category.max_deadline_hours is not None:
        max_hours = category.max_deadline_hours
    if category.default_duration_hours is not None:
        suggested_hours = category.default_duration_hours

    # Keep the suggestion inside the allowed range
    suggested_hours = min(max(suggested_hours, min_hours), max_hours)
    return DeadlineBounds(min_hours, max_hours, suggested_hours)


def validate_timeline(
    estimated_start: datetime | None,
    estimated_end: datetime | None,
    deadline: datetime | None,
) -> list[str]:
    """Return timeline consistency errors (empty when valid)."""
    errors = []
    if estimated_start and estimated_end and estimated_start >= estimated_end:
        errors.append("Estimated end must be after estimated start")
    if estimated_end and deadline and estimated_end > deadline:
        errors.append("Estimated end must not be after the deadline")
    return errors


class DeadlineCalculator:
    """Category-aware deadline and timeline calculations."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.categories = CategoryStatsRepository(db)
        self.work_items = WorkItemRepository(db)

    def _bounds(self, category_id: int) -> DeadlineBounds:
        category = self.categories.get_category(category_id)
        return resolve_bounds(category, self.categories.get_stats(category_id))

    def get_deadline_range(
        self, category_id: int, start_date: datetime | None = None
    ) -> DeadlineRange:
        """Allowed deadline window for a category.

        Raises:
            NotFoundError: the category does not exist
        """
        start = ensure_utc(start_date) if start_date else utcnow()
        bounds = self._bounds(category_id)
        return DeadlineRange(
            min=start + timedelta(hours=bounds.min_hours),
            max=start + timedelta(hours=bounds.max_hours),
            suggested=start + timedelta(hours=bounds.suggested_hours),
            bounds=bounds,
        )

    def validate_deadline(
        self, category_id: int, deadline: datetime, start_date: datetime | None = None
    ) -> DeadlineValidation:
        """Check a deadline against the 4h/72h defaults or the configured category limits.

        Raises:
            ValidationError: the deadline is not after the start date
            NotFoundError: the category does not exist
        """
        start = ensure_utc(start_date) if start_date else utcnow()
        deadline = ensure_utc(deadline)
        if deadline <= start:
            raise ValidationError(
                "Deadline must be after the start date",
                {"deadline": deadline.isoformat(), "start_date": start.isoformat()},
            )

        # Historical stats only shape the suggested range, never the hard limits
        bounds = resolve_bounds(self.categories.get_category(category_id), None)
        hours_until_deadline = (deadline - start).total_seconds() / 3600
        is_too_short = hours_until_deadline < bounds.min_hours
        is_too_long = hours_until_deadline > bounds.max_hours

        warnings = []
        if is_too_short:
            warnings.append(
                f"Deadline is {hours_until_deadline:.1f}h away, "
                f"shorter than the {bounds.min_hours:g}h minimum"
            )
        if is_too_long:
            warnings.append(
                f"Deadline is {hours_until_deadline:.1f}h away, "
                f"longer than the {bounds.max_hours:g}h maximum"
            )

        return DeadlineValidation(
            is_valid=not is_too_short and not is_too_long,
            is_too_short=is_too_short,
            is_too_long=is_too_long,
            hours_until_deadline=hours_until_deadline,
            warnings=warnings,
        )

    def estimate_timeline(
        self, category_id: int, request_date: datetime | None = None
    ) -> TimelineEstimate:
        request_date = ensure_utc(request_date) if request_date else utcnow()
        category = self.categories.get_category(category_id)
        duration = category.default_duration_hours or DEFAULT_DURATION_HOURS

        estimated_start = request_date + timedelta(hours=TRIAGE_BUFFER_HOURS)
        return TimelineEstimate(
            estimated_start=estimated_start,
            estimated_end=estimated_start + timedelta(hours=duration),
            estimated_duration_hours=duration,
        )

    def update_category_stats(self, category_id: int) -> CategoryStats | None:
        """Recompute completion-hour stats from the last completed items.

        Returns None, leaving any previous stats untouched, when the category
        has no completed items yet.
        """
        self.categories.get_category(category_id)
        items = self.work_items.find_recently_completed(category_id, limit=STATS_SAMPLE_SIZE)
        if not items:
            logger.info(f"No completed items for category {category_id}, stats unchanged")
            return None

        hours = [
            (ensure_utc(item.completed_at) - ensure_utc(item.created_at)).total_seconds() / 3600
            for item in items
        ]
        stats = self.categories.replace_stats(
            category_id,
            avg_hours=statistics.fmean(hours),
            median_hours=statistics.median(hours),
            min_hours=min(hours),
            max_hours=max(hours),
            sample_size=len(hours),
        )
        self.db.commit()
        self.db.refresh(stats)

        logger.info(
            f"Category {category_id} stats: avg={stats.avg_hours:.1f}h "
            f"median={stats.median_hours:.1f}h over {stats.sample_size} items"
        )
        return stats

    def update_all_category_stats(self) -> dict[int, CategoryStats | None]:
        """Refresh stats for every active category; one failure does not stop the batch."""
        results: dict[int, CategoryStats | None] = {}
        for category in self.categories.list_active_categories():
            try:
                results[category.id] = self.update_category_stats(category.id)
            except Exception as e:
                logger.error(f"Error updating stats for category {category.id}: {e}")
                self.db.rollback()
        return results
