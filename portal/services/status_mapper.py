"""
Status Mapper
=============
Translates workflow event names into the normalized progress model.

The table is total: any event name that is not recognized falls through
to the default row instead of raising. ``progress`` comes from the table
only and is never recomputed from ``steps``.

    event               status       progress  current_step
    started             starting     10        upload
    logo_processed      in-progress  25        analyze
    logo_skipped        in-progress  25        generate-theme
    content_generated   in-progress  60        create-repo
    completed           completed    100       deploy-preview
    failed              error        0         error
    (anything else)     in-progress  50        generate-theme
"""
import logging
from dataclasses import dataclass, field
from typing import Dict

from portal.core.constants import STEP_IDS, ERROR_STEP, TOTAL_ESTIMATED_SECONDS
from portal.models.progress_record import ProgressRecord, utc_now
from portal.models.status_event import StatusEvent

logger = logging.getLogger(__name__)


def pending_steps() -> Dict[str, str]:
    return {step: "pending" for step in STEP_IDS}


def _steps(completed=(), in_progress=None) -> Dict[str, str]:
    steps = pending_steps()
    for step in completed:
        steps[step] = "completed"
    if in_progress:
        steps[in_progress] = "in-progress"
    return steps


@dataclass(frozen=True)
class MappedStatus:
    status: str
    progress: int
    current_step: str
    steps: Dict[str, str] = field(default_factory=pending_steps)


_STATUS_TABLE: Dict[str, MappedStatus] = {
    "started": MappedStatus(
        "starting", 10, "upload",
        _steps(in_progress="upload"),
    ),
    "logo_processed": MappedStatus(
        "in-progress", 25, "analyze",
        _steps(completed=["upload"], in_progress="analyze"),
    ),
    "logo_skipped": MappedStatus(
        "in-progress", 25, "generate-theme",
        _steps(completed=["upload", "analyze"], in_progress="generate-theme"),
    ),
    "content_generated": MappedStatus(
        "in-progress", 60, "create-repo",
        _steps(completed=["upload", "analyze", "generate-theme"], in_progress="create-repo"),
    ),
    "completed": MappedStatus(
        "completed", 100, "deploy-preview",
        _steps(completed=STEP_IDS),
    ),
    "failed": MappedStatus(
        "error", 0, ERROR_STEP,
        pending_steps(),
    ),
}

_DEFAULT_STATUS = MappedStatus(
    "in-progress", 50, "generate-theme",
    _steps(in_progress="generate-theme"),
)


def map_event_status(event_status: str) -> MappedStatus:
    """Look up the derived fields for a workflow event name."""
    mapped = _STATUS_TABLE.get(event_status)
    if mapped is None:
        logger.debug("Unrecognized workflow status %r, using default mapping", event_status)
        mapped = _DEFAULT_STATUS
    # Fresh steps dict so callers can't mutate the table
    return MappedStatus(mapped.status, mapped.progress, mapped.current_step, dict(mapped.steps))


def estimate_time_remaining(progress: int) -> int:
    """Linear estimate against a fixed total run time, never negative."""
    if progress >= 100:
        return 0
    remaining = (100 - progress) / 100 * TOTAL_ESTIMATED_SECONDS
    return max(0, round(remaining))


def build_record(event: StatusEvent) -> ProgressRecord:
    """Assemble the full record that replaces whatever was stored before."""
    mapped = map_event_status(event.status)
    return ProgressRecord(
        client_id=event.client_name,
        status=mapped.status,
        progress=mapped.progress,
        current_step=mapped.current_step,
        steps=mapped.steps,
        message=event.message,
        preview_url=event.preview_url,
        repository_url=event.pr_url,
        error=event.error,
        estimated_time_remaining=estimate_time_remaining(mapped.progress),
        updated_at=utc_now(),
    )


def default_record(client_id: str) -> ProgressRecord:
    """Record reported for a client that has not received any webhook yet."""
    return ProgressRecord(
        client_id=client_id,
        status="starting",
        progress=0,
        current_step=STEP_IDS[0],
        steps=pending_steps(),
        message="Initializing website generation...",
        estimated_time_remaining=TOTAL_ESTIMATED_SECONDS,
        updated_at=utc_now(),
    )
