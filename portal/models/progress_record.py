"""
Progress Record Model
=====================
Normalized status snapshot for one client's generation job.

Fields (camelCase on the wire):
    client_id                 — correlation key shared with the workflow (client_name)
    status                    — starting / in-progress / completed / error
    progress                  — 0..100, derived from status only
    current_step              — one of STEP_IDS, or "error"
    steps                     — per-step state, always exactly the five STEP_IDS
    message                   — human-readable status line
    preview_url               — deployed preview (terminal payload)
    repository_url            — pull request / repository link (terminal payload)
    error                     — failure description
    estimated_time_remaining  — seconds, derived from progress
    updated_at                — last mutation time (UTC)
"""
from datetime import datetime, timezone
from typing import Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from portal.core.constants import STEP_IDS, ERROR_STEP

RecordStatus = Literal["starting", "in-progress", "completed", "error"]
StepStatus = Literal["pending", "in-progress", "completed", "failed"]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ProgressRecord(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    client_id: str
    status: RecordStatus
    progress: int = Field(ge=0, le=100)
    current_step: str
    steps: Dict[str, StepStatus]
    message: str = ""
    preview_url: Optional[str] = None
    repository_url: Optional[str] = None
    error: Optional[str] = None
    estimated_time_remaining: Optional[int] = None
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("steps")
    @classmethod
    def require_all_steps(cls, v: Dict[str, str]) -> Dict[str, str]:
        if set(v) != set(STEP_IDS):
            raise ValueError(f"steps must contain exactly {', '.join(STEP_IDS)}")
        return {step: v[step] for step in STEP_IDS}

    @field_validator("current_step")
    @classmethod
    def known_step(cls, v: str) -> str:
        if v != ERROR_STEP and v not in STEP_IDS:
            raise ValueError(f"Unknown step: {v}")
        return v

    def to_json(self) -> dict:
        """JSON-ready dict in wire format; unset optional fields are omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
