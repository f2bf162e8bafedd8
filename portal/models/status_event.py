"""
Status Event Model
Body of a status webhook pushed by the generation workflow.
Parsing is strict: unknown keys, missing keys and mistyped values are rejected.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class StatusEvent(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    status: str
    client_name: str = Field(min_length=1)
    message: str
    timestamp: str
    pr_url: Optional[str] = None
    preview_url: Optional[str] = None
    error: Optional[str] = None
