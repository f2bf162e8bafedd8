"""
Generate Request Model
======================
Business information submitted by the multi-step form.

Every rule is checked so the caller receives the full list of problems
in one response rather than the first failure only.
"""
import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class GenerateRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    business_name: str = Field("", validate_default=True)
    description: Optional[str] = None
    industry: str = Field("", validate_default=True)
    target_audience: Optional[str] = None
    services: List[str] = Field(default_factory=list, validate_default=True)
    email: str = Field("", validate_default=True)
    phone: Optional[str] = None
    domain: Optional[str] = None
    logo_url: Optional[str] = None

    @field_validator("business_name")
    @classmethod
    def validate_business_name(cls, v: str) -> str:
        if len(v.strip()) < 2:
            raise PydanticCustomError(
                "business_name", "Business name is required and must be at least 2 characters"
            )
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        if not _EMAIL_RE.match(v):
            raise PydanticCustomError("email", "Valid email address is required")
        return v

    @field_validator("industry")
    @classmethod
    def validate_industry(cls, v: str) -> str:
        if len(v.strip()) < 2:
            raise PydanticCustomError("industry", "Industry is required")
        return v

    @field_validator("services")
    @classmethod
    def validate_services(cls, v: List[str]) -> List[str]:
        if not v:
            raise PydanticCustomError("services", "At least one service must be specified")
        return v

    def to_dispatch_payload(self, client_id: str, webhook_url: str) -> Dict[str, str]:
        """Flatten the form into the string fields the workflow accepts."""
        contact_info = f"email={self.email}"
        if self.phone:
            contact_info += f",phone={self.phone}"

        return {
            "business_name": self.business_name,
            "business_description": self.description or "",
            "industry": self.industry,
            "target_audience": self.target_audience or "",
            "services": ",".join(self.services),
            "contact_info": contact_info,
            "website_domain": self.domain or "",
            "client_name": client_id,
            "logo_url": self.logo_url or "",
            # Extracted from the logo by the workflow
            "custom_colors": "",
            "webhook_url": webhook_url,
        }


def validation_messages(exc: ValidationError) -> List[str]:
    """Human-readable messages for every failed rule."""
    messages = []
    for err in exc.errors():
        if err["type"] in ("business_name", "email", "industry", "services"):
            messages.append(err["msg"])
        else:
            field = ".".join(str(part) for part in err["loc"]) or "body"
            messages.append(f"{field}: {err['msg']}")
    return messages


def parse_generate_request(data: Any) -> tuple[Optional[GenerateRequest], List[str]]:
    """Return (request, []) on success or (None, messages) on failure."""
    if not isinstance(data, dict):
        return None, ["Request body must be a JSON object"]
    try:
        return GenerateRequest.model_validate(data), []
    except ValidationError as exc:
        return None, validation_messages(exc)
