from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class JobRecord(CamelModel):
    """State of one generation job as stored under generation:{id}"""
    id: str
    kind: Optional[str] = None
    status: JobStatus = JobStatus.PENDING
    stage: Optional[str] = None
    progress: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    result: Optional[Any] = None
    error: Optional[str] = None
    created_at: Optional[datetime] = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None
    external_ref: Optional[str] = None

    @model_validator(mode="after")
    def check_outcome_matches_status(self) -> "JobRecord":
        if self.result is not None and self.status != JobStatus.COMPLETED:
            raise ValueError("result is only allowed on completed jobs")
        if self.error is not None and self.status != JobStatus.FAILED:
            raise ValueError("error is only allowed on failed jobs")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def failed(cls, job_id: str, error: str) -> "JobRecord":
        """Synthetic failed-shaped record for reads that cannot find a real one"""
        return cls(id=job_id, status=JobStatus.FAILED, error=error, created_at=None)


class CodeUpdate(BaseModel):
    html: Optional[str] = None
    css: Optional[str] = None
    js: Optional[str] = None
    json_: Optional[str] = Field(default=None, alias="json")

    model_config = ConfigDict(populate_by_name=True)


class ImagePreview(BaseModel):
    id: str
    url: str  # Plain URL or base64 data URI
    description: Optional[str] = None


class UpdateView(CamelModel):
    status_log: List[str] = Field(default_factory=list)
    latest_thinking: Optional[str] = None
    code_updates: CodeUpdate = Field(default_factory=CodeUpdate)
    image_previews: List[ImagePreview] = Field(default_factory=list)
    status: Optional[JobStatus] = None
    is_complete: bool = False


class StartJobResponse(CamelModel):
    job_id: str
    status: JobStatus = JobStatus.PENDING


class VideoJobRequest(BaseModel):
    provider: str
    prompt: Optional[str] = None
    image: Optional[str] = None  # URL or data URI
    template: Optional[str] = None
    modifications: Dict[str, Any] = Field(default_factory=dict)
    params: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("Provider cannot be empty")
        return v


class WebsiteJobRequest(BaseModel):
    prompt: str

    @field_validator("prompt")
    @classmethod
    def validate_prompt(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Prompt cannot be empty")
        return v
