"""
Data Models for the Approval Export Engine

Pydantic models for request records and export options, plus the plain
dataclasses passed between pipeline stages. Attributes are snake_case; the
camelCase aliases are the field names used in every export format.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from .formatters import canonical_timestamp


def to_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Coerce a timestamp-like value to an aware UTC datetime.

    Accepts datetimes, dates (midnight UTC) and ISO-8601 strings.
    Returns None for None.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str):
        return to_utc(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))
    raise ValueError(f"Cannot interpret {type(value).__name__} as a timestamp: {value!r}")


class RecordModel(BaseModel):
    """Base for records: accepts either field names or aliases, keeps unknown keys"""
    model_config = ConfigDict(populate_by_name=True, extra="allow")


# ============================================================================
# Events
# ============================================================================

class ApprovalEvent(RecordModel):
    """An approval given at one level of the workflow"""
    approver_id: str = Field(alias="approverId")
    level: int
    approved_at: datetime = Field(alias="approvedAt")
    comment: Optional[str] = None
    request_id: Optional[str] = Field(default=None, alias="requestId")

    @field_validator("approved_at", mode="before")
    @classmethod
    def parse_approved_at(cls, v):
        return parse_timestamp(v)


class RejectionEvent(RecordModel):
    """A rejection recorded at one level of the workflow"""
    approver_id: str = Field(alias="approverId")
    level: int
    rejected_at: datetime = Field(alias="rejectedAt")
    reason: Optional[str] = None
    request_id: Optional[str] = Field(default=None, alias="requestId")

    @field_validator("rejected_at", mode="before")
    @classmethod
    def parse_rejected_at(cls, v):
        return parse_timestamp(v)


class CommentEvent(RecordModel):
    """A free-text comment left on a request"""
    user: str
    type: str = "comment"
    timestamp: datetime
    text: str = ""
    request_id: Optional[str] = Field(default=None, alias="requestId")

    @field_validator("timestamp", mode="before")
    @classmethod
    def parse_timestamp_field(cls, v):
        return parse_timestamp(v)


Event = Union[ApprovalEvent, RejectionEvent, CommentEvent]


# ============================================================================
# Requests
# ============================================================================

class RequestMetadata(RecordModel):
    """Workflow state of a request"""
    status: Literal["pending", "approved", "rejected"]
    submitted_at: datetime = Field(alias="submittedAt")
    completed_at: Optional[datetime] = Field(default=None, alias="completedAt")
    current_level: int = Field(default=0, ge=0, alias="currentLevel")
    approvals: List[ApprovalEvent] = Field(default_factory=list)
    rejections: List[RejectionEvent] = Field(default_factory=list)
    comments: List[CommentEvent] = Field(default_factory=list)

    @field_validator("submitted_at", "completed_at", mode="before")
    @classmethod
    def parse_dates(cls, v):
        return parse_timestamp(v)


class Request(RecordModel):
    """An access-approval workflow instance"""
    id: str
    requester: str
    subject: str = ""
    workflow_id: str = Field(alias="workflowId")
    metadata: RequestMetadata


# ============================================================================
# Query and Export Options
# ============================================================================

class DateRange(BaseModel):
    """Inclusive submission date window"""
    start: datetime
    end: datetime

    @field_validator("start", "end", mode="before")
    @classmethod
    def parse_bounds(cls, v):
        return parse_timestamp(v)

    @field_serializer("start", "end", when_used="json")
    def dump_bounds(self, v: datetime) -> str:
        return canonical_timestamp(v)

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


class ExportFilters(BaseModel):
    """Filter, sort and limit criteria; every criterion is optional"""
    model_config = ConfigDict(populate_by_name=True)

    date_range: Optional[DateRange] = Field(default=None, alias="dateRange")
    status: Optional[str] = None
    requester: Optional[str] = None
    workflow_id: Optional[str] = Field(default=None, alias="workflowId")
    sort_by: str = Field(default="submittedAt", alias="sortBy")
    sort_order: Literal["asc", "desc"] = Field(default="desc", alias="sortOrder")
    limit: Optional[int] = Field(default=None, ge=1)

    @classmethod
    def coerce(cls, filters: Union["ExportFilters", Mapping[str, Any], None]) -> "ExportFilters":
        if filters is None:
            return cls()
        if isinstance(filters, cls):
            return filters
        return cls.model_validate(dict(filters))

    def effective(self) -> Dict[str, Any]:
        """Filters as reported in export metadata (camelCase, JSON-safe, unset criteria omitted)"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ExportOptions(BaseModel):
    """Options for a single export call. Unknown keys are kept for custom renderers."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    filters: ExportFilters = Field(default_factory=ExportFilters)
    sheet: str = Field(default="requests", description="Category for CSV/XML exports")
    mode: str = Field(default="full", description="JSON mode: full, summary or minimal")
    include_all: bool = Field(default=False, alias="includeAll", description="Full XML envelope")
    title: str = Field(default="Approval System Report", description="Document title")

    @classmethod
    def coerce(cls, options: Union["ExportOptions", Mapping[str, Any], None]) -> "ExportOptions":
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        return cls.model_validate(dict(options))


# ============================================================================
# Statistics
# ============================================================================

class SummaryRecord(BaseModel):
    """Aggregate metrics over a set of requests"""
    model_config = ConfigDict(populate_by_name=True)

    total_requests: int = Field(default=0, alias="totalRequests")
    pending_requests: int = Field(default=0, alias="pendingRequests")
    approved_requests: int = Field(default=0, alias="approvedRequests")
    rejected_requests: int = Field(default=0, alias="rejectedRequests")
    total_approvals: int = Field(default=0, alias="totalApprovals")
    total_rejections: int = Field(default=0, alias="totalRejections")
    total_comments: int = Field(default=0, alias="totalComments")
    avg_approval_time: str = Field(default="N/A", alias="avgApprovalTime")
    most_active_requester: str = Field(default="N/A", alias="mostActiveRequester")
    most_common_workflow: str = Field(default="N/A", alias="mostCommonWorkflow")

    def as_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)

    def counts(self) -> Dict[str, int]:
        """Integer metrics only, in declaration order"""
        return {k: v for k, v in self.as_dict().items() if isinstance(v, int)}


# ============================================================================
# Pipeline Payloads
# ============================================================================

@dataclass
class ExportData:
    """Snapshot handed to renderers"""
    requests: List[Request]
    approvals: List[ApprovalEvent]
    rejections: List[RejectionEvent]
    comments: List[CommentEvent]
    statistics: SummaryRecord
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def requests_by_id(self) -> Dict[str, Request]:
        return {request.id: request for request in self.requests}

    @property
    def date_stamp(self) -> str:
        return self.generated_at.strftime("%Y-%m-%d")


@dataclass
class ExportMetadata:
    """Envelope attached to every export result"""
    exported_at: datetime
    format: str
    record_count: int
    filters: Dict[str, Any]
    generated_by: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exportedAt": self.exported_at.isoformat(),
            "format": self.format,
            "recordCount": self.record_count,
            "filters": self.filters,
            "generatedBy": self.generated_by,
        }


@dataclass
class ExportResult:
    """Rendered payload"""
    content: Union[str, bytes]
    filename: str
    media_type: str
    size: int
    metadata: Optional[ExportMetadata] = None

    @classmethod
    def from_content(cls, content: Union[str, bytes], filename: str, media_type: str) -> "ExportResult":
        """Build a result, measuring size in bytes (UTF-8 for text)"""
        return cls(
            content=content,
            filename=filename,
            media_type=media_type,
            size=len(payload_bytes(content)),
        )

    def to_bytes(self) -> bytes:
        return payload_bytes(self.content)


def payload_bytes(content: Union[str, bytes]) -> bytes:
    if isinstance(content, str):
        return content.encode("utf-8")
    return bytes(content)
