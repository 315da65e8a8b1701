from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ..platform.config import settings


class RaterBreakdown(BaseModel):
    peer: Optional[float] = None
    direct_report: Optional[float] = None
    supervisor: Optional[float] = None
    self: Optional[float] = None
    other: Optional[float] = None
    all_raters: Optional[float] = None


class DimensionReport360(BaseModel):
    dimension_id: str
    dimension_name: str
    dimension_code: str
    overall_score: float
    rater_breakdown: RaterBreakdown
    industry_benchmark: Optional[float] = None
    geonorm: Optional[float] = None
    geonorm_participant_count: int = 0
    improvement_needed: bool = False
    text_feedback: List[str] = Field(default_factory=list)
    definition: Optional[str] = None


class ParticipantResponseSummary(BaseModel):
    completed: int
    total: int


class Report360(BaseModel):
    report_type: Literal["360"] = "360"
    assignment_id: str
    target_id: str
    target_name: str
    target_email: str
    assessment_id: str
    assessment_title: str
    group_id: Optional[str] = None
    group_name: Optional[str] = None
    client_name: Optional[str] = None
    overall_score: float
    dimensions: List[DimensionReport360] = Field(default_factory=list)
    generated_at: datetime
    partial: bool = False
    participant_response_summary: Optional[ParticipantResponseSummary] = None


class DimensionReportLeaderBlocker(BaseModel):
    dimension_id: str
    dimension_name: str
    dimension_code: str
    target_score: float
    industry_benchmark: Optional[float] = None
    geonorm: Optional[float] = None
    geonorm_participant_count: int = 0
    improvement_needed: bool = False
    overall_feedback: Optional[str] = None
    overall_feedback_id: Optional[str] = None
    specific_feedback: Optional[str] = None
    specific_feedback_id: Optional[str] = None
    definition: Optional[str] = None


class ReportLeaderBlocker(BaseModel):
    report_type: Literal["leader_blocker"] = "leader_blocker"
    assignment_id: str
    user_id: str
    user_name: str
    user_email: str
    assessment_id: str
    assessment_title: str
    group_id: Optional[str] = None
    group_name: Optional[str] = None
    client_name: Optional[str] = None
    overall_score: float
    dimensions: List[DimensionReportLeaderBlocker] = Field(default_factory=list)
    overall_feedback: Optional[str] = None
    overall_feedback_id: Optional[str] = None
    generated_at: datetime


class FeedbackAssignment(BaseModel):
    dimension_id: Optional[str] = None
    feedback_id: str
    feedback_content: str
    type: Literal["overall", "specific"]


class DimensionScoreResponse(BaseModel):
    dimension_id: str
    dimension_name: str
    dimension_code: str
    parent_id: Optional[str] = None
    avg_score: float
    answer_count: int
    calculated_at: Optional[datetime] = None


class DimensionScoresResponse(BaseModel):
    assignment_id: str
    scores: List[DimensionScoreResponse]


class ReportResponse(BaseModel):
    report: dict
    cached: bool


class GenerateReportResponse(BaseModel):
    success: bool = True
    report: dict


def _clean_assignment_ids(value: List[str], limit: int) -> List[str]:
    cleaned = [v.strip() for v in value if v and v.strip()]
    # De-duplicate while keeping request order
    unique = list(dict.fromkeys(cleaned))
    if not unique:
        raise ValueError("assignment_ids must contain at least one id")
    if len(unique) > limit:
        raise ValueError(f"Maximum {limit} assignments per request")
    return unique


class PdfQueueRequest(BaseModel):
    assignment_ids: List[str]

    @field_validator("assignment_ids")
    @classmethod
    def _validate_ids(cls, value: List[str]) -> List[str]:
        return _clean_assignment_ids(value, settings.PDF_QUEUE_MAX_BATCH)


class PdfQueueResponse(BaseModel):
    queued: int
    skipped: int
    errors: Optional[List[str]] = None


class BulkExportRequest(BaseModel):
    assignment_ids: List[str]
    format: Literal["pdf", "excel", "csv", "all"] = "all"

    @field_validator("assignment_ids")
    @classmethod
    def _validate_ids(cls, value: List[str]) -> List[str]:
        return _clean_assignment_ids(value, settings.BULK_EXPORT_MAX_REPORTS)


class PdfUrlResponse(BaseModel):
    url: str


class PdfStatusResponse(BaseModel):
    assignment_id: str
    pdf_status: str
    pdf_version: int
    pdf_generated_at: Optional[datetime] = None
    pdf_last_error: Optional[str] = None
    pdf_job_id: Optional[str] = None
    pdf_storage_path: Optional[str] = None


class Geonorm(BaseModel):
    avg_score: float
    participant_count: int


GeonormMap = Dict[str, Geonorm]
