from .report import (
    DimensionReport360,
    DimensionReportLeaderBlocker,
    FeedbackAssignment,
    Geonorm,
    PdfQueueRequest,
    PdfQueueResponse,
    RaterBreakdown,
    Report360,
    ReportLeaderBlocker,
)

__all__ = [
    "DimensionReport360",
    "DimensionReportLeaderBlocker",
    "FeedbackAssignment",
    "Geonorm",
    "PdfQueueRequest",
    "PdfQueueResponse",
    "RaterBreakdown",
    "Report360",
    "ReportLeaderBlocker",
]
