from .client import Client, Industry
from .profile import AccessLevel, Profile
from .group import Group, GroupMember
from .assessment import Assessment, Dimension, Field, FieldType
from .assignment import Answer, Assignment
from .benchmark import Benchmark
from .feedback import FeedbackLibrary, FeedbackType
from .report import AssignmentDimensionScore, PdfStatus, ReportData, ReportTemplate

__all__ = [
    "Client",
    "Industry",
    "AccessLevel",
    "Profile",
    "Group",
    "GroupMember",
    "Assessment",
    "Dimension",
    "Field",
    "FieldType",
    "Answer",
    "Assignment",
    "Benchmark",
    "FeedbackLibrary",
    "FeedbackType",
    "AssignmentDimensionScore",
    "PdfStatus",
    "ReportData",
    "ReportTemplate",
]
