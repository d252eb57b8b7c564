"""
Approval Report & Export Engine

This module provides export capabilities for approval workflow records:
- Record snapshotting, filtering, sorting and limiting
- Event extraction and summary statistics
- Multi-format export (CSV, JSON, Excel, PDF, XML) with custom formats
- Fluent builder and canned monthly / user-activity reports
"""

from .exceptions import (
    ExportError,
    UnsupportedFormatError,
    MissingTemplateError,
    MissingCapabilityError,
    DuplicateFormatError,
)
from .config import ExportConfig
from .models import (
    ApprovalEvent,
    RejectionEvent,
    CommentEvent,
    Request,
    RequestMetadata,
    DateRange,
    ExportFilters,
    ExportOptions,
    SummaryRecord,
    ExportData,
    ExportMetadata,
    ExportResult,
)
from .store import RecordStore
from .query_engine import RequestQueryEngine, extract_relations
from .statistics import StatisticsCalculator
from .templates import Template, TemplateRegistry
from .formatters import JSONFormatter, XMLFormatter
from .capabilities import (
    WorkbookBuilder,
    DocumentBuilder,
    load_workbook_builder,
    load_document_builder,
)
from .export_formats import (
    ExportRenderer,
    DelimitedTextRenderer,
    JSONRenderer,
    XMLRenderer,
    SpreadsheetRenderer,
    DocumentRenderer,
    RendererRegistry,
)
from .export_pipeline import ExportPipeline
from .builder import ExportBuilder, create_export_pipeline, create_export_builder
from .reports import monthly_report, user_activity_report

__all__ = [
    "ExportError",
    "UnsupportedFormatError",
    "MissingTemplateError",
    "MissingCapabilityError",
    "DuplicateFormatError",
    "ExportConfig",
    "ApprovalEvent",
    "RejectionEvent",
    "CommentEvent",
    "Request",
    "RequestMetadata",
    "DateRange",
    "ExportFilters",
    "ExportOptions",
    "SummaryRecord",
    "ExportData",
    "ExportMetadata",
    "ExportResult",
    "RecordStore",
    "RequestQueryEngine",
    "extract_relations",
    "StatisticsCalculator",
    "Template",
    "TemplateRegistry",
    "JSONFormatter",
    "XMLFormatter",
    "WorkbookBuilder",
    "DocumentBuilder",
    "load_workbook_builder",
    "load_document_builder",
    "ExportRenderer",
    "DelimitedTextRenderer",
    "JSONRenderer",
    "XMLRenderer",
    "SpreadsheetRenderer",
    "DocumentRenderer",
    "RendererRegistry",
    "ExportPipeline",
    "ExportBuilder",
    "create_export_pipeline",
    "create_export_builder",
    "monthly_report",
    "user_activity_report",
]
