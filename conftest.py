#!/usr/bin/env python3
"""
conftest.py - Shared pytest configuration and fixtures for the approval export engine

Provides:
- Marker registration (unit/integration)
- Sample request records in the wire (camelCase) shape
- Snapshot, pipeline and export data fixtures
- Recording stand-ins for the workbook and document builders
"""
from datetime import datetime, timezone
from typing import Any, Dict, List

import pytest
from dotenv import load_dotenv

from approval_export import (
    ExportConfig,
    ExportData,
    ExportPipeline,
    Request,
    StatisticsCalculator,
    extract_relations,
)

# Load environment variables
load_dotenv()

GENERATED_AT = datetime(2024, 3, 15, 12, 0, 0, tzinfo=timezone.utc)


def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated, no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (multiple components)")


# ============================================================================
# Shared Fixtures - Records
# ============================================================================

@pytest.fixture
def sample_records() -> List[Dict[str, Any]]:
    """Four requests covering every status, in insertion order"""
    return [
        {
            "id": "REQ-001",
            "requester": "alice",
            "subject": 'Widget, "Pro"',
            "workflowId": "wf-standard",
            "workflow": {"name": "Standard", "approvers": ["bob", "carol"]},
            "data": {"amount": 100, "sensitiveInfo": "secret"},
            "metadata": {
                "status": "approved",
                "submittedAt": "2024-03-01T09:00:00Z",
                "completedAt": "2024-03-01T11:00:00Z",
                "currentLevel": 2,
                "approvals": [
                    {"approverId": "bob", "level": 1, "approvedAt": "2024-03-01T10:00:00Z", "comment": "ok"},
                    {"approverId": "carol", "level": 2, "approvedAt": "2024-03-01T11:00:00Z"},
                ],
                "rejections": [],
                "comments": [
                    {"user": "alice", "type": "comment", "timestamp": "2024-03-01T09:05:00Z", "text": "Please review"},
                ],
            },
        },
        {
            "id": "REQ-002",
            "requester": "dave",
            "subject": "A & B < C",
            "workflowId": "wf-standard",
            "metadata": {
                "status": "approved",
                "submittedAt": "2024-03-05T08:00:00Z",
                "completedAt": "2024-03-05T12:00:00Z",
                "currentLevel": 1,
                "approvals": [
                    {"approverId": "bob", "level": 1, "approvedAt": "2024-03-05T12:00:00Z"},
                ],
            },
        },
        {
            "id": "REQ-003",
            "requester": "alice",
            "subject": "Laptop",
            "workflowId": "wf-it",
            "metadata": {
                "status": "pending",
                "submittedAt": "2024-03-10T14:30:00Z",
                "currentLevel": 0,
            },
        },
        {
            "id": "REQ-004",
            "requester": "erin",
            "subject": "Server access",
            "workflowId": "wf-it",
            "metadata": {
                "status": "rejected",
                "submittedAt": "2024-02-20T10:00:00Z",
                "completedAt": "2024-02-21T10:00:00Z",
                "currentLevel": 1,
                "rejections": [
                    {"approverId": "bob", "level": 1, "rejectedAt": "2024-02-21T10:00:00Z", "reason": "Not justified"},
                ],
            },
        },
    ]


@pytest.fixture
def sample_requests(sample_records) -> List[Request]:
    """sample_records validated into Request models"""
    return [Request.model_validate(record) for record in sample_records]


@pytest.fixture
def export_data(sample_requests) -> ExportData:
    """Unfiltered snapshot with a fixed generation time"""
    approvals, rejections, comments = extract_relations(sample_requests)
    return ExportData(
        requests=sample_requests,
        approvals=approvals,
        rejections=rejections,
        comments=comments,
        statistics=StatisticsCalculator().summarize(sample_requests),
        generated_at=GENERATED_AT,
    )


@pytest.fixture
def export_config() -> ExportConfig:
    return ExportConfig()


# ============================================================================
# Shared Fixtures - Rendering Capabilities
# ============================================================================

class RecordingWorkbook:
    """WorkbookBuilder that records every call"""

    def __init__(self):
        self.sheets: Dict[str, List[List[Any]]] = {}
        self.styled: List[Any] = []
        self.widths: Dict[str, Dict[int, float]] = {}
        self.filters: Dict[str, Any] = {}

    def add_sheet(self, title):
        self.sheets[title] = []
        return title

    def add_row(self, sheet, values):
        self.sheets[sheet].append(list(values))

    def style_header(self, sheet, row=1):
        self.styled.append((sheet, row))

    def set_column_width(self, sheet, column, width):
        self.widths.setdefault(sheet, {})[column] = width

    def set_auto_filter(self, sheet, last_row, last_column):
        self.filters[sheet] = (last_row, last_column)

    def to_bytes(self):
        return b"recorded-workbook"


class RecordingDocument:
    """DocumentBuilder that records every text placement"""

    def __init__(self):
        self.font_size = 12
        self.page_count = 1
        self.texts: List[Dict[str, Any]] = []

    def set_font_size(self, size):
        self.font_size = size

    def text(self, x, y, value):
        self.texts.append({"page": self.page_count, "size": self.font_size, "x": x, "y": y, "value": value})

    def add_page(self):
        self.page_count += 1

    def to_bytes(self):
        return b"%PDF-recorded"

    def values(self) -> List[str]:
        return [t["value"] for t in self.texts]


@pytest.fixture
def recording_workbook() -> RecordingWorkbook:
    return RecordingWorkbook()


@pytest.fixture
def recording_document() -> RecordingDocument:
    return RecordingDocument()


@pytest.fixture
def pipeline(sample_records, recording_workbook, recording_document) -> ExportPipeline:
    """Pipeline over sample_records with recording builders injected"""
    return ExportPipeline(
        sample_records,
        workbook_factory=lambda: recording_workbook,
        document_factory=lambda: recording_document,
    )
