"""
Tests for the Export Pipeline
"""

import json
import logging
import re
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from approval_export.config import ExportConfig
from approval_export.exceptions import (
    DuplicateFormatError,
    MissingCapabilityError,
    UnsupportedFormatError,
)
from approval_export.export_formats import ExportRenderer
from approval_export.export_pipeline import ExportPipeline
from approval_export.models import ExportResult
from approval_export.templates import Template, TemplateRegistry


class UpperCaseIdsRenderer(ExportRenderer):
    """Renders request IDs one per line, upper-cased"""

    media_type = "text/plain"
    extension = "txt"

    def render(self, data, options):
        content = "\n".join(r.id.upper() for r in data.requests)
        return ExportResult.from_content(content, self.filename("ids", data), self.media_type)


@pytest.mark.unit
class TestExportData:
    """Tests for export_data"""

    def test_csv_export_with_metadata(self, pipeline):
        result = pipeline.export_data("csv")

        assert re.fullmatch(r"approvals_requests_\d{4}-\d{2}-\d{2}\.csv", result.filename)
        assert result.metadata.format == "csv"
        assert result.metadata.record_count == 4
        assert result.metadata.generated_by == "ApprovalSystem Export Module"
        assert result.metadata.filters == {"sortBy": "submittedAt", "sortOrder": "desc"}
        assert result.metadata.exported_at.tzinfo is not None

    def test_metadata_dict(self, pipeline):
        metadata = pipeline.export_data("json", {"mode": "summary"}).metadata.to_dict()
        assert list(metadata) == ["exportedAt", "format", "recordCount", "filters", "generatedBy"]

    def test_rows_follow_query_order(self, pipeline):
        content = pipeline.export_data("csv").content
        ids = [line.split(",")[0] for line in content.strip().split("\n")[1:]]
        assert ids == ["REQ-003", "REQ-002", "REQ-001", "REQ-004"]

    def test_format_is_case_insensitive(self, pipeline):
        assert pipeline.export_data("JSON").metadata.format == "json"

    def test_filters_applied(self, pipeline):
        result = pipeline.export_data("json", {"filters": {"status": "pending"}, "mode": "minimal"})
        payload = json.loads(result.content)

        assert [r["id"] for r in payload["requests"]] == ["REQ-003"]
        assert result.metadata.record_count == 1
        assert result.metadata.filters["status"] == "pending"

    def test_events_limited_to_filtered_requests(self, pipeline):
        result = pipeline.export_data("csv", {"sheet": "approvals", "filters": {"requester": "dave"}})
        rows = result.content.strip().split("\n")[1:]
        assert rows == ["REQ-002,bob,1,approved,2024-03-05 12:00:00,"]

    def test_unsupported_format_never_queries(self, pipeline):
        pipeline.query_engine = MagicMock()

        with pytest.raises(UnsupportedFormatError) as exc_info:
            pipeline.export_data("bogus", {})

        assert exc_info.value.format == "bogus"
        pipeline.query_engine.filter.assert_not_called()

    def test_invalid_options(self, pipeline):
        with pytest.raises(ValidationError):
            pipeline.export_data("csv", {"filters": {"limit": 0}})

    def test_excel_through_injected_builder(self, pipeline, recording_workbook):
        result = pipeline.export_data("excel", {"filters": {"status": "approved"}})

        assert result.content == b"recorded-workbook"
        assert len(recording_workbook.sheets["Requests"]) == 3
        assert result.metadata.record_count == 2

    def test_pdf_through_injected_builder(self, pipeline, recording_document):
        result = pipeline.export_data("pdf", {"title": "Board Pack"})

        assert result.filename.endswith(".pdf")
        assert recording_document.values()[0] == "Board Pack"

    def test_missing_capability(self, sample_records):
        pipeline = ExportPipeline(sample_records, workbook_factory=None, document_factory=None)

        with pytest.raises(MissingCapabilityError):
            pipeline.export_data("excel")
        with pytest.raises(MissingCapabilityError):
            pipeline.export_data("pdf")

    def test_live_collection_read_at_export_time(self, sample_records):
        records = sample_records[:1]
        pipeline = ExportPipeline(records)
        records.append(sample_records[2])

        assert pipeline.export_data("json", {"mode": "summary"}).metadata.record_count == 2

    def test_mapping_collection(self, sample_records):
        pipeline = ExportPipeline({r["id"]: r for r in sample_records})
        assert pipeline.export_data("xml").metadata.record_count == 4

    def test_export_logged(self, pipeline, caplog):
        with caplog.at_level(logging.INFO, logger="approval_export.export_pipeline"):
            pipeline.export_data("csv")
        assert "Exported 4 requests as csv" in caplog.text


@pytest.mark.unit
class TestFormatRegistration:
    """Tests for custom formats and renderers"""

    def test_available_formats(self, pipeline):
        assert pipeline.get_available_formats() == ["csv", "json", "excel", "pdf", "xml"]

    def test_add_custom_format(self, pipeline):
        pipeline.add_custom_format("tsv", TemplateRegistry.default(), delimiter="\t")
        result = pipeline.export_data("tsv", {"sheet": "rejections"})

        assert "tsv" in pipeline.get_available_formats()
        assert result.content.split("\n")[1] == "REQ-004\tbob\t1\trejected\t2024-02-21 10:00:00\tNot justified"
        assert result.filename.endswith(".tsv")
        assert result.media_type == "text/plain"

    def test_custom_template_set(self, pipeline):
        templates = TemplateRegistry([
            Template(name="ids", headers=["Request", "Owner"], mapper=lambda r, owner: [r.id, r.requester]),
        ])
        pipeline.add_custom_format("roster", templates, extension="csv")
        result = pipeline.export_data("roster", {"sheet": "ids", "filters": {"workflowId": "wf-it"}})

        assert result.content == "Request,Owner\nREQ-003,alice\nREQ-004,erin\n"
        assert result.filename.startswith("approvals_ids_")

    def test_duplicate_format(self, pipeline):
        with pytest.raises(DuplicateFormatError) as exc_info:
            pipeline.add_custom_format("CSV", TemplateRegistry.default())
        assert str(exc_info.value) == "Format CSV already exists"

    def test_register_renderer(self, pipeline):
        pipeline.register_renderer("ids", UpperCaseIdsRenderer(pipeline.config))
        result = pipeline.export_data("ids", {"filters": {"sortOrder": "asc", "limit": 2}})

        assert result.content == "REQ-004\nREQ-001"
        assert result.metadata.format == "ids"


@pytest.mark.unit
class TestSaveToFile:
    """Tests for writing results to disk"""

    def test_save_text(self, pipeline, tmp_path):
        result = pipeline.export_data("csv")
        path = pipeline.save_to_file(result, tmp_path)

        assert path == tmp_path / result.filename
        assert path.read_text(encoding="utf-8") == result.content

    def test_save_binary(self, pipeline, tmp_path):
        result = pipeline.export_data("excel")
        path = pipeline.save_to_file(result, tmp_path / "nested" / "dir")

        assert path.read_bytes() == b"recorded-workbook"

    def test_default_output_dir(self, sample_records, tmp_path):
        pipeline = ExportPipeline(sample_records, config=ExportConfig(output_dir=tmp_path / "out"))
        path = pipeline.save_to_file(pipeline.export_data("json"))

        assert path.parent == tmp_path / "out"
        assert json.loads(path.read_text(encoding="utf-8"))["statistics"]["totalRequests"] == 4


@pytest.mark.unit
class TestExportStats:
    """Tests for pipeline statistics"""

    def test_stats(self, pipeline, tmp_path):
        first = pipeline.export_data("csv")
        second = pipeline.export_data("json")
        pipeline.save_to_file(first, tmp_path)

        stats = pipeline.get_export_stats()
        assert stats["exports_rendered"] == 2
        assert stats["files_saved"] == 1
        assert stats["total_size_bytes"] == first.size + second.size
        assert stats["avg_file_size_bytes"] == (first.size + second.size) / 2

    def test_clear_stats(self, pipeline):
        pipeline.export_data("csv")
        pipeline.clear_stats()

        stats = pipeline.get_export_stats()
        assert stats["exports_rendered"] == 0
        assert stats["avg_file_size_bytes"] == 0
