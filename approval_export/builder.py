"""
Fluent Export Builder

Chainable construction of export options on top of an ExportPipeline.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .export_pipeline import ExportPipeline
from .models import ExportOptions, ExportResult
from .store import RecordSource


class ExportBuilder:
    """
    Accumulate a format, filters and options, then run a single export.

    Example:
        path = (
            ExportBuilder(pipeline)
            .format("csv")
            .status("approved")
            .date_range("2024-01-01", "2024-01-31")
            .sort_by("submittedAt", "asc")
            .limit(100)
            .download("reports/")
        )
    """

    def __init__(self, pipeline: ExportPipeline):
        self.pipeline = pipeline
        self._format = "json"
        self._filters: Dict[str, Any] = {}
        self._options: Dict[str, Any] = {}

    def format(self, export_format: str) -> "ExportBuilder":
        self._format = export_format
        return self

    def filter(self, **filters) -> "ExportBuilder":
        """Merge arbitrary filter criteria (snake_case or camelCase keys)"""
        self._filters.update(filters)
        return self

    def date_range(self, start: Union[str, datetime], end: Union[str, datetime]) -> "ExportBuilder":
        self._filters["dateRange"] = {"start": start, "end": end}
        return self

    def status(self, status: str) -> "ExportBuilder":
        self._filters["status"] = status
        return self

    def requester(self, requester: str) -> "ExportBuilder":
        self._filters["requester"] = requester
        return self

    def workflow(self, workflow_id: str) -> "ExportBuilder":
        self._filters["workflowId"] = workflow_id
        return self

    def sort_by(self, field: str, order: str = "desc") -> "ExportBuilder":
        self._filters["sortBy"] = field
        self._filters["sortOrder"] = order
        return self

    def limit(self, count: int) -> "ExportBuilder":
        self._filters["limit"] = count
        return self

    def sheet(self, category: str) -> "ExportBuilder":
        self._options["sheet"] = category
        return self

    def mode(self, mode: str) -> "ExportBuilder":
        self._options["mode"] = mode
        return self

    def include_all(self, include: bool = True) -> "ExportBuilder":
        self._options["includeAll"] = include
        return self

    def title(self, title: str) -> "ExportBuilder":
        self._options["title"] = title
        return self

    def options(self) -> ExportOptions:
        """Validated options for the accumulated state"""
        return ExportOptions.model_validate({**self._options, "filters": dict(self._filters)})

    def execute(self) -> ExportResult:
        return self.pipeline.export_data(self._format, self.options())

    def download(self, output_dir: Optional[Union[str, Path]] = None) -> Path:
        """Execute the export and write it to disk"""
        return self.pipeline.save_to_file(self.execute(), output_dir)


def create_export_pipeline(records: RecordSource, **kwargs) -> ExportPipeline:
    """Create an ExportPipeline over a request collection"""
    return ExportPipeline(records, **kwargs)


def create_export_builder(records: RecordSource, **kwargs) -> ExportBuilder:
    """Create an ExportBuilder over a new pipeline for a request collection"""
    return ExportBuilder(create_export_pipeline(records, **kwargs))
