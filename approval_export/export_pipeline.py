"""
Export Pipeline for Approval Reports

Orchestrates the complete export workflow:
1. Snapshot the live request collection
2. Filter, sort and limit the snapshot
3. Extract events and compute statistics
4. Render in the requested format and attach export metadata
"""

import io
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from .capabilities import DocumentFactory, WorkbookFactory
from .config import ExportConfig
from .export_formats import (
    DEFAULT_FACTORY,
    DelimitedTextRenderer,
    ExportRenderer,
    RendererRegistry,
)
from .models import ExportData, ExportMetadata, ExportOptions, ExportResult
from .query_engine import RequestQueryEngine, extract_relations
from .statistics import StatisticsCalculator
from .store import RecordSource, RecordStore
from .templates import TemplateRegistry


logger = logging.getLogger(__name__)

OptionsInput = Union[ExportOptions, Mapping[str, Any], None]


class ExportPipeline:
    """
    Orchestrate complete export workflow.

    Example:
        from approval_export import ExportPipeline

        pipeline = ExportPipeline(request_manager.requests)

        # CSV of pending approvals, oldest first
        result = pipeline.export_data("csv", {
            "sheet": "approvals",
            "filters": {"status": "pending", "sortOrder": "asc"}
        })
        pipeline.save_to_file(result, "reports/")

        # Register a tab-separated variant
        pipeline.add_custom_format("tsv", TemplateRegistry.default(), delimiter="\\t")
    """

    def __init__(
        self,
        records: RecordSource,
        config: Optional[ExportConfig] = None,
        templates: Optional[TemplateRegistry] = None,
        workbook_factory: Optional[WorkbookFactory] = DEFAULT_FACTORY,
        document_factory: Optional[DocumentFactory] = DEFAULT_FACTORY
    ):
        """
        Args:
            records: Live request collection (mapping of id -> record, or iterable)
            config: Export configuration (defaults to ExportConfig())
            templates: Category templates (defaults to the built-in set)
            workbook_factory: Spreadsheet builder factory; None disables Excel export
            document_factory: Document builder factory; None disables PDF export
        """
        self.config = config or ExportConfig()
        self.store = records if isinstance(records, RecordStore) else RecordStore(records)
        self.templates = templates or TemplateRegistry.default(self.config.date_format)
        self.query_engine = RequestQueryEngine()
        self.statistics = StatisticsCalculator()
        self.renderers = RendererRegistry.default(
            self.config,
            self.templates,
            workbook_factory=workbook_factory,
            document_factory=document_factory
        )
        self._export_stats = {
            "exports_rendered": 0,
            "files_saved": 0,
            "total_size_bytes": 0
        }

    def export_data(self, export_format: str, options: OptionsInput = None) -> ExportResult:
        """
        Export the filtered request collection.

        Args:
            export_format: Registered format name (case-insensitive)
            options: ExportOptions or an equivalent dict

        Returns:
            ExportResult with metadata attached

        Raises:
            UnsupportedFormatError: If the format is not registered
            MissingTemplateError: If the sheet or mode has no template
            MissingCapabilityError: If the format's rendering library is unavailable
        """
        renderer = self.renderers.get(export_format)
        opts = ExportOptions.coerce(options)

        data = self.build_export_data(opts)
        result = renderer.render(data, opts)
        result.metadata = ExportMetadata(
            exported_at=data.generated_at,
            format=export_format.lower(),
            record_count=len(data.requests),
            filters=opts.filters.effective(),
            generated_by=self.config.generated_by
        )

        self._export_stats["exports_rendered"] += 1
        self._export_stats["total_size_bytes"] += result.size
        logger.info(
            f"Exported {len(data.requests)} requests as {export_format.lower()}: "
            f"{result.filename} ({result.size} bytes)"
        )
        return result

    def build_export_data(self, options: OptionsInput = None) -> ExportData:
        """Run the query, extraction and statistics stages without rendering"""
        opts = ExportOptions.coerce(options)
        requests = self.query_engine.filter(self.store.snapshot(), opts.filters)
        approvals, rejections, comments = extract_relations(requests)
        return ExportData(
            requests=requests,
            approvals=approvals,
            rejections=rejections,
            comments=comments,
            statistics=self.statistics.summarize(requests)
        )

    def get_available_formats(self) -> List[str]:
        """Get list of registered export formats"""
        return self.renderers.get_supported_formats()

    def add_custom_format(
        self,
        name: str,
        templates: TemplateRegistry,
        delimiter: str = ",",
        media_type: str = "text/plain",
        extension: Optional[str] = None
    ) -> ExportRenderer:
        """
        Register a delimited-text format over a custom template set.

        Args:
            name: Format name
            templates: Templates for the categories the format can export
            delimiter: Field delimiter
            media_type: Media type of the output
            extension: File extension (defaults to the format name)

        Raises:
            DuplicateFormatError: If the name is already registered
        """
        renderer = DelimitedTextRenderer(
            templates,
            self.config,
            delimiter=delimiter,
            media_type=media_type,
            extension=extension or name.lower()
        )
        self.register_renderer(name, renderer)
        return renderer

    def register_renderer(self, name: str, renderer: ExportRenderer):
        """Register any renderer under a new format name"""
        self.renderers.register(name, renderer)
        logger.info(f"Registered export format: {name.lower()}")

    def save_to_file(self, result: ExportResult, output_dir: Optional[Union[str, Path]] = None) -> Path:
        """
        Write an export result to <output_dir>/<filename>.

        Args:
            result: Rendered export
            output_dir: Target directory (defaults to config.output_dir)

        Returns:
            Path of the written file
        """
        target_dir = Path(output_dir) if output_dir is not None else Path(self.config.output_dir)
        target_dir.mkdir(parents=True, exist_ok=True)
        output_path = target_dir / result.filename

        with io.BytesIO() as buffer:
            buffer.write(result.to_bytes())
            output_path.write_bytes(buffer.getvalue())

        self._export_stats["files_saved"] += 1
        logger.info(f"Saved {result.filename} to {target_dir} ({result.size} bytes)")
        return output_path

    def get_export_stats(self) -> Dict[str, Any]:
        """Get export statistics"""
        stats = dict(self._export_stats)
        if stats["exports_rendered"] > 0:
            stats["avg_file_size_bytes"] = stats["total_size_bytes"] / stats["exports_rendered"]
        else:
            stats["avg_file_size_bytes"] = 0
        return stats

    def clear_stats(self):
        """Clear export statistics"""
        self._export_stats = {
            "exports_rendered": 0,
            "files_saved": 0,
            "total_size_bytes": 0
        }
