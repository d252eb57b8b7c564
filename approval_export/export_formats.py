"""
Export Format Renderers

One renderer per output format, each turning an ExportData snapshot into an
ExportResult:
- CSV - one category per file, RFC 4180 quoting
- JSON - full, summary or minimal payloads
- XML - one category, or the full export envelope
- Excel - multi-sheet workbook (requires openpyxl)
- PDF - summary document (requires reportlab)
"""

import csv
import logging
from abc import ABC, abstractmethod
from functools import partial
from io import StringIO
from typing import Any, Callable, Dict, List, Optional

from .capabilities import (
    DocumentBuilder,
    DocumentFactory,
    WorkbookBuilder,
    WorkbookFactory,
    load_document_builder,
    load_workbook_builder,
)
from .config import ExportConfig
from .exceptions import (
    DuplicateFormatError,
    MissingCapabilityError,
    MissingTemplateError,
    UnsupportedFormatError,
)
from .formatters import (
    XML_DECLARATION,
    JSONFormatter,
    XMLFormatter,
    canonical_timestamp,
    humanize_key,
)
from .models import ExportData, ExportOptions, ExportResult, Request, SummaryRecord
from .templates import TemplateRegistry, format_date


logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# Marks "use the library-backed builder"; None means the capability is unavailable
DEFAULT_FACTORY: Any = object()


class ExportRenderer(ABC):
    """Base class for export renderers"""

    media_type: str = "application/octet-stream"
    extension: str = "bin"

    def __init__(self, config: Optional[ExportConfig] = None):
        self.config = config or ExportConfig()

    @abstractmethod
    def render(self, data: ExportData, options: ExportOptions) -> ExportResult:
        """
        Render a snapshot.

        Args:
            data: Filtered requests, extracted events and statistics
            options: Per-call export options

        Returns:
            ExportResult without metadata (the pipeline attaches it)
        """
        pass

    def filename(self, discriminator: str, data: ExportData) -> str:
        """<prefix>_<discriminator>_<YYYY-MM-DD>.<ext>"""
        return f"{self.config.filename_prefix}_{discriminator}_{data.date_stamp}.{self.extension}"

    def _result(self, content: Any, filename: str) -> ExportResult:
        result = ExportResult.from_content(content, filename, self.media_type)
        logger.debug(f"Rendered {filename}: {result.size} bytes")
        return result


class DelimitedTextRenderer(ExportRenderer):
    """
    Render one template category as delimited text.

    Fields containing the delimiter, a quote or a newline are quoted, with
    internal quotes doubled.
    """

    media_type = "text/csv"
    extension = "csv"

    def __init__(
        self,
        templates: TemplateRegistry,
        config: Optional[ExportConfig] = None,
        delimiter: Optional[str] = None,
        media_type: Optional[str] = None,
        extension: Optional[str] = None
    ):
        """
        Args:
            templates: Category templates
            config: Export configuration
            delimiter: Field delimiter (defaults to config.csv_delimiter)
            media_type: Override for custom delimited formats
            extension: Override for custom delimited formats
        """
        super().__init__(config)
        self.templates = templates
        self.delimiter = delimiter or self.config.csv_delimiter
        if media_type:
            self.media_type = media_type
        if extension:
            self.extension = extension

    def render(self, data: ExportData, options: ExportOptions) -> ExportResult:
        template = self.templates.get(options.sheet)
        items = getattr(data, template.source)

        output = StringIO()
        writer = csv.writer(output, delimiter=self.delimiter, lineterminator="\n")
        writer.writerow(template.headers)
        for row in template.rows(items, data.requests_by_id()):
            writer.writerow(["" if value is None else value for value in row])

        return self._result(output.getvalue(), self.filename(options.sheet, data))


def sanitize_request(request: Request) -> Dict[str, Any]:
    """
    Dump a request for the full JSON export.

    Drops unset fields, workflow.approvers and data.sensitiveInfo. The source
    record is left untouched.
    """
    dumped = request.model_dump(by_alias=True, exclude_none=True)

    workflow = dumped.get("workflow")
    if isinstance(workflow, dict):
        dumped["workflow"] = {k: v for k, v in workflow.items() if k != "approvers"}

    payload = dumped.get("data")
    if isinstance(payload, dict):
        dumped["data"] = {k: v for k, v in payload.items() if k != "sensitiveInfo"}

    return dumped


class JSONRenderer(ExportRenderer):
    """Render snapshots as JSON in full, summary or minimal mode"""

    media_type = "application/json"
    extension = "json"

    def __init__(self, config: Optional[ExportConfig] = None):
        super().__init__(config)
        self.formatter = JSONFormatter(indent=self.config.json_indent)
        self.modes: Dict[str, Callable[[ExportData], Any]] = {
            "full": self.full_payload,
            "summary": self.summary_payload,
            "minimal": self.minimal_payload,
        }

    def render(self, data: ExportData, options: ExportOptions) -> ExportResult:
        if options.mode not in self.modes:
            raise MissingTemplateError(
                options.mode,
                kind="JSON template for mode",
                available=list(self.modes)
            )

        content = self.formatter.format(self.modes[options.mode](data))
        return self._result(content, self.filename(options.mode, data))

    def full_payload(self, data: ExportData) -> Dict[str, Any]:
        return {
            "requests": [sanitize_request(r) for r in data.requests],
            "approvals": [a.model_dump(by_alias=True, exclude_none=True) for a in data.approvals],
            "rejections": [r.model_dump(by_alias=True, exclude_none=True) for r in data.rejections],
            "comments": [c.model_dump(by_alias=True, exclude_none=True) for c in data.comments],
            "statistics": data.statistics.as_dict(),
        }

    def summary_payload(self, data: ExportData) -> Dict[str, Any]:
        return data.statistics.as_dict()

    def minimal_payload(self, data: ExportData) -> Dict[str, Any]:
        return {
            "requests": [
                {
                    "id": r.id,
                    "requester": r.requester,
                    "subject": r.subject,
                    "status": r.metadata.status,
                    "submittedAt": r.metadata.submitted_at,
                    "workflow": r.workflow_id,
                }
                for r in data.requests
            ],
            "summary": data.statistics.as_dict(),
        }


class XMLRenderer(ExportRenderer):
    """Render one collection, or the full export envelope, as XML"""

    media_type = "application/xml"
    extension = "xml"

    # category -> (root tag, item tag)
    collections = {
        "requests": ("requests", "request"),
        "approvals": ("approvals", "approval"),
        "rejections": ("rejections", "rejection"),
        "comments": ("comments", "comment"),
    }

    def __init__(self, config: Optional[ExportConfig] = None):
        super().__init__(config)
        self.formatter = XMLFormatter()

    def render(self, data: ExportData, options: ExportOptions) -> ExportResult:
        if options.include_all:
            return self._result(self.full_document(data), self.filename("full", data))

        category = options.sheet
        if category not in self.collections:
            raise MissingTemplateError(
                category,
                kind="XML template for category",
                available=list(self.collections)
            )

        root_tag, item_tag = self.collections[category]
        items = [item.model_dump(by_alias=True, exclude_none=True) for item in getattr(data, category)]
        content = self.formatter.document(root_tag, item_tag, items)
        return self._result(content, self.filename(category, data))

    def full_document(self, data: ExportData) -> str:
        """Envelope with export info, compact requests and statistics"""
        lines = [
            XML_DECLARATION,
            "<approvalSystemExport>",
            "<exportInfo>",
            f"<exportDate>{canonical_timestamp(data.generated_at)}</exportDate>",
            f"<recordCount>{len(data.requests)}</recordCount>",
            "</exportInfo>",
            "<requests>",
        ]
        lines.extend(self.request_element(request) for request in data.requests)
        lines.append("</requests>")
        lines.append("<statistics>")
        lines.append(self.formatter.element("stat", data.statistics.as_dict()))
        lines.append("</statistics>")
        lines.append("</approvalSystemExport>")
        return "\n".join(lines)

    def request_element(self, request: Request) -> str:
        return self.formatter.element("request", {
            "id": request.id,
            "requester": request.requester,
            "subject": request.subject,
            "workflowId": request.workflow_id,
            "status": request.metadata.status,
            "submittedAt": request.metadata.submitted_at,
            "currentLevel": request.metadata.current_level,
            "approvals": len(request.metadata.approvals),
            "rejections": len(request.metadata.rejections),
        })


class SpreadsheetRenderer(ExportRenderer):
    """
    Render a multi-sheet workbook.

    Sheets: Requests, Approvals, Rejections (from templates, with a styled
    header, autofilter and auto-sized columns), Summary and Statistics.
    """

    media_type = XLSX_MEDIA_TYPE
    extension = "xlsx"

    table_sheets = [
        ("Requests", "requests"),
        ("Approvals", "approvals"),
        ("Rejections", "rejections"),
    ]

    def __init__(
        self,
        templates: TemplateRegistry,
        config: Optional[ExportConfig] = None,
        workbook_factory: Optional[WorkbookFactory] = DEFAULT_FACTORY
    ):
        """
        Args:
            templates: Category templates
            config: Export configuration
            workbook_factory: Builds a WorkbookBuilder; None marks the capability unavailable
        """
        super().__init__(config)
        self.templates = templates
        if workbook_factory is DEFAULT_FACTORY:
            workbook_factory = partial(load_workbook_builder, creator=self.config.workbook_creator)
        self.workbook_factory = workbook_factory

    def render(self, data: ExportData, options: ExportOptions) -> ExportResult:
        builder = self._open_workbook()
        requests_by_id = data.requests_by_id()

        for title, category in self.table_sheets:
            template = self.templates.get(category)
            rows = list(template.rows(getattr(data, template.source), requests_by_id))
            self.write_table(builder, title, template.headers, rows)

        self.write_summary_sheet(builder, data.statistics)
        self.write_statistics_sheet(builder, data.statistics)

        return self._result(builder.to_bytes(), self.filename("report", data))

    def _open_workbook(self) -> WorkbookBuilder:
        if self.workbook_factory is None:
            raise MissingCapabilityError("Excel", "No spreadsheet builder configured")
        return self.workbook_factory()

    def column_widths(self, headers: List[str], rows: List[List[Any]]) -> List[int]:
        """Longest rendered value per column plus padding, capped"""
        widths = []
        for index, header in enumerate(headers):
            longest = max(
                [len(str(header))] + [len(str(row[index])) for row in rows if row[index] is not None]
            )
            widths.append(min(longest + 2, self.config.max_column_width))
        return widths

    def write_table(self, builder: WorkbookBuilder, title: str, headers: List[str], rows: List[List[Any]]):
        sheet = builder.add_sheet(title)
        builder.add_row(sheet, headers)
        builder.style_header(sheet, 1)
        for row in rows:
            builder.add_row(sheet, row)

        for column, width in enumerate(self.column_widths(headers, rows), start=1):
            builder.set_column_width(sheet, column, width)
        builder.set_auto_filter(sheet, len(rows) + 1, len(headers))

    def write_summary_sheet(self, builder: WorkbookBuilder, statistics: SummaryRecord):
        sheet = builder.add_sheet("Summary")
        builder.add_row(sheet, ["Metric", "Value"])
        builder.style_header(sheet, 1)
        for key, value in statistics.as_dict().items():
            builder.add_row(sheet, [humanize_key(key), value])
        builder.set_column_width(sheet, 1, 30)
        builder.set_column_width(sheet, 2, 20)

    def write_statistics_sheet(self, builder: WorkbookBuilder, statistics: SummaryRecord):
        sheet = builder.add_sheet("Statistics")
        builder.add_row(sheet, ["Statistic", "Count", "Percentage"])
        builder.style_header(sheet, 1)

        total = statistics.total_requests or 1
        for key, value in statistics.counts().items():
            percentage = "100%" if key == "totalRequests" else f"{value / total * 100:.2f}%"
            builder.add_row(sheet, [humanize_key(key), value, percentage])

        for column, width in enumerate([25, 15, 15], start=1):
            builder.set_column_width(sheet, column, width)


def elide(text: str, cap: int) -> str:
    """Truncate text past cap characters, marking the cut with '...'"""
    if len(text) <= cap:
        return text
    return text[:cap] + "..."


class DocumentRenderer(ExportRenderer):
    """
    Render a paginated PDF summary.

    Layout is in millimetres from the top-left corner: title, generation
    stamp, one line per summary metric, then a fixed-column table of the
    first requests. A new page starts whenever the cursor passes
    config.pdf_page_height.
    """

    media_type = "application/pdf"
    extension = "pdf"

    top_margin = 20
    left_margin = 20
    column_spacing = 35
    line_height = 7
    table_headers = ["ID", "Requester", "Subject", "Status", "Created"]

    def __init__(
        self,
        config: Optional[ExportConfig] = None,
        document_factory: Optional[DocumentFactory] = DEFAULT_FACTORY
    ):
        """
        Args:
            config: Export configuration
            document_factory: Builds a DocumentBuilder; None marks the capability unavailable
        """
        super().__init__(config)
        if document_factory is DEFAULT_FACTORY:
            document_factory = load_document_builder
        self.document_factory = document_factory

    def render(self, data: ExportData, options: ExportOptions) -> ExportResult:
        doc = self._open_document()
        y = self.top_margin

        doc.set_font_size(20)
        doc.text(self.left_margin, y, options.title)
        y += 15

        doc.set_font_size(10)
        doc.text(self.left_margin, y, f"Generated on: {data.generated_at.strftime('%Y-%m-%d %H:%M:%S')} UTC")
        y += 10

        doc.set_font_size(16)
        doc.text(self.left_margin, y, "Summary")
        y += 10

        doc.set_font_size(11)
        for key, value in data.statistics.as_dict().items():
            doc.text(self.left_margin + 5, y, f"{humanize_key(key)}: {value}")
            y = self._advance(doc, y + self.line_height)

        y = self._advance(doc, y + 5)
        doc.set_font_size(16)
        doc.text(self.left_margin, y, "Recent Requests")
        y += 10

        doc.set_font_size(8)
        rows = [self.table_headers] + [
            self.table_row(request) for request in data.requests[:self.config.pdf_row_limit]
        ]
        for row in rows:
            y = self._advance(doc, y)
            for column, cell in enumerate(row):
                doc.text(self.left_margin + column * self.column_spacing, y, cell)
            y += self.line_height

        return self._result(doc.to_bytes(), self.filename("report", data))

    def _open_document(self) -> DocumentBuilder:
        if self.document_factory is None:
            raise MissingCapabilityError("PDF", "No document builder configured")
        return self.document_factory()

    def _advance(self, doc: DocumentBuilder, y: float) -> float:
        if y > self.config.pdf_page_height:
            doc.add_page()
            return self.top_margin
        return y

    def table_row(self, request: Request) -> List[str]:
        return [
            elide(request.id, self.config.pdf_id_cap),
            request.requester,
            elide(request.subject, self.config.pdf_text_cap),
            request.metadata.status,
            format_date(request.metadata.submitted_at, self.config.short_date_format),
        ]


class RendererRegistry:
    """
    Registry mapping format names to renderers.

    Example:
        registry = RendererRegistry.default(ExportConfig(), TemplateRegistry.default())
        renderer = registry.get("csv")

        # Runtime registration
        registry.register("tsv", DelimitedTextRenderer(templates, delimiter="\\t"))
    """

    def __init__(self):
        self._renderers: Dict[str, ExportRenderer] = {}

    @classmethod
    def default(
        cls,
        config: ExportConfig,
        templates: TemplateRegistry,
        workbook_factory: Optional[WorkbookFactory] = DEFAULT_FACTORY,
        document_factory: Optional[DocumentFactory] = DEFAULT_FACTORY
    ) -> "RendererRegistry":
        """Registry with csv, json, excel, pdf and xml"""
        registry = cls()
        registry.register("csv", DelimitedTextRenderer(templates, config))
        registry.register("json", JSONRenderer(config))
        registry.register("excel", SpreadsheetRenderer(templates, config, workbook_factory))
        registry.register("pdf", DocumentRenderer(config, document_factory))
        registry.register("xml", XMLRenderer(config))
        return registry

    def register(self, format: str, renderer: ExportRenderer) -> "RendererRegistry":
        """
        Register a renderer.

        Raises:
            DuplicateFormatError: If the format name is taken
        """
        key = format.lower()
        if key in self._renderers:
            raise DuplicateFormatError(format)
        self._renderers[key] = renderer
        return self

    def get(self, format: str) -> ExportRenderer:
        """
        Look up the renderer for a format (case-insensitive).

        Raises:
            UnsupportedFormatError: If format not registered
        """
        key = format.lower()
        if key not in self._renderers:
            raise UnsupportedFormatError(format, self.get_supported_formats())
        return self._renderers[key]

    def get_supported_formats(self) -> List[str]:
        """Get list of supported formats"""
        return list(self._renderers)

    def __contains__(self, format: str) -> bool:
        return format.lower() in self._renderers
