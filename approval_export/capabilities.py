"""
External Rendering Capabilities

Interfaces for the spreadsheet and document builders used by the binary
renderers, with openpyxl and reportlab implementations. Both libraries are
optional: the loaders raise MissingCapabilityError when they are not installed.
"""

from io import BytesIO
from typing import Any, Callable, List, Protocol, Sequence

from .exceptions import MissingCapabilityError


HEADER_FILL = "FFE0E0E0"


class WorkbookBuilder(Protocol):
    """Spreadsheet workbook under construction"""

    def add_sheet(self, title: str) -> Any: ...

    def add_row(self, sheet: Any, values: Sequence[Any]) -> None: ...

    def style_header(self, sheet: Any, row: int = 1) -> None: ...

    def set_column_width(self, sheet: Any, column: int, width: float) -> None: ...

    def set_auto_filter(self, sheet: Any, last_row: int, last_column: int) -> None: ...

    def to_bytes(self) -> bytes: ...


class DocumentBuilder(Protocol):
    """Paginated document under construction; coordinates are mm from the top-left"""

    def set_font_size(self, size: float) -> None: ...

    def text(self, x: float, y: float, value: str) -> None: ...

    def add_page(self) -> None: ...

    def to_bytes(self) -> bytes: ...


WorkbookFactory = Callable[[], WorkbookBuilder]
DocumentFactory = Callable[[], DocumentBuilder]


class OpenpyxlWorkbookBuilder:
    """WorkbookBuilder backed by openpyxl"""

    def __init__(self, creator: str = "Approval System"):
        import openpyxl

        self._workbook = openpyxl.Workbook()
        self._workbook.properties.creator = creator
        # openpyxl creates one empty sheet; the first add_sheet() reuses it
        self._default_sheet_free = True

    def add_sheet(self, title: str) -> Any:
        if self._default_sheet_free:
            self._default_sheet_free = False
            sheet = self._workbook.active
            sheet.title = title
            return sheet
        return self._workbook.create_sheet(title)

    def add_row(self, sheet: Any, values: Sequence[Any]) -> None:
        from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE

        # openpyxl rejects control characters in cell text
        sheet.append([
            ILLEGAL_CHARACTERS_RE.sub("", value) if isinstance(value, str) else value
            for value in values
        ])

    def style_header(self, sheet: Any, row: int = 1) -> None:
        from openpyxl.styles import Font, PatternFill

        fill = PatternFill(start_color=HEADER_FILL, end_color=HEADER_FILL, fill_type="solid")
        for cell in sheet[row]:
            cell.font = Font(bold=True)
            cell.fill = fill

    def set_column_width(self, sheet: Any, column: int, width: float) -> None:
        from openpyxl.utils import get_column_letter

        sheet.column_dimensions[get_column_letter(column)].width = width

    def set_auto_filter(self, sheet: Any, last_row: int, last_column: int) -> None:
        from openpyxl.utils import get_column_letter

        sheet.auto_filter.ref = f"A1:{get_column_letter(last_column)}{last_row}"

    def sheet_titles(self) -> List[str]:
        return list(self._workbook.sheetnames)

    def to_bytes(self) -> bytes:
        buffer = BytesIO()
        self._workbook.save(buffer)
        return buffer.getvalue()


class ReportlabDocumentBuilder:
    """DocumentBuilder backed by a reportlab canvas on an A4 page"""

    def __init__(self, font_name: str = "Helvetica"):
        from reportlab.lib.pagesizes import A4
        from reportlab.lib.units import mm
        from reportlab.pdfgen import canvas

        self._buffer = BytesIO()
        self._canvas = canvas.Canvas(self._buffer, pagesize=A4)
        self._page_height = A4[1]
        self._mm = mm
        self.font_name = font_name
        self.font_size = 12.0
        self.page_count = 1
        self._canvas.setFont(self.font_name, self.font_size)

    def set_font_size(self, size: float) -> None:
        self.font_size = size
        self._canvas.setFont(self.font_name, size)

    def text(self, x: float, y: float, value: str) -> None:
        self._canvas.drawString(x * self._mm, self._page_height - y * self._mm, value)

    def add_page(self) -> None:
        self._canvas.showPage()
        self.page_count += 1
        # showPage() resets the graphics state
        self._canvas.setFont(self.font_name, self.font_size)

    def to_bytes(self) -> bytes:
        self._canvas.save()
        return self._buffer.getvalue()


def load_workbook_builder(creator: str = "Approval System") -> WorkbookBuilder:
    """
    Create an openpyxl-backed workbook builder.

    Raises:
        MissingCapabilityError: If openpyxl is not installed
    """
    try:
        import openpyxl  # noqa: F401
    except ImportError:
        raise MissingCapabilityError(
            "Excel",
            "Excel export requires openpyxl. Install with: pip install openpyxl"
        )
    return OpenpyxlWorkbookBuilder(creator=creator)


def load_document_builder(font_name: str = "Helvetica") -> DocumentBuilder:
    """
    Create a reportlab-backed document builder.

    Raises:
        MissingCapabilityError: If reportlab is not installed
    """
    try:
        import reportlab  # noqa: F401
    except ImportError:
        raise MissingCapabilityError(
            "PDF",
            "PDF export requires reportlab. Install with: pip install reportlab"
        )
    return ReportlabDocumentBuilder(font_name=font_name)
