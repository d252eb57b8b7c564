"""
Export Templates

Per-category column headers and row mappers shared by the delimited-text,
spreadsheet and document renderers.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional

from .exceptions import MissingTemplateError
from .models import ApprovalEvent, CommentEvent, RejectionEvent, Request


logger = logging.getLogger(__name__)

RowMapper = Callable[[Any, Optional[Request]], List[Any]]

# ExportData collections a template may read
SOURCES = ("requests", "approvals", "rejections", "comments")


def format_date(value: Optional[datetime], date_format: str) -> str:
    """Format a timestamp for tabular output; missing dates become empty cells"""
    if value is None:
        return ""
    return value.strftime(date_format)


@dataclass
class Template:
    """
    Headers and row mapping for one record category.

    Attributes:
        name: Category name (requests, approvals, ...)
        headers: Column headers in output order
        mapper: (item, owning request) -> cell values in header order
        source: ExportData collection the template reads
    """
    name: str
    headers: List[str]
    mapper: RowMapper
    source: str = "requests"

    def __post_init__(self):
        if self.source not in SOURCES:
            raise ValueError(f"Template '{self.name}' reads unknown collection '{self.source}'")

    def row(self, item: Any, request: Optional[Request] = None) -> List[Any]:
        values = self.mapper(item, request)
        if len(values) != len(self.headers):
            raise ValueError(
                f"Template '{self.name}' mapped {len(values)} values "
                f"for {len(self.headers)} headers"
            )
        return values

    def rows(self, items: Iterable[Any], requests_by_id: Mapping[str, Request]) -> Iterator[List[Any]]:
        """Map items to rows, resolving each event's owning request"""
        for item in items:
            if isinstance(item, Request):
                owner = item
            else:
                owner = requests_by_id.get(item.request_id)
                if owner is None:
                    logger.warning(
                        f"{self.name}: owning request {item.request_id} not in snapshot"
                    )
            yield self.row(item, owner)


def _request_templates(date_format: str) -> List[Template]:
    def request_row(request: Request, _owner: Optional[Request]) -> List[Any]:
        return [
            request.id,
            request.requester,
            request.subject,
            request.metadata.status,
            format_date(request.metadata.submitted_at, date_format),
            format_date(request.metadata.completed_at, date_format),
            request.metadata.current_level,
            request.workflow_id,
        ]

    def approval_row(approval: ApprovalEvent, owner: Optional[Request]) -> List[Any]:
        return [
            owner.id if owner else approval.request_id,
            approval.approver_id,
            approval.level,
            "approved",
            format_date(approval.approved_at, date_format),
            approval.comment or "",
        ]

    def rejection_row(rejection: RejectionEvent, owner: Optional[Request]) -> List[Any]:
        return [
            owner.id if owner else rejection.request_id,
            rejection.approver_id,
            rejection.level,
            "rejected",
            format_date(rejection.rejected_at, date_format),
            rejection.reason or "",
        ]

    def comment_row(comment: CommentEvent, owner: Optional[Request]) -> List[Any]:
        return [
            owner.id if owner else comment.request_id,
            comment.user,
            comment.type,
            format_date(comment.timestamp, date_format),
            comment.text or "",
        ]

    return [
        Template(
            name="requests",
            headers=["ID", "Requester", "Subject", "Status", "Created", "Completed", "Level", "Workflow"],
            mapper=request_row,
            source="requests",
        ),
        Template(
            name="approvals",
            headers=["Request ID", "Approver", "Level", "Decision", "Date", "Comment"],
            mapper=approval_row,
            source="approvals",
        ),
        Template(
            name="rejections",
            headers=["Request ID", "Rejector", "Level", "Decision", "Date", "Reason"],
            mapper=rejection_row,
            source="rejections",
        ),
        Template(
            name="comments",
            headers=["Request ID", "User", "Type", "Date", "Comment"],
            mapper=comment_row,
            source="comments",
        ),
    ]


class TemplateRegistry:
    """
    Registry of category templates.

    Example:
        registry = TemplateRegistry.default()
        template = registry.get("approvals")
        template.headers   # ['Request ID', 'Approver', ...]
    """

    def __init__(self, templates: Optional[Iterable[Template]] = None):
        self._templates: Dict[str, Template] = {}
        for template in templates or []:
            self.register(template)

    @classmethod
    def default(cls, date_format: str = "%Y-%m-%d %H:%M:%S") -> "TemplateRegistry":
        """Registry with the requests, approvals, rejections and comments templates"""
        return cls(_request_templates(date_format))

    def register(self, template: Template) -> "TemplateRegistry":
        """Add or replace the template for a category"""
        self._templates[template.name] = template
        return self

    def get(self, category: str) -> Template:
        """
        Get the template for a category.

        Raises:
            MissingTemplateError: If the category has no template
        """
        if category not in self._templates:
            raise MissingTemplateError(category, kind="template for sheet", available=self.categories())
        return self._templates[category]

    def categories(self) -> List[str]:
        return list(self._templates)

    def __contains__(self, category: str) -> bool:
        return category in self._templates
