"""
Query Engine for Export Snapshots

Filters, sorts and limits request snapshots, and flattens the event
sequences of the filtered requests for the event-oriented exports.
"""

import logging
from datetime import datetime
from operator import itemgetter
from typing import Any, Dict, Iterable, List, Mapping, Tuple, Union

from pydantic import BaseModel

from .models import (
    ApprovalEvent,
    CommentEvent,
    ExportFilters,
    RejectionEvent,
    Request,
    parse_timestamp,
)


logger = logging.getLogger(__name__)


def lookup_field(model: BaseModel, name: str) -> Any:
    """
    Read a field from a record model by attribute name or alias.

    Falls back to extra (unmodelled) keys; returns None when absent.
    """
    for attr, info in type(model).model_fields.items():
        if name == attr or name == info.alias:
            return getattr(model, attr)
    return (model.model_extra or {}).get(name)


def sort_value(request: Request, field: str) -> Any:
    """
    Sort key for one request: metadata first, then the request itself.

    Names containing "At" are compared as timestamps. Structured values
    (mappings, sequences, nested models) are not orderable and count as missing.
    """
    value = lookup_field(request.metadata, field)
    if value is None:
        value = lookup_field(request, field)
    if isinstance(value, (BaseModel, Mapping, list, tuple)):
        return None
    if value is not None and "At" in field:
        value = parse_timestamp(value)
    return value


def rank_value(value: Any) -> Tuple[int, Any]:
    """Group values by kind so mixed types never compare: numbers, timestamps, text, other"""
    if isinstance(value, (int, float)):
        return (0, value)
    if isinstance(value, datetime):
        return (1, parse_timestamp(value))
    if isinstance(value, str):
        return (2, value)
    return (3, str(value))


class RequestQueryEngine:
    """
    Apply filter criteria, sort order and result limits to request snapshots.

    Example:
        from approval_export import RecordStore, RequestQueryEngine

        engine = RequestQueryEngine()
        pending = engine.filter(
            RecordStore(records).snapshot(),
            {"status": "pending", "sortBy": "submittedAt", "sortOrder": "asc", "limit": 10}
        )
    """

    def __init__(self):
        self._query_stats = {
            "queries_executed": 0,
            "records_scanned": 0,
            "records_returned": 0
        }

    def filter(
        self,
        records: Iterable[Request],
        filters: Union[ExportFilters, Mapping[str, Any], None] = None
    ) -> List[Request]:
        """
        Filter, sort and limit requests.

        Criteria combine with AND semantics. The input is never mutated.

        Args:
            records: Request snapshot
            filters: ExportFilters or a dict in camelCase/snake_case form

        Returns:
            New list of matching requests (possibly empty)
        """
        criteria = ExportFilters.coerce(filters)
        requests = list(records)
        scanned = len(requests)

        if criteria.date_range is not None:
            requests = [
                r for r in requests
                if criteria.date_range.contains(r.metadata.submitted_at)
            ]

        if criteria.status:
            requests = [r for r in requests if r.metadata.status == criteria.status]

        if criteria.requester:
            requests = [r for r in requests if r.requester == criteria.requester]

        if criteria.workflow_id:
            requests = [r for r in requests if r.workflow_id == criteria.workflow_id]

        requests = self.sort(requests, criteria.sort_by, criteria.sort_order)

        if criteria.limit is not None:
            requests = requests[:criteria.limit]

        self._query_stats["queries_executed"] += 1
        self._query_stats["records_scanned"] += scanned
        self._query_stats["records_returned"] += len(requests)
        logger.debug(
            f"Query matched {len(requests)}/{scanned} requests "
            f"(sort={criteria.sort_by} {criteria.sort_order})"
        )

        return requests

    def sort(self, requests: List[Request], field: str = "submittedAt", order: str = "desc") -> List[Request]:
        """
        Stable sort by a metadata or request field.

        Equal keys keep input order in both directions. Values of different
        kinds order as numbers, timestamps, text, then anything else (reversed
        for desc). Requests without a value for the field follow all others,
        in input order.
        """
        keyed: List[Tuple[Any, Request]] = []
        missing: List[Request] = []
        for request in requests:
            value = sort_value(request, field)
            if value is None:
                missing.append(request)
            else:
                keyed.append((rank_value(value), request))

        keyed.sort(key=itemgetter(0), reverse=(order == "desc"))
        return [request for _, request in keyed] + missing

    def get_query_stats(self) -> Dict[str, Any]:
        """Get statistics about executed queries"""
        stats = dict(self._query_stats)
        if stats["records_scanned"] > 0:
            stats["selectivity"] = stats["records_returned"] / stats["records_scanned"]
        else:
            stats["selectivity"] = 0.0
        return stats

    def clear_stats(self):
        """Clear query statistics"""
        self._query_stats = {
            "queries_executed": 0,
            "records_scanned": 0,
            "records_returned": 0
        }


def extract_relations(
    requests: Iterable[Request]
) -> Tuple[List[ApprovalEvent], List[RejectionEvent], List[CommentEvent]]:
    """
    Flatten the event sequences of the given requests.

    Each event is copied with request_id set to its owning request. Order is
    request order, then their order within each request.

    Returns:
        (approvals, rejections, comments)
    """
    approvals: List[ApprovalEvent] = []
    rejections: List[RejectionEvent] = []
    comments: List[CommentEvent] = []

    for request in requests:
        tag = {"request_id": request.id}
        approvals.extend(a.model_copy(update=tag) for a in request.metadata.approvals)
        rejections.extend(r.model_copy(update=tag) for r in request.metadata.rejections)
        comments.extend(c.model_copy(update=tag) for c in request.metadata.comments)

    return approvals, rejections, comments
