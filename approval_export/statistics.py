"""
Statistics Calculator

Aggregate counts and derived metrics over a set of requests.
"""

from collections import Counter
from typing import Iterable, List

from .models import Request, SummaryRecord


NOT_AVAILABLE = "N/A"


def format_duration(seconds: float) -> str:
    """
    Format a duration using its two coarsest units.

    Examples:
        format_duration(183600) -> "2d 3h"
        format_duration(10800)  -> "3h 0m"
        format_duration(2712)   -> "45m 12s"
        format_duration(9)      -> "9s"
    """
    total_seconds = int(seconds)
    minutes = total_seconds // 60
    hours = minutes // 60
    days = hours // 24

    if days > 0:
        return f"{days}d {hours % 24}h"
    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    if minutes > 0:
        return f"{minutes}m {total_seconds % 60}s"
    return f"{total_seconds}s"


def most_frequent(values: Iterable[str]) -> str:
    """Most frequent value; ties go to the value seen first. "N/A" when empty."""
    counts = Counter(values)
    if not counts:
        return NOT_AVAILABLE

    # Counter preserves first-insertion order, and max() keeps the first maximum
    return max(counts, key=counts.__getitem__)


class StatisticsCalculator:
    """
    Compute summary metrics for an export snapshot.

    Example:
        stats = StatisticsCalculator().summarize(requests)
        stats.avg_approval_time    # "2d 3h"
        stats.as_dict()            # camelCase keys for export
    """

    def summarize(self, requests: Iterable[Request]) -> SummaryRecord:
        """
        Summarize requests.

        Args:
            requests: Filtered request snapshot

        Returns:
            SummaryRecord with counts, average approval time and top requester/workflow
        """
        requests = list(requests)
        statuses = Counter(r.metadata.status for r in requests)

        return SummaryRecord(
            total_requests=len(requests),
            pending_requests=statuses["pending"],
            approved_requests=statuses["approved"],
            rejected_requests=statuses["rejected"],
            total_approvals=sum(len(r.metadata.approvals) for r in requests),
            total_rejections=sum(len(r.metadata.rejections) for r in requests),
            total_comments=sum(len(r.metadata.comments) for r in requests),
            avg_approval_time=self.average_approval_time(requests),
            most_active_requester=most_frequent(r.requester for r in requests),
            most_common_workflow=most_frequent(r.workflow_id for r in requests),
        )

    def average_approval_time(self, requests: List[Request]) -> str:
        """Mean submission-to-completion time of approved requests, formatted"""
        durations = [
            (r.metadata.completed_at - r.metadata.submitted_at).total_seconds()
            for r in requests
            if r.metadata.status == "approved" and r.metadata.completed_at is not None
        ]
        if not durations:
            return NOT_AVAILABLE

        return format_duration(sum(durations) / len(durations))
