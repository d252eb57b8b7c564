"""
Canned Reports

Ready-made exports built on ExportPipeline: the monthly management report
and a per-user activity digest.
"""

import calendar
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Optional

from .export_formats import JSONRenderer, sanitize_request
from .export_pipeline import ExportPipeline
from .models import ExportMetadata, ExportResult, Request


logger = logging.getLogger(__name__)


def month_bounds(year: int, month: int):
    """First and last instant (UTC, inclusive) of a calendar month"""
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    last_day = calendar.monthrange(year, month)[1]
    end = datetime(year, month, last_day, tzinfo=timezone.utc) + timedelta(days=1, microseconds=-1)
    return start, end


def monthly_report(
    pipeline: ExportPipeline,
    year: Optional[int] = None,
    month: Optional[int] = None,
    export_format: str = "excel"
) -> ExportResult:
    """
    Export every request submitted in one calendar month, newest first.

    Args:
        pipeline: Pipeline over the live request collection
        year: Calendar year (defaults to the current year)
        month: Month number 1-12 (defaults to the current month)
        export_format: Any registered format

    Returns:
        ExportResult titled "Monthly Approval Report - <Month YYYY>"
    """
    now = datetime.now(timezone.utc)
    year = year or now.year
    month = month or now.month
    start, end = month_bounds(year, month)

    return pipeline.export_data(export_format, {
        "title": f"Monthly Approval Report - {calendar.month_name[month]} {year}",
        "filters": {
            "dateRange": {"start": start, "end": end},
            "sortBy": "submittedAt",
            "sortOrder": "desc",
        },
    })


def reviewed_by(request: Request, user_id: str) -> bool:
    """True if the user approved or rejected the request at any level"""
    return any(a.approver_id == user_id for a in request.metadata.approvals) or any(
        r.approver_id == user_id for r in request.metadata.rejections
    )


def filename_slug(user_id: str) -> str:
    """User id reduced to characters safe in a single filename component"""
    return re.sub(r"[^A-Za-z0-9_-]+", "-", user_id).strip("-") or "user"


def user_activity_report(pipeline: ExportPipeline, user_id: str) -> ExportResult:
    """
    JSON digest of one user's activity.

    Lists the requests the user submitted and the requests the user reviewed,
    with submitted/approved/pending counts (the last two over reviewed requests).
    """
    data = pipeline.build_export_data()
    submitted = [r for r in data.requests if r.requester == user_id]
    reviewed = [r for r in data.requests if reviewed_by(r, user_id)]

    payload = {
        "requests": [sanitize_request(r) for r in submitted],
        "approvals": [sanitize_request(r) for r in reviewed],
        "statistics": {
            "submitted": len(submitted),
            "approved": sum(1 for r in reviewed if r.metadata.status == "approved"),
            "pending": sum(1 for r in reviewed if r.metadata.status == "pending"),
        },
    }

    renderer = JSONRenderer(pipeline.config)
    result = ExportResult.from_content(
        renderer.formatter.format(payload),
        renderer.filename(f"activity-{filename_slug(user_id)}", data),
        renderer.media_type
    )
    result.metadata = ExportMetadata(
        exported_at=data.generated_at,
        format="json",
        record_count=len(submitted) + len(reviewed),
        filters={"user": user_id},
        generated_by=pipeline.config.generated_by
    )

    logger.info(f"User activity report for {user_id}: {len(submitted)} submitted, {len(reviewed)} reviewed")
    return result
