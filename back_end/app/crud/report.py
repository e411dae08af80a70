# app/crud/report.py
import logging
from typing import Dict, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import (
    DuplicateReport, InvalidReason, NotFound, StoreUnavailable, ValidationError,
)
from app.db.models import ContentReport, ReportReason
from app.db.session import store_guard
from app.services.content_targets import get_target

logger = logging.getLogger(__name__)

REPORT_REASONS = frozenset(r.value for r in ReportReason)


def submit_report(
    db: Session,
    content_id: str,
    content_type: str,
    reporter_id: str,
    reason: str,
    parent_id: Optional[str] = None,
) -> ContentReport:
    """
    Insert one ledger row. Does not touch the mirrored fields on the content;
    the caller runs the aggregator right after.
    """
    content_id = (content_id or "").strip()
    if not content_id:
        raise ValidationError("contentId is required")
    target = get_target(content_type)
    if not reporter_id:
        raise ValidationError("reporterId is required")
    if not reason:
        raise ValidationError("reason is required")
    if reason not in REPORT_REASONS:
        raise InvalidReason(
            f"Invalid reason '{reason}', expected one of " + ", ".join(r.value for r in ReportReason)
        )

    with store_guard(db, "content lookup"):
        ref = target.locate(db, content_id, parent_id)
    if ref is None:
        raise NotFound(f"{target.content_type.value} '{content_id}' not found")

    row = ContentReport(
        content_id=content_id,
        content_type=target.content_type.value,
        reporter_id=reporter_id,
        reason=reason,
    )
    db.add(row)
    # uniqueness is left to the table constraint, no read-before-insert
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info("duplicate report on %s %s by %s", row.content_type, content_id, reporter_id)
        raise DuplicateReport()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("report insert failed: %s", e)
        raise StoreUnavailable() from e

    db.refresh(row)
    return row


def count_reports(db: Session, content_id: str, content_type: str) -> int:
    stmt = (
        select(func.count())
        .select_from(ContentReport)
        .where(ContentReport.content_id == content_id, ContentReport.content_type == content_type)
    )
    with store_guard(db, "report count"):
        return int(db.scalar(stmt) or 0)


def list_reports(db: Session, content_id: str, content_type: str, limit: int = 500) -> list[ContentReport]:
    stmt = (
        select(ContentReport)
        .where(ContentReport.content_id == content_id, ContentReport.content_type == content_type)
        .order_by(ContentReport.created_at.desc(), ContentReport.id)
        .limit(limit)
    )
    with store_guard(db, "report listing"):
        return list(db.execute(stmt).scalars().all())


def count_all_reports(db: Session) -> int:
    with store_guard(db, "report total"):
        return int(db.scalar(select(func.count()).select_from(ContentReport)) or 0)


def report_counts_by_item(db: Session) -> Dict[Tuple[str, str], int]:
    """(content_type, content_id) -> ledger count, for every reported item."""
    stmt = (
        select(ContentReport.content_type, ContentReport.content_id, func.count())
        .group_by(ContentReport.content_type, ContentReport.content_id)
    )
    with store_guard(db, "grouped report count"):
        return {(ct, cid): int(n) for ct, cid, n in db.execute(stmt).all()}
