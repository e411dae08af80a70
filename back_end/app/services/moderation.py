# app/services/moderation.py
"""
Moderation aggregator.

report_count is always a fresh COUNT over the ledger (never an increment), so
applying it again is harmless and concurrent reporters cannot double count.
Ledger insert and mirror write are two separate commits: if the process dies
in between the mirror lags until the next report on that item or recompute_all().
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import NotFound, StoreUnavailable
from app.crud.report import count_reports, report_counts_by_item, submit_report
from app.db.models import ContentReport
from app.db.session import store_guard
from app.services.content_targets import CONTENT_TARGETS, get_target

logger = logging.getLogger(__name__)

# shared by every content type, intentionally not a setting
HIDE_THRESHOLD = 10


@dataclass
class ModerationState:
    report_count: int
    is_hidden: bool


def is_hidden_for(report_count: int) -> bool:
    return report_count >= HIDE_THRESHOLD


def apply_report(
    db: Session,
    content_id: str,
    content_type: str,
    parent_id: Optional[str] = None,
) -> ModerationState:
    target = get_target(content_type)
    ct = target.content_type.value

    # row lock before the count; released by the mirror commit
    with store_guard(db, "content lookup"):
        ref = target.locate(db, content_id, parent_id, for_update=True)
    if ref is None:
        raise NotFound(f"{ct} '{content_id}' not found")
    count = count_reports(db, content_id, ct)

    state = ModerationState(report_count=count, is_hidden=is_hidden_for(count))
    _, was_hidden = target.read(ref)

    try:
        target.commit(db, ref, state.report_count, state.is_hidden)
    except SQLAlchemyError:
        # the ledger row stays; the mirror catches up on the next apply
        db.rollback()
        logger.exception("mirror write failed for %s %s (ledger count=%d)", ct, content_id, count)
        return state

    if state.is_hidden and not was_hidden:
        logger.warning("%s %s auto-hidden at %d reports", ct, content_id, count)
    return state


def report_content(
    db: Session,
    content_id: str,
    content_type: str,
    reporter_id: str,
    reason: str,
    parent_id: Optional[str] = None,
) -> Tuple[ContentReport, ModerationState]:
    """
    Ledger insert followed immediately by the aggregator, in one request.
    Once the insert is committed the report stands: if the aggregator fails the
    answer comes straight from the ledger and the mirror is left for the next
    apply or recompute_all(). Only a ledger that cannot be counted at all is a 503.
    """
    record = submit_report(db, content_id, content_type, reporter_id, reason, parent_id=parent_id)
    report_id, cid, ct = record.id, record.content_id, record.content_type
    try:
        state = apply_report(db, cid, ct, parent_id=parent_id)
    except (NotFound, StoreUnavailable) as e:
        logger.warning("report %s on %s %s recorded, mirror not updated: %s", report_id, ct, cid, e.message)
        count = count_reports(db, cid, ct)
        state = ModerationState(report_count=count, is_hidden=is_hidden_for(count))
    return record, state


def recompute_all(db: Session) -> Tuple[int, int]:
    """
    Re-apply the aggregator wherever the mirror disagrees with the ledger.
    Returns (checked, corrected).
    """
    actual = report_counts_by_item(db)
    checked = corrected = 0

    for content_type, target in CONTENT_TARGETS.items():
        with store_guard(db, "content scan"):
            items = list(target.iter_items(db))
        for item in items:
            checked += 1
            count = actual.get((content_type.value, item.content_id), 0)
            if item.report_count == count and item.is_hidden == is_hidden_for(count):
                continue
            apply_report(db, item.content_id, content_type.value, parent_id=item.parent_id)
            corrected += 1
            logger.info(
                "recomputed %s %s: %d -> %d", content_type.value, item.content_id, item.report_count, count
            )

    return checked, corrected
