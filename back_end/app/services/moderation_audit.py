# app/services/moderation_audit.py
"""Read-only consistency checks between mirrored fields and the report ledger. Never repairs."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.errors import NotFound
from app.crud.report import count_all_reports, count_reports, list_reports
from app.db.models import ContentReport
from app.db.session import store_guard
from app.services.content_targets import CONTENT_TARGETS, ItemState, get_target
from app.services.moderation import HIDE_THRESHOLD, is_hidden_for

APPROACHING_FROM = 5


@dataclass
class ContentStatus:
    content_id: str
    content_type: str
    mirrored_count: int
    mirrored_hidden: bool
    actual_count: int
    matches: bool
    reports: List[ContentReport] = field(default_factory=list)


@dataclass
class ModerationStats:
    total_items: int = 0
    hidden_items: int = 0
    visible_items: int = 0
    total_reports: int = 0
    items_with_reports: int = 0
    approaching_threshold: int = 0
    at_threshold_not_hidden: int = 0
    issues: Optional[str] = None
    most_reported: List[ItemState] = field(default_factory=list)
    by_type: Dict[str, Dict[str, int]] = field(default_factory=dict)


def get_status(
    db: Session,
    content_id: str,
    content_type: str,
    parent_id: Optional[str] = None,
) -> ContentStatus:
    target = get_target(content_type)
    ct = target.content_type.value

    with store_guard(db, "content lookup"):
        ref = target.locate(db, content_id, parent_id)
    if ref is None:
        raise NotFound(f"{ct} '{content_id}' not found")

    mirrored_count, mirrored_hidden = target.read(ref)
    actual = count_reports(db, content_id, ct)

    return ContentStatus(
        content_id=content_id,
        content_type=ct,
        mirrored_count=mirrored_count,
        mirrored_hidden=mirrored_hidden,
        actual_count=actual,
        matches=mirrored_hidden == is_hidden_for(actual),
        reports=list_reports(db, content_id, ct),
    )


def get_stats(db: Session, top_n: int = 10) -> ModerationStats:
    stats = ModerationStats()
    reported: List[ItemState] = []

    for content_type, target in CONTENT_TARGETS.items():
        per_type = {"total": 0, "hidden": 0}
        with store_guard(db, "content scan"):
            for item in target.iter_items(db):
                per_type["total"] += 1
                if item.is_hidden:
                    per_type["hidden"] += 1
                if item.report_count > 0:
                    reported.append(item)
                    if not item.is_hidden:
                        if APPROACHING_FROM <= item.report_count < HIDE_THRESHOLD:
                            stats.approaching_threshold += 1
                        elif item.report_count >= HIDE_THRESHOLD:
                            stats.at_threshold_not_hidden += 1

        stats.by_type[content_type.value] = per_type
        stats.total_items += per_type["total"]
        stats.hidden_items += per_type["hidden"]

    stats.visible_items = stats.total_items - stats.hidden_items
    stats.items_with_reports = len(reported)
    stats.total_reports = count_all_reports(db)
    stats.most_reported = sorted(reported, key=lambda i: i.report_count, reverse=True)[:top_n]

    # must stay zero; anything else means the aggregator missed a write
    if stats.at_threshold_not_hidden > 0:
        stats.issues = (
            f"{stats.at_threshold_not_hidden} item(s) have {HIDE_THRESHOLD}+ reports but are not hidden"
        )
    return stats
