# app/api/v1/endpoints/moderation.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_reporter_id
from app.crud.report import list_reports
from app.db.models import ContentReport, ContentType
from app.db.session import get_db
from app.schemas.moderation import (
    ReportCreate, ReportResp, ReportOut,
    ContentStatusResp, ReportListResp,
    ModerationStatsResp, ReportedItem, TypeCounts,
    RecomputeResp,
)
from app.services.content_targets import get_target
from app.services.moderation import report_content, recompute_all
from app.services.moderation_audit import get_stats, get_status

router = APIRouter()


def _report_out(r: ContentReport) -> ReportOut:
    return ReportOut(id=r.id, reporter_id=r.reporter_id, reason=r.reason, created_at=r.created_at)


@router.post("/submit-report", response_model=ReportResp, status_code=201)
def submit_report(
    payload: ReportCreate,
    reporter_id: str = Depends(get_reporter_id),
    db: Session = Depends(get_db),
):
    _, state = report_content(
        db,
        content_id=payload.content_id,
        content_type=payload.content_type,
        reporter_id=reporter_id,
        reason=payload.reason,
        parent_id=payload.parent_id,
    )
    return ReportResp(report_count=state.report_count, is_hidden=state.is_hidden)


# ---- admin diagnostics ----

@router.get("/content-status", response_model=ContentStatusResp)
def content_status(
    content_id: str = Query(..., alias="contentId", min_length=1),
    content_type: str = Query(ContentType.review.value, alias="contentType"),
    parent_id: Optional[str] = Query(None, alias="parentId"),
    db: Session = Depends(get_db),
):
    status = get_status(db, content_id, content_type, parent_id=parent_id)
    return ContentStatusResp(
        content_id=status.content_id,
        content_type=status.content_type,
        mirrored_count=status.mirrored_count,
        actual_count=status.actual_count,
        is_hidden=status.mirrored_hidden,
        matches=status.matches,
        reports=[_report_out(r) for r in status.reports],
    )


@router.get("/reports", response_model=ReportListResp)
def content_reports(
    content_id: str = Query(..., alias="contentId", min_length=1),
    content_type: str = Query(ContentType.review.value, alias="contentType"),
    db: Session = Depends(get_db),
):
    ct = get_target(content_type).content_type.value
    reports = list_reports(db, content_id, ct)
    return ReportListResp(
        content_id=content_id,
        content_type=ct,
        count=len(reports),
        reports=[_report_out(r) for r in reports],
    )


@router.get("/moderation-stats", response_model=ModerationStatsResp)
def moderation_stats(
    limit: int = Query(10, ge=1, le=100),  # mostReported size
    db: Session = Depends(get_db),
):
    stats = get_stats(db, top_n=limit)
    return ModerationStatsResp(
        total_items=stats.total_items,
        hidden_items=stats.hidden_items,
        visible_items=stats.visible_items,
        total_reports=stats.total_reports,
        items_with_reports=stats.items_with_reports,
        approaching_threshold=stats.approaching_threshold,
        at_threshold_not_hidden=stats.at_threshold_not_hidden,
        issues=stats.issues,
        most_reported=[
            ReportedItem(
                content_type=i.content_type,
                content_id=i.content_id,
                parent_id=i.parent_id,
                report_count=i.report_count,
                is_hidden=i.is_hidden,
            )
            for i in stats.most_reported
        ],
        by_type={ct: TypeCounts(**counts) for ct, counts in stats.by_type.items()},
    )


@router.post("/recompute", response_model=RecomputeResp)
def recompute(db: Session = Depends(get_db)):
    checked, corrected = recompute_all(db)
    return RecomputeResp(checked=checked, corrected=corrected)
