from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

# request / response contracts for /api/v1/moderation (camelCase on the wire)

class ReportCreate(BaseModel):
    content_type: str = Field(alias="contentType", min_length=1)
    content_id: str = Field(alias="contentId", min_length=1)
    reason: str
    # review id / question id that holds the comment (optional lookup hint)
    parent_id: Optional[str] = Field(default=None, alias="parentId")

    class Config:
        populate_by_name = True

class ReportResp(BaseModel):
    report_count: int = Field(alias="reportCount")
    is_hidden: bool = Field(alias="isHidden")

    class Config:
        populate_by_name = True

class ReportOut(BaseModel):
    id: str
    reporter_id: str = Field(alias="reporterId")
    reason: str
    created_at: datetime = Field(alias="createdAt")

    class Config:
        populate_by_name = True

class ContentStatusResp(BaseModel):
    content_id: str = Field(alias="contentId")
    content_type: str = Field(alias="contentType")
    mirrored_count: int = Field(alias="mirroredCount")
    actual_count: int = Field(alias="actualCount")
    is_hidden: bool = Field(alias="isHidden")
    matches: bool
    reports: List[ReportOut]

    class Config:
        populate_by_name = True

class ReportListResp(BaseModel):
    content_id: str = Field(alias="contentId")
    content_type: str = Field(alias="contentType")
    count: int
    reports: List[ReportOut]

    class Config:
        populate_by_name = True

class ReportedItem(BaseModel):
    content_type: str = Field(alias="contentType")
    content_id: str = Field(alias="contentId")
    parent_id: Optional[str] = Field(default=None, alias="parentId")
    report_count: int = Field(alias="reportCount")
    is_hidden: bool = Field(alias="isHidden")

    class Config:
        populate_by_name = True

class TypeCounts(BaseModel):
    total: int
    hidden: int

class ModerationStatsResp(BaseModel):
    total_items: int = Field(alias="totalItems")
    hidden_items: int = Field(alias="hiddenItems")
    visible_items: int = Field(alias="visibleItems")
    total_reports: int = Field(alias="totalReports")
    items_with_reports: int = Field(alias="itemsWithReports")
    approaching_threshold: int = Field(alias="approachingThreshold")
    at_threshold_not_hidden: int = Field(alias="atThresholdNotHidden")
    issues: Optional[str] = None
    most_reported: List[ReportedItem] = Field(alias="mostReported")
    by_type: Dict[str, TypeCounts] = Field(alias="byType")

    class Config:
        populate_by_name = True

class RecomputeResp(BaseModel):
    checked: int
    corrected: int

# verdict handed back to submission endpoints that call the screener
class ScreenResult(BaseModel):
    is_inappropriate: bool = Field(alias="isInappropriate")
    confidence: float
    severity: str
    matched_terms: List[str] = Field(default_factory=list, alias="matchedTerms")

    class Config:
        populate_by_name = True
        from_attributes = True
