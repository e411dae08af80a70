from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import String, DateTime, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column
from app.db.base import Base


class ContentType(str, enum.Enum):
    review = "review"
    review_comment = "reviewComment"
    qa_comment = "qaComment"


class ReportReason(str, enum.Enum):
    inappropriate = "inappropriate"
    spam = "spam"
    harassment = "harassment"
    misinformation = "misinformation"
    other = "other"


# Report ledger. Append-only: rows are never updated or deleted.
# uq_content_reports_once is the only guard against double reporting.
class ContentReport(Base):
    __tablename__ = "content_reports"
    __table_args__ = (
        UniqueConstraint("content_id", "content_type", "reporter_id", name="uq_content_reports_once"),
        Index("ix_content_reports_content", "content_id", "content_type"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    content_id: Mapped[str] = mapped_column(String(64), nullable=False)
    content_type: Mapped[str] = mapped_column(String(20), nullable=False)
    reporter_id: Mapped[str] = mapped_column(String(255), nullable=False)
    reason: Mapped[str] = mapped_column(String(20), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
