# app/db/models/review.py
import uuid
from datetime import datetime
from sqlalchemy import String, Text, Integer, Boolean, DateTime, JSON, Index, false
from sqlalchemy.orm import Mapped, mapped_column
from app.db.base import Base

# Review rows are owned by the review CRUD service.
# Only report_count / is_hidden (on the row and on each embedded comment) are written here.
class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (
        Index("ix_reviews_report_count", "report_count"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    course_id: Mapped[str] = mapped_column(String(32), index=True, nullable=False)
    course_name: Mapped[str] = mapped_column(String(255), nullable=False)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    review: Mapped[str] = mapped_column(Text, nullable=False)

    # [{"id", "comment", "user_name", "created_at", "report_count", "is_hidden"}, ...]
    comments: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    report_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    is_hidden: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
