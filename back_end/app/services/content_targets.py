# app/services/content_targets.py
"""
Moderatable content adapters.

Three storage shapes carry the mirrored report_count / is_hidden pair:
- reviews row                    -> ReviewTarget
- element of reviews.comments    -> EmbeddedCommentTarget(Review)
- element of questions.comments  -> EmbeddedCommentTarget(Question)

The aggregator and auditor only talk to the ContentTarget interface.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, Optional, Tuple, Type

from sqlalchemy import Text, cast, select
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from app.core.errors import ValidationError
from app.db.models import ContentType, Question, Review


@dataclass
class ItemState:
    content_type: str
    content_id: str
    parent_id: Optional[str]
    report_count: int
    is_hidden: bool


@dataclass
class CommentRef:
    parent: Any  # Review | Question
    comment_id: str


class ContentTarget:
    content_type: ContentType

    def locate(
        self, db: Session, content_id: str, parent_id: Optional[str] = None, for_update: bool = False
    ) -> Any:
        """Mutable reference to the item, or None. for_update row-locks the owning row until commit."""
        raise NotImplementedError

    def read(self, ref: Any) -> Tuple[int, bool]:
        raise NotImplementedError

    def commit(self, db: Session, ref: Any, report_count: int, is_hidden: bool) -> None:
        raise NotImplementedError

    def iter_items(self, db: Session) -> Iterator[ItemState]:
        raise NotImplementedError


class ReviewTarget(ContentTarget):
    content_type = ContentType.review

    def locate(
        self, db: Session, content_id: str, parent_id: Optional[str] = None, for_update: bool = False
    ) -> Optional[Review]:
        return db.get(Review, content_id, with_for_update=for_update or None)

    def read(self, ref: Review) -> Tuple[int, bool]:
        return int(ref.report_count or 0), bool(ref.is_hidden)

    def commit(self, db: Session, ref: Review, report_count: int, is_hidden: bool) -> None:
        ref.report_count = report_count
        ref.is_hidden = is_hidden
        db.commit()

    def iter_items(self, db: Session) -> Iterator[ItemState]:
        rows = db.execute(select(Review.id, Review.report_count, Review.is_hidden)).all()
        for review_id, report_count, is_hidden in rows:
            yield ItemState(
                content_type=self.content_type.value,
                content_id=review_id,
                parent_id=None,
                report_count=int(report_count or 0),
                is_hidden=bool(is_hidden),
            )


def _find_comment(comments: Iterable[dict], comment_id: str) -> Optional[dict]:
    for c in comments or []:
        if str(c.get("id")) == comment_id:
            return c
    return None


class EmbeddedCommentTarget(ContentTarget):
    """Comment stored as an element of a JSON array on its parent row, matched by its own id."""

    def __init__(self, content_type: ContentType, parent_model: Type[Any]):
        self.content_type = content_type
        self.parent_model = parent_model

    def _parents(self, db: Session, content_id: str, parent_id: Optional[str]) -> Iterable[Any]:
        if parent_id:
            parent = db.get(self.parent_model, parent_id)
            return [parent] if parent is not None else []
        # no hint: only parents whose serialized comments mention the id, confirmed in _find_comment
        stmt = select(self.parent_model).where(
            cast(self.parent_model.comments, Text).contains(content_id, autoescape=True)
        )
        return db.execute(stmt).scalars().all()

    def locate(
        self, db: Session, content_id: str, parent_id: Optional[str] = None, for_update: bool = False
    ) -> Optional[CommentRef]:
        for parent in self._parents(db, content_id, parent_id):
            if _find_comment(parent.comments, content_id) is None:
                continue
            if for_update:
                db.refresh(parent, with_for_update=True)
                if _find_comment(parent.comments, content_id) is None:
                    continue
            return CommentRef(parent=parent, comment_id=content_id)
        return None

    def read(self, ref: CommentRef) -> Tuple[int, bool]:
        c = _find_comment(ref.parent.comments, ref.comment_id) or {}
        return int(c.get("report_count") or 0), bool(c.get("is_hidden", False))

    def commit(self, db: Session, ref: CommentRef, report_count: int, is_hidden: bool) -> None:
        # the array is rewritten whole, so start from the current row (siblings may have
        # changed since locate) and hold the row lock until the commit below
        db.refresh(ref.parent, with_for_update=True)
        comments = [dict(c) for c in (ref.parent.comments or [])]
        target = _find_comment(comments, ref.comment_id)
        if target is None:
            # removed since locate(); nothing to mirror onto
            db.rollback()
            return
        target["report_count"] = report_count
        target["is_hidden"] = is_hidden
        # copy-and-reassign so the JSON column is seen as dirty
        ref.parent.comments = comments
        flag_modified(ref.parent, "comments")
        db.commit()

    def iter_items(self, db: Session) -> Iterator[ItemState]:
        stmt = select(self.parent_model.id, self.parent_model.comments).execution_options(yield_per=500)
        for parent_id, comments in db.execute(stmt):
            for c in comments or []:
                yield ItemState(
                    content_type=self.content_type.value,
                    content_id=str(c.get("id")),
                    parent_id=parent_id,
                    report_count=int(c.get("report_count") or 0),
                    is_hidden=bool(c.get("is_hidden", False)),
                )


CONTENT_TARGETS: Dict[ContentType, ContentTarget] = {
    ContentType.review: ReviewTarget(),
    ContentType.review_comment: EmbeddedCommentTarget(ContentType.review_comment, Review),
    ContentType.qa_comment: EmbeddedCommentTarget(ContentType.qa_comment, Question),
}


def get_target(content_type: Any) -> ContentTarget:
    try:
        return CONTENT_TARGETS[ContentType(content_type)]
    except ValueError:
        raise ValidationError(
            f"Invalid content type '{content_type}', expected one of "
            + ", ".join(t.value for t in ContentType)
        )
