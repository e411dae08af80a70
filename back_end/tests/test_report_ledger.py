import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from app.core.errors import DuplicateReport, InvalidReason, NotFound, ValidationError
from app.crud.report import count_reports, list_reports, report_counts_by_item, submit_report
from app.db.models import ContentReport


def test_submit_inserts_one_row(db, make_review):
    review = make_review()
    row = submit_report(db, review.id, "review", "alice", "spam")

    assert row.id
    assert row.content_type == "review"
    assert row.reporter_id == "alice"
    assert row.created_at is not None
    assert count_reports(db, review.id, "review") == 1


def test_submit_does_not_touch_mirror(db, make_review):
    review = make_review()
    submit_report(db, review.id, "review", "alice", "spam")
    db.refresh(review)
    assert review.report_count == 0
    assert review.is_hidden is False


def test_duplicate_is_rejected(db, make_review):
    review = make_review()
    submit_report(db, review.id, "review", "alice", "spam")
    with pytest.raises(DuplicateReport):
        submit_report(db, review.id, "review", "alice", "harassment")
    assert count_reports(db, review.id, "review") == 1


def test_same_reporter_may_report_other_items(db, make_review):
    first, second = make_review(), make_review()
    submit_report(db, first.id, "review", "alice", "spam")
    submit_report(db, second.id, "review", "alice", "spam")
    assert count_reports(db, first.id, "review") == 1
    assert count_reports(db, second.id, "review") == 1


def test_unique_constraint_holds_at_storage_level(db):
    db.add(ContentReport(content_id="x", content_type="review", reporter_id="bob", reason="spam"))
    db.commit()
    db.add(ContentReport(content_id="x", content_type="review", reporter_id="bob", reason="other"))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()
    assert db.scalar(select(func.count()).select_from(ContentReport)) == 1


def test_invalid_reason(db, make_review):
    review = make_review()
    with pytest.raises(InvalidReason) as exc:
        submit_report(db, review.id, "review", "alice", "boring")
    assert exc.value.code == "invalid_reason"
    assert exc.value.status_code == 400
    assert count_reports(db, review.id, "review") == 0


def test_unknown_content_type(db, make_review):
    review = make_review()
    with pytest.raises(ValidationError):
        submit_report(db, review.id, "post", "alice", "spam")


@pytest.mark.parametrize("content_id", ["", "   "])
def test_blank_content_id(db, content_id):
    with pytest.raises(ValidationError):
        submit_report(db, content_id, "review", "alice", "spam")


def test_missing_content(db, make_review):
    make_review()
    with pytest.raises(NotFound):
        submit_report(db, "does-not-exist", "review", "alice", "spam")


def test_comment_located_with_and_without_parent(db, make_review, make_question):
    review = make_review(n_comments=2)
    question = make_question(n_comments=1)
    rc_id = review.comments[1]["id"]
    qc_id = question.comments[0]["id"]

    submit_report(db, rc_id, "reviewComment", "alice", "spam", parent_id=review.id)
    submit_report(db, qc_id, "qaComment", "alice", "other")

    with pytest.raises(NotFound):
        # comment exists, but not under this parent
        submit_report(db, qc_id, "qaComment", "bob", "other", parent_id="wrong-question")
    with pytest.raises(NotFound):
        # a review comment is not a Q&A comment
        submit_report(db, rc_id, "qaComment", "bob", "spam")

    assert count_reports(db, rc_id, "reviewComment") == 1
    assert count_reports(db, qc_id, "qaComment") == 1


def test_list_and_group_counts(db, make_review):
    review = make_review(n_comments=1)
    cid = review.comments[0]["id"]
    for reporter in ("a", "b", "c"):
        submit_report(db, review.id, "review", reporter, "spam")
    submit_report(db, cid, "reviewComment", "a", "harassment")

    rows = list_reports(db, review.id, "review")
    assert sorted(r.reporter_id for r in rows) == ["a", "b", "c"]
    assert report_counts_by_item(db) == {("review", review.id): 3, ("reviewComment", cid): 1}
