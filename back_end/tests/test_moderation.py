import pytest
from sqlalchemy.exc import OperationalError

from app.core.errors import NotFound
from app.crud.report import count_reports, submit_report
from app.services.content_targets import get_target
from app.services.moderation import HIDE_THRESHOLD, apply_report, recompute_all, report_content
from app.services.moderation_audit import get_status


def _item(kind, make_review, make_question):
    """(content_id, content_type, parent_id) for a fresh item of the given kind."""
    if kind == "review":
        review = make_review()
        return review.id, "review", None
    if kind == "reviewComment":
        review = make_review(n_comments=3)
        return review.comments[1]["id"], "reviewComment", review.id
    question = make_question(n_comments=2)
    return question.comments[0]["id"], "qaComment", question.id


@pytest.mark.parametrize("kind", ["review", "reviewComment", "qaComment"])
def test_hidden_exactly_at_threshold_and_stays(db, make_review, make_question, kind):
    content_id, content_type, parent_id = _item(kind, make_review, make_question)

    for n in range(1, HIDE_THRESHOLD + 3):
        _, state = report_content(db, content_id, content_type, f"user-{n}", "spam", parent_id=parent_id)
        assert state.report_count == n
        assert state.is_hidden is (n >= HIDE_THRESHOLD)

        status = get_status(db, content_id, content_type, parent_id=parent_id)
        assert status.mirrored_count == n
        assert status.actual_count == n
        assert status.matches is True


def test_threshold_is_ten():
    assert HIDE_THRESHOLD == 10


def test_embedded_comment_mirror_written_in_place(db, make_review):
    review = make_review(n_comments=3)
    target_id = review.comments[1]["id"]
    for n in range(10):
        report_content(db, target_id, "reviewComment", f"user-{n}", "harassment")

    db.refresh(review)
    hidden = [c for c in review.comments if c.get("is_hidden")]
    assert [c["id"] for c in hidden] == [target_id]
    assert review.comments[1]["report_count"] == 10
    # siblings keep their legacy shape and the parent stays visible
    assert "report_count" not in review.comments[0]
    assert review.comments[1]["comment"] == "comment 1"
    assert review.is_hidden is False
    assert review.report_count == 0


def test_apply_is_idempotent(db, make_review):
    review = make_review()
    for n in range(4):
        submit_report(db, review.id, "review", f"user-{n}", "spam")

    first = apply_report(db, review.id, "review")
    second = apply_report(db, review.id, "review")
    assert first == second
    assert first.report_count == 4
    db.refresh(review)
    assert review.report_count == 4


def test_legacy_comment_reads_as_unreported(db, make_question):
    question = make_question(n_comments=1)
    cid = question.comments[0]["id"]
    target = get_target("qaComment")
    ref = target.locate(db, cid)
    assert target.read(ref) == (0, False)


def test_apply_on_missing_item(db):
    with pytest.raises(NotFound):
        apply_report(db, "ghost", "review")


def test_mirror_write_failure_keeps_ledger(db, make_review, monkeypatch):
    review = make_review()
    for n in range(HIDE_THRESHOLD):
        submit_report(db, review.id, "review", f"user-{n}", "spam")

    def broken_commit():
        raise OperationalError("UPDATE reviews", {}, Exception("database is locked"))

    monkeypatch.setattr(db, "commit", broken_commit)
    state = apply_report(db, review.id, "review")
    monkeypatch.undo()

    assert state.report_count == HIDE_THRESHOLD
    assert state.is_hidden is True
    db.refresh(review)
    assert review.report_count == 0
    assert review.is_hidden is False
    assert count_reports(db, review.id, "review") == HIDE_THRESHOLD

    # next apply catches up
    apply_report(db, review.id, "review")
    db.refresh(review)
    assert review.report_count == HIDE_THRESHOLD
    assert review.is_hidden is True


def test_recompute_repairs_drift(db, make_review, make_question):
    clean = make_review()
    drifted = make_review(n_comments=1)
    question = make_question(n_comments=1)
    qc_id = question.comments[0]["id"]

    report_content(db, clean.id, "review", "alice", "spam")
    # ledger rows never applied
    for n in range(HIDE_THRESHOLD):
        submit_report(db, qc_id, "qaComment", f"user-{n}", "spam")
    # mirror claims reports the ledger does not have
    drifted.report_count = 12
    drifted.is_hidden = False
    db.commit()

    checked, corrected = recompute_all(db)

    # 2 reviews + 1 review comment + 1 qa comment
    assert checked == 4
    assert corrected == 2
    db.refresh(drifted)
    assert (drifted.report_count, drifted.is_hidden) == (0, False)
    status = get_status(db, qc_id, "qaComment")
    assert (status.mirrored_count, status.mirrored_hidden, status.matches) == (HIDE_THRESHOLD, True, True)

    assert recompute_all(db) == (4, 0)


def test_sibling_comment_write_does_not_undo_hide(db, session_factory, make_review):
    review = make_review(n_comments=2)
    c0, c1 = review.comments[0]["id"], review.comments[1]["id"]
    report_content(db, c0, "reviewComment", "alice", "spam", parent_id=review.id)
    for n in range(HIDE_THRESHOLD - 1):
        report_content(db, c1, "reviewComment", f"user-{n}", "spam", parent_id=review.id)

    other = session_factory()
    try:
        # a request on c0 has located its parent row ...
        target = get_target("reviewComment")
        ref = target.locate(other, c0, review.id)

        # ... while another request hides c1
        _, state = report_content(db, c1, "reviewComment", "user-last", "spam", parent_id=review.id)
        assert state.is_hidden is True

        target.commit(other, ref, 1, False)
    finally:
        other.close()

    db.expire_all()
    status = get_status(db, c1, "reviewComment", parent_id=review.id)
    assert (status.mirrored_count, status.mirrored_hidden, status.matches) == (HIDE_THRESHOLD, True, True)
    assert get_status(db, c0, "reviewComment").mirrored_count == 1


def test_comment_added_after_locate_survives_mirror_write(db, session_factory, make_review):
    review = make_review(n_comments=1)
    c0 = review.comments[0]["id"]
    submit_report(db, c0, "reviewComment", "alice", "spam")

    other = session_factory()
    try:
        target = get_target("reviewComment")
        ref = target.locate(other, c0)

        review.comments = review.comments + [{"id": "new-comment", "comment": "late", "user_name": "x"}]
        db.commit()

        target.commit(other, ref, 1, False)
    finally:
        other.close()

    db.refresh(review)
    assert [c["id"] for c in review.comments] == [c0, "new-comment"]
    assert review.comments[0]["report_count"] == 1


def test_locate_without_parent_picks_the_owner(db, make_review, make_question):
    make_review(n_comments=2)
    owner = make_review(n_comments=2)
    make_question(n_comments=2)
    cid = owner.comments[1]["id"]

    ref = get_target("reviewComment").locate(db, cid)
    assert ref.parent.id == owner.id
    assert get_target("qaComment").locate(db, cid) is None
    # LIKE wildcards in the id are matched literally
    assert get_target("reviewComment").locate(db, "%") is None
    assert get_target("reviewComment").locate(db, "_" * len(cid)) is None


def test_report_stands_when_item_vanishes_after_insert(db, make_review, monkeypatch):
    import app.services.moderation as moderation

    review = make_review(n_comments=2)
    doomed = review.comments[0]["id"]
    real_submit = moderation.submit_report

    def submit_then_delete(db_, *args, **kwargs):
        row = real_submit(db_, *args, **kwargs)
        review.comments = [c for c in review.comments if c["id"] != doomed]
        db_.commit()
        return row

    monkeypatch.setattr(moderation, "submit_report", submit_then_delete)
    _, state = report_content(db, doomed, "reviewComment", "alice", "spam")

    assert (state.report_count, state.is_hidden) == (1, False)
    assert count_reports(db, doomed, "reviewComment") == 1


def test_report_stands_when_first_count_fails(db, make_review, monkeypatch):
    import app.services.moderation as moderation
    from app.core.errors import StoreUnavailable

    review = make_review()
    real_count = moderation.count_reports
    calls = []

    def flaky_count(*args, **kwargs):
        calls.append(args)
        if len(calls) == 1:
            raise StoreUnavailable()
        return real_count(*args, **kwargs)

    monkeypatch.setattr(moderation, "count_reports", flaky_count)
    _, state = report_content(db, review.id, "review", "alice", "spam")

    assert (state.report_count, state.is_hidden) == (1, False)
    assert len(calls) == 2
    db.refresh(review)
    # mirror left for the next apply
    assert review.report_count == 0
