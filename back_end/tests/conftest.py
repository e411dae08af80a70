"""Shared fixtures: a fresh in-memory SQLite database per test."""

import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db import models  # noqa: F401  (registers tables on Base.metadata)
from app.db.base import Base
from app.db.models import Question, Review
from app.db.session import get_db
from app.main import app as fastapi_app


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    fastapi_app.dependency_overrides[get_db] = _get_db
    yield TestClient(fastapi_app)
    fastapi_app.dependency_overrides.clear()


def _comment(text: str, key: str = "comment") -> dict:
    # legacy shape: no report_count / is_hidden yet
    return {
        "id": uuid.uuid4().hex[:24],
        key: text,
        "user_name": "commenter",
        "created_at": "2026-10-01T09:00:00",
    }


@pytest.fixture
def make_review(db):
    def _make(n_comments: int = 0) -> Review:
        review = Review(
            course_id="261200",
            course_name="Object-Oriented Programming",
            user_id="author@cmu.ac.th",
            user_name="author",
            rating=4,
            review="Clear lectures, heavy weekly labs.",
            comments=[_comment(f"comment {i}") for i in range(n_comments)],
        )
        db.add(review)
        db.commit()
        db.refresh(review)
        return review

    return _make


@pytest.fixture
def make_question(db):
    def _make(n_comments: int = 1) -> Question:
        question = Question(
            question="Is the final exam open book?",
            user_name="asker",
            comments=[_comment(f"answer {i}", key="content") for i in range(n_comments)],
        )
        db.add(question)
        db.commit()
        db.refresh(question)
        return question

    return _make
