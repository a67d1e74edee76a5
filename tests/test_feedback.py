import sqlite3

import pytest

from matching.errors import PersistenceError
from matching.feedback import FeedbackRecorder


@pytest.fixture
def recorder(db):
    return FeedbackRecorder(db)


def test_record_appends_row(db, recorder):
    recorder.record("iphone 13", "cat-1", True, "cat-1", 0.82, "phones", user_id="u1")
    recorder.record("iphone 13", "cat-1", False, "cat-2", 0.61, "phones", user_id="u1")

    rows = db.get_feedback()
    assert len(rows) == 2
    assert rows[0]["user_choice"] is False
    assert rows[0]["actual_catalog_id"] == "cat-2"
    assert rows[1]["confidence_score"] == 0.82


def test_partial_information_is_accepted(db, recorder):
    recorder.record("pixel", "cat-9", False)
    row = db.get_feedback()[0]
    assert row["actual_catalog_id"] is None
    assert row["confidence_score"] is None


def test_feedback_is_append_only(db, recorder):
    recorder.record("pixel", "cat-9", True)
    with pytest.raises(sqlite3.DatabaseError):
        with db.transaction():
            db.execute("UPDATE product_match_feedback SET user_choice = 0")
    with pytest.raises(sqlite3.DatabaseError):
        with db.transaction():
            db.execute("DELETE FROM product_match_feedback")
    assert len(db.get_feedback()) == 1


def test_record_raises_on_storage_failure(db, recorder, monkeypatch):
    def fail(*args, **kwargs):
        raise sqlite3.OperationalError("database is locked")
    monkeypatch.setattr(db, "insert_feedback", fail)

    with pytest.raises(PersistenceError):
        recorder.record("pixel", "cat-9", True)
    assert recorder.record_quietly(input_text="pixel", suggested_catalog_id="cat-9",
                                   user_choice=True) is None


def test_summary(recorder):
    assert recorder.summary()["accept_rate"] is None

    recorder.record("a", "c1", True, confidence_score=0.9)
    recorder.record("b", "c2", True, confidence_score=0.7)
    recorder.record("c", "c3", False, confidence_score=0.5)
    recorder.record("d", "c4", False, confidence_score=0.6)

    summary = recorder.summary()
    assert summary["total"] == 4
    assert summary["accepted"] == 2
    assert summary["rejected"] == 2
    assert summary["accept_rate"] == 0.5
    assert summary["avg_accepted_confidence"] == pytest.approx(0.8)
    assert summary["avg_rejected_confidence"] == pytest.approx(0.55)
