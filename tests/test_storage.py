"""Tests for submission persistence."""

import json
from datetime import date
from decimal import Decimal

from psycopg.rows import dict_row

from compliscan.core import build_label
from compliscan.schema import ImageResolution
from compliscan.storage import SUBMISSION_COLUMNS, SubmissionStore, SubmissionStoreConfig, build_submission_row


def _label():
    return build_label(
        {"product_name": "Green Tea", "MRP": "abc", "net_quantity": "250 g"},
        {"MRP": 0.9, "net_quantity": 0.8},
        source="image",
        ocr_confidence=0.72,
        image_resolution=ImageResolution(width=800, height=600),
    )


def _connection(mocker):
    connect = mocker.patch("compliscan.storage.psycopg.connect")
    conn = connect.return_value.__enter__.return_value
    cur = conn.cursor.return_value.__enter__.return_value
    return connect, conn, cur


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("COMPLISCAN_SAVE_SUBMISSIONS", "true")
    monkeypatch.delenv("COMPLISCAN_DATABASE_URL", raising=False)
    monkeypatch.setenv("DATABASE_URL", "postgresql://localhost/compliscan")
    monkeypatch.setenv("COMPLISCAN_SUBMISSIONS_TABLE", "label_submissions")

    config = SubmissionStoreConfig.from_env()

    assert config.enabled is True
    assert config.database_url == "postgresql://localhost/compliscan"
    assert config.submissions_table == "label_submissions"
    assert config.violations_table == "violations"


def test_build_submission_row():
    label = _label()

    row = build_submission_row(label, submission_id="check_1", input_source="label.jpg", processing_time_ms=42)

    assert list(row) == list(SUBMISSION_COLUMNS)
    assert row["input_type"] == "image"
    assert row["mrp"] == "abc"
    assert row["manufacturer"] is None
    assert row["status"] == "failed"
    assert (row["image_width"], row["image_height"]) == (800, 600)
    assert row["user_id"] == "demo_user"
    assert json.loads(row["raw_data"])["_source"] == "image"
    assert json.loads(row["field_confidences"])["MRP"] == 0.6


def test_save_disabled_does_not_connect(mocker):
    connect = mocker.patch("compliscan.storage.psycopg.connect")
    store = SubmissionStore(SubmissionStoreConfig(enabled=False, database_url="postgresql://db"))

    assert store.save(_label()) is None
    connect.assert_not_called()


def test_save_writes_submission_and_violations(mocker):
    connect, conn, cur = _connection(mocker)
    store = SubmissionStore(SubmissionStoreConfig(enabled=True, database_url="postgresql://db"))
    label = _label()

    submission_id = store.save(label, submission_id="check_1", input_source="label.jpg")

    assert submission_id == "check_1"
    connect.assert_called_once_with("postgresql://db")
    # two table creations and the submission insert
    assert cur.execute.call_count == 3
    params = cur.execute.call_args_list[2].args[1]
    assert params[0] == "check_1"
    rows = cur.executemany.call_args.args[1]
    assert len(rows) == len(label.violations)
    assert rows[0][0] == "check_1"
    assert rows[0][2:4] == ("missing", "high")
    conn.commit.assert_called_once_with()


def test_save_creates_tables_once(mocker):
    _, _, cur = _connection(mocker)
    store = SubmissionStore(SubmissionStoreConfig(enabled=True, database_url="postgresql://db"))

    store.save(_label())
    store.save(_label())

    assert cur.execute.call_count == 4


def test_save_failure_is_logged(mocker, caplog):
    mocker.patch("compliscan.storage.psycopg.connect", side_effect=RuntimeError("db down"))
    store = SubmissionStore(SubmissionStoreConfig(enabled=True, database_url="postgresql://db"))

    assert store.save(_label(), submission_id="check_9") is None
    assert "failed to save submission check_9" in caplog.text


def test_get_submission(mocker):
    _, _, cur = _connection(mocker)
    cur.fetchone.return_value = {
        "id": "check_1",
        "raw_data": '{"_source": "image"}',
        "field_confidences": {"MRP": 0.6},
    }
    cur.fetchall.return_value = [
        {"field_name": "consumer_care", "violation_type": "missing", "severity": "high", "message": "m"},
    ]
    store = SubmissionStore(SubmissionStoreConfig(database_url="postgresql://db"))

    submission = store.get_submission("check_1")

    assert submission["raw_data"] == {"_source": "image"}
    assert submission["field_confidences"] == {"MRP": 0.6}
    assert submission["violations"] == [
        {"field": "consumer_care", "type": "missing", "severity": "high", "message": "m"}
    ]


def test_get_submission_not_found(mocker):
    _, _, cur = _connection(mocker)
    cur.fetchone.return_value = None
    store = SubmissionStore(SubmissionStoreConfig(database_url="postgresql://db"))

    assert store.get_submission("missing") is None


def test_list_submissions(mocker):
    connect, _, cur = _connection(mocker)
    cur.fetchall.return_value = [
        {"id": "check_2", "status": "failed", "raw_data": '{"MRP": null}', "field_confidences": "{}"},
        {"id": "check_1", "status": "approved", "raw_data": {"MRP": "₹ 10"}, "field_confidences": None},
    ]
    store = SubmissionStore(SubmissionStoreConfig(database_url="postgresql://db"))

    submissions = store.list_submissions("user_7", limit=2, offset=4)

    assert [s["id"] for s in submissions] == ["check_2", "check_1"]
    assert submissions[0]["raw_data"] == {"MRP": None}
    assert submissions[0]["field_confidences"] == {}
    assert submissions[1]["raw_data"] == {"MRP": "₹ 10"}
    assert cur.execute.call_args.args[1] == ("user_7", 2, 4)
    connect.assert_called_once_with("postgresql://db", row_factory=dict_row)


def test_read_side_without_database_does_not_connect(mocker):
    connect = mocker.patch("compliscan.storage.psycopg.connect")
    store = SubmissionStore(SubmissionStoreConfig())

    assert store.list_submissions() == []
    assert store.compliance_trend() == []
    assert store.violations_by_brand() == []
    assert store.overall_stats() == {}
    connect.assert_not_called()


def test_compliance_trend(mocker):
    _, _, cur = _connection(mocker)
    cur.fetchall.return_value = [
        {"date": date(2024, 3, 1), "avg_score": Decimal("86.4"), "submissions": 3},
        {"date": date(2024, 3, 2), "avg_score": None, "submissions": 1},
    ]
    store = SubmissionStore(SubmissionStoreConfig(database_url="postgresql://db"))

    trend = store.compliance_trend(days=7)

    assert trend == [
        {"date": date(2024, 3, 1), "compliance": 86, "submissions": 3},
        {"date": date(2024, 3, 2), "compliance": 0, "submissions": 1},
    ]
    assert cur.execute.call_args.args[1] == ("demo_user", 7)


def test_violations_by_brand(mocker):
    _, _, cur = _connection(mocker)
    cur.fetchall.return_value = [
        {"brand": "Herbal Labs", "total_submissions": 4, "total_violations": 9, "avg_score": Decimal("61.2")},
    ]
    store = SubmissionStore(SubmissionStoreConfig(database_url="postgresql://db"))

    brands = store.violations_by_brand(limit=5)

    assert brands == [{"brand": "Herbal Labs", "violations": 9, "submissions": 4, "avg_score": 61}]
    assert cur.execute.call_args.args[1] == ("demo_user", 5)


def test_overall_stats(mocker):
    _, _, cur = _connection(mocker)
    cur.fetchall.return_value = [
        {
            "total_submissions": 5,
            "avg_compliance_score": Decimal("72.5"),
            "approved_count": 2,
            "failed_count": 1,
            "needs_review_count": 2,
            "last_submission": None,
            "image_submissions": 3,
            "url_submissions": 2,
        }
    ]
    store = SubmissionStore(SubmissionStoreConfig(database_url="postgresql://db"))

    stats = store.overall_stats("user_7")

    assert stats["total_submissions"] == 5
    assert stats["avg_compliance_score"] == 72.5
    assert stats["needs_review_count"] == 2
    assert cur.execute.call_args.args[1] == ("user_7",)
