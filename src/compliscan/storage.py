"""Submission persistence in PostgreSQL."""

from __future__ import annotations

import json
import logging
import os
import uuid
from dataclasses import dataclass
from typing import Any

import psycopg
from psycopg import sql
from psycopg.rows import dict_row

from compliscan.policy import coerce_status
from compliscan.schema import NormalizedLabel

logger = logging.getLogger(__name__)


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class SubmissionStoreConfig:
    enabled: bool = False
    database_url: str | None = None
    submissions_table: str = "submissions"
    violations_table: str = "violations"

    @classmethod
    def from_env(cls) -> "SubmissionStoreConfig":
        return cls(
            enabled=_parse_bool(os.getenv("COMPLISCAN_SAVE_SUBMISSIONS"), False),
            database_url=os.getenv("COMPLISCAN_DATABASE_URL") or os.getenv("DATABASE_URL"),
            submissions_table=os.getenv("COMPLISCAN_SUBMISSIONS_TABLE", "submissions"),
            violations_table=os.getenv("COMPLISCAN_VIOLATIONS_TABLE", "violations"),
        )


SUBMISSION_COLUMNS = (
    "id",
    "user_id",
    "product_name",
    "input_type",
    "input_source",
    "manufacturer",
    "net_quantity",
    "mrp",
    "consumer_care",
    "date_of_manufacture",
    "country_of_origin",
    "compliance_score",
    "status",
    "ocr_confidence",
    "image_width",
    "image_height",
    "processing_time_ms",
    "raw_data",
    "field_confidences",
    "extracted_text",
)

CREATE_SUBMISSIONS = """
    create table if not exists {table} (
      id text primary key,
      user_id text not null default 'demo_user',
      product_name text null,
      input_type text not null check (input_type in ('image', 'url')),
      input_source text null,
      manufacturer text null,
      net_quantity text null,
      mrp text null,
      consumer_care text null,
      date_of_manufacture text null,
      country_of_origin text null,
      compliance_score integer not null default 0,
      status text not null check (status in ('approved', 'failed', 'needs_review')),
      ocr_confidence real null,
      image_width integer null,
      image_height integer null,
      processing_time_ms integer null,
      created_at timestamptz not null default now(),
      raw_data jsonb null,
      field_confidences jsonb null,
      extracted_text text null
    )
"""

CREATE_VIOLATIONS = """
    create table if not exists {table} (
      id bigserial primary key,
      submission_id text not null references {submissions} (id) on delete cascade,
      field_name text not null,
      violation_type text not null check (violation_type in ('missing', 'format', 'invalid')),
      severity text not null check (severity in ('low', 'medium', 'high')),
      message text not null,
      created_at timestamptz not null default now()
    )
"""


def new_submission_id() -> str:
    return f"check_{uuid.uuid4().hex}"


def build_submission_row(
    label: NormalizedLabel,
    *,
    submission_id: str,
    input_type: str | None = None,
    input_source: str | None = None,
    processing_time_ms: int | None = None,
    user_id: str = "demo_user",
) -> dict[str, Any]:
    """Flatten a label into a `submissions` row."""
    resolution = label.image_resolution
    return {
        "id": submission_id,
        "user_id": user_id,
        "product_name": label.product_name,
        "input_type": input_type or label.source,
        "input_source": input_source,
        "manufacturer": label.manufacturer,
        "net_quantity": label.net_quantity,
        "mrp": label.MRP,
        "consumer_care": label.consumer_care,
        "date_of_manufacture": label.date_of_manufacture,
        "country_of_origin": label.country_of_origin,
        "compliance_score": label.compliance_score,
        "status": coerce_status(label.status),
        "ocr_confidence": label.ocr_confidence,
        "image_width": resolution.width if resolution else None,
        "image_height": resolution.height if resolution else None,
        "processing_time_ms": processing_time_ms,
        "raw_data": json.dumps(label.to_record(), ensure_ascii=False),
        "field_confidences": json.dumps(label.field_confidences, ensure_ascii=False),
        "extracted_text": label.extracted_text,
    }


class SubmissionStore:
    """Writes scored labels and their violations; reads back history and aggregates."""

    def __init__(self, config: SubmissionStoreConfig):
        self.config = config
        self._db_ready = False

    def should_save(self) -> bool:
        return self.config.enabled and bool(self.config.database_url)

    def _tables(self) -> dict[str, sql.Identifier]:
        return {
            "submissions": sql.Identifier(self.config.submissions_table),
            "violations": sql.Identifier(self.config.violations_table),
        }

    def _ensure_tables(self, cur) -> None:
        if self._db_ready:
            return
        tables = self._tables()
        cur.execute(sql.SQL(CREATE_SUBMISSIONS).format(table=tables["submissions"]))
        cur.execute(
            sql.SQL(CREATE_VIOLATIONS).format(
                table=tables["violations"],
                submissions=tables["submissions"],
            )
        )
        self._db_ready = True

    def save(
        self,
        label: NormalizedLabel,
        *,
        submission_id: str | None = None,
        input_source: str | None = None,
        processing_time_ms: int | None = None,
        user_id: str = "demo_user",
    ) -> str | None:
        """Persist a label. Returns the submission id, or None when nothing was written."""
        if not self.should_save():
            return None

        submission_id = submission_id or new_submission_id()
        row = build_submission_row(
            label,
            submission_id=submission_id,
            input_source=input_source,
            processing_time_ms=processing_time_ms,
            user_id=user_id,
        )
        tables = self._tables()
        insert_submission = sql.SQL("insert into {table} ({columns}) values ({values})").format(
            table=tables["submissions"],
            columns=sql.SQL(", ").join(sql.Identifier(c) for c in SUBMISSION_COLUMNS),
            values=sql.SQL(", ").join(sql.Placeholder() for _ in SUBMISSION_COLUMNS),
        )
        insert_violation = sql.SQL(
            "insert into {table} (submission_id, field_name, violation_type, severity, message) "
            "values (%s, %s, %s, %s, %s)"
        ).format(table=tables["violations"])

        try:
            with psycopg.connect(self.config.database_url) as conn:
                with conn.cursor() as cur:
                    self._ensure_tables(cur)
                    cur.execute(insert_submission, [row[c] for c in SUBMISSION_COLUMNS])
                    if label.violations:
                        cur.executemany(
                            insert_violation,
                            [
                                (submission_id, v.field, v.type, v.severity, v.message)
                                for v in label.violations
                            ],
                        )
                conn.commit()
        except Exception:
            logger.exception("failed to save submission %s", submission_id)
            return None
        return submission_id

    def get_submission(self, submission_id: str) -> dict[str, Any] | None:
        """Load a submission row with its violations, most severe first."""
        if not self.config.database_url:
            return None

        tables = self._tables()
        select_submission = sql.SQL("select * from {table} where id = %s").format(
            table=tables["submissions"]
        )
        select_violations = sql.SQL(
            "select field_name, violation_type, severity, message from {table} "
            "where submission_id = %s "
            "order by case severity when 'high' then 2 when 'medium' then 1 else 0 end desc, "
            "field_name asc"
        ).format(table=tables["violations"])

        with psycopg.connect(self.config.database_url, row_factory=dict_row) as conn:
            with conn.cursor() as cur:
                cur.execute(select_submission, (submission_id,))
                submission = cur.fetchone()
                if submission is None:
                    return None
                cur.execute(select_violations, (submission_id,))
                violations = cur.fetchall()

        submission = dict(submission)
        for key in ("raw_data", "field_confidences"):
            if isinstance(submission.get(key), str):
                submission[key] = json.loads(submission[key])
        submission["violations"] = [
            {
                "field": v["field_name"],
                "type": v["violation_type"],
                "severity": v["severity"],
                "message": v["message"],
            }
            for v in violations
        ]
        return submission

    def _fetch(self, query: sql.Composed, params: tuple) -> list[dict[str, Any]]:
        with psycopg.connect(self.config.database_url, row_factory=dict_row) as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                return [dict(row) for row in cur.fetchall()]

    def list_submissions(
        self,
        user_id: str = "demo_user",
        limit: int = 50,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """Page through a user's submissions, newest first."""
        if not self.config.database_url:
            return []

        query = sql.SQL(
            "select id, product_name, input_type, input_source, manufacturer, "
            "compliance_score, status, created_at, raw_data, field_confidences "
            "from {table} where user_id = %s "
            "order by created_at desc limit %s offset %s"
        ).format(table=self._tables()["submissions"])

        rows = self._fetch(query, (user_id, limit, offset))
        for row in rows:
            for key in ("raw_data", "field_confidences"):
                if isinstance(row.get(key), str):
                    row[key] = json.loads(row[key])
        return rows

    def compliance_trend(self, user_id: str = "demo_user", days: int = 30) -> list[dict[str, Any]]:
        """Daily submission count and mean score over the last `days` days."""
        if not self.config.database_url:
            return []

        query = sql.SQL(
            "select date(created_at) as date, avg(compliance_score) as avg_score, "
            "count(*) as submissions "
            "from {table} where user_id = %s and created_at >= now() - make_interval(days => %s) "
            "group by date(created_at) order by date asc"
        ).format(table=self._tables()["submissions"])

        return [
            {
                "date": row["date"],
                "compliance": round(float(row["avg_score"] or 0)),
                "submissions": row["submissions"] or 0,
            }
            for row in self._fetch(query, (user_id, days))
        ]

    def violations_by_brand(self, user_id: str = "demo_user", limit: int = 10) -> list[dict[str, Any]]:
        """Manufacturers ranked by violation count, then by submission count."""
        if not self.config.database_url:
            return []

        tables = self._tables()
        query = sql.SQL(
            "select s.manufacturer as brand, count(distinct s.id) as total_submissions, "
            "count(v.id) as total_violations, avg(s.compliance_score) as avg_score "
            "from {submissions} s left join {violations} v on s.id = v.submission_id "
            "where s.user_id = %s and s.manufacturer is not null "
            "group by s.manufacturer "
            "order by total_violations desc, total_submissions desc limit %s"
        ).format(submissions=tables["submissions"], violations=tables["violations"])

        return [
            {
                "brand": row["brand"] or "Unknown",
                "violations": row["total_violations"] or 0,
                "submissions": row["total_submissions"] or 0,
                "avg_score": round(float(row["avg_score"] or 0)),
            }
            for row in self._fetch(query, (user_id, limit))
        ]

    def overall_stats(self, user_id: str = "demo_user") -> dict[str, Any]:
        if not self.config.database_url:
            return {}

        query = sql.SQL(
            "select count(*) as total_submissions, "
            "avg(compliance_score) as avg_compliance_score, "
            "count(*) filter (where status = 'approved') as approved_count, "
            "count(*) filter (where status = 'failed') as failed_count, "
            "count(*) filter (where status = 'needs_review') as needs_review_count, "
            "max(created_at) as last_submission, "
            "count(*) filter (where input_type = 'image') as image_submissions, "
            "count(*) filter (where input_type = 'url') as url_submissions "
            "from {table} where user_id = %s"
        ).format(table=self._tables()["submissions"])

        rows = self._fetch(query, (user_id,))
        stats = rows[0] if rows else {}
        if stats.get("avg_compliance_score") is not None:
            stats["avg_compliance_score"] = float(stats["avg_compliance_score"])
        return stats
