"""
SQLite storage for tracked handles and daily digests (one row per calendar date).
"""
from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, List, Optional

from sqlalchemy import Column, DateTime, MetaData, String, Table, Text, create_engine, delete, select
from sqlalchemy.dialects.sqlite import insert

from crawler.errors import DuplicateHandle
from crawler.schemas.models import normalize_handle
from digest.models import DATE_FORMAT, DailyDigest, TrackedHandle

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 30

metadata = MetaData()

handles_table = Table(
    "handles",
    metadata,
    Column("id", String, primary_key=True),
    Column("handle", String, unique=True, nullable=False),
    Column("added_at", DateTime, nullable=False),
)

digests_table = Table(
    "daily_digests",
    metadata,
    Column("date", String, primary_key=True),
    Column("payload", Text, nullable=False),
    Column("created_at", DateTime, nullable=False),
    Column("expires_at", DateTime, nullable=False, index=True),
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DigestStore:
    """
    Datetimes are stored as naive UTC; SQLite has no timezone-aware column type.
    """

    def __init__(
        self,
        db_path: str = "digest_data.db",
        retention_days: int = DEFAULT_RETENTION_DAYS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.engine = create_engine(f"sqlite:///{db_path}", future=True)
        self.retention = timedelta(days=retention_days)
        self.clock = clock
        metadata.create_all(self.engine)

    def _now(self) -> datetime:
        return self.clock().astimezone(timezone.utc).replace(tzinfo=None)

    # handles

    def list_handles(self) -> List[TrackedHandle]:
        with self.engine.connect() as conn:
            rows = conn.execute(select(handles_table).order_by(handles_table.c.added_at)).all()
        return [TrackedHandle(id=row.id, handle=row.handle, added_at=row.added_at) for row in rows]

    def add_handle(self, raw: str) -> TrackedHandle:
        handle = normalize_handle(raw)
        tracked = TrackedHandle(id=uuid.uuid4().hex, handle=handle, added_at=self._now())
        with self.engine.begin() as conn:
            existing = conn.execute(
                select(handles_table.c.id).where(handles_table.c.handle == handle)
            ).first()
            if existing:
                raise DuplicateHandle(f"handle '{handle}' already exists")
            conn.execute(handles_table.insert().values(**tracked.model_dump()))
        logger.info("Added handle @%s", handle)
        return tracked

    def remove_handle(self, handle_id: str) -> bool:
        with self.engine.begin() as conn:
            result = conn.execute(delete(handles_table).where(handles_table.c.id == handle_id))
        return result.rowcount > 0

    # digests

    def save_digest(self, digest: DailyDigest) -> None:
        now = self._now()
        stmt = insert(digests_table).values(
            date=digest.date,
            payload=digest.model_dump_json(),
            created_at=now,
            expires_at=now + self.retention,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["date"],
            set_={
                "payload": stmt.excluded.payload,
                "created_at": stmt.excluded.created_at,
                "expires_at": stmt.excluded.expires_at,
            },
        )
        with self.engine.begin() as conn:
            conn.execute(stmt)
        logger.info("Saved digest for %s (%d posts)", digest.date, len(digest.posts))

    def get_digest(self, day: str) -> Optional[DailyDigest]:
        with self.engine.connect() as conn:
            row = conn.execute(select(digests_table).where(digests_table.c.date == day)).first()
        if row is None or row.expires_at <= self._now():
            return None
        return DailyDigest.model_validate_json(row.payload)

    def get_recent(self, limit: int = 7, today: Optional[date] = None) -> List[DailyDigest]:
        """Walk back ``limit`` calendar days from ``today``; days without a digest are skipped."""
        today = today or self.clock().astimezone(timezone.utc).date()
        digests: List[DailyDigest] = []
        for offset in range(max(limit, 0)):
            day = (today - timedelta(days=offset)).strftime(DATE_FORMAT)
            digest = self.get_digest(day)
            if digest:
                digests.append(digest)
        return digests

    def stored_dates(self) -> List[str]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                select(digests_table.c.date)
                .where(digests_table.c.expires_at > self._now())
                .order_by(digests_table.c.date.desc())
            ).all()
        return [row.date for row in rows]

    def purge_expired(self) -> int:
        with self.engine.begin() as conn:
            result = conn.execute(delete(digests_table).where(digests_table.c.expires_at <= self._now()))
        if result.rowcount:
            logger.info("Purged %d expired digest(s)", result.rowcount)
        return result.rowcount
