"""SQLite-backed analytics store for settlements and campaign rollups."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path


@dataclass(frozen=True)
class CampaignStats:
    """Aggregated settlement stats for one campaign."""

    settlements: int
    exposures: int
    spend: float
    creator_paid: float


class AnalyticsStore:
    """Stores settlement events and daily campaign rollups."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._ensure_parent_dir()
        self._init_schema()

    def _ensure_parent_dir(self) -> None:
        path = Path(self._db_path)
        if path.parent.exists():
            return
        path.parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS settlements (
                    settlement_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    ts TEXT NOT NULL,
                    campaign_id TEXT NOT NULL,
                    owner_id TEXT NOT NULL,
                    exposures INTEGER NOT NULL,
                    amount REAL NOT NULL,
                    creator_share REAL NOT NULL,
                    platform_fee REAL NOT NULL,
                    tx_ref TEXT,
                    metadata TEXT
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS campaign_daily (
                    day TEXT NOT NULL,
                    campaign_id TEXT NOT NULL,
                    placements INTEGER NOT NULL,
                    views INTEGER NOT NULL,
                    impressions INTEGER NOT NULL,
                    clicks INTEGER NOT NULL,
                    conversions INTEGER NOT NULL,
                    avg_quality REAL NOT NULL,
                    spend REAL NOT NULL,
                    updated_at TEXT NOT NULL,
                    PRIMARY KEY (day, campaign_id)
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_settlements_ts ON settlements (ts)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_settlements_campaign ON settlements (campaign_id)")

    def record_settlement(
        self,
        *,
        ts: datetime,
        campaign_id: str,
        owner_id: str,
        exposures: int,
        amount: float,
        creator_share: float,
        platform_fee: float,
        tx_ref: str | None = None,
        metadata: dict | None = None,
    ) -> None:
        payload = json.dumps(metadata or {})
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO settlements (
                    ts, campaign_id, owner_id, exposures, amount,
                    creator_share, platform_fee, tx_ref, metadata
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    ts.astimezone(timezone.utc).isoformat(),
                    campaign_id,
                    owner_id,
                    exposures,
                    amount,
                    creator_share,
                    platform_fee,
                    tx_ref,
                    payload,
                ),
            )

    def record_daily_rollup(self, day: date, campaign_id: str, rollup: dict) -> None:
        """Insert or replace the rollup row for (*day*, *campaign_id*)."""
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO campaign_daily (
                    day, campaign_id, placements, views, impressions, clicks,
                    conversions, avg_quality, spend, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    day.isoformat(),
                    campaign_id,
                    int(rollup.get("placements", 0)),
                    int(rollup.get("views", 0)),
                    int(rollup.get("impressions", 0)),
                    int(rollup.get("clicks", 0)),
                    int(rollup.get("conversions", 0)),
                    float(rollup.get("avg_quality", 0.0)),
                    float(rollup.get("spend", 0.0)),
                    datetime.now(timezone.utc).isoformat(),
                ),
            )

    def campaign_stats(
        self,
        campaign_id: str,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> CampaignStats:
        clauses = ["campaign_id = ?"]
        params: list[object] = [campaign_id]
        if since is not None:
            clauses.append("ts >= ?")
            params.append(since.astimezone(timezone.utc).isoformat())
        if until is not None:
            clauses.append("ts <= ?")
            params.append(until.astimezone(timezone.utc).isoformat())
        where = " AND ".join(clauses)
        query = (
            "SELECT COUNT(*) AS settlements, "
            "COALESCE(SUM(exposures), 0) AS exposures, "
            "COALESCE(SUM(amount), 0) AS spend, "
            "COALESCE(SUM(creator_share), 0) AS creator_paid "
            "FROM settlements WHERE " + where
        )
        with self._connect() as conn:
            row = conn.execute(query, params).fetchone()
        return CampaignStats(
            settlements=int(row["settlements"] or 0),
            exposures=int(row["exposures"] or 0),
            spend=float(row["spend"] or 0.0),
            creator_paid=float(row["creator_paid"] or 0.0),
        )

    def daily_rollups(self, campaign_id: str, limit: int = 30) -> list[dict]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT day, placements, views, impressions, clicks, conversions, avg_quality, spend
                FROM campaign_daily
                WHERE campaign_id = ?
                ORDER BY day DESC
                LIMIT ?
                """,
                (campaign_id, limit),
            ).fetchall()
        return [dict(row) for row in rows]

    def campaign_report(
        self,
        campaign_id: str,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> dict:
        stats = self.campaign_stats(campaign_id, since=since, until=until)
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT owner_id, COUNT(*) AS settlements, SUM(exposures) AS exposures, SUM(amount) AS spend
                FROM settlements
                WHERE campaign_id = ?
                GROUP BY owner_id
                ORDER BY spend DESC
                LIMIT 5
                """,
                (campaign_id,),
            ).fetchall()
        top_owners = [
            {
                "owner_id": row["owner_id"],
                "settlements": int(row["settlements"] or 0),
                "exposures": int(row["exposures"] or 0),
                "spend": float(row["spend"] or 0.0),
            }
            for row in rows
        ]
        return {
            "campaign_id": campaign_id,
            "settlements": stats.settlements,
            "exposures": stats.exposures,
            "spend": stats.spend,
            "creator_paid": stats.creator_paid,
            "top_owners": top_owners,
            "daily": self.daily_rollups(campaign_id, limit=7),
        }

    def summary(self, since: datetime | None = None) -> list[dict]:
        clauses = []
        params: list[object] = []
        if since is not None:
            clauses.append("ts >= ?")
            params.append(since.astimezone(timezone.utc).isoformat())
        where = " AND ".join(clauses) if clauses else "1=1"
        query = (
            "SELECT campaign_id, COUNT(*) AS settlements, COALESCE(SUM(exposures), 0) AS exposures, "
            "COALESCE(SUM(amount), 0) AS spend "
            "FROM settlements WHERE " + where + " GROUP BY campaign_id ORDER BY spend DESC"
        )
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [
            {
                "campaign_id": row["campaign_id"],
                "settlements": int(row["settlements"] or 0),
                "exposures": int(row["exposures"] or 0),
                "spend": float(row["spend"] or 0.0),
            }
            for row in rows
        ]

    def purge_before(self, cutoff: datetime) -> int:
        """Delete settlement and rollup rows older than *cutoff*; returns rows removed."""
        ts = cutoff.astimezone(timezone.utc)
        with self._connect() as conn:
            removed = conn.execute("DELETE FROM settlements WHERE ts < ?", (ts.isoformat(),)).rowcount
            removed += conn.execute(
                "DELETE FROM campaign_daily WHERE day < ?", (ts.date().isoformat(),)
            ).rowcount
        return removed
