"""Persistence for session contexts and research reports."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Protocol

import asyncpg

from app.config import settings
from app.models.context import SessionContext
from app.models.schemas import Report
from app.services import logger as log_service


class ResearchStore(Protocol):
    async def save_context(self, context: SessionContext) -> None: ...
    async def get_context(self, session_id: str) -> SessionContext | None: ...
    async def save_report(self, report: Report) -> Report: ...
    async def get_latest_report(self, lead_id: int) -> Report | None: ...
    async def has_report(self, lead_id: int) -> bool: ...


class InMemoryResearchStore:
    """Process-local store used in tests and when DATABASE_URL is unset."""

    def __init__(self) -> None:
        self.contexts: dict[str, dict[str, Any]] = {}
        self.reports: list[Report] = []

    async def save_context(self, context: SessionContext) -> None:
        self.contexts[context.id] = context.to_dict()

    async def get_context(self, session_id: str) -> SessionContext | None:
        data = self.contexts.get(session_id)
        return SessionContext.from_dict(data) if data else None

    async def save_report(self, report: Report) -> Report:
        self.reports.append(report)
        return report

    async def get_latest_report(self, lead_id: int) -> Report | None:
        matching = [r for r in self.reports if r.lead_id == lead_id]
        if not matching:
            return None
        return max(matching, key=lambda r: r.created_at)

    async def has_report(self, lead_id: int) -> bool:
        return any(r.lead_id == lead_id for r in self.reports)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS research_contexts (
    id TEXT PRIMARY KEY,
    lead_id INTEGER NOT NULL,
    goal TEXT NOT NULL,
    snapshot JSONB NOT NULL,
    findings JSONB NOT NULL DEFAULT '[]'::jsonb,
    history JSONB NOT NULL DEFAULT '[]'::jsonb,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
);
CREATE TABLE IF NOT EXISTS research_reports (
    id TEXT PRIMARY KEY,
    owner_id TEXT,
    subject_id TEXT NOT NULL,
    lead_id INTEGER NOT NULL,
    final_summary TEXT NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now()
);
CREATE INDEX IF NOT EXISTS research_reports_lead_id_idx ON research_reports (lead_id);
"""


def _coerce_json_list(value: Any) -> list[Any]:
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            return []
        return parsed if isinstance(parsed, list) else []
    return []


def _coerce_json_object(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


class PostgresResearchStore:
    """PostgreSQL store using an asyncpg pool; creates its tables on first use."""

    def __init__(self, database_url: str):
        self.database_url = database_url
        self._pool: asyncpg.Pool | None = None
        self._pool_lock = asyncio.Lock()

    async def _get_pool(self) -> asyncpg.Pool:
        if self._pool is not None:
            return self._pool
        async with self._pool_lock:
            if self._pool is None:
                pool = await asyncpg.create_pool(self.database_url, min_size=1, max_size=10)
                try:
                    async with pool.acquire() as conn:
                        await conn.execute(SCHEMA_SQL)
                except Exception:
                    await pool.close()
                    raise
                # Published only once the tables exist.
                self._pool = pool
        return self._pool

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def save_context(self, context: SessionContext) -> None:
        data = context.to_dict()
        pool = await self._get_pool()
        try:
            async with pool.acquire() as conn:
                await conn.execute(
                    """
                    INSERT INTO research_contexts (id, lead_id, goal, snapshot, findings, history)
                    VALUES ($1, $2, $3, $4::jsonb, $5::jsonb, $6::jsonb)
                    ON CONFLICT (id) DO UPDATE
                    SET findings = EXCLUDED.findings,
                        history = EXCLUDED.history,
                        updated_at = now()
                    """,
                    data["id"],
                    data["lead_id"],
                    data["goal"],
                    json.dumps(data["snapshot"]),
                    json.dumps(data["findings"]),
                    json.dumps(data["history"]),
                )
        except Exception as e:
            log_service.log_db_operation("upsert", "research_contexts", "failed", error=str(e))
            raise
        log_service.log_db_operation(
            "upsert",
            "research_contexts",
            "success",
            details=f"{context.id}: {len(context.findings)} findings, {len(context.history)} history",
        )

    async def get_context(self, session_id: str) -> SessionContext | None:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT id, lead_id, goal, snapshot, findings, history
                FROM research_contexts
                WHERE id = $1
                """,
                session_id,
            )
        if not row:
            return None
        data = dict(row)
        data["snapshot"] = _coerce_json_object(data.get("snapshot"))
        data["findings"] = _coerce_json_list(data.get("findings"))
        data["history"] = _coerce_json_list(data.get("history"))
        return SessionContext.from_dict(data)

    async def save_report(self, report: Report) -> Report:
        pool = await self._get_pool()
        try:
            async with pool.acquire() as conn:
                await conn.execute(
                    """
                    INSERT INTO research_reports (id, owner_id, subject_id, lead_id, final_summary, created_at)
                    VALUES ($1, $2, $3, $4, $5, $6)
                    """,
                    report.id,
                    report.owner_id,
                    report.subject_id,
                    report.lead_id,
                    report.final_summary,
                    report.created_at,
                )
        except Exception as e:
            log_service.log_db_operation("insert", "research_reports", "failed", error=str(e))
            raise
        log_service.log_db_operation(
            "insert", "research_reports", "success", details=f"lead {report.lead_id}"
        )
        return report

    async def get_latest_report(self, lead_id: int) -> Report | None:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT id, owner_id, subject_id, lead_id, final_summary, created_at
                FROM research_reports
                WHERE lead_id = $1
                ORDER BY created_at DESC
                LIMIT 1
                """,
                lead_id,
            )
        return Report(**dict(row)) if row else None

    async def has_report(self, lead_id: int) -> bool:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            return bool(
                await conn.fetchval(
                    "SELECT EXISTS (SELECT 1 FROM research_reports WHERE lead_id = $1)",
                    lead_id,
                )
            )


_store: ResearchStore | None = None


def get_research_store() -> ResearchStore:
    global _store
    if _store is None:
        if settings.database_url:
            _store = PostgresResearchStore(settings.database_url)
        else:
            log_service.logger.warning("DATABASE_URL not set; research data is kept in memory")
            _store = InMemoryResearchStore()
    return _store


async def close_research_store() -> None:
    global _store
    if isinstance(_store, PostgresResearchStore):
        await _store.close()
    _store = None
