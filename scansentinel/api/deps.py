"""Dependency injection — session factory, pipeline, and service singletons."""

from __future__ import annotations

import os

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from scansentinel.agent.llm_client import LLMClient
from scansentinel.core.database import create_engine_from_env, make_session_factory
from scansentinel.dao.scan_dao import ScanDAO
from scansentinel.engines.scan_pipeline.aggregator import DEFAULT_CONCURRENCY
from scansentinel.engines.scan_pipeline.analysis_client import LLMAnalysisClient
from scansentinel.engines.scan_pipeline.github_client import GitHubClient
from scansentinel.engines.scan_pipeline.github_source import GitHubRepositorySource
from scansentinel.engines.scan_pipeline.lifecycle import ScanLifecycleManager
from scansentinel.scheduler import (
    DEFAULT_QUEUE_SIZE,
    DEFAULT_SWEEP_INTERVAL,
    DEFAULT_WORKERS,
    ScanScheduler,
)
from scansentinel.services.scan_service import ScanService

# ---------------------------------------------------------------------------
# DAO / service singletons
# ---------------------------------------------------------------------------
_scan_dao = ScanDAO()
_scan_service = ScanService(_scan_dao)

# ---------------------------------------------------------------------------
# Engine, pipeline, scheduler (initialised by app lifespan)
# ---------------------------------------------------------------------------
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None
_github_client: GitHubClient | None = None
_lifecycle: ScanLifecycleManager | None = None
_scheduler: ScanScheduler | None = None


def _env_float(key: str, default: float) -> float:
    return float(os.environ.get(key, default))


def _env_int(key: str, default: int) -> int:
    return int(os.environ.get(key, default))


def init_session_factory(database_url: str | None = None) -> async_sessionmaker[AsyncSession]:
    """Create the async engine and session factory. Called once at startup."""
    global _engine, _session_factory  # noqa: PLW0603
    _engine = create_engine_from_env(database_url)
    _session_factory = make_session_factory(_engine)
    return _session_factory


def set_session_factory(factory: async_sessionmaker[AsyncSession]) -> None:
    """Override session factory (for testing)."""
    global _session_factory  # noqa: PLW0603
    _session_factory = factory


def init_pipeline(
    session_factory: async_sessionmaker[AsyncSession],
) -> tuple[ScanLifecycleManager, ScanScheduler]:
    """Wire GitHub source, LLM analysis client, lifecycle manager and scheduler."""
    global _github_client, _lifecycle, _scheduler  # noqa: PLW0603
    _github_client = GitHubClient()
    _lifecycle = ScanLifecycleManager(
        session_factory,
        _scan_service,
        GitHubRepositorySource(_github_client),
        LLMAnalysisClient(LLMClient()),
        concurrency=_env_int("SCANSENTINEL_ANALYSIS_CONCURRENCY", DEFAULT_CONCURRENCY),
        call_timeout=_env_float("SCANSENTINEL_CALL_TIMEOUT", 120),
        scan_deadline=_env_float("SCANSENTINEL_SCAN_DEADLINE", 3600),
    )
    _scheduler = ScanScheduler(
        _lifecycle.execute,
        workers=_env_int("SCANSENTINEL_SCAN_WORKERS", DEFAULT_WORKERS),
        queue_size=_env_int("SCANSENTINEL_SCAN_QUEUE_SIZE", DEFAULT_QUEUE_SIZE),
        sweep_fn=_lifecycle.list_pending_ids,
        sweep_interval=_env_float("SCANSENTINEL_PENDING_SWEEP_INTERVAL", DEFAULT_SWEEP_INTERVAL),
    )
    _lifecycle.attach_scheduler(_scheduler)
    return _lifecycle, _scheduler


async def shutdown() -> None:
    """Close the GitHub client and dispose the engine."""
    global _engine, _github_client  # noqa: PLW0603
    if _github_client is not None:
        await _github_client.close()
        _github_client = None
    if _engine is not None:
        await _engine.dispose()
        _engine = None


# ---------------------------------------------------------------------------
# Getters (for Depends())
# ---------------------------------------------------------------------------


def get_scan_service() -> ScanService:
    return _scan_service


def get_lifecycle_manager() -> ScanLifecycleManager:
    if _lifecycle is None:
        raise RuntimeError("call init_pipeline() before handling requests")
    return _lifecycle
