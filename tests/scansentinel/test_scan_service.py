"""Tests for ScanService."""

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from scan_fakes import make_scan

from scansentinel.dao.base import Page
from scansentinel.dao.scan_dao import ScanDAO
from scansentinel.services import InvalidStateError, NotFoundError, ValidationError
from scansentinel.services.scan_service import ScanService


@pytest.fixture
def dao():
    return AsyncMock(spec=ScanDAO)


@pytest.fixture
def service(dao):
    return ScanService(dao)


@pytest.fixture
def session():
    return AsyncMock()


class TestGet:
    async def test_found(self, service, dao, session):
        scan = make_scan()
        dao.get_by_id.return_value = scan
        assert await service.get(session, scan.id) is scan

    async def test_not_found(self, service, dao, session):
        dao.get_by_id.return_value = None
        with pytest.raises(NotFoundError, match="scan not found"):
            await service.get(session, uuid.uuid4())


class TestListByOwner:
    async def test_returns_page_dict(self, service, dao, session):
        scans = [make_scan(), make_scan()]
        dao.list_by_owner.return_value = Page(data=scans, total=5, has_more=True)

        result = await service.list_by_owner(session, "user-1", limit=2, offset=0)

        assert result == {"data": scans, "total": 5, "has_more": True}
        dao.list_by_owner.assert_awaited_once_with(session, "user-1", 2, 0)


class TestCreate:
    async def test_repository_target_normalised(self, service, dao, session):
        dao.create.return_value = make_scan()
        await service.create(
            session,
            owner_id="user-1",
            name="  nightly ",
            kind="repository",
            target="git@github.com:Org/Repo.git",
        )
        kwargs = dao.create.call_args.kwargs
        assert kwargs["target"] == "Org/Repo"
        assert kwargs["name"] == "nightly"
        assert kwargs["branch"] == "main"
        assert kwargs["status"] == "pending"

    async def test_explicit_branch(self, service, dao, session):
        dao.create.return_value = make_scan()
        await service.create(
            session, owner_id="u", name="n", kind="repository", target="a/b", branch="dev"
        )
        assert dao.create.call_args.kwargs["branch"] == "dev"

    async def test_blank_branch_defaults(self, service, dao, session):
        dao.create.return_value = make_scan()
        await service.create(
            session, owner_id="u", name="n", kind="repository", target="a/b", branch="  "
        )
        assert dao.create.call_args.kwargs["branch"] == "main"

    async def test_unsupported_kind_accepted(self, service, dao, session):
        dao.create.return_value = make_scan(kind="url")
        await service.create(
            session, owner_id="u", name="n", kind="url", target="https://example.com"
        )
        assert dao.create.call_args.kwargs["target"] == "https://example.com"

    @pytest.mark.parametrize(
        ("kwargs", "message"),
        [
            ({"kind": "binary"}, "unknown scan kind"),
            ({"name": "   "}, "name is required"),
            ({"target": ""}, "target is required"),
            ({"target": "not a repo"}, ""),
        ],
    )
    async def test_validation(self, service, dao, session, kwargs, message):
        args = {"owner_id": "u", "name": "n", "kind": "repository", "target": "a/b"}
        args.update(kwargs)
        with pytest.raises(ValidationError, match=message):
            await service.create(session, **args)
        dao.create.assert_not_awaited()


class TestTransitions:
    async def test_claim_success(self, service, dao, session):
        scan = make_scan(status="in_progress")
        dao.claim.return_value = True
        dao.get_by_id.return_value = scan
        started = datetime.now(timezone.utc)

        assert await service.claim(session, scan.id, started_at=started) is scan
        dao.claim.assert_awaited_once_with(session, scan.id, started_at=started)

    async def test_claim_rejected(self, service, dao, session):
        dao.claim.return_value = False
        dao.get_by_id.return_value = make_scan(status="completed")
        with pytest.raises(InvalidStateError, match="cannot start scan with status completed"):
            await service.claim(session, uuid.uuid4(), started_at=datetime.now(timezone.utc))

    async def test_claim_unknown(self, service, dao, session):
        dao.claim.return_value = False
        dao.get_by_id.return_value = None
        with pytest.raises(NotFoundError):
            await service.claim(session, uuid.uuid4(), started_at=datetime.now(timezone.utc))

    async def test_mark_completed(self, service, dao, session):
        dao.update_results.return_value = True
        now = datetime.now(timezone.utc)
        await service.mark_completed(
            session, uuid.uuid4(), results=[], summary={}, completed_at=now, duration_ms=5
        )
        assert dao.update_results.await_args.kwargs["duration_ms"] == 5

    async def test_mark_completed_not_in_progress(self, service, dao, session):
        dao.update_results.return_value = False
        with pytest.raises(InvalidStateError):
            await service.mark_completed(
                session,
                uuid.uuid4(),
                results=[],
                summary={},
                completed_at=datetime.now(timezone.utc),
                duration_ms=0,
            )

    async def test_mark_failed_is_conditional(self, service, dao, session):
        dao.update_status.return_value = True
        await service.mark_failed(
            session,
            uuid.uuid4(),
            error="boom",
            failed_stage="traverse",
            completed_at=datetime.now(timezone.utc),
            duration_ms=1,
        )
        kwargs = dao.update_status.await_args.kwargs
        assert kwargs["status"] == "failed"
        assert kwargs["expected_status"] == "in_progress"
        assert kwargs["error"] == "boom"
        assert kwargs["failed_stage"] == "traverse"

    async def test_mark_failed_not_in_progress(self, service, dao, session):
        dao.update_status.return_value = False
        with pytest.raises(InvalidStateError):
            await service.mark_failed(
                session,
                uuid.uuid4(),
                error="boom",
                failed_stage=None,
                completed_at=datetime.now(timezone.utc),
                duration_ms=1,
            )
