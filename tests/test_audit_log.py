"""Tests for the append-only audit log service.

Tests cover:
- Append behavior (flush only, caller owns the transaction)
- UNKNOWN action kind handling
- Corporation scoping of the RH view
- Text and action filters
- Pagination
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from sgprp.db.models import AuditLogRecord
from sgprp.services.audit_log import ActionKind, AuditLogService
from tests.factories import policial_context


def create_mock_session() -> MagicMock:
    session = MagicMock()
    session.add = MagicMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    return session


@pytest.fixture
async def seeded_log(db_session, world):
    """Five records, oldest first.

    1. RH PM approves a PM recruit
    2. RH PC promotes a PC officer
    3. A PC officer reports a bug
    4. Staff creates something concerning PM
    5. Staff updates portal settings (no corporation)
    """
    audit = AuditLogService(db_session)
    entries = [
        await audit.append(
            kind=ActionKind.APPROVE_RECRUIT,
            actor_id=world.rh_pm.id,
            details={"targetName": "Eduardo Recruta"},
            corporacao="PM",
        ),
        await audit.append(
            kind=ActionKind.MANAGE_CAREER,
            actor_id=world.rh_pc.id,
            details={"targetName": "Diana Investigadora", "newRank": "Delegado"},
            corporacao="PC",
        ),
        await audit.append(
            kind=ActionKind.BUG_REPORT,
            actor_id=world.officer_pc.id,
            details={"description": "Roster page is slow"},
            corporacao="PC",
        ),
        await audit.append(
            kind=ActionKind.CREATE_RANK,
            actor_id=world.staff.id,
            details={"nome": "Subtenente"},
            corporacao="PM",
            ip_address="10.0.0.7",
        ),
        await audit.append(
            kind=ActionKind.UPDATE_PORTAL_SETTINGS,
            actor_id=world.staff.id,
            details={"changes": {"header_title": "Nova"}},
        ),
    ]
    await db_session.commit()
    return [entry.id for entry in entries]


class TestAppend:
    """Tests for appending records."""

    async def test_append_only_flushes(self):
        """The caller commits; append never does."""
        session = create_mock_session()

        entry = await AuditLogService(session).append(
            kind=ActionKind.DISMISS_POLICIAL,
            actor_id=7,
            details={"targetUserId": 9},
            corporacao="PM",
            ip_address="192.168.1.1",
        )

        session.add.assert_called_once()
        session.flush.assert_awaited_once()
        session.commit.assert_not_awaited()
        assert entry.kind is ActionKind.DISMISS_POLICIAL
        assert entry.acao == "Dismiss Policial"
        assert entry.detalhes == {"targetUserId": 9}

    async def test_unknown_kind_cannot_be_written(self):
        session = create_mock_session()

        with pytest.raises(ValueError, match="unknown kind"):
            await AuditLogService(session).append(
                kind=ActionKind.UNKNOWN, actor_id=1, details={}
            )

        session.add.assert_not_called()


class TestActionKind:
    """Tests for parsing stored labels."""

    def test_known_label(self):
        assert ActionKind.parse("Bug Report") is ActionKind.BUG_REPORT

    @pytest.mark.parametrize("label", ["Legacy Action", "", None])
    def test_unknown_label(self, label):
        assert ActionKind.parse(label) is ActionKind.UNKNOWN

    async def test_unknown_rows_remain_readable(self, db_session, world):
        db_session.add(AuditLogRecord(usuario_id=world.staff.id, acao="Legacy Action", detalhes={}))
        await db_session.commit()

        page = await AuditLogService(db_session).query(policial_context(world.staff).gate)

        assert page.logs[0].kind is ActionKind.UNKNOWN
        assert page.logs[0].acao == "Legacy Action"


class TestQueryScope:
    """Tests for who sees which records."""

    async def test_global_actor_sees_everything(self, db_session, world, seeded_log):
        page = await AuditLogService(db_session).query(policial_context(world.staff).gate)

        assert page.total_logs == 5
        assert [entry.id for entry in page.logs] == list(reversed(seeded_log))

    async def test_rh_sees_own_corporation_and_bug_reports(self, db_session, world, seeded_log):
        gate = policial_context(world.rh_pm, world.pm.permissoes).gate

        page = await AuditLogService(db_session).query(gate)

        approve, career, bug, rank, _portal = seeded_log
        assert {entry.id for entry in page.logs} == {approve, bug, rank}
        assert career not in {entry.id for entry in page.logs}

    async def test_entries_carry_actor_name(self, db_session, world, seeded_log):
        page = await AuditLogService(db_session).query(
            policial_context(world.staff).gate, action=ActionKind.APPROVE_RECRUIT.value
        )

        assert page.logs[0].admin_nome == "Ana RH PM"
        assert page.logs[0].admin_corporacao == "PM"
        assert page.logs[0].to_dict()["acao"] == "Approve Recruit"


class TestQueryFilters:
    """Tests for text, action filters and pagination."""

    @pytest.fixture
    def staff_gate(self, world):
        return policial_context(world.staff).gate

    async def test_text_matches_details(self, db_session, staff_gate, seeded_log):
        page = await AuditLogService(db_session).query(staff_gate, text="Eduardo")

        assert [entry.id for entry in page.logs] == [seeded_log[0]]

    async def test_text_matches_ip_address(self, db_session, staff_gate, seeded_log):
        page = await AuditLogService(db_session).query(staff_gate, text="10.0.0.7")

        assert [entry.id for entry in page.logs] == [seeded_log[3]]

    async def test_text_matches_actor_name(self, db_session, staff_gate, seeded_log):
        page = await AuditLogService(db_session).query(staff_gate, text="Bruno")

        assert [entry.id for entry in page.logs] == [seeded_log[1]]

    async def test_action_filter(self, db_session, staff_gate, seeded_log):
        page = await AuditLogService(db_session).query(staff_gate, action="Bug Report")

        assert [entry.kind for entry in page.logs] == [ActionKind.BUG_REPORT]

    async def test_all_actions_marker(self, db_session, staff_gate, seeded_log):
        page = await AuditLogService(db_session).query(staff_gate, action="Todos")

        assert page.total_logs == 5

    async def test_pagination(self, db_session, staff_gate, seeded_log):
        page = await AuditLogService(db_session).query(staff_gate, page=2, limit=2)

        assert page.current_page == 2
        assert page.total_pages == 3
        assert page.total_logs == 5
        assert [entry.id for entry in page.logs] == [seeded_log[2], seeded_log[1]]
        assert page.to_dict()["totalPages"] == 3

    async def test_page_below_one_is_first_page(self, db_session, staff_gate, seeded_log):
        page = await AuditLogService(db_session).query(staff_gate, page=0, limit=2)

        assert page.current_page == 1
        assert [entry.id for entry in page.logs] == [seeded_log[4], seeded_log[3]]
