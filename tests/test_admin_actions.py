"""Tests for the permission-gated administrative action pipeline.

Tests cover:
- Corporation isolation for RH actors (no read, no mutation, no audit)
- Recruit review, career management, dismissal and data updates
- Registration token issuance
- Content actions (announcements, concursos, changelog, bug reports)
- Staff actions (user search, portal settings)
- One audit record per successful action, none for failures and no-ops
- A single winner when two sessions act on the same officer
"""

import pytest
from sqlalchemy import event, select

from sgprp.db.models import (
    AuditLogRecord,
    Civil,
    Policial,
    PolicialHistory,
    PolicialStatus,
    RegistrationToken,
)
from sgprp.services.admin_actions import STAFF_SEARCH_LIMIT, AdminActionService
from sgprp.services.audit_log import ActionKind
from sgprp.services.errors import (
    ConflictError,
    InvalidInputError,
    PermissionDeniedError,
    ResourceNotFoundError,
)
from sgprp.services.portal import PortalService
from tests.factories import civil_context, policial_context


@pytest.fixture
def contexts(world):
    """Session contexts of the seeded actors."""
    corp_permissions = {"PM": dict(world.pm.permissoes), "PC": dict(world.pc.permissoes)}

    def ctx(policial):
        return policial_context(policial, corp_permissions.get(policial.corporacao))

    return {
        "staff": ctx(world.staff),
        "rh_pm": ctx(world.rh_pm),
        "rh_pc": ctx(world.rh_pc),
        "officer_pm": ctx(world.officer_pm),
        "civil": civil_context(world.civil),
    }


@pytest.fixture
def service_as(db_session, contexts):
    def _service(name: str) -> AdminActionService:
        return AdminActionService(db_session, contexts[name])

    return _service


async def audit_records(session) -> list[AuditLogRecord]:
    result = await session.execute(select(AuditLogRecord).order_by(AuditLogRecord.id))
    return list(result.scalars())


async def reload(session, policial_id: int) -> Policial:
    return await session.get(Policial, policial_id, populate_existing=True)


async def history_of(session, policial_id: int) -> list[str]:
    result = await session.execute(
        select(PolicialHistory.tipo_evento)
        .where(PolicialHistory.policial_id == policial_id)
        .order_by(PolicialHistory.id)
    )
    return list(result.scalars())


class TestCorporationIsolation:
    """An RH actor of one corporation never reads or mutates another's officers."""

    async def test_rh_cannot_review_recruit_of_other_corporation(self, service_as, db_session, world):
        recruit_id = world.recruit_pc.id

        with pytest.raises(PermissionDeniedError):
            await service_as("rh_pm").review_recruit(
                recruit_id, "Aprovado", divisao="DHPP", patente="Investigador"
            )

        recruit = await reload(db_session, recruit_id)
        assert recruit.status is PolicialStatus.PENDING
        assert recruit.patente is None
        assert await audit_records(db_session) == []

    async def test_rh_cannot_manage_career_of_other_corporation(self, service_as, db_session, world):
        """RH of PM promoting a PC officer gets a denial, no mutation, no audit."""
        target_id = world.officer_pc.id

        with pytest.raises(PermissionDeniedError):
            await service_as("rh_pm").manage_career(target_id, "Promoção", "Delegado")

        target = await reload(db_session, target_id)
        assert target.patente == "Investigador"
        assert await audit_records(db_session) == []
        assert await history_of(db_session, target_id) == []

    async def test_rh_cannot_dismiss_officer_of_other_corporation(self, service_as, db_session, world):
        target_id = world.officer_pc.id

        with pytest.raises(PermissionDeniedError):
            await service_as("rh_pm").dismiss(target_id)

        assert (await reload(db_session, target_id)).status is PolicialStatus.APPROVED
        assert await audit_records(db_session) == []

    async def test_rh_cannot_edit_officer_of_other_corporation(self, service_as, db_session, world):
        target_id = world.officer_pc.id

        with pytest.raises(PermissionDeniedError):
            await service_as("rh_pm").update_policial(
                target_id,
                {
                    "nome_completo": "Renamed",
                    "passaporte": "20002",
                    "patente": "Investigador",
                    "divisao": "DHPP",
                },
            )

        assert (await reload(db_session, target_id)).nome_completo == "Diana Investigadora"

    async def test_rh_listings_are_scoped(self, service_as, world):
        recruits = await service_as("rh_pm").list_recruits()
        officers = await service_as("rh_pm").list_officers()

        assert [r.passaporte for r in recruits] == ["10003"]
        assert {o.corporacao for o in officers} <= {"PM", None}
        assert "20002" not in {o.passaporte for o in officers}

    async def test_rh_search_does_not_find_other_corporation(self, service_as, world):
        assert await service_as("rh_pm").search_policiais("Diana") == []
        assert [p.passaporte for p in await service_as("rh_pc").search_policiais("Diana")] == ["20002"]

    async def test_staff_reaches_every_corporation(self, service_as, db_session, world):
        recruit_id = world.recruit_pc.id

        await service_as("staff").review_recruit(
            recruit_id, "Aprovado", divisao="DHPP", patente="Investigador"
        )

        assert (await reload(db_session, recruit_id)).status is PolicialStatus.APPROVED
        assert len(await service_as("staff").list_recruits()) == 1


class TestReviewRecruit:
    """Tests for approving and rejecting recruits."""

    async def test_approve_sets_rank_division_history_and_audit(self, service_as, db_session, world):
        recruit_id = world.recruit_pm.id

        outcome = await service_as("rh_pm").review_recruit(
            recruit_id, "Aprovado", divisao="ROTA", patente="Soldado"
        )

        recruit = await reload(db_session, recruit_id)
        assert outcome.changed
        assert recruit.status is PolicialStatus.APPROVED
        assert (recruit.patente, recruit.divisao) == ("Soldado", "ROTA")
        assert await history_of(db_session, recruit_id) == ["Aprovação"]
        records = await audit_records(db_session)
        assert [r.acao for r in records] == [ActionKind.APPROVE_RECRUIT.value]
        assert records[0].corporacao == "PM"
        assert records[0].usuario_id == world.rh_pm.id
        assert records[0].detalhes["rank"] == "Soldado"

    async def test_approve_with_rank_of_other_corporation_rejected(self, service_as, db_session, world):
        recruit_id = world.recruit_pm.id

        with pytest.raises(InvalidInputError, match="Rank"):
            await service_as("rh_pm").review_recruit(
                recruit_id, "Aprovado", divisao="Patrulha", patente="Delegado"
            )

        assert (await reload(db_session, recruit_id)).status is PolicialStatus.PENDING
        assert await audit_records(db_session) == []
        assert await history_of(db_session, recruit_id) == []

    async def test_approve_requires_division_and_rank(self, service_as, world):
        with pytest.raises(InvalidInputError):
            await service_as("rh_pm").review_recruit(world.recruit_pm.id, "Aprovado", patente="Soldado")

    async def test_reject(self, service_as, db_session, world):
        recruit_id = world.recruit_pm.id

        await service_as("rh_pm").review_recruit(recruit_id, "Reprovado")

        assert (await reload(db_session, recruit_id)).status is PolicialStatus.REJECTED
        assert [r.acao for r in await audit_records(db_session)] == [ActionKind.REJECT_RECRUIT.value]

    async def test_already_processed_recruit_not_found(self, service_as, world):
        with pytest.raises(ResourceNotFoundError):
            await service_as("rh_pm").review_recruit(world.officer_pm.id, "Reprovado")

    async def test_unknown_status_rejected(self, service_as, world):
        with pytest.raises(InvalidInputError):
            await service_as("rh_pm").review_recruit(world.recruit_pm.id, "Talvez")

    async def test_plain_officer_denied(self, service_as, world):
        with pytest.raises(PermissionDeniedError):
            await service_as("officer_pm").review_recruit(world.recruit_pm.id, "Reprovado")


class TestDismiss:
    """Tests for dismissing officers."""

    async def test_dismissal_is_terminal_state_not_deletion(self, service_as, db_session, world):
        target_id = world.officer_pm.id

        outcome = await service_as("rh_pm").dismiss(target_id)

        target = await reload(db_session, target_id)
        assert outcome.changed
        assert target is not None
        assert target.status is PolicialStatus.REJECTED
        assert target.patente is None
        assert target.divisao is None
        assert await history_of(db_session, target_id) == ["Demissão"]
        assert [r.acao for r in await audit_records(db_session)] == [ActionKind.DISMISS_POLICIAL.value]

    async def test_second_dismissal_is_a_no_op(self, service_as, db_session, world):
        target_id = world.officer_pm.id
        await service_as("rh_pm").dismiss(target_id)

        outcome = await service_as("rh_pm").dismiss(target_id)

        assert not outcome.changed
        assert len(await audit_records(db_session)) == 1

    async def test_cannot_dismiss_self(self, service_as, world):
        with pytest.raises(InvalidInputError):
            await service_as("rh_pm").dismiss(world.rh_pm.id)

    async def test_unknown_officer(self, service_as):
        with pytest.raises(ResourceNotFoundError):
            await service_as("rh_pm").dismiss(9999)


class TestConcurrentActions:
    """Two sessions acting on the same officer: one wins, one audit record.

    The losing session reads the target first; the winning session then
    commits its action before the loser writes.
    """

    async def test_concurrent_dismissals_audit_once(
        self, session_factory, contexts, db_session, world, monkeypatch
    ):
        target_id = world.officer_pm.id
        async with session_factory() as first, session_factory() as second:
            winner = AdminActionService(first, contexts["rh_pm"])
            loser = AdminActionService(second, contexts["staff"])
            load_target = loser._get_policial

            async def load_then_lose_race(policial_id):
                target = await load_target(policial_id)
                await winner.dismiss(policial_id)
                return target

            monkeypatch.setattr(loser, "_get_policial", load_then_lose_race)
            outcome = await loser.dismiss(target_id)

        assert not outcome.changed
        assert outcome.audit is None
        records = await audit_records(db_session)
        assert [r.acao for r in records] == [ActionKind.DISMISS_POLICIAL.value]
        assert records[0].usuario_id == world.rh_pm.id
        assert await history_of(db_session, target_id) == ["Demissão"]

    async def test_review_after_concurrent_review_not_found(
        self, session_factory, contexts, db_session, world, monkeypatch
    ):
        """Approve in one session while another rejects: only the rejection lands."""
        recruit_id = world.recruit_pm.id
        async with session_factory() as first, session_factory() as second:
            rejecter = AdminActionService(first, contexts["rh_pm"])
            approver = AdminActionService(second, contexts["staff"])
            check_division = approver._require_division

            async def check_then_lose_race(corporacao, divisao):
                await check_division(corporacao, divisao)
                await rejecter.review_recruit(recruit_id, "Reprovado")

            monkeypatch.setattr(approver, "_require_division", check_then_lose_race)
            with pytest.raises(ResourceNotFoundError):
                await approver.review_recruit(
                    recruit_id, "Aprovado", divisao="ROTA", patente="Soldado"
                )

        recruit = await reload(db_session, recruit_id)
        assert recruit.status is PolicialStatus.REJECTED
        assert recruit.patente is None
        assert [r.acao for r in await audit_records(db_session)] == [
            ActionKind.REJECT_RECRUIT.value
        ]
        assert await history_of(db_session, recruit_id) == ["Reprovação"]


class TestManageCareer:
    """Tests for promotions and demotions."""

    async def test_promotion(self, service_as, db_session, world):
        target_id = world.officer_pm.id

        await service_as("rh_pm").manage_career(target_id, "Promoção", "Cabo")

        assert (await reload(db_session, target_id)).patente == "Cabo"
        records = await audit_records(db_session)
        assert records[0].acao == ActionKind.MANAGE_CAREER.value
        assert records[0].detalhes["previousRank"] == "Soldado"
        assert records[0].detalhes["newRank"] == "Cabo"

    async def test_unknown_action(self, service_as, world):
        with pytest.raises(InvalidInputError):
            await service_as("rh_pm").manage_career(world.officer_pm.id, "Transferência", "Cabo")

    async def test_rank_must_belong_to_target_corporation(self, service_as, db_session, world):
        target_id = world.officer_pm.id

        with pytest.raises(InvalidInputError):
            await service_as("rh_pm").manage_career(target_id, "Promoção", "Delegado")

        assert (await reload(db_session, target_id)).patente == "Soldado"

    async def test_inactive_officer_cannot_be_promoted(self, service_as, world):
        with pytest.raises(InvalidInputError):
            await service_as("rh_pm").manage_career(world.recruit_pm.id, "Promoção", "Cabo")


class TestUpdatePolicial:
    """Tests for editing officer data."""

    @staticmethod
    def current_fields(**changes) -> dict:
        return {
            "nome_completo": "Carlos Soldado",
            "passaporte": "10002",
            "discord_id": "discord-10002",
            "telefone_rp": None,
            "patente": "Soldado",
            "divisao": "Patrulha",
            **changes,
        }

    async def test_no_changes_is_a_no_op(self, service_as, db_session, world):
        outcome = await service_as("rh_pm").update_policial(world.officer_pm.id, self.current_fields())

        assert not outcome.changed
        assert await audit_records(db_session) == []

    async def test_omitted_discord_id_is_kept(self, service_as, db_session, world):
        outcome = await service_as("rh_pm").update_policial(
            world.officer_pm.id, self.current_fields(discord_id=None)
        )

        assert not outcome.changed

    async def test_omitted_optional_field_is_kept(self, service_as, db_session, world):
        target_id = world.officer_pm.id
        await service_as("rh_pm").update_policial(
            target_id, self.current_fields(telefone_rp="555-0102")
        )
        fields = self.current_fields(nome_completo="Carlos Cabo")
        del fields["telefone_rp"]

        outcome = await service_as("rh_pm").update_policial(target_id, fields)

        target = await reload(db_session, target_id)
        assert outcome.changed
        assert outcome.data["changes"] == ['nome_completo: "Carlos Soldado" -> "Carlos Cabo"']
        assert target.telefone_rp == "555-0102"

    async def test_changes_are_applied_and_audited(self, service_as, db_session, world):
        target_id = world.officer_pm.id

        outcome = await service_as("rh_pm").update_policial(
            target_id, self.current_fields(nome_completo="Carlos Cabo", divisao="ROTA")
        )

        target = await reload(db_session, target_id)
        assert outcome.changed
        assert len(outcome.data["changes"]) == 2
        assert (target.nome_completo, target.divisao) == ("Carlos Cabo", "ROTA")
        records = await audit_records(db_session)
        assert records[0].acao == ActionKind.UPDATE_POLICIAL_DATA.value
        assert records[0].detalhes["targetName"] == "Carlos Soldado"
        assert await history_of(db_session, target_id) == ["Atualização de Dados"]

    async def test_passport_in_use_conflicts(self, service_as, db_session, world):
        with pytest.raises(ConflictError):
            await service_as("rh_pm").update_policial(
                world.officer_pm.id, self.current_fields(passaporte="10001")
            )

        assert await audit_records(db_session) == []

    async def test_required_fields(self, service_as, world):
        with pytest.raises(InvalidInputError):
            await service_as("rh_pm").update_policial(
                world.officer_pm.id, self.current_fields(patente=None)
            )


class TestRegistrationTokens:
    """Tests for issuing registration tokens."""

    async def test_rh_token_defaults_to_own_corporation(self, service_as, db_session):
        issued = await service_as("rh_pm").generate_registration_token(max_uses=3, duration_hours=48)

        assert issued.corporacao == "PM"
        assert len(issued.token) == 64
        stored = (await db_session.execute(select(RegistrationToken))).scalar_one()
        assert stored.max_uses == 3
        assert stored.is_active
        records = await audit_records(db_session)
        assert records[0].acao == ActionKind.GENERATE_REGISTRATION_TOKEN.value
        assert records[0].detalhes["tokenStart"] == issued.token[:8]
        assert issued.token not in str(records[0].detalhes)

    async def test_configured_defaults(self, db_session, contexts, test_settings):
        service = AdminActionService.from_settings(db_session, contexts["rh_pm"], test_settings)

        issued = await service.generate_registration_token()

        assert issued.max_uses == test_settings.registration.default_max_uses
        assert issued.duration_hours == test_settings.registration.default_duration_hours

    async def test_rh_cannot_issue_for_other_corporation(self, service_as, db_session):
        with pytest.raises(PermissionDeniedError):
            await service_as("rh_pm").generate_registration_token(corporacao="PC")

        assert await audit_records(db_session) == []

    @pytest.mark.parametrize(("max_uses", "duration_hours"), [(0, 24), (101, 24), (1, 0), (1, 721)])
    async def test_limits(self, service_as, max_uses, duration_hours):
        with pytest.raises(InvalidInputError):
            await service_as("rh_pm").generate_registration_token(
                max_uses=max_uses, duration_hours=duration_hours
            )

    async def test_global_token_requires_staff(self, service_as):
        with pytest.raises(PermissionDeniedError):
            await service_as("rh_pm").generate_registration_token(corporacao="PM", global_token=True)

    async def test_global_token_requires_corporation(self, service_as):
        with pytest.raises(InvalidInputError):
            await service_as("staff").generate_registration_token(global_token=True)

    async def test_staff_global_token(self, service_as, db_session):
        issued = await service_as("staff").generate_registration_token(
            corporacao="PC", global_token=True
        )

        assert issued.corporacao == "PC"
        records = await audit_records(db_session)
        assert records[0].acao == ActionKind.GENERATE_GLOBAL_TOKEN.value
        assert records[0].detalhes["generatedBy"] == "Staff"

    async def test_unknown_corporation(self, service_as, db_session):
        with pytest.raises(InvalidInputError):
            await service_as("staff").generate_registration_token(corporacao="XX", global_token=True)

        assert await audit_records(db_session) == []


class TestContent:
    """Tests for announcements, concursos, changelog and bug reports."""

    @staticmethod
    def concurso(**changes) -> dict:
        return {
            "titulo": "Concurso Soldado 2025",
            "descricao": "Vagas para soldado",
            "vagas": 10,
            "status": "Aberto",
            "data_abertura": None,
            "data_encerramento": None,
            "link_edital": None,
            "valor": None,
            **changes,
        }

    async def test_general_announcement(self, service_as, db_session):
        announcement = await service_as("rh_pm").create_announcement("Aviso", "Texto", "GERAL")

        assert announcement.corporacao is None
        records = await audit_records(db_session)
        assert records[0].detalhes["targetCorp"] == "Geral"

    async def test_rh_cannot_announce_to_other_corporation(self, service_as, db_session):
        with pytest.raises(PermissionDeniedError):
            await service_as("rh_pm").create_announcement("Aviso", "Texto", "PC")

        assert await audit_records(db_session) == []

    async def test_concurso_belongs_to_actor_corporation(self, service_as):
        concurso = await service_as("rh_pm").create_concurso(self.concurso())

        assert concurso.corporacao == "PM"

    async def test_concurso_needs_vacancies(self, service_as):
        with pytest.raises(InvalidInputError):
            await service_as("rh_pm").create_concurso(self.concurso(vagas=0))

    async def test_concurso_update_and_delete_are_scoped(self, service_as, db_session):
        concurso = await service_as("rh_pm").create_concurso(self.concurso())
        concurso_id = concurso.id

        with pytest.raises(PermissionDeniedError):
            await service_as("rh_pc").update_concurso(concurso_id, self.concurso(vagas=3))
        updated = await service_as("rh_pm").update_concurso(concurso_id, self.concurso(vagas=3))
        await service_as("rh_pm").delete_concurso(concurso_id)

        assert updated.vagas == 3
        assert [r.acao for r in await audit_records(db_session)] == [
            ActionKind.CREATE_CONCURSO.value,
            ActionKind.UPDATE_CONCURSO.value,
            ActionKind.DELETE_CONCURSO.value,
        ]
        with pytest.raises(ResourceNotFoundError):
            await service_as("rh_pm").get_concurso(concurso_id)

    async def test_changelog_entry(self, service_as, db_session):
        entry = await service_as("staff").create_changelog_entry("Nova versão", "Mudanças", "1.2.0")

        changelog = await PortalService(db_session).list_changelog()
        assert changelog[0]["id"] == entry.id
        assert changelog[0]["author_name"] == "Staff Cidade"

    async def test_any_officer_can_report_bug(self, service_as, db_session):
        await service_as("officer_pm").report_bug("The roster page does not load")

        records = await audit_records(db_session)
        assert records[0].acao == ActionKind.BUG_REPORT.value
        assert records[0].corporacao == "PM"

    async def test_bug_report_too_short(self, service_as):
        with pytest.raises(InvalidInputError):
            await service_as("officer_pm").report_bug("broken")

    async def test_citizen_cannot_report_bug(self, service_as):
        with pytest.raises(PermissionDeniedError):
            await service_as("civil").report_bug("The roster page does not load")


class TestStaffActions:
    """Tests for staff-only actions."""

    async def test_user_search_spans_account_types_and_is_audited(self, service_as, db_session):
        users = await service_as("staff").staff_search_users("a", "Todos")

        assert {u["tipo"] for u in users} == {"Policial", "Civil"}
        records = await audit_records(db_session)
        assert records[0].acao == ActionKind.STAFF_SEARCH_USERS.value
        assert records[0].detalhes["results"] == len(users)

    async def test_user_search_by_type(self, service_as):
        users = await service_as("staff").staff_search_users(None, "Civil")

        assert [u["passaporte"] for u in users] == ["90001"]

    async def test_user_search_filters_and_limits_in_the_database(
        self, service_as, db_session, db_engine
    ):
        for i in range(STAFF_SEARCH_LIMIT + 5):
            db_session.add(
                Civil(
                    id_passaporte=f"7{i:04d}",
                    nome_completo=f"Zeca {i:03d}",
                    gmail=f"zeca{i}@example.com",
                    senha_hash="x",
                )
            )
        await db_session.commit()
        statements: list[str] = []

        def capture(conn, cursor, statement, parameters, context, executemany):
            statements.append(statement)

        event.listen(db_engine.sync_engine, "before_cursor_execute", capture)
        try:
            users = await service_as("staff").staff_search_users("zeca", "Todos")
        finally:
            event.remove(db_engine.sync_engine, "before_cursor_execute", capture)

        assert [u["nome_completo"] for u in users] == [
            f"Zeca {i:03d}" for i in range(STAFF_SEARCH_LIMIT)
        ]
        searches = [
            s for s in statements if "FROM policiais" in s or "FROM usuarios" in s
        ]
        assert len(searches) == 2
        assert all("LIKE" in s.upper() and "LIMIT" in s.upper() for s in searches)

    async def test_rh_cannot_search_users(self, service_as):
        with pytest.raises(PermissionDeniedError):
            await service_as("rh_pm").staff_search_users("a")

    async def test_portal_settings(self, service_as, db_session):
        await service_as("staff").update_portal_settings(
            {"header_title": "Nova Secretaria", "header_subtitle": None}
        )

        settings = await PortalService(db_session).get_settings()
        assert settings["header_title"] == "Nova Secretaria"
        assert settings["header_subtitle"] == "Portal Oficial"

    async def test_portal_settings_require_values(self, service_as):
        with pytest.raises(InvalidInputError):
            await service_as("staff").update_portal_settings({"header_title": None})
