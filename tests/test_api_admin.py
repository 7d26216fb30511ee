"""Tests for the RH panel, staff panel, member area and public endpoints.

Tests cover:
- Panel gates (police account, admin capability, staff capability)
- Corporation isolation over HTTP (403, no mutation, no audit row)
- Recruit approval, dismissal and the audit log endpoint
- Registration tokens issued and consumed over HTTP
- Incident report filing and assignment
- Public content and the health check
"""

from sqlalchemy import func, select

from sgprp.db.models import AuditLogRecord, Policial
from tests.factories import DEFAULT_PASSWORD


async def audit_count(session) -> int:
    result = await session.execute(select(func.count(AuditLogRecord.id)))
    return result.scalar_one()


class TestPanelGates:
    """Tests for who reaches which panel."""

    async def test_unauthenticated(self, api_client):
        response = await api_client.get("/api/admin/recrutas")

        assert response.status_code == 401

    async def test_citizen_denied(self, api_client, world, auth_headers):
        response = await api_client.get("/api/admin/recrutas", headers=auth_headers(world.civil))

        assert response.status_code == 403

    async def test_plain_officer_denied(self, api_client, world, auth_headers):
        response = await api_client.get(
            "/api/admin/recrutas", headers=auth_headers(world.officer_pm)
        )

        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"

    async def test_rh_cannot_use_staff_actions(self, api_client, world, auth_headers):
        response = await api_client.post(
            "/api/staff/search-users", json={"query": "a"}, headers=auth_headers(world.rh_pm)
        )

        assert response.status_code == 403

    async def test_rh_reads_structure(self, api_client, world, auth_headers):
        response = await api_client.get("/api/staff/structure", headers=auth_headers(world.rh_pm))

        assert response.status_code == 200
        assert {c["sigla"] for c in response.json()["corporacoes"]} == {"PM", "PC"}

    async def test_staff_search(self, api_client, world, auth_headers):
        response = await api_client.post(
            "/api/staff/search-users",
            json={"query": "Gabriel", "searchType": "Civil"},
            headers=auth_headers(world.staff),
        )

        assert response.status_code == 200
        assert [u["passaporte"] for u in response.json()["users"]] == ["90001"]


class TestCorporationIsolationOverHttp:
    """An RH of PM acting on a PC officer gets 403 and leaves no trace."""

    async def test_manage_career_of_other_corporation(
        self, api_client, db_session, world, auth_headers
    ):
        target_id = world.officer_pc.id

        response = await api_client.put(
            "/api/admin/gerenciar-policial",
            json={"policialId": target_id, "acao": "Promoção", "novaPatente": "Delegado"},
            headers=auth_headers(world.rh_pm),
        )

        assert response.status_code == 403
        target = await db_session.get(Policial, target_id, populate_existing=True)
        assert target.patente == "Investigador"
        assert await audit_count(db_session) == 0

    async def test_dismiss_other_corporation(self, api_client, db_session, world, auth_headers):
        response = await api_client.put(
            f"/api/admin/demitir/{world.officer_pc.id}", headers=auth_headers(world.rh_pm)
        )

        assert response.status_code == 403
        assert await audit_count(db_session) == 0

    async def test_profile_of_other_corporation(self, api_client, world, auth_headers):
        response = await api_client.get(
            f"/api/policia/perfil/{world.officer_pc.id}", headers=auth_headers(world.officer_pm)
        )

        assert response.status_code == 403


class TestPersonnelOverHttp:
    """Tests for recruit review, dismissal and the audit log."""

    async def test_approve_recruit_then_read_log(self, api_client, db_session, world, auth_headers):
        headers = auth_headers(world.rh_pm)

        response = await api_client.put(
            f"/api/admin/recrutas/{world.recruit_pm.id}",
            json={"novoStatus": "Aprovado", "divisao": "ROTA", "patente": "Soldado"},
            headers=headers,
        )
        assert response.status_code == 200

        logs = await api_client.get("/api/admin/logs", headers=headers)
        body = logs.json()
        assert body["totalLogs"] == 1
        assert body["logs"][0]["acao"] == "Approve Recruit"
        assert body["logs"][0]["admin_nome"] == "Ana RH PM"
        assert body["logs"][0]["ip_address"]

    async def test_approve_with_foreign_rank(self, api_client, db_session, world, auth_headers):
        response = await api_client.put(
            f"/api/admin/recrutas/{world.recruit_pm.id}",
            json={"novoStatus": "Aprovado", "divisao": "ROTA", "patente": "Delegado"},
            headers=auth_headers(world.rh_pm),
        )

        assert response.status_code == 400
        assert await audit_count(db_session) == 0

    async def test_recruit_listing_is_scoped(self, api_client, world, auth_headers):
        response = await api_client.get("/api/admin/recrutas", headers=auth_headers(world.rh_pc))

        assert [r["passaporte"] for r in response.json()] == ["20003"]

    async def test_dismiss_twice(self, api_client, db_session, world, auth_headers):
        headers = auth_headers(world.rh_pm)
        url = f"/api/admin/demitir/{world.officer_pm.id}"

        first = await api_client.put(url, headers=headers)
        second = await api_client.put(url, headers=headers)

        assert first.status_code == 200
        assert second.status_code == 200
        assert "already" in second.json()["message"]
        assert await audit_count(db_session) == 1

    async def test_update_without_changes(self, api_client, world, auth_headers):
        response = await api_client.put(
            f"/api/admin/update-policial/{world.officer_pm.id}",
            json={
                "nome_completo": "Carlos Soldado",
                "passaporte": "10002",
                "patente": "Soldado",
                "divisao": "Patrulha",
            },
            headers=auth_headers(world.rh_pm),
        )

        assert response.status_code == 200
        assert response.json()["message"] == "No changes detected"

    async def test_update_keeps_fields_left_out_of_the_body(
        self, api_client, db_session, world, auth_headers
    ):
        url = f"/api/admin/update-policial/{world.officer_pm.id}"
        body = {
            "nome_completo": "Carlos Soldado",
            "passaporte": "10002",
            "patente": "Soldado",
            "divisao": "Patrulha",
        }
        headers = auth_headers(world.rh_pm)
        await api_client.put(url, json={**body, "telefone_rp": "555-0102"}, headers=headers)

        response = await api_client.put(url, json={**body, "divisao": "ROTA"}, headers=headers)

        assert response.status_code == 200
        officer = await db_session.get(Policial, world.officer_pm.id, populate_existing=True)
        assert officer.telefone_rp == "555-0102"
        assert officer.divisao == "ROTA"

    async def test_logs_text_filter(self, api_client, world, auth_headers):
        headers = auth_headers(world.staff)
        await api_client.put(f"/api/admin/demitir/{world.officer_pc.id}", headers=headers)

        response = await api_client.get(
            "/api/admin/logs", params={"text": "Diana", "limit": 5}, headers=headers
        )

        assert response.json()["totalLogs"] == 1
        assert response.json()["logs"][0]["acao"] == "Dismiss Policial"


class TestRegistrationTokensOverHttp:
    """A token issued by RH is consumed by police registration."""

    async def test_issue_and_consume(self, api_client, world, auth_headers):
        issued = await api_client.post(
            "/api/admin/generate-token", json={"max_uses": 1}, headers=auth_headers(world.rh_pc)
        )
        assert issued.status_code == 200
        token = issued.json()["token"]
        assert issued.json()["corporacao"] == "PC"

        def registration(passaporte: str) -> dict:
            return {
                "nome_completo": f"Recruta {passaporte}",
                "passaporte": passaporte,
                "discord_id": f"discord-{passaporte}",
                "gmail": f"recruta{passaporte}@example.com",
                "senha": DEFAULT_PASSWORD,
                "registration_token": token,
            }

        first = await api_client.post("/api/policia/register", json=registration("30001"))
        second = await api_client.post("/api/policia/register", json=registration("30002"))

        assert first.status_code == 201
        assert first.json()["data"]["corporacao"] == "PC"
        assert second.status_code == 400

    async def test_rh_token_for_other_corporation(self, api_client, world, auth_headers):
        response = await api_client.post(
            "/api/admin/generate-token", json={"corporacao": "PC"}, headers=auth_headers(world.rh_pm)
        )

        assert response.status_code == 403

    async def test_global_token_requires_corporation(self, api_client, world, auth_headers):
        response = await api_client.post(
            "/api/staff/generate-global-token", json={}, headers=auth_headers(world.staff)
        )

        assert response.status_code == 400


class TestBoletinsOverHttp:
    """Tests for filing and assuming incident reports."""

    async def file_report(self, api_client, headers) -> int:
        response = await api_client.post(
            "/api/boletim/registrar",
            json={
                "tipo": "Furto",
                "local": "Praça da Sé",
                "descricao": "Bicicleta furtada",
                "data_ocorrido": "2025-03-01T14:30:00Z",
            },
            headers=headers,
        )
        assert response.status_code == 201
        return response.json()["id"]

    async def test_officer_cannot_file(self, api_client, world, auth_headers):
        response = await api_client.post(
            "/api/boletim/registrar",
            json={
                "tipo": "Furto",
                "local": "Centro",
                "descricao": "Teste",
                "data_ocorrido": "2025-03-01T14:30:00Z",
            },
            headers=auth_headers(world.officer_pm),
        )

        assert response.status_code == 403

    async def test_assume_once(self, api_client, world, auth_headers):
        boletim_id = await self.file_report(api_client, auth_headers(world.civil))
        url = f"/api/policia/boletins/{boletim_id}/assumir"

        first = await api_client.put(url, headers=auth_headers(world.officer_pm))
        second = await api_client.put(url, headers=auth_headers(world.rh_pm))

        assert first.status_code == 200
        assert second.status_code == 409
        detail = await api_client.get(
            f"/api/policia/boletins/{boletim_id}", headers=auth_headers(world.officer_pm)
        )
        assert detail.json()["policial_responsavel_nome"] == "Carlos Soldado"

    async def test_assume_without_capability(self, api_client, world, auth_headers):
        boletim_id = await self.file_report(api_client, auth_headers(world.civil))

        response = await api_client.put(
            f"/api/policia/boletins/{boletim_id}/assumir", headers=auth_headers(world.officer_pc)
        )

        assert response.status_code == 403

    async def test_citizen_cannot_list(self, api_client, world, auth_headers):
        response = await api_client.get("/api/policia/boletins", headers=auth_headers(world.civil))

        assert response.status_code == 403


class TestPublicEndpoints:
    """Tests for unauthenticated content."""

    async def test_health(self, api_client):
        response = await api_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    async def test_portal_settings_defaults(self, api_client):
        response = await api_client.get("/api/public/portal-settings")

        assert response.json()["header_subtitle"] == "Portal Oficial"

    async def test_concursos_and_changelog(self, api_client, world, auth_headers):
        headers = auth_headers(world.rh_pm)
        await api_client.post(
            "/api/admin/concursos",
            json={"titulo": "Soldado 2025", "descricao": "Vagas", "vagas": 5},
            headers=headers,
        )
        await api_client.post(
            "/api/admin/changelog", json={"title": "v1.1", "content": "Notas"}, headers=headers
        )

        concursos = (await api_client.get("/api/concursos")).json()
        changelog = (await api_client.get("/api/changelog")).json()

        assert [(c["titulo"], c["corporacao"]) for c in concursos] == [("Soldado 2025", "PM")]
        assert changelog[0]["author_name"] == "Ana RH PM"
