"""Smoke tests to verify test infrastructure works.

These tests verify that the basic test infrastructure is functioning:
- Package imports work
- API can be instantiated with every namespace mounted
- The test schema can be created and used
"""

from httpx import AsyncClient
from sqlalchemy import func, select


class TestPackageImports:
    """Verify that core packages can be imported."""

    def test_import_sgprp(self):
        import sgprp

        assert sgprp.__version__ == "0.1.0"

    def test_import_api_module(self):
        """The uvicorn entry point builds an app without any environment."""
        from sgprp.api import main

        assert main.app is not None

    def test_import_client(self):
        from sgprp import client

        assert client.PortalClient is not None


class TestAPIRoutes:
    """Verify that every namespace is mounted."""

    def test_namespaces_mounted(self, test_app):
        paths = {route.path for route in test_app.routes}

        for expected in (
            "/health",
            "/api/auth/login",
            "/api/auth/forgot-password",
            "/api/policia/login",
            "/api/boletim/registrar",
            "/api/admin/recrutas",
            "/api/admin/logs",
            "/api/staff/structure",
            "/api/public/portal-settings",
            "/api/concursos",
            "/api/anuncios",
            "/api/policia/relatorios",
            "/api/policia/policiais",
        ):
            assert expected in paths

    async def test_health_endpoint(self, api_client: AsyncClient):
        response = await api_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestDatabaseInfrastructure:
    async def test_world_is_seeded(self, db_session, world):
        from sgprp.db.models import Policial

        result = await db_session.execute(select(func.count(Policial.id)))

        assert result.scalar_one() == 7
        assert world.staff.id == 1
