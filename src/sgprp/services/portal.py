"""Read side of portal content: settings, announcements, concursos, changelog."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import func, or_, select

from sgprp.db.models import Announcement, ChangelogEntry, Concurso, Policial, PortalSetting
from sgprp.services.permissions import Capability

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from sgprp.services.context import SessionContext

DEFAULT_PORTAL_SETTINGS: dict[str, str] = {
    "header_title": "Secretaria Policia",
    "header_subtitle": "Portal Oficial",
    "header_logo_url": "/brasao.png",
    "footer_copyright": "© 2025 Consolação Paulista Roleplay. Todos os direitos reservados.",
}

ANNOUNCEMENT_LIMIT = 10


def concurso_to_dict(concurso: Concurso) -> dict[str, Any]:
    return {
        "id": concurso.id,
        "titulo": concurso.titulo,
        "descricao": concurso.descricao,
        "vagas": concurso.vagas,
        "status": concurso.status,
        "data_abertura": concurso.data_abertura.isoformat() if concurso.data_abertura else None,
        "data_encerramento": (
            concurso.data_encerramento.isoformat() if concurso.data_encerramento else None
        ),
        "link_edital": concurso.link_edital,
        "valor": concurso.valor,
        "corporacao": concurso.corporacao,
    }


class PortalService:
    """Public and member-facing portal content."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_settings(self) -> dict[str, str]:
        """Portal settings, with defaults for missing or empty values."""
        result = await self._session.execute(
            select(PortalSetting).where(PortalSetting.setting_key.in_(DEFAULT_PORTAL_SETTINGS))
        )
        stored = {s.setting_key: s.setting_value for s in result.scalars() if s.setting_value}
        return {**DEFAULT_PORTAL_SETTINGS, **stored}

    async def list_concursos(self) -> list[dict[str, Any]]:
        result = await self._session.execute(
            select(Concurso).order_by(
                Concurso.data_abertura.desc(), Concurso.data_encerramento.desc()
            )
        )
        return [concurso_to_dict(c) for c in result.scalars()]

    async def list_changelog(self) -> list[dict[str, Any]]:
        result = await self._session.execute(
            select(ChangelogEntry, Policial.nome_completo)
            .outerjoin(Policial, ChangelogEntry.author_id == Policial.id)
            .order_by(ChangelogEntry.created_at.desc(), ChangelogEntry.id.desc())
        )
        return [
            {
                "id": entry.id,
                "version": entry.version,
                "title": entry.title,
                "content": entry.content,
                "created_at": entry.created_at.isoformat() if entry.created_at else None,
                "author_name": author,
            }
            for entry, author in result.all()
        ]

    async def visible_announcements(self, ctx: SessionContext) -> list[dict[str, Any]]:
        """Latest announcements the actor may read.

        RH and global administrators see every announcement; everybody else
        sees general ones plus those for their own corporation.
        """
        gate = ctx.gate
        query = select(
            Announcement,
            func.coalesce(Policial.nome_completo, "Administração").label("autor_nome"),
        ).outerjoin(Policial, Announcement.autor_id == Policial.id)

        if not (gate.has(Capability.IS_RH) or gate.has_global_scope):
            if ctx.corporacao:
                query = query.where(
                    or_(Announcement.corporacao.is_(None), Announcement.corporacao == ctx.corporacao)
                )
            else:
                query = query.where(Announcement.corporacao.is_(None))

        result = await self._session.execute(
            query.order_by(Announcement.data_publicacao.desc(), Announcement.id.desc()).limit(
                ANNOUNCEMENT_LIMIT
            )
        )
        return [
            {
                "id": a.id,
                "titulo": a.titulo,
                "conteudo": a.conteudo,
                "data_publicacao": a.data_publicacao.isoformat() if a.data_publicacao else None,
                "autor_nome": autor_nome,
                "corporacao": a.corporacao,
            }
            for a, autor_nome in result.all()
        ]
