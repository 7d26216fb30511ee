"""Test data factories for SGP-RP.

This module provides async builders that insert consistent, valid rows
(corporations with their ranks and divisions, officers, citizens) and a
seeded two-corporation world used by the service and API tests.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sgprp.db.models import (
    Civil,
    Corporation,
    Division,
    Policial,
    PolicialStatus,
    Rank,
    RegistrationToken,
)
from sgprp.services.context import SessionContext
from sgprp.services.passwords import hash_password
from sgprp.services.permissions import AccountType, Actor

DEFAULT_PASSWORD = "senha-segura-123"
# Lowest bcrypt cost, keeps the suite fast
TEST_BCRYPT_ROUNDS = 4
TEST_JWT_SECRET = "test-secret-0123456789abcdef0123456789abcdef"


async def create_corporation(
    session,
    sigla: str,
    nome: str | None = None,
    *,
    ranks: tuple[str, ...] = (),
    divisions: tuple[str, ...] = (),
    permissoes: dict | None = None,
) -> Corporation:
    """Create a corporation with ordered ranks and divisions.

    Args:
        session: Async session to add the rows to.
        sigla: Corporation sigla (PM, PC, ...).
        nome: Display name. Defaults to the sigla.
        ranks: Rank names, lowest first.
        divisions: Division names.
        permissoes: Corporation-wide capability flags.

    Returns:
        The committed corporation.
    """
    corp = Corporation(nome=nome or sigla, sigla=sigla, permissoes=permissoes or {})
    session.add(corp)
    await session.flush()
    for ordem, rank in enumerate(ranks, start=1):
        session.add(Rank(nome=rank, corporacao_sigla=sigla, ordem=ordem))
    for division in divisions:
        session.add(Division(nome=division, corporacao_sigla=sigla))
    await session.commit()
    return corp


async def create_policial(
    session,
    passaporte: str,
    *,
    nome: str | None = None,
    corporacao: str | None = None,
    status: PolicialStatus = PolicialStatus.APPROVED,
    patente: str | None = None,
    divisao: str | None = None,
    permissoes: dict | None = None,
    gmail: str | None = None,
    senha: str = DEFAULT_PASSWORD,
) -> Policial:
    """Create a police account."""
    policial = Policial(
        nome_completo=nome or f"Policial {passaporte}",
        passaporte=passaporte,
        discord_id=f"discord-{passaporte}",
        gmail=gmail or f"policial{passaporte}@example.com",
        senha_hash=hash_password(senha, rounds=TEST_BCRYPT_ROUNDS),
        status=status,
        corporacao=corporacao,
        patente=patente,
        divisao=divisao,
        permissoes=permissoes or {},
    )
    session.add(policial)
    await session.commit()
    return policial


async def create_civil(
    session,
    id_passaporte: str,
    *,
    nome: str | None = None,
    gmail: str | None = None,
    senha: str = DEFAULT_PASSWORD,
) -> Civil:
    """Create a citizen account."""
    civil = Civil(
        id_passaporte=id_passaporte,
        nome_completo=nome or f"Cidadao {id_passaporte}",
        gmail=gmail or f"civil{id_passaporte}@example.com",
        senha_hash=hash_password(senha, rounds=TEST_BCRYPT_ROUNDS),
    )
    session.add(civil)
    await session.commit()
    return civil


async def create_registration_token(
    session,
    corporacao: str,
    *,
    token: str = "a" * 64,
    max_uses: int = 1,
    expires_in: timedelta = timedelta(hours=24),
) -> RegistrationToken:
    """Create an active registration token."""
    reg_token = RegistrationToken(
        token=token,
        corporacao=corporacao,
        max_uses=max_uses,
        use_count=0,
        expires_at=datetime.now(UTC) + expires_in,
        is_active=True,
    )
    session.add(reg_token)
    await session.commit()
    return reg_token


def policial_context(policial: Policial, corporation_permissions: dict | None = None) -> SessionContext:
    """Session context for a police account, as resolve_session would build it."""
    return SessionContext(
        actor=Actor(
            account_id=policial.id,
            account_type=AccountType.POLICIAL,
            corporacao=policial.corporacao,
            permissoes=dict(policial.permissoes or {}),
        ),
        nome_completo=policial.nome_completo,
        passaporte=policial.passaporte,
        gmail=policial.gmail,
        corporation_permissions=corporation_permissions or {},
        patente=policial.patente,
        divisao=policial.divisao,
        status=policial.status.value,
    )


def civil_context(civil: Civil) -> SessionContext:
    """Session context for a citizen account."""
    return SessionContext(
        actor=Actor(account_id=civil.id, account_type=AccountType.CIVIL),
        nome_completo=civil.nome_completo,
        passaporte=civil.id_passaporte,
        gmail=civil.gmail,
    )


@dataclass
class World:
    """Two corporations with RH, officers and pending recruits.

    ``staff`` is created first and therefore holds id 1, the bootstrap
    account.
    """

    staff: Policial
    pm: Corporation
    pc: Corporation
    rh_pm: Policial
    rh_pc: Policial
    officer_pm: Policial
    officer_pc: Policial
    recruit_pm: Policial
    recruit_pc: Policial
    civil: Civil


async def seed_world(session) -> World:
    """Insert the standard two-corporation test world."""
    staff = await create_policial(
        session, "00001", nome="Staff Cidade", permissoes={"is_staff": True}
    )
    pm = await create_corporation(
        session,
        "PM",
        "Policia Militar",
        ranks=("Soldado", "Cabo", "Sargento"),
        divisions=("Patrulha", "ROTA"),
        permissoes={"podeAssumirBO": True},
    )
    pc = await create_corporation(
        session,
        "PC",
        "Policia Civil",
        ranks=("Investigador", "Delegado"),
        divisions=("DHPP",),
    )
    rh_pm = await create_policial(
        session,
        "10001",
        nome="Ana RH PM",
        corporacao="PM",
        patente="Sargento",
        divisao="Patrulha",
        permissoes={"is_rh": True},
    )
    rh_pc = await create_policial(
        session,
        "20001",
        nome="Bruno RH PC",
        corporacao="PC",
        patente="Delegado",
        divisao="DHPP",
        permissoes={"is_rh": True},
    )
    officer_pm = await create_policial(
        session, "10002", nome="Carlos Soldado", corporacao="PM", patente="Soldado", divisao="Patrulha"
    )
    officer_pc = await create_policial(
        session,
        "20002",
        nome="Diana Investigadora",
        corporacao="PC",
        patente="Investigador",
        divisao="DHPP",
    )
    recruit_pm = await create_policial(
        session, "10003", nome="Eduardo Recruta", corporacao="PM", status=PolicialStatus.PENDING
    )
    recruit_pc = await create_policial(
        session, "20003", nome="Fernanda Recruta", corporacao="PC", status=PolicialStatus.PENDING
    )
    civil = await create_civil(session, "90001", nome="Gabriel Cidadao")
    return World(
        staff=staff,
        pm=pm,
        pc=pc,
        rh_pm=rh_pm,
        rh_pc=rh_pc,
        officer_pm=officer_pm,
        officer_pc=officer_pc,
        recruit_pm=recruit_pm,
        recruit_pc=recruit_pc,
        civil=civil,
    )
