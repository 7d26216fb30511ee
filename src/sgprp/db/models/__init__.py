"""SQLAlchemy ORM models for SGP-RP.

This package contains all database models organized by domain:
- base: Common metadata, column types and enums
- organization: Corporations, ranks and divisions
- personnel: Police and civil accounts, career history
- credentials: Recovery challenges and registration tokens
- audit: Administrative audit log
- content: Announcements, concursos, changelog, portal settings, boletins, relatorios
"""

from sgprp.db.models.audit import AuditLogRecord
from sgprp.db.models.base import (
    Base,
    BoletimStatus,
    PolicialStatus,
    RecoveryFlow,
    RecoveryState,
    metadata,
)
from sgprp.db.models.content import (
    Announcement,
    Boletim,
    ChangelogEntry,
    Concurso,
    PortalSetting,
    Relatorio,
)
from sgprp.db.models.credentials import RecoveryChallenge, RegistrationToken
from sgprp.db.models.organization import Corporation, Division, Rank
from sgprp.db.models.personnel import Civil, Policial, PolicialHistory

__all__ = [
    "Announcement",
    "AuditLogRecord",
    "Base",
    "Boletim",
    "BoletimStatus",
    "ChangelogEntry",
    "Civil",
    "Concurso",
    "Corporation",
    "Division",
    "Policial",
    "PolicialHistory",
    "PolicialStatus",
    "PortalSetting",
    "Rank",
    "RecoveryChallenge",
    "RecoveryFlow",
    "RecoveryState",
    "RegistrationToken",
    "Relatorio",
    "metadata",
]
