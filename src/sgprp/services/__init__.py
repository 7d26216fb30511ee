"""SGP-RP service layer.

Business logic behind the HTTP API:
- AccountService: registration, login and session resolution
- RecoveryService: three-step password reset (code, verify, reset)
- AdminActionService: permission-gated, audited RH and staff actions
- StructureService: corporations, ranks and divisions
- AuditLogService: append and scoped query of the audit log
- BoletimService, PortalService, RosterService: reports, content, profiles
"""

from sgprp.services.accounts import AccountService, LoginResult
from sgprp.services.admin_actions import ActionOutcome, AdminActionService
from sgprp.services.audit_log import ActionKind, AuditLogService
from sgprp.services.boletins import BoletimService
from sgprp.services.errors import (
    AuthenticationError,
    ConflictError,
    ExpiredChallengeError,
    InvalidCodeError,
    InvalidInputError,
    InvalidResetTokenError,
    PermissionDeniedError,
    ResourceNotFoundError,
    ServiceError,
    WeakCredentialError,
)
from sgprp.services.portal import PortalService
from sgprp.services.recovery import RecoveryService
from sgprp.services.roster import RosterService
from sgprp.services.structure import StructureService

__all__ = [
    "AccountService",
    "ActionKind",
    "ActionOutcome",
    "AdminActionService",
    "AuditLogService",
    "AuthenticationError",
    "BoletimService",
    "ConflictError",
    "ExpiredChallengeError",
    "InvalidCodeError",
    "InvalidInputError",
    "InvalidResetTokenError",
    "LoginResult",
    "PermissionDeniedError",
    "PortalService",
    "RecoveryService",
    "ResourceNotFoundError",
    "RosterService",
    "ServiceError",
    "StructureService",
    "WeakCredentialError",
]
