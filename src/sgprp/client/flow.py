"""Password recovery flow as an explicit state machine.

    LOGIN -> FORGOT -> VERIFY -> RESET -> DONE

The flow carries the email and the reset token between steps. A failed
step leaves the state unchanged so the user can retry; going back to
LOGIN discards everything.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from sgprp.client.api import PortalClient

logger = logging.getLogger(__name__)


class AuthStep(str, Enum):
    LOGIN = "login"
    FORGOT = "forgot"
    VERIFY = "verify"
    RESET = "reset"
    DONE = "done"


class InvalidTransitionError(Exception):
    """The requested step is not reachable from the current one."""

    def __init__(self, from_step: AuthStep, to_step: AuthStep) -> None:
        self.from_step = from_step
        self.to_step = to_step
        super().__init__(f"Cannot go from {from_step.value} to {to_step.value}")


class PasswordMismatchError(ValueError):
    """New password and its confirmation differ."""


class AuthFlow:
    """Drives the forgot / verify / reset screens against a PortalClient."""

    VALID_TRANSITIONS: ClassVar[dict[AuthStep, frozenset[AuthStep]]] = {
        AuthStep.LOGIN: frozenset({AuthStep.FORGOT}),
        AuthStep.FORGOT: frozenset({AuthStep.VERIFY, AuthStep.LOGIN}),
        # VERIFY -> FORGOT asks for a new code
        AuthStep.VERIFY: frozenset({AuthStep.RESET, AuthStep.FORGOT, AuthStep.LOGIN}),
        AuthStep.RESET: frozenset({AuthStep.DONE, AuthStep.LOGIN}),
        AuthStep.DONE: frozenset({AuthStep.LOGIN}),
    }

    def __init__(self, client: PortalClient) -> None:
        self._client = client
        self._step = AuthStep.LOGIN
        self._email: str | None = None
        self._reset_token: str | None = None

    @property
    def step(self) -> AuthStep:
        return self._step

    @property
    def email(self) -> str | None:
        return self._email

    @property
    def reset_token(self) -> str | None:
        return self._reset_token

    def can_transition(self, to_step: AuthStep) -> bool:
        return to_step in self.VALID_TRANSITIONS[self._step]

    def _transition(self, to_step: AuthStep) -> None:
        if not self.can_transition(to_step):
            raise InvalidTransitionError(self._step, to_step)
        logger.debug("Auth flow: %s -> %s", self._step.value, to_step.value)
        self._step = to_step

    def start_recovery(self) -> None:
        """Open the forgot-password step."""
        self._transition(AuthStep.FORGOT)

    def back_to_login(self) -> None:
        """Abandon the flow and forget the email and reset token."""
        self._transition(AuthStep.LOGIN)
        self._email = None
        self._reset_token = None

    async def request_code(self, email: str) -> None:
        """Ask the server for a code. Allowed from FORGOT, or from VERIFY to resend."""
        if self._step not in (AuthStep.FORGOT, AuthStep.VERIFY):
            raise InvalidTransitionError(self._step, AuthStep.VERIFY)
        await self._client.forgot_password(email)
        if self._step is AuthStep.VERIFY:
            self._transition(AuthStep.FORGOT)
        self._email = email
        self._reset_token = None
        self._transition(AuthStep.VERIFY)

    async def verify_code(self, code: str) -> None:
        if not self.can_transition(AuthStep.RESET) or self._email is None:
            raise InvalidTransitionError(self._step, AuthStep.RESET)
        self._reset_token = await self._client.verify_code(self._email, code)
        self._transition(AuthStep.RESET)

    async def reset_password(self, new_password: str, confirmation: str) -> None:
        """Set the new password.

        Raises:
            PasswordMismatchError: Confirmation differs; nothing is sent.
            InvalidTransitionError: No verified code yet.
        """
        if not self.can_transition(AuthStep.DONE) or self._reset_token is None:
            raise InvalidTransitionError(self._step, AuthStep.DONE)
        if new_password != confirmation:
            raise PasswordMismatchError("Passwords do not match")
        await self._client.reset_password(self._reset_token, new_password)
        self._reset_token = None
        self._transition(AuthStep.DONE)
