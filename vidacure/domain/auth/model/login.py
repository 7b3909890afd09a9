"""Login attempt state machine.

A login attempt moves through:

    IDLE -> AWAITING_BROKER_REDIRECT -> AWAITING_CALLBACK
         -> EXCHANGING_CODE -> ISSUING_SESSION -> DONE

ERROR is reachable from every non-terminal state. The browser flow spans two
HTTP requests (``GET /login`` and ``/callback``); the state cookie carries it
between them, so the callback resumes an attempt at AWAITING_CALLBACK. The
native-app flow skips the broker redirect and starts at EXCHANGING_CODE.
"""

import logging
from enum import StrEnum

from vidacure.domain.auth.model.value import ClientType

logger = logging.getLogger(__name__)


class LoginState(StrEnum):
    IDLE = "idle"
    AWAITING_BROKER_REDIRECT = "awaiting_broker_redirect"
    AWAITING_CALLBACK = "awaiting_callback"
    EXCHANGING_CODE = "exchanging_code"
    ISSUING_SESSION = "issuing_session"
    DONE = "done"
    ERROR = "error"


_TRANSITIONS: dict[LoginState, frozenset[LoginState]] = {
    LoginState.IDLE: frozenset(
        {LoginState.AWAITING_BROKER_REDIRECT, LoginState.EXCHANGING_CODE}
    ),
    LoginState.AWAITING_BROKER_REDIRECT: frozenset({LoginState.AWAITING_CALLBACK}),
    LoginState.AWAITING_CALLBACK: frozenset({LoginState.EXCHANGING_CODE}),
    LoginState.EXCHANGING_CODE: frozenset({LoginState.ISSUING_SESSION}),
    LoginState.ISSUING_SESSION: frozenset({LoginState.DONE}),
    LoginState.DONE: frozenset(),
    LoginState.ERROR: frozenset(),
}


class LoginAttempt:
    """Tracks one login attempt through its states.

    Illegal transitions raise ``RuntimeError``: they indicate a programming
    error, not a client mistake.
    """

    def __init__(self, client_type: ClientType, state: LoginState = LoginState.IDLE) -> None:
        self.client_type = client_type
        self.state = state

    def advance(self, target: LoginState) -> None:
        if target is LoginState.ERROR:
            self.fail()
            return
        if target not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal login transition {self.state} -> {target}")
        logger.debug(
            "Login attempt (%s): %s -> %s", self.client_type.value, self.state, target
        )
        self.state = target

    def fail(self) -> None:
        if self.is_finished:
            return
        logger.debug(
            "Login attempt (%s): %s -> %s", self.client_type.value, self.state, LoginState.ERROR
        )
        self.state = LoginState.ERROR

    @property
    def is_finished(self) -> bool:
        return self.state in (LoginState.DONE, LoginState.ERROR)
