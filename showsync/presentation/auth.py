"""Trakt authorization state, observable by sessions."""

from __future__ import annotations

import logging
from enum import Enum

from showsync.reactive.flow import StateFlow

logger = logging.getLogger(__name__)


class AuthState(str, Enum):
    LOGGED_IN = "logged_in"
    LOGGED_OUT = "logged_out"


class AuthStateStore:
    """Publish the current authorization state."""

    def __init__(self, initial: AuthState = AuthState.LOGGED_OUT) -> None:
        self._flow: StateFlow[AuthState] = StateFlow(initial)

    @classmethod
    def from_token(cls, access_token: str | None) -> AuthStateStore:
        return cls(AuthState.LOGGED_IN if access_token else AuthState.LOGGED_OUT)

    @property
    def observable(self) -> StateFlow[AuthState]:
        return self._flow

    @property
    def current(self) -> AuthState:
        return self._flow.value

    def set_state(self, state: AuthState) -> None:
        if state != self._flow.value:
            logger.info("auth_state_changed", extra={"state": state.value})
        self._flow.value = state

    def login(self) -> None:
        self.set_state(AuthState.LOGGED_IN)

    def logout(self) -> None:
        self.set_state(AuthState.LOGGED_OUT)

    async def wait_logged_in(self) -> AuthState:
        return await self._flow.first(lambda state: state is AuthState.LOGGED_IN)
