"""OAuth authorization-code flow controller.

One :class:`OAuthFlow` instance drives one browser through::

    IDLE -> INITIATED -> EXCHANGING -> FETCHING_IDENTITY -> COMPLETED
                 \\            \\                 \\
                  +------------+-----------------+--> ERRORED

The server keeps no session table. ``/auth`` runs ``begin`` on a fresh
instance; ``/oauth/callback`` resumes an instance in ``INITIATED`` from the
state cookie and runs ``complete``. Every provider failure is terminal: there
are no retries, the user restarts from ``/auth``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional
from urllib.parse import urlencode, urlsplit, urlunsplit, parse_qsl

from libs.observability.metrics import record_oauth_outcome

from .config import Settings
from .errors import ClientInputError, LedgerUnavailable
from .provider import ProviderClient, ProviderError, ProviderIdentity
from .security import CredentialSigningError, issue_session_credential
from .state import generate_state, validate_state

logger = logging.getLogger(__name__)

_SAFE_ERROR_CODE = re.compile(r"^[a-z0-9_.-]{1,64}$")


class FlowState(str, Enum):
    IDLE = "idle"
    INITIATED = "initiated"
    EXCHANGING = "exchanging"
    FETCHING_IDENTITY = "fetching_identity"
    COMPLETED = "completed"
    ERRORED = "errored"


class FlowErrorCode(str, Enum):
    """Machine readable codes carried on the error redirect."""

    STATE_MISMATCH = "state_mismatch"
    MISSING_CODE = "missing_code"
    TOKEN_EXCHANGE_FAILED = "token_exchange_failed"
    USERINFO_FAILED = "userinfo_failed"
    IDENTITY_TOKEN_INVALID = "identity_token_invalid"
    LEDGER_UNAVAILABLE = "ledger_unavailable"
    CREDENTIAL_UNAVAILABLE = "credential_unavailable"
    PROVIDER_ERROR = "provider_error"


_KNOWN_ERROR_CODES = frozenset(member.value for member in FlowErrorCode)

_TRANSITIONS = {
    FlowState.IDLE: frozenset({FlowState.INITIATED}),
    FlowState.INITIATED: frozenset({FlowState.EXCHANGING, FlowState.ERRORED}),
    FlowState.EXCHANGING: frozenset({FlowState.FETCHING_IDENTITY, FlowState.ERRORED}),
    FlowState.FETCHING_IDENTITY: frozenset({FlowState.COMPLETED, FlowState.ERRORED}),
    FlowState.COMPLETED: frozenset(),
    FlowState.ERRORED: frozenset(),
}

IdentitySink = Callable[[ProviderIdentity], Awaitable[None]]


class InvalidTransition(RuntimeError):
    def __init__(self, current: FlowState, target: FlowState) -> None:
        super().__init__(f"Cannot move OAuth flow from {current.value} to {target.value}")
        self.current = current
        self.target = target


@dataclass(frozen=True)
class FlowOutcome:
    """Where the browser goes once the callback has been processed."""

    state: FlowState
    redirect_url: str
    error: Optional[str] = None
    identity: Optional[ProviderIdentity] = None
    credential: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state is FlowState.COMPLETED


def sanitize_provider_error(raw: str) -> str:
    """Reflect a provider ``error`` parameter only if it looks like an OAuth code."""

    candidate = raw.strip().lower()
    if _SAFE_ERROR_CODE.match(candidate):
        return candidate
    return FlowErrorCode.PROVIDER_ERROR.value


def _with_query(url: str, **params: str) -> str:
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.extend(params.items())
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


class OAuthFlow:
    """State machine for a single authorization-code flow."""

    def __init__(
        self,
        settings: Settings,
        provider: ProviderClient,
        *,
        identity_sink: Optional[IdentitySink] = None,
        state: FlowState = FlowState.IDLE,
    ) -> None:
        self._settings = settings
        self._provider = provider
        self._identity_sink = identity_sink
        self.state = state
        self.error: Optional[str] = None

    @classmethod
    def resume(
        cls,
        settings: Settings,
        provider: ProviderClient,
        *,
        identity_sink: Optional[IdentitySink] = None,
    ) -> "OAuthFlow":
        """Rebuild the flow a browser started earlier; its state lives in the cookie."""

        return cls(settings, provider, identity_sink=identity_sink, state=FlowState.INITIATED)

    def _transition(self, target: FlowState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise InvalidTransition(self.state, target)
        logger.debug("OAuth flow transition", extra={"from_state": self.state.value, "to_state": target.value})
        self.state = target

    def begin(self) -> tuple[str, str]:
        """IDLE -> INITIATED: return ``(state, authorization_url)``."""

        anti_forgery = generate_state(self._settings.state_nbytes)
        url = self._provider.authorization_url(anti_forgery)
        self._transition(FlowState.INITIATED)
        return anti_forgery, url

    def _fail(self, code: str, *, detail: Optional[str] = None) -> FlowOutcome:
        self._transition(FlowState.ERRORED)
        self.error = code
        logger.warning("OAuth flow failed", extra={"error_code": code, "detail": detail})
        # Provider supplied codes are folded into one label to bound cardinality.
        record_oauth_outcome(code if code in _KNOWN_ERROR_CODES else FlowErrorCode.PROVIDER_ERROR.value)
        return FlowOutcome(
            state=self.state,
            redirect_url=_with_query(self._settings.error_redirect_path, error=code),
            error=code,
        )

    async def complete(
        self,
        *,
        code: Optional[str],
        returned_state: Optional[str],
        stored_state: Optional[str],
        provider_error: Optional[str] = None,
    ) -> FlowOutcome:
        """Process the provider callback; never raises for provider failures."""

        if provider_error:
            return self._fail(sanitize_provider_error(provider_error), detail="provider reported an error")

        if not validate_state(returned_state, stored_state):
            return self._fail(FlowErrorCode.STATE_MISMATCH.value)

        if not code:
            return self._fail(FlowErrorCode.MISSING_CODE.value)

        self._transition(FlowState.EXCHANGING)
        try:
            tokens = await self._provider.exchange_code(code)
        except ProviderError as exc:
            return self._fail(FlowErrorCode.TOKEN_EXCHANGE_FAILED.value, detail=str(exc))

        self._transition(FlowState.FETCHING_IDENTITY)
        try:
            identity = await self._provider.fetch_identity(tokens)
        except ProviderError as exc:
            return self._fail(exc.code, detail=str(exc))

        if self._identity_sink is not None:
            try:
                await self._identity_sink(identity)
            except (ClientInputError, LedgerUnavailable) as exc:
                return self._fail(FlowErrorCode.LEDGER_UNAVAILABLE.value, detail=str(exc))

        credential: Optional[str] = None
        if self._settings.issues_credentials:
            try:
                credential = issue_session_credential(identity, self._settings)
            except CredentialSigningError as exc:
                return self._fail(FlowErrorCode.CREDENTIAL_UNAVAILABLE.value, detail=str(exc))
            redirect_url = _with_query(self._settings.frontend_landing_url, token=credential)
        else:
            redirect_url = _with_query(self._settings.frontend_landing_url, userId=identity.sub)

        self._transition(FlowState.COMPLETED)
        logger.info("OAuth flow completed", extra={"user_id": identity.sub})
        record_oauth_outcome(FlowState.COMPLETED.value)
        return FlowOutcome(
            state=self.state,
            redirect_url=redirect_url,
            identity=identity,
            credential=credential,
        )


__all__ = [
    "FlowErrorCode",
    "FlowOutcome",
    "FlowState",
    "IdentitySink",
    "InvalidTransition",
    "OAuthFlow",
    "sanitize_provider_error",
]
