"""Login commands for the BankID authentication flows."""

import logging
import secrets

from vidacure.domain.auth.model.login import LoginAttempt, LoginState
from vidacure.domain.auth.model.value import ClientType, Role
from vidacure.domain.auth.port.audit import AuditEntry, AuditLog
from vidacure.domain.auth.port.identity_broker import IdentityBroker
from vidacure.domain.auth.service.client import broker_hint
from vidacure.domain.auth.service.identity import IdentityResolver, ResolvedAccount
from vidacure.domain.auth.service.token import TokenService
from vidacure.domain.shared.command import Command, CommandHandler, Result
from vidacure.domain.shared.error import (
    AuthenticationFailedError,
    BrokerAuthError,
    InvalidClientTypeError,
    InvalidOAuthStateError,
    MissingAuthorizationCodeError,
    NotAuthenticatedError,
    VidaError,
)

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = "Welcome! Account created successfully."
LOGIN_MESSAGE = "Login successful!"


def login_message(is_new_account: bool) -> str:
    return WELCOME_MESSAGE if is_new_account else LOGIN_MESSAGE


class InitiateLogin(Command):
    """Command to start the browser redirect flow."""

    callback_url: str  # Where the broker redirects after authentication
    client_type: ClientType


class InitiateLoginResult(Result):
    authorization_url: str
    state: str  # Nonce to store in the oauth_state cookie


class InitiateLoginHandler(CommandHandler[InitiateLogin, InitiateLoginResult]):
    broker: IdentityBroker
    token_service: TokenService

    async def run(self, cmd: InitiateLogin) -> InitiateLoginResult:
        """Mint a state nonce and build the broker authorization URL."""
        self.broker.ensure_ready()

        attempt = LoginAttempt(cmd.client_type)
        attempt.advance(LoginState.AWAITING_BROKER_REDIRECT)

        state = self.token_service.create_state_nonce()
        authorization_url = self.broker.authorization_url(
            state=state,
            redirect_uri=cmd.callback_url,
            acr_values=broker_hint(cmd.client_type),
        )

        attempt.advance(LoginState.AWAITING_CALLBACK)
        return InitiateLoginResult(authorization_url=authorization_url, state=state)


class SessionIssued(Result):
    """A resolved account and the credentials issued for it."""

    account_id: str
    name: str
    role: Role
    is_new_account: bool
    token: str
    expires_in: int  # Seconds until the session token expires
    csrf_token: str | None = None

    @property
    def message(self) -> str:
        return login_message(self.is_new_account)


def issue_session(
    token_service: TokenService, resolved: ResolvedAccount, with_csrf: bool
) -> SessionIssued:
    """Sign a session token for a resolved account, plus a CSRF token for browsers."""
    account = resolved.account
    return SessionIssued(
        account_id=str(account.id),
        name=account.name,
        role=account.role,
        is_new_account=resolved.is_new_account,
        token=token_service.issue(account),
        expires_in=token_service.ttl_seconds,
        csrf_token=token_service.create_csrf_token() if with_csrf else None,
    )


class CompleteOAuth(Command):
    """Command to finish the browser flow on the broker callback."""

    code: str | None = None
    state: str | None = None
    expected_state: str | None = None  # Value of the oauth_state cookie
    error: str | None = None
    error_description: str | None = None
    callback_url: str  # Must match the one used in the authorization URL
    client_type: ClientType


class CompleteOAuthHandler(CommandHandler[CompleteOAuth, SessionIssued]):
    broker: IdentityBroker
    identity_resolver: IdentityResolver
    token_service: TokenService
    audit_log: AuditLog

    async def run(self, cmd: CompleteOAuth) -> SessionIssued:
        """Verify the callback, exchange the code and issue a browser session."""
        self.broker.ensure_ready()

        attempt = LoginAttempt(cmd.client_type, LoginState.AWAITING_CALLBACK)
        if not cmd.state or not cmd.expected_state or not secrets.compare_digest(
            cmd.state.encode(), cmd.expected_state.encode()
        ):
            attempt.fail()
            logger.warning("OAuth callback state missing or mismatched")
            raise InvalidOAuthStateError("Invalid state parameter")

        try:
            if cmd.error:
                logger.warning("Broker returned error on callback: %s", cmd.error)
                raise BrokerAuthError(
                    cmd.error_description or "Authentication was cancelled or failed",
                    detail={"broker_error": cmd.error},
                )
            if not cmd.code:
                raise MissingAuthorizationCodeError("Authorization code not provided")

            attempt.advance(LoginState.EXCHANGING_CODE)
            claims = await self.broker.exchange_code(cmd.code, cmd.callback_url)

            attempt.advance(LoginState.ISSUING_SESSION)
            resolved = await self.identity_resolver.resolve(claims)
            result = issue_session(self.token_service, resolved, with_csrf=True)
            attempt.advance(LoginState.DONE)
        except VidaError as e:
            attempt.fail()
            await self._record_failure(cmd.client_type, e.message)
            raise
        except Exception as e:
            attempt.fail()
            logger.exception("OAuth callback failed unexpectedly")
            await self._record_failure(cmd.client_type, "Authentication failed")
            raise AuthenticationFailedError() from e

        await self.audit_log.record(
            AuditEntry(
                action="user_registration_web" if resolved.is_new_account else "user_login_web",
                account_id=result.account_id,
                role=result.role.value,
                resource_id=result.account_id,
                metadata={
                    "client_type": cmd.client_type.value,
                    "is_new_account": resolved.is_new_account,
                    "auth_method": "bankid_web",
                    "ssn_provided": True,
                },
            )
        )
        logger.info("Browser login complete for account %s", result.account_id)
        return result

    async def _record_failure(self, client_type: ClientType, message: str) -> None:
        await self.audit_log.record(
            AuditEntry(
                action="user_login_web_callback_failed",
                success=False,
                error_message=message,
                metadata={"client_type": client_type.value},
            )
        )


class NativeLogin(Command):
    """Command for the native app, which authenticates with the broker itself
    and presents the resulting ID token."""

    client_type: ClientType
    id_token: str | None = None


class NativeLoginHandler(CommandHandler[NativeLogin, SessionIssued]):
    broker: IdentityBroker
    identity_resolver: IdentityResolver
    token_service: TokenService
    audit_log: AuditLog

    async def run(self, cmd: NativeLogin) -> SessionIssued:
        """Verify a broker ID token and issue a bearer session."""
        if cmd.client_type is not ClientType.NATIVE_APP:
            raise InvalidClientTypeError("This endpoint is only for mobile app clients")
        if not cmd.id_token:
            raise NotAuthenticatedError(
                "Authorization header with Bearer token required",
                code="missing_token",
            )
        self.broker.ensure_ready()

        attempt = LoginAttempt(cmd.client_type)
        try:
            attempt.advance(LoginState.EXCHANGING_CODE)
            claims = await self.broker.verify_native_token(cmd.id_token)

            attempt.advance(LoginState.ISSUING_SESSION)
            resolved = await self.identity_resolver.resolve(claims)
            result = issue_session(self.token_service, resolved, with_csrf=False)
            attempt.advance(LoginState.DONE)
        except VidaError as e:
            attempt.fail()
            await self._record_failure(e.message)
            raise
        except Exception as e:
            attempt.fail()
            logger.exception("Native login failed unexpectedly")
            await self._record_failure("Authentication failed")
            raise AuthenticationFailedError() from e

        await self.audit_log.record(
            AuditEntry(
                action=(
                    "user_registration_mobile" if resolved.is_new_account else "user_login_mobile"
                ),
                account_id=result.account_id,
                role=result.role.value,
                resource_id=result.account_id,
                metadata={
                    "client_type": cmd.client_type.value,
                    "is_new_account": resolved.is_new_account,
                    "auth_method": "bankid_mobile",
                    "ssn_provided": True,
                },
            )
        )
        logger.info("Native app login complete for account %s", result.account_id)
        return result

    async def _record_failure(self, message: str) -> None:
        await self.audit_log.record(
            AuditEntry(
                action="user_login_mobile_failed",
                success=False,
                error_message=message,
                metadata={"client_type": ClientType.NATIVE_APP.value},
            )
        )
