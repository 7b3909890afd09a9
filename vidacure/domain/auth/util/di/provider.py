"""DI provider for auth domain."""

from dishka import from_context, provide
from starlette.requests import Request

from vidacure.config import Config
from vidacure.domain.auth.command.login import (
    CompleteOAuthHandler,
    InitiateLoginHandler,
    NativeLoginHandler,
)
from vidacure.domain.auth.command.provision import ProvisionDoctorHandler
from vidacure.domain.auth.query.get_current_account import GetCurrentAccountHandler
from vidacure.domain.auth.service.csrf import CsrfGuard
from vidacure.domain.auth.service.gate import AccessGate
from vidacure.domain.auth.service.identity import IdentityResolver
from vidacure.domain.auth.service.ssn import SsnHasher
from vidacure.domain.auth.service.token import TokenService
from vidacure.domain.shared.error import ConfigurationError
from vidacure.util.di.base import Provider
from vidacure.util.di.scope import Scope


class AuthProvider(Provider):
    """DI provider for auth domain services and handlers."""

    request = from_context(provides=Request, scope=Scope.UOW)

    # Command Handlers
    initiate_login_handler = provide(InitiateLoginHandler, scope=Scope.UOW)
    complete_oauth_handler = provide(CompleteOAuthHandler, scope=Scope.UOW)
    native_login_handler = provide(NativeLoginHandler, scope=Scope.UOW)
    provision_doctor_handler = provide(ProvisionDoctorHandler, scope=Scope.UOW)

    # Query Handlers
    get_current_account_handler = provide(GetCurrentAccountHandler, scope=Scope.UOW)

    # Services
    identity_resolver = provide(IdentityResolver, scope=Scope.UOW)
    csrf_guard = provide(CsrfGuard, scope=Scope.APP)
    access_gate = provide(AccessGate, scope=Scope.APP)

    @provide(scope=Scope.APP)
    def get_token_service(self, config: Config) -> TokenService:
        """Provide TokenService. Refuses to sign with an empty secret."""
        if not config.auth.session.secret:
            raise ConfigurationError(
                "auth.session.secret must be set", code="missing_session_secret"
            )
        return TokenService(_config=config.auth.session)

    @provide(scope=Scope.APP)
    def get_ssn_hasher(self, config: Config) -> SsnHasher:
        """Provide SsnHasher. Refuses to hash with an empty secret."""
        if not config.auth.ssn_hash_secret:
            raise ConfigurationError(
                "auth.ssn_hash_secret must be set", code="missing_ssn_hash_secret"
            )
        return SsnHasher(_secret=config.auth.ssn_hash_secret)
