"""FastAPI dependencies for authentication."""

from collections.abc import Awaitable, Callable

from fastapi import Request

from vidacure.domain.auth.model.principal import Principal
from vidacure.domain.auth.model.value import Role
from vidacure.domain.auth.service.gate import AccessGate


def require_session(
    *roles: Role, csrf: bool = True
) -> Callable[[Request], Awaitable[Principal]]:
    """Build a dependency that authenticates the request or raises.

    The resolved Principal is also attached to ``request.state.principal``.

    Usage in routes:
        @router.get("/protected")
        async def protected_endpoint(
            principal: Annotated[Principal, Depends(require_session(Role.DOCTOR))],
        ):
            ...
    """

    async def dependency(request: Request) -> Principal:
        gate = await request.state.dishka_container.get(AccessGate)
        principal = gate.authenticate(
            request.headers,
            request.cookies,
            roles=roles or None,
            csrf=csrf,
        )
        request.state.principal = principal
        return principal

    return dependency
