"""Authentication routes for the BankID login flows."""

import logging
from datetime import datetime
from typing import Annotated, Any
from urllib.parse import urlencode

from dishka import FromDishka
from dishka.integrations.fastapi import DishkaRoute
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import RedirectResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException

from vidacure.application.api.v1.errors import vida_error_response
from vidacure.config import Config
from vidacure.domain.auth.command.login import (
    CompleteOAuth,
    CompleteOAuthHandler,
    InitiateLogin,
    InitiateLoginHandler,
    NativeLogin,
    NativeLoginHandler,
)
from vidacure.domain.auth.deps import require_session
from vidacure.domain.auth.model.principal import Principal
from vidacure.domain.auth.model.value import Role
from vidacure.domain.auth.query.get_current_account import (
    GetCurrentAccount,
    GetCurrentAccountHandler,
)
from vidacure.domain.auth.service.client import (
    CSRF_COOKIE,
    SESSION_COOKIE,
    STATE_COOKIE,
    bearer_token,
    detect_client_type,
)
from vidacure.domain.shared.error import (
    BrokerNotConfiguredError,
    InvalidCallbackRequestError,
    InvalidOAuthStateError,
    VidaError,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Authentication"], route_class=DishkaRoute)

_CALLBACK_PARAMS = ("code", "state", "error", "error_description")


class LoginUser(BaseModel):
    id: str
    name: str
    role: Role


class NativeLoginResponse(BaseModel):
    """Response for native app login."""

    success: bool = True
    message: str
    token: str
    user: LoginUser


class AccountResponse(BaseModel):
    id: str
    name: str
    given_name: str
    family_name: str
    role: Role
    last_login_at: datetime | None
    has_completed_onboarding: bool


class MeResponse(BaseModel):
    """Response containing the authenticated account."""

    authenticated: bool = True
    message: str = "User authenticated"
    user: AccountResponse
    csrfToken: str | None = None


class LogoutResponse(BaseModel):
    success: bool = True
    message: str = "Logged out successfully"


def _callback_url(request: Request, config: Config) -> str:
    """Callback URL registered with the broker; must match between login and callback."""
    if config.auth.callback_url:
        return config.auth.callback_url
    # Chained proxies append their own scheme; the first is the client-facing one
    forwarded_proto = request.headers.get("x-forwarded-proto", "").split(",")[0].strip()
    scheme = forwarded_proto or request.url.scheme
    host = request.headers.get("host") or request.url.netloc
    path = request.app.url_path_for("handle_oauth_callback")
    return f"{scheme}://{host}{path}"


def _frontend_redirect(config: Config, params: dict[str, str]) -> RedirectResponse:
    base = config.frontend.url
    separator = "&" if "?" in base else "?"
    return RedirectResponse(url=f"{base}{separator}{urlencode(params)}", status_code=302)


def _set_cookie(
    response: Response,
    config: Config,
    key: str,
    value: str,
    max_age: int,
    httponly: bool = True,
) -> None:
    response.set_cookie(
        key,
        value,
        max_age=max_age,
        path="/",
        httponly=httponly,
        secure=config.auth.cookies.secure,
        samesite=config.auth.cookies.samesite,
    )


def _clear_cookie(response: Response, config: Config, key: str, httponly: bool = True) -> None:
    response.delete_cookie(
        key,
        path="/",
        httponly=httponly,
        secure=config.auth.cookies.secure,
        samesite=config.auth.cookies.samesite,
    )


async def _callback_params(request: Request) -> dict[str, str | None]:
    """Read callback parameters from the query string, then from a POSTed body."""
    params: dict[str, str | None] = {
        name: request.query_params.get(name) for name in _CALLBACK_PARAMS
    }
    if request.method != "POST":
        return params

    content_type = request.headers.get("content-type", "")
    body: dict[str, Any] = {}
    if content_type.startswith("application/json"):
        try:
            payload = await request.json()
        except ValueError as e:
            raise InvalidCallbackRequestError("Malformed callback body") from e
        if isinstance(payload, dict):
            body = payload
    elif content_type.startswith(("application/x-www-form-urlencoded", "multipart/form-data")):
        try:
            form = await request.form()
        except (MultiPartException, HTTPException) as e:
            raise InvalidCallbackRequestError("Malformed callback body") from e
        body = {k: v for k, v in form.items() if isinstance(v, str)}

    for name in _CALLBACK_PARAMS:
        if params[name] is None and isinstance(body.get(name), str):
            params[name] = body[name]
    return params


@router.get("/login")
async def initiate_login(
    request: Request,
    config: FromDishka[Config],
    handler: FromDishka[InitiateLoginHandler],
) -> Response:
    """Initiate BankID login.

    Redirects to the identity broker with a method hint for the client type.
    """
    client_type = detect_client_type(request.headers)
    result = await handler.run(
        InitiateLogin(callback_url=_callback_url(request, config), client_type=client_type)
    )

    response = RedirectResponse(url=result.authorization_url, status_code=302)
    _set_cookie(response, config, STATE_COOKIE, result.state, config.auth.state_ttl_seconds)
    logger.info("Login initiated for %s client, redirecting to broker", client_type.value)
    return response


@router.api_route("/callback", methods=["GET", "POST"])
async def handle_oauth_callback(
    request: Request,
    config: FromDishka[Config],
    handler: FromDishka[CompleteOAuthHandler],
) -> Response:
    """Handle the broker redirect.

    Sets the session and CSRF cookies and redirects to the frontend. The state
    cookie is cleared whatever the outcome.
    """
    response: Response
    try:
        params = await _callback_params(request)
        result = await handler.run(
            CompleteOAuth(
                code=params["code"],
                state=params["state"],
                expected_state=request.cookies.get(STATE_COOKIE),
                error=params["error"],
                error_description=params["error_description"],
                callback_url=_callback_url(request, config),
                client_type=detect_client_type(request.headers),
            )
        )
    except (InvalidCallbackRequestError, InvalidOAuthStateError, BrokerNotConfiguredError) as e:
        response = vida_error_response(e)
    except VidaError as e:
        logger.warning("Login callback failed: %s", e.code)
        response = _frontend_redirect(
            config, {"auth": "error", "error": e.code, "message": e.message}
        )
    else:
        response = _frontend_redirect(config, {"auth": "success", "message": result.message})
        _set_cookie(response, config, SESSION_COOKIE, result.token, result.expires_in)
        if result.csrf_token:
            _set_cookie(
                response, config, CSRF_COOKIE, result.csrf_token, result.expires_in, httponly=False
            )

    _clear_cookie(response, config, STATE_COOKIE)
    return response


@router.post("/login", response_model=NativeLoginResponse)
async def native_login(
    request: Request,
    handler: FromDishka[NativeLoginHandler],
) -> NativeLoginResponse:
    """Log in the native app with an ID token it obtained from the broker."""
    result = await handler.run(
        NativeLogin(
            client_type=detect_client_type(request.headers),
            id_token=bearer_token(request.headers),
        )
    )
    return NativeLoginResponse(
        message=result.message,
        token=result.token,
        user=LoginUser(id=result.account_id, name=result.name, role=result.role),
    )


@router.get("/me", response_model=MeResponse)
@router.get("/login/check", response_model=MeResponse, name="check_login")
async def get_current_user(
    request: Request,
    principal: Annotated[Principal, Depends(require_session())],
    handler: FromDishka[GetCurrentAccountHandler],
) -> MeResponse:
    """Return the authenticated account."""
    account = await handler.run(
        GetCurrentAccount(account_id=principal.account_id, client_type=principal.client_type)
    )
    return MeResponse(
        user=AccountResponse(**account.model_dump()),
        csrfToken=request.cookies.get(CSRF_COOKIE),
    )


@router.post("/logout", response_model=LogoutResponse)
async def logout(response: Response, config: FromDishka[Config]) -> LogoutResponse:
    """Clear the session and CSRF cookies. Tokens stay valid until they expire."""
    _clear_cookie(response, config, SESSION_COOKIE)
    _clear_cookie(response, config, CSRF_COOKIE, httponly=False)
    return LogoutResponse()
