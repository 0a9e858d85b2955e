"""Sign-up, sign-in, sign-out and current user"""

from fastapi import APIRouter, Depends

from prime_ledger.api.v1.schemas import SessionResponse, SignInRequest, SignUpRequest, UserSchema
from prime_ledger.api.dependencies import get_auth_client, get_ledger
from prime_ledger.infrastructure.clients.auth import AuthClient
from prime_ledger.services.ledger import Ledger

router = APIRouter()


def _session_response(auth_client: AuthClient) -> SessionResponse:
    user = auth_client.session.current_user
    if user is None:
        return SessionResponse(signed_in=False)
    return SessionResponse(signed_in=True, user=UserSchema.model_validate(user))


@router.post("/auth/sign-up", response_model=SessionResponse, status_code=201)
async def sign_up(
    request_body: SignUpRequest,
    auth_client: AuthClient = Depends(get_auth_client),
    ledger: Ledger = Depends(get_ledger),
):
    await auth_client.sign_up(request_body.email, request_body.password, request_body.display_name)
    if auth_client.session.current_user is not None:
        await ledger.load()
    return _session_response(auth_client)


@router.post("/auth/sign-in", response_model=SessionResponse)
async def sign_in(
    request_body: SignInRequest,
    auth_client: AuthClient = Depends(get_auth_client),
    ledger: Ledger = Depends(get_ledger),
):
    """Sign in and load the user's ledger data"""
    await auth_client.sign_in(request_body.email, request_body.password)
    await ledger.load()
    return _session_response(auth_client)


@router.post("/auth/sign-out", response_model=SessionResponse)
async def sign_out(auth_client: AuthClient = Depends(get_auth_client)):
    await auth_client.sign_out()
    return _session_response(auth_client)


@router.get("/auth/me", response_model=SessionResponse)
async def me(auth_client: AuthClient = Depends(get_auth_client)):
    await auth_client.get_current_user()
    return _session_response(auth_client)
