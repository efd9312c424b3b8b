from typing import Annotated

from fastapi import APIRouter, Depends

from ..core.responses import success
from ..models.RefreshToken import AccessClaims, LoginRequest, RefreshRequest
from .dependencies import enforce_login_rate_limit, get_current_claims, get_session_manager
from .service import SessionManager

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", dependencies=[Depends(enforce_login_rate_limit)])
async def login(
    login_data: LoginRequest,
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
):
    """
    Login with employee ID and password to get an access/refresh token pair.
    """
    result = await sessions.login(login_data.employee_id, login_data.password)
    return success(result)


@router.post("/refresh")
async def refresh(
    refresh_data: RefreshRequest,
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
):
    """
    Exchange a refresh token for a new pair. The presented token is consumed.
    """
    pair = await sessions.refresh(refresh_data.refresh_token)
    return success(pair)


@router.post("/logout")
async def logout(
    refresh_data: RefreshRequest,
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
):
    """
    Revoke a refresh token. Always acknowledged, whatever the token's state.
    """
    await sessions.logout(refresh_data.refresh_token)
    return success({"message": "Logged out successfully"})


@router.get("/me")
async def read_current_claims(claims: Annotated[AccessClaims, Depends(get_current_claims)]):
    return success(claims)
