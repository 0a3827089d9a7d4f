"""
api/routes/auth.py -- Credential and token endpoints of the auth service.

Routes:
  POST /register  -- create a credential; 201 {token, user}
  POST /login     -- exchange credentials for a token; 200 {token, user}
  GET  /verify    -- check a bearer token; 200 {valid, user_id, username, expires_at}

Request pipeline for /register and /login (terminal on first failure):
  CORS preflight (CORSMiddleware) -> attempt limit middleware [429] -> body decode [400]
  -> field validation [400] -> credential create [409] / lookup [401]
  -> token issuance -> response

Security:
  [H1] /register and /login share one attempt budget per client address
       (5 per 15 minutes by default), enforced before the body is read.
  [C1] authenticate_user() provides timing equalization -- use it, never inline.
  [C2] Unknown username and wrong password produce byte-identical 401s.
  [M5] Cache-Control: no-store on every response that carries a token.

Handlers are plain def: bcrypt and the database block, so FastAPI runs them
on a worker thread.
"""

from __future__ import annotations

from fastapi import APIRouter, Header, Request
from fastapi.responses import JSONResponse

from api.models import CredentialsRequest, TokenResponse, UserInfo, VerifyResponse
from auth.credentials import authenticate_user, register_user
from auth.models import User
from auth.store import UserStore
from auth.tokens import create_access_token, extract_bearer_token, verify_access_token

router = APIRouter()


def _token_response(user: User, status_code: int) -> JSONResponse:
    token = create_access_token(user.id, user.username)
    resp = JSONResponse(
        status_code=status_code,
        content=TokenResponse(token=token, user=UserInfo(id=user.id, username=user.username)).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@router.post("/register", response_model=TokenResponse, status_code=201)
def register(request: Request, body: CredentialsRequest) -> JSONResponse:
    """Create a credential and return a token for it.

    Length rules are checked by register_user() before the store is touched;
    a taken username surfaces as 409 from the UNIQUE constraint.
    """
    user_store: UserStore = request.app.state.user_store
    user = register_user(user_store, body.username, body.password)
    return _token_response(user, 201)


@router.post("/login", response_model=TokenResponse)
def login(request: Request, body: CredentialsRequest) -> JSONResponse:
    """Authenticate with username and password; return a fresh token.

    Uses authenticate_user() which includes timing equalization [C1]. Do NOT
    inline get_by_username() + verify_password() -- that re-introduces the
    timing attack.
    """
    user_store: UserStore = request.app.state.user_store
    user = authenticate_user(user_store, body.username, body.password)
    return _token_response(user, 200)


@router.get("/verify", response_model=VerifyResponse)
def verify(authorization: str | None = Header(default=None)) -> VerifyResponse:
    """Verify a bearer token and return the identity it asserts.

    Called by the tasks service on every request. Not rate-limited: it is
    cheap (no bcrypt, no database) and the tasks service is its main caller.
    """
    identity = verify_access_token(extract_bearer_token(authorization))
    return VerifyResponse(
        user_id=identity.user_id,
        username=identity.username,
        expires_at=identity.expires_at.isoformat() if identity.expires_at else None,
    )
