# app/routers/auth.py
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.deps import current_principal, get_password_hasher, get_token_service
from app.schemas.auth import AuthOut, LoginIn, RefreshIn, RefreshOut, RegisterIn, UserOut
from app.services import identity
from app.services.auth_pipeline import AuthContext
from app.services.passwords import PasswordHasher
from app.services.tokens import TokenService

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _auth_out(result: identity.AuthResult) -> AuthOut:
    return AuthOut(
        user=UserOut.model_validate(result.user),
        token=result.tokens.token,
        refresh_token=result.tokens.refresh_token,
        expires_in=result.tokens.expires_in,
    )


# O role vem do corpo do request: qualquer pessoa pode se
# registrar como admin de um tenant existente. Restringir isso é decisão de produto.
@router.post("/register", response_model=AuthOut, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterIn,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    hasher: PasswordHasher = Depends(get_password_hasher),
):
    result = identity.register(
        db,
        tokens=tokens,
        hasher=hasher,
        tenant_id=payload.tenant_id,
        email=payload.email,
        password=payload.password,
        name=payload.name,
        role=payload.role,
    )
    return _auth_out(result)


@router.post("/login", response_model=AuthOut)
def login(
    payload: LoginIn,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    hasher: PasswordHasher = Depends(get_password_hasher),
):
    result = identity.login(
        db,
        tokens=tokens,
        hasher=hasher,
        tenant_id=payload.tenant_id,
        email=payload.email,
        password=payload.password,
    )
    return _auth_out(result)


@router.post("/refresh", response_model=RefreshOut)
def refresh(payload: RefreshIn, tokens: TokenService = Depends(get_token_service)):
    result = identity.refresh_access_token(tokens=tokens, refresh_token=payload.refresh_token)
    return RefreshOut(token=result.token, expires_in=result.expires_in)


@router.get("/me", response_model=UserOut)
def me(
    context: AuthContext = Depends(current_principal),
    db: Session = Depends(get_db),
):
    user = identity.describe_principal(
        db,
        user_id=context.principal.user_id,
        tenant_id=context.principal.tenant_id,
    )
    return UserOut.model_validate(user)
