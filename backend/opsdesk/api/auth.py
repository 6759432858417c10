from fastapi import APIRouter, Depends, status

from opsdesk.api.deps import bearer_token, current_user, get_identity, require_owner
from opsdesk.core.errors import NotAuthenticated
from opsdesk.models.user import User
from opsdesk.schemas.auth import (
    PasswordResetConfirm,
    PasswordResetRequest,
    RoleChange,
    Session,
    SignIn,
    SignUp,
    UserOut,
)
from opsdesk.services.identity import IdentityProvider

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/sign-up", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def sign_up(payload: SignUp, identity: IdentityProvider = Depends(get_identity)):
    return identity.sign_up(
        payload.email,
        payload.password,
        display_name=payload.display_name,
        company_name=payload.company_name,
    )


@router.post("/sign-in", response_model=Session)
def sign_in(payload: SignIn, identity: IdentityProvider = Depends(get_identity)):
    return identity.sign_in(payload.email, payload.password)


@router.post("/sign-out", status_code=status.HTTP_204_NO_CONTENT)
def sign_out(token: str | None = Depends(bearer_token), identity: IdentityProvider = Depends(get_identity)):
    if not token:
        raise NotAuthenticated()
    identity.sign_out(token)


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(current_user)):
    return user


@router.post("/password-reset", status_code=status.HTTP_202_ACCEPTED)
def request_password_reset(payload: PasswordResetRequest, identity: IdentityProvider = Depends(get_identity)):
    identity.request_password_reset(payload.email)
    return {"ok": True, "message": "If that address has an account, a reset link is on its way."}


@router.post("/password-reset/confirm")
def confirm_password_reset(payload: PasswordResetConfirm, identity: IdentityProvider = Depends(get_identity)):
    identity.reset_password(payload.token, payload.password)
    return {"ok": True, "message": "Password updated. You can sign in now."}


@router.get("/users", response_model=list[UserOut], dependencies=[Depends(require_owner)])
def list_users(identity: IdentityProvider = Depends(get_identity)):
    return identity.list_users()


@router.post("/users/{user_id}/role", response_model=UserOut, dependencies=[Depends(require_owner)])
def change_role(user_id: int, payload: RoleChange, identity: IdentityProvider = Depends(get_identity)):
    return identity.set_role(user_id, payload.role)
