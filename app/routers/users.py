# app/routers/users.py
from fastapi import APIRouter, Depends, Response
from sqlmodel import Session

from app.core.auth import require_auth
from app.core.config import get_settings
from app.database import get_session
from app.models.user import User
from app.repositories.order_repo import OrderRepository
from app.repositories.user_repo import UserRepository
from app.schemas.user import AccountDeleted, UserRead
from app.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])

settings = get_settings()

repo = UserRepository()
service = UserService(repo, OrderRepository())


@router.get("/me", response_model=UserRead)
def read_me(current_user: User = Depends(require_auth)):
    """
    Return the authenticated user's profile.
    """
    return service.get_me(current_user)


@router.delete("/me", response_model=AccountDeleted)
def delete_me(
    response: Response,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Delete the authenticated user's account.

    Past orders are kept with anonymized contact details. The auth
    cookie is cleared.
    """
    result = service.delete_account(session, current_user)
    response.delete_cookie(settings.AUTH_COOKIE_NAME, path="/")
    return result
