# app/services/user_service.py
import logging

from sqlmodel import Session

from app.core.errors import AuthorizationError
from app.models.user import User
from app.repositories.order_repo import OrderRepository
from app.repositories.user_repo import UserRepository
from app.schemas.user import AccountDeleted

logger = logging.getLogger(__name__)


class UserService:
    """
    Business logic for User.

    Responsibilities:
      - self profile
      - account deletion with order anonymization
    """

    def __init__(self, repo: UserRepository, order_repo: OrderRepository):
        self.repo = repo
        self.order_repo = order_repo

    def get_me(self, current_user: User) -> User:
        """Return the current authenticated user."""
        return current_user

    def delete_account(self, session: Session, current_user: User) -> AccountDeleted:
        """
        Delete the caller's account.

        Orders are kept for business records but stripped of contact
        details and detached from the account first.

        Raises:
            AuthorizationError(403): admins cannot delete themselves here.
        """
        if current_user.role == "admin":
            raise AuthorizationError("Admin accounts cannot be deleted")

        user_id = current_user.id
        anonymized = self.order_repo.anonymize_for_user(session, user_id)
        self.repo.delete(session, current_user)
        session.commit()

        logger.info("Account %s deleted, %d orders anonymized", user_id, anonymized)

        return AccountDeleted(
            message="Account deleted successfully",
            anonymized_orders=anonymized,
        )
