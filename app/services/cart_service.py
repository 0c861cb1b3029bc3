from typing import Protocol

from sqlalchemy.orm import Session

from app.logging_config import get_logger
from app.models import User

logger = get_logger(__name__)


class CartStore(Protocol):
    def clear(self, user_id: str) -> None:
        """Empty the user's stored cart. Must be safe to repeat."""
        ...


class SqlCartStore:
    """Clears the cart snapshot kept on the user record."""

    def __init__(self, db: Session):
        self.db = db

    def clear(self, user_id: str) -> None:
        updated = (
            self.db.query(User)
            .filter(User.id == user_id)
            .update({User.cart_data: {}}, synchronize_session=False)
        )
        self.db.commit()
        if not updated:
            logger.warning("cart_clear_user_missing", user_id=user_id)
        else:
            logger.info("cart_cleared", user_id=user_id)
