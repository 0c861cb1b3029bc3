from functools import lru_cache
from typing import Any, Dict

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from .config import Settings, settings
from .db import get_db
from .psp.dispatcher import PaymentDispatcher, build_dispatcher
from .security import decode_jwt
from .services.cart_service import SqlCartStore
from .services.catalog import SqlProductCatalog
from .services.order_service import OrderService
from .services.order_store import OrderStore

security = HTTPBearer()


def get_settings() -> Settings:
    return settings


@lru_cache()
def _process_dispatcher() -> PaymentDispatcher:
    return build_dispatcher(settings)


def get_dispatcher(current: Settings = Depends(get_settings)) -> PaymentDispatcher:
    """Adapters for the process settings are built once and reused."""
    if current is settings:
        return _process_dispatcher()
    return build_dispatcher(current)


def get_order_service(
    db: Session = Depends(get_db),
    current: Settings = Depends(get_settings),
    dispatcher: PaymentDispatcher = Depends(get_dispatcher),
) -> OrderService:
    return OrderService(
        store=OrderStore(db),
        dispatcher=dispatcher,
        catalog=SqlProductCatalog(db),
        carts=SqlCartStore(db),
        delivery_charge=current.DELIVERY_CHARGE,
        currency=current.CURRENCY,
    )


def get_token_claims(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Dict[str, Any]:
    payload = decode_jwt(credentials.credentials)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return payload


def get_current_user_id(claims: Dict[str, Any] = Depends(get_token_claims)) -> str:
    """
    Dependency resolving the caller's user id from the bearer token.
    """
    user_id = claims.get("user_id")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )
    return str(user_id)


def require_admin(claims: Dict[str, Any] = Depends(get_token_claims)) -> Dict[str, Any]:
    if claims.get("role") != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions. Required roles: ['admin']",
        )
    return claims
