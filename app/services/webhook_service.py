from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session

from app.logging_config import get_logger
from app.models import NotificationEvent

logger = get_logger(__name__)


def log_notification(provider: str, payload: Mapping[str, Any], db: Session) -> NotificationEvent:
    """
    Record a raw provider notification before it is verified.
    Returns the NotificationEvent row.
    """
    event = NotificationEvent(
        provider=provider,
        merchant_reference=payload.get("m_payment_id"),
        provider_reference=payload.get("pf_payment_id"),
        payment_status=payload.get("payment_status"),
        payload={k: v for k, v in payload.items() if k != "passphrase"},
        status="received",
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    return event


def update_notification_status(
    event: NotificationEvent,
    status: str,
    db: Session,
    error: Optional[str] = None,
) -> None:
    """
    Mark how a logged notification was handled (processed/rejected/failed).
    """
    event.status = status
    event.processed_at = datetime.now(timezone.utc)
    if error:
        event.error = error
    db.commit()
    logger.info(
        "notification_status_updated",
        notification_id=event.id,
        merchant_reference=event.merchant_reference,
        status=status,
    )
