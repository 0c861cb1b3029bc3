"""
PayFast ITN: POST /api/order/payfast/notify
- Form-encoded body, authenticated by its MD5 signature (no user session)
- Every post is logged to notification_events before verification
- Replies 200 once verified and handled; repeats are idempotent
"""
from __future__ import annotations

from urllib.parse import parse_qsl

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from app.db import get_db
from app.deps import get_order_service
from app.errors import InvalidSignature, OrderAlreadyFinalized, OrderError
from app.logging_config import get_logger
from app.services.order_service import OrderService
from app.services.webhook_service import log_notification, update_notification_status

logger = get_logger(__name__)

router = APIRouter(tags=["PayFast Notifications"])


@router.post("/payfast/notify", response_class=PlainTextResponse)
async def payfast_notify(
    request: Request,
    db: Session = Depends(get_db),
    service: OrderService = Depends(get_order_service),
):
    body = await request.body()
    payload = dict(parse_qsl(body.decode("utf-8", errors="replace"), keep_blank_values=True))

    event = await run_in_threadpool(log_notification, "payfast", payload, db)

    try:
        result = await run_in_threadpool(service.apply_notification, payload)
    except InvalidSignature as e:
        logger.warning("notification_rejected", merchant_reference=payload.get("m_payment_id"), reason=e.message)
        await run_in_threadpool(update_notification_status, event, "rejected", db, e.message)
        raise
    except OrderAlreadyFinalized as e:
        await run_in_threadpool(update_notification_status, event, "processed", db, e.message)
        raise
    except OrderError as e:
        await run_in_threadpool(update_notification_status, event, "failed", db, e.message)
        raise
    except Exception as e:
        logger.error("notification_processing_error", merchant_reference=payload.get("m_payment_id"), exc_info=e)
        await run_in_threadpool(db.rollback)
        await run_in_threadpool(update_notification_status, event, "failed", db, f"{type(e).__name__}: {e}")
        raise

    await run_in_threadpool(update_notification_status, event, "processed", db)
    logger.info(
        "notification_processed",
        order_id=result.order.id,
        payment_state=result.order.payment_state,
        transitioned=result.transitioned,
    )
    return "OK"
