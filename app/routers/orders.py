"""
Order endpoints: placement, return-redirect verification and listings.
All routes require a bearer token; the listing of every order is admin-only.
"""
from fastapi import APIRouter, Depends

from app import schemas
from app.deps import get_current_user_id, get_order_service, require_admin
from app.services.order_service import OrderService

router = APIRouter(tags=["Orders"])


@router.post("/place", response_model=schemas.PlaceOrderOut)
def place_order(
    body: schemas.PlaceOrderIn,
    user_id: str = Depends(get_current_user_id),
    service: OrderService = Depends(get_order_service),
):
    """
    Create an order and start its payment.
    COD orders are accepted immediately; redirect methods return the gateway URL.
    """
    result = service.place_order(
        user_id=user_id,
        items=[item.model_dump() for item in body.items],
        address=body.address.model_dump(exclude_none=True),
        amount=body.amount,
        method=body.payment_method,
    )
    target = result.target
    return schemas.PlaceOrderOut(
        order_id=result.order.id,
        payment_method=body.payment_method,
        accepted=target.is_accepted,
        redirect_url=target.url,
        message="Order Placed" if target.is_accepted else "Redirect to complete payment",
    )


@router.post("/verify", response_model=schemas.VerifyOut)
def verify_payment(
    body: schemas.VerifyIn,
    user_id: str = Depends(get_current_user_id),
    service: OrderService = Depends(get_order_service),
):
    result = service.verify_return(
        order_id=body.order_id,
        user_id=user_id,
        method=body.payment_method,
        params={"success": body.success, "orderId": body.order_id},
    )
    if result.success:
        return schemas.VerifyOut(success=True, message="Payment confirmed")
    return schemas.VerifyOut(success=False, message="Payment not completed, order cancelled")


@router.post("/list", response_model=schemas.OrdersOut)
def all_orders(
    _admin: dict = Depends(require_admin),
    service: OrderService = Depends(get_order_service),
):
    """All orders for the admin panel, voided ones included."""
    orders = service.list_orders()
    return schemas.OrdersOut(orders=[schemas.OrderOut.model_validate(o) for o in orders])


@router.post("/userorders", response_model=schemas.OrdersOut)
def user_orders(
    user_id: str = Depends(get_current_user_id),
    service: OrderService = Depends(get_order_service),
):
    orders = service.list_user_orders(user_id)
    return schemas.OrdersOut(orders=[schemas.OrderOut.model_validate(o) for o in orders])
