from datetime import datetime
from decimal import Decimal
from typing import Optional, Any, Dict, List
from pydantic import AliasChoices, BaseModel, Field, ConfigDict

from app.psp.adapter import PaymentMethod


# ------------------------------------------------------
# PLACE ORDER
# ------------------------------------------------------

class OrderItemIn(BaseModel):
    product_id: str = Field(..., min_length=1, max_length=64,
                            validation_alias=AliasChoices("product_id", "productId", "_id"))
    quantity: int = Field(..., ge=1)
    size: Optional[str] = None


class AddressIn(BaseModel):
    first_name: Optional[str] = Field(None, validation_alias=AliasChoices("first_name", "firstName"))
    last_name: Optional[str] = Field(None, validation_alias=AliasChoices("last_name", "lastName"))
    email: Optional[str] = None
    phone: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipcode: Optional[str] = None
    country: Optional[str] = None


class PlaceOrderIn(BaseModel):
    items: List[OrderItemIn]
    address: AddressIn
    amount: Decimal = Field(..., description="client-computed total, checked against the server total")
    payment_method: PaymentMethod = Field(
        PaymentMethod.COD, validation_alias=AliasChoices("payment_method", "paymentMethod")
    )


class PlaceOrderOut(BaseModel):
    success: bool = True
    order_id: str
    payment_method: PaymentMethod
    accepted: bool = False
    redirect_url: Optional[str] = None
    message: str


# ------------------------------------------------------
# VERIFY
# ------------------------------------------------------

class VerifyIn(BaseModel):
    """Posted by the storefront's /verify page after the gateway redirect."""
    order_id: str = Field(..., min_length=1, validation_alias=AliasChoices("order_id", "orderId"))
    success: bool
    payment_method: PaymentMethod = Field(
        ..., validation_alias=AliasChoices("payment_method", "paymentMethod")
    )


class VerifyOut(BaseModel):
    success: bool
    message: str


# ------------------------------------------------------
# ORDERS
# ------------------------------------------------------

class OrderItemOut(BaseModel):
    product_id: str
    name: str
    price: Decimal
    quantity: int
    size: Optional[str] = None
    image: Optional[str] = None


class OrderOut(BaseModel):
    id: str
    user_id: str
    items: List[OrderItemOut]
    address: Dict[str, Any]
    amount: Decimal
    delivery_charge: Decimal
    currency: str
    payment_method: str
    payment_state: str
    gateway_reference: Optional[str] = None
    created_at: datetime
    paid_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class OrdersOut(BaseModel):
    success: bool = True
    orders: List[OrderOut]
