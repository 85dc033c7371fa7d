"""
Shipping Relay API

Storefront-facing Shiprocket endpoints. Errors raised by the relay
(ShippingError subclasses) are turned into JSON bodies by the exception
handler registered in app.main.
"""
from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends

from app.services.shipping_relay_service import (
    ServiceabilityRequest,
    ShippingOrderRequest,
    ShippingRelayService,
)

router = APIRouter(tags=["shipping"])


@lru_cache()
def get_shipping_relay() -> ShippingRelayService:
    """One relay (and so one token cache) per process"""
    return ShippingRelayService()


@router.post("/login-shiprocket")
async def login_shiprocket(relay: ShippingRelayService = Depends(get_shipping_relay)):
    """Force a token check; logs in only when the cached token is missing or expiring."""
    token = await relay.login()
    return {"message": "Shiprocket login successful", "token": token}


@router.post("/create-order")
async def create_order(
    order: Optional[ShippingOrderRequest] = None,
    relay: ShippingRelayService = Depends(get_shipping_relay),
):
    """Create the Shiprocket shipment for a storefront order; returns Shiprocket's body as-is."""
    return await relay.create_shipping_order(order or ShippingOrderRequest())


@router.post("/check-courier")
async def check_courier(
    req: Optional[ServiceabilityRequest] = None,
    relay: ShippingRelayService = Depends(get_shipping_relay),
):
    """Courier serviceability between pickup and delivery pincodes."""
    return await relay.check_courier_serviceability(req or ServiceabilityRequest())
