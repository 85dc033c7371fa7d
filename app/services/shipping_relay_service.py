"""
Shipping Relay Service

Hides Shiprocket authentication from callers. One TokenCache per process
holds the bearer token obtained from /auth/login and refreshes it when it
is within REFRESH_BUFFER_SECONDS of expiry. Create-order and serviceability
requests are validated, mapped to Shiprocket payloads and forwarded with
the cached token; the provider's response body is returned untouched.

There is no lock around the refresh path: two requests that both see an
expired token will both log in, and the later write wins.
"""
import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import aiohttp
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from app.config import Settings, get_settings
from app.connectors.shiprocket_connector import ShiprocketAPIError, ShiprocketConnector
from app.exceptions import (
    AuthenticationError,
    ShippingValidationError,
    UpstreamOrderError,
    UpstreamServiceabilityError,
)
from app.utils.helpers import (
    is_valid_phone,
    is_valid_pincode,
    leading_int,
    number_or_default,
    only_digits,
)
from app.utils.logger import log

# Shiprocket tokens are valid for 15 days
TOKEN_TTL_SECONDS = 1_296_000
REFRESH_BUFFER_SECONDS = 60

DEFAULT_DIMENSION = 10  # cm, per side
DEFAULT_WEIGHT = 0.5  # kg
DEFAULT_COUNTRY = "India"

AUTH_FAILED_MESSAGE = "Failed to authenticate with Shiprocket. Check EMAIL/PASSWORD or 2FA."
ORDER_FAILED_MESSAGE = "Failed to create Shiprocket order"
SERVICEABILITY_FAILED_MESSAGE = "Failed to check courier serviceability"

TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError)


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------

class _RequestModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)


class Dimensions(_RequestModel):
    length: Optional[float] = None
    breadth: Optional[float] = None
    height: Optional[float] = None


class AddressDetails(_RequestModel):
    full_name: Optional[str] = Field(None, alias="fullName")
    name: Optional[str] = None
    phone: Optional[str] = None
    street_address: Optional[str] = Field(None, alias="streetAddress")
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    post_office: Optional[str] = Field(None, alias="postOffice")
    landmark: Optional[str] = None


class OrderItem(_RequestModel):
    id: Optional[str] = None
    sku: Optional[str] = None
    name: Optional[str] = None
    quantity: Optional[int] = None
    price: Optional[float] = None
    discount: Optional[float] = None
    tax: Optional[float] = None
    hsn: Optional[str] = None

    @field_validator("quantity", mode="before")
    @classmethod
    def integer_prefix(cls, value: Any) -> Optional[int]:
        # "2.5" ships as 2 units; unparseable quantities default to 1 later
        return leading_int(value)


class ShippingOrderRequest(_RequestModel):
    """Order as sent by the storefront checkout page."""
    order_id: Optional[str] = None
    order_date: Optional[str] = None  # "YYYY-MM-DD HH:MM"
    customer_email: Optional[str] = Field(
        None, validation_alias=AliasChoices("customer_email", "customerEmail")
    )
    address_details: Optional[AddressDetails] = None
    billing_address: Optional[AddressDetails] = Field(
        None, validation_alias=AliasChoices("billing_address", "billing")
    )
    items: Optional[List[OrderItem]] = None
    total_amount: Optional[float] = None
    payment_method: Optional[str] = None
    comment: Optional[str] = None
    dimensions: Optional[Dimensions] = None
    weight: Optional[float] = None
    shipping_charges: Optional[float] = None
    giftwrap_charges: Optional[float] = None
    transaction_charges: Optional[float] = None
    total_discount: Optional[float] = None
    user_measurements: Optional[Any] = None

    @field_validator("items", mode="before")
    @classmethod
    def items_must_be_list(cls, value: Any) -> Any:
        # Non-list items are reported by validate_order_request
        return value if isinstance(value, list) else None


class ServiceabilityRequest(_RequestModel):
    pickup_postcode: Optional[str] = None
    delivery_postcode: Optional[str] = None
    weight: Optional[float] = None
    cod_amount: Optional[float] = None
    order_amount: Optional[float] = None
    dimensions: Optional[Dimensions] = None


# ---------------------------------------------------------------------------
# Token cache
# ---------------------------------------------------------------------------

@dataclass
class CachedToken:
    token: str
    obtained_at: float  # epoch seconds
    ttl_seconds: int = TOKEN_TTL_SECONDS

    @property
    def expires_at(self) -> float:
        return self.obtained_at + self.ttl_seconds

    def is_fresh(self, now: float, buffer_seconds: int = REFRESH_BUFFER_SECONDS) -> bool:
        """True while more than buffer_seconds of validity remain"""
        return now < self.expires_at - buffer_seconds


class TokenCache:
    """
    Process-wide Shiprocket bearer token.

    Args:
        authenticate: coroutine function performing the credential exchange;
            returns the login response body (a dict with a ``token`` field)
        clock: returns the current time in epoch seconds
    """

    def __init__(
        self,
        authenticate: Callable[[], Awaitable[Any]],
        clock: Callable[[], float] = time.time,
        ttl_seconds: int = TOKEN_TTL_SECONDS,
        refresh_buffer_seconds: int = REFRESH_BUFFER_SECONDS,
    ):
        self._authenticate = authenticate
        self._clock = clock
        self.ttl_seconds = ttl_seconds
        self.refresh_buffer_seconds = refresh_buffer_seconds
        self.cached: Optional[CachedToken] = None

    async def ensure_token(self) -> str:
        now = self._clock()
        if self.cached is not None and self.cached.is_fresh(now, self.refresh_buffer_seconds):
            log.debug("Using existing Shiprocket token")
            return self.cached.token

        log.info("Shiprocket token expired or not found. Logging in...")
        try:
            body = await self._authenticate()
        except ShiprocketAPIError as e:
            log.error(f"Error logging into Shiprocket: {e.body}")
            raise AuthenticationError(AUTH_FAILED_MESSAGE, details=e.body) from e
        except TRANSPORT_ERRORS as e:
            log.error(f"Error logging into Shiprocket: {e}")
            raise AuthenticationError(AUTH_FAILED_MESSAGE, details=str(e)) from e

        token = body.get("token") if isinstance(body, dict) else None
        if not token:
            log.error("No token received from Shiprocket login")
            raise AuthenticationError(AUTH_FAILED_MESSAGE, details="No token received from Shiprocket login.")

        self.cached = CachedToken(token=token, obtained_at=now, ttl_seconds=self.ttl_seconds)
        log.info("Successfully obtained new Shiprocket token")
        return token


# ---------------------------------------------------------------------------
# Payload builders
# ---------------------------------------------------------------------------

def pickup_location_from_settings(settings: Settings) -> Dict[str, str]:
    return {
        "name": settings.pickup_name,
        "address": settings.pickup_address,
        "address_2": settings.pickup_address_2,
        "city": settings.pickup_city,
        "state": settings.pickup_state,
        "pincode": settings.pickup_pincode,
        "country": settings.pickup_country,
        "email": settings.pickup_email or settings.shiprocket_email,
        "phone": settings.pickup_phone,
    }


def _normalize_address(address: AddressDetails) -> Dict[str, str]:
    return {
        "full_name": address.full_name or address.name or "",
        "phone": address.phone or "",
        "street_address": address.street_address or address.address or "",
        "city": address.city or "",
        "state": address.state or "",
        "pincode": address.pincode or "",
        "address_2": address.landmark or address.post_office or "",
    }


def _dimension_fields(dimensions: Optional[Dimensions]) -> Dict[str, float]:
    dims = dimensions or Dimensions()
    return {
        "length": number_or_default(dims.length, DEFAULT_DIMENSION),
        "breadth": number_or_default(dims.breadth, DEFAULT_DIMENSION),
        "height": number_or_default(dims.height, DEFAULT_DIMENSION),
    }


def _party_fields(prefix: str, address: Dict[str, str], email: str) -> Dict[str, Any]:
    return {
        f"{prefix}_customer_name": address["full_name"],
        f"{prefix}_last_name": "",
        f"{prefix}_address": address["street_address"],
        f"{prefix}_address_2": address["address_2"],
        f"{prefix}_city": address["city"],
        f"{prefix}_pincode": address["pincode"],
        f"{prefix}_state": address["state"],
        f"{prefix}_country": DEFAULT_COUNTRY,
        f"{prefix}_email": email,
        f"{prefix}_phone": only_digits(address["phone"]),
    }


def validate_order_request(order: ShippingOrderRequest) -> None:
    """Raise ShippingValidationError for the first missing/invalid field"""
    if not order.order_id:
        raise ShippingValidationError("order_id is required")
    if not order.order_date:
        raise ShippingValidationError("order_date is required (YYYY-MM-DD HH:MM)")
    if not order.items:
        raise ShippingValidationError("items array required with at least one item")
    if order.address_details is None:
        raise ShippingValidationError("address_details required")

    shipping = _normalize_address(order.address_details)
    if not is_valid_phone(shipping["phone"]):
        raise ShippingValidationError("Shipping phone must be 10 digits")
    if not is_valid_pincode(shipping["pincode"]):
        raise ShippingValidationError("Shipping pincode must be 6 digits")


def build_order_payload(
    order: ShippingOrderRequest,
    pickup_location: Dict[str, str],
    channel_id: str,
) -> Dict[str, Any]:
    """
    Map a storefront order onto the Shiprocket /orders/create body.

    Billing and shipping are the same person; a separate billing address is
    honoured when given, but its phone/pincode fall back to the shipping
    ones when they do not validate.
    """
    validate_order_request(order)

    shipping = _normalize_address(order.address_details)
    billing = _normalize_address(order.billing_address) if order.billing_address else dict(shipping)
    if not is_valid_phone(billing["phone"]):
        billing["phone"] = shipping["phone"]
    if not is_valid_pincode(billing["pincode"]):
        billing["pincode"] = shipping["pincode"]

    email = order.customer_email or ""
    order_items = [
        {
            "name": item.name or "Item",
            "sku": str(item.id or item.sku or "SKU"),
            "units": int(item.quantity or 1),
            "selling_price": number_or_default(item.price),
            "discount": 0,
            "tax": 0,
            "hsn": item.hsn or "",
        }
        for item in order.items
    ]
    is_cod = (order.payment_method or "").lower() == "cod"

    payload: Dict[str, Any] = {
        "order_id": str(order.order_id),
        "order_date": order.order_date,
        "shipping_is_billing": True,
        "pickup_location": pickup_location,
        "channel_id": channel_id,
        "comment": order.comment or "Order from website",
    }
    payload.update(_party_fields("billing", billing, email))
    payload.update(_party_fields("shipping", shipping, email))
    payload.update({
        "order_items": order_items,
        "payment_method": "COD" if is_cod else "Prepaid",
        "shipping_charges": number_or_default(order.shipping_charges),
        "giftwrap_charges": number_or_default(order.giftwrap_charges),
        "transaction_charges": number_or_default(order.transaction_charges),
        "total_discount": number_or_default(order.total_discount),
        "sub_total": number_or_default(order.total_amount),
    })
    payload.update(_dimension_fields(order.dimensions))
    payload["weight"] = number_or_default(order.weight, DEFAULT_WEIGHT)
    return payload


def build_serviceability_payload(req: ServiceabilityRequest, now: float) -> Dict[str, Any]:
    """Map a serviceability check onto the Shiprocket body; ``now`` in epoch seconds"""
    if not req.pickup_postcode or not req.delivery_postcode:
        raise ShippingValidationError("pickup_postcode and delivery_postcode required")

    payload: Dict[str, Any] = {
        "pickup_postcode": req.pickup_postcode,
        "delivery_postcode": req.delivery_postcode,
        "weight": number_or_default(req.weight, DEFAULT_WEIGHT),
        "cod": number_or_default(req.cod_amount),
        "order_id": f"SERVICE_CHECK_{int(now * 1000)}",
    }
    payload.update(_dimension_fields(req.dimensions))
    payload["declared_value"] = number_or_default(req.order_amount)
    return payload


# ---------------------------------------------------------------------------
# Relay
# ---------------------------------------------------------------------------

class ShippingRelayService:
    """Authenticated pass-through to Shiprocket."""

    def __init__(
        self,
        connector: Optional[ShiprocketConnector] = None,
        token_cache: Optional[TokenCache] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings or get_settings()
        self.connector = connector or ShiprocketConnector(self.settings.shiprocket_base_url)
        self.clock = clock
        self.token_cache = token_cache or TokenCache(self._authenticate, clock=clock)

    async def _authenticate(self) -> Any:
        return await self.connector.login(
            self.settings.shiprocket_email,
            self.settings.shiprocket_password,
        )

    async def login(self) -> str:
        return await self.token_cache.ensure_token()

    async def create_shipping_order(self, order: ShippingOrderRequest) -> Any:
        payload = build_order_payload(
            order,
            pickup_location_from_settings(self.settings),
            self.settings.shiprocket_channel_id,
        )
        token = await self.token_cache.ensure_token()
        try:
            response = await self.connector.create_order(token, payload)
        except ShiprocketAPIError as e:
            log.error(f"Error creating Shiprocket order {payload['order_id']}: {e.body}")
            raise UpstreamOrderError(ORDER_FAILED_MESSAGE, details=_error_details(e)) from e
        except TRANSPORT_ERRORS as e:
            log.error(f"Error creating Shiprocket order {payload['order_id']}: {e}")
            raise UpstreamOrderError(ORDER_FAILED_MESSAGE, details=str(e)) from e

        log.info(f"Shiprocket order created for {payload['order_id']}")
        return response

    async def check_courier_serviceability(self, req: ServiceabilityRequest) -> Any:
        payload = build_serviceability_payload(req, self.clock())
        token = await self.token_cache.ensure_token()
        try:
            return await self.connector.check_serviceability(token, payload)
        except ShiprocketAPIError as e:
            log.error(f"Error checking courier serviceability: {e.body}")
            raise UpstreamServiceabilityError(SERVICEABILITY_FAILED_MESSAGE, details=_error_details(e)) from e
        except TRANSPORT_ERRORS as e:
            log.error(f"Error checking courier serviceability: {e}")
            raise UpstreamServiceabilityError(SERVICEABILITY_FAILED_MESSAGE, details=str(e)) from e


def _error_details(error: ShiprocketAPIError) -> Union[Any, str]:
    """Provider body when there is one, else the error text"""
    return error.body if error.body is not None else str(error)
