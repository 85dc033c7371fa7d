"""
Admin Dashboard Service

Income and cancellation totals for today / this week / this month / this
year, plus the top-selling products and top-spending customers. The
computation in aggregate() is a pure fold over already-fetched records;
DashboardService loads those records from the store and falls back to an
all-zero result when the store cannot be read.
"""
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

import pytz
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.models.storefront import Order, Product, Profile
from app.utils.helpers import first_or_default, leading_int, number_or_default
from app.utils.logger import log

CANCELLED = "cancelled"
TOP_N = 5
UNKNOWN_PRODUCT_NAME = "Unknown Product"
PLACEHOLDER_IMAGE_URL = "https://picsum.photos/seed/placeholder/50/50"

PERIODS = ("daily", "weekly", "monthly", "yearly")


# ---------------------------------------------------------------------------
# Input records
# ---------------------------------------------------------------------------

@dataclass
class OrderLine:
    product_id: str
    quantity: int = 0
    price: float = 0.0

    @classmethod
    def from_dict(cls, item: Dict[str, Any]) -> "OrderLine":
        return cls(
            product_id=str(item.get("product_id") or item.get("id") or ""),
            quantity=leading_int(item.get("quantity")) or 0,
            price=number_or_default(item.get("price")),
        )


@dataclass
class OrderRecord:
    id: str
    order_date: datetime
    total_amount: float
    status: str
    customer_id: str
    items: List[OrderLine] = field(default_factory=list)


@dataclass
class ProductRecord:
    id: str
    name: str
    image_urls: List[str] = field(default_factory=list)


@dataclass
class CustomerProfile:
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

@dataclass
class IncomeMetrics:
    daily: float = 0.0
    weekly: float = 0.0
    monthly: float = 0.0
    yearly: float = 0.0


@dataclass
class CancelledCount:
    daily: int = 0
    weekly: int = 0
    monthly: int = 0
    yearly: int = 0


@dataclass
class TopProduct:
    id: str
    name: str
    image_url: str
    total_quantity_sold: int
    total_revenue: float


@dataclass
class TopCustomer:
    id: str
    name: str
    email: str
    total_spent: float
    total_orders: int


@dataclass
class DashboardMetrics:
    income: IncomeMetrics
    cancelled_orders: CancelledCount
    top_selling_products: List[TopProduct]
    top_customers: List[TopCustomer]
    # Untouched inputs, handed back for bulk CSV export
    all_orders: List[OrderRecord] = field(default_factory=list)
    all_products: List[ProductRecord] = field(default_factory=list)
    all_profiles: List[CustomerProfile] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def period_windows(now: datetime) -> Dict[str, Tuple[datetime, datetime]]:
    """
    Half-open [start, end) windows containing ``now``: calendar day,
    Monday-start week, calendar month and calendar year.
    """
    day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    week_start = day_start - timedelta(days=day_start.weekday())
    month_start = day_start.replace(day=1)
    if month_start.month == 12:
        next_month = month_start.replace(year=month_start.year + 1, month=1)
    else:
        next_month = month_start.replace(month=month_start.month + 1)
    year_start = month_start.replace(month=1)

    return {
        "daily": (day_start, day_start + timedelta(days=1)),
        "weekly": (week_start, week_start + timedelta(days=7)),
        "monthly": (month_start, next_month),
        "yearly": (year_start, year_start.replace(year=year_start.year + 1)),
    }


def _align(moment: datetime, now: datetime) -> datetime:
    """Bring an order date into the same naive/aware frame as ``now``."""
    if moment.tzinfo is None and now.tzinfo is not None:
        return moment.replace(tzinfo=now.tzinfo)
    if moment.tzinfo is not None and now.tzinfo is None:
        return moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment


def _customer_display(customer_id: str, profile: Optional[CustomerProfile]) -> Tuple[str, str]:
    short_id = customer_id[:4]
    if profile is None:
        return f"User ID: {short_id}", f"user_{short_id}@example.com"
    full_name = f"{profile.first_name or ''} {profile.last_name or ''}".strip()
    email = profile.email or f"user_{short_id}@example.com"
    return full_name or profile.email or f"User ID: {short_id}", email


def aggregate(
    orders: List[OrderRecord],
    products: List[ProductRecord],
    customers: List[CustomerProfile],
    now: datetime,
) -> DashboardMetrics:
    """
    Fold orders into period income/cancellation buckets and top-5 rankings.

    Cancelled orders are counted, never summed, in the period buckets, but
    they still add to customer spend and order counts.
    """
    windows = period_windows(now)
    income = IncomeMetrics()
    cancelled = CancelledCount()

    product_sales: Dict[str, Dict[str, float]] = {}
    customer_spend: Dict[str, Dict[str, float]] = {}

    for order in orders:
        order_date = _align(order.order_date, now)
        is_cancelled = order.status == CANCELLED

        for period in PERIODS:
            start, end = windows[period]
            if not (start <= order_date < end):
                continue
            if is_cancelled:
                setattr(cancelled, period, getattr(cancelled, period) + 1)
            else:
                setattr(income, period, getattr(income, period) + order.total_amount)

        for item in order.items:
            sales = product_sales.setdefault(item.product_id, {"quantity": 0, "revenue": 0.0})
            sales["quantity"] += item.quantity
            sales["revenue"] += item.quantity * item.price

        spend = customer_spend.setdefault(order.customer_id, {"spent": 0.0, "orders": 0})
        spend["spent"] += order.total_amount
        spend["orders"] += 1

    products_by_id = {p.id: p for p in products}
    top_products = []
    for product_id, sales in product_sales.items():
        product = products_by_id.get(product_id)
        top_products.append(TopProduct(
            id=product_id,
            name=product.name if product and product.name else UNKNOWN_PRODUCT_NAME,
            image_url=first_or_default(product.image_urls if product else None, PLACEHOLDER_IMAGE_URL),
            total_quantity_sold=sales["quantity"],
            total_revenue=sales["revenue"],
        ))
    top_products.sort(key=lambda p: p.total_quantity_sold, reverse=True)

    profiles_by_id = {c.id: c for c in customers}
    top_customers = []
    for customer_id, spend in customer_spend.items():
        name, email = _customer_display(customer_id, profiles_by_id.get(customer_id))
        top_customers.append(TopCustomer(
            id=customer_id,
            name=name,
            email=email,
            total_spent=spend["spent"],
            total_orders=spend["orders"],
        ))
    top_customers.sort(key=lambda c: c.total_spent, reverse=True)

    return DashboardMetrics(
        income=income,
        cancelled_orders=cancelled,
        top_selling_products=top_products[:TOP_N],
        top_customers=top_customers[:TOP_N],
        all_orders=list(orders),
        all_products=list(products),
        all_profiles=list(customers),
    )


# ---------------------------------------------------------------------------
# Store-backed service
# ---------------------------------------------------------------------------

def _to_float(value: Any) -> float:
    if isinstance(value, Decimal):
        return float(value)
    return float(value or 0)


class DashboardService:
    """
    Dashboard metrics over the store's orders, products and profiles.

    Order dates are stored as naive UTC; they are moved into the dashboard
    timezone (Settings.dashboard_timezone) before bucketing, so "today"
    is the merchant's calendar day.
    """

    def __init__(self, db: Session, tz_name: Optional[str] = None):
        self.db = db
        self.tz = pytz.timezone(tz_name or get_settings().dashboard_timezone)

    def _to_local(self, moment: datetime) -> datetime:
        """Stored timestamp as naive wall-clock time in the dashboard timezone"""
        if moment.tzinfo is None:
            moment = pytz.UTC.localize(moment)
        return moment.astimezone(self.tz).replace(tzinfo=None)

    def _order_record(self, row: Order) -> Optional[OrderRecord]:
        if row.order_date is None:
            log.warning(f"Skipping order {row.id}: no order date")
            return None
        items = []
        for item in row.items if isinstance(row.items, list) else []:
            if not isinstance(item, dict):
                log.warning(f"Skipping malformed line item in order {row.id}: {item!r}")
                continue
            items.append(OrderLine.from_dict(item))
        return OrderRecord(
            id=row.id,
            order_date=self._to_local(row.order_date),
            total_amount=_to_float(row.total_amount),
            status=row.status or "",
            customer_id=row.user_id or "",
            items=items,
        )

    def load_records(self) -> Tuple[List[OrderRecord], List[ProductRecord], List[CustomerProfile]]:
        orders = [
            record
            for record in (self._order_record(row) for row in self.db.query(Order).all())
            if record is not None
        ]
        products = [
            ProductRecord(id=row.id, name=row.name, image_urls=list(row.image_urls or []))
            for row in self.db.query(Product).all()
        ]
        profiles = [
            CustomerProfile(
                id=row.id,
                first_name=row.first_name,
                last_name=row.last_name,
                email=row.email,
            )
            for row in self.db.query(Profile).all()
        ]
        return orders, products, profiles

    def get_dashboard(self, now: Optional[datetime] = None) -> DashboardMetrics:
        """Dashboard metrics as of ``now``, naive wall-clock time in the dashboard timezone"""
        now = now or datetime.now(self.tz).replace(tzinfo=None)
        try:
            orders, products, profiles = self.load_records()
        except (SQLAlchemyError, ValueError, TypeError) as e:
            log.error(f"Error fetching admin dashboard data: {e}")
            orders, products, profiles = [], [], []

        metrics = aggregate(orders, products, profiles, now)
        log.info(
            f"Dashboard aggregated {len(orders)} orders "
            f"(today income {metrics.income.daily:.2f}, cancelled {metrics.cancelled_orders.daily})"
        )
        return metrics
