"""
Storefront Data Models

Orders, products and customer profiles written by the storefront and the
admin back office. The dashboard only reads them.
"""
from sqlalchemy import Column, String, DateTime, JSON, Boolean, Integer, Text, Numeric
from app.utils.helpers import utcnow

from app.models.base import Base


class Order(Base):
    """
    Customer order placed at checkout
    """
    __tablename__ = "orders"

    id = Column(String, primary_key=True, index=True)  # UUID
    user_id = Column(String, index=True, nullable=False)  # profiles.id

    order_date = Column(DateTime, index=True, nullable=False)
    delivery_date = Column(DateTime, nullable=True)
    cancellation_deadline = Column(DateTime, nullable=True)
    return_deadline = Column(DateTime, nullable=True)

    total_amount = Column(Numeric(10, 2), nullable=False)
    donation_amount = Column(Numeric(10, 2), nullable=True)

    # pending, processing, shipped, completed, cancelled
    status = Column(String, index=True, default="pending")

    # Line items (stored as JSON)
    items = Column(JSON)  # [{id, product_id, name, imageUrl, price, quantity, selectedSize}, ...]
    address_details = Column(JSON, nullable=True)  # {fullName, phone, streetAddress, city, state, pincode, ...}
    user_measurements = Column(JSON, nullable=True)

    # Payment
    payment_method = Column(String, nullable=True)  # cod, qr_code, phonepe
    transaction_id = Column(String, nullable=True)

    # Shiprocket shipment (filled in after /create-order succeeds)
    shiprocket_order_id = Column(String, nullable=True)
    shiprocket_shipment_id = Column(String, nullable=True)
    awb_code = Column(String, nullable=True)
    courier_name = Column(String, nullable=True)

    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class Product(Base):
    """Catalog product"""
    __tablename__ = "products"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2))
    image_urls = Column(JSON)  # ["https://...", ...]

    category_id = Column(String, index=True, nullable=True)
    brand_id = Column(String, index=True, nullable=True)

    is_cancellable = Column(Boolean, default=False)
    cancellation_window_days = Column(Integer, default=0)
    is_returnable = Column(Boolean, default=False)
    return_window_days = Column(Integer, default=0)

    created_at = Column(DateTime, default=utcnow)


class Profile(Base):
    """Customer / admin profile"""
    __tablename__ = "profiles"

    id = Column(String, primary_key=True, index=True)  # auth user id
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    email = Column(String, index=True, nullable=True)
    phone = Column(String, nullable=True)
    gender = Column(String, nullable=True)
    role = Column(String, default="user")  # user, admin

    created_at = Column(DateTime, default=utcnow)
