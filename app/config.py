"""
Configuration management for the tailor storefront backend
"""
from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "Aslam Tailor Storefront Backend"
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 3001

    # Frontend origin allowed by CORS (storefront / admin UI)
    cors_origin: str = "http://localhost:8080"

    # Database (orders, products, profiles read by the admin dashboard)
    database_url: str = "sqlite:///./storefront.db"

    # Shiprocket
    shiprocket_base_url: str = "https://apiv2.shiprocket.in/v1/external"
    shiprocket_email: str = ""
    shiprocket_password: str = ""
    shiprocket_channel_id: str = "9191867"

    # Pickup location sent with every shipping order
    pickup_name: str = "Aslam Tailor"
    pickup_address: str = "House No 1, Basahi Village, Near Chakhafiz Jama Masjid"
    pickup_address_2: str = "Po Basahi, PS Janta Bazar"
    pickup_city: str = "Saran"
    pickup_state: str = "Bihar"
    pickup_pincode: str = "841206"
    pickup_country: str = "India"
    pickup_email: Optional[str] = None  # falls back to shiprocket_email
    pickup_phone: str = "8873961545"

    # Admin dashboard day/week/month/year buckets are cut in this timezone
    dashboard_timezone: str = "Asia/Kolkata"

    # Dashboard Basic Auth (gate for /dashboard)
    dash_user: str = ""
    dash_pass: str = ""

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
