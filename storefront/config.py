"""
Configuration management for the Storefront API
"""
from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "Storefront API"
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"
    log_dir: str = "logs"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_prefix: str = "/api/v1"
    client_url: str = "http://localhost:3000"

    # Database
    database_url: str

    # Razorpay
    razorpay_key_id: str
    razorpay_key_secret: str
    razorpay_api_base_url: str = "https://api.razorpay.com/v1"

    # Shiprocket
    shiprocket_api_base_url: str = "https://apiv2.shiprocket.in/v1/external"
    shiprocket_email: Optional[str] = None  # Prefills the integration form, never used to log in
    shiprocket_token_ttl_days: int = 9  # Carrier tokens live 10 days
    shiprocket_request_timeout: float = 30.0
    shiprocket_company_name: str = "Storefront"
    shiprocket_pickup_postcode: Optional[str] = None

    # Default package when no product declares dimensions (kg / cm)
    default_package_weight: float = 0.5
    default_package_length: float = 10.0
    default_package_breadth: float = 10.0
    default_package_height: float = 5.0

    # Authentication
    initial_admin_username: str = "admin"
    initial_admin_email: str = ""
    initial_admin_password: str = ""
    session_duration_hours: int = 168

    # Rate limiting for /auth endpoints
    auth_rate_limit_attempts: int = 5
    auth_rate_limit_window_seconds: int = 900

    # Dashboards
    low_stock_threshold: int = 5
    analytics_cache_seconds: int = 300

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
