"""
Application configuration settings loaded from config.yaml
"""
import os
import yaml
from decimal import Decimal
from pathlib import Path
from typing import List, Optional, Dict
from pydantic import BaseModel, ConfigDict, Field, field_validator


CONFIG_ENV_VAR = "PRICEMYFLOOR_CONFIG"


class DatabasePoolConfig(BaseModel):
    """Database connection pool configuration"""
    size: int = 10  # Number of connections to maintain
    max_overflow: int = 20  # Maximum overflow connections
    timeout: int = 30  # Seconds to wait for a connection
    recycle: int = 3600  # Seconds before recycling a connection
    echo: bool = False  # Log SQL queries


class DatabaseConfig(BaseModel):
    """Database configuration"""
    model_config = ConfigDict(populate_by_name=True)

    url_override: Optional[str] = Field(None, alias="url")  # Full SQLAlchemy URL, wins over the parts below
    server: str = "localhost"
    user: str = "postgres"
    password: str = ""
    db: str = "pricemyfloor"
    port: str = "5432"
    schema_name: str = Field("public", alias="schema")  # PostgreSQL schema name
    pool: DatabasePoolConfig = DatabasePoolConfig()

    @property
    def url(self) -> str:
        """Construct database URL"""
        if self.url_override:
            return self.url_override
        return f"postgresql://{self.user}:{self.password}@{self.server}:{self.port}/{self.db}"

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")


class StripeConfig(BaseModel):
    """Stripe API configuration"""
    secret_key: Optional[str] = None
    webhook_secret: Optional[str] = None
    currency: str = "cad"
    checkout_success_url: str = "http://localhost:3000/billing/success?session_id={CHECKOUT_SESSION_ID}"
    checkout_cancel_url: str = "http://localhost:3000/billing/cancelled"


class EmailConfig(BaseModel):
    """Transactional email (Resend) configuration"""
    base_url: str = "https://api.resend.com"
    api_key: Optional[str] = None
    from_address: str = "Price My Floor <onboarding@resend.dev>"
    timeout: int = 30
    templates_file: Optional[str] = None  # Path to email_templates.yaml (defaults to project root)


class SMSConfig(BaseModel):
    """Twilio Verify configuration"""
    account_sid: Optional[str] = None
    auth_token: Optional[str] = None
    verify_service_sid: Optional[str] = None
    test_mode: bool = False  # Accept any 6-digit code instead of calling Twilio


class VerificationConfig(BaseModel):
    """One-time code settings"""
    code_ttl_minutes: int = 10
    code_length: int = 6


class SubmissionConfig(BaseModel):
    """Lead submission rate limits"""
    rate_limit_window_minutes: int = 15
    max_per_ip: int = 3
    max_per_email: int = 2
    # Peers allowed to set X-Forwarded-For; empty means the header is ignored
    trusted_proxies: List[str] = []


class DistributionConfig(BaseModel):
    """Retailer selection settings"""
    max_retailers: int = 10
    no_preference_brand: str = "No preference - show me options"
    asap_timeline: str = "As soon as possible"


class PriceTier(BaseModel):
    """Inclusive upper bound and lead price for one square footage tier"""
    max_sqft: int
    price: Decimal


class PricingConfig(BaseModel):
    """Square footage to lead price table, ascending, first match wins"""
    tiers: List[PriceTier] = [
        PriceTier(max_sqft=100, price=Decimal("1.00")),
        PriceTier(max_sqft=500, price=Decimal("2.50")),
        PriceTier(max_sqft=1000, price=Decimal("3.50")),
        PriceTier(max_sqft=5000, price=Decimal("5.00")),
    ]
    overflow_price: Decimal = Decimal("10.00")

    @field_validator("tiers")
    @classmethod
    def tiers_ascending(cls, v: List[PriceTier]) -> List[PriceTier]:
        bounds = [tier.max_sqft for tier in v]
        if bounds != sorted(bounds):
            raise ValueError("pricing tiers must be sorted by max_sqft")
        return v


class CreditPackage(BaseModel):
    """Purchasable bundle of lead credits"""
    credits: int
    price: int  # Whole currency units
    name: str


class Settings(BaseModel):
    """Application settings loaded from config.yaml"""

    # Project settings
    project_name: str = "Price My Floor API"
    version: str = "1.0.0"
    description: str = "Lead matching, settlement and distribution for flooring retailers"
    api_v1_str: str = "/api/v1"

    # Database settings
    database: DatabaseConfig

    @property
    def DATABASE_URL(self) -> str:
        """Construct database URL"""
        return self.database.url

    # Provider settings
    stripe: StripeConfig = StripeConfig()
    email: EmailConfig = EmailConfig()
    sms: SMSConfig = SMSConfig()

    # Lead lifecycle settings
    verification: VerificationConfig = VerificationConfig()
    submission: SubmissionConfig = SubmissionConfig()
    distribution: DistributionConfig = DistributionConfig()
    pricing: PricingConfig = PricingConfig()
    credit_packages: Dict[str, CreditPackage] = {
        "100": CreditPackage(credits=100, price=200, name="100 Lead Credits"),
        "200": CreditPackage(credits=200, price=380, name="200 Lead Credits"),
        "500": CreditPackage(credits=500, price=800, name="500 Lead Credits"),
    }

    # CORS settings
    backend_cors_origins: List[str] = []

    @field_validator("backend_cors_origins", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v):
        if isinstance(v, str):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, list):
            return v
        return []

    # Logging
    log_level: str = "INFO"


def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config.yaml file. If None, looks for config.yaml in:
                    1. The PRICEMYFLOOR_CONFIG environment variable
                    2. Current directory
                    3. Project root (src/../config.yaml)

    Returns:
        Settings: Loaded and validated settings
    """
    if config_path is None:
        config_path = os.environ.get(CONFIG_ENV_VAR)

    if config_path is None:
        # Try current directory first
        current_dir = Path.cwd() / "config.yaml"
        if current_dir.exists():
            config_path = str(current_dir)
        else:
            # Try project root (assuming we're in src/pricemyfloor/core/)
            project_root = Path(__file__).parent.parent.parent.parent / "config.yaml"
            if project_root.exists():
                config_path = str(project_root)
            else:
                raise FileNotFoundError(
                    "config.yaml not found. Please create config.yaml in the project root."
                )

    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_file, "r") as f:
        config_data = yaml.safe_load(f)

    if config_data is None:
        raise ValueError("Configuration file is empty or invalid")

    return Settings(**config_data)


# Load settings on module import
settings = load_config()
