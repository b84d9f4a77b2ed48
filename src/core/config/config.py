import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv(override=True)


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_float(name: str) -> Optional[float]:
    value = os.getenv(name)
    return float(value) if value else None


class AggregationConfig(BaseModel):
    # Ledger reads are paginated; one page per source query
    page_size: int = int(os.getenv("LEDGER_PAGE_SIZE", "200"))
    timeout_seconds: Optional[float] = _env_float("LEDGER_TIMEOUT_SECONDS")


class PeriodConfig(BaseModel):
    require_legal_entity: bool = _env_flag("PDV_REQUIRE_LEGAL_ENTITY", "true")


class SettlementConfig(BaseModel):
    output_vat_account: str = os.getenv("PDV_OUTPUT_VAT_ACCOUNT", "4700")
    vat_payable_account: str = os.getenv("PDV_PAYABLE_ACCOUNT", "4790")
    input_vat_account: str = os.getenv("PDV_INPUT_VAT_ACCOUNT", "2700")
    vat_receivable_account: str = os.getenv("PDV_RECEIVABLE_ACCOUNT", "2790")


class PaymentOrderConfig(BaseModel):
    treasury_account: str = os.getenv("PDV_TREASURY_ACCOUNT", "840-742152843-20")
    recipient_name: str = os.getenv("PDV_TREASURY_RECIPIENT", "Republika Srbija")
    payment_code: str = os.getenv("PDV_PAYMENT_CODE", "253")
    reference_model: str = "97"
    taxpayer_pib: Optional[str] = os.getenv("PDV_TAXPAYER_PIB")


class StorageConfig(BaseModel):
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    redis_enabled: bool = _env_flag("REDIS_ENABLED", "false")
    lock_timeout_seconds: float = float(os.getenv("PERIOD_LOCK_TIMEOUT", "60"))


class MessagingConfig(BaseModel):
    kafka_enabled: bool = _env_flag("KAFKA_ENABLED", "false")
    bootstrap_servers: str = os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:29092")
    topic: str = os.getenv("KAFKA_PERIOD_TOPIC", "pdv-period-events")


class IntegrationConfig(BaseModel):
    ledger_url: Optional[str] = os.getenv("LEDGER_SERVICE_URL")
    filing_url: Optional[str] = os.getenv("FILING_SERVICE_URL")
    posting_url: Optional[str] = os.getenv("POSTING_SERVICE_URL")
    request_timeout: float = float(os.getenv("INTEGRATION_TIMEOUT", "30"))


class AppConfig(BaseModel):
    aggregation: AggregationConfig = AggregationConfig()
    periods: PeriodConfig = PeriodConfig()
    settlement: SettlementConfig = SettlementConfig()
    payment_orders: PaymentOrderConfig = PaymentOrderConfig()
    storage: StorageConfig = StorageConfig()
    messaging: MessagingConfig = MessagingConfig()
    integrations: IntegrationConfig = IntegrationConfig()
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


config = AppConfig()
