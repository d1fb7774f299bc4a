"""Configuration management for plaza-billing."""

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from plaza_billing.exceptions import ConfigurationError


@dataclass
class BillingConfig:
    """Billing policy configuration."""

    grace_days: int = 15
    history_limit: int = 12
    late_surcharge: Decimal = Decimal("0")
    late_surcharge_rate: Decimal = Decimal("0")  # fraction of arrears, e.g. 0.10
    currency: str = "PKR"

    def __post_init__(self) -> None:
        if self.grace_days < 0:
            raise ConfigurationError(f"grace_days must be >= 0, got {self.grace_days}")
        if self.history_limit < 1:
            raise ConfigurationError(f"history_limit must be >= 1, got {self.history_limit}")
        if self.late_surcharge < 0 or self.late_surcharge_rate < 0:
            raise ConfigurationError("Late surcharge settings must not be negative")


@dataclass
class KafkaConfig:
    """Kafka producer configuration."""

    bootstrap_servers: str = "localhost:9092"
    topic: str = "plaza.bills"
    acks: str = "all"
    batch_size: int = 16384
    linger_ms: int = 5
    compression: str = "snappy"
    retries: int = 3

    def to_dict(self) -> dict[str, Any]:
        """Convert to confluent-kafka config dict."""
        return {
            "bootstrap.servers": self.bootstrap_servers,
            "acks": self.acks,
            "batch.size": self.batch_size,
            "linger.ms": self.linger_ms,
            "compression.type": self.compression,
            "retries": self.retries,
        }


@dataclass
class PostgresConfig:
    """PostgreSQL connection configuration."""

    host: str = "localhost"
    port: int = 5432
    database: str = "plaza"
    user: str = "postgres"
    password: str = "postgres"

    @property
    def connection_string(self) -> str:
        """Get connection string."""
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"


@dataclass
class OutputConfig:
    """Output configuration."""

    output_dir: Path = field(default_factory=lambda: Path("output"))
    pretty_json: bool = False


@dataclass
class PlazaBillingConfig:
    """Main configuration for plaza-billing."""

    billing: BillingConfig = field(default_factory=BillingConfig)
    kafka: KafkaConfig = field(default_factory=KafkaConfig)
    postgres: PostgresConfig = field(default_factory=PostgresConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    log_level: str = "INFO"
    log_format: str = "standard"

    @classmethod
    def from_env(cls) -> "PlazaBillingConfig":
        """Create config from environment variables."""
        billing = BillingConfig(
            grace_days=_env_int("PLAZA_GRACE_DAYS", "15"),
            history_limit=_env_int("PLAZA_HISTORY_LIMIT", "12"),
            late_surcharge=_env_decimal("PLAZA_LATE_SURCHARGE", "0"),
            late_surcharge_rate=_env_decimal("PLAZA_LATE_SURCHARGE_RATE", "0"),
            currency=os.getenv("PLAZA_CURRENCY", "PKR"),
        )

        kafka = KafkaConfig(
            bootstrap_servers=os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092"),
            topic=os.getenv("KAFKA_TOPIC", "plaza.bills"),
            acks=os.getenv("KAFKA_ACKS", "all"),
        )

        postgres = PostgresConfig(
            host=os.getenv("POSTGRES_HOST", "localhost"),
            port=_env_int("POSTGRES_PORT", "5432"),
            database=os.getenv("POSTGRES_DB", "plaza"),
            user=os.getenv("POSTGRES_USER", "postgres"),
            password=os.getenv("POSTGRES_PASSWORD", "postgres"),
        )

        output = OutputConfig(
            output_dir=Path(os.getenv("OUTPUT_DIR", "output")),
            pretty_json=os.getenv("PRETTY_JSON", "false").lower() == "true",
        )

        return cls(
            billing=billing,
            kafka=kafka,
            postgres=postgres,
            output=output,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "standard"),
        )


def _env_int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


def _env_decimal(name: str, default: str) -> Decimal:
    raw = os.getenv(name, default)
    try:
        return Decimal(raw)
    except InvalidOperation as exc:
        raise ConfigurationError(f"{name} must be a decimal number, got {raw!r}") from exc
