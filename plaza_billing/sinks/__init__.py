"""Output sinks for bill events and invoice documents."""

from plaza_billing.sinks.console import ConsoleSink
from plaza_billing.sinks.json_file import JsonFileSink
from plaza_billing.sinks.kafka import KafkaSink

__all__ = ["ConsoleSink", "JsonFileSink", "KafkaSink"]
