#!/usr/bin/env python3
"""Generate bills for every due recurring obligation.

This is the entry point a scheduler (cron, CI job, HTTP trigger) invokes.
It runs one pass of the recurring bill scheduler against PostgreSQL, or
against an in-memory store seeded with sample data, and optionally writes
invoices for the generated bills.

Exit status is 1 when any occurrence failed.
"""

import argparse
import logging
import signal
import sys
import threading
from datetime import date, datetime
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from plaza_billing.calculation import LateSurchargePolicy, settle_bill
from plaza_billing.config import PlazaBillingConfig
from plaza_billing.documents import InvoiceComposer, PdfInvoiceRenderer
from plaza_billing.exceptions import PlazaBillingError
from plaza_billing.generators import PlazaGenerator
from plaza_billing.logging import setup_logging
from plaza_billing.models.enums import BillKind
from plaza_billing.scheduling import GenerationReport, RecurringBillScheduler
from plaza_billing.sinks import ConsoleSink, JsonFileSink, KafkaSink
from plaza_billing.store import BillingStore, DirectoryResolver, InMemoryBillingStore

logger = logging.getLogger(__name__)


def build_store(args: argparse.Namespace, config: PlazaBillingConfig) -> tuple[BillingStore, DirectoryResolver]:
    """Create the store and identity resolver for the selected backend."""
    if args.backend == "postgres":
        from plaza_billing.store.postgres import PostgresBillingStore

        store = PostgresBillingStore(args.postgres_url or config.postgres)
        if args.create_schema:
            store.create_schema()
        return store, DirectoryResolver()

    store = InMemoryBillingStore()
    gen = PlazaGenerator(seed=args.seed)
    resolver = DirectoryResolver(info=gen.generate_business_info())
    first_due = date.fromisoformat(args.sample_start)
    for business in gen.generate_businesses(args.sample_businesses):
        resolver.add_business(business)
        store.add_config(gen.generate_rent_config(business, first_due))
    for expense in gen.generate_expense_configs(first_due):
        store.add_config(expense)
    logger.info("Seeded in-memory store: %s", store.summary())
    return store, resolver


def build_sink(args: argparse.Namespace, config: PlazaBillingConfig):
    if args.sink == "console":
        return ConsoleSink(pretty=config.output.pretty_json)
    if args.sink == "json":
        return JsonFileSink(config.output.output_dir, pretty=config.output.pretty_json)
    if args.sink == "kafka":
        return KafkaSink(config.kafka)
    return None


def write_invoices(
    report: GenerationReport,
    store: BillingStore,
    resolver: DirectoryResolver,
    config: PlazaBillingConfig,
    now: datetime,
    pdf: bool,
) -> int:
    """Compose invoices for the generated bills; return how many were written."""
    billing = config.billing
    composer = InvoiceComposer(resolver, history_limit=billing.history_limit)
    policy = LateSurchargePolicy.from_config(billing)
    files = JsonFileSink(config.output.output_dir, pretty=True)
    renderer = PdfInvoiceRenderer() if pdf else None

    written = 0
    for result in report.generated:
        bill = store.get_bill(result.bill_number)
        if bill.kind == BillKind.EXPENSE:
            # Plaza-level expenses have no tenant invoice
            continue
        try:
            settlement, history = settle_bill(store, bill, now, policy, billing.history_limit)
            document = composer.compose(
                bill, settlement, history, advance=store.advance_for(bill)
            )
            files.write_document(document)
            if renderer is not None:
                renderer.render(document, config.output.output_dir)
        except PlazaBillingError as exc:
            logger.error("Could not write invoice for %s: %s", bill.bill_number, exc)
            continue
        written += 1
    return written


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Generate bills for due recurring obligations")
    parser.add_argument(
        "--backend",
        choices=["memory", "postgres"],
        default="memory",
        help="Billing store backend (default: memory, seeded with sample data)",
    )
    parser.add_argument(
        "--postgres-url",
        type=str,
        default=None,
        help="PostgreSQL connection string (default: from POSTGRES_* environment)",
    )
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create PostgreSQL tables before running",
    )
    parser.add_argument(
        "--now",
        type=datetime.fromisoformat,
        default=None,
        help="Evaluation time in ISO format (default: current time)",
    )
    parser.add_argument(
        "--sink",
        choices=["none", "console", "json", "kafka"],
        default="none",
        help="Where to publish bill.generated events (default: none)",
    )
    parser.add_argument(
        "--invoices",
        action="store_true",
        help="Write invoice documents for generated tenant bills",
    )
    parser.add_argument(
        "--pdf",
        action="store_true",
        help="Also render invoices as PDF (implies --invoices)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=42,
        help="Random seed for sample data (default: 42)",
    )
    parser.add_argument(
        "--sample-businesses",
        type=int,
        default=10,
        help="Number of sample tenants for the memory backend (default: 10)",
    )
    parser.add_argument(
        "--sample-start",
        type=str,
        default="2024-01-01",
        help="First due date of sample schedules (default: 2024-01-01)",
    )
    args = parser.parse_args()

    config = PlazaBillingConfig.from_env()
    setup_logging(config.log_level, config.log_format)

    cancel = threading.Event()

    def handle_signal(signum, frame):
        logger.warning("Received signal %d, stopping after the current config", signum)
        cancel.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    now = args.now or datetime.now()
    store, resolver = build_store(args, config)
    sink = build_sink(args, config)
    try:
        scheduler = RecurringBillScheduler(store, config.billing, sink=sink)
        report = scheduler.generate_due_bills(now=now, cancel_event=cancel)
        if args.invoices or args.pdf:
            count = write_invoices(report, store, resolver, config, now, pdf=args.pdf)
            logger.info("Wrote %d invoices to %s", count, config.output.output_dir)
    finally:
        if sink is not None:
            sink.close()

    summary = report.summary()
    print(f"Generated: {summary['generated']}  Skipped: {summary['skipped']}  Failed: {summary['failed']}")
    for failure in report.failed:
        print(f"  FAILED {failure.config_id} ({failure.title}): {failure.reason}")

    sys.exit(1 if report.failed else 0)


if __name__ == "__main__":
    main()
