#!/usr/bin/env python3
"""Generate sample billing data files for validation.

This script runs the plaza billing scenario and writes its configs, bills,
generation reports and invoice documents to the output folder. These files
can be used for manual validation and testing.
"""

import argparse
import json
import sys
from datetime import date
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from plaza_billing.config import PlazaBillingConfig
from plaza_billing.documents import PdfInvoiceRenderer
from plaza_billing.logging import setup_logging
from plaza_billing.scenarios import PlazaBillingScenario
from plaza_billing.sinks import JsonFileSink
from plaza_billing.sinks.serialization import to_dict


def save_json(data: list, filename: str, output_dir: Path) -> None:
    """Save data to JSON file."""
    filepath = output_dir / filename
    with open(filepath, "w", encoding="utf-8") as f:
        json.dump([to_dict(item) for item in data], f, indent=2, ensure_ascii=False)
    print(f"Saved {len(data)} records to {filepath}")


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Generate sample plaza billing data")
    parser.add_argument("--businesses", type=int, default=10, help="Number of tenants (default: 10)")
    parser.add_argument("--months", type=int, default=6, help="Monthly ticks to run (default: 6)")
    parser.add_argument("--start", type=str, default="2024-01-01", help="First due date (default: 2024-01-01)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    parser.add_argument("--output-dir", type=Path, default=Path("local"), help="Output folder (default: local)")
    parser.add_argument("--pdf", action="store_true", help="Also render invoices as PDF")
    args = parser.parse_args()

    config = PlazaBillingConfig.from_env()
    setup_logging(config.log_level, config.log_format)
    args.output_dir.mkdir(parents=True, exist_ok=True)

    print("=" * 60)
    print("Generating sample plaza billing data")
    print("=" * 60)

    scenario = PlazaBillingScenario(
        num_businesses=args.businesses,
        months=args.months,
        start_date=date.fromisoformat(args.start),
        seed=args.seed,
        config=config.billing,
    )
    store = scenario.generate()

    save_json(list(store.configs.values()), "configs.json", args.output_dir)
    save_json(sorted(store.bills.values(), key=lambda b: b.bill_number), "bills.json", args.output_dir)
    save_json([r.summary() for r in scenario.reports], "generation_reports.json", args.output_dir)

    documents = JsonFileSink(args.output_dir / "invoices", pretty=True)
    renderer = PdfInvoiceRenderer() if args.pdf else None
    for document in scenario.documents:
        documents.write_document(document)
        if renderer is not None:
            renderer.render(document, documents.output_dir)
    documents.close()

    print("\n" + "=" * 60)
    print("Summary")
    print("=" * 60)
    for key, value in store.summary().items():
        print(f"  {key}: {value}")
    print(f"  invoices: {len(scenario.documents)}")


if __name__ == "__main__":
    main()
