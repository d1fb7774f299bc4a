"""JSON file sink for exporting bill events and invoice documents."""

import json
from pathlib import Path
from typing import Any

from plaza_billing.exceptions import SinkError
from plaza_billing.models.document import InvoiceDocument
from plaza_billing.sinks.serialization import to_dict


class JsonFileSink:
    """Output records and documents to JSON files."""

    def __init__(self, output_dir: str | Path, pretty: bool = False) -> None:
        """Initialize JSON file sink.

        Parameters
        ----------
        output_dir : str | Path
            Directory to write JSON files.
        pretty : bool
            Pretty-print JSON output.
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.pretty = pretty
        self._counts: dict[str, int] = {}

    def write_batch(self, entity_type: str, records: list[Any]) -> None:
        """Append a batch of records to ``<entity_type>.jsonl``."""
        file_path = self.output_dir / f"{entity_type}.jsonl"
        try:
            with open(file_path, "a", encoding="utf-8") as f:
                for record in records:
                    f.write(json.dumps(to_dict(record), ensure_ascii=False) + "\n")
        except OSError as exc:
            raise SinkError(f"Could not write {file_path}: {exc}") from exc

        self._counts[entity_type] = self._counts.get(entity_type, 0) + len(records)

    def write_document(self, document: InvoiceDocument) -> Path:
        """Write one invoice document to ``<document_id>.json``."""
        file_path = self.output_dir / f"{document.document_id}.json"
        try:
            with open(file_path, "w", encoding="utf-8") as f:
                json.dump(
                    document.to_dict(),
                    f,
                    indent=2 if self.pretty else None,
                    ensure_ascii=False,
                )
        except OSError as exc:
            raise SinkError(f"Could not write {file_path}: {exc}") from exc

        self._counts["documents"] = self._counts.get("documents", 0) + 1
        return file_path

    def close(self) -> None:
        """Print summary."""
        print(f"JSON files written to: {self.output_dir}")
        for entity_type, count in self._counts.items():
            print(f"  {entity_type}: {count} records")
