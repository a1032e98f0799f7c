"""Write the voting API's OpenAPI document to disk.

Usage::

    python scripts/generate_openapi.py
    python scripts/generate_openapi.py --output build/voting-openapi.json

The document is built from the route table alone. No vote store or identity
backend is contacted, so the script runs without credentials.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from votebox.core.config import Settings
from votebox.main import create_application

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT = ROOT / "docs" / "openapi.json"


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--output", type=Path, default=DEFAULT_OUTPUT, help="where to write the JSON document")
    args = parser.parse_args(argv)

    settings = Settings(store_backend="memory", identity_backend="jwt", enable_tracing=False)

    document = create_application(settings).openapi()
    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_text(json.dumps(document, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    logger.info("Wrote %d API paths for %s to %s", len(document.get("paths", {})), settings.app_name, args.output)


if __name__ == "__main__":
    main()
