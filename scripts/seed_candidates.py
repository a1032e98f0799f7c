"""Seed candidates into the configured vote store.

Usage::

    python scripts/seed_candidates.py alice="Alice Smith" bob="Bob Jones"
    python scripts/seed_candidates.py --file candidates.json

The JSON file holds a list of ``{"id": ..., "name": ...}`` objects. Existing
candidates are left untouched, so the script can be re-run safely.
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

from votebox.core.config import get_settings
from votebox.core.logging import configure_logging
from votebox.store import CandidateRecord, build_store

logger = logging.getLogger(__name__)


def parse_candidates(pairs: list[str], file: Path | None) -> list[CandidateRecord]:
    candidates: list[CandidateRecord] = []
    if file is not None:
        for entry in json.loads(file.read_text(encoding="utf-8")):
            candidates.append(CandidateRecord(id=str(entry["id"]), name=str(entry["name"])))
    for pair in pairs:
        candidate_id, separator, name = pair.partition("=")
        if not separator or not candidate_id:
            raise SystemExit(f"Expected id=name, got {pair!r}")
        candidates.append(CandidateRecord(id=candidate_id, name=name or candidate_id))
    return candidates


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("candidates", nargs="*", help="candidate given as id=name")
    parser.add_argument("--file", type=Path, help="JSON file with a list of candidates")
    args = parser.parse_args(argv)

    candidates = parse_candidates(args.candidates, args.file)
    if not candidates:
        parser.error("no candidates given")

    settings = get_settings()
    configure_logging(settings.log_config_path, level=settings.log_level)
    store = build_store(settings)
    try:
        created = store.seed_candidates(candidates)
    finally:
        store.close()
    logger.info("Seeded %d of %d candidates into %s store", created, len(candidates), settings.store_backend)


if __name__ == "__main__":
    main()
