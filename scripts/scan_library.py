#!/usr/bin/env python3
"""Estimate BPM for every supported audio file under a directory.

Usage:
    uv run python scripts/scan_library.py music/                  # table to stdout
    uv run python scripts/scan_library.py music/ --json out.jsonl # one JSON per line
    uv run python scripts/scan_library.py music/ --min-bpm 80 --max-bpm 160
    uv run python scripts/scan_library.py music/ --timeout 120    # stop after 2 min
"""

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path

from tqdm import tqdm

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from bpmscan.analysis.cancellation import CancellationToken
from bpmscan.analysis.engine import analyze_file
from bpmscan.analysis.models import AnalysisConfig, BpmRange
from bpmscan.audio.loader import is_supported_audio_file
from bpmscan.config import settings


def find_audio_files(root: Path) -> list[Path]:
    return sorted(p for p in root.rglob("*") if p.is_file() and is_supported_audio_file(p.name))


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("directory", type=Path)
    parser.add_argument("--json", type=Path, default=None, help="write JSON lines here")
    parser.add_argument("--min-bpm", type=float, default=settings.min_bpm)
    parser.add_argument("--max-bpm", type=float, default=settings.max_bpm)
    parser.add_argument("--window", type=float, default=settings.sample_window_seconds,
                        help="seconds analyzed from the start of each file")
    parser.add_argument("--timeout", type=float, default=None,
                        help="cancel the remaining files after this many seconds")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(name)s %(levelname)s: %(message)s",
    )

    files = find_audio_files(args.directory)
    if not files:
        print(f"No supported audio files under {args.directory}")
        return 1

    config = dataclasses.replace(
        AnalysisConfig.from_settings(settings),
        bpm_range=BpmRange(args.min_bpm, args.max_bpm),
        sample_window_seconds=args.window,
    )
    cancel = CancellationToken()
    if args.timeout:
        cancel.cancel_after(args.timeout)

    rows = []
    for path in tqdm(files, desc="Scanning", unit="file"):
        result = analyze_file(path, config, cancel)
        rows.append((path, result))

    if args.json:
        with open(args.json, "w", encoding="utf-8") as f:
            for path, result in rows:
                record = {"path": str(path), **dataclasses.asdict(result)}
                f.write(json.dumps(record) + "\n")
        print(f"Wrote {len(rows)} results to {args.json}")
    else:
        width = max(len(str(p.relative_to(args.directory))) for p, _ in rows)
        for path, result in rows:
            name = str(path.relative_to(args.directory))
            if result.succeeded:
                print(f"{name:<{width}}  {result.bpm:>4} BPM  conf={result.confidence:.2f}  "
                      f"({result.method})")
            else:
                print(f"{name:<{width}}     -       {result.error_kind}: {result.error_description}")

    failed = sum(1 for _, r in rows if not r.succeeded)
    print(f"{len(rows) - failed}/{len(rows)} analyzed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
