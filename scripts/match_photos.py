# Path: scripts/match_photos.py
# Purpose: CLI tool to match a list of tracks against a folder of candidate photos.
# Layer: scripts.
# Details: Wires settings, the batch orchestrator, and a tqdm progress bar; prints the batch result as JSON.

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

# Ensure project root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from tqdm import tqdm

from config import AppSettings, setup_logging
from core.batch import BatchMatchOrchestrator
from core.errors import ValidationError
from core.features.loader import scan_photo_folder
from core.models.domain import TrackDescriptor


def load_tracks(path: Path) -> list[TrackDescriptor]:
    """Read track descriptors from a JSON list (or an object with a ``tracks`` key)."""

    payload = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(payload, dict):
        payload = payload.get("tracks", [])
    return [TrackDescriptor.from_dict(item) for item in payload]


def main() -> int:
    """Run batch matching from the command line."""

    parser = argparse.ArgumentParser(description="Match tracks to candidate cover photos")
    parser.add_argument("--photos", type=Path, required=True, help="Folder containing candidate photos")
    parser.add_argument("--tracks", type=Path, required=True, help="JSON file with track descriptors")
    parser.add_argument("--config", type=Path, default=None, help="Optional JSON settings file")
    parser.add_argument("--concurrency", type=int, default=None, help="Tracks processed simultaneously")
    parser.add_argument("--min-confidence", type=float, default=None, help="Minimum score for a primary match")
    parser.add_argument("--output", type=Path, default=None, help="Write the JSON result here instead of stdout")
    args = parser.parse_args()

    settings = AppSettings.from_file(args.config) if args.config else AppSettings.from_env()
    logger = setup_logging(settings.log_level)

    photos = scan_photo_folder(args.photos)
    tracks = load_tracks(args.tracks)
    logger.info("Loaded %d tracks and %d photos", len(tracks), len(photos))

    orchestrator = BatchMatchOrchestrator.from_settings(settings)
    with tqdm(total=len(tracks), desc="Matching tracks", unit="track") as progress:
        try:
            result = orchestrator.run(
                tracks,
                photos,
                concurrency=args.concurrency,
                min_confidence=args.min_confidence,
                progress_callback=lambda completed, total: progress.update(completed - progress.n),
            )
        except ValidationError as exc:
            logger.error("Invalid batch input: %s", exc)
            return 2

    text = json.dumps(result.to_dict(), indent=2)
    if args.output:
        args.output.write_text(text, encoding="utf-8")
        print(f"Wrote {len(result.results)} results to {args.output}")
    else:
        print(text)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
