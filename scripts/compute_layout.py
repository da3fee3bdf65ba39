"""Build the knowledge graph for a notes file and run the layout to rest.

This script:
1. Reads a JSON array of notes (or {"notes": [...]})
2. Builds the relationship graph and computes metrics
3. Runs the force simulation until it goes Idle
4. Prints a metrics report and optionally writes the export snapshot

Usage:
    python scripts/compute_layout.py notes.json
    python scripts/compute_layout.py notes.json --export out/ --cluster-method louvain
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load .env file from project root
project_root = Path(__file__).parent.parent
load_dotenv(project_root / ".env")

# Add src to path
sys.path.insert(0, str(project_root / "src"))

from mindvault.config import settings
from mindvault.graph import (
    GraphEngineConfig,
    KnowledgeGraphEngine,
    export_filename,
    export_json,
    format_report,
)

logger = logging.getLogger(__name__)


def load_notes(path: Path) -> list[dict]:
    """Read notes from a JSON file."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("notes", [])
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of notes")
    return data


def main() -> int:
    parser = argparse.ArgumentParser(description="Lay out a MindVault knowledge graph")
    parser.add_argument("notes", type=Path, help="JSON file with notes")
    parser.add_argument("--max-ticks", type=int, default=600, help="Tick limit")
    parser.add_argument(
        "--cluster-method",
        choices=["estimate", "label_propagation", "louvain"],
        default=settings.cluster_method,
    )
    parser.add_argument("--export", type=Path, default=None, help="Directory for the export JSON")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        notes = load_notes(args.notes)
    except (OSError, ValueError) as e:
        logger.error(f"Could not read notes: {e}")
        return 1

    config = GraphEngineConfig.from_settings(settings)
    config.cluster_method = args.cluster_method
    engine = KnowledgeGraphEngine(config)

    print(f"Building graph for {len(notes)} notes...")
    metrics = engine.rebuild(notes)

    print("Computing layout...")
    ticks = engine.layout.run(max_ticks=args.max_ticks)
    print(f"Layout {engine.layout.phase.value} after {ticks} ticks (alpha={engine.layout.alpha:.4f})")

    bounds = engine.layout.bounds()
    if bounds:
        min_x, min_y, max_x, max_y = bounds
        print(f"Bounding box: x=[{min_x:.1f}, {max_x:.1f}], y=[{min_y:.1f}, {max_y:.1f}]")

    print()
    print(format_report(metrics))

    if args.export is not None:
        args.export.mkdir(parents=True, exist_ok=True)
        target = args.export / export_filename()
        target.write_text(export_json(engine.nodes, metrics), encoding="utf-8")
        print(f"\nExport written to {target}")

    engine.destroy()
    return 0


if __name__ == "__main__":
    sys.exit(main())
