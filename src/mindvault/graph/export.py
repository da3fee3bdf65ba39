"""Export snapshot and category statistics for external consumers.

The engine only produces the document; writing it anywhere is the
caller's job.
"""

import json
from collections import Counter
from collections.abc import Sequence
from datetime import datetime, timezone

from mindvault.graph.metrics import GraphMetrics
from mindvault.models import GraphNode

EXPORT_FILENAME_TEMPLATE = "mindvault-knowledge-graph-{date}.json"
METRIC_PRECISION = 2
UNCATEGORIZED_LABEL = "Uncategorized"


def _isoformat(timestamp: datetime) -> str:
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def build_export(
    nodes: Sequence[GraphNode],
    metrics: GraphMetrics,
    timestamp: datetime | None = None,
) -> dict:
    """Build the {nodes, metrics, timestamp} export document."""
    timestamp = timestamp or datetime.now(timezone.utc)
    return {
        "nodes": [
            {
                "id": node.note.id,
                "title": node.note.title,
                "category": node.note.category,
                "sentiment": node.note.sentiment,
                "wordCount": node.note.word_count,
                "isFavorite": node.note.is_favorite,
            }
            for node in nodes
        ],
        "metrics": metrics.to_dict(precision=METRIC_PRECISION),
        "timestamp": _isoformat(timestamp),
    }


def export_json(
    nodes: Sequence[GraphNode],
    metrics: GraphMetrics,
    timestamp: datetime | None = None,
    indent: int = 2,
) -> str:
    return json.dumps(build_export(nodes, metrics, timestamp), indent=indent, ensure_ascii=False)


def export_filename(when: datetime | None = None) -> str:
    """Suggested file name, e.g. mindvault-knowledge-graph-2025-06-30.json."""
    when = when or datetime.now(timezone.utc)
    return EXPORT_FILENAME_TEMPLATE.format(date=when.date().isoformat())


def category_stats(nodes: Sequence[GraphNode]) -> dict:
    """Per-category note counts plus favourite and sentiment totals."""
    categories = Counter(node.note.category or UNCATEGORIZED_LABEL for node in nodes)
    return {
        "categories": dict(categories.most_common()),
        "favorites": sum(1 for node in nodes if node.note.is_favorite),
        "withEmotions": sum(1 for node in nodes if node.note.sentiment),
        "total": len(nodes),
    }
