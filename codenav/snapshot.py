"""Load a fact-store JSON snapshot into :class:`~codenav.models.Node` objects.

Accepted shapes are a bare list of node records or an object with a
``nodes`` list.  Malformed records are skipped and reported in
:attr:`Snapshot.errors`; only an unreadable file or a wrong top-level
shape raises :class:`SnapshotError`.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List

from .graph import assemble_edges
from .models import FILE, Node
from .resolver import file_index

logger = logging.getLogger(__name__)


class SnapshotError(ValueError):
    """The snapshot file cannot be read as a node list."""


@dataclass
class Snapshot:
    nodes: List[Node] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def file_nodes(self) -> List[Node]:
        return list(file_index(self.nodes).values())

    def get(self, path: str):
        for node in self.nodes:
            if node.path == path and node.node_type == FILE:
                return node
        return None


def snapshot_from_dict(payload: Any, assemble: bool = True) -> Snapshot:
    """Build a snapshot from decoded JSON.

    With *assemble*, missing ``imports`` / ``importedBy`` / ``testFile`` edges
    and fan metadata are derived from the fact records.
    """
    if isinstance(payload, dict):
        records = payload.get("nodes")
    else:
        records = payload
    if not isinstance(records, list):
        raise SnapshotError("Snapshot must be a list of nodes or an object with a 'nodes' list")

    snapshot = Snapshot()
    for position, record in enumerate(records):
        try:
            if not isinstance(record, dict):
                raise ValueError("record is not an object")
            snapshot.nodes.append(Node.from_dict(record))
        except (KeyError, TypeError, ValueError) as exc:
            message = f"node #{position}: {exc}"
            logger.warning("Skipping malformed snapshot record %s", message)
            snapshot.errors.append(message)

    if assemble:
        assemble_edges(snapshot.nodes)
    logger.info("Loaded %d nodes (%d skipped)", len(snapshot.nodes), len(snapshot.errors))
    return snapshot


def load_snapshot(path: Path, assemble: bool = True) -> Snapshot:
    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as exc:
        raise SnapshotError(f"Cannot read snapshot {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise SnapshotError(f"Invalid JSON in snapshot {path}: {exc}") from exc
    return snapshot_from_dict(payload, assemble=assemble)
