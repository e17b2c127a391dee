"""Graph metadata and change-impact propagation over the node graph.

The node graph is assembled elsewhere; the helpers here derive the
structural edges this package relies on (``imports`` / ``importedBy`` /
``testFile``), fan-in and fan-out counts, and breadth-first impact trees.
"""

from __future__ import annotations

import logging
import posixpath
import re
from collections import deque
from dataclasses import dataclass
from typing import Collection, Deque, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from .config import IMPACT_MAX_DEPTH, RESOLVE_EXTENSIONS
from .models import (
    FILE,
    FUNCTION,
    IMPORTED_BY,
    IMPORTS,
    TEST_FILE,
    Edge,
    ImpactTree,
    Node,
    TestFileImpact,
)
from .resolver import resolve_import_path

logger = logging.getLogger(__name__)

_TEST_SUFFIX_RE = re.compile(r"\.(test|spec)(\.[A-Za-z0-9]+)$")
_TESTS_DIR = "__tests__"


@dataclass(frozen=True)
class DependentEdge:
    """An ``importedBy`` edge together with the node that should own it."""
    source_id: str
    edge: Edge


def _node_lookup(nodes: Sequence[Node]) -> Dict[str, Node]:
    lookup: Dict[str, Node] = {node.node_id: node for node in nodes}
    for node in nodes:
        # function nodes share their file's path
        if node.node_type != FUNCTION:
            lookup.setdefault(node.path, node)
    return lookup


# ---------------------------------------------------------------------------
# Import / dependent edges
# ---------------------------------------------------------------------------

def build_import_edges(
    file_node: Node,
    known_paths: Collection[str],
    extensions: Sequence[str] = RESOLVE_EXTENSIONS,
    path_ids: Optional[Mapping[str, str]] = None,
) -> List[Edge]:
    """One ``imports`` edge per distinct, resolvable relative import.

    Edges target node ids; *path_ids* maps file paths to ids and may be
    omitted when ids are the paths themselves.
    """
    edges: List[Edge] = []
    seen: Set[str] = set()
    for import_stmt in file_node.imports:
        target_path = resolve_import_path(file_node.path, import_stmt.module, known_paths, extensions)
        if target_path is None or target_path == file_node.path:
            continue
        target = path_ids.get(target_path, target_path) if path_ids else target_path
        if target in seen:
            continue
        seen.add(target)
        edges.append(Edge(edge_type=IMPORTS, target=target))
    return edges


def build_dependent_edges(nodes: Sequence[Node]) -> List[DependentEdge]:
    """Compute the converse ``importedBy`` edge of every ``imports`` edge."""
    dependents: List[DependentEdge] = []
    seen: Set[Tuple[str, str]] = set()
    for node in nodes:
        for edge in node.edges_of(IMPORTS):
            key = (edge.target, node.node_id)
            if key in seen:
                continue
            seen.add(key)
            dependents.append(DependentEdge(
                source_id=edge.target,
                edge=Edge(edge_type=IMPORTED_BY, target=node.node_id),
            ))
    return dependents


def apply_dependent_edges(nodes: Sequence[Node]) -> int:
    """Append missing ``importedBy`` edges in place; returns how many were added."""
    lookup = _node_lookup(nodes)
    added = 0
    for dependent in build_dependent_edges(nodes):
        owner = lookup.get(dependent.source_id)
        if owner is None:
            continue
        already = any(
            e.edge_type == IMPORTED_BY and e.target == dependent.edge.target
            for e in owner.edges
        )
        if not already:
            owner.edges.append(dependent.edge)
            added += 1
    return added


# ---------------------------------------------------------------------------
# Computed metadata
# ---------------------------------------------------------------------------

def calculate_fan_in(node_id: str, nodes: Sequence[Node]) -> int:
    return sum(
        1 for node in nodes
        if any(e.edge_type == IMPORTS and e.target == node_id for e in node.edges)
    )


def calculate_fan_out(node: Node) -> int:
    return len(node.edges_of(IMPORTS))


def compute_metadata(nodes: Sequence[Node]) -> None:
    """Store ``fanIn`` / ``fanOut`` on every node's metadata, in place."""
    incoming: Dict[str, int] = {}
    for node in nodes:
        for target in {e.target for e in node.edges_of(IMPORTS)}:
            incoming[target] = incoming.get(target, 0) + 1
    for node in nodes:
        node.metadata["fanIn"] = incoming.get(node.node_id, 0)
        node.metadata["fanOut"] = calculate_fan_out(node)


# ---------------------------------------------------------------------------
# Test files
# ---------------------------------------------------------------------------

def is_test_file(path: str) -> bool:
    if _TEST_SUFFIX_RE.search(path):
        return True
    return _TESTS_DIR in path.split("/")[:-1]


def default_test_command(path: str) -> str:
    return f"npm test -- {path}"


def _source_candidates(test_path: str) -> List[str]:
    """Source paths a test file could be covering."""
    directory, filename = posixpath.split(test_path)
    stem_match = _TEST_SUFFIX_RE.search(filename)
    if stem_match:
        source_name = filename[: stem_match.start()] + stem_match.group(2)
    else:
        source_name = filename

    candidates = [posixpath.join(directory, source_name)]
    if posixpath.basename(directory) == _TESTS_DIR:
        candidates.append(posixpath.join(posixpath.dirname(directory), source_name))
    return candidates


def build_test_file_edges(nodes: Sequence[Node]) -> List[DependentEdge]:
    """``testFile`` edges from each source file to the tests that cover it."""
    source_paths = {n.path for n in nodes if n.node_type == FILE and not is_test_file(n.path)}
    lookup = {n.path: n for n in nodes if n.node_type == FILE}

    edges: List[DependentEdge] = []
    for node in nodes:
        if node.node_type != FILE or not is_test_file(node.path):
            continue
        for candidate in _source_candidates(node.path):
            if candidate in source_paths:
                edges.append(DependentEdge(
                    source_id=lookup[candidate].node_id,
                    edge=Edge(edge_type=TEST_FILE, target=node.node_id),
                ))
                break
    return edges


def get_test_files_for_impact(affected: Sequence[str], nodes: Sequence[Node]) -> List[TestFileImpact]:
    """Tests to run for the affected files, deduplicated, first-seen order."""
    lookup = _node_lookup(nodes)
    results: List[TestFileImpact] = []
    seen: Set[str] = set()
    for file_id in affected:
        node = lookup.get(file_id)
        if node is None:
            continue
        for edge in node.edges_of(TEST_FILE):
            test_node = lookup.get(edge.target)
            test_path = test_node.path if test_node else edge.target
            if test_path in seen:
                continue
            seen.add(test_path)
            command = (test_node.metadata.get("testCommand") if test_node else None) or default_test_command(test_path)
            results.append(TestFileImpact(path=test_path, test_command=command, covers=node.path))
    return results


# ---------------------------------------------------------------------------
# Impact propagation
# ---------------------------------------------------------------------------

def build_impact_tree(
    source: str,
    nodes: Sequence[Node],
    max_depth: int = IMPACT_MAX_DEPTH,
) -> ImpactTree:
    """Breadth-first walk of ``importedBy`` edges from *source*.

    Depth-1 dependents are direct, deeper ones transitive.  Nodes discovered
    at *max_depth* are recorded but not expanded.  An unknown *source*
    yields an empty tree.
    """
    lookup = _node_lookup(nodes)
    tree = ImpactTree(source=source)
    start = lookup.get(source)
    if start is None:
        return tree

    visited: Set[str] = {start.node_id}
    queue: Deque[Tuple[Node, int]] = deque([(start, 0)])
    while queue:
        node, depth = queue.popleft()
        if depth > 0:
            tree.dependents_by_depth.setdefault(depth, []).append(node.node_id)
            if depth == 1:
                tree.direct_dependents.append(node.node_id)
            else:
                tree.transitive_dependents.append(node.node_id)
        if depth >= max_depth:
            continue
        for edge in node.edges_of(IMPORTED_BY):
            dependent = lookup.get(edge.target)
            if dependent is None or dependent.node_id in visited:
                continue
            visited.add(dependent.node_id)
            queue.append((dependent, depth + 1))
    return tree


@dataclass
class ChangeImpact:
    tree: ImpactTree
    test_files: List[TestFileImpact]

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = dict(self.tree.to_dict())
        payload["testFiles"] = [t.to_dict() for t in self.test_files]
        return payload


def analyze_change_impact(
    source: str,
    nodes: Sequence[Node],
    max_depth: int = IMPACT_MAX_DEPTH,
) -> ChangeImpact:
    tree = build_impact_tree(source, nodes, max_depth)
    affected = [source, *tree.direct_dependents, *tree.transitive_dependents]
    tests = get_test_files_for_impact(affected, nodes)
    logger.info(
        "Impact of %s: %d direct, %d transitive, %d test files",
        source, len(tree.direct_dependents), len(tree.transitive_dependents), len(tests),
    )
    return ChangeImpact(tree=tree, test_files=tests)


def assemble_edges(nodes: Sequence[Node], extensions: Sequence[str] = RESOLVE_EXTENSIONS) -> None:
    """Populate import, dependent and test edges plus fan metadata in place.

    Convenience for hosts holding only fact records; an assembler that already
    produced these edges does not need it.
    """
    path_ids = {n.path: n.node_id for n in nodes if n.node_type == FILE}
    for node in nodes:
        if node.node_type != FILE:
            continue
        existing = {e.target for e in node.edges_of(IMPORTS)}
        for edge in build_import_edges(node, path_ids, extensions, path_ids):
            if edge.target not in existing:
                node.edges.append(edge)
    apply_dependent_edges(nodes)

    lookup = _node_lookup(nodes)
    for dependent in build_test_file_edges(nodes):
        owner: Optional[Node] = lookup.get(dependent.source_id)
        if owner is not None and not any(
            e.edge_type == TEST_FILE and e.target == dependent.edge.target for e in owner.edges
        ):
            owner.edges.append(dependent.edge)
    for node in nodes:
        if node.node_type == FILE and is_test_file(node.path):
            node.metadata.setdefault("testCommand", default_test_command(node.path))
    compute_metadata(nodes)
