"""Resolve navigation targets against the node graph.

Each resolver returns a result record; nothing here raises for bad input.
:func:`resolve_all_targets` runs a whole batch and keeps going past
individual failures.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Pattern, Sequence

from .config import MAX_PATTERN_LENGTH, MAX_SUGGESTIONS
from .models import FILE, IMPORTED_BY, Node
from .targets import (
    FileTarget,
    FunctionDetail,
    FunctionTarget,
    GrepMatch,
    GrepResult,
    GrepTarget,
    ImportersTarget,
    NavigationTarget,
    ResolvedContext,
    ResolvedTarget,
)

logger = logging.getLogger(__name__)

# Backtracking-prone constructs: stacked quantifiers and repeated optional groups
DANGEROUS_PATTERNS = (
    re.compile(r"\*\+"),
    re.compile(r"\+\+"),
    re.compile(r"\*\*"),
    re.compile(r"\?\+"),
    re.compile(r"\+\*"),
    re.compile(r"\(\?:.*\)\*.*\(\?:.*\)\*"),
)

SAME_FILENAME_SCORE = 3
SAME_DIRECTORY_SCORE = 2
PREFIX_DIRECTORY_SCORE = 1


def _file_nodes(nodes: Sequence[Node]) -> List[Node]:
    return [n for n in nodes if n.node_type == FILE]


def _segments(path: str) -> List[str]:
    return [part for part in path.split("/") if part]


# ---------------------------------------------------------------------------
# File targets
# ---------------------------------------------------------------------------

def find_similar_paths(target_path: str, nodes: Sequence[Node], limit: int = MAX_SUGGESTIONS) -> List[str]:
    """Suggest known file paths resembling *target_path*.

    Segments are compared whole: ``src/api`` does not match ``src/apis``
    except through the prefix bonus.
    """
    target_parts = _segments(target_path)
    if not target_parts:
        return []
    target_name, target_dirs = target_parts[-1], target_parts[:-1]

    scored = []
    for node in _file_nodes(nodes):
        parts = _segments(node.path)
        if not parts:
            continue
        name, dirs = parts[-1], parts[:-1]
        dir_set = set(dirs)

        score = 0
        if name == target_name:
            score += SAME_FILENAME_SCORE
        for target_dir in target_dirs:
            if target_dir in dir_set:
                score += SAME_DIRECTORY_SCORE
            # extract -> extractor
            score += PREFIX_DIRECTORY_SCORE * sum(
                1 for d in dirs if d != target_dir and d.startswith(target_dir)
            )
        if score > 0:
            scored.append((score, node.path))

    scored.sort(key=lambda item: item[0], reverse=True)
    return [path for _, path in scored[:limit]]


def _file_not_found(path: str, nodes: Sequence[Node]) -> ResolvedTarget:
    suggestions = find_similar_paths(path, nodes)
    return ResolvedTarget(
        success=False,
        error=f"File not found: {path}",
        suggestions=suggestions or None,
    )


def resolve_file_target(target: FileTarget, nodes: Sequence[Node]) -> ResolvedTarget:
    if not target.path or not target.path.strip():
        return ResolvedTarget(success=False, error="File path is empty")

    for node in _file_nodes(nodes):
        if node.path == target.path:
            return ResolvedTarget(success=True, node=node)
    return _file_not_found(target.path, nodes)


# ---------------------------------------------------------------------------
# Function targets
# ---------------------------------------------------------------------------

def resolve_function_target(target: FunctionTarget, nodes: Sequence[Node]) -> ResolvedTarget:
    if not target.name or not target.name.strip():
        return ResolvedTarget(success=False, error="Function name is empty")
    if not target.in_ or not target.in_.strip():
        return ResolvedTarget(success=False, error="File path is empty")

    file_node = next((n for n in _file_nodes(nodes) if n.path == target.in_), None)
    if file_node is None:
        return _file_not_found(target.in_, nodes)

    func = file_node.find_function(target.name)
    if func is None:
        return ResolvedTarget(success=False, error=f"Function '{target.name}' not found in {target.in_}")

    return ResolvedTarget(
        success=True,
        function_details=FunctionDetail(
            path=file_node.path,
            name=func.name,
            signature=func.signature,
            start_line=func.start_line,
            end_line=func.end_line,
        ),
    )


# ---------------------------------------------------------------------------
# Importers targets
# ---------------------------------------------------------------------------

def resolve_importers_target(target: ImportersTarget, nodes: Sequence[Node]) -> ResolvedTarget:
    """Collect ``importedBy`` targets of every node exporting the symbol.

    Needs ``importedBy`` edges to be in place.  A symbol nobody exports is a
    successful, empty result.
    """
    if not target.of or not target.of.strip():
        return ResolvedTarget(success=False, error="Symbol name is empty")

    importers: Dict[str, None] = {}
    for node in nodes:
        if not any(export.name == target.of for export in node.exports):
            continue
        for edge in node.edges_of(IMPORTED_BY):
            importers.setdefault(edge.target, None)
    return ResolvedTarget(success=True, importers=list(importers))


# ---------------------------------------------------------------------------
# Grep targets
# ---------------------------------------------------------------------------

_REPEAT_CHARS = "+*{"


def has_nested_quantifier(pattern: str) -> bool:
    """True when a repeated group contains a repeat itself, as in ``(a+)+`` or ``((\\w*)x)*``.

    Escapes and character classes are skipped; ``?`` alone does not count
    as a repeat.
    """
    # one flag per open group: does its body repeat anything?
    stack: List[bool] = []
    i, n = 0, len(pattern)
    while i < n:
        char = pattern[i]
        if char == "\\":
            i += 2
            continue
        if char == "[":
            i += 1
            if i < n and pattern[i] == "^":
                i += 1
            if i < n and pattern[i] == "]":
                i += 1
            while i < n and pattern[i] != "]":
                i += 2 if pattern[i] == "\\" else 1
            i += 1
            continue
        if char == "(":
            stack.append(False)
        elif char == ")" and stack:
            inner_repeats = stack.pop()
            repeated = i + 1 < n and pattern[i + 1] in _REPEAT_CHARS
            if inner_repeats and repeated:
                return True
            if stack and (inner_repeats or repeated):
                stack[-1] = True
        elif char in _REPEAT_CHARS and stack:
            stack[-1] = True
        i += 1
    return False


def validate_regex_pattern(pattern: str, max_length: int = MAX_PATTERN_LENGTH) -> Optional[str]:
    """Return an error message for a risky pattern, ``None`` when it looks safe."""
    if len(pattern) > max_length:
        return f"Pattern too long (max {max_length} characters)"
    for dangerous in DANGEROUS_PATTERNS:
        if dangerous.search(pattern):
            return "Pattern contains potentially dangerous constructs"
    if has_nested_quantifier(pattern):
        return "Pattern contains potentially dangerous constructs"
    return None


def _grep_node(node: Node, regex: Pattern[str]) -> List[GrepMatch]:
    matches: List[GrepMatch] = []
    for export in node.exports:
        if regex.search(export.name):
            matches.append(GrepMatch(path=node.path, match_type="export", name=export.name, content=export.name))

    for func in node.functions:
        if regex.search(func.name):
            matches.append(GrepMatch(
                path=node.path, match_type="functionName",
                name=func.name, line=func.start_line, content=func.name,
            ))
        if func.signature and regex.search(func.signature):
            matches.append(GrepMatch(
                path=node.path, match_type="signature",
                name=func.name, line=func.start_line, content=func.signature,
            ))
        if func.code_snippet and regex.search(func.code_snippet):
            matches.append(GrepMatch(
                path=node.path, match_type="codeSnippet",
                name=func.name, line=func.start_line, content=func.code_snippet,
            ))
        for stmt in func.key_statements:
            if regex.search(stmt.text):
                matches.append(GrepMatch(
                    path=node.path, match_type="keyStatement",
                    name=func.name, line=stmt.line, content=stmt.text,
                ))
    return matches


def execute_grep_target(
    target: GrepTarget,
    nodes: Sequence[Node],
    max_pattern_length: int = MAX_PATTERN_LENGTH,
) -> GrepResult:
    """Search exports, function names, signatures, snippets and key statements.

    The pattern is vetted before it is compiled; matching is case-insensitive.
    """
    if not target.pattern or not target.pattern.strip():
        return GrepResult(success=False, error="Grep pattern is empty")

    problem = validate_regex_pattern(target.pattern, max_pattern_length)
    if problem is not None:
        logger.warning("Rejected grep pattern %r: %s", target.pattern, problem)
        return GrepResult(success=False, error=problem)

    try:
        regex = re.compile(target.pattern, re.IGNORECASE)
    except re.error:
        return GrepResult(success=False, error=f"Invalid regex pattern: {target.pattern}")

    matches: List[GrepMatch] = []
    for node in _file_nodes(nodes):
        if target.scope and not node.path.startswith(target.scope):
            continue
        matches.extend(_grep_node(node, regex))
    return GrepResult(success=True, matches=matches)


# ---------------------------------------------------------------------------
# Batch resolution
# ---------------------------------------------------------------------------

def resolve_all_targets(targets: Sequence[NavigationTarget], nodes: Sequence[Node]) -> ResolvedContext:
    """Resolve every target, collecting nodes (unique by path) and all errors."""
    lookup: Dict[str, Node] = {}
    for node in nodes:
        if node.node_type == FILE or node.path not in lookup:
            lookup[node.path] = node
    for node in nodes:
        # importedBy edges may point at node ids
        lookup.setdefault(node.node_id, node)

    collected: Dict[str, Node] = {}
    context = ResolvedContext()

    def collect(path: str) -> None:
        node = lookup.get(path)
        if node is not None and node.path not in collected:
            collected[node.path] = node

    for target in targets:
        if isinstance(target, FileTarget):
            result = resolve_file_target(target, nodes)
            if result.success and result.node is not None:
                collected[result.node.path] = result.node
            elif result.error:
                context.errors.append(result.error)

        elif isinstance(target, GrepTarget):
            grep = execute_grep_target(target, nodes)
            if grep.success and grep.matches is not None:
                context.grep_matches.extend(grep.matches)
                for match in grep.matches:
                    collect(match.path)
            elif grep.error:
                context.errors.append(grep.error)

        elif isinstance(target, FunctionTarget):
            result = resolve_function_target(target, nodes)
            if result.success and result.function_details is not None:
                context.function_details.append(result.function_details)
                collect(target.in_)
            elif result.error:
                context.errors.append(result.error)

        elif isinstance(target, ImportersTarget):
            result = resolve_importers_target(target, nodes)
            if result.success and result.importers is not None:
                for importer in result.importers:
                    collect(importer)
            elif result.error:
                context.errors.append(result.error)

        else:
            context.errors.append(f"Unknown target type: {getattr(target, 'type', target)}")

    context.nodes = list(collected.values())
    logger.info(
        "Resolved %d targets: %d nodes, %d grep matches, %d functions, %d errors",
        len(targets), len(context.nodes), len(context.grep_matches),
        len(context.function_details), len(context.errors),
    )
    return context
