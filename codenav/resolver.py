"""Import resolution and cross-file call graph construction.

Resolution only ever follows *relative* specifiers.  Type-only imports,
package imports (``react``, ``node:fs``) and namespace imports are reported
as unresolved rather than guessed, since path aliases and package exports
cannot be reproduced from the extracted facts alone.
"""

from __future__ import annotations

import logging
import posixpath
from typing import Collection, Dict, Iterable, List, Mapping, Optional, Sequence

from .config import MAX_REEXPORT_DEPTH, RESOLVE_EXTENSIONS
from .models import (
    DEFAULT_SYMBOL,
    FILE,
    CrossFileCall,
    ImportStatement,
    Node,
    ResolvedSymbol,
)

logger = logging.getLogger(__name__)

# function id ("path:name") -> cross-file calls made by that function
CrossFileCallGraph = Dict[str, List[CrossFileCall]]

# locally bound name -> where it is really defined
ImportSymbolMap = Dict[str, ResolvedSymbol]


def function_id(path: str, name: str) -> str:
    return f"{path}:{name}"


def file_index(nodes: Iterable[Node]) -> Dict[str, Node]:
    """Map path -> file node, ignoring function and module nodes."""
    return {node.path: node for node in nodes if node.node_type == FILE}


# ---------------------------------------------------------------------------
# Path arithmetic
# ---------------------------------------------------------------------------

def resolve_import_path(
    importing_file: str,
    specifier: str,
    known_paths: Collection[str],
    extensions: Sequence[str] = RESOLVE_EXTENSIONS,
) -> Optional[str]:
    """Turn a relative module specifier into a known file path.

    Candidates are probed in a fixed order: ``<path><ext>`` for each
    extension, ``<path>`` exactly, then ``<path>/index<ext>``.
    """
    if not specifier.startswith("."):
        return None

    importing_dir = posixpath.dirname(importing_file.replace("\\", "/"))
    joined = posixpath.join(importing_dir, specifier.replace("\\", "/"))
    base = posixpath.normpath(joined)

    candidates = [base + ext for ext in extensions]
    candidates.append(base)
    candidates.extend(f"{base}/index{ext}" for ext in extensions)

    for candidate in candidates:
        if candidate in known_paths:
            return candidate
    return None


def resolve_imported_symbol(
    symbol_name: str,
    import_stmt: ImportStatement,
    importing_file: str,
    known_paths: Collection[str],
    extensions: Sequence[str] = RESOLVE_EXTENSIONS,
) -> Optional[ResolvedSymbol]:
    """Resolve one imported name to the file that exports it.

    Returns ``None`` for type-only imports, non-relative specifiers, files
    that are not part of the project, and namespace imports.  A default
    import resolves to the :data:`~codenav.models.DEFAULT_SYMBOL` sentinel.
    """
    if import_stmt.is_type_only or not import_stmt.is_relative:
        return None

    source_file = resolve_import_path(importing_file, import_stmt.module, known_paths, extensions)
    if source_file is None:
        logger.debug("Unresolved import %r from %s", import_stmt.module, importing_file)
        return None

    if import_stmt.default_name == symbol_name:
        return ResolvedSymbol(source_file=source_file, symbol_name=DEFAULT_SYMBOL)
    if symbol_name in import_stmt.names:
        return ResolvedSymbol(source_file=source_file, symbol_name=symbol_name)
    # namespace imports (`import * as ns`) have no single origin
    return None


def follow_reexport_chain(
    symbol_name: str,
    current_file: str,
    files: Mapping[str, Node],
    max_depth: int = MAX_REEXPORT_DEPTH,
    depth: int = 0,
    extensions: Sequence[str] = RESOLVE_EXTENSIONS,
) -> Optional[ResolvedSymbol]:
    """Trace *symbol_name* through re-exports to the file that defines it.

    *files* maps known file paths to their nodes.  Reaching *max_depth*
    returns ``None`` unconditionally; no visited set is kept, so a cyclic
    re-export terminates through the depth cap alone.
    """
    if depth >= max_depth:
        logger.debug("Re-export chain for %r hit depth limit at %s", symbol_name, current_file)
        return None

    node = files.get(current_file)
    if node is None:
        return None

    export = next((e for e in node.exports if e.name == symbol_name), None)
    if export is None:
        return None
    if not export.is_re_export:
        return ResolvedSymbol(source_file=current_file, symbol_name=symbol_name)

    for import_stmt in node.imports:
        if symbol_name in import_stmt.names or import_stmt.default_name == symbol_name:
            next_file = resolve_import_path(current_file, import_stmt.module, files, extensions)
            if next_file is None:
                return None
            return follow_reexport_chain(
                symbol_name, next_file, files, max_depth, depth + 1, extensions,
            )
    return None


# ---------------------------------------------------------------------------
# Call graph
# ---------------------------------------------------------------------------

def build_import_symbol_map(
    file_node: Node,
    files: Mapping[str, Node],
    max_depth: int = MAX_REEXPORT_DEPTH,
    extensions: Sequence[str] = RESOLVE_EXTENSIONS,
) -> ImportSymbolMap:
    """Map each name bound by *file_node*'s imports to its origin.

    When the re-export chain cannot be followed to the end, the direct
    (possibly still re-exporting) resolution is kept instead of dropped.
    """
    symbol_map: ImportSymbolMap = {}
    for import_stmt in file_node.imports:
        local_names = list(import_stmt.names)
        if import_stmt.default_name:
            local_names.append(import_stmt.default_name)

        for local_name in local_names:
            direct = resolve_imported_symbol(
                local_name, import_stmt, file_node.path, files, extensions,
            )
            if direct is None:
                continue
            origin = follow_reexport_chain(
                direct.symbol_name, direct.source_file, files, max_depth, 0, extensions,
            )
            symbol_map[local_name] = origin or direct
    return symbol_map


def _default_export_name(target: Optional[Node]) -> Optional[str]:
    if target is None:
        return None
    for func in target.functions:
        if func.is_default_export:
            return func.name
    return None


def build_cross_file_call_graph(
    file_nodes: Sequence[Node],
    max_depth: int = MAX_REEXPORT_DEPTH,
    extensions: Sequence[str] = RESOLVE_EXTENSIONS,
) -> CrossFileCallGraph:
    """Rewrite every function's local call list into cross-file call edges.

    Only calls to imported names are considered, so intra-file calls and
    calls into unresolvable packages never appear.  Calls to a default
    export whose function cannot be identified are dropped.
    """
    files = file_index(file_nodes)
    import_maps = {
        path: build_import_symbol_map(node, files, max_depth, extensions)
        for path, node in files.items()
    }

    graph: CrossFileCallGraph = {}
    dropped_defaults = 0
    for path, node in files.items():
        import_map = import_maps[path]
        if not import_map:
            continue
        for func in node.functions:
            caller = function_id(path, func.name)
            calls: List[CrossFileCall] = []
            for called_name in func.calls:
                resolved = import_map.get(called_name)
                if resolved is None or resolved.source_file == path:
                    continue

                symbol = resolved.symbol_name
                if resolved.is_default:
                    symbol = _default_export_name(files.get(resolved.source_file))
                    if symbol is None:
                        dropped_defaults += 1
                        continue

                calls.append(CrossFileCall(
                    caller=caller,
                    callee=function_id(resolved.source_file, symbol),
                    imported_as=called_name if called_name != symbol else None,
                ))
            if calls:
                graph[caller] = calls

    logger.info(
        "Built cross-file call graph: %d callers, %d calls (%d default-export calls dropped)",
        len(graph), sum(len(c) for c in graph.values()), dropped_defaults,
    )
    return graph


def get_cross_file_calls_for_function(
    func_id: str,
    graph: CrossFileCallGraph,
) -> Dict[str, List[str]]:
    """Return ``{"calls": [...], "called_by": [...]}`` for one function id."""
    calls = [call.callee for call in graph.get(func_id, [])]
    called_by = [
        caller
        for caller, caller_calls in graph.items()
        for call in caller_calls
        if call.callee == func_id
    ]
    return {"calls": calls, "called_by": called_by}
