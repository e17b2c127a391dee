"""Core data models shared by resolution, indexing, and navigation layers.

Fact records (imports, exports, function summaries) are produced by an
external extractor; :class:`Node` and :class:`Edge` are assembled outside this
package as well.  Every record has a ``from_dict`` constructor accepting the
camelCase JSON the extractor emits, and a ``to_dict`` for the host.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

# Node kinds
FILE = "file"
FUNCTION = "function"
MODULE = "module"

# Edge kinds
CONTAINS = "contains"
IMPORTS = "imports"
IMPORTED_BY = "importedBy"
PARENT = "parent"
TEST_FILE = "testFile"

EXPORT_KINDS = ("function", "class", "interface", "type", "const", "default", "star")

# Sentinel symbol name for a default import; needs a second lookup.
DEFAULT_SYMBOL = "default"


@dataclass(frozen=True)
class ImportStatement:
    module: str
    names: Tuple[str, ...] = ()
    default_name: Optional[str] = None
    namespace_alias: Optional[str] = None
    is_type_only: bool = False

    @property
    def is_relative(self) -> bool:
        return self.module.startswith(".")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImportStatement":
        names: List[str] = []
        for name in data.get("names") or []:
            if name not in names:
                names.append(name)
        return cls(
            module=data["from"],
            names=tuple(names),
            default_name=data.get("defaultName"),
            namespace_alias=data.get("namespaceAlias", data.get("namespaceImport")),
            is_type_only=bool(data.get("isTypeOnly", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "from": self.module,
            "names": list(self.names),
            "isTypeOnly": self.is_type_only,
        }
        if self.default_name:
            payload["defaultName"] = self.default_name
        if self.namespace_alias:
            payload["namespaceAlias"] = self.namespace_alias
        return payload


@dataclass(frozen=True)
class ExportDeclaration:
    name: str
    kind: str = "const"
    is_re_export: bool = False

    def __post_init__(self) -> None:
        if self.kind not in EXPORT_KINDS:
            raise ValueError(f"Unknown export kind: {self.kind}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExportDeclaration":
        return cls(
            name=data["name"],
            kind=data.get("kind", "const"),
            is_re_export=bool(data.get("isReExport", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "kind": self.kind, "isReExport": self.is_re_export}


@dataclass(frozen=True)
class KeyStatement:
    """An important line inside a function (config value, formula, guard)."""
    line: int
    text: str
    category: str = "config"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KeyStatement":
        return cls(line=int(data.get("line", 0)), text=data["text"], category=data.get("category", "config"))

    def to_dict(self) -> Dict[str, Any]:
        return {"line": self.line, "text": self.text, "category": self.category}


@dataclass(frozen=True)
class ErrorPath:
    """A detected error-handling path (throw, guard, early return)."""
    kind: str
    line: int = 0
    action: str = ""
    condition: Optional[str] = None
    http_status: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ErrorPath":
        status = data.get("httpStatus")
        return cls(
            kind=data.get("type", "throw"),
            line=int(data.get("line", 0)),
            action=data.get("action", ""),
            condition=data.get("condition"),
            http_status=int(status) if status is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"type": self.kind, "line": self.line, "action": self.action}
        if self.condition is not None:
            payload["condition"] = self.condition
        if self.http_status is not None:
            payload["httpStatus"] = self.http_status
        return payload


@dataclass(frozen=True)
class DetectedPattern:
    name: str
    confidence: str = "medium"
    evidence: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DetectedPattern":
        return cls(
            name=data["name"],
            confidence=data.get("confidence", "medium"),
            evidence=tuple(data.get("evidence") or ()),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "confidence": self.confidence, "evidence": list(self.evidence)}


@dataclass
class FunctionSummary:
    name: str
    signature: str = ""
    start_line: int = 0
    end_line: int = 0
    calls: List[str] = field(default_factory=list)
    is_exported: bool = False
    is_default_export: bool = False
    code_snippet: str = ""
    key_statements: List[KeyStatement] = field(default_factory=list)
    error_paths: List[ErrorPath] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FunctionSummary":
        return cls(
            name=data["name"],
            signature=data.get("signature", ""),
            start_line=int(data.get("startLine", 0)),
            end_line=int(data.get("endLine", 0)),
            calls=list(data.get("calls") or []),
            is_exported=bool(data.get("isExported", False)),
            is_default_export=bool(data.get("isDefaultExport", False)),
            code_snippet=data.get("codeSnippet", ""),
            key_statements=[KeyStatement.from_dict(s) for s in data.get("keyStatements") or []],
            error_paths=[ErrorPath.from_dict(e) for e in data.get("errorPaths") or []],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "signature": self.signature,
            "startLine": self.start_line,
            "endLine": self.end_line,
            "calls": list(self.calls),
            "isExported": self.is_exported,
            "isDefaultExport": self.is_default_export,
            "codeSnippet": self.code_snippet,
            "keyStatements": [s.to_dict() for s in self.key_statements],
            "errorPaths": [e.to_dict() for e in self.error_paths],
        }


@dataclass
class Edge:
    edge_type: str
    target: str
    weight: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Edge":
        return cls(edge_type=data["type"], target=data["target"], weight=data.get("weight"))

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"type": self.edge_type, "target": self.target}
        if self.weight is not None:
            payload["weight"] = self.weight
        return payload


@dataclass
class Node:
    node_id: str
    node_type: str
    path: str
    name: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    edges: List[Edge] = field(default_factory=list)
    imports: List[ImportStatement] = field(default_factory=list)
    exports: List[ExportDeclaration] = field(default_factory=list)
    functions: List[FunctionSummary] = field(default_factory=list)
    patterns: List[DetectedPattern] = field(default_factory=list)
    summary: str = ""

    @property
    def fan_in(self) -> int:
        return int(self.metadata.get("fanIn") or 0)

    @property
    def fan_out(self) -> int:
        return int(self.metadata.get("fanOut") or 0)

    def edges_of(self, edge_type: str) -> List[Edge]:
        return [e for e in self.edges if e.edge_type == edge_type]

    def find_function(self, name: str) -> Optional[FunctionSummary]:
        for func in self.functions:
            if func.name == name:
                return func
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Node":
        raw = data.get("raw") or {}
        prose = data.get("prose") or {}
        node_type = data.get("type", FILE)
        if node_type not in (FILE, FUNCTION, MODULE):
            raise ValueError(f"Unknown node type: {node_type}")
        path = data["path"]
        return cls(
            node_id=data.get("id", path),
            node_type=node_type,
            path=path,
            name=data.get("name") or path.rstrip("/").split("/")[-1],
            metadata=dict(data.get("metadata") or {}),
            edges=[Edge.from_dict(e) for e in data.get("edges") or []],
            imports=[ImportStatement.from_dict(i) for i in raw.get("imports") or []],
            exports=[ExportDeclaration.from_dict(e) for e in raw.get("exports") or []],
            functions=[FunctionSummary.from_dict(f) for f in raw.get("functions") or []],
            patterns=[DetectedPattern.from_dict(p) for p in raw.get("patterns") or []],
            summary=prose.get("summary", "") if isinstance(prose, dict) else "",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.node_id,
            "type": self.node_type,
            "path": self.path,
            "name": self.name,
            "metadata": dict(self.metadata),
            "edges": [e.to_dict() for e in self.edges],
            "raw": {
                "imports": [i.to_dict() for i in self.imports],
                "exports": [e.to_dict() for e in self.exports],
                "functions": [f.to_dict() for f in self.functions],
                "patterns": [p.to_dict() for p in self.patterns],
            },
            "prose": {"summary": self.summary} if self.summary else None,
        }


@dataclass(frozen=True)
class ResolvedSymbol:
    source_file: str
    symbol_name: str

    @property
    def is_default(self) -> bool:
        return self.symbol_name == DEFAULT_SYMBOL


@dataclass(frozen=True)
class CrossFileCall:
    caller: str
    callee: str
    imported_as: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"caller": self.caller, "callee": self.callee}
        if self.imported_as is not None:
            payload["importedAs"] = self.imported_as
        return payload


@dataclass
class ImpactTree:
    source: str
    direct_dependents: List[str] = field(default_factory=list)
    transitive_dependents: List[str] = field(default_factory=list)
    dependents_by_depth: Dict[int, List[str]] = field(default_factory=dict)

    @property
    def total_affected_files(self) -> int:
        return len(self.direct_dependents) + len(self.transitive_dependents)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "directDependents": list(self.direct_dependents),
            "transitiveDependents": list(self.transitive_dependents),
            "dependentsByDepth": {str(k): list(v) for k, v in self.dependents_by_depth.items()},
            "totalAffectedFiles": self.total_affected_files,
        }


@dataclass(frozen=True)
class TestFileImpact:
    path: str
    test_command: str
    covers: str

    __test__ = False  # not a pytest class

    def to_dict(self) -> Dict[str, Any]:
        return {"path": self.path, "testCommand": self.test_command, "covers": self.covers}
