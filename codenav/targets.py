"""Navigation targets, resolution results, and navigator response parsing.

A navigation target is one instruction describing evidence to fetch for a
query: a file, a pattern search, a function inside a file, or the importers
of a symbol.  Targets usually arrive as JSON inside free-form text produced
by a reasoning step; :func:`parse_navigator_response` turns that text into
a fully typed target list or a single descriptive error.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError

from .models import Node


# ---------------------------------------------------------------------------
# Target models
# ---------------------------------------------------------------------------

class FileTarget(BaseModel):
    type: Literal["file"] = "file"
    path: StrictStr = Field(..., description="Exact project-relative file path")


class GrepTarget(BaseModel):
    type: Literal["grep"] = "grep"
    pattern: StrictStr = Field(..., description="Case-insensitive regular expression")
    scope: Optional[StrictStr] = Field(default=None, description="Only search paths starting with this prefix")


class FunctionTarget(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["function"] = "function"
    name: StrictStr = Field(..., description="Function name")
    in_: StrictStr = Field(..., alias="in", description="File containing the function")


class ImportersTarget(BaseModel):
    type: Literal["importers"] = "importers"
    of: StrictStr = Field(..., description="Exported symbol whose importers are wanted")


NavigationTarget = Union[FileTarget, GrepTarget, FunctionTarget, ImportersTarget]

# discriminant -> (model, message when required fields are missing)
_TARGET_MODELS: Dict[str, Tuple[type, str]] = {
    "file": (FileTarget, "File target missing path"),
    "grep": (GrepTarget, "Grep target missing pattern"),
    "function": (FunctionTarget, "Function target missing name or in"),
    "importers": (ImportersTarget, "Importers target missing of"),
}


def target_to_dict(target: NavigationTarget) -> Dict[str, Any]:
    return target.model_dump(by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Result records
# ---------------------------------------------------------------------------

@dataclass
class FunctionDetail:
    path: str
    name: str
    signature: str
    start_line: int
    end_line: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "name": self.name,
            "signature": self.signature,
            "startLine": self.start_line,
            "endLine": self.end_line,
        }


@dataclass
class ResolvedTarget:
    """Outcome of resolving one target; failure is a value, never raised."""
    success: bool
    error: Optional[str] = None
    suggestions: Optional[List[str]] = None
    node: Optional[Node] = None
    function_details: Optional[FunctionDetail] = None
    importers: Optional[List[str]] = None

    def __str__(self) -> str:
        if self.success:
            return "resolved"
        return f"failed: {self.error}"


@dataclass
class GrepMatch:
    path: str
    match_type: str  # export | functionName | signature | codeSnippet | keyStatement
    name: Optional[str] = None
    line: Optional[int] = None
    content: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"path": self.path, "matchType": self.match_type}
        if self.name is not None:
            payload["name"] = self.name
        if self.line is not None:
            payload["line"] = self.line
        if self.content is not None:
            payload["content"] = self.content
        return payload


@dataclass
class GrepResult:
    success: bool
    error: Optional[str] = None
    matches: Optional[List[GrepMatch]] = None


@dataclass
class ResolvedContext:
    """Evidence gathered for a batch of targets, plus every per-target error."""
    nodes: List[Node] = field(default_factory=list)
    grep_matches: List[GrepMatch] = field(default_factory=list)
    function_details: List[FunctionDetail] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [node.to_dict() for node in self.nodes],
            "grepMatches": [m.to_dict() for m in self.grep_matches],
            "functionDetails": [d.to_dict() for d in self.function_details],
            "errors": list(self.errors),
        }


@dataclass
class NavigationResponse:
    reasoning: str = ""
    targets: Optional[List[NavigationTarget]] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None and self.targets is not None


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


def validate_target(raw: Any) -> Tuple[Optional[NavigationTarget], Optional[str]]:
    """Validate one raw target; returns ``(target, None)`` or ``(None, error)``."""
    if not isinstance(raw, dict):
        return None, "Target is not an object"

    kind = raw.get("type")
    entry = _TARGET_MODELS.get(kind) if isinstance(kind, str) else None
    if entry is None:
        return None, f"Unknown target type: {kind}"

    model, missing_message = entry
    try:
        return model.model_validate(raw), None
    except ValidationError:
        return None, missing_message


def _extract_json_text(raw_response: str) -> str:
    fenced = _FENCE_RE.search(raw_response)
    if fenced:
        return fenced.group(1).strip()
    bare = _OBJECT_RE.search(raw_response)
    if bare:
        return bare.group(0)
    return raw_response


def parse_navigator_response(raw_response: str) -> NavigationResponse:
    """Parse reasoning-step output into typed targets.

    Any invalid target fails the whole parse with that target's error, so
    callers never see a partially typed list.
    """
    try:
        parsed = json.loads(_extract_json_text(raw_response))
    except ValueError:
        return NavigationResponse(
            error=f"Failed to parse JSON from response: {raw_response[:100]}...",
        )

    if not isinstance(parsed, dict):
        return NavigationResponse(error="Response is not a valid object")

    reasoning = parsed.get("reasoning")
    if not isinstance(reasoning, str):
        reasoning = ""

    raw_targets = parsed.get("targets")
    if not isinstance(raw_targets, list):
        return NavigationResponse(reasoning=reasoning, error="Response missing targets array")

    targets: List[NavigationTarget] = []
    for raw in raw_targets:
        target, error = validate_target(raw)
        if error is not None:
            return NavigationResponse(reasoning=reasoning, error=error)
        targets.append(target)

    return NavigationResponse(reasoning=reasoning, targets=targets)
