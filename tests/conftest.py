"""Pytest configuration and fixtures for codenav tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Generator, List, Optional, Sequence

import pytest

from codenav.models import (
    FILE,
    MODULE,
    PARENT,
    Edge,
    ErrorPath,
    ExportDeclaration,
    FunctionSummary,
    ImportStatement,
    KeyStatement,
    Node,
)
from codenav.snapshot import Snapshot, load_snapshot


def make_file(
    path: str,
    imports: Sequence[ImportStatement] = (),
    exports: Sequence[ExportDeclaration] = (),
    functions: Sequence[FunctionSummary] = (),
    summary: str = "",
    edges: Sequence[Edge] = (),
    fan_in: Optional[int] = None,
) -> Node:
    """Build a file node whose id is its path."""
    metadata = {} if fan_in is None else {"fanIn": fan_in}
    return Node(
        node_id=path,
        node_type=FILE,
        path=path,
        name=path.split("/")[-1],
        metadata=metadata,
        edges=list(edges),
        imports=list(imports),
        exports=list(exports),
        functions=list(functions),
        summary=summary,
    )


def make_module(path: str, name: Optional[str] = None) -> Node:
    return Node(node_id=path, node_type=MODULE, path=path, name=name or path.split("/")[-1])


def imp(module: str, *names: str, default: Optional[str] = None, type_only: bool = False) -> ImportStatement:
    return ImportStatement(module=module, names=tuple(names), default_name=default, is_type_only=type_only)


def fn(name: str, calls: Sequence[str] = (), exported: bool = True, **kwargs) -> FunctionSummary:
    return FunctionSummary(
        name=name,
        signature=kwargs.pop("signature", f"function {name}()"),
        calls=list(calls),
        is_exported=exported,
        **kwargs,
    )


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def reexport_project() -> List[Node]:
    """``a.ts`` imports createSession via ``index.ts``, which re-exports it from ``auth.ts``."""
    return [
        make_file(
            "a.ts",
            imports=[imp("./index", "createSession")],
            functions=[fn("caller", calls=["createSession", "helper"], exported=False), fn("helper", exported=False)],
        ),
        make_file(
            "index.ts",
            imports=[imp("./auth", "createSession")],
            exports=[ExportDeclaration("createSession", "function", is_re_export=True)],
        ),
        make_file(
            "auth.ts",
            exports=[ExportDeclaration("createSession", "function")],
            functions=[fn("createSession")],
        ),
    ]


@pytest.fixture
def error_project() -> List[Node]:
    """A route file with a 404 error path, its module and an unrelated file."""
    routes = make_file(
        "src/api/routes.ts",
        exports=[ExportDeclaration("handleLogin", "function")],
        functions=[
            fn(
                "handleLogin",
                key_statements=[KeyStatement(line=10, text="const maxRetries = 3")],
                error_paths=[ErrorPath(kind="return", line=12, action="res.status(404)", http_status=404)],
            ),
        ],
        summary="Login route handler for the public API",
        edges=[Edge(PARENT, "src/api")],
    )
    other = make_file(
        "src/utils/math.ts",
        exports=[ExportDeclaration("clamp", "function")],
        functions=[fn("clamp")],
        summary="Numeric helpers",
    )
    return [make_module("src/api"), routes, other]


@pytest.fixture
def snapshot_path() -> Path:
    """Path to the JSON fact snapshot fixture."""
    return Path(__file__).parent / "fixtures" / "snapshot.json"


@pytest.fixture
def snapshot(snapshot_path: Path) -> Snapshot:
    return load_snapshot(snapshot_path)
