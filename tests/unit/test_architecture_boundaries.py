import ast
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[2]


def _imports(directory: Path):
    for py_file in directory.rglob("*.py"):
        tree = ast.parse(py_file.read_text(encoding="utf-8"), filename=str(py_file))
        rel_path = py_file.relative_to(REPO_ROOT)
        for node in ast.walk(tree):
            if isinstance(node, ast.Import):
                for alias in node.names:
                    yield rel_path, node.lineno, alias.name
            elif isinstance(node, ast.ImportFrom):
                yield rel_path, node.lineno, node.module or ""


def _violations(layer: str, forbidden: str):
    return [
        f"{rel_path}:{lineno} imports {name}"
        for rel_path, lineno, name in _imports(REPO_ROOT / "autocfr" / layer)
        if name == forbidden or name.startswith(forbidden + ".")
    ]


def test_pipeline_layer_does_not_import_ui_layer():
    """Pipeline layer must not import from UI layer directly."""
    violations = _violations("pipeline", "autocfr.ui")
    assert not violations, "Pipeline layer must not import UI layer:\n" + "\n".join(violations)


def test_domain_layer_does_not_import_outer_layers():
    violations = []
    for layer in ("autocfr.infrastructure", "autocfr.pipeline", "autocfr.ui"):
        violations.extend(_violations("domain", layer))
    assert not violations, "Domain layer must stay independent:\n" + "\n".join(violations)
