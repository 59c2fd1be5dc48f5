"""
Import-boundary enforcement for the three packages.

1. Domain purity        -- pdr_kernel/domain/** may not import the ORM,
                           persistence layers, config or services.
2. Domain clock         -- only domain/clock.py may read the wall clock.
3. Dependency direction -- pdr_kernel never imports pdr_config or
                           pdr_services; pdr_config never imports
                           pdr_services.

All scanning is done via AST; these tests are read-only.
"""

import ast
import glob
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]


def _python_files(package: str) -> list[str]:
    """Return all .py files under *package*, sorted for deterministic order."""
    return sorted(glob.glob(f"{ROOT / package}/**/*.py", recursive=True))


def _extract_imports(filepath: str) -> list[tuple[int, str]]:
    """Return (line_number, module_string) for every import in *filepath*."""
    tree = ast.parse(Path(filepath).read_text(), filename=filepath)
    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom):
            if node.module:
                results.append((node.lineno, node.module))
    return results


def _matches_any(module: str, prefixes: tuple[str, ...]) -> bool:
    return any(module == p or module.startswith(f"{p}.") for p in prefixes)


def _violations(package: str, forbidden: tuple[str, ...]) -> list[str]:
    found = []
    for filepath in _python_files(package):
        for lineno, module in _extract_imports(filepath):
            if _matches_any(module, forbidden):
                found.append(f"  {Path(filepath).relative_to(ROOT)}:{lineno} imports '{module}'")
    return found


class TestDomainPurity:
    FORBIDDEN_PREFIXES = (
        "sqlalchemy",
        "psycopg",
        "sqlite3",
        "yaml",
        "pdr_kernel.db",
        "pdr_kernel.models",
        "pdr_kernel.selectors",
        "pdr_kernel.services",
        "pdr_config",
        "pdr_services",
    )

    def test_domain_has_no_forbidden_imports(self):
        violations = _violations("pdr_kernel/domain", self.FORBIDDEN_PREFIXES)

        assert not violations, (
            "pdr_kernel/domain/** must stay free of persistence, config and "
            "service imports:\n" + "\n".join(violations)
        )

    def test_only_clock_reads_wall_time(self):
        violations = []
        for filepath in _python_files("pdr_kernel/domain"):
            if filepath.endswith("clock.py"):
                continue
            tree = ast.parse(Path(filepath).read_text(), filename=filepath)
            for node in ast.walk(tree):
                if (
                    isinstance(node, ast.Attribute)
                    and node.attr in ("now", "utcnow", "today")
                    and isinstance(node.value, ast.Name)
                    and node.value.id in ("datetime", "date")
                ):
                    violations.append(f"  {filepath}:{node.lineno}")

        assert not violations, "Use an injected Clock:\n" + "\n".join(violations)


class TestDependencyDirection:
    def test_kernel_imports_nothing_above_it(self):
        violations = _violations("pdr_kernel", ("pdr_config", "pdr_services"))

        assert not violations, "\n".join(violations)

    def test_config_does_not_import_services(self):
        violations = _violations("pdr_config", ("pdr_services",))

        assert not violations, "\n".join(violations)
