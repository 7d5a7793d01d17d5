#!/usr/bin/env python3
# ruff: noqa: T201
"""Architectural boundary validation for Questboard.

Run standalone: python utils/check_boundaries.py
Exit code 0 = all checks pass, 1 = violations found

Checks:
1. Purity Boundary - No homeassistant.* imports in engines/ and utils/
2. CRUD Ownership - Services and flows never write storage directly
3. Balance Ownership - Only LedgerManager touches balance maps
4. Code Quality - Logging arguments and exception handling
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
import re
import sys
from typing import NamedTuple

# Base paths
REPO_ROOT = Path(__file__).parent.parent
COMPONENT_PATH = REPO_ROOT / "custom_components" / "questboard"

# Pure modules that must not import homeassistant
PURE_MODULE_PATHS = [
    COMPONENT_PATH / "engines",
    COMPONENT_PATH / "utils",
]

# Files that must not write to storage
NO_WRITE_FILES = [
    COMPONENT_PATH / "options_flow.py",
    COMPONENT_PATH / "config_flow.py",
    COMPONENT_PATH / "services.py",
]

# Managers that must go through LedgerManager for every balance change
NON_LEDGER_MANAGERS = [
    COMPONENT_PATH / "managers" / "quest_manager.py",
    COMPONENT_PATH / "managers" / "purchase_manager.py",
]

# Broad exception handlers are allowed where an update loop must convert errors
BROAD_EXCEPTION_ALLOWLIST = [
    "coordinator.py",
]


class Violation(NamedTuple):
    """A boundary violation with context."""

    category: str
    file_path: Path
    line_number: int
    line_content: str
    message: str


def _python_files(paths: Iterable[Path]) -> list[Path]:
    files: list[Path] = []
    for path in paths:
        if path.is_file():
            files.append(path)
        elif path.is_dir():
            files.extend(sorted(path.rglob("*.py")))
    return files


def _scan(
    files: Iterable[Path],
    patterns: list[re.Pattern[str]],
    category: str,
    message: str,
) -> list[Violation]:
    violations = []
    for file_path in files:
        try:
            lines = file_path.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            print(f"Warning: Could not read {file_path}: {e}", file=sys.stderr)
            continue
        for line_num, line in enumerate(lines, start=1):
            if any(pattern.search(line) for pattern in patterns):
                violations.append(
                    Violation(category, file_path, line_num, line.strip(), message)
                )
    return violations


def find_ha_imports_in_pure_modules() -> list[Violation]:
    """No homeassistant imports in the pure engines and helpers."""
    return _scan(
        _python_files(PURE_MODULE_PATHS),
        [
            re.compile(r"^\s*from\s+homeassistant"),
            re.compile(r"^\s*import\s+homeassistant"),
        ],
        "PURITY",
        "Homeassistant import in pure module",
    )


def find_storage_writes_in_ui_layer() -> list[Violation]:
    """No storage writes outside the coordinator and its managers."""
    return _scan(
        [path for path in NO_WRITE_FILES if path.exists()],
        [
            re.compile(r"coordinator\._data\[.*\]\s*="),
            re.compile(r"coordinator\._persist(_and_update)?\(\)"),
            re.compile(r"coordinator\.async_set_updated_data\("),
            re.compile(r"storage_manager\.(set_data|async_save)\("),
        ],
        "CRUD",
        "Direct storage write in UI/Service layer - must delegate to a Manager",
    )


def find_balance_writes_outside_ledger() -> list[Violation]:
    """Balance maps are only read or written by LedgerManager and LedgerEngine."""
    return _scan(
        [path for path in NON_LEDGER_MANAGERS if path.exists()],
        [
            re.compile(r"DATA_USER_PERSONAL_(PURSE|EXPERIENCE)"),
            re.compile(r"DATA_USER_GUILD_BALANCES"),
            re.compile(r"DATA_BALANCES_(PURSE|EXPERIENCE)"),
        ],
        "BALANCES",
        "Balance access outside LedgerManager - use apply/deduct",
    )


def find_fstrings_in_logging() -> list[Violation]:
    """Logging calls pass arguments lazily instead of formatting f-strings."""
    return _scan(
        _python_files([COMPONENT_PATH]),
        [re.compile(r"LOGGER\.\w+\(\s*f[\"']")],
        "LOGGING",
        "f-string in logging call - use %s placeholders",
    )


def find_bare_exceptions() -> list[Violation]:
    """No bare or broad exception handlers outside the allow-list."""
    files = [
        path
        for path in _python_files([COMPONENT_PATH])
        if path.name not in BROAD_EXCEPTION_ALLOWLIST
    ]
    return _scan(
        files,
        [
            re.compile(r"^\s*except\s*:"),
            re.compile(r"^\s*except\s+(Base)?Exception\b"),
        ],
        "EXCEPTIONS",
        "Bare or broad exception handler - catch the specific error",
    )


CHECKS = [
    ("Purity Boundary", find_ha_imports_in_pure_modules),
    ("CRUD Ownership", find_storage_writes_in_ui_layer),
    ("Balance Ownership", find_balance_writes_outside_ledger),
    ("Logging Quality", find_fstrings_in_logging),
    ("Exception Handling", find_bare_exceptions),
]


def format_violations(violations: list[Violation]) -> str:
    """Format violations for display."""
    if not violations:
        return ""

    by_category: dict[str, list[Violation]] = {}
    for v in violations:
        by_category.setdefault(v.category, []).append(v)

    output = []
    for category, items in sorted(by_category.items()):
        output.append(f"\n{'=' * 80}")
        output.append(f"❌ {category} VIOLATIONS ({len(items)} found)")
        output.append(f"{'=' * 80}")

        for v in items:
            rel_path = v.file_path.relative_to(REPO_ROOT)
            output.append(f"\n📁 {rel_path}:{v.line_number}")
            output.append(f"   {v.line_content}")
            output.append(f"   ⚠️  {v.message}")

    return "\n".join(output)


def main() -> int:
    """Run all boundary checks."""
    print("🔍 Running architectural boundary checks...")
    print(f"   Checking: {COMPONENT_PATH.relative_to(REPO_ROOT)}\n")

    all_violations = []
    for check_name, check_func in CHECKS:
        print(f"   ⏳ Checking {check_name}...", end=" ")
        violations = check_func()
        if violations:
            print(f"❌ {len(violations)} violation(s)")
            all_violations.extend(violations)
        else:
            print("✅")

    if all_violations:
        print(format_violations(all_violations))
        print(f"\n❌ FAILED: {len(all_violations)} boundary violation(s) found")
        return 1

    print("\n✅ SUCCESS: All architectural boundaries validated\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
