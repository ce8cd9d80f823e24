#!/usr/bin/env python3
"""
Multi-tenancy scoping lint check.

Scans the ticketing package for queries that could bypass the tenant
isolation filter:
1. SELECTs of a tenant-owned model (Venue, Act, Show, TicketOffer) that are
   not built with scoped_select / apply_tenant_scope / tenant_filter
2. session.get() of a tenant-owned model (primary-key lookup, never filtered)
3. Hardcoded tenant ids

The tenancy package itself is where the filter is built, so it is excluded.

USAGE:
    python scripts/check_tenant_scoping.py

    # Detailed findings, fail on CRITICAL/HIGH (CI)
    python scripts/check_tenant_scoping.py -v --strict

EXIT CODES:
    0 - No issues found (or only warnings)
    1 - CRITICAL/HIGH issues found with --strict
"""

import argparse
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple

# ────────────────────────────────────────────────────────────────
# Configuration
# ────────────────────────────────────────────────────────────────

# Root directory to scan
SCAN_ROOT = Path(__file__).parent.parent / "Backend" / "ticketing"

# Files/directories to exclude
EXCLUDE_PATTERNS = [
    "__pycache__",
    ".pyc",
    "tenancy/",  # The isolation filter lives here
    "test_",
]

TENANT_OWNED = r"(?:Venue|Act|Show|TicketOffer)"

# SELECT of a tenant-owned model; only flagged when no scoping helper is nearby
UNSCOPED_SELECT = rf"\bselect\([^)]*\b{TENANT_OWNED}\b"

# Any of these within the statement window means the query is scoped
SCOPING_HELPERS = r"scoped_select\(|apply_tenant_scope\(|tenant_filter\(|require_owned\("

# Lines following a match that still count as the same statement
CONTEXT_LINES = 8

BAD_PATTERNS: List[Tuple[str, str, str]] = [
    # (pattern, severity, description)
    (
        r"^[A-Z_]*TENANT_ID\s*=\s*\d+",
        "CRITICAL",
        "Hardcoded TENANT_ID constant - should use TenantContext resolution",
    ),
    (
        r"tenant_id\s*=\s*\d+[,\)\s]",
        "WARNING",
        "Hardcoded tenant_id - should come from TenantContext",
    ),
    (
        UNSCOPED_SELECT,
        "HIGH",
        "Tenant-owned model selected without the isolation filter - potential cross-tenant leak",
    ),
    (
        rf"\.get\(\s*{TENANT_OWNED}\b",
        "HIGH",
        "Primary-key lookup of a tenant-owned model bypasses the isolation filter",
    ),
    (
        r"TenantContext\.administrative\(\)",
        "INFO",
        "Administrative (unrestricted) context - confirm the caller is admin-only",
    ),
]

# Patterns that are OK (suppress false positives)
IGNORE_PATTERNS = [
    r"^\s*#",  # Comments
    r"tenant_id: int",  # Type annotations
    r"noqa:\s*tenant-scoping",  # Explicit suppression
    r"tenant_id=ctx\.",  # Using context
]


# ────────────────────────────────────────────────────────────────
# Data Classes
# ────────────────────────────────────────────────────────────────

@dataclass
class Finding:
    """A single tenant scoping issue."""

    file: Path
    line_num: int
    line_text: str
    severity: str
    description: str

    def __str__(self):
        return f"{self.severity}: {self.file}:{self.line_num} - {self.description}\n  > {self.line_text.strip()}"


# ────────────────────────────────────────────────────────────────
# Scanning Logic
# ────────────────────────────────────────────────────────────────

def should_exclude(path: Path) -> bool:
    """Check if a path should be excluded from scanning."""
    path_str = path.as_posix()
    return any(excl in path_str for excl in EXCLUDE_PATTERNS)


def should_ignore_line(line: str) -> bool:
    """Check if a line should be ignored (false positive suppression)."""
    return any(re.search(pattern, line, re.IGNORECASE) for pattern in IGNORE_PATTERNS)


def scan_file(file_path: Path) -> List[Finding]:
    """Scan a single file for tenant scoping issues."""
    findings = []

    try:
        content = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        print(f"Warning: Could not read {file_path}: {e}", file=sys.stderr)
        return []

    lines = content.split("\n")

    for line_num, line in enumerate(lines, 1):
        if should_ignore_line(line):
            continue

        for pattern, severity, description in BAD_PATTERNS:
            if not re.search(pattern, line):
                continue
            if pattern == UNSCOPED_SELECT:
                # Multi-line statements: the helper may wrap or follow the select
                context_window = "\n".join(lines[max(line_num - 2, 0):line_num + CONTEXT_LINES])
                if re.search(SCOPING_HELPERS, context_window):
                    continue

            findings.append(Finding(
                file=file_path,
                line_num=line_num,
                line_text=line,
                severity=severity,
                description=description,
            ))

    return findings


def scan_directory(root: Path) -> List[Finding]:
    """Recursively scan a directory for tenant scoping issues."""
    all_findings = []

    for path in sorted(root.rglob("*.py")):
        if should_exclude(path.relative_to(root)):
            continue
        all_findings.extend(scan_file(path))

    return all_findings


def blocking_findings(findings: List[Finding]) -> List[Finding]:
    return [f for f in findings if f.severity in ("CRITICAL", "HIGH")]


# ────────────────────────────────────────────────────────────────
# Reporting
# ────────────────────────────────────────────────────────────────

def print_report(findings: List[Finding], verbose: bool = False):
    """Print the findings report."""

    if not findings:
        print("✅ No tenant scoping issues found!")
        return

    by_severity = {}
    for f in findings:
        by_severity.setdefault(f.severity, []).append(f)

    print("\n" + "=" * 60)
    print("MULTI-TENANCY SCOPING CHECK REPORT")
    print("=" * 60)

    severity_order = ["CRITICAL", "HIGH", "WARNING", "INFO"]
    severity_emoji = {
        "CRITICAL": "🔴",
        "HIGH": "🟠",
        "WARNING": "🟣",
        "INFO": "🔵",
    }

    print("\nSUMMARY:")
    for sev in severity_order:
        count = len(by_severity.get(sev, []))
        if count > 0:
            print(f"  {severity_emoji.get(sev, '⚪')} {sev}: {count}")

    print(f"\nTOTAL: {len(findings)} issues")

    if verbose:
        print("\n" + "-" * 60)
        print("DETAILS:")
        print("-" * 60)

        for sev in severity_order:
            if sev in by_severity:
                print(f"\n{severity_emoji.get(sev, '⚪')} {sev}:")
                for f in by_severity[sev]:
                    print(f"  {f.file}:{f.line_num}")
                    print(f"    {f.description}")
                    print(f"    > {f.line_text.strip()[:80]}")
    else:
        print("\nRun with -v for detailed findings.")

    print("\n" + "=" * 60)


# ────────────────────────────────────────────────────────────────
# Main
# ────────────────────────────────────────────────────────────────

def main():
    parser = argparse.ArgumentParser(
        description="Check the ticketing package for tenant scoping issues"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show detailed findings"
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with code 1 if any CRITICAL/HIGH issues found (for CI)"
    )
    parser.add_argument(
        "--path",
        type=Path,
        default=SCAN_ROOT,
        help=f"Path to scan (default: {SCAN_ROOT})"
    )

    args = parser.parse_args()

    if not args.path.exists():
        print(f"Error: Path {args.path} does not exist", file=sys.stderr)
        sys.exit(1)

    print(f"Scanning {args.path}...")
    findings = scan_directory(args.path)

    print_report(findings, verbose=args.verbose)

    blocking = blocking_findings(findings)
    if args.strict and blocking:
        print(f"\n❌ {len(blocking)} critical/high issues found. Failing.")
        sys.exit(1)

    sys.exit(0)


if __name__ == "__main__":
    main()
