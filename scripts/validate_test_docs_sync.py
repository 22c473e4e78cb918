#!/usr/bin/env python3
"""
Check that docs/test_scenarios_business_summary.md documents every scenario
in tests/test_integration_scenarios.py, and nothing else.

Run: python scripts/validate_test_docs_sync.py
"""

import re
import sys
from dataclasses import dataclass, field
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
TEST_FILE = PROJECT_ROOT / "tests" / "test_integration_scenarios.py"
DOC_FILE = PROJECT_ROOT / "docs" / "test_scenarios_business_summary.md"

CLASS_PATTERN = re.compile(r"^class (Test\w+)")
METHOD_PATTERN = re.compile(r"^\s+def (test_\w+)")
DOC_CLASS_PATTERN = re.compile(r"\*\*Test Class\*\*:\s*`(Test\w+)`")
DOC_METHOD_PATTERN = re.compile(r"\*\*Test Method\*\*:\s*`(test_\w+)`")


@dataclass
class SyncReport:
    tested: dict[str, list[str]]
    documented_classes: set[str]
    documented_methods: set[str]
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def tested_methods(self) -> set[str]:
        return {m for methods in self.tested.values() for m in methods}


def collect_tests(test_file: Path) -> dict[str, list[str]]:
    """Map each top-level test class to its test methods, in file order."""
    tested: dict[str, list[str]] = {}
    current = None

    for line in test_file.read_text().splitlines():
        class_match = CLASS_PATTERN.match(line)
        if class_match:
            current = class_match.group(1)
            tested[current] = []
        elif current:
            method_match = METHOD_PATTERN.match(line)
            if method_match:
                tested[current].append(method_match.group(1))

    return tested


def collect_documented(doc_file: Path) -> tuple[set[str], set[str]]:
    content = doc_file.read_text()
    return set(DOC_CLASS_PATTERN.findall(content)), set(DOC_METHOD_PATTERN.findall(content))


def find_sync_problems(test_file: Path = TEST_FILE, doc_file: Path = DOC_FILE) -> SyncReport:
    """
    Compare tests against documentation.

    Undocumented tests are errors; documentation for tests that no longer
    exist is reported as a warning.
    """
    tested = collect_tests(test_file)
    doc_classes, doc_methods = collect_documented(doc_file)
    report = SyncReport(tested=tested, documented_classes=doc_classes, documented_methods=doc_methods)

    report.errors.extend(f"Missing class documentation: {c}" for c in sorted(set(tested) - doc_classes))
    report.errors.extend(f"Missing method documentation: {m}" for m in sorted(report.tested_methods - doc_methods))
    report.warnings.extend(f"Documented class no longer exists: {c}" for c in sorted(doc_classes - set(tested)))
    report.warnings.extend(
        f"Documented method no longer exists: {m}" for m in sorted(doc_methods - report.tested_methods)
    )
    return report


def print_report(report: SyncReport) -> None:
    print("=" * 60)
    print("Test Documentation Sync Validation")
    print("=" * 60)
    print(f"\nTest file: {TEST_FILE.name}")
    print(f"Doc file:  {DOC_FILE.name}")
    print(f"\nTest classes found: {len(report.tested)}")
    print(f"Test methods found: {len(report.tested_methods)}")
    print(f"Documented classes: {len(report.documented_classes)}")
    print(f"Documented methods: {len(report.documented_methods)}")

    if report.errors:
        print(f"\n❌ ERRORS ({len(report.errors)}):")
        for error in report.errors:
            print(f"   - {error}")

    if report.warnings:
        print(f"\n⚠️  WARNINGS ({len(report.warnings)}):")
        for warning in report.warnings:
            print(f"   - {warning}")

    if not report.errors and not report.warnings:
        print("\n✅ All scenarios are documented and in sync!")

    print("\nCoverage by Class:")
    for cls, methods in sorted(report.tested.items()):
        print(f"\n  {'✅' if cls in report.documented_classes else '❌'} {cls}")
        for method in methods:
            print(f"      {'✅' if method in report.documented_methods else '❌'} {method}")


def main() -> int:
    for path in (TEST_FILE, DOC_FILE):
        if not path.exists():
            print(f"❌ File not found: {path}")
            return 1

    report = find_sync_problems()
    print_report(report)
    return 1 if report.errors else 0


if __name__ == "__main__":
    sys.exit(main())
