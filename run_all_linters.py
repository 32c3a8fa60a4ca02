#!/usr/bin/env python3
"""Run every formatter, linter and the test suite in one go.

Steps, in order:
1. Black format check
2. isort import order check
3. Ruff static checks
4. Pylint static analysis
5. pytest

All output is collected and printed together at the end.
"""

from pathlib import Path
import subprocess
import sys

PACKAGES = ["app", "core", "infrastructure", "main.py"]


def run_command(cmd: list[str], description: str) -> tuple[bool, str]:
    """Run `cmd` and return (success, combined output)."""
    print(f"\n{'='*60}")
    print(f"Running: {description}")
    print(f"Command: {' '.join(cmd)}")
    print("=" * 60)

    try:
        result = subprocess.run(
            cmd, capture_output=True, text=True, check=False, cwd=Path(__file__).parent
        )
    except OSError as e:
        print(f"FAILED to start: {e}")
        return False, str(e)

    success = result.returncode == 0
    output = result.stdout + result.stderr
    print("OK" if success else "FAILED")
    if output.strip():
        print("\nOutput:")
        print(output)
    return success, output


def main() -> None:
    """Run all checks and exit non-zero if any failed."""
    commands = [
        (["python", "-m", "black", ".", "--check"], "Black format check"),
        (["python", "-m", "isort", ".", "--check-only"], "isort import check"),
        (["python", "-m", "ruff", "check", "."], "Ruff static checks"),
        (["python", "-m", "pylint", *PACKAGES], "Pylint static analysis"),
        (["python", "-m", "pytest", "-q"], "pytest"),
    ]

    results = [(desc, *run_command(cmd, desc)) for cmd, desc in commands]

    print(f"\n{'='*60}")
    print("Summary")
    print("=" * 60)
    all_passed = True
    for description, success, _ in results:
        print(f"{description}: {'passed' if success else 'FAILED'}")
        all_passed = all_passed and success

    if not all_passed:
        print("\nFailure details:")
        for description, success, output in results:
            if not success and output.strip():
                print(f"\n--- {description} ---")
                print(output)

    sys.exit(0 if all_passed else 1)


if __name__ == "__main__":
    main()
