#!/usr/bin/env python3
"""Run readiness checks and report pass/fail per item and overall. Exit 0 if all required checks pass, 1 otherwise."""
import asyncio
import sys
from pathlib import Path

# Ensure backend app is on path when run as script
_backend = Path(__file__).resolve().parent.parent
if str(_backend) not in sys.path:
    sys.path.insert(0, str(_backend))

from app.readiness import REQUIRED_CHECKS, is_ready, run_all_checks_async


def main() -> int:
    checks = asyncio.run(run_all_checks_async())
    ready, summary = is_ready(checks)
    for name, msg in summary.items():
        status = "OK" if checks[name][0] else "FAIL"
        required = "" if name in REQUIRED_CHECKS else " (optional)"
        print(f"  {name}{required}: {status}  {msg}")
    print("")
    if ready:
        print("Readiness: READY (database, config and packages ok)")
        return 0
    print("Readiness: NOT READY (one or more required checks failed)")
    return 1


if __name__ == "__main__":
    sys.exit(main())
