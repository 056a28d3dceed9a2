#!/usr/bin/env python3
"""
Stock Ledger Test Runner

Unified entrypoint for running all test types.

Usage:
    python -m tests.run quick              # Everything except the threaded concurrency tests
    python -m tests.run full               # All pytest suites
    python -m tests.run concurrency        # Threaded oversell/replay tests only
    python -m tests.run stress             # Locust against a running server

Options:
    --base-url URL        Server base URL for stress tests (default: http://127.0.0.1:5000)
    --concurrency N       Number of concurrent users for stress tests (default: 20)
    --duration N          Duration in seconds for stress tests (default: 60)
    --verbose             Verbose output
"""

import argparse
import subprocess
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import List


TESTS_DIR = Path(__file__).parent
ARTIFACTS_DIR = TESTS_DIR / "artifacts"
CONCURRENCY_TESTS = TESTS_DIR / "test_concurrency.py"


def print_banner(text: str):
    """Print a banner for section headers."""
    width = 80
    print()
    print("=" * width)
    print(f" {text} ".center(width))
    print("=" * width)


class TestRunner:
    def __init__(self, args: argparse.Namespace):
        self.args = args
        ARTIFACTS_DIR.mkdir(exist_ok=True)

    def run_pytest(self, label: str, targets: List[str], extra_args: List[str] = None) -> int:
        cmd = [
            sys.executable, "-m", "pytest",
            "-v" if self.args.verbose else "-q",
            "--tb=short",
            f"--junitxml={ARTIFACTS_DIR}/junit-{label}.xml",
            *targets,
        ]
        if extra_args:
            cmd.extend(extra_args)

        print(f"Running: {' '.join(cmd)}")
        return subprocess.call(cmd)

    def run_quick_tests(self) -> int:
        print_banner("QUICK TESTS")
        return self.run_pytest("quick", [str(TESTS_DIR)], [f"--ignore={CONCURRENCY_TESTS}"])

    def run_full_tests(self) -> int:
        print_banner("FULL REGRESSION TESTS")
        return self.run_pytest("full", [str(TESTS_DIR)])

    def run_concurrency_tests(self) -> int:
        print_banner("CONCURRENCY TESTS")
        return self.run_pytest("concurrency", [str(CONCURRENCY_TESTS)])

    def run_stress_tests(self) -> int:
        print_banner("STRESS/LOAD TESTS")

        locustfile = TESTS_DIR / "stress" / "locustfile.py"
        cmd = [
            sys.executable, "-m", "locust",
            "-f", str(locustfile),
            "--host", self.args.base_url,
            "--users", str(self.args.concurrency),
            "--spawn-rate", "5",
            "--run-time", f"{self.args.duration}s",
            "--headless",
        ]

        print(f"Running: {' '.join(cmd)}")
        print(f"  Users: {self.args.concurrency}")
        print(f"  Duration: {self.args.duration}s")
        print()

        return subprocess.call(cmd)

    def run(self, mode: str) -> int:
        start_time = time.time()

        modes = {
            "quick": self.run_quick_tests,
            "full": self.run_full_tests,
            "concurrency": self.run_concurrency_tests,
            "stress": self.run_stress_tests,
        }
        result = modes[mode]()

        elapsed = time.time() - start_time
        print()
        print(f"Total time: {elapsed:.1f}s")
        return result


def main():
    parser = argparse.ArgumentParser(description="Stock Ledger Test Runner")
    parser.add_argument("mode", choices=["quick", "full", "concurrency", "stress"], help="Test mode to run")
    parser.add_argument("--base-url", default="http://127.0.0.1:5000", help="Server base URL")
    parser.add_argument("--concurrency", type=int, default=20, help="Number of concurrent users for stress tests")
    parser.add_argument("--duration", type=int, default=60, help="Duration in seconds for stress tests")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    args = parser.parse_args()

    print_banner(f"STOCK LEDGER TEST SUITE - {args.mode.upper()}")
    print(f"Started: {datetime.now().isoformat()}")

    runner = TestRunner(args)
    sys.exit(runner.run(args.mode))


if __name__ == "__main__":
    main()
