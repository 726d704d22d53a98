#!/usr/bin/env python3

"""
Test runner for the gene family curation pipeline.

Runs all unit tests and optionally a coverage report.
"""

import unittest
import sys
import os
import argparse
import time
from typing import List, Optional

# Add current directory to path
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

TEST_PACKAGE = "gene_family_curation.tests"


def discover_tests(test_dir: str = "gene_family_curation/tests",
                   pattern: str = "test_*.py") -> unittest.TestSuite:
    """Discover all test modules."""
    loader = unittest.TestLoader()
    test_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), test_dir)

    if os.path.exists(test_path):
        suite = loader.discover(test_path, pattern=pattern,
                                top_level_dir=os.path.dirname(os.path.abspath(__file__)))
    else:
        print(f"Warning: Test directory {test_path} not found")
        suite = unittest.TestSuite()

    return suite


def run_tests(verbosity: int = 2,
              test_pattern: Optional[str] = None,
              fail_fast: bool = False) -> bool:
    """
    Run the test suite.

    Args:
        verbosity: Test output verbosity (0-2)
        test_pattern: Pattern to match test files
        fail_fast: Stop on first failure

    Returns:
        True if all tests passed, False otherwise
    """
    print("=" * 70)
    print("Gene Family Curation Pipeline - Test Suite")
    print("=" * 70)

    suite = discover_tests(pattern=test_pattern or "test_*.py")

    test_count = suite.countTestCases()
    print(f"Discovered {test_count} tests")

    if test_count == 0:
        print("No tests found!")
        return False

    print("-" * 70)

    runner = unittest.TextTestRunner(verbosity=verbosity, failfast=fail_fast, buffer=True)

    start_time = time.time()
    result = runner.run(suite)
    end_time = time.time()

    print("-" * 70)
    print(f"Tests completed in {end_time - start_time:.2f} seconds")
    print(f"Tests run: {result.testsRun}")
    print(f"Failures: {len(result.failures)}")
    print(f"Errors: {len(result.errors)}")
    print(f"Skipped: {len(result.skipped)}")

    success = result.wasSuccessful()

    if success:
        print("\n✅ All tests passed!")
    else:
        print(f"\n❌ {len(result.failures) + len(result.errors)} test(s) failed")

    return success


def run_coverage_tests() -> bool:
    """Run tests with coverage analysis of the gene_family_curation package."""
    import coverage

    print("Running tests with coverage analysis...")

    cov = coverage.Coverage(source=["gene_family_curation"], omit=["*/tests/*"])
    cov.start()
    success = run_tests(verbosity=1)
    cov.stop()
    cov.save()

    print("\n" + "=" * 70)
    print("COVERAGE REPORT")
    print("=" * 70)

    cov.report(show_missing=True)
    cov.html_report(directory="htmlcov")
    print("\nHTML coverage report generated in htmlcov/")

    return success


def run_specific_tests(test_names: List[str]) -> bool:
    """Run specific test classes, e.g. ``test_processors.TestGapTrimmer``."""
    suite = unittest.TestSuite()

    for test_name in test_names:
        if not test_name.startswith(TEST_PACKAGE):
            test_name = f"{TEST_PACKAGE}.{test_name}"

        try:
            suite.addTests(unittest.TestLoader().loadTestsFromName(test_name))
        except (ImportError, AttributeError) as e:
            print(f"Could not load test {test_name}: {e}")
            return False

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return result.wasSuccessful()


def main():
    """Main test runner entry point."""
    parser = argparse.ArgumentParser(description="Run gene family curation pipeline tests")
    parser.add_argument("-v", "--verbosity", type=int, choices=[0, 1, 2], default=2,
                        help="Test output verbosity")
    parser.add_argument("-f", "--fail-fast", action="store_true",
                        help="Stop on first failure")
    parser.add_argument("-c", "--coverage", action="store_true",
                        help="Run with coverage analysis")
    parser.add_argument("-p", "--pattern", type=str,
                        help="Pattern to match test files")
    parser.add_argument("-t", "--tests", nargs="+",
                        help="Specific test classes to run")

    args = parser.parse_args()

    if args.tests:
        success = run_specific_tests(args.tests)
    elif args.coverage:
        success = run_coverage_tests()
    else:
        success = run_tests(
            verbosity=args.verbosity,
            test_pattern=args.pattern,
            fail_fast=args.fail_fast
        )

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
