#!/usr/bin/env python3
"""
Functional test runner.

Usage:
    ./entry.py                        # Run all tests
    ./entry.py -t test_ocb_rollout    # Run specific test
    ./entry.py -g rollout             # Run test group
    ./entry.py --skip-cleanup         # Leave created resources behind for debugging
"""

import argparse
import dataclasses
import logging
import os
import sys

import flexitest

from envconfigs.cluster import ClusterEnvConfig
from factories.kube_proxy import KubeProxyFactory
from harness.config import HarnessConfig, ServiceType
from harness.runtime import TestRuntimeWithLogging
from harness.test_logging import setup_logging

TEST_DIR = "tests"


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="entry.py",
        description="Run on-cluster build functional tests",
    )
    parser.add_argument("-t", "--test", nargs="*", help="Run specific test(s)")
    parser.add_argument("-g", "--group", nargs="*", help="Run test group(s)")
    parser.add_argument("-c", "--config", help="Harness config file (TOML)")
    parser.add_argument("--kubeconfig", default=os.getenv("KUBECONFIG"), help="Kubeconfig to use")
    parser.add_argument(
        "--skip-cleanup",
        action="store_true",
        help="Skips running the cleanup functions. Useful for debugging tests.",
    )
    return parser.parse_args(argv[1:])


def load_config(args: argparse.Namespace) -> HarnessConfig:
    config = HarnessConfig.from_toml_file(args.config) if args.config else HarnessConfig()
    overrides = {}
    if args.kubeconfig:
        overrides["kubeconfig"] = args.kubeconfig
    if args.skip_cleanup:
        overrides["skip_cleanup"] = True
    return dataclasses.replace(config, **overrides)


def filter_tests(args: argparse.Namespace, modules: dict[str, str]) -> dict[str, str]:
    """
    Filters test modules against parsed args supplied from the command line.
    """
    arg_groups = frozenset(args.group or [])
    # Extract filenames from the tests paths.
    arg_tests = frozenset(os.path.split(t)[1].removesuffix(".py") for t in args.test or [])

    filtered = dict()
    for test, path in modules.items():
        parts = os.path.normpath(path).split(os.path.sep)
        idx = max(i for i, part in enumerate(parts) if part == TEST_DIR)
        # The "groups" the current test belongs to.
        test_groups = frozenset(parts[idx + 1 : -1])

        if arg_groups and not (arg_groups & test_groups):
            continue
        if arg_tests and test not in arg_tests:
            continue
        filtered[test] = path

    return filtered


def main(argv: list[str]) -> int:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(os.getenv("LOG_LEVEL", "INFO"))
    config = load_config(args)
    if config.skip_cleanup:
        logging.getLogger(__name__).warning("cleanup disabled: created resources will be left on the cluster")

    factories: dict[ServiceType, flexitest.Factory] = {
        ServiceType.KubeProxy: KubeProxyFactory(range(18001, 18101)),
    }

    global_envs: dict[str, flexitest.EnvConfig] = {
        "cluster": ClusterEnvConfig(config),
    }

    # Set up test runtime
    root_dir = os.path.dirname(os.path.abspath(__file__))
    datadir = flexitest.create_datadir_in_workspace(os.path.join(root_dir, "_dd"))
    runtime = TestRuntimeWithLogging(global_envs, datadir, factories)

    # Discover tests
    test_dir = os.path.join(root_dir, TEST_DIR)
    modules = filter_tests(args, flexitest.runtime.scan_dir_for_modules(test_dir))
    tests = flexitest.runtime.load_candidate_modules(modules)

    # Run tests
    runtime.prepare_registered_tests()
    results = runtime.run_tests(tests)

    # Save and display results
    runtime.save_json_file("results.json", results)
    flexitest.dump_results(results)

    # Exit with error if any test failed
    flexitest.fail_on_error(results)

    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
