#!/usr/bin/env python3
"""
KFC - Main Entry Point
Parse command-line flags and run the log viewer terminal UI
"""
import argparse
import logging
import os
import sys
from typing import List, Optional

from pydantic import ValidationError

from KFC import __version__
from KFC.errors import KFCError
from KFC.error_detection.loader import init_error_detector, load_error_detector
from KFC.k8s.client import K8sLogClient
from KFC.preferences import DEFAULT_NAMESPACE_KEY, JsonPreferenceStore, PreferenceStore
from KFC.settings import Settings, setup_logging
from KFC.UI import run_app

logger = logging.getLogger(__name__)

EPILOG = """
Examples:
  $ kfc my-deployment
  $ kfc -n production my-deployment
  $ kfc --tail 200 my-deployment
  $ kfc --grep "ERROR" my-deployment
  $ kfc -g "Exception" -C 3 -i my-deployment
  $ kfc --init-error-detector
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kfc",
        description="Follow live logs from a Kubernetes deployment",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("deployment", nargs="?", help="Deployment to follow")
    parser.add_argument("-n", "--namespace", help="Kubernetes namespace (default: $KFC_NAMESPACE or saved default)")
    parser.add_argument("-c", "--context", help="Kubernetes context")
    parser.add_argument("--tail", type=int, dest="tail_lines", help="Number of lines to show from the end (default: 100)")
    parser.add_argument("--max-retry", type=int, help="Maximum retry attempts (default: 10)")
    parser.add_argument("--timeout", type=int, dest="timeout_s", help="Connection timeout in seconds (default: 10)")

    grep = parser.add_argument_group("filtering")
    grep.add_argument("-g", "--grep", dest="grep_pattern", default="", help="Filter logs by pattern (regex supported)")
    grep.add_argument("-A", "--after", dest="grep_after", type=int, default=0, help="Show N lines after match")
    grep.add_argument("-B", "--before", dest="grep_before", type=int, default=0, help="Show N lines before match")
    grep.add_argument("-C", "--context-lines", dest="grep_context", type=int, default=0,
                      help="Show N lines before and after match")
    grep.add_argument("-i", "--ignore-case", dest="grep_ignore_case", action="store_true",
                      help="Case-insensitive pattern matching")
    grep.add_argument("-v", "--invert", dest="grep_invert", action="store_true",
                      help="Invert match (show non-matching lines)")

    parser.add_argument("--init-error-detector", action="store_true",
                        help="Write an editable errorDetector.json template and exit")
    parser.add_argument("--set-default-namespace", metavar="NAMESPACE",
                        help="Save the namespace used when -n and $KFC_NAMESPACE are not given")
    parser.add_argument("--debug", action="store_true", help="Verbose logging to the log file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def resolve_namespace(flag: Optional[str], preferences: PreferenceStore) -> Optional[str]:
    """Flag, then $KFC_NAMESPACE, then the saved default (None lets Settings decide)"""
    if flag:
        return flag
    if os.getenv("KFC_NAMESPACE"):
        return os.getenv("KFC_NAMESPACE")
    saved = preferences.get(DEFAULT_NAMESPACE_KEY)
    return saved if isinstance(saved, str) and saved else None


def build_settings(args: argparse.Namespace, preferences: PreferenceStore) -> Settings:
    """Command-line flags over environment defaults"""
    values = {
        "deployment": args.deployment,
        "namespace": resolve_namespace(args.namespace, preferences),
        "context": args.context,
        "tail_lines": args.tail_lines,
        "max_retry": args.max_retry,
        "timeout_s": args.timeout_s,
        "grep_pattern": args.grep_pattern,
        "grep_after": args.grep_after,
        "grep_before": args.grep_before,
        "grep_context": args.grep_context,
        "grep_ignore_case": args.grep_ignore_case,
        "grep_invert": args.grep_invert,
    }
    return Settings(**{key: value for key, value in values.items() if value is not None})


def main(argv: Optional[List[str]] = None, preferences: Optional[PreferenceStore] = None,
         client: Optional[K8sLogClient] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    preferences = preferences or JsonPreferenceStore()

    if args.set_default_namespace:
        preferences.set(DEFAULT_NAMESPACE_KEY, args.set_default_namespace)
        print(f"Default namespace set to {args.set_default_namespace}")
        return 0

    try:
        settings = build_settings(args, preferences)
    except ValidationError as e:
        parser.error(str(e))

    log_file = setup_logging(settings.log_dir, logging.DEBUG if args.debug else logging.INFO)

    if args.init_error_detector:
        success, message, _ = init_error_detector(settings.config_dir)
        print(message)
        return 0 if success else 1

    client = client or K8sLogClient()

    if not settings.deployment:
        print(f"No deployment given. Deployments in namespace {settings.namespace}:", file=sys.stderr)
        try:
            for name in client.list_deployments(settings.namespace, settings.context, settings.timeout_s):
                print(f"  {name}", file=sys.stderr)
        except KFCError as e:
            print(f"  ({e})", file=sys.stderr)
        return 2

    logger.info(f"KFC {__version__} starting for {settings.namespace}/{settings.deployment}; log file {log_file}")
    detector = load_error_detector(settings.config_dir)

    try:
        return_code = run_app(settings, client, detector)
    except KeyboardInterrupt:
        print("\nKFC terminated by user")
        return 130
    return return_code or 0


if __name__ == "__main__":
    sys.exit(main())
