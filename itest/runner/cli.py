import argparse
from pathlib import Path

from itest.runner import constants


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="NGINX S3 gateway integration test runner")
    parser.add_argument(
        "variant",
        nargs="?",
        default=None,
        help=f"Gateway variant to build and test ({', '.join(constants.VALID_VARIANTS)})",
    )
    parser.add_argument(
        "--root",
        type=Path,
        default=Path.cwd(),
        help="Gateway repository root containing the Dockerfiles and test/ (default: cwd)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Harness settings and matrix file (default: bundled harness.yaml)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Where to persist the full run log (default: <root>/.itest-run.log)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "--color",
        dest="color",
        action="store_const",
        const=True,
        help="Force color output",
    )
    parser.add_argument(
        "--no-color",
        dest="color",
        action="store_const",
        const=False,
        help="Disable color output",
    )
    parser.add_argument(
        "--emoji",
        dest="emoji",
        action="store_const",
        const=True,
        help="Force emoji output",
    )
    parser.add_argument(
        "--no-emoji",
        dest="emoji",
        action="store_const",
        const=False,
        help="Disable emoji output",
    )
    parser.set_defaults(color=None, emoji=None)
    return parser.parse_args(argv)
