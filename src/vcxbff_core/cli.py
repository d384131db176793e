from __future__ import annotations

import argparse
import sys

from .core import SOLUTION_ORDER_STRATEGIES, SUPPORTED_VS_VERSIONS, VcxBffError
from .commands import (
    command_build,
    command_check,
    command_generate,
    command_list_units,
)


def _add_selection_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--settings", help="Path to run settings JSON (CLI flags take precedence).")
    parser.add_argument("-s", "--sln", help="Path of .sln file which contains the projects.")
    parser.add_argument(
        "-p",
        "--project",
        help="Path of .vcxproj file to build, or project name if a solution is provided.",
    )
    parser.add_argument("-c", "--config", help="Configuration to build (for example Debug).")
    parser.add_argument("-f", "--platform", help="Platform to build: Win32, x64 (default: x64).")
    parser.add_argument(
        "--solution-order",
        choices=list(SOLUTION_ORDER_STRATEGIES),
        help="How projects listed in a solution are ordered (default: topological).",
    )
    parser.add_argument("--report-json", help="Write a JSON report of the run to path.")


def _add_generation_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-v", "--vs", choices=list(SUPPORTED_VS_VERSIONS), help="Visual Studio version (default: vs2019).")
    parser.add_argument("-r", "--regen", action="store_true", help="Regenerate bff file even when the project hasn't changed.")
    parser.add_argument(
        "-u",
        "--unity",
        action="store_true",
        help="Combine files into unity steps. May substantially improve compilation time, but not all projects are suitable.",
    )
    parser.add_argument(
        "-t",
        "--thirdparty",
        help="Additional third-party folders ('|' separated) whose files the compiler needs.",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vcxbff",
        description="Generate and run FASTBuild graphs from evaluated Visual C++ projects.",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    build = sub.add_parser("build", help="Generate bff files and build them with FASTBuild.")
    _add_selection_arguments(build)
    _add_generation_arguments(build)
    build.add_argument("-a", "--fbargs", help="Arguments that pass through to FASTBuild (default: '-dist -ide -clean').")
    build.add_argument("-b", "--fbpath", help="Path to FASTBuild executable (default: fbuild.exe).")
    build.add_argument("-g", "--generate-only", action="store_true", help="Generate bff files only, without calling FASTBuild.")
    build.set_defaults(func=command_build)

    generate = sub.add_parser("generate", help="Generate bff files without calling FASTBuild.")
    _add_selection_arguments(generate)
    _add_generation_arguments(generate)
    generate.set_defaults(func=command_generate)

    list_units = sub.add_parser("list-units", help="Print the resolved project order and dependents.")
    _add_selection_arguments(list_units)
    list_units.set_defaults(func=command_list_units)

    check = sub.add_parser("check", help="Report which bff files are stale.")
    _add_selection_arguments(check)
    check.add_argument("--fail-on-stale", action="store_true", help="Return non-zero if any bff file is stale.")
    check.set_defaults(func=command_check)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        return int(args.func(args))
    except VcxBffError as exc:
        print(f"vcxbff error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
