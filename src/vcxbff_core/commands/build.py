from __future__ import annotations

import argparse

from ..core import *  # noqa: F401,F403
from .common import load_unit_graph, write_report_if_requested


def _run(args: argparse.Namespace, force_generate_only: bool) -> int:
    settings = resolve_run_settings(args, force_generate_only=force_generate_only)
    graph = load_unit_graph(args, settings)
    result = run_units(graph, settings)

    write_report_if_requested(
        args,
        {
            "tool": {"name": "vcxbff", "version": TOOL_VERSION},
            "settings": settings.as_dict(),
            "resolution_errors": [str(error) for error in graph.errors],
            "result": result.as_dict(),
        },
    )
    return 0 if result.succeeded else 1


def command_build(args: argparse.Namespace) -> int:
    return _run(args, force_generate_only=False)


def command_generate(args: argparse.Namespace) -> int:
    return _run(args, force_generate_only=True)
