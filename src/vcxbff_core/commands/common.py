from __future__ import annotations

import argparse

from ..core import *  # noqa: F401,F403


def load_unit_graph(args: argparse.Namespace, settings: RunSettings) -> UnitGraph:
    graph = build_unit_graph(
        settings=settings,
        solution=getattr(args, "sln", None),
        project=getattr(args, "project", None),
    )
    if graph.errors:
        print(f"{len(graph.errors)} project(s) could not be resolved.")
    return graph


def write_report_if_requested(args: argparse.Namespace, payload: dict[str, Any]) -> None:
    report_json = getattr(args, "report_json", None)
    if report_json:
        write_json(Path(report_json).resolve(), payload)
