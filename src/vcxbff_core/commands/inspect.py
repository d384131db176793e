from __future__ import annotations

import argparse

from ..core import *  # noqa: F401,F403
from .common import load_unit_graph, write_report_if_requested


def command_list_units(args: argparse.Namespace) -> int:
    settings = resolve_run_settings(args, force_generate_only=True)
    graph = load_unit_graph(args, settings)

    entries: list[dict[str, Any]] = []
    for position, unit in enumerate(graph.units()):
        dependents = [dependent.name for dependent in graph.dependents_of(unit)]
        print(f"{position}: {unit.name} [{unit.kind}]")
        if dependents:
            print(f"  dependents: {', '.join(dependents)}")
        entries.append(
            {
                "name": unit.name,
                "path": str(unit.path),
                "kind": unit.kind,
                "dependents": dependents,
            }
        )

    write_report_if_requested(args, {"units": entries, "resolution_errors": [str(e) for e in graph.errors]})
    return 1 if graph.errors else 0


def command_check(args: argparse.Namespace) -> int:
    settings = resolve_run_settings(args, force_generate_only=True)
    graph = load_unit_graph(args, settings)

    entries: list[dict[str, Any]] = []
    stale_count = 0
    for unit in graph.units():
        graph_path = graph_path_for(unit.path, settings.platform, settings.configuration)
        stale = should_regenerate(unit.path, settings.platform, settings.configuration, graph_path=graph_path)
        stale_count += int(stale)
        print(f"[{unit.name}] graph: {'stale' if stale else 'up-to-date'} ({graph_path})")
        entries.append({"name": unit.name, "graph_path": str(graph_path), "stale": stale})

    write_report_if_requested(args, {"units": entries, "stale_count": stale_count})
    if getattr(args, "fail_on_stale", False) and stale_count:
        return 1
    return 0
