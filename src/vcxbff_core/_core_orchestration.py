from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ._core_adapter import JsonSidecarAdapter, UnitAdapter
from ._core_base import (
    EngineFailure,
    EvaluationError,
    RunSettings,
    SerializationError,
    VcxBffError,
    canonical_path,
    report_error,
    report_warning,
)
from ._core_batch import BatchPlan, plan_batches
from ._core_engine import EngineInvoker
from ._core_fingerprint import compute_fingerprint, graph_path_for, should_regenerate
from ._core_graph import BuildUnit, GraphBuilder, UnitGraph
from ._core_link import ArtifactNode, assemble_artifact
from ._core_render import (
    HOOK_POSTBUILD,
    HOOK_PREBUILD,
    GraphDocument,
    hook_script_for,
    render_graph,
    write_graph,
    write_hook_script,
)
from ._core_solution import order_solution_projects, parse_solution
from ._core_synth import CommandLineSynthesizer, MsvcSynthesizer
from ._core_toolchain import discover_toolchain, toolchain_layout

REQUIRED_UNIT_PROPERTIES = ("IntDir", "VCInstallDir")

Executor = Callable[[Path, Path], bool]


@dataclass
class UnitGeneration:
    unit: BuildUnit
    plan: BatchPlan
    artifact: ArtifactNode
    graph_path: Path
    fingerprint: str
    regenerated: bool
    graph_status: str
    warnings: list[str] = field(default_factory=list)


@dataclass
class UnitOutcome:
    name: str
    path: str
    status: str
    graph_path: str | None = None
    regenerated: bool = False
    message: str = ""

    def as_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "status": self.status,
            "graph_path": self.graph_path,
            "regenerated": self.regenerated,
            "message": self.message,
        }


@dataclass
class RunResult:
    total: int
    built: int = 0
    generated: int = 0
    stopped: bool = False
    generate_only: bool = False
    outcomes: list[UnitOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        done = self.generated if self.generate_only else self.built
        return done == self.total and not self.stopped

    def summary_line(self) -> str:
        if self.generate_only:
            return f"{self.generated}/{self.total} generated."
        return f"{self.built}/{self.total} built."

    def as_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "built": self.built,
            "generated": self.generated,
            "stopped": self.stopped,
            "generate_only": self.generate_only,
            "units": [outcome.as_dict() for outcome in self.outcomes],
        }


def resolve_start_paths(
    settings: RunSettings,
    solution: str | None,
    project: str | None,
) -> tuple[list[Path], str | None]:
    """Starting project paths plus the SolutionDir to evaluate them with."""
    if solution:
        parsed = parse_solution(Path(solution))
        if project:
            match = parsed.find_project(project)
            paths = [match.path if match is not None else canonical_path(project)]
        else:
            paths = [item.path for item in order_solution_projects(parsed, settings.solution_order)]
        return paths, parsed.directory
    if project:
        return [canonical_path(project)], None
    raise VcxBffError("No solution or project provided!")


def build_unit_graph(
    settings: RunSettings,
    solution: str | None,
    project: str | None,
    adapter: UnitAdapter | None = None,
) -> UnitGraph:
    paths, solution_dir = resolve_start_paths(settings, solution, project)
    builder = GraphBuilder(
        adapter=adapter or JsonSidecarAdapter(solution_dir=solution_dir),
        platform=settings.platform,
        configuration=settings.configuration,
    )
    return builder.resolve(paths)


def check_unit_properties(unit: BuildUnit) -> None:
    missing = [name for name in REQUIRED_UNIT_PROPERTIES if not unit.evaluation.prop(name)]
    if missing:
        raise EvaluationError(f"Failed to evaluate {', '.join(missing)} on {unit.path.name}")


def generate_unit(
    graph: UnitGraph,
    unit: BuildUnit,
    settings: RunSettings,
    synthesizer: CommandLineSynthesizer,
) -> UnitGeneration:
    check_unit_properties(unit)
    plan = plan_batches(unit, synthesizer, settings.unity)
    artifact = assemble_artifact(graph, unit, plan, synthesizer)

    layout = toolchain_layout(unit.evaluation, settings.platform)
    toolchain = discover_toolchain(layout, settings)
    prebuild = hook_script_for(unit, layout, settings.platform, HOOK_PREBUILD)
    postbuild = hook_script_for(unit, layout, settings.platform, HOOK_POSTBUILD)
    for hook in (prebuild, postbuild):
        if hook is not None:
            write_hook_script(hook)

    graph_path = graph_path_for(unit.path, settings.platform, settings.configuration)
    fingerprint = compute_fingerprint(unit.path, settings.platform, settings.configuration)
    regenerate = should_regenerate(
        unit.path,
        settings.platform,
        settings.configuration,
        graph_path=graph_path,
        force=settings.always_regenerate,
    )
    document = GraphDocument(
        fingerprint=fingerprint,
        layout=layout,
        toolchain=toolchain,
        plan=plan,
        artifact=artifact,
        prebuild=prebuild,
        postbuild=postbuild,
    )
    graph_status = write_graph(graph_path, render_graph(document), regenerate)
    return UnitGeneration(
        unit=unit,
        plan=plan,
        artifact=artifact,
        graph_path=graph_path,
        fingerprint=fingerprint,
        regenerated=regenerate,
        graph_status=graph_status,
        warnings=[str(warning) for warning in toolchain.warnings],
    )


def run_units(
    graph: UnitGraph,
    settings: RunSettings,
    synthesizer: CommandLineSynthesizer | None = None,
    executor: Executor | None = None,
) -> RunResult:
    """Generate and execute each unit in resolved order, stopping at the first engine failure."""
    synthesizer = synthesizer or MsvcSynthesizer()
    if executor is None:
        executor = EngineInvoker(settings).execute

    units = graph.units()
    result = RunResult(total=len(units), generate_only=settings.generate_only)
    for unit in units:
        outcome = UnitOutcome(name=unit.name, path=str(unit.path), status="pending")
        result.outcomes.append(outcome)
        if result.stopped:
            outcome.status = "not_run"
            continue

        try:
            generation = generate_unit(graph, unit, settings, synthesizer)
        except (EvaluationError, SerializationError) as exc:
            report_error(f"[{unit.name}] {exc}")
            outcome.status = "skipped" if isinstance(exc, EvaluationError) else "failed"
            outcome.message = str(exc)
            continue

        for warning in generation.warnings:
            report_warning(f"[{unit.name}] {warning}")
        outcome.graph_path = str(generation.graph_path)
        outcome.regenerated = generation.regenerated
        result.generated += 1
        print(f"BFF: {generation.graph_path}")

        if not generation.plan.has_compile_actions:
            print(f"[{unit.name}] Project has no actions to compile.")
        if settings.generate_only:
            outcome.status = "generated"
            continue
        if not generation.plan.has_compile_actions:
            outcome.status = "built"
            result.built += 1
            continue

        if executor(unit.path, generation.graph_path):
            outcome.status = "built"
            result.built += 1
        else:
            outcome.status = "failed"
            failure = EngineFailure(f"[{unit.name}] build engine reported failure, stopping")
            report_error(str(failure))
            outcome.message = str(failure)
            result.stopped = True

    print(result.summary_line())
    return result
