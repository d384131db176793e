from __future__ import annotations

import posixpath
from dataclasses import dataclass
from pathlib import Path

from ._core_base import is_rooted, to_forward_slashes, to_local_path
from ._core_batch import BatchPlan
from ._core_graph import (
    BUILD_KIND_BINARY,
    BUILD_KIND_SHARED_LIBRARY,
    BUILD_KIND_STATIC_ARCHIVE,
    BuildUnit,
    UnitGraph,
)
from ._core_synth import TASK_LIB, TASK_LINK, CommandLineSynthesizer

NODE_EXECUTABLE = "Executable"
NODE_DLL = "DLL"
NODE_LIBRARY = "Library"

LINK_SUPPRESS = ("OutputFile", "ProfileGuidedDatabase")
LIB_SUPPRESS = ("OutputFile",)


@dataclass(frozen=True)
class ArtifactNode:
    node_type: str
    options: str
    output: str
    inputs: tuple[str, ...]
    compiler_options: str = ""
    compiler_output_dir: str = ""


def artifact_path(unit_dir: Path, value: str) -> str:
    if not value:
        return ""
    normalized = to_forward_slashes(value)
    if is_rooted(value):
        return posixpath.normpath(normalized)
    return f"{unit_dir.as_posix().rstrip('/')}/{normalized}"


def propagated_artifact(unit: BuildUnit) -> str | None:
    evaluation = unit.evaluation
    if unit.kind == BUILD_KIND_SHARED_LIBRARY:
        return artifact_path(unit.directory, evaluation.link.get("ImportLibrary", "")) or None
    if unit.kind == BUILD_KIND_STATIC_ARCHIVE:
        return artifact_path(unit.directory, evaluation.lib.get("OutputFile", "")) or None
    return None


def link_metadata(unit: BuildUnit) -> dict[str, str]:
    metadata = dict(unit.evaluation.link)
    if unit.kind == BUILD_KIND_SHARED_LIBRARY:
        metadata.setdefault("LinkDLL", "true")
    return metadata


def propagate_artifact(graph: UnitGraph, unit: BuildUnit, plan: BatchPlan) -> str | None:
    """Push this unit's artifact path into its dependents' link inputs.

    Must run before any dependent is assembled; resolved order guarantees it.
    """
    path = propagated_artifact(unit)
    if path is None or not unit.dependents:
        return None
    if not plan.has_compile_actions and not to_local_path(path).exists():
        return None
    graph.propagate(unit, path)
    return path


def assemble_artifact(
    graph: UnitGraph,
    unit: BuildUnit,
    plan: BatchPlan,
    synthesizer: CommandLineSynthesizer,
) -> ArtifactNode:
    propagate_artifact(graph, unit, plan)
    evaluation = unit.evaluation
    inputs = tuple(plan.action_ids())

    if unit.kind == BUILD_KIND_STATIC_ARCHIVE:
        options = synthesizer.synthesize(TASK_LIB, LIB_SUPPRESS, evaluation.lib) + unit.extra_link_inputs
        return ArtifactNode(
            node_type=NODE_LIBRARY,
            options=options,
            output=to_forward_slashes(evaluation.lib.get("OutputFile", "")),
            inputs=inputs,
            compiler_options=plan.last_compile_options,
            compiler_output_dir=evaluation.prop("IntDir"),
        )

    options = synthesizer.synthesize(TASK_LINK, LINK_SUPPRESS, link_metadata(unit)) + unit.extra_link_inputs
    return ArtifactNode(
        node_type=NODE_EXECUTABLE if unit.kind == BUILD_KIND_BINARY else NODE_DLL,
        options=options,
        output=to_forward_slashes(evaluation.link.get("OutputFile", "")),
        inputs=inputs,
    )
