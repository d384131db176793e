from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

from ._core_adapter import EvaluatedUnit, ProjectItem, UnitAdapter
from ._core_base import VcxBffError, canonical_path, is_true, report_error, to_local_path

BUILD_KIND_BINARY = "Binary"
BUILD_KIND_SHARED_LIBRARY = "SharedLibrary"
BUILD_KIND_STATIC_ARCHIVE = "StaticArchive"

CONFIGURATION_TYPE_KINDS = {
    "Application": BUILD_KIND_BINARY,
    "DynamicLibrary": BUILD_KIND_SHARED_LIBRARY,
    "StaticLibrary": BUILD_KIND_STATIC_ARCHIVE,
}


def build_kind_for(configuration_type: str) -> str:
    return CONFIGURATION_TYPE_KINDS.get(configuration_type.strip(), BUILD_KIND_BINARY)


@dataclass
class BuildUnit:
    uid: int
    path: Path
    evaluation: EvaluatedUnit
    kind: str
    dependents: list[int] = field(default_factory=list)
    extra_link_inputs: str = ""

    @property
    def name(self) -> str:
        return self.path.stem

    @property
    def directory(self) -> Path:
        return self.path.parent

    def add_dependent(self, uid: int) -> bool:
        if uid == self.uid or uid in self.dependents:
            return False
        self.dependents.append(uid)
        return True


class UnitGraph:
    """Arena of build units.

    ``arena`` holds units in creation order and is addressed by ``uid``;
    ``order`` lists uids in resolved (post-order) sequence, which is the
    order units must be assembled and executed in.
    """

    def __init__(self) -> None:
        self.arena: list[BuildUnit] = []
        self.order: list[int] = []
        self.errors: list[VcxBffError] = []
        self._by_path: dict[Path, int] = {}

    def __len__(self) -> int:
        return len(self.order)

    def find(self, path: Path) -> BuildUnit | None:
        uid = self._by_path.get(path)
        return self.arena[uid] if uid is not None else None

    def create(self, path: Path, evaluation: EvaluatedUnit) -> BuildUnit:
        configuration_type = evaluation.prop("ConfigurationType", "Application")
        unit = BuildUnit(
            uid=len(self.arena),
            path=path,
            evaluation=evaluation,
            kind=build_kind_for(configuration_type),
        )
        self.arena.append(unit)
        self._by_path[unit.path] = unit.uid
        return unit

    def units(self) -> list[BuildUnit]:
        return [self.arena[uid] for uid in self.order]

    def dependents_of(self, unit: BuildUnit) -> list[BuildUnit]:
        return [self.arena[uid] for uid in unit.dependents]

    def edges(self) -> list[tuple[int, int]]:
        return [(unit.uid, dependent) for unit in self.arena for dependent in unit.dependents]

    def position(self, unit: BuildUnit) -> int:
        return self.order.index(unit.uid)

    def propagate(self, unit: BuildUnit, artifact_path: str) -> None:
        for dependent in self.dependents_of(unit):
            dependent.extra_link_inputs += f' "{artifact_path}" '


def contributes_to_link(reference: ProjectItem) -> bool:
    return is_true(reference.get("ReferenceOutputAssembly")) or is_true(reference.get("LinkLibraryDependencies"))


def reference_path(unit: BuildUnit, reference: ProjectItem) -> Path:
    return canonical_path(unit.directory / to_local_path(reference.include))


class GraphBuilder:
    def __init__(
        self,
        adapter: UnitAdapter,
        platform: str,
        configuration: str,
        report: Callable[[str], None] = report_error,
    ) -> None:
        self.adapter = adapter
        self.platform = platform
        self.configuration = configuration
        self.report = report

    def resolve(self, paths: Iterable[str | Path]) -> UnitGraph:
        graph = UnitGraph()
        for path in paths:
            self._resolve_into(graph, canonical_path(path), None)
        return graph

    def _resolve_into(self, graph: UnitGraph, path: Path, dependent: BuildUnit | None) -> None:
        existing = graph.find(path)
        if existing is not None:
            if dependent is not None:
                existing.add_dependent(dependent.uid)
            return

        try:
            evaluation = self.adapter.resolve(path, self.platform, self.configuration)
        except VcxBffError as exc:
            graph.errors.append(exc)
            self.report(f"Failed to parse project file '{path}': {exc}")
            return

        unit = graph.create(path, evaluation)
        if dependent is not None:
            unit.add_dependent(dependent.uid)
        for reference in evaluation.references:
            if contributes_to_link(reference):
                self._resolve_into(graph, reference_path(unit, reference), unit)
        graph.order.append(unit.uid)
