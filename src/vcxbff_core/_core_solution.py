from __future__ import annotations

import functools
import heapq
import re
from dataclasses import dataclass
from pathlib import Path

from ._core_base import ResolutionError, VcxBffError, canonical_path, to_local_path

SOLUTION_FOLDER_TYPE_GUID = "{2150E333-8FDC-42A3-9474-1A3956D46DE8}"

PROJECT_LINE_RE = re.compile(
    r'^Project\("(?P<type>\{[0-9A-Fa-f-]+\})"\)\s*=\s*"(?P<name>[^"]*)"\s*,\s*"(?P<path>[^"]*)"\s*,\s*"(?P<guid>\{[0-9A-Fa-f-]+\})"'
)
DEPENDENCY_LINE_RE = re.compile(r"^(?P<guid>\{[0-9A-Fa-f-]+\})\s*=\s*\{[0-9A-Fa-f-]+\}$")


@dataclass(frozen=True)
class SolutionProject:
    name: str
    path: Path
    guid: str
    dependencies: tuple[str, ...] = ()


@dataclass(frozen=True)
class Solution:
    path: Path
    projects: tuple[SolutionProject, ...]

    @property
    def directory(self) -> str:
        value = self.path.parent.as_posix()
        return value if value.endswith("/") else value + "/"

    def find_project(self, name_or_path: str) -> SolutionProject | None:
        for project in self.projects:
            if project.name == name_or_path:
                return project
        wanted = canonical_path(name_or_path)
        for project in self.projects:
            if project.path == wanted:
                return project
        return None


def _is_msbuild_project(type_guid: str, relative_path: str) -> bool:
    if type_guid.upper() == SOLUTION_FOLDER_TYPE_GUID:
        return False
    return relative_path.lower().endswith("proj")


def parse_solution(path: Path) -> Solution:
    solution_path = canonical_path(path)
    try:
        content = solution_path.read_text(encoding="utf-8-sig")
    except OSError as exc:
        raise ResolutionError(f"Failed to parse solution file '{path}': {exc}") from exc

    projects: list[SolutionProject] = []
    current: re.Match[str] | None = None
    dependencies: list[str] = []
    in_dependencies = False

    for raw_line in content.splitlines():
        line = raw_line.strip()
        match = PROJECT_LINE_RE.match(line)
        if match:
            current = match
            dependencies = []
            continue
        if current is None:
            continue
        if line.startswith("ProjectSection(ProjectDependencies)"):
            in_dependencies = True
        elif line == "EndProjectSection":
            in_dependencies = False
        elif in_dependencies:
            dep = DEPENDENCY_LINE_RE.match(line)
            if dep:
                dependencies.append(dep.group("guid").upper())
        elif line == "EndProject":
            if _is_msbuild_project(current.group("type"), current.group("path")):
                projects.append(
                    SolutionProject(
                        name=current.group("name"),
                        path=canonical_path(solution_path.parent / to_local_path(current.group("path"))),
                        guid=current.group("guid").upper(),
                        dependencies=tuple(dependencies),
                    )
                )
            current = None

    if not content.lstrip().startswith("Microsoft Visual Studio Solution File") and not projects:
        raise ResolutionError(f"Failed to parse solution file '{path}': not a Visual Studio solution")
    return Solution(path=solution_path, projects=tuple(projects))


def order_projects_topological(projects: list[SolutionProject] | tuple[SolutionProject, ...]) -> list[SolutionProject]:
    """Kahn's algorithm over ProjectDependencies; ties keep declaration order.

    Projects caught in a dependency cycle are appended in declaration order.
    """
    index_by_guid = {project.guid: index for index, project in enumerate(projects)}
    in_degree = [0] * len(projects)
    dependents: list[list[int]] = [[] for _ in projects]
    for index, project in enumerate(projects):
        for guid in set(project.dependencies):
            dep_index = index_by_guid.get(guid)
            if dep_index is None or dep_index == index:
                continue
            in_degree[index] += 1
            dependents[dep_index].append(index)

    ready = [index for index, degree in enumerate(in_degree) if degree == 0]
    heapq.heapify(ready)
    ordered: list[int] = []
    while ready:
        index = heapq.heappop(ready)
        ordered.append(index)
        for dependent in dependents[index]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                heapq.heappush(ready, dependent)

    placed = set(ordered)
    ordered.extend(index for index in range(len(projects)) if index not in placed)
    return [projects[index] for index in ordered]


def _legacy_compare(left: SolutionProject, right: SolutionProject) -> int:
    if right.guid in left.dependencies:
        return 1
    if left.guid in right.dependencies:
        return -1
    return 0


def order_projects_legacy(projects: list[SolutionProject] | tuple[SolutionProject, ...]) -> list[SolutionProject]:
    """Pairwise comparator that only orders directly dependent projects.

    Not transitive: indirect chains can stay misordered.
    """
    return sorted(projects, key=functools.cmp_to_key(_legacy_compare))


def order_solution_projects(solution: Solution, strategy: str = "topological") -> list[SolutionProject]:
    if strategy == "topological":
        return order_projects_topological(solution.projects)
    if strategy == "legacy":
        return order_projects_legacy(solution.projects)
    raise VcxBffError(f"Unknown solution order strategy '{strategy}'. Use topological or legacy.")
