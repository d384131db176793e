from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from ._core_base import (
    EvaluationError,
    ResolutionError,
    VcxBffError,
    canonical_path,
    load_json,
    validate_with_schema,
)

EVALUATION_SIDECAR_SUFFIX = ".eval.json"


@dataclass(frozen=True)
class ProjectItem:
    include: str
    metadata: dict[str, str] = field(default_factory=dict)

    def get(self, name: str) -> str:
        return self.metadata.get(name, "")

    def has(self, name: str, value: str) -> bool:
        return self.metadata.get(name, "").strip() == value


@dataclass(frozen=True)
class EvaluatedUnit:
    path: Path
    properties: dict[str, str]
    compile_items: tuple[ProjectItem, ...] = ()
    resource_items: tuple[ProjectItem, ...] = ()
    references: tuple[ProjectItem, ...] = ()
    link: dict[str, str] = field(default_factory=dict)
    lib: dict[str, str] = field(default_factory=dict)
    pre_build_event: str = ""
    post_build_event: str = ""

    def prop(self, name: str, default: str = "") -> str:
        value = self.properties.get(name)
        return value if value is not None else default


class UnitAdapter(Protocol):
    def resolve(self, path: Path, platform: str, configuration: str) -> EvaluatedUnit:
        ...


def _items_from_payload(raw: Any) -> tuple[ProjectItem, ...]:
    if not isinstance(raw, list):
        return ()
    items: list[ProjectItem] = []
    for entry in raw:
        metadata = entry.get("metadata")
        items.append(
            ProjectItem(
                include=str(entry["include"]),
                metadata=dict(metadata) if isinstance(metadata, dict) else {},
            )
        )
    return tuple(items)


def evaluated_unit_from_payload(path: Path, payload: dict[str, Any], extra_properties: dict[str, str] | None = None) -> EvaluatedUnit:
    properties = dict(payload.get("properties") or {})
    for key, value in (extra_properties or {}).items():
        properties.setdefault(key, value)
    return EvaluatedUnit(
        path=path,
        properties=properties,
        compile_items=_items_from_payload(payload.get("compile_items")),
        resource_items=_items_from_payload(payload.get("resource_items")),
        references=_items_from_payload(payload.get("references")),
        link=dict(payload.get("link") or {}),
        lib=dict(payload.get("lib") or {}),
        pre_build_event=str(payload.get("pre_build_event") or ""),
        post_build_event=str(payload.get("post_build_event") or ""),
    )


class JsonSidecarAdapter:
    """Reads project evaluations dumped by an external evaluator.

    Each project ``foo.vcxproj`` is accompanied by ``foo.vcxproj.eval.json``
    holding one evaluation per ``"<Configuration>|<Platform>"`` key.
    """

    def __init__(self, solution_dir: str | None = None, suffix: str = EVALUATION_SIDECAR_SUFFIX) -> None:
        self.solution_dir = solution_dir
        self.suffix = suffix

    def sidecar_path(self, path: Path) -> Path:
        return path.with_name(path.name + self.suffix)

    def resolve(self, path: Path, platform: str, configuration: str) -> EvaluatedUnit:
        project_path = canonical_path(path)
        if not project_path.is_file():
            raise ResolutionError(f"Project file '{project_path}' does not exist")

        sidecar = self.sidecar_path(project_path)
        if not sidecar.is_file():
            raise EvaluationError(f"Evaluation for '{project_path.name}' not found (expected '{sidecar}')")
        try:
            payload = load_json(sidecar)
            validate_with_schema("evaluated_unit", payload, f"evaluation '{sidecar.name}'")
        except EvaluationError:
            raise
        except VcxBffError as exc:
            raise EvaluationError(str(exc)) from exc

        key = f"{configuration}|{platform}"
        configurations = payload["configurations"]
        evaluation = configurations.get(key)
        if not isinstance(evaluation, dict):
            known = ", ".join(sorted(configurations.keys()))
            raise EvaluationError(
                f"'{project_path.name}' has no evaluation for '{key}'. Known: {known or '<none>'}"
            )

        extra = {"Configuration": configuration, "Platform": platform}
        if self.solution_dir:
            extra["SolutionDir"] = self.solution_dir
        return evaluated_unit_from_payload(project_path, evaluation, extra)
