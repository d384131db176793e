from __future__ import annotations

import hashlib
import json
import os
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema

TOOL_VERSION = "1.0.0"
DEFAULT_PLATFORM = "x64"
DEFAULT_VS_VERSION = "vs2019"
DEFAULT_TOOLSET_VERSION = "140"
DEFAULT_FBUILD_PATH = "fbuild.exe"
DEFAULT_FBUILD_ARGS = "-dist -ide -clean"
SUPPORTED_VS_VERSIONS = ("vs2017", "vs2019")
SOLUTION_ORDER_STRATEGIES = ("topological", "legacy")


class VcxBffError(Exception):
    pass


class ResolutionError(VcxBffError):
    pass


class EvaluationError(VcxBffError):
    pass


class SerializationError(VcxBffError):
    pass


class EngineLaunchError(VcxBffError):
    pass


class EngineFailure(VcxBffError):
    pass


class ToolchainDiscoveryWarning(UserWarning):
    pass


@dataclass(frozen=True)
class RunSettings:
    configuration: str
    platform: str = DEFAULT_PLATFORM
    vs_version: str = DEFAULT_VS_VERSION
    toolset_version: str = DEFAULT_TOOLSET_VERSION
    fbuild_path: str = DEFAULT_FBUILD_PATH
    fbuild_args: str = DEFAULT_FBUILD_ARGS
    generate_only: bool = False
    always_regenerate: bool = False
    unity: bool = False
    third_party: tuple[str, ...] = field(default_factory=tuple)
    solution_order: str = "topological"

    def as_dict(self) -> dict[str, Any]:
        return {
            "configuration": self.configuration,
            "platform": self.platform,
            "vs_version": self.vs_version,
            "toolset_version": self.toolset_version,
            "fbuild_path": self.fbuild_path,
            "fbuild_args": self.fbuild_args,
            "generate_only": self.generate_only,
            "always_regenerate": self.always_regenerate,
            "unity": self.unity,
            "third_party": list(self.third_party),
            "solution_order": self.solution_order,
        }


def load_json(path: Path) -> dict[str, Any]:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise VcxBffError(f"Unable to read JSON file '{path}': {exc}") from exc
    except json.JSONDecodeError as exc:
        raise VcxBffError(f"Invalid JSON in '{path}': {exc}") from exc


def write_json(path: Path, value: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(value, indent=2, sort_keys=True) + "\n", encoding="utf-8")


def get_schema_path(kind: str) -> Path:
    base = Path(__file__).resolve().parent / "schemas"
    mapping = {
        "settings": base / "settings.schema.json",
        "evaluated_unit": base / "evaluated_unit.schema.json",
    }
    if kind not in mapping:
        raise VcxBffError(f"Unknown schema kind: {kind}")
    return mapping[kind]


def validate_with_schema(kind: str, payload: Any, label: str) -> None:
    schema_payload = load_json(get_schema_path(kind))
    try:
        jsonschema.validate(payload, schema_payload)
    except jsonschema.ValidationError as exc:
        location = "/".join(str(part) for part in exc.absolute_path) or "<root>"
        raise VcxBffError(f"{label} failed JSON schema validation at {location}: {exc.message}") from exc


def to_local_path(value: str) -> Path:
    """Turn a path string taken from an evaluated project into a host path.

    Evaluated properties use Windows separators; on POSIX hosts they are
    rewritten so that existence checks behave.
    """
    if os.sep == "\\":
        return Path(value)
    return Path(value.replace("\\", "/"))


def is_rooted(value: str) -> bool:
    return value.startswith(("/", "\\")) or bool(re.match(r"^[A-Za-z]:[\\/]", value))


def to_forward_slashes(value: str) -> str:
    return value.replace("\\", "/")


def canonical_path(value: str | Path) -> Path:
    return Path(os.path.abspath(to_local_path(str(value))))


def file_md5(path: Path) -> str:
    digest = hashlib.md5()
    try:
        with path.open("rb") as stream:
            for chunk in iter(lambda: stream.read(65536), b""):
                digest.update(chunk)
    except OSError as exc:
        raise EvaluationError(f"Unable to hash project description '{path}': {exc}") from exc
    return digest.hexdigest()


def read_first_line(path: Path) -> str | None:
    if not path.exists():
        return None
    try:
        with path.open("r", encoding="utf-8", errors="replace") as stream:
            line = stream.readline()
    except OSError as exc:
        raise SerializationError(f"Unable to read '{path}': {exc}") from exc
    return line.rstrip("\r\n")


def write_text_if_changed(path: Path, content: str) -> str:
    # Compared as bytes so a stale file in another encoding is simply replaced.
    data = content.encode("utf-8")
    try:
        if path.exists() and path.read_bytes() == data:
            return "unchanged"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    except OSError as exc:
        raise SerializationError(f"Unable to write '{path}': {exc}") from exc
    return "updated"


def is_true(value: Any) -> bool:
    return isinstance(value, str) and value.strip().lower() == "true"


def report_error(message: str) -> None:
    print(message, file=sys.stderr)


def report_warning(message: str) -> None:
    print(f"warning: {message}", file=sys.stderr)
