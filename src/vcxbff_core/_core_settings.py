from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any

from ._core_base import (
    DEFAULT_FBUILD_ARGS,
    DEFAULT_FBUILD_PATH,
    DEFAULT_PLATFORM,
    DEFAULT_TOOLSET_VERSION,
    DEFAULT_VS_VERSION,
    SOLUTION_ORDER_STRATEGIES,
    SUPPORTED_VS_VERSIONS,
    RunSettings,
    VcxBffError,
    load_json,
    validate_with_schema,
)

DEFAULT_SETTINGS: dict[str, Any] = {
    "configuration": "",
    "platform": DEFAULT_PLATFORM,
    "vs_version": DEFAULT_VS_VERSION,
    "toolset_version": DEFAULT_TOOLSET_VERSION,
    "fbuild_path": DEFAULT_FBUILD_PATH,
    "fbuild_args": DEFAULT_FBUILD_ARGS,
    "generate_only": False,
    "always_regenerate": False,
    "unity": False,
    "third_party": [],
    "solution_order": "topological",
}

# settings key -> argparse destination
CLI_OVERRIDES = {
    "configuration": "config",
    "platform": "platform",
    "vs_version": "vs",
    "fbuild_path": "fbpath",
    "fbuild_args": "fbargs",
    "solution_order": "solution_order",
}
CLI_FLAGS = {
    "generate_only": "generate_only",
    "always_regenerate": "regen",
    "unity": "unity",
}


def load_settings_file(path: Path) -> dict[str, Any]:
    payload = load_json(path)
    validate_with_schema("settings", payload, f"settings '{path.name}'")
    return payload


def split_third_party(value: str | None) -> list[str]:
    if not value:
        return []
    return [entry.strip() for entry in value.split("|") if entry.strip()]


def settings_from_mapping(values: dict[str, Any]) -> RunSettings:
    configuration = str(values.get("configuration") or "").strip()
    if not configuration:
        raise VcxBffError("No configuration provided. Use --config or set 'configuration' in the settings file.")
    vs_version = str(values.get("vs_version") or DEFAULT_VS_VERSION)
    if vs_version not in SUPPORTED_VS_VERSIONS:
        raise VcxBffError(
            f"Unsupported compiler '{vs_version}'. Supported: {', '.join(SUPPORTED_VS_VERSIONS)}"
        )
    solution_order = str(values.get("solution_order") or "topological")
    if solution_order not in SOLUTION_ORDER_STRATEGIES:
        raise VcxBffError(
            f"Unknown solution order '{solution_order}'. Supported: {', '.join(SOLUTION_ORDER_STRATEGIES)}"
        )
    return RunSettings(
        configuration=configuration,
        platform=str(values.get("platform") or DEFAULT_PLATFORM),
        vs_version=vs_version,
        toolset_version=str(values.get("toolset_version") or DEFAULT_TOOLSET_VERSION),
        fbuild_path=str(values.get("fbuild_path") or DEFAULT_FBUILD_PATH),
        fbuild_args=str(values.get("fbuild_args") if values.get("fbuild_args") is not None else DEFAULT_FBUILD_ARGS),
        generate_only=bool(values.get("generate_only")),
        always_regenerate=bool(values.get("always_regenerate")),
        unity=bool(values.get("unity")),
        third_party=tuple(str(item) for item in values.get("third_party") or []),
        solution_order=solution_order,
    )


def resolve_run_settings(args: argparse.Namespace, force_generate_only: bool = False) -> RunSettings:
    """Defaults, then the settings file, then command-line flags."""
    values = dict(DEFAULT_SETTINGS)
    settings_path = getattr(args, "settings", None)
    if settings_path:
        values.update(load_settings_file(Path(settings_path).resolve()))

    for key, dest in CLI_OVERRIDES.items():
        value = getattr(args, dest, None)
        if value is not None:
            values[key] = value
    for key, dest in CLI_FLAGS.items():
        if getattr(args, dest, False):
            values[key] = True
    third_party = split_third_party(getattr(args, "thirdparty", None))
    if third_party:
        values["third_party"] = third_party
    if force_generate_only:
        values["generate_only"] = True
    return settings_from_mapping(values)
