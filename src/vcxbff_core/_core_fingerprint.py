from __future__ import annotations

from pathlib import Path

from ._core_base import file_md5, read_first_line


def graph_path_for(project_path: Path, platform: str, configuration: str) -> Path:
    config_tag = configuration.replace(" ", "")
    platform_tag = platform.replace(" ", "")
    return project_path.parent / f"{project_path.name}_{config_tag}_{platform_tag}.bff"


def compute_fingerprint(project_path: Path, platform: str, configuration: str) -> str:
    return f";{project_path}_{platform}_{configuration}_{file_md5(project_path)}"


def should_regenerate(
    project_path: Path,
    platform: str,
    configuration: str,
    graph_path: Path | None = None,
    force: bool = False,
) -> bool:
    """Return True when the graph file for this project is missing or stale."""
    fingerprint = compute_fingerprint(project_path, platform, configuration)
    if force:
        return True
    target = graph_path or graph_path_for(project_path, platform, configuration)
    return read_first_line(target) != fingerprint
