from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

from ._core_adapter import EvaluatedUnit
from ._core_base import RunSettings, ToolchainDiscoveryWarning, to_local_path

REDIST_VERSION_RE = re.compile(r"\d{2}\.\d{2}\.\d{5}$")
ENGLISH_LOCALE_DIR = "1033"


def host_arch(platform: str) -> str:
    return "x86" if platform in {"Win32", "x86"} else "x64"


@dataclass(frozen=True)
class ToolchainLayout:
    vs_base_path: str
    vc_base_path: str
    vc_exe_path: str
    windows_sdk_dir: str
    windows_sdk_target: str
    environment: tuple[tuple[str, str], ...]


def toolchain_layout(evaluation: EvaluatedUnit, platform: str) -> ToolchainLayout:
    if host_arch(platform) == "x86":
        vc_exe_path = evaluation.prop("VC_ExecutablePath_x86_x86")
    else:
        vc_exe_path = evaluation.prop("VC_ExecutablePath_x64_x64")
    temp = evaluation.prop("Temp")
    return ToolchainLayout(
        vs_base_path=evaluation.prop("VSInstallDir"),
        vc_base_path=evaluation.prop("VCInstallDir"),
        vc_exe_path=vc_exe_path,
        windows_sdk_dir=evaluation.prop("WindowsSdkDir"),
        windows_sdk_target=evaluation.prop("WindowsTargetPlatformVersion", "8.1") or "8.1",
        environment=(
            ("INCLUDE", evaluation.prop("IncludePath")),
            ("LIB", evaluation.prop("LibraryPath")),
            ("LIBPATH", evaluation.prop("ReferencePath")),
            ("PATH", evaluation.prop("Path")),
            ("TMP", temp),
            ("TEMP", temp),
            ("SystemRoot", evaluation.prop("SystemRoot")),
        ),
    )


@dataclass
class CompilerDeclaration:
    name: str
    executable: str
    root: str = ""
    family: str = ""
    extra_files: list[str] = field(default_factory=list)


@dataclass
class ToolchainDeclarations:
    compilers: list[CompilerDeclaration]
    warnings: list[ToolchainDiscoveryWarning] = field(default_factory=list)


def _numeric_dirs(root: Path) -> list[Path]:
    return sorted(child for child in root.iterdir() if child.is_dir() and child.name.isdigit())


def _locale_files(root: Path, toolset: str, warnings: list[ToolchainDiscoveryWarning]) -> list[str]:
    if (root / ENGLISH_LOCALE_DIR / "clui.dll").is_file():
        return [f"$Root$\\{ENGLISH_LOCALE_DIR}\\clui.dll"]
    if root.is_dir():
        for locale_dir in _numeric_dirs(root):
            if (locale_dir / "clui.dll").is_file():
                return [
                    f"$Root$\\{locale_dir.name}\\clui.dll",
                    f"$Root$\\{locale_dir.name}\\mspft{toolset}ui.dll",
                ]
    warnings.append(ToolchainDiscoveryWarning(f"no localized clui.dll found under '{root}'"))
    return []


def _redist_files(vc_base_path: str, settings: RunSettings, warnings: list[ToolchainDiscoveryWarning]) -> list[str]:
    if settings.vs_version != "vs2017" or not vc_base_path:
        return []
    redist_root = to_local_path(vc_base_path) / "Redist" / "MSVC"
    if not redist_root.is_dir():
        warnings.append(ToolchainDiscoveryWarning(f"redistributable folder '{redist_root}' not found"))
        return []
    versions = sorted(child.name for child in redist_root.iterdir() if child.is_dir())
    matching = [name for name in versions if REDIST_VERSION_RE.search(name)]
    if not matching:
        warnings.append(ToolchainDiscoveryWarning(f"no versioned redistributable folder under '{redist_root}'"))
        return []
    redist_dir = f"{vc_base_path}Redist\\MSVC\\{matching[0]}"
    toolset = settings.toolset_version
    return [
        f"{redist_dir}\\x64\\Microsoft.VC141.CRT\\msvcp{toolset}.dll",
        f"{redist_dir}\\x64\\Microsoft.VC141.CRT\\vccorlib{toolset}.dll",
    ]


def collect_extra_files(root: Path) -> list[str]:
    """All files below ``root``, deepest folders first, each level sorted."""
    files: list[str] = []
    for child in sorted(path for path in root.iterdir() if path.is_dir()):
        files.extend(collect_extra_files(child))
    files.extend(str(path) for path in sorted(root.iterdir()) if path.is_file())
    return files


def _third_party_files(entries: tuple[str, ...], warnings: list[ToolchainDiscoveryWarning]) -> list[str]:
    files: list[str] = []
    for entry in entries:
        root = to_local_path(entry.rstrip("/\\") or entry)
        if not root.is_dir():
            warnings.append(ToolchainDiscoveryWarning(f"third-party folder '{entry}' not found"))
            continue
        files.extend(collect_extra_files(root))
    return files


def msvc_compiler(layout: ToolchainLayout, settings: RunSettings, warnings: list[ToolchainDiscoveryWarning]) -> CompilerDeclaration:
    toolset = settings.toolset_version
    root = to_local_path(layout.vc_exe_path)
    extra = [
        "$Root$\\c1.dll",
        "$Root$\\c1xx.dll",
        "$Root$\\c2.dll",
        "$Root$\\atlprov.dll",
    ]
    if layout.vc_exe_path:
        extra.extend(_locale_files(root, toolset, warnings))
    else:
        warnings.append(ToolchainDiscoveryWarning("VC executable path is not set; skipping clui.dll lookup"))
    extra.extend(
        [
            "$Root$\\mspdbsrv.exe",
            "$Root$\\mspdbcore.dll",
            f"$Root$\\mspft{toolset}.dll",
            f"$Root$\\msobj{toolset}.dll",
            f"$Root$\\mspdb{toolset}.dll",
        ]
    )
    extra.extend(_redist_files(layout.vc_base_path, settings, warnings))
    extra.append("$Root$\\tbbmalloc.dll")
    extra.extend(_third_party_files(settings.third_party, warnings))
    return CompilerDeclaration(
        name="msvc",
        root="$VCExePath$",
        executable="$Root$\\cl.exe",
        extra_files=extra,
    )


def rc_compiler(layout: ToolchainLayout) -> CompilerDeclaration:
    rc_path = f"\\bin\\{layout.windows_sdk_target}\\x64\\rc.exe"
    if not to_local_path(layout.windows_sdk_dir + rc_path).is_file():
        rc_path = "\\bin\\x64\\rc.exe"
    return CompilerDeclaration(
        name="rc",
        executable="$WindowsSDKBasePath$" + rc_path,
        family="custom",
    )


def discover_toolchain(layout: ToolchainLayout, settings: RunSettings) -> ToolchainDeclarations:
    warnings: list[ToolchainDiscoveryWarning] = []
    compilers = [msvc_compiler(layout, settings, warnings), rc_compiler(layout)]
    return ToolchainDeclarations(compilers=compilers, warnings=warnings)
