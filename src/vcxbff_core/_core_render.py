from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ._core_base import write_text_if_changed
from ._core_batch import ActionBatch, BatchPlan, PrecompiledHeaderSpec, UnityGroup
from ._core_graph import BuildUnit
from ._core_link import NODE_LIBRARY, ArtifactNode
from ._core_toolchain import CompilerDeclaration, ToolchainDeclarations, ToolchainLayout, host_arch

HOOK_PREBUILD = "prebuild"
HOOK_POSTBUILD = "postbuild"
ARTIFACT_TARGET = "output"


@dataclass(frozen=True)
class HookScript:
    kind: str
    path: Path
    content: str

    @property
    def output(self) -> str:
        return f"{self.path}.txt"


@dataclass(frozen=True)
class GraphDocument:
    fingerprint: str
    layout: ToolchainLayout
    toolchain: ToolchainDeclarations
    plan: BatchPlan
    artifact: ArtifactNode
    prebuild: HookScript | None = None
    postbuild: HookScript | None = None

    @property
    def alias_target(self) -> str:
        return HOOK_POSTBUILD if self.postbuild is not None else ARTIFACT_TARGET


def bff_escape(value: str) -> str:
    return value.replace("^", "^^").replace("'", "^'")


def _quoted_list(values: list[str] | tuple[str, ...]) -> str:
    return ",".join(f"'{bff_escape(value)}'" for value in values)


def hook_script_for(unit: BuildUnit, layout: ToolchainLayout, platform: str, kind: str) -> HookScript | None:
    evaluation = unit.evaluation
    command = evaluation.pre_build_event if kind == HOOK_PREBUILD else evaluation.post_build_event
    if not command.strip():
        return None
    prefix = (
        f'call "{layout.vc_base_path}Auxiliary\\Build\\vcvarsall.bat" '
        f"{host_arch(platform)} {layout.windows_sdk_target}\n"
    )
    return HookScript(
        kind=kind,
        path=unit.directory / f"{unit.name}_{kind}.bat",
        content=prefix + command,
    )


def write_hook_script(hook: HookScript) -> str:
    return write_text_if_changed(hook.path, hook.content)


def render_preamble(layout: ToolchainLayout) -> str:
    lines = [
        f".VSBasePath = '{layout.vs_base_path}'",
        f".VCBasePath = '{layout.vc_base_path}'",
        f".VCExePath = '{layout.vc_exe_path}'",
        f".WindowsSDKBasePath = '{layout.windows_sdk_dir}'",
        "",
        "Settings",
        "{",
        "\t.Environment =",
        "\t{",
    ]
    entries = [f'\t\t"{name}={value}"' for name, value in layout.environment]
    lines.append(",\n".join(entries))
    lines.extend(["\t}", "}", ""])
    return "\n".join(lines) + "\n"


def render_compiler(compiler: CompilerDeclaration) -> str:
    lines = [f"Compiler('{compiler.name}')", "{"]
    if compiler.root:
        lines.append(f"\t.Root = '{compiler.root}'")
    lines.append(f"\t.Executable = '{compiler.executable}'")
    if compiler.family:
        lines.append(f"\t.CompilerFamily = '{compiler.family}'")
    if compiler.extra_files:
        lines.extend(["\t.ExtraFiles =", "\t{"])
        lines.extend(f"\t\t'{path}'" for path in compiler.extra_files)
        lines.append("\t}")
    lines.extend(["}", ""])
    return "\n".join(lines) + "\n"


def render_exec(hook: HookScript, depends_on: str | None = None) -> str:
    lines = [
        f"Exec('{hook.kind}')",
        "{",
        f"\t.ExecExecutable = '{hook.path}'",
        f"\t.ExecInput = '{hook.path}'",
        f"\t.ExecOutput = '{hook.output}'",
    ]
    if depends_on:
        lines.append(f"\t.PreBuildDependencies = '{depends_on}'")
    lines.extend(["\t.ExecUseStdOutAsOutput = true", "}", ""])
    return "\n".join(lines) + "\n"


def render_pch(pch: PrecompiledHeaderSpec) -> list[str]:
    return [
        f"\t.PCHOptions = '\"%1\" /Fp\"%2\" /Fo\"%3\" {bff_escape(pch.options)} '",
        f"\t.PCHInputFile = '{pch.source}'",
        f"\t.PCHOutputFile = '{pch.output}'",
    ]


def render_unity(number: int, group: UnityGroup) -> str:
    lines = [
        f"Unity('unity_{number}')",
        "{",
        f"\t.UnityInputFiles = {{ {_quoted_list(group.inputs)} }}",
        f'\t.UnityOutputPath = "{group.output_dir}"',
        f"\t.UnityNumFiles = {group.group_count}",
        "}",
        "",
    ]
    return "\n".join(lines) + "\n"


def render_action(number: int, batch: ActionBatch, group: UnityGroup | None, has_prebuild: bool) -> str:
    text = render_unity(number, group) if group is not None else ""
    lines = [
        f"ObjectList('action_{number}')",
        "{",
        f"\t.Compiler = '{batch.compiler}'",
        f'\t.CompilerOutputPath = "{batch.output_dir}"',
    ]
    if group is not None:
        lines.append(f"\t.CompilerInputUnity = {{ 'unity_{number}' }}")
    else:
        lines.append(f"\t.CompilerInputFiles = {{ {_quoted_list(batch.inputs)} }}")
    lines.append(f"\t.CompilerOptions = '{bff_escape(batch.options)}'")
    if batch.output_extension:
        lines.append(f"\t.CompilerOutputExtension = '{batch.output_extension}'")
    if batch.pch is not None:
        lines.extend(render_pch(batch.pch))
    if has_prebuild:
        lines.append(f"\t.PreBuildDependencies = '{HOOK_PREBUILD}'")
    lines.extend(["}", ""])
    return text + "\n".join(lines) + "\n"


def render_artifact(artifact: ArtifactNode) -> str:
    lines = [f"{artifact.node_type}('{ARTIFACT_TARGET}')", "{"]
    if artifact.node_type == NODE_LIBRARY:
        lines.extend(
            [
                "\t.Compiler = 'msvc'",
                f"\t.CompilerOptions = '\"%1\" /Fo\"%2\" /c {bff_escape(artifact.compiler_options)}'",
                f'\t.CompilerOutputPath = "{artifact.compiler_output_dir}"',
                "\t.Librarian = '$VCExePath$\\lib.exe'",
                f"\t.LibrarianOptions = '\"%1\" /OUT:\"%2\" {bff_escape(artifact.options)}'",
                f"\t.LibrarianOutput = '{artifact.output}'",
                f"\t.LibrarianAdditionalInputs = {{ {_quoted_list(artifact.inputs)} }}",
            ]
        )
    else:
        lines.extend(
            [
                "\t.Linker = '$VCExePath$\\link.exe'",
                f"\t.LinkerOptions = '\"%1\" /OUT:\"%2\" {bff_escape(artifact.options)}'",
                f"\t.LinkerOutput = '{artifact.output}'",
                f"\t.Libraries = {{ {_quoted_list(artifact.inputs)} }}",
            ]
        )
    lines.extend(["}", ""])
    return "\n".join(lines) + "\n"


def render_alias(target: str) -> str:
    return f"Alias('all')\n{{\n\t.Targets = {{ '{target}' }}\n}}\n"


def render_graph(document: GraphDocument) -> str:
    parts = [document.fingerprint + "\n\n", render_preamble(document.layout)]
    parts.extend(render_compiler(compiler) for compiler in document.toolchain.compilers)
    if document.prebuild is not None:
        parts.append(render_exec(document.prebuild))

    plan = document.plan
    for number, (batch, group) in enumerate(zip(plan.batches, plan.unity_groups)):
        parts.append(render_action(number, batch, group, document.prebuild is not None))

    parts.append(render_artifact(document.artifact))
    if document.postbuild is not None:
        parts.append(render_exec(document.postbuild, depends_on=ARTIFACT_TARGET))
    parts.append(render_alias(document.alias_target))
    return "".join(parts)


def write_graph(path: Path, content: str, regenerate: bool) -> str:
    """Write the graph text when regeneration was requested; report the status."""
    if not regenerate:
        return "reused" if path.exists() else "missing"
    return write_text_if_changed(path, content)
