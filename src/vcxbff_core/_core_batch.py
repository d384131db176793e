from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePath

from ._core_adapter import ProjectItem
from ._core_graph import BuildUnit
from ._core_synth import TASK_CL, TASK_RC, CommandLineSynthesizer

COMPILER_MSVC = "msvc"
COMPILER_RC = "rc"
RESOURCE_OUTPUT_EXTENSION = ".res"
UNITY_FILES_PER_GROUP = 10

PCH_CREATE_SUPPRESS = ("PrecompiledHeaderOutputFile", "ObjectFileName", "AssemblerListingLocation")
COMPILE_SUPPRESS = ("ObjectFileName", "AssemblerListingLocation")
RESOURCE_SUPPRESS = ("ResourceOutputFileName", "DesigntimePreprocessorDefinitions")


@dataclass(frozen=True)
class PrecompiledHeaderSpec:
    source: str
    output: str
    options: str


@dataclass
class ActionBatch:
    compiler: str
    output_dir: str
    options: str
    pch: PrecompiledHeaderSpec | None
    inputs: list[str] = field(default_factory=list)
    output_extension: str = ""

    def key(self) -> tuple[str, str, str, PrecompiledHeaderSpec | None]:
        return (self.compiler, self.output_dir, self.options, self.pch)

    def add_if_matches(
        self,
        input_file: str,
        compiler: str,
        output_dir: str,
        options: str,
        pch: PrecompiledHeaderSpec | None,
    ) -> bool:
        if self.key() != (compiler, output_dir, options, pch):
            return False
        self.inputs.append(input_file)
        return True


@dataclass(frozen=True)
class UnityGroup:
    inputs: tuple[str, ...]
    output_dir: str
    group_count: int


def unity_group_count(input_count: int) -> int:
    return 1 + input_count // UNITY_FILES_PER_GROUP


def unity_group_for(batch: ActionBatch, use_unity: bool) -> UnityGroup | None:
    if not use_unity or batch.compiler == COMPILER_RC or len(batch.inputs) <= 1:
        return None
    return UnityGroup(
        inputs=tuple(batch.inputs),
        output_dir=batch.output_dir,
        group_count=unity_group_count(len(batch.inputs)),
    )


@dataclass
class BatchPlan:
    batches: list[ActionBatch]
    unity_groups: list[UnityGroup | None]
    pch: PrecompiledHeaderSpec | None
    last_compile_options: str = ""

    @property
    def has_compile_actions(self) -> bool:
        return bool(self.batches)

    def action_ids(self) -> list[str]:
        return [f"action_{index}" for index in range(len(self.batches))]


def is_excluded(item: ProjectItem) -> bool:
    return item.has("ExcludedFromBuild", "true")


def find_precompiled_header(
    items: tuple[ProjectItem, ...] | list[ProjectItem],
    synthesizer: CommandLineSynthesizer,
) -> PrecompiledHeaderSpec | None:
    # Only the first PCH-creating item is honoured; later ones are ignored.
    for item in items:
        if is_excluded(item) or not item.has("PrecompiledHeader", "Create"):
            continue
        options = synthesizer.synthesize(TASK_CL, PCH_CREATE_SUPPRESS, item.metadata) + " /FS"
        return PrecompiledHeaderSpec(
            source=item.include,
            output=item.get("PrecompiledHeaderOutputFile"),
            options=options,
        )
    return None


def _insert(
    batches: list[ActionBatch],
    input_file: str,
    compiler: str,
    output_dir: str,
    options: str,
    pch: PrecompiledHeaderSpec | None,
    output_extension: str = "",
) -> None:
    for batch in batches:
        if batch.add_if_matches(input_file, compiler, output_dir, options, pch):
            return
    batches.append(
        ActionBatch(
            compiler=compiler,
            output_dir=output_dir,
            options=options,
            pch=pch,
            inputs=[input_file],
            output_extension=output_extension,
        )
    )


def compile_options_for(item: ProjectItem, synthesizer: CommandLineSynthesizer) -> str:
    options = synthesizer.synthesize(TASK_CL, COMPILE_SUPPRESS, item.metadata) + " /FS"
    if PurePath(item.include.replace("\\", "/")).suffix == ".c":
        return options + " /TC"
    return options + " /TP"


def plan_batches(unit: BuildUnit, synthesizer: CommandLineSynthesizer, use_unity: bool) -> BatchPlan:
    evaluation = unit.evaluation
    output_dir = evaluation.prop("IntDir")
    pch = find_precompiled_header(evaluation.compile_items, synthesizer)

    batches: list[ActionBatch] = []
    last_compile_options = ""
    for item in evaluation.compile_items:
        if is_excluded(item) or item.has("PrecompiledHeader", "Create"):
            continue
        item_pch = None if item.has("PrecompiledHeader", "NotUsing") else pch
        last_compile_options = compile_options_for(item, synthesizer)
        formatted = f'"%1" /Fo"%2" {last_compile_options}'
        _insert(batches, item.include, COMPILER_MSVC, output_dir, formatted, item_pch)

    for item in evaluation.resource_items:
        if is_excluded(item):
            continue
        options = synthesizer.synthesize(TASK_RC, RESOURCE_SUPPRESS, item.metadata)
        formatted = f'{options} /fo"%2" "%1"'
        _insert(batches, item.include, COMPILER_RC, output_dir, formatted, None, RESOURCE_OUTPUT_EXTENSION)

    return BatchPlan(
        batches=batches,
        unity_groups=[unity_group_for(batch, use_unity) for batch in batches],
        pch=pch,
        last_compile_options=last_compile_options,
    )
