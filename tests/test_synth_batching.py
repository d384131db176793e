from __future__ import annotations

import unittest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))
from vcxbff_core import core as vcx  # noqa: E402


def make_unit(compile_items, resource_items=(), properties=None) -> vcx.BuildUnit:
    evaluation = vcx.EvaluatedUnit(
        path=Path("/work/demo/demo.vcxproj"),
        properties={"IntDir": "obj/Debug/", "ConfigurationType": "Application", **(properties or {})},
        compile_items=tuple(vcx.ProjectItem(include, dict(metadata)) for include, metadata in compile_items),
        resource_items=tuple(vcx.ProjectItem(include, dict(metadata)) for include, metadata in resource_items),
    )
    return vcx.UnitGraph().create(evaluation.path, evaluation)


class SynthesizerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.synth = vcx.MsvcSynthesizer()

    def test_cl_switches_follow_table_order(self) -> None:
        options = self.synth.synthesize(
            vcx.TASK_CL,
            (),
            {
                "WarningLevel": "Level3",
                "Optimization": "Disabled",
                "PreprocessorDefinitions": "WIN32;_DEBUG;%(PreprocessorDefinitions)",
                "AdditionalIncludeDirectories": "C:\\\\inc\\\\a;..\\b",
                "UnknownMetadata": "ignored",
            },
        )
        self.assertEqual(options, '/I"C:/inc/a" /I"../b" /W3 /Od /D WIN32 /D _DEBUG')

    def test_suppressed_and_empty_metadata_are_skipped(self) -> None:
        options = self.synth.synthesize(
            vcx.TASK_CL,
            vcx.COMPILE_SUPPRESS,
            {"ObjectFileName": "obj/", "WarningLevel": "", "TreatWarningAsError": "true"},
        )
        self.assertEqual(options, "/WX")

    def test_precompiled_header_usage(self) -> None:
        options = self.synth.synthesize(
            vcx.TASK_CL, (), {"PrecompiledHeader": "Use", "PrecompiledHeaderFile": "pch.h"}
        )
        self.assertEqual(options, '/Yu"pch.h"')

    def test_link_dependencies_are_quoted(self) -> None:
        options = self.synth.synthesize(
            vcx.TASK_LINK,
            vcx.LINK_SUPPRESS,
            {
                "OutputFile": "bin/demo.exe",
                "AdditionalDependencies": "kernel32.lib;user32.lib;%(AdditionalDependencies)",
                "SubSystem": "Console",
            },
        )
        self.assertEqual(options, '"kernel32.lib" "user32.lib" /SUBSYSTEM:CONSOLE')

    def test_unknown_task_is_rejected(self) -> None:
        with self.assertRaises(vcx.VcxBffError):
            self.synth.synthesize("MIDL", (), {})


class BatchingTests(unittest.TestCase):
    def setUp(self) -> None:
        self.synth = vcx.MsvcSynthesizer()

    def test_items_with_equal_options_share_one_batch(self) -> None:
        items = [(f"src/file{index}.cpp", {"WarningLevel": "Level3"}) for index in range(12)]
        plan = vcx.plan_batches(make_unit(items), self.synth, use_unity=False)

        self.assertEqual(len(plan.batches), 1)
        batch = plan.batches[0]
        self.assertEqual(batch.compiler, vcx.COMPILER_MSVC)
        self.assertEqual(batch.output_dir, "obj/Debug/")
        self.assertEqual(len(batch.inputs), 12)
        self.assertEqual(batch.options, '"%1" /Fo"%2" /W3 /FS /TP')
        self.assertEqual(plan.unity_groups, [None])
        self.assertEqual(plan.action_ids(), ["action_0"])

    def test_different_options_or_language_split_batches(self) -> None:
        items = [
            ("a.cpp", {"WarningLevel": "Level3"}),
            ("b.cpp", {"WarningLevel": "Level4"}),
            ("c.c", {"WarningLevel": "Level3"}),
            ("d.cpp", {"WarningLevel": "Level3"}),
            ("skip.cpp", {"WarningLevel": "Level3", "ExcludedFromBuild": "true"}),
        ]
        plan = vcx.plan_batches(make_unit(items), self.synth, use_unity=False)

        self.assertEqual([batch.inputs for batch in plan.batches], [["a.cpp", "d.cpp"], ["b.cpp"], ["c.c"]])
        self.assertTrue(plan.batches[2].options.endswith("/TC"))
        for batch in plan.batches:
            self.assertEqual(batch.key(), (batch.compiler, batch.output_dir, batch.options, batch.pch))

    def test_resources_use_rc_compiler(self) -> None:
        plan = vcx.plan_batches(
            make_unit([], resource_items=[("app.rc", {"Culture": "0x0409"})]),
            self.synth,
            use_unity=True,
        )
        self.assertEqual(len(plan.batches), 1)
        batch = plan.batches[0]
        self.assertEqual(batch.compiler, vcx.COMPILER_RC)
        self.assertEqual(batch.output_extension, ".res")
        self.assertEqual(batch.options, '/l0x0409 /fo"%2" "%1"')
        self.assertIsNone(plan.unity_groups[0])
        self.assertEqual(plan.last_compile_options, "")

    def test_unity_group_counts(self) -> None:
        self.assertEqual(vcx.unity_group_count(12), 2)
        self.assertEqual(vcx.unity_group_count(9), 1)
        self.assertEqual(vcx.unity_group_count(10), 2)
        self.assertEqual(vcx.unity_group_count(30), 4)

        items = [(f"file{index}.cpp", {}) for index in range(12)]
        plan = vcx.plan_batches(make_unit(items), self.synth, use_unity=True)
        group = plan.unity_groups[0]
        self.assertIsNotNone(group)
        self.assertEqual(group.group_count, 2)
        self.assertEqual(len(group.inputs), 12)

        single = vcx.plan_batches(make_unit([("only.cpp", {})]), self.synth, use_unity=True)
        self.assertEqual(single.unity_groups, [None])

    def test_only_first_precompiled_header_is_honoured(self) -> None:
        items = [
            ("pch.cpp", {"PrecompiledHeader": "Create", "PrecompiledHeaderFile": "pch.h", "PrecompiledHeaderOutputFile": "obj/demo.pch"}),
            ("a.cpp", {"PrecompiledHeader": "Use", "PrecompiledHeaderFile": "pch.h"}),
            ("b.cpp", {"PrecompiledHeader": "NotUsing"}),
            ("other_pch.cpp", {"PrecompiledHeader": "Create", "PrecompiledHeaderFile": "other.h"}),
        ]
        plan = vcx.plan_batches(make_unit(items), self.synth, use_unity=False)

        self.assertIsNotNone(plan.pch)
        self.assertEqual(plan.pch.source, "pch.cpp")
        self.assertEqual(plan.pch.output, "obj/demo.pch")
        self.assertEqual(plan.pch.options, '/Yc"pch.h" /FS')
        inputs = [name for batch in plan.batches for name in batch.inputs]
        self.assertEqual(inputs, ["a.cpp", "b.cpp"])
        by_input = {batch.inputs[0]: batch for batch in plan.batches}
        self.assertEqual(by_input["a.cpp"].pch, plan.pch)
        self.assertIsNone(by_input["b.cpp"].pch)


if __name__ == "__main__":
    unittest.main()
