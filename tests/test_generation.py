from __future__ import annotations

import contextlib
import io
import json
import tempfile
import unittest
from unittest import mock
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))
from vcxbff_core import core as vcx  # noqa: E402


def write_unit(
    root: Path,
    name: str,
    configuration_type: str = "Application",
    compile_items: tuple[str, ...] = ("main.cpp",),
    pre_build_event: str = "",
    post_build_event: str = "",
    lib: dict[str, str] | None = None,
    properties: dict[str, str] | None = None,
) -> Path:
    unit_dir = root / name
    unit_dir.mkdir(parents=True, exist_ok=True)
    project = unit_dir / f"{name}.vcxproj"
    project.write_text(f"<Project><!-- {name} --></Project>\n", encoding="utf-8")
    base_properties = {
        "ConfigurationType": configuration_type,
        "IntDir": "obj/Debug/",
        "VCInstallDir": "C:\\VS\\VC\\",
        "VSInstallDir": "C:\\VS\\",
        "VC_ExecutablePath_x64_x64": "C:\\VS\\VC\\bin\\HostX64\\x64",
        "WindowsSdkDir": "C:\\Kits\\10\\",
        "WindowsTargetPlatformVersion": "10.0.17763.0",
        "IncludePath": "C:\\VS\\VC\\include",
    }
    base_properties.update(properties or {})
    evaluation = {
        "properties": base_properties,
        "compile_items": [{"include": item, "metadata": {"WarningLevel": "Level3"}} for item in compile_items],
        "link": {"OutputFile": f"bin/{name}.exe", "SubSystem": "Console"},
        "lib": dict(lib or {}),
        "pre_build_event": pre_build_event,
        "post_build_event": post_build_event,
    }
    (unit_dir / f"{name}.vcxproj.eval.json").write_text(
        json.dumps({"configurations": {"Debug|x64": evaluation}}, indent=2),
        encoding="utf-8",
    )
    return project


class GenerationTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        self.settings = vcx.RunSettings(configuration="Debug", generate_only=True)
        self.synth = vcx.MsvcSynthesizer()

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def _graph(self, *paths: Path) -> vcx.UnitGraph:
        return vcx.GraphBuilder(vcx.JsonSidecarAdapter(), "x64", "Debug", report=lambda _: None).resolve(paths)

    def _generate(self, project: Path, settings: vcx.RunSettings | None = None) -> vcx.UnitGeneration:
        graph = self._graph(project)
        with contextlib.redirect_stderr(io.StringIO()):
            return vcx.generate_unit(graph, graph.units()[0], settings or self.settings, self.synth)

    def test_graph_path_naming(self) -> None:
        path = vcx.graph_path_for(Path("/work/app/app.vcxproj"), "x64", "Debug Static")
        self.assertEqual(path, Path("/work/app/app.vcxproj_DebugStatic_x64.bff"))

    def test_fingerprint_is_stable_until_project_changes(self) -> None:
        project = write_unit(self.root, "app")
        first = vcx.compute_fingerprint(project, "x64", "Debug")
        self.assertEqual(first, vcx.compute_fingerprint(project, "x64", "Debug"))
        self.assertTrue(first.startswith(f";{project}_x64_Debug_"))
        self.assertNotEqual(first, vcx.compute_fingerprint(project, "Win32", "Debug"))

        project.write_text("<Project><!-- edited --></Project>\n", encoding="utf-8")
        self.assertNotEqual(first, vcx.compute_fingerprint(project, "x64", "Debug"))

    def test_graph_is_reused_while_fingerprint_matches(self) -> None:
        project = write_unit(self.root, "app")
        graph_path = vcx.graph_path_for(canonical(project), "x64", "Debug")

        generated = self._generate(project)
        self.assertTrue(generated.regenerated)
        self.assertEqual(generated.graph_status, "updated")
        self.assertEqual(vcx.read_first_line(graph_path), generated.fingerprint)
        self.assertFalse(vcx.should_regenerate(canonical(project), "x64", "Debug"))

        reused = self._generate(project)
        self.assertFalse(reused.regenerated)
        self.assertEqual(reused.graph_status, "reused")

        forced = self._generate(project, vcx.RunSettings(configuration="Debug", always_regenerate=True))
        self.assertTrue(forced.regenerated)
        self.assertEqual(forced.graph_status, "unchanged")

        project.write_text("<Project><!-- edited --></Project>\n", encoding="utf-8")
        self.assertTrue(vcx.should_regenerate(canonical(project), "x64", "Debug"))

    def test_rendered_graph_for_application(self) -> None:
        project = write_unit(self.root, "app", compile_items=("a.cpp", "b.cpp"))
        generated = self._generate(project)
        text = generated.graph_path.read_text(encoding="utf-8")

        self.assertTrue(text.startswith(generated.fingerprint + "\n"))
        self.assertIn(".VCBasePath = 'C:\\VS\\VC\\'", text)
        self.assertIn('"INCLUDE=C:\\VS\\VC\\include",', text)
        self.assertIn("Compiler('msvc')", text)
        self.assertIn("Compiler('rc')", text)
        self.assertIn("ObjectList('action_0')", text)
        self.assertIn(".CompilerInputFiles = { 'a.cpp','b.cpp' }", text)
        self.assertIn("Executable('output')", text)
        self.assertIn(".Libraries = { 'action_0' }", text)
        self.assertIn("/SUBSYSTEM:CONSOLE", text)
        self.assertIn(".Targets = { 'output' }", text)
        self.assertNotIn("Exec(", text)

    def test_rendered_graph_for_archive_with_unity(self) -> None:
        items = tuple(f"file{index}.cpp" for index in range(12))
        project = write_unit(self.root, "lib", "StaticLibrary", compile_items=items, lib={"OutputFile": "lib/lib.lib"})
        generated = self._generate(project, vcx.RunSettings(configuration="Debug", unity=True))
        text = generated.graph_path.read_text(encoding="utf-8")

        self.assertIn("Unity('unity_0')", text)
        self.assertIn(".UnityNumFiles = 2", text)
        self.assertIn(".CompilerInputUnity = { 'unity_0' }", text)
        self.assertIn("Library('output')", text)
        self.assertIn(".LibrarianOutput = 'lib/lib.lib'", text)
        self.assertIn(".LibrarianAdditionalInputs = { 'action_0' }", text)

    def test_build_hooks_are_written_and_chained(self) -> None:
        project = write_unit(
            self.root,
            "app",
            pre_build_event="echo before",
            post_build_event="copy bin\\app.exe dist\\",
        )
        generated = self._generate(project)
        text = generated.graph_path.read_text(encoding="utf-8")

        prebuild = self.root / "app" / "app_prebuild.bat"
        postbuild = self.root / "app" / "app_postbuild.bat"
        self.assertTrue(prebuild.is_file())
        content = postbuild.read_text(encoding="utf-8")
        self.assertTrue(content.startswith('call "C:\\VS\\VC\\Auxiliary\\Build\\vcvarsall.bat" x64 10.0.17763.0\n'))
        self.assertTrue(content.endswith("copy bin\\app.exe dist\\"))

        self.assertIn("Exec('prebuild')", text)
        self.assertIn(".PreBuildDependencies = 'prebuild'", text)
        self.assertIn("Exec('postbuild')", text)
        self.assertIn(".PreBuildDependencies = 'output'", text)
        self.assertIn(".Targets = { 'postbuild' }", text)

    def test_missing_required_property_is_an_evaluation_error(self) -> None:
        project = write_unit(self.root, "app", properties={"IntDir": ""})
        with self.assertRaises(vcx.EvaluationError):
            self._generate(project)

    def test_bff_escape(self) -> None:
        self.assertEqual(vcx.bff_escape("/D NAME='x' ^"), "/D NAME=^'x^' ^^")

    def test_input_file_names_are_escaped(self) -> None:
        batch = vcx.ActionBatch(
            compiler="msvc",
            output_dir="obj/",
            options="/W3",
            pch=None,
            inputs=["it's^.cpp", "plain.cpp"],
        )
        text = vcx.render_action(0, batch, None, has_prebuild=False)
        self.assertIn(".CompilerInputFiles = { 'it^'s^^.cpp','plain.cpp' }", text)

    def test_stale_graph_in_foreign_encoding_is_replaced(self) -> None:
        project = write_unit(self.root, "app")
        graph_path = vcx.graph_path_for(canonical(project), "x64", "Debug")
        graph_path.write_bytes(b";C:\\caf\xe9\\app.vcxproj_x64_Debug_0\n")

        generated = self._generate(project)

        self.assertTrue(generated.regenerated)
        self.assertEqual(generated.graph_status, "updated")
        self.assertEqual(vcx.read_first_line(graph_path), generated.fingerprint)

    def test_unwritable_target_is_a_serialization_error(self) -> None:
        target = self.root / "graph.bff"
        target.mkdir()
        with self.assertRaises(vcx.SerializationError):
            vcx.write_text_if_changed(target, "content")
        with self.assertRaises(vcx.SerializationError):
            vcx.read_first_line(target)


class RunUnitsTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def _run(self, graph: vcx.UnitGraph, settings: vcx.RunSettings, executor=None) -> tuple[vcx.RunResult, str]:
        stdout = io.StringIO()
        with contextlib.redirect_stdout(stdout), contextlib.redirect_stderr(io.StringIO()):
            result = vcx.run_units(graph, settings, executor=executor)
        return result, stdout.getvalue()

    def test_engine_failure_stops_remaining_units(self) -> None:
        paths = [write_unit(self.root, name) for name in ("u1", "u2", "u3")]
        graph = vcx.GraphBuilder(vcx.JsonSidecarAdapter(), "x64", "Debug").resolve(paths)
        executor = mock.Mock(side_effect=[True, False, True])

        result, output = self._run(graph, vcx.RunSettings(configuration="Debug"), executor)

        self.assertEqual(executor.call_count, 2)
        self.assertEqual(result.built, 1)
        self.assertTrue(result.stopped)
        self.assertFalse(result.succeeded)
        self.assertEqual([outcome.status for outcome in result.outcomes], ["built", "failed", "not_run"])
        self.assertIn("1/3 built.", output)
        self.assertFalse(vcx.graph_path_for(graph.units()[2].path, "x64", "Debug").exists())

    def test_units_without_actions_are_not_executed(self) -> None:
        graph = vcx.GraphBuilder(vcx.JsonSidecarAdapter(), "x64", "Debug").resolve(
            [write_unit(self.root, "empty", compile_items=())]
        )
        executor = mock.Mock(return_value=True)

        result, output = self._run(graph, vcx.RunSettings(configuration="Debug"), executor)

        executor.assert_not_called()
        self.assertTrue(result.succeeded)
        self.assertIn("Project has no actions to compile.", output)
        self.assertIn("1/1 built.", output)

    def test_generate_only_never_executes(self) -> None:
        paths = [write_unit(self.root, name) for name in ("u1", "u2")]
        graph = vcx.GraphBuilder(vcx.JsonSidecarAdapter(), "x64", "Debug").resolve(paths)
        executor = mock.Mock(return_value=False)

        result, output = self._run(graph, vcx.RunSettings(configuration="Debug", generate_only=True), executor)

        executor.assert_not_called()
        self.assertTrue(result.succeeded)
        self.assertEqual(result.generated, 2)
        self.assertIn("BFF: ", output)
        self.assertIn("2/2 generated.", output)

    def test_unwritable_graph_fails_only_its_unit(self) -> None:
        app = write_unit(self.root, "app")
        other = write_unit(self.root, "other")
        vcx.graph_path_for(canonical(app), "x64", "Debug").mkdir()
        graph = vcx.GraphBuilder(vcx.JsonSidecarAdapter(), "x64", "Debug").resolve([app, other])

        result, output = self._run(graph, vcx.RunSettings(configuration="Debug", generate_only=True))

        self.assertEqual([outcome.status for outcome in result.outcomes], ["failed", "generated"])
        self.assertIn("Unable to", result.outcomes[0].message)
        self.assertEqual(result.generated, 1)
        self.assertFalse(result.succeeded)
        self.assertIn("1/2 generated.", output)

    def test_unit_with_broken_evaluation_is_skipped(self) -> None:
        good = write_unit(self.root, "good")
        bad = write_unit(self.root, "bad", properties={"VCInstallDir": ""})
        graph = vcx.GraphBuilder(vcx.JsonSidecarAdapter(), "x64", "Debug").resolve([bad, good])
        executor = mock.Mock(return_value=True)

        result, _ = self._run(graph, vcx.RunSettings(configuration="Debug"), executor)

        self.assertEqual([outcome.status for outcome in result.outcomes], ["skipped", "built"])
        self.assertEqual(result.built, 1)
        self.assertFalse(result.succeeded)


def canonical(path: Path) -> Path:
    return vcx.canonical_path(path)


if __name__ == "__main__":
    unittest.main()
