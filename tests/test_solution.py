from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))
from vcxbff_core import core as vcx  # noqa: E402

APP_GUID = "{AAAAAAAA-0000-0000-0000-000000000001}"
CORE_GUID = "{AAAAAAAA-0000-0000-0000-000000000002}"
FOLDER_GUID = "{AAAAAAAA-0000-0000-0000-000000000003}"
BASE_GUID = "{aaaaaaaa-0000-0000-0000-000000000004}"
CPP_TYPE = "{8BC9CEB8-8B4A-11D0-8D11-00A0C91BC942}"

SOLUTION_TEXT = f"""\ufeffMicrosoft Visual Studio Solution File, Format Version 12.00
# Visual Studio Version 16
Project("{CPP_TYPE}") = "app", "app\\app.vcxproj", "{APP_GUID}"
\tProjectSection(ProjectDependencies) = postProject
\t\t{CORE_GUID} = {CORE_GUID}
\tEndProjectSection
EndProject
Project("{vcx.SOLUTION_FOLDER_TYPE_GUID}") = "libs", "libs", "{FOLDER_GUID}"
EndProject
Project("{CPP_TYPE}") = "core", "libs\\core\\core.vcxproj", "{CORE_GUID}"
\tProjectSection(ProjectDependencies) = postProject
\t\t{BASE_GUID} = {BASE_GUID}
\tEndProjectSection
EndProject
Project("{CPP_TYPE}") = "base", "libs\\base\\base.vcxproj", "{BASE_GUID}"
EndProject
Project("{{930C7802-8A8C-48F9-8165-68863BCCD9DD}}") = "setup", "setup\\setup.wixproj", "{{AAAAAAAA-0000-0000-0000-000000000005}}"
EndProject
Project("{{2150E333-8FDC-42A3-9474-1A3956D46DE8}}") = "notes", "notes.txt", "{{AAAAAAAA-0000-0000-0000-000000000006}}"
EndProject
Global
EndGlobal
"""


class SolutionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        self.sln = self.root / "demo.sln"
        self.sln.write_text(SOLUTION_TEXT, encoding="utf-8")

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def test_parse_skips_folders_and_collects_dependencies(self) -> None:
        solution = vcx.parse_solution(self.sln)

        self.assertEqual([project.name for project in solution.projects], ["app", "core", "base", "setup"])
        app, core, base, _ = solution.projects
        self.assertEqual(app.path, vcx.canonical_path(self.root / "app" / "app.vcxproj"))
        self.assertEqual(core.path, vcx.canonical_path(self.root / "libs" / "core" / "core.vcxproj"))
        self.assertEqual(app.dependencies, (CORE_GUID,))
        self.assertEqual(core.dependencies, (BASE_GUID.upper(),))
        self.assertEqual(base.guid, BASE_GUID.upper())
        self.assertTrue(solution.directory.endswith("/"))

    def test_find_project_by_name_or_path(self) -> None:
        solution = vcx.parse_solution(self.sln)

        self.assertEqual(solution.find_project("core").guid, CORE_GUID)
        by_path = solution.find_project(str(self.root / "libs" / "base" / "base.vcxproj"))
        self.assertIsNotNone(by_path)
        self.assertEqual(by_path.name, "base")
        self.assertIsNone(solution.find_project("missing"))

    def test_topological_order_places_dependencies_first(self) -> None:
        solution = vcx.parse_solution(self.sln)

        ordered = [project.name for project in vcx.order_solution_projects(solution, "topological")]

        self.assertEqual(ordered, ["base", "core", "app", "setup"])

    def test_topological_order_keeps_cycle_members(self) -> None:
        first = vcx.SolutionProject("first", Path("/a.vcxproj"), "{1}", ("{2}",))
        second = vcx.SolutionProject("second", Path("/b.vcxproj"), "{2}", ("{1}",))
        free = vcx.SolutionProject("free", Path("/c.vcxproj"), "{3}")

        ordered = vcx.order_projects_topological([first, second, free])

        self.assertEqual([project.name for project in ordered], ["free", "first", "second"])

    def test_legacy_order_respects_direct_dependencies(self) -> None:
        solution = vcx.parse_solution(self.sln)

        ordered = [project.name for project in vcx.order_solution_projects(solution, "legacy")]

        self.assertLess(ordered.index("core"), ordered.index("app"))
        self.assertEqual(sorted(ordered), ["app", "base", "core", "setup"])

    def test_unknown_strategy_is_rejected(self) -> None:
        with self.assertRaises(vcx.VcxBffError):
            vcx.order_solution_projects(vcx.parse_solution(self.sln), "alphabetical")

    def test_unreadable_solution_is_a_resolution_error(self) -> None:
        with self.assertRaises(vcx.ResolutionError):
            vcx.parse_solution(self.root / "missing.sln")
        not_a_solution = self.root / "random.sln"
        not_a_solution.write_text("hello\n", encoding="utf-8")
        with self.assertRaises(vcx.ResolutionError):
            vcx.parse_solution(not_a_solution)


if __name__ == "__main__":
    unittest.main()
