import json
import tempfile
import unittest
from pathlib import Path

from uidhound.core.config.project_config import DocfxProject, load_project_config
from uidhound.core.exceptions import ProjectConfigError
from uidhound.docfx.content_files import enumerate_content_files, find_project_file


def _write(path: Path, text: str = "") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def _write_project(root: Path, content: list[dict]) -> Path:
    return _write(
        root / "docfx.json",
        json.dumps({"metadata": [], "build": {"content": content, "dest": "_site"}}),
    )


class ProjectConfigTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_swagger_patterns_are_dropped(self) -> None:
        project_file = _write_project(
            self.root,
            [{"files": ["**.md", "restapi/**.json"], "exclude": ["obj/**", "**/swagger.json"]}],
        )
        group = load_project_config(project_file).build.content[0]

        self.assertEqual(group.include_patterns, ["**.md"])
        self.assertEqual(group.exclude_patterns, ["obj/**"])
        self.assertEqual(group.src, "")

    def test_invalid_json_raises_config_error(self) -> None:
        project_file = _write(self.root / "docfx.json", "{ not json")
        with self.assertRaises(ProjectConfigError):
            load_project_config(project_file)

    def test_missing_build_section_raises_config_error(self) -> None:
        project_file = _write(self.root / "docfx.json", json.dumps({"metadata": []}))
        with self.assertRaises(ProjectConfigError) as ctx:
            load_project_config(project_file)
        self.assertFalse(ctx.exception.is_warning)

    def test_content_group_without_files_is_rejected(self) -> None:
        project_file = _write_project(self.root, [{"src": "articles"}])
        with self.assertRaises(ProjectConfigError):
            load_project_config(project_file)

    def test_missing_project_file_raises_config_error(self) -> None:
        with self.assertRaises(ProjectConfigError):
            load_project_config(self.root / "docfx.json")

    def test_is_content_file_uses_group_base_directory(self) -> None:
        project_file = _write_project(
            self.root,
            [{"src": "articles", "files": ["**.md"]}, {"files": ["api/**.yml"]}],
        )
        project = DocfxProject.load(project_file)

        self.assertTrue(project.is_content_file(project.project_dir / "articles" / "intro.md"))
        self.assertTrue(project.is_content_file("api/Foo.yml"))
        self.assertFalse(project.is_content_file("readme.md"))


class ContentEnumerationTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name).resolve()

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_enumerates_each_group_under_its_base_directory(self) -> None:
        _write(self.root / "index.md")
        _write(self.root / "articles" / "intro.md")
        _write(self.root / "articles" / "deep" / "more.md")
        _write(self.root / "articles" / "obj" / "skip.md")
        _write(self.root / "api" / "Foo.Bar.yml")
        _write(self.root / "api" / "toc.yml")
        _write(self.root / "notes.txt")
        project_file = _write_project(
            self.root,
            [
                {"files": ["*.md"]},
                {"src": "articles", "files": ["**.md"], "exclude": ["obj/**"]},
                {"src": "api", "files": ["*.yml", "swagger.json"]},
            ],
        )

        files = enumerate_content_files(DocfxProject.load(project_file))
        rels = [p.relative_to(self.root).as_posix() for p in files]

        self.assertEqual(
            rels,
            [
                "index.md",
                "articles/intro.md",
                "articles/deep/more.md",
                "api/Foo.Bar.yml",
                "api/toc.yml",
            ],
        )

    def test_overlapping_groups_do_not_duplicate_files(self) -> None:
        _write(self.root / "articles" / "intro.md")
        project_file = _write_project(
            self.root,
            [{"files": ["**/*.md"]}, {"src": "articles", "files": ["*.md"]}],
        )

        files = enumerate_content_files(DocfxProject.load(project_file))

        self.assertEqual(files, [self.root / "articles" / "intro.md"])

    def test_missing_group_directory_contributes_nothing(self) -> None:
        project_file = _write_project(self.root, [{"src": "missing", "files": ["**.md"]}])
        self.assertEqual(enumerate_content_files(DocfxProject.load(project_file)), [])

    def test_json_only_group_is_skipped(self) -> None:
        _write(self.root / "restapi" / "petstore.json", "{}")
        project_file = _write_project(self.root, [{"src": "restapi", "files": ["**.json"]}])
        self.assertEqual(enumerate_content_files(DocfxProject.load(project_file)), [])


class ProjectDiscoveryTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_finds_shallowest_project_file(self) -> None:
        _write(self.root / "a" / "b" / "docfx.json", "{}")
        _write(self.root / "docs" / "docfx.json", "{}")

        self.assertEqual(find_project_file(self.root), self.root / "docs" / "docfx.json")

    def test_skips_excluded_directories(self) -> None:
        _write(self.root / "node_modules" / "pkg" / "docfx.json", "{}")
        _write(self.root / ".git" / "docfx.json", "{}")

        self.assertIsNone(find_project_file(self.root))

    def test_missing_workspace_returns_none(self) -> None:
        self.assertIsNone(find_project_file(self.root / "nope"))
