import io
import json
import shutil
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest.mock import patch

from extract_sources.__main__ import build_parser, main, resolve_excluded_dirs
from extract_sources.utils import EXCLUDED_DIRS


class TestCli(unittest.TestCase):
    def setUp(self):
        self.test_dir = Path(tempfile.mkdtemp())
        self.project = self.test_dir / "proj"
        (self.project / "src" / "a").mkdir(parents=True)
        (self.project / "vendor").mkdir()
        (self.project / "src" / "a" / "App.kt").write_text("package com.app\n\nfun main() {}\n")
        (self.project / "src" / "Util.kt").write_text("fun util() = 1\n")
        (self.project / "vendor" / "Lib.kt").write_text("package vendor.lib\n")

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def run_main(self, *argv) -> int:
        with redirect_stdout(io.StringIO()):
            return main(list(argv))

    def test_no_command_prints_help(self):
        self.assertEqual(self.run_main(), 0)

    def test_invalid_root(self):
        self.assertEqual(self.run_main("scan", str(self.test_dir / "missing")), 1)
        self.assertEqual(self.run_main("flatten", str(self.project / "src" / "Util.kt")), 1)

    def test_scan_writes_metadata(self):
        output = self.test_dir / "files.json"

        code = self.run_main("scan", str(self.project), "--exclude", "vendor", "-o", str(output))

        self.assertEqual(code, 0)
        with open(output, 'r', encoding='utf-8') as f:
            data = json.load(f)
        self.assertEqual(data["summary"]["total_files"], 2)
        self.assertEqual(data["summary"]["total_lines"], 4)
        self.assertEqual(data["summary"]["packages"], {"com.app": 1, "No package": 1})
        self.assertEqual([f["rel_path"] for f in data["files"]], ["src/Util.kt", "src/a/App.kt"])

    def test_mirror_with_report(self):
        dest = self.test_dir / "backup"
        report_path = self.test_dir / "report.json"

        code = self.run_main("mirror", str(self.project), str(dest), "--report-out", str(report_path))

        self.assertEqual(code, 0)
        self.assertTrue((dest / "vendor" / "Lib.kt").is_file())
        with open(report_path, 'r', encoding='utf-8') as f:
            report = json.load(f)
        self.assertEqual(report["copied_count"], 3)
        self.assertEqual(report["layout"], "mirror")

    def test_flatten_default_destination(self):
        code = self.run_main("flatten", str(self.project), "--workers", "1")

        self.assertEqual(code, 0)
        dest = self.test_dir / "proj-files"
        self.assertEqual(
            sorted(p.name for p in dest.iterdir()),
            ["Util.kt", "com_app_App.kt", "vendor_lib_Lib.kt"],
        )

    def test_flatten_dry_run(self):
        code = self.run_main("flatten", str(self.project), "--dry-run")

        self.assertEqual(code, 0)
        self.assertFalse((self.test_dir / "proj-files").exists())

    def test_missing_arguments_print_usage(self):
        out = io.StringIO()
        with redirect_stdout(out):
            self.assertEqual(main(["mirror", str(self.project)]), 0)
            self.assertEqual(main(["flatten"]), 0)
            self.assertEqual(main(["scan"]), 0)

        self.assertIn("usage:", out.getvalue())
        self.assertIn("Missing: dest", out.getvalue())
        self.assertEqual(sorted(p.name for p in self.test_dir.iterdir()), ["proj"])

    def test_copy_prints_file_and_line_totals(self):
        out = io.StringIO()
        with redirect_stdout(out):
            code = main(["mirror", str(self.project), str(self.test_dir / "backup")])

        self.assertEqual(code, 0)
        self.assertIn("Found 3 source files", out.getvalue())
        self.assertIn("Total lines of code: 5", out.getvalue())

    @patch("extract_sources.__main__.Progress")
    def test_scan_reports_progress(self, mock_progress):
        progress = mock_progress.return_value.__enter__.return_value

        self.assertEqual(self.run_main("scan", str(self.project)), 0)

        self.assertEqual(progress.update.call_count, 3)
        _, kwargs = progress.update.call_args
        self.assertIn("Scanning: 3 files", kwargs["description"])

    def test_exclusion_flags(self):
        parser = build_parser()

        args = parser.parse_args(["scan", "x", "--exclude", "vendor, out"])
        self.assertEqual(resolve_excluded_dirs(args), EXCLUDED_DIRS | {"vendor", "out"})

        args = parser.parse_args(["scan", "x", "--no-default-excludes", "--exclude", "vendor"])
        self.assertEqual(resolve_excluded_dirs(args), frozenset({"vendor"}))

    def test_extension_flag_adds_dot(self):
        args = build_parser().parse_args(["mirror", "a", "b", "--ext", "java"])
        self.assertEqual(args.ext, ".java")


if __name__ == "__main__":
    unittest.main()
