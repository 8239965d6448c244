"""
tests/test_output.py
Tests for dalgen.output: header rendering, single-file writes and batch
writes with per-file diagnostics.  Real file I/O under tmp_path.
"""

from __future__ import annotations

import hashlib
import pathlib
from typing import Dict

import pytest

from dalgen.errors import ProgrammingError, SanitizeError
from dalgen.models import OutputConfig
from dalgen.output import DISCLAIMER, OutputWriter, file_disclaimer, render_header
from dalgen.sanitizer import sanitize


class TestRenderHeader:
    def test_disclaimer_and_imports(self) -> None:
        header = render_header({"json": None, "numpy": "np"}, {"typing": {"List", "Any"}})
        assert header == (
            file_disclaimer()
            + "import json\nimport numpy as np\nfrom typing import Any, List\n\n"
        )

    def test_without_disclaimer(self) -> None:
        assert render_header({"os": None}, disclaimer=False) == "import os\n\n"

    def test_empty(self) -> None:
        assert render_header() == file_disclaimer()
        assert render_header(disclaimer=False) == ""

    def test_header_survives_sanitizing(self) -> None:
        src = render_header({"os": None, "sys": None}) + "print(sys.argv)\n"
        output = sanitize(src).unwrap().decode("utf-8")
        assert output.startswith(DISCLAIMER)
        assert "import sys" in output
        assert "import os" not in output


class TestWrite:
    def test_write_single_file(self, writer: OutputWriter) -> None:
        record = writer.write("users.py", "import os\nimport sys\nprint(sys.argv)\n")
        path = writer.output_dir / "users.py"

        assert path.read_bytes() == b"import sys\n\nprint(sys.argv)\n"
        assert record.relative_path == "users.py"
        assert record.absolute_path == str(path)
        assert record.size_bytes == len(path.read_bytes())
        assert record.line_count == 3
        assert record.sha256 == hashlib.sha256(path.read_bytes()).hexdigest()
        assert record.pruned_imports == ("os",)

    def test_creates_subdirectories(self, writer: OutputWriter) -> None:
        writer.write("models/users.py", "x = 1\n")
        assert (writer.output_dir / "models" / "users.py").read_bytes() == b"x = 1\n"

    def test_overwrites_existing_file(self, writer: OutputWriter) -> None:
        writer.write("a.py", "x = 1\n")
        writer.write("a.py", "x = 2\n")
        assert (writer.output_dir / "a.py").read_bytes() == b"x = 2\n"

    def test_no_temp_files_left(self, writer: OutputWriter) -> None:
        writer.write("a.py", "x = 1\n")
        assert [p.name for p in writer.output_dir.iterdir()] == ["a.py"]

    def test_syntax_error_writes_nothing(self, writer: OutputWriter) -> None:
        with pytest.raises(SanitizeError) as excinfo:
            writer.write("bad.py", "def (:\n")
        assert excinfo.value.path == "bad.py"
        assert not (writer.output_dir / "bad.py").exists()

    def test_failed_rewrite_keeps_previous_file(self, writer: OutputWriter) -> None:
        writer.write("a.py", "x = 1\n")
        with pytest.raises(SanitizeError):
            writer.write("a.py", "x = (\n")
        assert (writer.output_dir / "a.py").read_bytes() == b"x = 1\n"

    def test_disclaimer_option(self, tmp_path: pathlib.Path) -> None:
        writer = OutputWriter(tmp_path, OutputConfig(write_disclaimer=True))
        writer.write("a.py", "x = 1\n")
        assert (tmp_path / "a.py").read_text(encoding="utf-8").startswith(DISCLAIMER)

    def test_non_atomic_writes(self, tmp_path: pathlib.Path) -> None:
        writer = OutputWriter(tmp_path, OutputConfig(atomic_writes=False))
        writer.write("a.py", b"x = 1\n")
        assert (tmp_path / "a.py").read_bytes() == b"x = 1\n"

    def test_path_outside_output_dir(self, writer: OutputWriter) -> None:
        with pytest.raises(ProgrammingError):
            writer.write("../escape.py", "x = 1\n")


class TestWriteAll:
    @pytest.mark.parametrize("max_workers", [None, 4])
    def test_failure_is_isolated(
        self,
        writer: OutputWriter,
        generated_sources: Dict[str, str],
        max_workers,
    ) -> None:
        report = writer.write_all(generated_sources, max_workers=max_workers)

        assert not report.success
        assert sorted(r.relative_path for r in report.files) == ["models.py", "queries.py"]
        assert list(report.diagnostics) == ["broken.py"]
        assert report.diagnostics["broken.py"].line == 7
        assert report.errors == {}

        assert (writer.output_dir / "models.py").exists()
        assert (writer.output_dir / "queries.py").exists()
        assert not (writer.output_dir / "broken.py").exists()

    def test_all_good(self, writer: OutputWriter) -> None:
        files = {f"m{i}.py": f"import os\nx = {i}\n" for i in range(10)}
        report = writer.write_all(files, max_workers=3)

        assert report.success
        assert len(report.files) == 10
        assert report.total_bytes == sum(r.size_bytes for r in report.files)
        for i in range(10):
            assert (writer.output_dir / f"m{i}.py").read_bytes() == f"x = {i}\n".encode()
        assert "10 file(s) written" in report.summary()

    def test_empty_batch(self, writer: OutputWriter) -> None:
        report = writer.write_all({})
        assert report.success
        assert report.files == []

    def test_write_error_is_recorded(self, tmp_path: pathlib.Path) -> None:
        blocker = tmp_path / "out"
        blocker.write_text("not a directory", encoding="utf-8")
        writer = OutputWriter(blocker)

        report = writer.write_all({"a.py": "x = 1\n"})
        assert not report.success
        assert "a.py" in report.errors
        assert report.diagnostics == {}

    def test_encoding_error_is_isolated(self, tmp_path: pathlib.Path) -> None:
        writer = OutputWriter(tmp_path, OutputConfig(encoding="latin-1"))

        report = writer.write_all({"a.py": 'x = "€"\n', "b.py": "y = 1\n"})

        assert not report.success
        assert "UnicodeEncodeError" in report.errors["a.py"]
        assert [r.relative_path for r in report.files] == ["b.py"]
        assert (tmp_path / "b.py").read_bytes() == b"y = 1\n"
        assert not (tmp_path / "a.py").exists()
