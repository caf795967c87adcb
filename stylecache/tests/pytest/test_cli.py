"""
CLI commands execute and produce the expected output.

Commands are invoked through ``main(argv)`` in-process so captured stdout
holds both the CSS (when no output file is given) and status lines.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from stylecache.cli import create_parser, main
from stylecache.core.utils import log


@pytest.fixture(autouse=True)
def _plain_output(monkeypatch) -> None:
    monkeypatch.setattr(log, "_use_color", False)
    monkeypatch.setattr(log, "verbose", False)


@pytest.mark.evergreen
class TestParser:
    def test_build_options(self):
        args = create_parser().parse_args(
            ["build", "-i", "a.css", "-o", "out.css", "--no-optimize", "--dry-run"]
        )
        assert args.command == "build"
        assert args.optimize is False
        assert args.minify is None
        assert args.dry_run is True

    def test_watch_debounce(self):
        args = create_parser().parse_args(["watch", "-i", "a.css", "--debounce", "0.5"])
        assert args.debounce == 0.5

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "build" in capsys.readouterr().out

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main(["--version"])
        assert excinfo.value.code == 0
        assert "stylecache" in capsys.readouterr().out


@pytest.mark.evergreen
class TestBuildCommand:
    def test_build_to_file(self, project, monkeypatch, capsys):
        """Build writes the output file and reports success."""
        monkeypatch.chdir(project.root)
        out = project.root / "dist" / "app.css"

        code = main(["build", "-i", str(project.entry), "-o", str(out), "--no-optimize"])

        assert code == 0
        assert ".flex {\n  display: flex;\n}" in out.read_text()
        assert "[OK] Built app.css" in capsys.readouterr().out

    def test_build_to_stdout(self, project, monkeypatch, capsys):
        """Without -o the CSS goes to stdout and nothing else does."""
        monkeypatch.chdir(project.root)

        assert main(["build", "-i", str(project.entry), "--minify"]) == 0
        assert capsys.readouterr().out == "body{margin:0}.flex{display:flex}.p-4{padding:1rem}"

    def test_dry_run_does_not_write(self, project, monkeypatch, capsys):
        monkeypatch.chdir(project.root)
        out = project.root / "dist" / "app.css"

        assert main(["build", "-i", str(project.entry), "-o", str(out), "--dry-run"]) == 0
        assert not out.exists()
        assert "[DRY-RUN]" in capsys.readouterr().out

    def test_unchanged_output_is_not_rewritten(self, project, monkeypatch):
        monkeypatch.chdir(project.root)
        out = project.root / "dist" / "app.css"
        argv = ["build", "-i", str(project.entry), "-o", str(out)]

        assert main(argv) == 0
        before = out.stat().st_mtime_ns
        Path(out).touch()
        touched = out.stat().st_mtime_ns
        assert main(argv) == 0
        assert out.stat().st_mtime_ns == touched
        assert touched >= before

    def test_base_from_config_file(self, project, monkeypatch, capsys):
        """A relative base in stylecache.yaml is resolved against the file."""
        monkeypatch.chdir(project.root)
        (project.root / "stylecache.yaml").write_text("base: src\noptimize: false\n")

        assert main(["build", "-i", str(project.entry)]) == 0
        # src/ has no templates, so no utilities are generated
        assert ".flex" not in capsys.readouterr().out

    def test_missing_input_fails(self, project, monkeypatch, capsys):
        monkeypatch.chdir(project.root)

        assert main(["build", "-i", str(project.root / "missing.css")]) == 1
        assert "[ERROR] Cannot read entry point" in capsys.readouterr().out

    def test_non_utf8_input_fails(self, project, monkeypatch, capsys):
        monkeypatch.chdir(project.root)
        project.entry.write_bytes(b"\xff\xfebody {}")

        assert main(["build", "-i", str(project.entry)]) == 1
        assert "not valid UTF-8" in capsys.readouterr().out

    def test_compile_error_fails(self, project, monkeypatch, capsys):
        monkeypatch.chdir(project.root)
        project.imported.write_text("body {")

        assert main(["build", "-i", str(project.entry)]) == 1
        assert "Unclosed block" in capsys.readouterr().out

    def test_invalid_config_fails(self, project, monkeypatch, capsys):
        monkeypatch.chdir(project.root)
        (project.root / "stylecache.yaml").write_text("optimise: true\n")

        assert main(["build", "-i", str(project.entry)]) == 1
        assert "[ERROR] Invalid config" in capsys.readouterr().out


@pytest.mark.evergreen
class TestWatchCommand:
    def test_watch_requires_output(self, project, monkeypatch, capsys):
        monkeypatch.chdir(project.root)

        assert main(["watch", "-i", str(project.entry)]) == 1
        assert "needs an output file" in capsys.readouterr().out
