"""Tests for the zxx CLI, config, and error rendering."""

from __future__ import annotations

import io
from pathlib import Path

import pytest
from click.testing import CliRunner

from zxx.cli import main
from zxx.config import find_config, load_config, load_config_for
from zxx.errors import (
    CompileError,
    Diagnostic,
    DiagnosticRenderer,
    Reporter,
    Severity,
)
from zxx.project import scaffold
from zxx.source import SourceFile, Span


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def tmp_project(tmp_path):
    """Create a minimal zxx project in a temp dir."""
    toml = tmp_path / "zxx.toml"
    toml.write_text(
        '[package]\nname = "testproj"\nversion = "1.0.0"\n'
        '[check]\nsource_dir = "src"\ndeny_warnings = false\n'
        "[diagnostics]\ncolor = false\n"
    )
    src = tmp_path / "src"
    src.mkdir()
    (src / "main.zpp").write_text('func main() {\n    var mutable x = 1;\n    x = 2;\n}\n')
    return tmp_path


# --- CLI tests ---


class TestCLI:
    def test_help(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "Z++" in result.output
        for command in ("check", "tokens", "view", "new", "lsp"):
            assert command in result.output

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_new_creates_project(self, runner, tmp_path):
        with runner.isolated_filesystem(temp_dir=tmp_path):
            result = runner.invoke(main, ["new", "hello"])
            assert result.exit_code == 0
            assert "created project 'hello'" in result.output

            project = Path("hello")
            assert (project / "zxx.toml").exists()
            assert (project / "src" / "main.zpp").exists()
            assert (project / ".gitignore").exists()

            toml_text = (project / "zxx.toml").read_text()
            assert 'name = "hello"' in toml_text

            zpp_text = (project / "src" / "main.zpp").read_text()
            assert "Hello from Z++!" in zpp_text

            readme_text = (project / "README.md").read_text()
            assert "# hello" in readme_text

    def test_new_existing_dir_fails(self, runner, tmp_path):
        with runner.isolated_filesystem(temp_dir=tmp_path):
            Path("hello").mkdir()
            result = runner.invoke(main, ["new", "hello"])
            assert result.exit_code == 1
            assert "already exists" in result.output

    def test_scaffolded_project_checks_clean(self, tmp_path):
        project = scaffold("demo", tmp_path)
        result = CliRunner().invoke(main, ["check", str(project)])
        assert result.exit_code == 0
        assert "checked 1 file(s): 0 error(s), 0 warning(s)" in result.output

    def test_check_with_project(self, runner, tmp_project):
        result = runner.invoke(main, ["check", str(tmp_project)])
        assert result.exit_code == 0
        assert "checked 1 file(s)" in result.output

    def test_check_single_file(self, runner, tmp_project):
        result = runner.invoke(main, ["check", str(tmp_project / "src" / "main.zpp")])
        assert result.exit_code == 0

    def test_check_reports_error(self, runner, tmp_project):
        bad = tmp_project / "src" / "bad.zpp"
        bad.write_text("func main() {\n    var x = 1;\n    x = 2;\n}\n")
        result = runner.invoke(main, ["check", str(tmp_project)])
        assert result.exit_code == 1
        assert "error[E006]" in result.output
        assert "bad.zpp:3:5" in result.output
        assert "1 error(s)" in result.output

    def test_check_lex_error(self, runner, tmp_project):
        (tmp_project / "src" / "main.zpp").write_text("func main() { $ }\n")
        result = runner.invoke(main, ["check", str(tmp_project)])
        assert result.exit_code == 1
        assert "error[E001]" in result.output

    def test_check_warning_passes(self, runner, tmp_project):
        (tmp_project / "src" / "main.zpp").write_text("x func main() { }\n")
        result = runner.invoke(main, ["check", str(tmp_project)])
        assert result.exit_code == 0
        assert "warning[PAR1]" in result.output
        assert "1 warning(s)" in result.output

    def test_check_deny_warnings(self, runner, tmp_project):
        toml = tmp_project / "zxx.toml"
        toml.write_text(toml.read_text().replace("deny_warnings = false", "deny_warnings = true"))
        (tmp_project / "src" / "main.zpp").write_text("x func main() { }\n")
        result = runner.invoke(main, ["check", str(tmp_project)])
        assert result.exit_code == 1

    def test_check_no_sources(self, runner, tmp_path):
        empty = tmp_path / "empty"
        empty.mkdir()
        result = runner.invoke(main, ["check", str(empty)])
        assert result.exit_code == 0
        assert "no .zpp files found" in result.output

    def test_no_color_flag(self, runner, tmp_path):
        bad = tmp_path / "bad.zpp"
        bad.write_text("func 1() {}\n")
        result = runner.invoke(main, ["--no-color", "check", str(bad)])
        assert result.exit_code == 1
        assert "\033[" not in result.output

    def test_tokens_command(self, runner, tmp_project):
        zpp_file = tmp_project / "src" / "main.zpp"
        result = runner.invoke(main, ["tokens", str(zpp_file)])
        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert lines[0].startswith("FUNC")
        assert lines[0].endswith("0..4")
        assert any("NUMBER_LIT" in line and "1.0" in line for line in lines)

    def test_tokens_lex_error(self, runner, tmp_path):
        bad = tmp_path / "bad.zpp"
        bad.write_text("a # b\n")
        result = runner.invoke(main, ["--no-color", "tokens", str(bad)])
        assert result.exit_code == 1
        assert "unrecognized token `#`" in result.output

    def test_check_invalid_utf8(self, runner, tmp_path):
        (tmp_path / "bad.zpp").write_bytes(b'func f() { "\xff" }')
        (tmp_path / "good.zpp").write_text("func main() { }\n")
        result = runner.invoke(main, ["--no-color", "check", str(tmp_path)])
        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "error[E001]" in result.output
        assert "bad.zpp:1:13" in result.output
        assert "checked 2 file(s): 1 error(s)" in result.output

    def test_tokens_invalid_utf8(self, runner, tmp_path):
        bad = tmp_path / "bad.zpp"
        bad.write_bytes(b"var \xc3(")
        result = runner.invoke(main, ["--no-color", "tokens", str(bad)])
        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "error[E001]" in result.output
        assert "invalid UTF-8" in result.output

    def test_view_command(self, runner, tmp_project):
        zpp_file = tmp_project / "src" / "main.zpp"
        result = runner.invoke(main, ["view", str(zpp_file)])
        assert result.exit_code == 0
        assert "Document" in result.output
        assert "FuncDeclaration" in result.output
        assert "VarAssignment" in result.output
        assert "returns: void" in result.output

    def test_view_parse_error(self, runner, tmp_path):
        bad = tmp_path / "bad.zpp"
        bad.write_text("func main( {}\n")
        result = runner.invoke(main, ["--no-color", "view", str(bad)])
        assert result.exit_code == 1
        assert "error[E003]" in result.output

    def test_lsp_help(self, runner):
        result = runner.invoke(main, ["lsp", "--help"])
        assert result.exit_code == 0


# --- Config tests ---


class TestConfig:
    def test_load_config(self, tmp_project):
        config = load_config(tmp_project / "zxx.toml")
        assert config.package.name == "testproj"
        assert config.package.version == "1.0.0"
        assert config.check.source_dir == "src"
        assert config.check.deny_warnings is False
        assert config.diagnostics.color is False

    def test_load_config_defaults(self, tmp_path):
        toml = tmp_path / "zxx.toml"
        toml.write_text("[package]\n")
        config = load_config(toml)
        assert config.package.name == "untitled"
        assert config.check.source_dir == "src"
        assert config.diagnostics.color is True

    def test_find_config(self, tmp_project):
        sub = tmp_project / "src"
        found = find_config(sub)
        assert found == tmp_project / "zxx.toml"

    def test_find_config_from_file(self, tmp_project):
        found = find_config(tmp_project / "src" / "main.zpp")
        assert found == tmp_project / "zxx.toml"

    def test_find_config_not_found(self, tmp_path):
        empty = tmp_path / "empty"
        empty.mkdir()
        with pytest.raises(FileNotFoundError, match="No zxx.toml found"):
            find_config(empty)

    def test_load_config_for_without_file(self, tmp_path):
        empty = tmp_path / "empty"
        empty.mkdir()
        config, path = load_config_for(empty)
        assert path is None
        assert config.package.name == "untitled"


# --- Error rendering tests ---


class TestDiagnostics:
    def test_render_error(self):
        source = SourceFile("main.zpp", "func f() {\n    var x = 1;\n    x = 2;\n}\n")
        diag = Diagnostic(
            severity=Severity.ERROR,
            code="E006",
            message="cannot reassign immutable variable `x`",
            span=Span(30, 36),
            notes=["`x` is declared without `mutable`"],
        )

        output = DiagnosticRenderer(color=False).render(diag, source)

        assert "error[E006]: cannot reassign immutable variable `x`" in output
        assert "--> main.zpp:3:5" in output
        assert "3 |     x = 2;" in output
        assert "|     ^^^^^^" in output
        assert "= note: `x` is declared without `mutable`" in output

    def test_render_without_source(self):
        diag = Diagnostic(Severity.WARNING, "PAR1", "stray token", span=Span(0, 1))
        output = DiagnosticRenderer(color=False).render(diag)
        assert output == "warning[PAR1]: stray token"

    def test_render_label(self):
        source = SourceFile("t.zpp", "func $")
        diag = Diagnostic(
            Severity.ERROR, "E001", "unrecognized token `$`",
            span=Span(5, 6), label="invalid token",
        )
        lines = DiagnosticRenderer(color=False).render(diag, source).splitlines()
        assert lines == [
            "error[E001]: unrecognized token `$`",
            "   --> t.zpp:1:6",
            "    |",
            "  1 | func $",
            "    |      ^",
            "    |   invalid token",
        ]

    def test_render_zero_length_span(self):
        source = SourceFile("t.zpp", "func f(")
        diag = Diagnostic(Severity.ERROR, "E002", "expected identifier", span=Span(7, 7))
        output = DiagnosticRenderer(color=False).render(diag, source)
        assert "t.zpp:1:8" in output
        assert "^" in output

    def test_render_multiline_span(self):
        source = SourceFile("t.zpp", "func f() {\n}\n")
        diag = Diagnostic(Severity.ERROR, "E000", "block", span=Span(9, 12))
        output = DiagnosticRenderer(color=False).render(diag, source)
        assert "1 | func f() {" in output
        assert "2 | }" in output

    def test_render_color(self):
        diag = Diagnostic(Severity.ERROR, "E001", "bad")
        output = DiagnosticRenderer(color=True).render(diag)
        assert "\033[1;31m" in output

    def test_compile_error(self):
        diags = [
            Diagnostic(Severity.WARNING, "PAR1", "stray"),
            Diagnostic(Severity.ERROR, "E003", "expected identifier"),
        ]
        err = CompileError(diags)
        assert err.diagnostics is diags
        assert err.errors == [diags[1]]
        assert "1 error(s)" in str(err)
        assert "expected identifier" in str(err)


class TestReporter:
    def test_records_in_order(self):
        reporter = Reporter(SourceFile("t.zpp", "abc"))
        first = reporter.warning("w", Span(0, 1), code="PAR1")
        second = reporter.error("e", Span(1, 2), ["n"], code="E003")
        assert reporter.diagnostics == [first, second]
        assert second.notes == ["n"]
        assert reporter.has_errors()

    def test_info_and_note_are_not_errors(self):
        reporter = Reporter(SourceFile("t.zpp", ""))
        reporter.info("i", None)
        reporter.note("n", None)
        assert not reporter.has_errors()
        assert [d.severity for d in reporter.diagnostics] == [Severity.INFO, Severity.NOTE]

    def test_streams_rendered_output(self):
        stream = io.StringIO()
        reporter = Reporter(SourceFile("t.zpp", "x"), stream)
        reporter.error("boom", Span(0, 1), code="E003")
        text = stream.getvalue()
        assert text.startswith("error[E003]: boom\n")
        assert text.endswith("\n")


class TestSourceFile:
    def test_location(self):
        source = SourceFile("t.zpp", "ab\ncd")
        assert source.location(0) == (1, 1)
        assert source.location(3) == (2, 1)
        assert source.location(4) == (2, 2)

    def test_location_counts_characters(self):
        source = SourceFile("t.zpp", '"é" x')
        assert source.location(5) == (1, 5)

    def test_line_prefix(self):
        source = SourceFile("t.zpp", "ab\nc\u00e9 x")
        assert source.line_prefix(7) == (2, "c\u00e9 ")
        assert source.line_prefix(100) == (2, "c\u00e9 x")

    def test_lone_surrogate_content(self):
        source = SourceFile("t.zpp", "a\ud800b")
        assert source.full_span() == Span(0, 5)
        assert source.location(4) == (1, 3)
        assert source.span_text(Span(1, 4)) == "\ud800"

    def test_span_text(self):
        source = SourceFile("t.zpp", '"é" x')
        assert source.span_text(Span(0, 4)) == '"é"'
        assert source.full_span() == Span(0, 6)

    def test_crlf_lines(self):
        source = SourceFile("t.zpp", "a\r\nb")
        assert source.line_at(1) == "a"
        assert source.line_at(2) == "b"
        assert source.line_at(3) == ""

    def test_invalid_span(self):
        with pytest.raises(ValueError):
            Span(3, 2)
