"""Command-line modes: lex, check, run and step."""

import io

import pytest

from cinterp.main import main

PROGRAM = """int main() {
    int total = 0;
    for (int i = 0; i < 5; i++) {
        total = total + i;
    }
    printf("total=%d\\n", total);
    return total;
}
"""


@pytest.fixture
def source_file(tmp_path):
    def write(text):
        path = tmp_path / "prog.c"
        path.write_text(text, encoding="utf-8")
        return str(path)
    return write


def test_usage_on_missing_or_unknown_mode(capsys):
    assert main([]) == 1
    assert "Usage:" in capsys.readouterr().out
    assert main(["compile"]) == 1
    assert "Usage:" in capsys.readouterr().out


def test_lex_prints_token_table(source_file, capsys):
    assert main(["lex", source_file("int x = 1;")]) == 0
    out = capsys.readouterr().out
    assert "Token" in out.splitlines()[0]
    assert "INT_KW" in out
    assert "SEMICOLON" in out


def test_check_valid_program(source_file, capsys):
    assert main(["check", source_file(PROGRAM)]) == 0
    assert "OK: no syntax errors found." in capsys.readouterr().out


def test_check_reports_each_diagnostic(source_file, capsys):
    path = source_file("int main() { if (x > 1 { x = 0; } return ; }")
    assert main(["check", path]) == 1
    out = capsys.readouterr().out
    assert "Error at line 1 - expected RPAREN, got LBRACE '{' instead at line 1" in out


def test_run_exit_status_is_masked_return_value(source_file, capsys):
    path = source_file('int main() { printf("hi\\n"); return 300; }')
    assert main(["run", path]) == 300 & 0xFF
    assert capsys.readouterr().out == "hi\n"


def test_run_reads_stdin(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO(PROGRAM))
    assert main(["run"]) == 10
    assert "total=10" in capsys.readouterr().out


def test_run_reports_runtime_errors(source_file, capsys):
    assert main(["run", source_file("int main() { return 1 / 0; }")]) == 1
    assert "Runtime error: division by zero (line 1)" in capsys.readouterr().out


def test_run_reports_parse_errors(source_file, capsys):
    assert main(["run", source_file("int main( { }")]) == 1
    assert "Parse errors:" in capsys.readouterr().out


def test_step_needs_a_file(capsys):
    assert main(["step"]) == 1
    assert "needs a source file" in capsys.readouterr().out


def test_step_debugger_session(source_file, monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("s\nbogus\nreset\ns\nr\nq\n"))
    assert main(["step", source_file(PROGRAM)]) == 0
    out = capsys.readouterr().out
    assert out.count("Step 1 executed (line 2)") == 2
    assert "Unknown command" in out
    assert "Interpreter reset" in out
    assert "total=10" in out
    assert "Program completed" in out
    assert "Return value: 10" in out


def test_debug_flag_is_accepted(source_file, capsys):
    assert main(["--debug", "check", source_file(PROGRAM)]) == 0
