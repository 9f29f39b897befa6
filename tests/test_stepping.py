"""Single-step execution of main's top-level statements."""

import pytest

from cinterp.errors import DivisionByZeroError, NoEntryPointError, SteppingDisabledError
from conftest import Host

SUM_PROGRAM = """int main() {
    int sum = 0;
    for (int i = 0; i < 5; i++) {
        sum = sum + i;
    }
    printf("sum=%d\\n", sum);
    return sum;
}
"""


def stepper(source, host=None):
    interp = (host or Host()).interpreter(source)
    interp.enable_stepping()
    return interp


def drain(interp, limit=100):
    results = []
    for _ in range(limit):
        result = interp.step()
        results.append(result)
        if result.done:
            return results
    raise AssertionError("program did not complete")


def test_step_requires_stepping_mode():
    interp = Host().interpreter(SUM_PROGRAM)
    assert not interp.stepping
    with pytest.raises(SteppingDisabledError):
        interp.step()
    interp.enable_stepping()
    assert interp.stepping
    interp.disable_stepping()
    with pytest.raises(SteppingDisabledError):
        interp.step()


def test_one_step_per_top_level_statement(host):
    interp = stepper(SUM_PROGRAM, host)
    results = drain(interp)
    assert [r.line for r in results] == [2, 3, 6, 7]
    assert [r.done for r in results] == [False, False, False, True]
    assert host.output == "sum=10\n"

    last = results[-1]
    assert last.returned
    assert last.return_value.data == 10


def test_loops_run_to_completion_inside_one_step(host):
    interp = stepper(SUM_PROGRAM, host)
    interp.step()
    loop = interp.step()
    assert loop.error is None
    assert not loop.done
    assert host.output == ""


def test_steps_after_completion_report_done():
    interp = stepper(SUM_PROGRAM)
    drain(interp)
    after = interp.step()
    assert after.done
    assert after.statement is None
    assert after.returned
    assert after.return_value.data == 10


def test_return_ends_the_program_early(host):
    interp = stepper('int main() { printf("a"); return 3; printf("b"); }', host)
    results = drain(interp)
    assert len(results) == 2
    assert results[-1].return_value.data == 3
    assert host.output == "a"


def test_top_level_break_ends_the_program(host):
    interp = stepper('int main() { printf("a"); break; printf("b"); }', host)
    results = drain(interp)
    assert results[-1].broke
    assert not results[-1].returned
    assert host.output == "a"


def test_runtime_error_is_reported_and_stepping_continues():
    interp = stepper("""int main() {
    int x = 1 / 0;
    x = 2;
    return x;
}""")
    failed = interp.step()
    assert isinstance(failed.error, DivisionByZeroError)
    assert failed.line == 2
    assert not failed.done

    results = drain(interp)
    assert all(r.error is None for r in results)
    assert results[-1].return_value.data == 2


def test_missing_entry_point_is_a_done_error():
    interp = stepper("int helper() { return 1; }")
    result = interp.step()
    assert result.done
    assert isinstance(result.error, NoEntryPointError)


def test_empty_main_completes_immediately():
    result = stepper("int main() { }").step()
    assert result.done
    assert result.statement is None
    assert not result.returned


def test_stepping_matches_run():
    stepped_host, run_host = Host(), Host()
    results = drain(stepper(SUM_PROGRAM, stepped_host))
    value = run_host.interpreter(SUM_PROGRAM).run()
    assert results[-1].return_value == value
    assert stepped_host.output == run_host.output


def test_globals_are_visible_while_stepping():
    interp = stepper("int base = 40;\nint main() { int x = base + 2; return x; }")
    results = drain(interp)
    assert results[-1].return_value.data == 42


def test_reset_restarts_from_first_statement(host):
    interp = stepper(SUM_PROGRAM, host)
    interp.step()
    interp.step()
    interp.reset()
    assert interp.stepping
    results = drain(interp)
    assert [r.line for r in results] == [2, 3, 6, 7]
    assert host.output == "sum=10\n"


def test_run_after_partial_stepping_and_reset():
    interp = stepper(SUM_PROGRAM)
    interp.step()
    interp.reset()
    assert interp.run().data == 10
