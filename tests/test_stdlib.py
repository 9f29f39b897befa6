"""Built-in functions: printf formatting, output, sleep and math."""

import math

import pytest

from cinterp import Interpreter
from cinterp.errors import BuiltinError
from cinterp.stdlib import BUILTINS, format_c, get_builtins, process_escapes
from cinterp.values import FLOAT, INT, Value
from conftest import run_main


def ints(*ns):
    return [Value.int_(n) for n in ns]


@pytest.mark.parametrize(
    "fmt,values,expected",
    [
        ("%d", ints(42), "42"),
        ("%i|%5d|%-5d|%05d", ints(1, 2, 3, 4), "1|    2|3    |00004"),
        ("%+d", ints(7), "+7"),
        ("%ld %lld %hd", ints(5, 6, 7), "5 6 7"),
        ("%u", ints(-1), "18446744073709551615"),
        ("%x %X %#x", ints(255, 255, 255), "ff FF 0xff"),
        ("%o %#o %#o", ints(8, 8, 0), "10 010 0"),
        ("%+x|% u|%+o|%+#X", ints(255, 7, 8, 255), "ff|7|10|0XFF"),
        ("%c%c", ints(72, 105), "Hi"),
        ("%d", [Value.float_(3.9)], "3"),
        ("%.3f", ints(1), "1.000"),
        ("%8.2f|", [Value.float_(3.14159)], "    3.14|"),
        ("%e", [Value.float_(12345.678)], "1.234568e+04"),
        ("%g", [Value.float_(0.0001)], "0.0001"),
        ("%s and %s", [Value.string("cats"), Value.string("dogs")], "cats and dogs"),
        ("%-6s|", [Value.string("ab")], "ab    |"),
        ("100%%", [], "100%"),
        ("no conversions", [], "no conversions"),
    ],
)
def test_format_c(fmt, values, expected):
    assert format_c(fmt, values) == expected


def test_format_c_missing_argument():
    with pytest.raises(BuiltinError) as info:
        format_c("%d and %d", ints(1))
    assert "printf: missing argument for %d" in str(info.value)


def test_process_escapes():
    assert process_escapes(r"a\tb\n") == "a\tb\n"
    assert process_escapes(r"say \"hi\" \\ done\r\0") == 'say "hi" \\ done\r\0'
    assert process_escapes(r"keep \q") == r"keep \q"
    assert process_escapes("trailing \\") == "trailing \\"


def test_printf_writes_and_returns_length(host):
    value, output = run_main(r'return printf("%d-%s\n", 12, "ab");', host)
    assert output == "12-ab\n"
    assert value == 6


def test_printf_without_arguments_is_a_no_op(host):
    assert run_main("return printf();", host) == (0, "")


def test_printf_requires_string_format():
    with pytest.raises(BuiltinError):
        run_main("printf(5); return 0;")


def test_printf_missing_argument_is_a_runtime_error():
    with pytest.raises(BuiltinError):
        run_main(r'printf("%d %d\n", 1); return 0;')


def test_putchar(host):
    value, output = run_main("putchar(72); putchar('i'); return putchar(10);", host)
    assert output == "Hi\n"
    assert value == 10


def test_sleep_uses_host_hook(host):
    value, _ = run_main("sleep(250); sleep(0); sleep(-5); sleep(); return 1;", host)
    assert value == 1
    assert host.sleeps == [0.25]


@pytest.mark.parametrize(
    "call,expected",
    [
        ("sqrt(16)", 4.0),
        ("pow(2, 10)", 1024.0),
        ("sin(0)", 0.0),
        ("cos(0)", 1.0),
        ("tan(0)", 0.0),
        ("floor(2.7)", 2.0),
        ("floor(-2.5)", -3.0),
        ("ceil(2.1)", 3.0),
        ("log(1)", 0.0),
        ("log10(1000)", 3.0),
        ("exp(0)", 1.0),
        ("abs(-2.5)", 2.5),
    ],
)
def test_math_builtins_return_floats(call, expected):
    result = Interpreter(f"int main() {{ return {call}; }}").run()
    assert result.kind == FLOAT
    assert result.data == pytest.approx(expected)


@pytest.mark.parametrize(
    "call,check",
    [
        ("sqrt(-1)", math.isnan),
        ("log(-1)", math.isnan),
        ("log(0)", lambda x: x == -math.inf),
        ("log10(0)", lambda x: x == -math.inf),
        ("pow(0, -1)", lambda x: x == math.inf),
        ("pow(10, 400)", lambda x: x == math.inf),
        ("exp(1000)", lambda x: x == math.inf),
        ("floor(1.0 / 0)", lambda x: x == math.inf),
    ],
)
def test_math_domain_errors_follow_ieee(call, check):
    value, _ = run_main(f"return {call};")
    assert check(value)


def test_abs_keeps_integers_integral():
    result = Interpreter("int main() { return abs(-5); }").run()
    assert (result.kind, result.data) == (INT, 5)


@pytest.mark.parametrize(
    "call,message",
    [
        ("sqrt()", "sqrt requires 1 argument"),
        ("pow(2)", "pow requires 2 arguments"),
        ("abs()", "abs requires 1 argument"),
    ],
)
def test_argument_count_errors(call, message):
    with pytest.raises(BuiltinError) as info:
        run_main(f"return {call};")
    assert message in str(info.value)


def test_registry_contents_and_copies():
    names = {"printf", "sleep", "putchar", "sqrt", "pow", "sin", "cos", "tan",
             "floor", "ceil", "log", "log10", "exp", "abs"}
    assert names <= set(BUILTINS)
    registry = get_builtins()
    registry.pop("printf")
    assert "printf" in BUILTINS
