import logging
import sys

from .errors import CRuntimeError
from .interpreter import Interpreter
from .lexer import tokenize, print_tokens
from .parser import Parser, ParseError


def read_input(argv):
    if len(argv) == 2:
        with open(argv[1], "r", encoding="utf-8") as f:
            return f.read()
    return sys.stdin.read()

def usage():
    print("Usage:")
    print("  cinterp lex < input.c")
    print("  cinterp check < input.c")
    print("  cinterp run < input.c")
    print("  or:")
    print("  cinterp lex file.c")
    print("  cinterp check file.c")
    print("  cinterp run file.c")
    print("  cinterp step file.c")
    print("Add --debug for interpreter trace logging.")

def debugger(interp, commands=None):
    """Interactive stepping over main's top-level statements."""
    commands = commands if commands is not None else sys.stdin
    interp.enable_stepping()
    print("Commands: step (s), run (r), reset, quit (q)")
    step_num = 1

    for raw in commands:
        command = raw.strip()

        if command in ("step", "s"):
            result = interp.step()
            if result.error is not None:
                print(f"Error at step {step_num}: {result.error}")
                continue
            if result.statement is not None:
                print(f"Step {step_num} executed (line {result.line})")
                step_num += 1
            if result.done:
                print("Program completed")
                if result.returned:
                    print(f"Return value: {result.return_value}")

        elif command in ("run", "r"):
            while True:
                result = interp.step()
                if result.error is not None:
                    print(f"Error: {result.error}")
                    break
                if result.done:
                    print("Program completed")
                    if result.returned:
                        print(f"Return value: {result.return_value}")
                    break
                step_num += 1

        elif command == "reset":
            interp.reset()
            step_num = 1
            print("Interpreter reset")

        elif command in ("quit", "q", "exit"):
            break

        elif command:
            print("Unknown command. Available: step, run, reset, quit")
    return 0

def main(argv=None):
    argv = list(sys.argv[1:] if argv is None else argv)
    debug = "--debug" in argv
    argv = [a for a in argv if a != "--debug"]
    logging.basicConfig(level=logging.DEBUG if debug else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    if not argv or argv[0].lower() not in ("lex", "check", "run", "step"):
        usage()
        return 1

    mode = argv[0].lower()
    if mode == "step" and len(argv) != 2:
        print("step mode needs a source file; commands are read from stdin")
        return 1
    data = read_input(argv)

    if mode == "lex":
        print_tokens(tokenize(data))
        return 0

    if mode == "check":
        parser = Parser(tokenize(data))
        parser.parse_program()
        if not parser.diagnostics:
            print("OK: no syntax errors found.")
            return 0
        for diag in parser.diagnostics:
            print(f"Error at line {diag.line} - {diag.message}")
        return 1

    # run / step
    try:
        interp = Interpreter(data)
    except ParseError as e:
        print(str(e))
        return 1

    if mode == "step":
        return debugger(interp)

    try:
        result = interp.run()
    except CRuntimeError as e:
        print(f"Runtime error: {e}")
        return 1
    sys.stdout.flush()
    return result.as_int() & 0xFF

if __name__ == "__main__":
    sys.exit(main())
