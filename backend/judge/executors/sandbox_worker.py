"""Child-process entry point for the local script sandbox.

Reads ``{"code", "stdin", "timeout_ms", "memory_mb"}`` as JSON on stdin and
prints ``{"stdout", "stderr", "exit_code"}`` as JSON on stdout. Only the
standard library is used so the file can run under ``python -I``.
"""

import ast, json, re, sys, traceback, types
import builtins

DENIED = "Module not allowed"

SAFE_BUILTINS = (
    "abs", "all", "any", "ascii", "bin", "bool", "bytearray", "bytes",
    "callable", "chr", "classmethod", "complex", "dict", "divmod",
    "enumerate", "filter", "float", "format", "frozenset", "hasattr",
    "hash", "hex", "int", "isinstance", "issubclass", "iter", "len",
    "list", "map", "max", "min", "next", "object", "oct", "ord", "pow",
    "property", "range", "repr", "reversed", "round", "set", "slice",
    "sorted", "staticmethod", "str", "sum", "super", "tuple", "zip",
    "__build_class__",
    "ArithmeticError", "AssertionError", "AttributeError", "EOFError",
    "Exception", "ImportError", "IndexError", "KeyError", "LookupError",
    "NameError", "NotImplementedError", "OverflowError", "RecursionError",
    "RuntimeError", "StopIteration", "TypeError", "ValueError",
    "ZeroDivisionError",
)


def apply_limits(timeout_ms: int, memory_mb: int):
    try:
        import resource
    except ImportError:
        return
    cpu_s = int(timeout_ms / 1000) + 1
    try:
        resource.setrlimit(resource.RLIMIT_CPU, (cpu_s, cpu_s))
    except (ValueError, OSError):
        pass
    if memory_mb:
        memory_bytes = memory_mb * 1024 * 1024
        try:
            resource.setrlimit(resource.RLIMIT_AS, (memory_bytes, memory_bytes))
        except (ValueError, OSError):
            pass


# attribute names that lead from a function or generator back to module globals
FORBIDDEN_ATTRS = frozenset({
    "gi_frame", "gi_code", "cr_frame", "cr_code", "ag_frame", "ag_code",
    "f_back", "f_globals", "f_locals", "f_builtins", "f_code",
    "tb_frame", "tb_next", "func_globals", "func_code",
})
ALLOWED_DUNDERS = frozenset({"__name__", "__init__"})
FORMAT_DUNDER = re.compile(r"\{[^{}]*__[^{}]*\}")

# Injected helpers are compiled into a namespace that only holds the safe
# builtins and the I/O buffers, so their __globals__ reach no modules.
HELPERS = '''
def read_line(*_prompt):
    if cursor[0] < len(lines):
        line = lines[cursor[0]]
        cursor[0] += 1
        return line
    return ""

def deny_import(*_a, **_k):
    raise ImportError(DENIED)

def capture_print(*args, sep=" ", end="\\n", file=None, flush=False):
    sep = " " if sep is None else sep
    end = "\\n" if end is None else end
    out.append(sep.join(str(a) for a in args) + end)

def log(*args):
    out.append(" ".join(str(a) for a in args) + "\\n")

def error(*args):
    err.append(" ".join(str(a) for a in args))
'''


def check_static_policy(tree: ast.AST) -> str | None:
    """Return a description of the first forbidden construct, or None."""
    for node in ast.walk(tree):
        if isinstance(node, ast.Attribute):
            name = node.attr
            if name in ALLOWED_DUNDERS:
                continue
            if not (name.startswith("_") or name in FORBIDDEN_ATTRS):
                continue
        elif isinstance(node, ast.Name):
            name = node.id
            if not name.startswith("__") or name in ALLOWED_DUNDERS:
                continue
        elif isinstance(node, ast.Constant) and isinstance(node.value, str):
            name = node.value
            if not FORMAT_DUNDER.search(name):
                continue
        else:
            continue
        return f"Forbidden access: {name!r} is not allowed (line {node.lineno})"
    return None


def build_globals(stdin: str, out: list, err: list) -> dict:
    safe = {name: getattr(builtins, name) for name in SAFE_BUILTINS}
    helpers = {
        "__builtins__": dict(safe),
        "lines": re.split(r"\r?\n", stdin),
        "cursor": [0],
        "out": out,
        "err": err,
        "DENIED": DENIED,
    }
    exec(HELPERS, helpers)

    read_line = helpers["read_line"]
    safe.update(
        __import__=helpers["deny_import"],
        print=helpers["capture_print"],
        input=read_line,
        read_line=read_line,
        gets=read_line,
        prompt=read_line,
    )
    console = types.SimpleNamespace(log=helpers["log"], warn=helpers["log"], error=helpers["error"])
    return {
        "__name__": "__main__",
        "__builtins__": safe,
        "console": console,
        "read_line": read_line,
        "gets": read_line,
        "prompt": read_line,
    }


def run(payload: dict) -> dict:
    code = str(payload.get("code") or "")
    stdin = str(payload.get("stdin") or "")
    out, err = [], []
    try:
        tree = ast.parse(code, "user_code.py")
    except SyntaxError as e:
        return {
            "stdout": "",
            "stderr": f"Compilation Error: {e.msg} (line {e.lineno})",
            "exit_code": 1,
        }
    violation = check_static_policy(tree)
    if violation:
        return {"stdout": "", "stderr": violation, "exit_code": 1}
    compiled = compile(tree, "user_code.py", "exec")
    apply_limits(int(payload.get("timeout_ms") or 5000), int(payload.get("memory_mb") or 0))
    try:
        exec(compiled, build_globals(stdin, out, err))
    except SystemExit:
        pass
    except MemoryError:
        err.append("Memory Limit Exceeded: Code used too much memory")
    except RecursionError:
        err.append("RecursionError: maximum recursion depth exceeded")
    except Exception as e:
        err.append(f"{type(e).__name__}: {e}")
    if err:
        # partial output is unreliable once the script has failed
        return {"stdout": "", "stderr": "\n".join(err), "exit_code": 1}
    return {"stdout": "".join(out), "stderr": None, "exit_code": 0}


def main():
    raw = sys.stdin.read()
    try:
        payload = json.loads(raw)
    except Exception:
        print(json.dumps({"stdout": "", "stderr": "invalid json", "exit_code": 1}))
        return
    try:
        result = run(payload)
    except BaseException:
        result = {"stdout": "", "stderr": traceback.format_exc(limit=1), "exit_code": 1}
    sys.stdout.write(json.dumps(result))
    sys.stdout.flush()


if __name__ == "__main__":
    main()
