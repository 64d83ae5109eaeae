"""
Package generator service for gupl.

Generates the source of an n-ary generic tuple Go module: go.mod, tuple.go
and LICENSE. Generation is a pure function of the arity (and the module
root), which is what lets independent materializers agree on the exact
repository content.
"""

from typing import List

from ..domain.package import GeneratedSource

DEFAULT_MODULE_ROOT = "pkg.golang.fail"

# Type parameters need Go 1.18
GO_VERSION = "1.18"

LICENSE_TEXT = """MIT License

Copyright (c) 2022 The gupl Authors

Permission is hereby granted, free of charge, to any person obtaining a copy
of this software and associated documentation files (the "Software"), to deal
in the Software without restriction, including without limitation the rights
to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
copies of the Software, and to permit persons to whom the Software is
furnished to do so, subject to the following conditions:

The above copyright notice and this permission notice shall be included in all
copies or substantial portions of the Software.

THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
SOFTWARE.
"""


def module_path(n: int, module_root: str = DEFAULT_MODULE_ROOT) -> str:
    """Import path of the tuple module for arity n."""
    return f"{module_root}/tuple/{n}/tuple"


def _type_params(n: int) -> List[str]:
    return [f"T{i}" for i in range(1, n + 1)]


def render_go_mod(n: int, module_root: str = DEFAULT_MODULE_ROOT) -> str:
    return f"module {module_path(n, module_root)}\n\ngo {GO_VERSION}\n"


def render_tuple_go(n: int) -> str:
    """
    Render tuple.go for arity n.

    For n == 0 every bracketed list is dropped entirely rather than left
    empty, since `Tuple[]` is not valid Go.
    """
    params = _type_params(n)
    fields = [f"V{i}" for i in range(1, n + 1)]
    args = [f"v{i}" for i in range(1, n + 1)]

    if params:
        decl_params = "[" + ", ".join(f"{p} any" for p in params) + "]"
        type_ref = "Tuple[" + ", ".join(params) + "]"
    else:
        decl_params = ""
        type_ref = "Tuple"

    lines = [
        f"// Package tuple provides a generic tuple with {n} elements.",
        "package tuple",
        "",
        f"// Tuple holds {n} values of independent types.",
    ]
    if fields:
        lines.append(f"type Tuple{decl_params} struct {{")
        lines.extend(f"\t{field} {param}" for field, param in zip(fields, params))
        lines.append("}")
    else:
        lines.append("type Tuple struct{}")

    lines.extend([
        "",
        "// New constructs a Tuple from its values.",
        f"func New{decl_params}({', '.join(f'{a} {p}' for a, p in zip(args, params))}) {type_ref} {{",
        f"\treturn {type_ref}{{{', '.join(f'{f}: {a}' for f, a in zip(fields, args))}}}",
        "}",
        "",
        "// Unpack returns the values of the tuple in order.",
    ])

    if n == 0:
        lines.extend([f"func (t {type_ref}) Unpack() {{", "}"])
    else:
        results = params[0] if n == 1 else "(" + ", ".join(params) + ")"
        lines.extend([
            f"func (t {type_ref}) Unpack() {results} {{",
            "\treturn " + ", ".join(f"t.{f}" for f in fields),
            "}",
        ])

    return "\n".join(lines) + "\n"


def generate(n: int, module_root: str = DEFAULT_MODULE_ROOT) -> GeneratedSource:
    """
    Generate the tuple package for arity n.

    Args:
        n: Number of type parameters (the repository key)
        module_root: Host prefix of the module path

    Returns:
        GeneratedSource with go.mod, tuple.go and LICENSE, in that order

    Raises:
        ValueError: if n is negative
    """
    if n < 0:
        raise ValueError(f"arity must be non-negative, got {n}")

    return GeneratedSource(
        key=n,
        files=(
            ("go.mod", render_go_mod(n, module_root).encode("utf-8")),
            ("tuple.go", render_tuple_go(n).encode("utf-8")),
            ("LICENSE", LICENSE_TEXT.encode("utf-8")),
        ),
    )
