"""Project scaffolding for `zxx new`."""

from __future__ import annotations

from pathlib import Path

_CONFIG_TEMPLATE = """\
[package]
name = "{name}"
version = "0.1.0"

[check]
source_dir = "src"
deny_warnings = false

[diagnostics]
color = true
"""

_MAIN_SOURCE = """\
func main() {
    var greeting = "Hello from Z++!";
    println(greeting);
}
"""

_IGNORE = """\
*.zpp.bak
.zxx/
"""

_README_TEMPLATE = """\
# {name}

A Z++ project. Sources live in `src/`.

Run `zxx check` from this directory to lex and parse every `.zpp` file.
"""


def scaffold(name: str, parent: Path | None = None) -> Path:
    """Create the directory *name* under *parent* (default: cwd) and return it."""
    project_dir = (parent or Path.cwd()) / name
    if project_dir.exists():
        raise FileExistsError(f"directory '{name}' already exists")

    files = {
        "zxx.toml": _CONFIG_TEMPLATE.format(name=name),
        "src/main.zpp": _MAIN_SOURCE,
        ".gitignore": _IGNORE,
        "README.md": _README_TEMPLATE.format(name=name),
    }
    for relative, text in files.items():
        target = project_dir / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
    return project_dir
