import sys
from typing import List

from .cli import app


GLOBAL_FLAGS = {"--debug"}
GLOBAL_VALUE_OPTIONS = {"--log-file"}


def _split_globals(argv: List[str]) -> tuple[List[str], List[str]]:
    globals_: List[str] = []
    rest: List[str] = []
    i = 0
    while i < len(argv):
        a = argv[i]
        if a in GLOBAL_VALUE_OPTIONS and i + 1 < len(argv):
            globals_.extend(argv[i : i + 2])
            i += 2
            continue
        if a in GLOBAL_FLAGS or a.split("=", 1)[0] in GLOBAL_VALUE_OPTIONS:
            globals_.append(a)
        else:
            rest.append(a)
        i += 1
    return globals_, rest


def main(argv: List[str] | None = None):
    if argv is None:
        argv = sys.argv[1:]

    # Handle version early to avoid Click group error
    if argv and argv[0] in {"--version", "-V"}:
        from . import __version__
        print(__version__)
        return

    globals_, rest = _split_globals(argv)

    # Bare invocation opens the dashboard
    if not rest:
        return app(args=globals_ + ["dash"], prog_name="systoggle")

    # Shorthand: "systoggle sshd.service [--user]" shows info for that unit
    if rest[0].endswith(".service"):
        return app(args=globals_ + ["info"] + rest, prog_name="systoggle")

    app(args=globals_ + rest, prog_name="systoggle")
