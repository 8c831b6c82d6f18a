# libdeps/modules/cli.py
"""
Command line driver for libdeps.
- Resolves the shared library dependencies of every file given with
  -f/--file (or as positional arguments) and prints them with rich tables.
- Each file succeeds or fails on its own; the remaining files are still
  processed and the exit status tells whether everything went through.
- Log output goes to stderr (-d/--debug, -v/--verbose), the report to stdout.

Usage examples:
  libdeps -f /bin/ls -f /usr/bin/ssh
  libdeps /bin/ls --direct --sort time_asc
  libdeps /bin/ls --dump-cache -v
  python -m libdeps.modules.cli /bin/ls --json
"""

from __future__ import annotations
import argparse
import json
import os
import sys
import time
from typing import Any, Dict, List, Optional

# rich UI
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.text import Text

from libdeps import __version__
from libdeps.modules import logger as _logger
from libdeps.modules.cache import ResolutionCache, SortOrder
from libdeps.modules.config import config
from libdeps.modules.descriptor import LibDepsError
from libdeps.modules.inspector import LddInspector

KIND_STYLES = {
    "regular": "white",
    "static": "magenta",
    "virtual": "cyan",
}


def printable(text: str) -> str:
    """Text safe for any terminal; undecodable path bytes become \\x escapes."""
    return os.fsencode(text).decode("utf-8", "backslashreplace")


def print_panel(console: Console, title: str, text: str, style: str = "green"):
    console.print(Panel(text, title=title, style=style))


# Create console with color toggles
def make_console(no_color: bool, quiet: bool) -> Console:
    if no_color:
        return Console(color_system=None, force_terminal=False, markup=False, quiet=quiet)
    return Console(quiet=quiet)


class CLI:
    def __init__(self, console: Console, cache: ResolutionCache, as_json: bool = False):
        self.console = console
        self.cache = cache
        self.as_json = as_json
        self.log = _logger.Logger("cli")
        self.report: Dict[str, Any] = {"files": [], "cache": []}

    def cmd_resolve(self, filename: str, direct: bool = False, sort: Optional[str] = None) -> bool:
        """Resolve one input file and print its dependencies. Returns success."""
        self.log.debug(f"Adding file {filename}")
        try:
            closure = self.cache.resolve(filename, sort=sort)
        except LibDepsError as e:
            self.log.error(str(e))
            self.report["files"].append({"file": filename, "ok": False, "error": str(e)})
            if not self.as_json:
                self.console.print(printable(f"{filename}: {e}"), style="red")
            return False

        deps = self.cache.dependencies(filename, direct=True, sort=sort) if direct else closure
        self.log.success(f"{filename}: {len(closure)} dependencies")
        self.report["files"].append({
            "file": filename,
            "ok": True,
            "dependencies": [d.path for d in deps],
        })
        if not self.as_json:
            self.console.print(self._deps_table(filename, deps, direct))
        return True

    def _deps_table(self, filename: str, deps, direct: bool) -> Table:
        title = f"{'Direct dependencies' if direct else 'Dependencies'} for {printable(filename)}"
        table = Table(title=title, show_lines=False)
        table.add_column("Path")
        table.add_column("Name")
        table.add_column("Kind")
        table.add_column("Load address")
        for dep in deps:
            kind = dep.kind.value
            table.add_row(printable(dep.path), printable(dep.display_name),
                          Text(kind, style=KIND_STYLES[kind]),
                          dep.load_address or "N/A")
        if not deps:
            table.caption = "no dependencies"
        return table

    def cmd_dump_cache(self, sort: Optional[str] = None):
        """Every cached file with its forward and reverse dependencies."""
        entities = self.cache.all_entities(sort=sort or SortOrder.ALPHA)
        self.report["cache"] = [e.to_dict() for e in entities]
        if self.as_json:
            return
        table = Table(title=f"Cache ({len(entities)} files)", show_lines=True)
        table.add_column("Path")
        table.add_column("Kind")
        table.add_column("Deps", justify="right")
        table.add_column("Reverse deps", justify="right")
        table.add_column("Dependencies")
        table.add_column("Depended on by")
        for e in entities:
            table.add_row(printable(e.path), e.kind.value, str(e.dependency_count()),
                          str(e.reverse_dependency_count()),
                          printable("\n".join(sorted(e.forward_deps))),
                          printable("\n".join(sorted(e.reverse_deps))))
        self.console.print(table)
        if self.cache.cycles:
            print_panel(self.console, "circular dependencies",
                        printable("\n".join(str(c) for c in self.cache.cycles)), style="yellow")

    def print_json(self):
        self.console.print_json(json.dumps(self.report), ensure_ascii=True)


def build_argparser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="libdeps",
        description="Determine the shared library dependencies for a given set of files.",
    )
    ap.add_argument("files", nargs="*", metavar="FILE", help="Discover dependencies for these files")
    ap.add_argument("-f", "--file", action="append", default=[], dest="file_opts", metavar="FILE",
                    help="Discover dependencies for this file (repeatable)")
    ap.add_argument("-d", "--debug", action="store_true", help="Debug script execution; super noisy output")
    ap.add_argument("-v", "--verbose", action="store_true", help="Verbose script execution")
    ap.add_argument("-c", "--colorize", action="store_true", help="Always colorize log output")
    ap.add_argument("--no-color", action="store_true", help="Never use colors")
    ap.add_argument("-q", "--quiet", action="store_true", help="No report, exit status only")
    ap.add_argument("-s", "--sort", choices=[s.value for s in SortOrder], default=None,
                    help="Order of listed dependencies (default: alpha)")
    ap.add_argument("--direct", action="store_true", help="List direct dependencies only")
    ap.add_argument("--dump-cache", action="store_true",
                    help="Print every cached file with its dependencies and reverse dependencies")
    ap.add_argument("--json", action="store_true", help="Print the report as JSON")
    ap.add_argument("--ldd", help="Path to ldd")
    ap.add_argument("--timeout", type=float, help="Seconds to wait for ldd (0 = no timeout)")
    ap.add_argument("--conf", help="Path to libdeps.conf")
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return ap


def configure_logging(args: argparse.Namespace):
    if args.debug:
        level = "debug"
    elif args.verbose:
        level = "info"
    else:
        level = None
    if args.no_color:
        color = False
    elif args.colorize or sys.stdout.isatty():
        color = True
    else:
        color = None
    _logger.Logger.configure(level=level, color=color)


def main(argv: Optional[List[str]] = None, inspector=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    parser = build_argparser()
    args = parser.parse_args(argv)

    if args.conf:
        try:
            config.load(args.conf)
        except FileNotFoundError as e:
            print(str(e), file=sys.stderr)
            return 2
    configure_logging(args)
    log = _logger.Logger("cli")
    my_name = os.path.basename(sys.argv[0]) or "libdeps"

    filenames = args.file_opts + args.files
    if not filenames:
        log.error("Use '--file' argument(s) to discover file dependencies")
        print(f"'{my_name} --help' to see script usage and options", file=sys.stderr)
        return 2

    start = time.time()
    log.info(f"{my_name}: Starting... version {__version__}")
    log.info(f"{my_name}: My PID is {os.getpid()}")

    console = make_console(args.no_color, args.quiet)
    if inspector is None:
        inspector = LddInspector(command=args.ldd, timeout=args.timeout)
    cache = ResolutionCache(inspector=inspector, sort_order=args.sort)
    cli = CLI(console=console, cache=cache, as_json=args.json)

    failures = 0
    for filename in filenames:
        if not cli.cmd_resolve(filename, direct=args.direct, sort=args.sort):
            failures += 1

    if log.is_info():
        for entity in cache.all_entities():
            log.info(f"{entity.path}: {entity.dependency_count()} dependencies, "
                     f"{entity.reverse_dependency_count()} reverse dependencies")

    if args.dump_cache:
        cli.cmd_dump_cache(sort=args.sort)
    if args.json:
        cli.print_json()

    log.info(f"{my_name}: Parsed dependencies for {len(filenames)} files")
    log.info(f"{my_name}: in {time.time() - start:0.1f} seconds")
    if failures:
        log.warning(f"{failures} of {len(filenames)} files could not be resolved")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
