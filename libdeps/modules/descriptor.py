# libdeps/modules/descriptor.py
"""
Parser for the lines printed by ldd.

Each line of an ldd report describes one direct dependency of the inspected
file, in one of these shapes (tried in this order, first match wins):

  1. ``<name> =>  (<address>)``          unresolved, or a virtual library
  2. ``statically linked``               the inspected file itself is static
  3. ``<name> => <path> (<address>)``    fully resolved
  4. ``<name> (<address>)``              the name is the path

Anything else raises ParseError: it means ldd printed something we have
never seen before, and guessing would corrupt the dependency graph.
"""

import enum
import re
from typing import Optional


class LibDepsError(Exception):
    """Base class of every error raised by libdeps."""


class ParseError(LibDepsError):
    def __init__(self, line: str):
        self.line = line
        super().__init__(f"Can't determine dependency info for line: {line!r}")


class DependencyKind(enum.Enum):
    REGULAR = "regular"
    STATIC = "static"
    VIRTUAL = "virtual"

    def __str__(self):
        return self.value


# kernel-injected pseudo libraries (vDSO on x86_64/arm, linux-gate on i386);
# a bare library name, never a path
VIRTUAL_NAME_RE = re.compile(r"^linux-(?:vdso|gate)[\w.\-]*$")

_NAME = r"(?P<name>[/\w\-+].*?)"
_ADDRESS = r"\((?P<address>0x[0-9a-fA-F]+)\)"

LINE_SHAPES = [
    ("unresolved", re.compile(rf"^{_NAME} =>\s+{_ADDRESS}$")),
    ("static", re.compile(r"^statically linked")),
    ("resolved", re.compile(rf"^{_NAME} => (?P<path>/.*) {_ADDRESS}$")),
    ("simple", re.compile(rf"^{_NAME} {_ADDRESS}$")),
]


def is_virtual_name(name: str) -> bool:
    """True if ``name`` names a kernel-provided library with no backing file."""
    return bool(name) and VIRTUAL_NAME_RE.match(name) is not None


class DependencyDescriptor:
    """One parsed ldd line."""

    def __init__(self, library_name: Optional[str], resolved_path: Optional[str] = None,
                 load_address: Optional[str] = None,
                 kind: DependencyKind = DependencyKind.REGULAR):
        self.library_name = library_name
        self.resolved_path = resolved_path
        self.load_address = load_address
        self.kind = kind

    @property
    def is_virtual(self) -> bool:
        return self.kind is DependencyKind.VIRTUAL

    @property
    def is_static(self) -> bool:
        return self.kind is DependencyKind.STATIC

    @property
    def target(self) -> Optional[str]:
        """Cache key of the dependency: the resolved path, else the library name."""
        return self.resolved_path or self.library_name

    def __eq__(self, other):
        if not isinstance(other, DependencyDescriptor):
            return NotImplemented
        return (self.library_name, self.resolved_path, self.load_address, self.kind) == \
            (other.library_name, other.resolved_path, other.load_address, other.kind)

    def __repr__(self):
        return (f"DependencyDescriptor(library_name={self.library_name!r}, "
                f"resolved_path={self.resolved_path!r}, load_address={self.load_address!r}, "
                f"kind={self.kind.value})")


def parse_line(line: str) -> DependencyDescriptor:
    """Turn one ldd output line into a DependencyDescriptor."""
    text = line.strip()
    for shape, pattern in LINE_SHAPES:
        match = pattern.match(text)
        if not match:
            continue
        if shape == "static":
            return DependencyDescriptor(None, kind=DependencyKind.STATIC)
        name = match.group("name")
        address = match.group("address")
        if shape == "resolved":
            return DependencyDescriptor(name, match.group("path"), address)
        # shapes 1 and 4 carry no separate path: the name is the key
        kind = DependencyKind.VIRTUAL if is_virtual_name(name) else DependencyKind.REGULAR
        return DependencyDescriptor(name, name, address, kind)
    raise ParseError(line)
