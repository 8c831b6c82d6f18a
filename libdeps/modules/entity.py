# libdeps/modules/entity.py
"""
FileEntity - one binary or shared library known to the resolution cache.

The identity (path, kind) never changes after construction; the forward and
reverse dependency maps only grow, except that a forward edge to a file which
failed to resolve is discarded again.  Each map counts how many times an edge
was added ("hit count"), the keys are what matters.
"""

import os
from typing import Any, Dict, FrozenSet, Optional

from libdeps.modules.descriptor import DependencyKind


class FileEntity:
    def __init__(self, path: str, kind: DependencyKind = DependencyKind.REGULAR,
                 display_name: Optional[str] = None, load_address: Optional[str] = None,
                 created: int = 0):
        if not path:
            raise ValueError("FileEntity needs a path")
        self._path = path
        self._kind = kind
        self.display_name = display_name or path
        self.load_address = load_address
        self.created = created
        # False until ldd has been run successfully on this path
        self.inspected = kind is not DependencyKind.REGULAR
        self._forward: Dict[str, int] = {}
        self._reverse: Dict[str, int] = {}

    @property
    def path(self) -> str:
        return self._path

    @property
    def kind(self) -> DependencyKind:
        return self._kind

    @property
    def shortname(self) -> str:
        return os.path.basename(self._path) or self._path

    # -------------------------------
    # Edges
    # -------------------------------
    def add_forward_dependency(self, dep_path: str) -> bool:
        """Record that this file needs ``dep_path``. Returns False for self-edges."""
        if dep_path == self._path:
            return False
        if self._kind is not DependencyKind.REGULAR:
            raise ValueError(f"{self._kind} file {self._path} can't have dependencies")
        self._forward[dep_path] = self._forward.get(dep_path, 0) + 1
        return True

    def add_reverse_dependency(self, dependent_path: str) -> bool:
        """Record that ``dependent_path`` needs this file. Returns False for self-edges."""
        if dependent_path == self._path:
            return False
        self._reverse[dependent_path] = self._reverse.get(dependent_path, 0) + 1
        return True

    def discard_forward_dependency(self, dep_path: str) -> bool:
        return self._forward.pop(dep_path, None) is not None

    @property
    def forward_deps(self) -> FrozenSet[str]:
        return frozenset(self._forward)

    @property
    def reverse_deps(self) -> FrozenSet[str]:
        return frozenset(self._reverse)

    @property
    def forward_hits(self) -> Dict[str, int]:
        return dict(self._forward)

    @property
    def reverse_hits(self) -> Dict[str, int]:
        return dict(self._reverse)

    # -------------------------------
    # Queries
    # -------------------------------
    def dependency_count(self) -> int:
        return len(self._forward)

    def reverse_dependency_count(self) -> int:
        return len(self._reverse)

    def is_static(self) -> bool:
        return self._kind is DependencyKind.STATIC

    def is_virtual(self) -> bool:
        return self._kind is DependencyKind.VIRTUAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self._path,
            "name": self.display_name,
            "kind": self._kind.value,
            "load_address": self.load_address,
            "inspected": self.inspected,
            "dependencies": sorted(self._forward),
            "reverse_dependencies": sorted(self._reverse),
        }

    def __repr__(self):
        return f"FileEntity({self._path!r}, kind={self._kind.value}, deps={len(self._forward)})"
