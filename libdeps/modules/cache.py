# libdeps/modules/cache.py

"""
ResolutionCache - the shared library dependency graph of everything resolved
so far in this process.

 - one FileEntity per canonical path, created on first request, never evicted
 - ldd runs at most once per path (memoization)
 - circular dependencies are broken with a chain of the paths currently being
   resolved; a detected cycle is recorded in ``cycles`` and logged, not raised
 - forward/reverse edges of a file are only wired once its whole report has
   been processed; when a ParseError unwinds a file, edges other files took
   to it through a cycle are dropped again

Canonical paths: absolute paths are normalised (symlinks are not followed),
a relative input file is made absolute, virtual libraries (linux-vdso,
linux-gate) and bare library names from an unresolved ldd line are kept as
reported.
"""

import enum
import itertools
import os
import threading
from typing import Callable, Dict, Iterable, List, Optional, Union

from libdeps.modules import logger as _logger
from libdeps.modules.config import config
from libdeps.modules.descriptor import (
    DependencyDescriptor,
    DependencyKind,
    LibDepsError,
    ParseError,
    is_virtual_name,
    parse_line,
)
from libdeps.modules.entity import FileEntity
from libdeps.modules.inspector import InspectionFailed, LddInspector

Inspector = Callable[[str], Iterable[str]]


class UnresolvableInput(LibDepsError):
    def __init__(self, path):
        self.path = path
        super().__init__(f"{path} is neither a readable file nor a virtual library")


class SortOrder(enum.Enum):
    ALPHA = "alpha"
    TIME_ASC = "time_asc"
    TIME_DESC = "time_desc"


class CycleDetected:
    """A circular dependency that was broken instead of recursed into."""

    def __init__(self, target: str, chain: List[str]):
        self.target = target
        self.chain = list(chain)

    def __str__(self):
        return " -> ".join(self.chain + [self.target])

    def __repr__(self):
        return f"CycleDetected({self.target!r}, chain={self.chain!r})"


class ResolutionCache:
    def __init__(self, inspector: Optional[Inspector] = None,
                 sort_order: Union[SortOrder, str, None] = None):
        self.inspector = inspector if inspector is not None else LddInspector()
        if sort_order is None:
            sort_order = config.get("output", "sort_order", fallback="alpha")
        self.sort_order = SortOrder(sort_order)
        self.log = _logger.Logger("cache")

        self._cache: Dict[str, FileEntity] = {}
        # insertion ordered: the chain of paths being resolved right now
        self._in_progress: Dict[str, FileEntity] = {}
        self._sequence = itertools.count(1)
        self._lock = threading.RLock()

        self.cycles: List[CycleDetected] = []
        self.inspections = 0

    # ------------------------
    # Public API
    # ------------------------
    def resolve(self, path: str, sort: Union[SortOrder, str, None] = None) -> List[FileEntity]:
        """
        Resolve ``path`` and return every file it needs, directly or not,
        excluding itself.

        Raises UnresolvableInput, InspectionFailed (or InspectionTimeout) and
        ParseError. Nothing is cached for ``path`` when one of them is raised;
        dependencies that were fully resolved before a ParseError stay cached.
        """
        with self._lock:
            key = self._resolve_input(path)
            return self._closure(key, sort)

    def dependencies(self, path: str, direct: bool = False,
                     sort: Union[SortOrder, str, None] = None) -> List[FileEntity]:
        """Dependencies of an already cached file; never runs ldd."""
        with self._lock:
            entity = self.lookup(path)
            if entity is None:
                return []
            if direct:
                return self._sorted(self._materialize(entity.forward_deps), sort)
            return self._closure(entity.path, sort)

    def reverse_dependencies(self, path: str,
                             sort: Union[SortOrder, str, None] = None) -> List[FileEntity]:
        """Cached files that directly depend on ``path``."""
        with self._lock:
            entity = self.lookup(path)
            if entity is None:
                return []
            return self._sorted(self._materialize(entity.reverse_deps), sort)

    def all_entities(self, sort: Union[SortOrder, str, None] = SortOrder.ALPHA) -> List[FileEntity]:
        with self._lock:
            entities = self._sorted(self._cache.values(), sort)
        self.log.debug(f"Returning all cached files; {len(entities)} files currently in cache")
        return entities

    def lookup(self, path: str) -> Optional[FileEntity]:
        with self._lock:
            entity = self._cache.get(path)
            if entity is None:
                entity = self._cache.get(self.canonical_path(path))
            return entity

    def canonical_path(self, path: str, absolute: bool = True) -> str:
        if is_virtual_name(path):
            return path
        if os.path.isabs(path):
            return os.path.normpath(path)
        if absolute:
            return os.path.normpath(os.path.abspath(path))
        return path

    def __len__(self):
        return len(self._cache)

    def __contains__(self, path):
        return self.lookup(path) is not None

    # ------------------------
    # Resolution
    # ------------------------
    def _resolve_input(self, path: str) -> str:
        if is_virtual_name(path):
            self.log.debug(f"{path} is a virtual file")
            if path not in self._cache:
                self._commit(self._new_entity(path, DependencyKind.VIRTUAL))
            return path

        key = self.canonical_path(path)
        if not os.access(key, os.R_OK):
            self.log.warning(f"{key} is *not* readable")
            raise UnresolvableInput(path)

        entity = self._cache.get(key)
        if entity is not None and entity.inspected:
            self.log.debug(f"{key} exists in cache")
            return key

        self._resolve_file(key, display_name=path)
        return key

    def _resolve_file(self, key: str, display_name: Optional[str] = None,
                      load_address: Optional[str] = None) -> FileEntity:
        """Run ldd on ``key``, resolve what it reports, commit the entity."""
        lines = self._inspect(key)

        entity = self._cache.get(key)
        if entity is None:
            entity = self._new_entity(key, DependencyKind.REGULAR, display_name, load_address)

        pending: List[FileEntity] = []
        self._in_progress[key] = entity
        try:
            for line in lines:
                line = line.strip()
                if not line:
                    continue
                try:
                    descriptor = parse_line(line)
                except ParseError:
                    self.log.error(f"Can't determine dependency info for '{line}' (from {key})")
                    raise
                if descriptor.is_static:
                    self.log.debug(f"Adding static file '{key}'")
                    entity = self._as_static(entity)
                    pending = []
                    break
                dep = self._resolve_descriptor(key, descriptor)
                if dep is not None:
                    pending.append(dep)
        except ParseError:
            if key not in self._cache:
                # files committed through a cycle back to key point at nothing now
                self._drop_edges_to(key)
            raise
        finally:
            del self._in_progress[key]

        for dep in pending:
            if entity.add_forward_dependency(dep.path):
                self.log.info(f"Adding {dep.path} to dependencies for {key}")
            dep.add_reverse_dependency(key)
        entity.inspected = True
        entity = self._commit(entity)
        self.log.info(f"Returning; {key} has {entity.dependency_count()} dependencies")
        return entity

    def _resolve_descriptor(self, parent: str, descriptor: DependencyDescriptor) -> Optional[FileEntity]:
        target = self.canonical_path(descriptor.target, absolute=False)
        if target == parent:
            self.log.debug(f"Can't add dependencies to self; {parent}")
            return None

        self.log.debug(f"Checking for {target} in cache")
        dep = self._cache.get(target)
        if dep is not None:
            self.log.debug(f"{target} exists in cache")
            return dep

        dep = self._in_progress.get(target)
        if dep is not None:
            cycle = CycleDetected(target, list(self._in_progress))
            self.cycles.append(cycle)
            self.log.warning(f"Recursive dependency detected; breaking {cycle}")
            return dep

        if descriptor.is_virtual:
            self.log.debug(f"Adding virtual file '{target}'")
            return self._commit(self._new_entity(
                target, DependencyKind.VIRTUAL, descriptor.library_name, descriptor.load_address))

        if not os.path.isabs(target) or not os.access(target, os.R_OK):
            self.log.warning(f"{target} can't be inspected; keeping it as a leaf")
            return self._commit(self._new_entity(
                target, DependencyKind.REGULAR, descriptor.library_name, descriptor.load_address))

        self.log.info(f"Recursing with '{descriptor.library_name}'")
        if self.log.is_debug():
            for path in self._in_progress:
                self.log.debug(f"- {path}")
        try:
            return self._resolve_file(target, descriptor.library_name, descriptor.load_address)
        except InspectionFailed as e:
            self.log.warning(f"{e}; keeping {target} as a leaf")
            return self._commit(self._new_entity(
                target, DependencyKind.REGULAR, descriptor.library_name, descriptor.load_address))

    def _inspect(self, key: str) -> List[str]:
        self.inspections += 1
        try:
            lines = list(self.inspector(key))
        except OSError as e:
            raise InspectionFailed(key, str(e)) from e
        if not any(line.strip() for line in lines):
            raise InspectionFailed(key, "no output")
        if self.log.is_debug():
            self.log.debug(f"Dependencies found by 'ldd' for {key} are:")
            for line in lines:
                self.log.debug(f" - {line.strip()}")
        return lines

    # ------------------------
    # Cache storage
    # ------------------------
    def _new_entity(self, path, kind, display_name=None, load_address=None) -> FileEntity:
        return FileEntity(path, kind, display_name=display_name, load_address=load_address,
                          created=next(self._sequence))

    def _commit(self, entity: FileEntity) -> FileEntity:
        existing = self._cache.get(entity.path)
        if existing is not None:
            if existing is not entity:
                self.log.info(f"{entity.display_name} already exists in cache!")
            return existing
        self._cache[entity.path] = entity
        self.log.info(f"Added {entity.display_name} to cache")
        return entity

    def _drop_edges_to(self, path: str):
        for entity in self._cache.values():
            if entity.discard_forward_dependency(path):
                self.log.debug(f"Dropped {path} from dependencies for {entity.path}")

    def _as_static(self, entity: FileEntity) -> FileEntity:
        static = FileEntity(entity.path, DependencyKind.STATIC, display_name=entity.display_name,
                            created=entity.created)
        for path, hits in entity.reverse_hits.items():
            for _ in range(hits):
                static.add_reverse_dependency(path)
        if self._cache.get(entity.path) is entity:
            self._cache[entity.path] = static
        return static

    # ------------------------
    # Listings
    # ------------------------
    def _materialize(self, paths: Iterable[str]) -> List[FileEntity]:
        return [self._cache[p] for p in paths if p in self._cache]

    def _closure(self, key: str, sort=None) -> List[FileEntity]:
        root = self._cache.get(key)
        if root is None:
            return []
        seen = set()
        stack = list(root.forward_deps)
        while stack:
            path = stack.pop()
            if path in seen or path == key:
                continue
            seen.add(path)
            entity = self._cache.get(path)
            if entity is not None:
                stack.extend(entity.forward_deps)
        return self._sorted(self._materialize(seen), sort)

    def _sorted(self, entities: Iterable[FileEntity], sort=None) -> List[FileEntity]:
        order = SortOrder(sort) if sort is not None else self.sort_order
        if order is SortOrder.ALPHA:
            return sorted(entities, key=lambda e: e.path)
        return sorted(entities, key=lambda e: e.created, reverse=order is SortOrder.TIME_DESC)
