"""
cms/repository.py
-----------------------------------------------------------------------------
Create / read / update / delete / duplicate operations over the storage root.

This is the one boundary in the core that performs file I/O.  Every public
method returns either its result or a :class:`~cms.diagnostics.Diagnostic`;
``OSError`` never escapes.

Exports
-------
FileRepository(root)
    ``list_files()``                  -> list[str]
    ``load(name)``                    -> str | Diagnostic
    ``load_document(name)``           -> Document | Diagnostic
    ``create(name, content="")``      -> Diagnostic | None
    ``update(name, content)``         -> Diagnostic | None
    ``delete(name)``                  -> Diagnostic | None
    ``duplicate(source, dest)``       -> Diagnostic | None

Validation order
----------------
``load``, ``update`` and ``delete`` check, in order: name present, extension
allowed, name confined to the root (see :mod:`cms.paths`), file exists.
The existence check runs inside the same ``OSError`` trap as the operation
itself, so a failing ``stat`` is reported like any other OS failure.
``create`` runs the same name checks but relies on exclusive creation
(``open(..., "x")``) instead of an existence pre-check, so it can never
silently overwrite.

Concurrency
-----------
Each mutation is a single OS call.  Two writers racing on the same name end
with whichever write landed last.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, TypeVar

from cms.diagnostics import Diagnostic, DiagnosticCode
from cms.error_mapper import translate_os_error
from cms.paths import FileKind, ResolvedPath, classify, resolve

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Document:
    """A loaded file: its content plus the kind fixed when its name was resolved."""

    name: str
    content: str
    kind: FileKind


class FileRepository:
    """File operations confined to a single storage root directory."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    # -------------------------------------------------------------------------
    # Listing
    # -------------------------------------------------------------------------

    def list_files(self) -> list[str]:
        """
        Return the names of all readable regular files directly under the
        root whose extension is allowed, sorted alphabetically.

        A missing root directory yields an empty list.
        """
        names = []
        try:
            if not self.root.is_dir():
                return []
            for path in self.root.iterdir():
                if not path.is_file() or classify(path) is None:
                    continue
                if not os.access(path, os.R_OK):
                    continue
                names.append(path.name)
        except OSError as exc:
            logger.warning("Could not list %s: %s", self.root, exc)
            return []
        return sorted(names)

    # -------------------------------------------------------------------------
    # Single-file operations
    # -------------------------------------------------------------------------

    def load(self, name: str) -> str | Diagnostic:
        """Return the file's content, or a diagnostic."""
        document = self.load_document(name)
        if isinstance(document, Diagnostic):
            return document
        return document.content

    def load_document(self, name: str) -> Document | Diagnostic:
        """Like :meth:`load`, but also return the file's kind."""
        return self._process(
            name,
            lambda resolved: Document(
                name=resolved.name,
                content=resolved.path.read_text(encoding="utf-8"),
                kind=resolved.kind,
            ),
        )

    def create(self, name: str, content: str = "") -> Diagnostic | None:
        """
        Create *name* with *content*, failing if it already exists.

        Returns
        -------
        None on success; ``missing_file_name``, ``unknown_file_type``,
        ``invalid_file_name``, ``file_exists``, ``could_not_create`` or
        ``os_error`` otherwise.
        """
        resolved = resolve(self.root, name)
        if isinstance(resolved, Diagnostic):
            return resolved

        def write_exclusive(target: ResolvedPath) -> None:
            with target.path.open("x", encoding="utf-8") as fh:
                fh.write(content)

        result = self._trap(resolved, write_exclusive, creating=True)
        if result is None:
            logger.info("Created %s", resolved.name)
        return result

    def update(self, name: str, content: str) -> Diagnostic | None:
        """Overwrite an existing file's content."""

        def overwrite(resolved: ResolvedPath) -> None:
            resolved.path.write_text(content, encoding="utf-8")
            logger.info("Updated %s", resolved.name)

        return self._process(name, overwrite)

    def delete(self, name: str) -> Diagnostic | None:
        """Remove an existing file."""

        def unlink(resolved: ResolvedPath) -> None:
            resolved.path.unlink()
            logger.info("Deleted %s", resolved.name)

        return self._process(name, unlink)

    def duplicate(self, source: str, dest: str) -> Diagnostic | None:
        """
        Copy *source*'s content into a new file *dest*.

        The copy is by value: once created, the two files are independent.
        Any diagnostic from loading the source or creating the destination is
        returned unchanged.
        """
        content = self.load(source)
        if isinstance(content, Diagnostic):
            return content
        return self.create(dest, content=content)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _process(
        self, name: str, action: Callable[[ResolvedPath], T]
    ) -> T | Diagnostic:
        """Resolve *name*, require that it exists, then run *action*."""
        resolved = resolve(self.root, name)
        if isinstance(resolved, Diagnostic):
            return resolved

        def existing(target: ResolvedPath) -> T | Diagnostic:
            if not target.path.exists():
                return Diagnostic(DiagnosticCode.DOES_NOT_EXIST, file_name=target.name)
            return action(target)

        return self._trap(resolved, existing)

    def _trap(
        self,
        resolved: ResolvedPath,
        action: Callable[[ResolvedPath], T],
        *,
        creating: bool = False,
    ) -> T | Diagnostic:
        try:
            return action(resolved)
        except (OSError, UnicodeDecodeError) as exc:
            return translate_os_error(self.root, resolved.path, exc, creating=creating)
