"""Template, key and metadata file management.

Configuration fragments come from the appliance template tree, which
mirrors the filesystem: the template for ``/etc/httpd/conf.d/foo.conf``
lives at ``<template_dir>/etc/httpd/conf.d/foo.conf``.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
from pathlib import Path
from typing import Sequence

from authmode.errors import ArtifactError

logger = logging.getLogger(__name__)

# (pattern, canonical name) pairs applied to mellon generated files.
RenameRule = tuple[re.Pattern[str], str]


def relative_from_root(path: Path) -> Path:
    """Strip the leading separator from an absolute *path*."""
    return path.relative_to(path.anchor) if path.is_absolute() else path


class FileArtifactManager:
    """Copy, remove and rename configuration artifacts.

    :param template_dir: Root of the template tree, or ``None`` when the
        appliance does not provide one.
    :param verbose: Log step detail at INFO instead of DEBUG.
    """

    def __init__(self, template_dir: str | os.PathLike | None, *, verbose: bool = False) -> None:
        self.template_dir = Path(template_dir) if template_dir else None
        self.verbose = verbose

    def _debug_msg(self, msg: str, *args: object) -> None:
        logger.log(logging.INFO if self.verbose else logging.DEBUG, msg, *args)

    def template_path(self, target_dir: Path, name: str) -> Path:
        """Return the template file that :meth:`copy_template` would copy."""
        if self.template_dir is None:
            raise ArtifactError("Template directory is not set (APPLIANCE_TEMPLATE_DIRECTORY)")
        return self.template_dir / relative_from_root(Path(target_dir)) / name

    def copy_template(self, target_dir: str | os.PathLike, name: str) -> Path:
        """Copy template *name* into *target_dir*, overwriting any existing copy.

        :returns: The destination path.
        :raises ArtifactError: If the template is missing or the copy fails.
        """
        target_dir = Path(target_dir)
        src_path = self.template_path(target_dir, name)
        dest_path = target_dir / name
        self._debug_msg("Copying template %s to %s ...", src_path, dest_path)
        if not src_path.is_file():
            raise ArtifactError(f"Missing template file {src_path}")
        try:
            shutil.copyfile(src_path, dest_path)
        except OSError as exc:
            raise ArtifactError(f"Failed to copy {src_path} to {dest_path}: {exc}") from exc
        return dest_path

    def remove(self, path: str | os.PathLike) -> bool:
        """Delete *path* if it exists.

        :returns: ``True`` if a file was removed, ``False`` if none existed.
        """
        path = Path(path)
        if not path.exists():
            return False
        self._debug_msg("Removing %s ...", path)
        try:
            path.unlink()
        except OSError as exc:
            raise ArtifactError(f"Failed to remove {path}: {exc}") from exc
        return True

    def rename_by_pattern(
        self,
        directory: str | os.PathLike,
        pattern: str,
        rules: Sequence[RenameRule],
    ) -> list[tuple[str, str]]:
        """Rename files in *directory* matching glob *pattern*.

        Files are visited in sorted order.  The first rule whose regex
        matches the file name decides the new name; files no rule matches
        are left in place.

        :returns: ``(old_name, new_name)`` for every rename performed.
        """
        directory = Path(directory)
        renamed: list[tuple[str, str]] = []
        for path in sorted(directory.glob(pattern)):
            if not path.is_file():
                continue
            new_name = next((name for regex, name in rules if regex.match(path.name)), None)
            if new_name is None:
                logger.debug("Leaving %s in place", path.name)
                continue
            self._debug_msg("Renaming %s to %s", path.name, new_name)
            try:
                path.rename(directory / new_name)
            except OSError as exc:
                raise ArtifactError(f"Failed to rename {path} to {new_name}: {exc}") from exc
            renamed.append((path.name, new_name))
        return renamed
