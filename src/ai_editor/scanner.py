from __future__ import annotations

import os
import stat
from collections import deque
from pathlib import Path
from typing import TYPE_CHECKING

from ai_editor.config import DEFAULT_STRUCTURE_IGNORES, ScanPolicy
from ai_editor.exceptions import ProjectStructureError, ScanIOError
from ai_editor.logging import logger
from ai_editor.models import ScannedFile, ScanRequest, ScanResult, SkippedEntry, SkipReason

if TYPE_CHECKING:
    from collections.abc import Sequence


def relpath(path: Path, root: Path) -> str:
    """Send the relative path of path from root.

    Args:
        path (Path): the path to "relativise"
        root (Path): the root to relativise from

    Returns:
        str: the relative path from root to path, with POSIX separators.
            Paths outside root come back with `..` segments.
    """
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return Path(os.path.relpath(path, root)).as_posix()


def absolute(path: str | Path, root: Path) -> Path:
    """Resolve `path` against `root` into a normalized absolute path.

    Symlinks are kept as they are, so two spellings of the same location
    compare equal while a link and its target do not.
    """
    return Path(os.path.abspath(root / path))


def read_text_file(path: Path) -> str:
    """Read a file as strict UTF-8.

    Raises:
        ScanIOError: if the file cannot be opened or is not valid UTF-8.

    Returns:
        str: the file content
    """
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ScanIOError(path=path, message=f"Could not read file '{path}': {exc}") from exc


class DirectoryScanner:
    """Collect the relevant source files under a set of scan roots.

    Directories are walked breadth-first from an explicit queue, so deep trees
    never grow the call stack. Files named directly as scan roots bypass the
    policy.
    """

    def __init__(self, policy: ScanPolicy | None = None) -> None:
        self.policy = policy or ScanPolicy()

    def run(self, request: ScanRequest) -> ScanResult:
        return self.scan(request.scan_paths, request.project_root, verbose=request.verbose)

    def scan(
        self,
        scan_paths: Sequence[str | Path],
        project_root: str | Path,
        *,
        verbose: bool = False,
    ) -> ScanResult:
        """Scan files and directories relative to `project_root`.

        Args:
            scan_paths (Sequence[str | Path]): files or directories, relative to
                `project_root` or absolute
            project_root (str | Path): root used to resolve scan paths and to compute
                relative paths
            verbose (bool): log every include/skip decision at debug level

        Returns:
            ScanResult: the files read, in walk order, and the entries left out
        """
        root = Path(os.path.abspath(project_root))
        result = ScanResult()
        seen: set[Path] = set()

        logger.info("scan_started", project_root=str(root), scan_paths=[str(p) for p in scan_paths])

        for scan_path in scan_paths:
            target = absolute(scan_path, root)
            if target in seen:
                self._skip(result, target, SkipReason.DUPLICATE, "already processed", verbose=verbose)
                continue
            try:
                st = target.stat()
            except OSError as exc:
                logger.error("scan_root_inaccessible", path=str(target), error=str(exc))
                result.skipped.append(SkippedEntry(path=target, reason=SkipReason.INACCESSIBLE, detail=str(exc)))
                continue

            if stat.S_ISREG(st.st_mode):
                self._include(result, seen, target, root, verbose=verbose, explicit=True)
            elif stat.S_ISDIR(st.st_mode):
                self._walk(result, seen, target, root, verbose=verbose)
            else:
                logger.warning("scan_root_not_file_or_dir", path=str(target))
                result.skipped.append(
                    SkippedEntry(path=target, reason=SkipReason.NOT_FILE_OR_DIR, detail="neither a file nor a directory"),
                )

        logger.info("scan_completed", files=len(result.files), skipped=len(result.skipped))
        return result

    def _walk(self, result: ScanResult, seen: set[Path], start: Path, root: Path, *, verbose: bool) -> None:
        if verbose:
            logger.debug("scan_directory", path=str(start))
        queue: deque[Path] = deque([start])
        while queue:
            current = queue.popleft()
            try:
                with os.scandir(current) as it:
                    entries = list(it)
            except OSError as exc:
                logger.error("scan_directory_unreadable", path=str(current), error=str(exc))
                result.skipped.append(SkippedEntry(path=current, reason=SkipReason.UNREADABLE, detail=str(exc)))
                continue

            for entry in entries:
                entry_path = current / entry.name
                try:
                    is_dir = entry.is_dir(follow_symlinks=False)
                    is_file = entry.is_file(follow_symlinks=False)
                except OSError as exc:
                    logger.warning("scan_entry_inaccessible", path=str(entry_path), error=str(exc))
                    result.skipped.append(
                        SkippedEntry(path=entry_path, reason=SkipReason.INACCESSIBLE, detail=str(exc)),
                    )
                    continue

                if is_dir:
                    if self.policy.is_excluded_dir(entry.name):
                        self._skip(result, entry_path, SkipReason.EXCLUDED_DIR, relpath(entry_path, root), verbose=verbose)
                    else:
                        queue.append(entry_path)
                elif is_file:
                    if self.policy.is_excluded_file(entry.name):
                        self._skip(result, entry_path, SkipReason.EXCLUDED_FILE, relpath(entry_path, root), verbose=verbose)
                    elif not self.policy.is_relevant_file(entry.name):
                        self._skip(
                            result,
                            entry_path,
                            SkipReason.UNSUPPORTED_TYPE,
                            relpath(entry_path, root),
                            verbose=verbose,
                        )
                    elif entry_path in seen:
                        self._skip(result, entry_path, SkipReason.DUPLICATE, "already processed", verbose=verbose)
                    else:
                        self._include(result, seen, entry_path, root, verbose=verbose)
                else:
                    self._skip(
                        result,
                        entry_path,
                        SkipReason.NOT_FILE_OR_DIR,
                        relpath(entry_path, root),
                        verbose=verbose,
                    )

    @staticmethod
    def _include(
        result: ScanResult,
        seen: set[Path],
        path: Path,
        root: Path,
        *,
        verbose: bool,
        explicit: bool = False,
    ) -> None:
        rel = relpath(path, root)
        try:
            content = read_text_file(path)
        except ScanIOError as exc:
            logger.warning("scan_file_unreadable", path=str(path), error=exc.message)
            result.skipped.append(SkippedEntry(path=path, reason=SkipReason.UNREADABLE, detail=exc.message))
            return
        result.files.append(ScannedFile(file_path=path, relative_path=rel, content=content))
        seen.add(path)
        if verbose:
            logger.debug("scan_included", path=rel, explicit=explicit)

    @staticmethod
    def _skip(result: ScanResult, path: Path, reason: SkipReason, detail: str, *, verbose: bool) -> None:
        result.skipped.append(SkippedEntry(path=path, reason=reason, detail=detail))
        if verbose:
            logger.debug("scan_skipped", path=str(path), reason=str(reason), detail=detail)


def scan(
    scan_paths: Sequence[str | Path],
    project_root: str | Path,
    verbose: bool = False,  # noqa: FBT001, FBT002
    policy: ScanPolicy | None = None,
) -> list[ScannedFile]:
    """Scan with a one-off scanner and return only the files that were read."""
    return DirectoryScanner(policy).scan(scan_paths, project_root, verbose=verbose).files


def generate_project_structure(
    root: str | Path,
    ignore_patterns: Sequence[str] = DEFAULT_STRUCTURE_IGNORES,
) -> str:
    """Render the project tree as an indented bullet list.

    Entries are sorted by name at each level. Any entry whose name contains
    one of `ignore_patterns` is left out, together with its children.

    Args:
        root (str | Path): directory to list
        ignore_patterns (Sequence[str]): substrings of names to skip

    Raises:
        ProjectStructureError: if a directory cannot be listed

    Returns:
        str: the tree, headed by `Project Structure (root: <name>)`
    """
    root_path = Path(os.path.abspath(root))

    def walk(directory: Path, depth: int) -> list[str]:
        lines: list[str] = []
        for entry in sorted(directory.iterdir(), key=lambda p: p.name):
            if any(pattern in entry.name for pattern in ignore_patterns):
                continue
            lines.append(f"{'  ' * depth}- {entry.name}")
            if entry.is_dir() and not entry.is_symlink():
                lines.extend(walk(entry, depth + 1))
        return lines

    try:
        tree = walk(root_path, 0)
    except OSError as exc:
        logger.error("project_structure_failed", root=str(root_path), error=str(exc))
        raise ProjectStructureError(
            root=root_path,
            message=f"Could not generate project structure: {exc}",
        ) from exc
    return f"\nProject Structure (root: {root_path.name})\n" + "\n".join(tree)
