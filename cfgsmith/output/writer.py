# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Output writer: stamp, validate and materialize rendered files.

Write Process:
    1. Resolve each file's final path (an explicit target directory
       overrides the declared one).
    2. Prefix the auto-generated banner according to the file extension.
    3. In validate mode, compare every file with the existing file of the
       same name. All comparisons happen before anything is written.
    4. In dry-run mode, stop here and report path and content.
    5. Clear target directories flagged for cleaning (explicit only).
    6. Create target directories and write the files, overwriting existing
       ones.

Banner:
    ``## THIS IS AN AUTO-GENERATED FILE`` for hash-comment formats and
    ``// THIS IS AN AUTO-GENERATED FILE`` for json/js. Other extensions are
    written unchanged.
"""

from __future__ import annotations

from collections.abc import Sequence
import difflib
from pathlib import Path
import shutil

from cfgsmith.exceptions import ValidationMismatchError
from cfgsmith.logging import Logger, get_global_logger
from cfgsmith.results import RenderedFile, WrittenFile

AUTO_GEN_COMMENT = "{marker} THIS IS AN AUTO-GENERATED FILE\n"
POUND_COMMENT = frozenset(
    {"yaml", "yml", "properties", "py", "sh", "conf", "cfg", "ini", "toml"}
)
DOUBLE_SLASH_COMMENT = frozenset({"json", "js"})


def add_banner(content: str, file_name: str) -> str:
    """Prefix ``content`` with the auto-generated banner for ``file_name``.

    Example:
        >>> add_banner("a=1\\n", "app.properties")
        '## THIS IS AN AUTO-GENERATED FILE\\na=1\\n'
        >>> add_banner("a=1\\n", "app.txt")
        'a=1\\n'
    """
    ext = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""
    if ext in POUND_COMMENT:
        return AUTO_GEN_COMMENT.format(marker="##") + content
    if ext in DOUBLE_SLASH_COMMENT:
        return AUTO_GEN_COMMENT.format(marker="//") + content
    return content


def compare_with_existing(path: Path, content: str) -> list[str] | None:
    """Diff ``content`` against the file at ``path``.

    Returns:
        None if the file does not exist, an empty list if it matches, else
        the unified diff (existing -> generated).
    """
    if not path.is_file():
        return None
    existing = path.read_text(encoding="utf-8")
    if existing == content:
        return []
    return list(
        difflib.unified_diff(
            existing.splitlines(keepends=True),
            content.splitlines(keepends=True),
            fromfile=f"{path} (existing)",
            tofile=f"{path} (generated)",
        )
    )


def _clear_directory(directory: Path) -> None:
    for child in directory.iterdir():
        if child.is_dir() and not child.is_symlink():
            shutil.rmtree(child)
        else:
            child.unlink()


def write_outputs(
    files: Sequence[RenderedFile],
    *,
    target_dir: Path | None = None,
    dry_run: bool = False,
    clean: bool = False,
    validate: bool = False,
    banner: bool = True,
    cleaned: set[Path] | None = None,
    logger: Logger | None = None,
) -> tuple[list[WrittenFile], int]:
    """Write rendered files to disk.

    Args:
        files: Rendered files in write order.
        target_dir: Directory overriding every declared target directory.
        dry_run: Report instead of writing. The filesystem is not touched.
        clean: Clear every target directory before writing.
        validate: Compare with existing files before writing.
        banner: Prefix the auto-generated banner.
        cleaned: Directories already cleared in this run. Updated in place;
            a directory in it is not cleared again. Share one set across
            calls so later roots keep the files of earlier ones.
        logger: Logger for progress output. Defaults to the global logger.

    Returns:
        A tuple (written files, number of files validated against disk).

    Raises:
        ValidationMismatchError: If validate mode finds a differing file.
        OSError: If a directory or file cannot be created or written.
    """
    logger = logger or get_global_logger()

    planned: list[tuple[Path, str, bool]] = []
    for rendered in files:
        directory = (target_dir or rendered.target_dir).resolve()
        content = rendered.content
        if banner:
            content = add_banner(content, rendered.name)
        planned.append((directory / rendered.name, content, clean or rendered.clean))

    validated = 0
    if validate:
        for path, content, _ in planned:
            diff = compare_with_existing(path, content)
            if diff is None:
                logger.warning(
                    "OUTPUT", f"Cannot find existing file at {path}. Skipping validation."
                )
                continue
            if diff:
                raise ValidationMismatchError(str(path), diff)
            validated += 1
            logger.verbose("OUTPUT", f"Validated {path}")

    if dry_run:
        report = [WrittenFile(path, content, "dry-run") for path, content, _ in planned]
        return report, validated

    if cleaned is None:
        cleaned = set()
    for path, _, clear in planned:
        directory = path.parent
        if not clear or directory in cleaned:
            continue
        cleaned.add(directory)
        if directory.is_dir():
            logger.verbose("OUTPUT", f"Cleaning {directory}")
            _clear_directory(directory)

    written: list[WrittenFile] = []
    for path, content, _ in planned:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        logger.verbose("OUTPUT", f"Generated {path}")
        written.append(WrittenFile(path, content, "written"))
    return written, validated
