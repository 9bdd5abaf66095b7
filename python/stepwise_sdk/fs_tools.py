"""Filesystem tools: ``save-file`` and ``list-files``.

Both tools report filesystem problems as a structured result
(``success=False`` / an explanatory ``message``) instead of raising, so
the model can see what went wrong and adapt.
"""

from __future__ import annotations

import logging
import os
import threading
import weakref
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from stepwise_sdk.options import FileToolConfig
from stepwise_sdk.tools import ToolSpec

logger = logging.getLogger(__name__)

__all__ = [
    "SaveFileInput",
    "SaveFileOutput",
    "ListFilesInput",
    "ListFilesOutput",
    "FileEntry",
    "make_save_file_tool",
    "make_list_files_tool",
    "file_tools",
]


class _CamelModel(BaseModel):
    """Fields are exposed to the model in camelCase (``filePath``)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SaveFileInput(_CamelModel):
    filename: str = Field(min_length=1, description='Name of the file to save, with extension (e.g. "main.py")')
    content: str = Field(description="Content to write to the file")
    directory: str = Field("out", description="Directory to save the file in, relative to the project root")
    overwrite: bool = Field(True, description="Whether to overwrite an existing file")


class SaveFileOutput(_CamelModel):
    success: bool
    file_path: str
    message: str
    file_size: int


class ListFilesInput(_CamelModel):
    directory: str = Field("out", description="Directory to list files from")
    recursive: bool = Field(False, description="Whether to list files recursively")
    file_types: list[str] = Field(default_factory=list, description='Extensions to keep, e.g. [".py", ".js"]')


class FileEntry(_CamelModel):
    name: str
    path: str
    size: int
    extension: str
    is_directory: bool


class ListFilesOutput(_CamelModel):
    files: list[FileEntry]
    total_files: int
    message: str


# Writes to one path are serialized; the last completed write wins.
_path_locks: weakref.WeakValueDictionary[Path, threading.Lock] = weakref.WeakValueDictionary()
_path_locks_guard = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    with _path_locks_guard:
        return _path_locks.setdefault(path.resolve(), threading.Lock())


def make_save_file_tool(config: FileToolConfig | None = None) -> ToolSpec:
    config = config or FileToolConfig()

    def save_file(args: SaveFileInput) -> SaveFileOutput:
        display_path = str(Path(args.directory) / args.filename)
        target = config.resolve(args.directory) / args.filename
        try:
            with _lock_for(target):
                if target.exists() and not args.overwrite:
                    return SaveFileOutput(
                        success=False,
                        file_path=display_path,
                        message=f"File {args.filename} already exists and overwrite is disabled",
                        file_size=0,
                    )
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(args.content, encoding="utf-8")
                size = target.stat().st_size
        except OSError as exc:
            logger.warning("save-file failed path=%s error=%s", target, exc)
            return SaveFileOutput(
                success=False,
                file_path="",
                message=f"Failed to save file: {exc}",
                file_size=0,
            )
        logger.debug("Saved %s (%d bytes)", target, size)
        return SaveFileOutput(
            success=True,
            file_path=display_path,
            message=f"Successfully saved {args.filename} ({size} bytes)",
            file_size=size,
        )

    return ToolSpec(
        id="save-file",
        description=(
            "Save generated code to a file in the out directory. "
            "Supports any file type and programming language."
        ),
        input_model=SaveFileInput,
        output_model=SaveFileOutput,
        execute=save_file,
    )


def make_list_files_tool(config: FileToolConfig | None = None) -> ToolSpec:
    config = config or FileToolConfig()

    def list_files(args: ListFilesInput) -> ListFilesOutput:
        base = config.resolve(args.directory)
        if not base.is_dir():
            return ListFilesOutput(files=[], total_files=0, message=f"Directory {args.directory} does not exist")

        entries: list[FileEntry] = []

        def scan(real_dir: Path, shown_dir: str) -> None:
            for item in sorted(os.listdir(real_dir)):
                real_path = real_dir / item
                shown_path = os.path.join(shown_dir, item)
                is_dir = real_path.is_dir()
                extension = "" if is_dir else real_path.suffix
                if args.file_types and not is_dir and extension not in args.file_types:
                    continue
                entries.append(
                    FileEntry(
                        name=item,
                        path=shown_path,
                        size=real_path.stat().st_size,
                        extension=extension,
                        is_directory=is_dir,
                    )
                )
                if args.recursive and is_dir:
                    scan(real_path, shown_path)

        try:
            scan(base, args.directory)
        except OSError as exc:
            logger.warning("list-files failed directory=%s error=%s", base, exc)
            return ListFilesOutput(files=[], total_files=0, message=f"Failed to list files: {exc}")

        return ListFilesOutput(
            files=entries,
            total_files=len(entries),
            message=f"Found {len(entries)} items in {args.directory}",
        )

    return ToolSpec(
        id="list-files",
        description="List files in a directory to see what has been generated.",
        input_model=ListFilesInput,
        output_model=ListFilesOutput,
        execute=list_files,
    )


def file_tools(config: FileToolConfig | None = None) -> list[ToolSpec]:
    """Both filesystem tools sharing one configuration."""
    return [make_save_file_tool(config), make_list_files_tool(config)]
