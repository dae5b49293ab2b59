"""
File system tools - every path must be absolute and sit under one of the
configured roots. Failures come back as text for the model to read.
Implements: read_file, read_directory, read_stat, write_file,
create_directory, delete_file, remove_directory
"""

import logging
import os
import shutil
from datetime import datetime, timezone
from typing import Optional

from agentgraph.shared.config import ToolConfig
from agentgraph.tools.base import FunctionTool
from agentgraph.tools.tool_schemas import (
    CreateDirectoryArgs,
    DeleteFileArgs,
    ReadDirectoryArgs,
    ReadFileArgs,
    ReadStatArgs,
    RemoveDirectoryArgs,
    WriteFileArgs,
)

logger = logging.getLogger(__name__)


class PathGuard:
    """Confines tool paths to a set of root directories."""

    def __init__(self, roots):
        self.roots = [os.path.realpath(r) for r in roots]

    def check(self, path: str) -> tuple[Optional[str], Optional[str]]:
        """Returns (resolved_path, None) or (None, error_text)."""
        if not path or not os.path.isabs(path):
            return None, f"Use an absolute path, not a relative one: {path}"
        resolved = os.path.realpath(path)
        for root in self.roots:
            if os.path.commonpath([root, resolved]) == root:
                return resolved, None
        return None, f"Path is outside the allowed roots: {path} (allowed roots: {', '.join(self.roots)})"

    def describe(self) -> str:
        return ", ".join(self.roots)


def _iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def _os_error(action: str, path: str, e: OSError) -> str:
    if isinstance(e, FileNotFoundError):
        return f"Not found: {path}"
    if isinstance(e, PermissionError):
        return f"Permission denied: {path}"
    if isinstance(e, NotADirectoryError):
        return f"Not a directory: {path}"
    if isinstance(e, IsADirectoryError):
        return f"Is a directory, not a file: {path}"
    logger.error(f"{action} error on {path}: {e}")
    return f"Failed to {action} {path}: {e}"


class FileTools:
    """Holds the shared guard and limits; each method backs one tool."""

    def __init__(self, roots, max_file_size_bytes: int = 1_048_576):
        self.guard = PathGuard(roots)
        self.max_file_size = max_file_size_bytes

    async def read_file(self, file_path: str) -> str:
        resolved, error = self.guard.check(file_path)
        if error:
            return error
        try:
            if os.path.isdir(resolved):
                return f"Is a directory, not a file: {resolved}"
            size = os.path.getsize(resolved)
            if size > self.max_file_size:
                return f"File too large: {size} bytes (max {self.max_file_size})"
            with open(resolved, "r", encoding="utf-8", errors="replace") as f:
                return f.read()
        except OSError as e:
            return _os_error("read", file_path, e)

    async def read_directory(self, dir_path: str) -> str:
        resolved, error = self.guard.check(dir_path)
        if error:
            return error
        try:
            entries = sorted(os.scandir(resolved), key=lambda e: e.name)
        except OSError as e:
            return _os_error("list", dir_path, e)
        if not entries:
            return f"Directory is empty: {resolved}"

        lines = []
        for entry in entries:
            kind = "dir" if entry.is_dir() else "file"
            try:
                st = entry.stat()
                lines.append(f"[{kind}] {entry.name} ({st.st_size} bytes, modified {_iso(st.st_mtime)})")
            except OSError:
                lines.append(f"[{kind}] {entry.name}")
        return f"Directory {resolved} contains:\n\n" + "\n".join(lines)

    async def read_stat(self, path: str) -> str:
        resolved, error = self.guard.check(path)
        if error:
            return error
        try:
            st = os.stat(resolved)
        except OSError as e:
            return _os_error("stat", path, e)
        kind = "directory" if os.path.isdir(resolved) else "file"
        return (
            f"path: {resolved}\n"
            f"type: {kind}\n"
            f"size: {st.st_size} bytes\n"
            f"created: {_iso(st.st_ctime)}\n"
            f"modified: {_iso(st.st_mtime)}\n"
            f"accessed: {_iso(st.st_atime)}"
        )

    async def write_file(self, file_path: str, content: str, append: bool = False) -> str:
        resolved, error = self.guard.check(file_path)
        if error:
            return error
        try:
            parent = os.path.dirname(resolved)
            if not os.path.isdir(parent):
                os.makedirs(parent, exist_ok=True)
            with open(resolved, "a" if append else "w", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            return _os_error("write", file_path, e)
        verb = "Appended" if append else "Wrote"
        return f"{verb} {len(content)} characters to {resolved}"

    async def create_directory(self, dir_path: str) -> str:
        resolved, error = self.guard.check(dir_path)
        if error:
            return error
        if os.path.isdir(resolved):
            return f"Directory already exists: {resolved}"
        try:
            os.makedirs(resolved)
        except OSError as e:
            return _os_error("create", dir_path, e)
        return f"Created directory: {resolved}"

    async def delete_file(self, file_path: str) -> str:
        resolved, error = self.guard.check(file_path)
        if error:
            return error
        if os.path.isdir(resolved):
            return f"Is a directory, use remove_directory: {resolved}"
        try:
            os.remove(resolved)
        except OSError as e:
            return _os_error("delete", file_path, e)
        return f"Deleted file: {resolved}"

    async def remove_directory(self, dir_path: str, recursive: bool = False) -> str:
        resolved, error = self.guard.check(dir_path)
        if error:
            return error
        if resolved in self.guard.roots:
            return f"Refusing to remove an allowed root: {resolved}"
        try:
            if recursive:
                shutil.rmtree(resolved)
            else:
                os.rmdir(resolved)
        except OSError as e:
            if not recursive and os.path.isdir(resolved) and os.listdir(resolved):
                return f"Directory is not empty (pass recursive=true): {resolved}"
            return _os_error("remove", dir_path, e)
        return f"Removed directory: {resolved}"

    def as_tools(self) -> list[FunctionTool]:
        roots = self.guard.describe()
        limit_mb = self.max_file_size / 1024 / 1024
        return [
            FunctionTool(
                "read_file",
                f"Read a text file (max {limit_mb:.0f}MB). Absolute paths under: {roots}",
                self.read_file, ReadFileArgs,
            ),
            FunctionTool(
                "read_directory",
                f"List a directory with sizes and modification times. Absolute paths under: {roots}",
                self.read_directory, ReadDirectoryArgs,
            ),
            FunctionTool(
                "read_stat",
                f"Show type, size and timestamps of a file or directory. Absolute paths under: {roots}",
                self.read_stat, ReadStatArgs,
            ),
            FunctionTool(
                "write_file",
                f"Write or append text to a file, creating parent directories. Absolute paths under: {roots}",
                self.write_file, WriteFileArgs,
            ),
            FunctionTool(
                "create_directory",
                f"Create a directory and any missing parents. Absolute paths under: {roots}",
                self.create_directory, CreateDirectoryArgs,
            ),
            FunctionTool(
                "delete_file",
                f"Delete a file. Absolute paths under: {roots}",
                self.delete_file, DeleteFileArgs,
            ),
            FunctionTool(
                "remove_directory",
                f"Remove a directory (recursive=true to remove its contents). Absolute paths under: {roots}",
                self.remove_directory, RemoveDirectoryArgs,
            ),
        ]


def create_file_tools(config: ToolConfig) -> list[FunctionTool]:
    return FileTools(config.roots, config.max_file_size_bytes).as_tools()
