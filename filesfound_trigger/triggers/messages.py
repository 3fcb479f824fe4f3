"""User-facing messages of the file search and the build cause."""

from __future__ import annotations

DISPLAY_NAME = "Build when files are found"

DIRECTORY_NOT_SPECIFIED = "Please specify the directory to search."
FILES_NOT_SPECIFIED = "Please specify the files to find."
NO_FILES_FOUND = "No files found."


def node_not_found(node: str) -> str:
    return f"Node not found: {node}"


def node_offline(node: str) -> str:
    return f"Node is offline: {node}"


def directory_not_found(user: str) -> str:
    return f"Directory not found or not accessible by user '{user}'."


def single_file_found(name: str) -> str:
    return f"Found 1 file: {name}"


def multiple_files_found(count: int) -> str:
    return f"Found {count} files."


def cause(directory: str, files: str, node: str = "") -> str:
    where = f"{directory} on node {node}" if node else directory
    return f"Files found: {where} matching {files}"


def cause_with_ignored_files(directory: str, files: str, ignored_files: str, node: str = "") -> str:
    return f"{cause(directory, files, node)}, ignoring {ignored_files}"
