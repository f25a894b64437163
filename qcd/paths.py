"""Path canonicalization for qcd."""
import os
from pathlib import Path
from typing import Optional, Union

from qcd.errors import InvalidPath

PathLike = Union[str, bytes, os.PathLike]


def clean_path(path: PathLike, cwd: Optional[PathLike] = None) -> str:
    """
    Get a unique, absolute text representation of a path.

    Relative paths are joined to cwd (default: the process working directory)
    and '.'/'..' components are collapsed lexically. Symlinks are not resolved.

    Args:
        path: Path to clean
        cwd: Directory relative paths are resolved against

    Returns:
        Absolute path as str

    Raises:
        InvalidPath: If the path cannot be made absolute or is not valid UTF-8
    """
    try:
        text = os.fsdecode(path)
        if cwd is not None and not os.path.isabs(text):
            text = os.path.join(os.fsdecode(cwd), text)
        text = os.path.abspath(text)
    except (OSError, TypeError, ValueError) as e:
        raise InvalidPath(f"Could not get absolute path\n{e}") from e

    try:
        # Undecodable bytes surface as lone surrogates
        text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise InvalidPath("Only UTF-8 paths supported", directory=repr(text)) from e
    return text


def get_cwd() -> str:
    """Return the current work directory as clean path."""
    try:
        cwd = Path.cwd()
    except OSError as e:
        raise InvalidPath(f"Could not get current work directory\n{e}") from e
    return clean_path(cwd)
