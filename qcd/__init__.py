"""
qcd - quickly change directories

A directory bookmark store with per-session navigation stacks, built on
SQLAlchemy.

Design Principles:
- Single SQLite database file shared by all shell sessions
- Directories are found by idx or by (an unambiguous prefix of) an alias
- One short-lived connection and one operation per invocation
- The core raises typed errors; only the CLI prints and exits

Example Usage:
    >>> from qcd import Database, DirectoryStack, resolve
    >>> db = Database("bookmarks.sqlite")
    >>> db.insert("main", db.next_idx(), "/home/me/projects", alias="proj")
    >>> resolve(db, "pro").directory
    '/home/me/projects'
    >>> stack = DirectoryStack(db)
    >>> stack.push("20240101120000000000000", "/tmp")
"""

__version__ = "0.3.0"
__author__ = "qcd Contributors"

# Core database API
from qcd.db import Database, get_db

# Resolution
from qcd.resolver import Idx, Alias, classify, resolve

# Stack
from qcd.stack import DirectoryStack

# Configuration
from qcd.config import QcdConfig, get_config, init_config

# Models
from qcd.models import Bookmark, StackEntry, bookmark_model

# Errors
from qcd.errors import (
    ErrorKind,
    QcdError,
    StorageUnavailable,
    DuplicateIdx,
    DuplicateAlias,
    NotFound,
    Ambiguous,
    EmptyStack,
    InvalidPath,
    InvalidIdx,
)

# Utilities
from qcd.paths import clean_path, get_cwd

__all__ = [
    # Database
    "Database",
    "get_db",
    # Resolution
    "Idx",
    "Alias",
    "classify",
    "resolve",
    # Stack
    "DirectoryStack",
    # Config
    "QcdConfig",
    "get_config",
    "init_config",
    # Models
    "Bookmark",
    "StackEntry",
    "bookmark_model",
    # Errors
    "ErrorKind",
    "QcdError",
    "StorageUnavailable",
    "DuplicateIdx",
    "DuplicateAlias",
    "NotFound",
    "Ambiguous",
    "EmptyStack",
    "InvalidPath",
    "InvalidIdx",
    # Utilities
    "clean_path",
    "get_cwd",
]
