"""
SQLAlchemy models for qcd.

Two kinds of tables live in one SQLite file:

- bookmark tables (``main`` and any further logical table with the same
  schema) holding idx, directory and alias of remembered directories
- the ``_stack`` table holding per-session navigation stacks

Column types mirror the plain ``create table if not exists`` schema so that
existing database files keep working.
"""
from typing import Dict, Optional
from sqlalchemy import Integer, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from qcd.constants import MAIN_TABLE_NAME, STACK_TABLE_NAME


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class BookmarkMixin:
    """
    Columns shared by every bookmark table.

    Attributes:
        id: Surrogate primary key, only used to target deletes and updates
        idx: User facing unsigned 32-bit ordinal, unique per table
        directory: Absolute path of the bookmarked directory
        alias: Optional name, empty string means no alias
    """
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    idx: Mapped[int] = mapped_column(Integer, nullable=True)
    directory: Mapped[str] = mapped_column(Text, nullable=False)
    alias: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default="")

    def __repr__(self):
        return f"<{type(self).__name__}(id={self.id}, idx={self.idx}, alias='{self.alias}', directory='{self.directory}')>"


_bookmark_models: Dict[str, type] = {}


def bookmark_model(table_name: str = MAIN_TABLE_NAME) -> type:
    """
    Get the mapped class for a bookmark table, creating it on first use.

    Args:
        table_name: Name of the logical bookmark table

    Returns:
        Declarative model class bound to ``table_name``
    """
    model = _bookmark_models.get(table_name)
    if model is None:
        if table_name == STACK_TABLE_NAME:
            raise ValueError(f"Reserved table name: {table_name}")
        class_name = "Bookmark" if table_name == MAIN_TABLE_NAME else f"Bookmark_{table_name}"
        model = type(class_name, (BookmarkMixin, Base), {"__tablename__": table_name})
        _bookmark_models[table_name] = model
    return model


Bookmark = bookmark_model(MAIN_TABLE_NAME)


class StackEntry(Base):
    """
    One directory on a session's navigation stack.

    The entry with the greatest id within a session is the top of that
    session's stack.

    Attributes:
        id: Surrogate primary key, increases with insertion order
        sessionid: Opaque id of the shell session owning the entry
        timestamp: Creation time in epoch seconds
        directory: Absolute path of the pushed directory
    """
    __tablename__ = STACK_TABLE_NAME

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    sessionid: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[int] = mapped_column(Integer, nullable=False)
    directory: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self):
        return f"<StackEntry(id={self.id}, sessionid='{self.sessionid}', directory='{self.directory}')>"
