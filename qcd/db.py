"""
Bookmark store for qcd.

Provides the durable, uniqueness-enforcing operations on bookmark tables
using SQLAlchemy over a single SQLite file. Each invocation of the CLI opens
one Database, performs one logical operation and exits.
"""
import logging
from pathlib import Path
from typing import Optional, List, Generator, Any, Dict, Union
from contextlib import contextmanager

from sqlalchemy import create_engine, select, func, exists, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool
from sqlalchemy.exc import SQLAlchemyError

from qcd.constants import MAIN_TABLE_NAME, MAX_IDX, MIN_IDX
from qcd.errors import (
    StorageUnavailable, DuplicateIdx, DuplicateAlias, NotFound, InvalidIdx
)
from qcd.models import Base, StackEntry, bookmark_model
from qcd.resolver import Idx, Alias, IdxAlias

logger = logging.getLogger(__name__)

_SEARCHABLE_COLUMNS = ("idx", "directory")


def _check_idx(idx: int, table: str) -> None:
    if not MIN_IDX <= idx <= MAX_IDX:
        raise InvalidIdx(f"Idx out of range: {idx}", table=table, idx=idx)


class Database:
    """
    Bookmark store backed by an SQLite file.

    Opening a Database creates the file (and its parent directory) if needed
    and makes sure the ``main`` bookmark table and the ``_stack`` table exist.
    Further bookmark tables with the same schema are created on first use.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None, url: Optional[str] = None, echo: bool = False):
        """
        Open (or create) the database.

        Args:
            path: Database file path
            url: Full SQLAlchemy URL (overrides path)
            echo: Log all SQL statements

        Raises:
            StorageUnavailable: If the database cannot be opened or initialized
        """
        if url:
            self.url = url
            self.path = None
        elif path:
            self.path = Path(path)
            self.url = f"sqlite:///{self.path}"
        else:
            raise ValueError("Database requires a path or a url")

        try:
            if self.path is not None:
                self.path.parent.mkdir(parents=True, exist_ok=True)

            self.engine = create_engine(
                self.url,
                poolclass=NullPool,
                echo=echo
            )
            event.listen(self.engine, "connect", self._configure_sqlite)

            self.Session = sessionmaker(bind=self.engine, autoflush=False)

            Base.metadata.create_all(
                self.engine,
                tables=[bookmark_model(MAIN_TABLE_NAME).__table__, StackEntry.__table__]
            )
        except (SQLAlchemyError, OSError) as e:
            raise StorageUnavailable(f"Could not open database\n{e}") from e

        self._ready_tables = {MAIN_TABLE_NAME}
        logger.debug("Opened database %s", self.url)

    @staticmethod
    def _configure_sqlite(dbapi_conn, connection_record):
        """Wait for other qcd processes instead of failing on a locked file."""
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA busy_timeout = 5000")
        cursor.close()

    @contextmanager
    def session(self, expire_on_commit: bool = True) -> Generator[Session, None, None]:
        """
        Context manager for database sessions.

        Args:
            expire_on_commit: If False, objects won't expire after commit (useful for detached access)

        Yields:
            SQLAlchemy session with automatic commit/rollback

        Raises:
            StorageUnavailable: If a statement or the commit fails in the database
        """
        session = self.Session()
        session.expire_on_commit = expire_on_commit
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.debug("Database error: %s", e)
            raise StorageUnavailable(f"Could not access database\n{e}") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def ensure_table(self, table: str) -> type:
        """
        Make sure a bookmark table exists.

        Args:
            table: Name of the logical bookmark table

        Returns:
            The model class mapped to the table
        """
        model = bookmark_model(table)
        if table not in self._ready_tables:
            try:
                model.__table__.create(self.engine, checkfirst=True)
            except SQLAlchemyError as e:
                raise StorageUnavailable(f"Could not create table {table}\n{e}", table=table) from e
            self._ready_tables.add(table)
        return model

    def max_idx(self, table: str = MAIN_TABLE_NAME) -> int:
        """
        Get the largest idx of a table.

        Returns:
            Largest idx, or 0 if the table is empty
        """
        model = self.ensure_table(table)
        with self.session() as session:
            result = session.execute(select(func.max(model.idx))).scalar()
        return result or 0

    def next_idx(self, table: str = MAIN_TABLE_NAME) -> int:
        """Default idx for a new bookmark."""
        return self.max_idx(table) + 1

    def contains_idx(self, table: str, idx: int) -> bool:
        """Check if idx can be found in table."""
        model = self.ensure_table(table)
        with self.session() as session:
            return session.execute(select(exists().where(model.idx == idx))).scalar()

    def contains_alias(self, table: str, alias: str) -> bool:
        """Check if alias can be found in table."""
        model = self.ensure_table(table)
        with self.session() as session:
            return session.execute(select(exists().where(model.alias == alias))).scalar()

    def insert(self, table: str, idx: int, directory: str, alias: str = "") -> int:
        """
        Add a bookmark.

        Args:
            table: Bookmark table name
            idx: Unique idx of the new row
            directory: Absolute directory path
            alias: Optional unique alias, empty for none

        Returns:
            The stored idx

        Raises:
            InvalidIdx: If idx is not an unsigned 32-bit value
            DuplicateIdx: If idx is already used
            DuplicateAlias: If the non-empty alias is already used
        """
        _check_idx(idx, table)
        alias = alias or ""
        if self.contains_idx(table, idx):
            raise DuplicateIdx(table=table, idx=idx)
        if alias and self.contains_alias(table, alias):
            raise DuplicateAlias(table=table, alias=alias)

        model = self.ensure_table(table)
        with self.session() as session:
            session.add(model(idx=idx, directory=str(directory), alias=alias))

        logger.debug("Added %s with idx %d to %s", directory, idx, table)
        return idx

    def remove(self, table: str, id: int) -> bool:
        """
        Delete a bookmark by surrogate id (not idx!).

        Returns:
            True if a row was deleted, False if id did not exist
        """
        model = self.ensure_table(table)
        with self.session() as session:
            row = session.get(model, id)
            if row is None:
                return False
            session.delete(row)

        logger.debug("Removed row %d from %s", id, table)
        return True

    def list(self, table: str = MAIN_TABLE_NAME) -> List[Any]:
        """
        Get all bookmarks of a table.

        Returns:
            Rows sorted ascending by idx
        """
        model = self.ensure_table(table)
        with self.session(expire_on_commit=False) as session:
            result = session.execute(select(model).order_by(model.idx))
            return list(result.scalars())

    def find_exact(self, table: str, column: str, value: Union[int, str]):
        """
        Get the first row where column equals value.

        Args:
            table: Bookmark table name
            column: Either "idx" or "directory"
            value: Value to look for

        Returns:
            The matching row

        Raises:
            NotFound: If no row matches
        """
        if column not in _SEARCHABLE_COLUMNS:
            raise ValueError(f"Cannot search column: {column}")

        model = self.ensure_table(table)
        with self.session(expire_on_commit=False) as session:
            row = session.execute(
                select(model).where(getattr(model, column) == value).limit(1)
            ).scalars().first()

        if row is None:
            context = {"idx": value} if column == "idx" else {"directory": value}
            raise NotFound("Entry not contained in table", table=table, **context)
        return row

    def search_dir(self, table: str, directory: str):
        """Get the row of a particular directory, raises NotFound if absent."""
        return self.find_exact(table, "directory", str(directory))

    def alias_prefix_matches(self, table: str, prefix: str) -> List[Any]:
        """
        Get all rows whose alias starts with prefix.

        Matching is case-sensitive. Rows are sorted ascending by idx.
        """
        model = self.ensure_table(table)
        with self.session(expire_on_commit=False) as session:
            # LIKE ignores ASCII case in SQLite, so it only narrows the candidates
            result = session.execute(
                select(model)
                .where(model.alias.startswith(prefix, autoescape=True))
                .order_by(model.idx)
            )
            return [row for row in result.scalars() if (row.alias or "").startswith(prefix)]

    def update(self, table: str, idx: int, new_value: IdxAlias) -> bool:
        """
        Set a new idx or alias for the row with the given idx.

        Args:
            table: Bookmark table name
            idx: Current idx of the row
            new_value: Idx(...) or Alias(...) holding the new value

        Returns:
            True if the row changed, False if the value was already set

        Raises:
            NotFound: If no row has idx
            DuplicateIdx: If the new idx is used by another row
            DuplicateAlias: If the new alias is used by another row
        """
        model = self.ensure_table(table)
        with self.session() as session:
            row = session.execute(
                select(model).where(model.idx == idx).limit(1)
            ).scalars().first()
            if row is None:
                raise NotFound("Entry not contained in table", table=table, idx=idx)

            # Unchanged values return before the uniqueness check, which
            # would otherwise find the row itself
            if isinstance(new_value, Idx):
                if new_value.value == row.idx:
                    return False
                _check_idx(new_value.value, table)
                if session.execute(select(exists().where(model.idx == new_value.value))).scalar():
                    raise DuplicateIdx("Idx already contained in table", table=table, idx=new_value.value)
                row.idx = new_value.value
            elif isinstance(new_value, Alias):
                if new_value.value == (row.alias or ""):
                    return False
                if new_value.value and session.execute(
                    select(exists().where(model.alias == new_value.value))
                ).scalar():
                    raise DuplicateAlias("Alias already contained in table", table=table, alias=new_value.value)
                row.alias = new_value.value
            else:
                raise TypeError(f"Expected Idx or Alias, got {type(new_value).__name__}")

        logger.debug("Updated %s of idx %d in %s", new_value.column, idx, table)
        return True

    def info(self) -> Dict[str, Any]:
        """
        Get database information.

        Returns:
            Dictionary with url, path and row counts per table
        """
        info = {
            "url": self.url,
            "path": str(self.path) if self.path else None,
            "tables": {},
        }
        with self.session() as session:
            for table in sorted(self._ready_tables):
                model = bookmark_model(table)
                info["tables"][table] = session.execute(select(func.count(model.id))).scalar()
            info["tables"][StackEntry.__tablename__] = session.execute(
                select(func.count(StackEntry.id))
            ).scalar()
        return info


def get_db(path: Optional[Union[str, Path]] = None) -> Database:
    """
    Open the database used by the command line tool.

    Args:
        path: Database file path (defaults to the configured location)

    Returns:
        Database instance
    """
    from qcd.config import get_config

    config = get_config()
    return Database(path or config.get_database_path(), echo=config.database_echo)
