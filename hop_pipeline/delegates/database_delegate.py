# hop_pipeline/delegates/database_delegate.py
import logging
from typing import Any, Optional, Sequence

import psycopg2
import psycopg2.extras
from psycopg2 import sql

from ..errors import PersistenceError

logger = logging.getLogger(__name__)

# Columns stored as integers. Everything else scraped from the catalog is text.
INTEGER_COLUMNS = {"id"}

class DatabaseDelegate:
    """Writes normalized tables into PostgreSQL."""
    def __init__(self, host: str, dbname: str, port: int, user: str, password: str):
        self.host = host
        self.dbname = dbname
        self.port = port
        self.user = user
        self.password = password
        self._conn = None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def connect(self):
        if self._conn is not None:
            return self._conn
        logger.debug("Connecting to PostgreSQL at %s:%s/%s as %s", self.host, self.port, self.dbname, self.user)
        try:
            self._conn = psycopg2.connect(
                host=self.host,
                dbname=self.dbname,
                port=self.port,
                user=self.user,
                password=self.password,
            )
        except psycopg2.Error as e:
            raise PersistenceError("<connection>", str(e).strip()) from e
        logger.info("Connected to database '%s' on %s:%s", self.dbname, self.host, self.port)
        return self._conn

    def close(self):
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.debug("Database connection closed.")

    def write_table(
        self,
        name: str,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
        replace: bool = True,
        primary_key: Optional[str] = None,
    ) -> int:
        """
        Creates (or recreates, when replace is set) the relation `name` and inserts rows.
        Rows must be tuples in the same order as columns. Returns the number of rows written.
        """
        conn = self.connect()
        table = sql.Identifier(name)
        definitions = [
            sql.SQL("{} {}").format(
                sql.Identifier(column),
                sql.SQL("INTEGER" if column in INTEGER_COLUMNS else "TEXT"),
            )
            for column in columns
        ]
        if primary_key:
            definitions.append(sql.SQL("PRIMARY KEY ({})").format(sql.Identifier(primary_key)))
        column_defs = sql.SQL(", ").join(definitions)
        insert = sql.SQL("INSERT INTO {} ({}) VALUES %s").format(
            table, sql.SQL(", ").join(sql.Identifier(column) for column in columns)
        )

        try:
            with conn.cursor() as cursor:
                if replace:
                    cursor.execute(sql.SQL("DROP TABLE IF EXISTS {} CASCADE").format(table))
                cursor.execute(sql.SQL("CREATE TABLE IF NOT EXISTS {} ({})").format(table, column_defs))
                if rows:
                    psycopg2.extras.execute_values(cursor, insert, rows)
            conn.commit()
        except psycopg2.Error as e:
            conn.rollback()
            logger.error("Failed to write table '%s': %s", name, e)
            raise PersistenceError(name, str(e).strip()) from e

        logger.info("Wrote %d rows to table '%s'", len(rows), name)
        return len(rows)

    def create_profile_view(self, view: str, entity_table: str, category_table: str, range_column: Optional[str] = "alpha_acid"):
        """
        Creates a convenience view: one row per hop with its aroma profiles collected
        into an array, and the bounds of `range_column` ("3 - 6%") parsed into numbers.
        The entity table must have been written with primary_key="id".
        """
        conn = self.connect()
        select_columns = [
            sql.SQL("h.*"),
            sql.SQL("array_agg(a.category) FILTER (WHERE a.category IS NOT NULL) AS aroma_profiles"),
        ]
        if range_column:
            column = sql.SQL("h.{}").format(sql.Identifier(range_column))
            select_columns.append(sql.SQL(
                "substring({col} from '^\\s*([0-9]+(?:\\.[0-9]+)?)')::numeric AS {low}"
            ).format(col=column, low=sql.Identifier(f"{range_column}_min")))
            select_columns.append(sql.SQL(
                "substring({col} from '([0-9]+(?:\\.[0-9]+)?)\\s*%?\\s*$')::numeric AS {high}"
            ).format(col=column, high=sql.Identifier(f"{range_column}_max")))

        statement = sql.SQL(
            "CREATE OR REPLACE VIEW {view} AS "
            "SELECT {columns} FROM {hops} h "
            "LEFT JOIN {aromas} a ON a.id = h.id "
            "GROUP BY h.id"
        ).format(
            view=sql.Identifier(view),
            columns=sql.SQL(", ").join(select_columns),
            hops=sql.Identifier(entity_table),
            aromas=sql.Identifier(category_table),
        )

        try:
            with conn.cursor() as cursor:
                cursor.execute(sql.SQL("DROP VIEW IF EXISTS {}").format(sql.Identifier(view)))
                cursor.execute(statement)
            conn.commit()
        except psycopg2.Error as e:
            conn.rollback()
            logger.error("Failed to create view '%s': %s", view, e)
            raise PersistenceError(view, str(e).strip()) from e
        logger.info("Created view '%s'", view)
