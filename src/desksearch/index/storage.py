"""SQLite FTS5 index store."""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Sequence, Tuple

import numpy as np

from desksearch.embedding.encoder import EmbeddingModel
from desksearch.index.fields import (
    CONTENT,
    CONTENT_HASH,
    FILE_SIZE,
    LANGUAGE,
    LAST_MODIFIED,
    LOCATION_ID,
    UNIQUE_ID,
)
from desksearch.index.highlight import highlight
from desksearch.index.matching import build_suggestions, occurs_within
from desksearch.index.querysyntax import Clause, ParsedQuery, parse_query, words
from desksearch.index.store import FacetCounts, Match, SearchRequest, SearchResponse
from desksearch.models import IndexDocument

LOGGER = logging.getLogger(__name__)

COLUMNS = {
    UNIQUE_ID: "unique_id",
    LOCATION_ID: "location_id",
    CONTENT_HASH: "content_hash",
    FILE_SIZE: "file_size",
    LAST_MODIFIED: "last_modified",
    LANGUAGE: "language",
}
_INTEGER_COLUMNS = {"file_size", "last_modified"}

# Suggestion candidates checked per requested suggestion
_CANDIDATE_FACTOR = 10


def _phrase(sequence: Sequence[str]) -> str:
    return '"' + " ".join(sequence) + '"'


class SQLiteIndexStore:
    """Persistence and search layer for indexed documents.

    Full-text matching and ranking use an FTS5 table; facets and exact field
    matches use plain tables. When an embedding model is supplied every
    upserted document also gets a vector. More-like-this lookups only read
    the stored vectors, so a store opened without a model still serves them.

    A single connection is shared by all threads and every statement runs
    under one re-entrant lock.
    """

    def __init__(self, db_path: Path, *, embedder: EmbeddingModel | None = None) -> None:
        self.db_path = Path(db_path)
        self.embedder = embedder
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA synchronous=NORMAL;")
        self._conn.execute("PRAGMA foreign_keys=ON;")
        self._ensure_schema()

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                yield self._conn
                self._conn.commit()
            except Exception:
                self._conn.rollback()
                raise

    def _ensure_schema(self) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    id INTEGER PRIMARY KEY,
                    unique_id TEXT NOT NULL UNIQUE,
                    location_id TEXT NOT NULL,
                    content_hash TEXT NOT NULL,
                    file_size INTEGER NOT NULL,
                    last_modified INTEGER NOT NULL,
                    language TEXT NOT NULL,
                    embedding BLOB,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            conn.execute(
                """
                CREATE TRIGGER IF NOT EXISTS documents_updated
                AFTER UPDATE ON documents
                BEGIN
                    UPDATE documents SET updated_at = CURRENT_TIMESTAMP WHERE id = NEW.id;
                END;
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS attributes (
                    document_id INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    value TEXT NOT NULL,
                    PRIMARY KEY (document_id, name),
                    FOREIGN KEY(document_id) REFERENCES documents(id) ON DELETE CASCADE
                )
                """
            )
            conn.execute(
                """CREATE INDEX IF NOT EXISTS idx_attributes_name_value
                    ON attributes(name, value)
                """
            )
            conn.execute(
                """
                CREATE VIRTUAL TABLE IF NOT EXISTS documents_fts
                USING fts5(content, tokenize = 'unicode61 remove_diacritics 0')
                """
            )
            conn.execute(
                """
                CREATE VIRTUAL TABLE IF NOT EXISTS documents_vocab
                USING fts5vocab(documents_fts, row)
                """
            )

    def upsert(self, document: IndexDocument) -> None:
        """Insert or fully replace the document with the same unique id."""
        embedding = None
        if self.embedder is not None:
            vector = self.embedder.embed_document(document.content)
            if vector is not None:
                embedding = sqlite3.Binary(np.asarray(vector, dtype="float32").tobytes())

        with self.transaction() as conn:
            conn.execute(
                """
                INSERT INTO documents(unique_id, location_id, content_hash, file_size,
                                      last_modified, language, embedding)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(unique_id) DO UPDATE SET
                    location_id = excluded.location_id,
                    content_hash = excluded.content_hash,
                    file_size = excluded.file_size,
                    last_modified = excluded.last_modified,
                    language = excluded.language,
                    embedding = excluded.embedding
                """,
                (
                    document.unique_id,
                    document.location_id,
                    document.content_hash,
                    document.file_size,
                    document.last_modified,
                    document.language,
                    embedding,
                ),
            )
            doc_id = conn.execute(
                "SELECT id FROM documents WHERE unique_id = ?", (document.unique_id,)
            ).fetchone()["id"]
            conn.execute("DELETE FROM attributes WHERE document_id = ?", (doc_id,))
            conn.execute("DELETE FROM documents_fts WHERE rowid = ?", (doc_id,))
            conn.executemany(
                "INSERT INTO attributes(document_id, name, value) VALUES (?, ?, ?)",
                [(doc_id, name, value) for name, value in document.attributes.items()],
            )
            conn.execute(
                "INSERT INTO documents_fts(rowid, content) VALUES (?, ?)",
                (doc_id, document.content),
            )

    def delete(self, unique_id: str) -> None:
        with self.transaction() as conn:
            self._delete(conn, unique_id)

    def _delete(self, conn: sqlite3.Connection, unique_id: str) -> bool:
        row = conn.execute("SELECT id FROM documents WHERE unique_id = ?", (unique_id,)).fetchone()
        if row is None:
            return False
        conn.execute("DELETE FROM attributes WHERE document_id = ?", (row["id"],))
        conn.execute("DELETE FROM documents_fts WHERE rowid = ?", (row["id"],))
        conn.execute("DELETE FROM documents WHERE id = ?", (row["id"],))
        return True

    def remove_missing_files(self) -> int:
        """Remove documents whose files no longer exist."""
        with self.transaction() as conn:
            rows = conn.execute("SELECT unique_id FROM documents").fetchall()
            missing = [row["unique_id"] for row in rows if not Path(row["unique_id"]).exists()]
            for unique_id in missing:
                self._delete(conn, unique_id)
        return len(missing)

    def _clause_sql(self, clause: Clause) -> Tuple[str, List[object]]:
        params: List[object] = []
        if clause.matches_all:
            sql = "1"
        elif clause.is_content:
            if clause.wildcard:
                sql = "d.id IN (SELECT rowid FROM documents_fts WHERE length(content) > 0)"
            elif clause.words:
                sql = "d.id IN (SELECT rowid FROM documents_fts WHERE documents_fts MATCH ?)"
                params.append(_phrase(clause.words))
            else:
                sql = "0"
        elif clause.field in COLUMNS:
            column = COLUMNS[clause.field]
            if clause.wildcard:
                sql = f"d.{column} IS NOT NULL"
            elif column in _INTEGER_COLUMNS:
                try:
                    params.append(int(clause.text))
                    sql = f"d.{column} = ?"
                except ValueError:
                    sql = "0"
            else:
                sql = f"d.{column} = ?"
                params.append(clause.text)
        else:
            sql = "EXISTS (SELECT 1 FROM attributes a WHERE a.document_id = d.id AND a.name = ?"
            params.append(clause.field)
            if not clause.wildcard:
                sql += " AND a.value = ?"
                params.append(clause.text)
            sql += ")"
        if clause.negated:
            sql = f"NOT ({sql})"
        return sql, params

    def _where(self, queries: Sequence[ParsedQuery]) -> Tuple[str, List[object]]:
        conditions: List[str] = []
        params: List[object] = []
        for parsed in queries:
            if not parsed.groups:
                return "0", []
            for group in parsed.groups:
                parts = []
                for clause in group:
                    sql, clause_params = self._clause_sql(clause)
                    parts.append(sql)
                    params.extend(clause_params)
                conditions.append("(" + " OR ".join(parts) + ")")
        return " AND ".join(conditions) or "1", params

    def _facet_counts(
        self, conn: sqlite3.Connection, fields: Sequence[str], where: str, params: List[object]
    ) -> FacetCounts:
        counts: FacetCounts = {}
        matched = f"(SELECT d.id FROM documents d WHERE {where})"
        for field in fields:
            if field in COLUMNS:
                column = COLUMNS[field]
                rows = conn.execute(
                    f"""
                    SELECT CAST(f.{column} AS TEXT) AS value,
                           SUM(CASE WHEN f.id IN {matched} THEN 1 ELSE 0 END) AS count
                    FROM documents f
                    GROUP BY value ORDER BY count DESC, value
                    """,
                    params,
                ).fetchall()
            else:
                rows = conn.execute(
                    f"""
                    SELECT f.value AS value,
                           SUM(CASE WHEN f.document_id IN {matched} THEN 1 ELSE 0 END) AS count
                    FROM attributes f
                    WHERE f.name = ?
                    GROUP BY value ORDER BY count DESC, value
                    """,
                    [*params, field],
                ).fetchall()
            counts[field] = [(row["value"], int(row["count"])) for row in rows]
        return counts

    def _fields(self, conn: sqlite3.Connection, row: sqlite3.Row) -> Dict[str, str]:
        fields = {name: str(row[column]) for name, column in COLUMNS.items()}
        for attribute in conn.execute(
            "SELECT name, value FROM attributes WHERE document_id = ?", (row["id"],)
        ):
            fields[attribute["name"]] = attribute["value"]
        return fields

    def query(self, request: SearchRequest) -> SearchResponse:
        parsed = parse_query(request.query)
        where, params = self._where([parsed, *(parse_query(f) for f in request.filters)])
        terms = parsed.content_terms()

        with self._lock:
            conn = self._conn
            total = conn.execute(
                f"SELECT COUNT(*) FROM documents d WHERE {where}", params
            ).fetchone()[0]
            response = SearchResponse(total_matches=total)
            if request.facet_fields:
                response.facet_counts = self._facet_counts(conn, request.facet_fields, where, params)
            if request.rows <= 0 or total == 0:
                return response

            top = self._ranked(conn, terms, where, params, request.rows)
            response.max_score = top[0]["score"]
            for row in top:
                unique_id = row["unique_id"]
                response.matches.append(Match(unique_id, row["score"], self._fields(conn, row)))
                if request.highlight_field == CONTENT:
                    text = conn.execute(
                        "SELECT content FROM documents_fts WHERE rowid = ?", (row["id"],)
                    ).fetchone()
                    fragments = highlight(
                        text["content"] if text else "",
                        terms,
                        snippets=request.highlight_snippets,
                        fragment_size=request.highlight_fragment_size,
                    )
                    response.highlights[unique_id] = {CONTENT: fragments} if fragments else {}

            if request.similar_field and request.similar_count > 0:
                response.similar = self._similar(
                    conn, [row["id"] for row in top], request.similar_count
                )
        return response

    def _ranked(
        self,
        conn: sqlite3.Connection,
        terms: Sequence[Sequence[str]],
        where: str,
        params: List[object],
        rows: int,
    ) -> List[sqlite3.Row]:
        """Best ``rows`` matches, highest bm25 relevance first.

        Without content terms every match scores 1.0 and the unique id decides
        the order.
        """
        columns = ", ".join(f"d.{column}" for column in COLUMNS.values())
        if terms:
            # bm25() is lower for better matches
            ranking = (
                "LEFT JOIN (SELECT rowid, -bm25(documents_fts) AS relevance FROM documents_fts"
                " WHERE documents_fts MATCH ?) s ON s.rowid = d.id"
            )
            score = "COALESCE(s.relevance, 0.0)"
            params = [" OR ".join(_phrase(term) for term in terms), *params]
        else:
            ranking = ""
            score = "1.0"
        return conn.execute(
            f"""
            SELECT d.id, {columns}, {score} AS score
            FROM documents d {ranking}
            WHERE {where}
            ORDER BY score DESC, d.unique_id
            LIMIT ?
            """,
            [*params, rows],
        ).fetchall()

    def _similar(
        self, conn: sqlite3.Connection, doc_ids: Sequence[int], count: int
    ) -> Dict[str, List[str]]:
        stored = conn.execute(
            "SELECT id, unique_id, embedding FROM documents WHERE embedding IS NOT NULL"
        ).fetchall()
        if not stored:
            LOGGER.debug("No stored embeddings, similar documents unavailable")
            return {}
        ids = [row["unique_id"] for row in stored]
        positions = {row["id"]: idx for idx, row in enumerate(stored)}
        matrix = np.vstack([np.frombuffer(row["embedding"], dtype="float32") for row in stored])

        similar: Dict[str, List[str]] = {}
        for doc_id in doc_ids:
            position = positions.get(doc_id)
            if position is None:
                continue
            scores = matrix @ matrix[position]
            order = np.argsort(scores)[::-1]
            similar[ids[position]] = [
                ids[idx] for idx in order if idx != position and scores[idx] > 0
            ][:count]
        return similar

    def suggest(
        self, term: str, slop: int, in_order: bool, max_count: int
    ) -> Dict[str, Dict[str, str]]:
        typed = words(term)
        if not typed:
            return {}
        prefix = typed[-1]
        with self._lock:
            conn = self._conn
            candidates = [
                row["term"]
                for row in conn.execute(
                    """
                    SELECT term FROM documents_vocab
                    WHERE substr(term, 1, length(?)) = ?
                    ORDER BY doc DESC, term
                    LIMIT ?
                    """,
                    (prefix, prefix, max(max_count, 1) * _CANDIDATE_FACTOR),
                )
            ]

            def phrase_exists(phrase: List[str]) -> bool:
                near = "NEAR(" + " ".join(_phrase([word]) for word in phrase) + f", {max(slop, 0)})"
                found = conn.execute(
                    "SELECT content FROM documents_fts WHERE documents_fts MATCH ? LIMIT 20",
                    (near,),
                ).fetchall()
                return any(occurs_within(words(row["content"]), phrase, slop, in_order) for row in found)

            return build_suggestions(term, candidates, phrase_exists, max_count)
