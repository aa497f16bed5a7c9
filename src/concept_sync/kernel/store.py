from __future__ import annotations

import json
import sqlite3
import uuid
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

Document = Dict[str, Any]


def fresh_id() -> str:
    return str(uuid.uuid4())


class DocumentStore:
    """Key-addressed JSON documents, grouped into named collections, in SQLite.

    Each concept keeps its state in collections prefixed with its own name
    (`Wishlist.places`), so concepts never read each other's documents.
    """

    def __init__(self, path: str) -> None:
        self._path = path
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._ensure_schema()

    @property
    def path(self) -> str:
        return self._path

    def _ensure_schema(self) -> None:
        cur = self._conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS documents (
                collection TEXT NOT NULL,
                id TEXT NOT NULL,
                data_json TEXT NOT NULL,
                PRIMARY KEY (collection, id)
            )
            """
        )
        cur.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_documents_collection
            ON documents(collection)
            """
        )
        self._conn.commit()

    def collection(self, name: str) -> "Collection":
        return Collection(self, name)

    def collections(self) -> List[str]:
        cur = self._conn.execute("SELECT DISTINCT collection FROM documents ORDER BY collection")
        return [row["collection"] for row in cur.fetchall()]

    def close(self) -> None:
        self._conn.close()

    # Low-level helpers used by Collection

    def _select(
        self,
        collection: str,
        filters: Mapping[str, Any],
        limit: Optional[int] = None,
    ) -> List[Document]:
        where, params = _where_clause(collection, filters)
        sql = f"SELECT id, data_json FROM documents WHERE {where} ORDER BY rowid"
        if limit is not None:
            sql += f" LIMIT {int(limit)}"
        cur = self._conn.execute(sql, params)
        return [json.loads(row["data_json"]) for row in cur.fetchall()]

    def _insert(self, collection: str, doc: Document) -> None:
        self._conn.execute(
            "INSERT INTO documents (collection, id, data_json) VALUES (?, ?, json(?))",
            (collection, doc["_id"], json.dumps(doc)),
        )
        self._conn.commit()

    def _replace(self, collection: str, doc: Document) -> None:
        self._conn.execute(
            "UPDATE documents SET data_json = json(?) WHERE collection = ? AND id = ?",
            (json.dumps(doc), collection, doc["_id"]),
        )
        self._conn.commit()

    def _delete(self, collection: str, filters: Mapping[str, Any], limit: Optional[int]) -> int:
        ids = [doc["_id"] for doc in self._select(collection, filters, limit=limit)]
        if not ids:
            return 0
        self._conn.executemany(
            "DELETE FROM documents WHERE collection = ? AND id = ?",
            [(collection, doc_id) for doc_id in ids],
        )
        self._conn.commit()
        return len(ids)


def _where_clause(collection: str, filters: Mapping[str, Any]) -> Tuple[str, List[Any]]:
    clauses = ["collection = ?"]
    params: List[Any] = [collection]
    for key, value in filters.items():
        if key == "_id":
            clauses.append("id = ?")
            params.append(value)
        elif isinstance(value, (dict, list)):
            clauses.append(f"json_extract(data_json, '$.{key}') = json(?)")
            params.append(json.dumps(value))
        elif isinstance(value, bool):
            # json_extract yields 1/0 for JSON booleans
            clauses.append(f"json_extract(data_json, '$.{key}') = ?")
            params.append(int(value))
        elif value is None:
            clauses.append(f"json_type(data_json, '$.{key}') = 'null'")
        else:
            clauses.append(f"json_extract(data_json, '$.{key}') = ?")
            params.append(value)
    return " AND ".join(clauses), params


class Collection:
    """A named set of documents supporting equality-filtered CRUD."""

    def __init__(self, store: DocumentStore, name: str) -> None:
        self._store = store
        self.name = name

    def insert_one(self, doc: Mapping[str, Any]) -> str:
        document = dict(doc)
        document.setdefault("_id", fresh_id())
        self._store._insert(self.name, document)
        return document["_id"]

    def find_one(self, filters: Optional[Mapping[str, Any]] = None) -> Optional[Document]:
        docs = self._store._select(self.name, filters or {}, limit=1)
        return docs[0] if docs else None

    def find(self, filters: Optional[Mapping[str, Any]] = None) -> List[Document]:
        return self._store._select(self.name, filters or {})

    def update_one(self, filters: Mapping[str, Any], changes: Mapping[str, Any]) -> bool:
        """Set top-level fields on the first matching document."""
        doc = self.find_one(filters)
        if doc is None:
            return False
        doc.update({key: value for key, value in changes.items() if key != "_id"})
        self._store._replace(self.name, doc)
        return True

    def delete_one(self, filters: Mapping[str, Any]) -> bool:
        return self._store._delete(self.name, filters, limit=1) == 1

    def delete_many(self, filters: Mapping[str, Any]) -> int:
        return self._store._delete(self.name, filters, limit=None)

    def count(self, filters: Optional[Mapping[str, Any]] = None) -> int:
        return len(self.find(filters))

    def __iter__(self) -> Iterator[Document]:
        return iter(self.find())
