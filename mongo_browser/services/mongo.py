import json
import logging
import threading
import uuid
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Tuple

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.errors import PyMongoError
from pymongo.read_preferences import ReadPreference as MongoReadPreference

from ..schemas import CollectionInfo, DocumentsResponse, QueryParams, ReadPreference
from ..utils import bson_type_name, from_extended_json, to_jsonable

logger = logging.getLogger(__name__)

_READ_PREFERENCES = {
    ReadPreference.PRIMARY: MongoReadPreference.PRIMARY,
    ReadPreference.PRIMARY_PREFERRED: MongoReadPreference.PRIMARY_PREFERRED,
    ReadPreference.SECONDARY: MongoReadPreference.SECONDARY,
    ReadPreference.SECONDARY_PREFERRED: MongoReadPreference.SECONDARY_PREFERRED,
    ReadPreference.NEAREST: MongoReadPreference.NEAREST,
}


def _sort_spec(sort: Dict[str, Any]) -> List[Tuple[str, Any]]:
    spec = []
    for field, direction in sort.items():
        if isinstance(direction, (int, float)) and not isinstance(direction, bool):
            spec.append((field, ASCENDING if direction >= 0 else DESCENDING))
        else:
            # e.g. {"$meta": "textScore"}
            spec.append((field, direction))
    return spec


def _hint_spec(hint: Any) -> Any:
    if isinstance(hint, dict):
        return list(hint.items())
    return hint


class MongoDataSource:
    """Reads collections and documents from the active database of one client."""

    def __init__(self, client: MongoClient, database: Optional[str] = None) -> None:
        self.client = client
        self.database = database

    def set_active_database(self, database: Optional[str]) -> None:
        self.database = database
        if database:
            logger.info("Data source now operating on database: %s", database)
        else:
            logger.info("Data source active database cleared.")

    def _db(self):
        if not self.database:
            raise RuntimeError("No active database connection.")
        return self.client[self.database]

    def _collection(self, name: str, params: QueryParams):
        col = self._db()[name]
        return col.with_options(read_preference=_READ_PREFERENCES[ReadPreference(params.read_preference)])

    def list_collections(self) -> List[CollectionInfo]:
        db = self._db()
        result = []
        for name in db.list_collection_names():
            count = 0
            try:
                count = db[name].estimated_document_count()
            except PyMongoError as e:
                logger.warning("Failed to get document count for %s: %s", name, e)
            result.append(CollectionInfo(name=name, documentCount=count))
        return result

    def _build_pipeline(self, params: QueryParams, skip: Optional[int], limit: Optional[int]) -> List[Dict[str, Any]]:
        match = from_extended_json(params.match_filter())
        pipeline: List[Dict[str, Any]] = [{"$match": match}]
        if params.sort:
            pipeline.append({"$sort": params.sort})
        pipeline.extend(from_extended_json(stage) for stage in params.pipeline or [])
        if skip:
            pipeline.append({"$skip": skip})
        if limit:
            pipeline.append({"$limit": limit})
        if params.projection:
            pipeline.append({"$project": params.projection})
        return pipeline

    def _find(self, collection: str, params: QueryParams, skip: Optional[int] = None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        col = self._collection(collection, params)
        if params.pipeline:
            options: Dict[str, Any] = {}
            if params.collation:
                options["collation"] = params.collation
            if params.hint:
                options["hint"] = params.hint
            return list(col.aggregate(self._build_pipeline(params, skip, limit), **options))

        cursor = col.find(from_extended_json(params.match_filter()), params.projection or None)
        if params.sort:
            cursor = cursor.sort(_sort_spec(params.sort))
        if params.collation:
            cursor = cursor.collation(params.collation)
        if params.hint:
            cursor = cursor.hint(_hint_spec(params.hint))
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        return list(cursor)

    def count_documents(self, collection: str, params: QueryParams) -> int:
        col = self._collection(collection, params)
        return col.count_documents(from_extended_json(params.match_filter()))

    def fetch_documents(self, collection: str, limit: int, skip: int, query: QueryParams) -> DocumentsResponse:
        logger.info(
            "Fetching documents from collection: %s (limit: %s, skip: %s, params: %s)",
            collection, limit, skip, json.dumps(query.to_dict(), default=str),
        )
        try:
            documents = self._find(collection, query, skip=skip, limit=limit)
            total = self.count_documents(collection, query)
        except PyMongoError:
            logger.exception("Failed to retrieve documents from collection %s", collection)
            raise
        logger.info("Retrieved %d of %d documents from collection %s", len(documents), total, collection)
        return DocumentsResponse(documents=[to_jsonable(d) for d in documents], totalDocuments=total)

    def export_documents(self, collection: str, query: QueryParams) -> str:
        """All matching documents as NDJSON."""
        logger.info("Exporting collection %s with params: %s", collection, json.dumps(query.to_dict(), default=str))
        documents = self._find(collection, query)
        return "\n".join(json.dumps(to_jsonable(d), ensure_ascii=False, default=str) for d in documents)

    def schema_and_samples(self, collection: str, sample_count: int = 2) -> Tuple[List[Dict[str, Any]], str]:
        """Sample documents plus a short field -> type summary for the query helper."""
        samples = list(self._db()[collection].aggregate([{"$sample": {"size": sample_count}}]))
        types: Dict[str, List[str]] = defaultdict(list)
        for doc in samples:
            for key, value in doc.items():
                t = bson_type_name(value)
                if t not in types[key]:
                    types[key].append(t)

        if not types:
            summary = f"No schema could be inferred from sample documents in {collection} (collection might be empty or samples invalid)."
        else:
            lines = [f"Schema for {collection} (inferred from {len(samples)} samples):", "{"]
            for key, names in types.items():
                type_str = " | ".join(names)
                if "Date" in names:
                    type_str += ' (ISODate("YYYY-MM-DDTHH:mm:ss.sssZ"))'
                elif "ObjectId" in names:
                    type_str += ' (ObjectId("24-character-hex-string"))'
                lines.append(f"  {key}: {type_str}")
            lines.append("}")
            summary = "\n".join(lines)
        logger.debug("Schema summary for %s: %s", collection, summary)
        return [to_jsonable(d) for d in samples], summary


class ConnectionManager:
    """
    Manages MongoClient instances and their browser sessions in-memory.
    For production, consider persistence and auth.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._clients: Dict[str, MongoClient] = {}
        self._sessions: Dict[str, Any] = {}

    def create(self, uri: str, session_factory: Callable[[MongoClient], Any], server_selection_timeout_ms: int = 5000) -> str:
        client = MongoClient(uri, serverSelectionTimeoutMS=server_selection_timeout_ms)
        # Trigger server selection to validate connection
        try:
            client.admin.command("ping")
        except Exception:
            client.close()
            raise
        conn_id = str(uuid.uuid4())
        session = session_factory(client)
        with self._lock:
            self._clients[conn_id] = client
            self._sessions[conn_id] = session
        logger.info("Opened connection %s", conn_id)
        return conn_id

    def get(self, conn_id: str):
        with self._lock:
            return self._sessions.get(conn_id)

    def close(self, conn_id: str) -> bool:
        with self._lock:
            client = self._clients.pop(conn_id, None)
            session = self._sessions.pop(conn_id, None)
        if session is not None:
            session.close()
        if client:
            client.close()
            logger.info("Closed connection %s", conn_id)
            return True
        return False

    def list_ids(self):
        with self._lock:
            return list(self._clients.keys())


conn_mgr = ConnectionManager()
