from typing import List, Optional, Protocol

from ..schemas import CollectionInfo, DocumentsResponse, GeneratedQuery, QueryParams, SaveResult


class DataSource(Protocol):
    def set_active_database(self, database: Optional[str]) -> None: ...

    def list_collections(self) -> List[CollectionInfo]: ...

    def fetch_documents(self, collection: str, limit: int, skip: int, query: QueryParams) -> DocumentsResponse: ...

    def export_documents(self, collection: str, query: QueryParams) -> str: ...


class QueryGenerator(Protocol):
    def generate_query(self, prompt: str, collection: str, share_samples: bool) -> GeneratedQuery: ...


class FileSaver(Protocol):
    def save_file(self, default_filename: str, content: str) -> SaveResult: ...
