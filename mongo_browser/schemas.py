from enum import Enum
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field


class ReadPreference(str, Enum):
    PRIMARY = "primary"
    PRIMARY_PREFERRED = "primaryPreferred"
    SECONDARY = "secondary"
    SECONDARY_PREFERRED = "secondaryPreferred"
    NEAREST = "nearest"


QUERY_FIELDS = ("query", "sort", "filter", "pipeline", "projection", "collation", "hint")


class QueryParams(BaseModel):
    """Canonical query record. Unset fields stay None and are dropped on dump."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    query: Optional[Dict[str, Any]] = None
    sort: Optional[Dict[str, Any]] = None
    filter: Optional[Dict[str, Any]] = None
    pipeline: Optional[List[Dict[str, Any]]] = None
    projection: Optional[Dict[str, Any]] = None
    collation: Optional[Dict[str, Any]] = None
    hint: Optional[Union[Dict[str, Any], str]] = None
    read_preference: ReadPreference = Field(ReadPreference.PRIMARY, alias="readPreference")

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def match_filter(self) -> Dict[str, Any]:
        return {**(self.query or {}), **(self.filter or {})}


class RawQueryFields(BaseModel):
    """Loosely-typed form input: JSON text per field, or already-structured values."""

    model_config = ConfigDict(populate_by_name=True)

    query: Optional[Any] = None
    sort: Optional[Any] = None
    filter: Optional[Any] = None
    pipeline: Optional[Any] = None
    projection: Optional[Any] = None
    collation: Optional[Any] = None
    hint: Optional[Any] = None
    read_preference: Optional[str] = Field(None, alias="readPreference")


class ConnectRequest(BaseModel):
    uri: str
    database: Optional[str] = None


class ConnectResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    connection_id: str = Field(..., alias="connectionId")


class DatabaseRequest(BaseModel):
    database: Optional[str] = None


class CollectionInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str
    document_count: int = Field(0, alias="documentCount")


class DocumentsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    documents: List[Dict[str, Any]] = Field(default_factory=list)
    total_documents: int = Field(0, alias="totalDocuments")


class GeneratedQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    generated_query: Optional[str] = Field(None, alias="generatedQuery")
    error: Optional[str] = None


class SaveResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    file_path: Optional[str] = Field(None, alias="filePath")
    error: Optional[str] = None


class SelectCollectionRequest(BaseModel):
    name: str


class PageRequest(BaseModel):
    page: int
    params: Optional[QueryParams] = None


class PageSizeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page_size: int = Field(..., alias="pageSize")


class GenerateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt: str
    share_samples: bool = Field(False, alias="shareSamples")
    auto_run: Optional[bool] = Field(None, alias="autoRun")
