"""Browser state and its pure transitions: ``apply_event(state, event) -> state``."""
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from .pagination import DEFAULT_PAGE_SIZE, PageState
from .query_params import DEFAULT_PARAMS
from .schemas import CollectionInfo, QueryParams


@dataclass(frozen=True)
class BrowserState:
    database: Optional[str] = None
    collections: Tuple[CollectionInfo, ...] = ()
    selected_collection: Optional[str] = None
    documents: Tuple[Dict[str, Any], ...] = ()
    page: PageState = field(default_factory=PageState)
    query_params: QueryParams = DEFAULT_PARAMS
    draft_params: QueryParams = DEFAULT_PARAMS
    collections_loading: bool = False
    documents_loading: bool = False
    error: Optional[str] = None
    query_executed: bool = False
    fetch_seq: int = 0
    list_seq: int = 0

    @property
    def total_documents(self) -> int:
        return self.page.total

    def to_dict(self) -> Dict[str, Any]:
        return {
            "database": self.database,
            "collections": [c.model_dump(by_alias=True) for c in self.collections],
            "selectedCollection": self.selected_collection,
            "documents": list(self.documents),
            "totalDocuments": self.page.total,
            "currentPage": self.page.page,
            "pageSize": self.page.page_size,
            "totalPages": self.page.total_pages,
            "queryParams": self.query_params.to_dict(),
            "draftParams": self.draft_params.to_dict(),
            "collectionsLoading": self.collections_loading,
            "documentsLoading": self.documents_loading,
            "error": self.error,
            "queryExecuted": self.query_executed,
        }


# --- events ---

@dataclass(frozen=True)
class DatabaseChanged:
    database: Optional[str]


@dataclass(frozen=True)
class CollectionsRequested:
    seq: int


@dataclass(frozen=True)
class CollectionsLoaded:
    seq: int
    collections: Sequence[CollectionInfo]


@dataclass(frozen=True)
class CollectionsFailed:
    seq: int
    message: str


@dataclass(frozen=True)
class CollectionSelected:
    name: Optional[str]


@dataclass(frozen=True)
class DocumentsRequested:
    seq: int
    page: int
    params: QueryParams


@dataclass(frozen=True)
class DocumentsLoaded:
    seq: int
    documents: Sequence[Dict[str, Any]]
    total: int


@dataclass(frozen=True)
class DocumentsFailed:
    seq: int
    message: str


@dataclass(frozen=True)
class DocumentsCleared:
    pass


@dataclass(frozen=True)
class PageSizeChanged:
    page_size: int


@dataclass(frozen=True)
class DraftChanged:
    params: QueryParams


@dataclass(frozen=True)
class ErrorReported:
    message: Optional[str]


def _sort_key(info: CollectionInfo):
    return (info.name.lower(), info.name)


def initial_state(page_size: int = DEFAULT_PAGE_SIZE) -> BrowserState:
    return BrowserState(page=PageState(page_size=page_size))


def _invalidated(state: BrowserState) -> dict:
    """Fields that make every outstanding document fetch stale."""
    return {"fetch_seq": state.fetch_seq + 1, "documents_loading": False}


def _database_changed(state: BrowserState, event: DatabaseChanged) -> BrowserState:
    # drops any collection list still loading for the previous database
    if event.database is None:
        return replace(
            initial_state(state.page.page_size),
            fetch_seq=state.fetch_seq + 1,
            list_seq=state.list_seq + 1,
        )
    return replace(
        state,
        database=event.database,
        list_seq=state.list_seq + 1,
        collections_loading=False,
        **_invalidated(state),
    )


def _collections_requested(state: BrowserState, event: CollectionsRequested) -> BrowserState:
    return replace(state, collections_loading=True, error=None, list_seq=event.seq)


def _collections_loaded(state: BrowserState, event: CollectionsLoaded) -> BrowserState:
    if event.seq != state.list_seq:
        return state
    collections = tuple(sorted(event.collections, key=_sort_key))
    return replace(
        state,
        collections=collections,
        selected_collection=collections[0].name if collections else None,
        documents=(),
        page=PageState(page_size=state.page.page_size),
        query_params=DEFAULT_PARAMS,
        draft_params=DEFAULT_PARAMS,
        query_executed=False,
        collections_loading=False,
        **_invalidated(state),
    )


def _collections_failed(state: BrowserState, event: CollectionsFailed) -> BrowserState:
    if event.seq != state.list_seq:
        return state
    return replace(
        state,
        collections=(),
        selected_collection=None,
        documents=(),
        page=PageState(page_size=state.page.page_size),
        query_params=DEFAULT_PARAMS,
        draft_params=DEFAULT_PARAMS,
        query_executed=False,
        collections_loading=False,
        error=event.message,
        **_invalidated(state),
    )


def _collection_selected(state: BrowserState, event: CollectionSelected) -> BrowserState:
    return replace(
        state,
        selected_collection=event.name,
        documents=(),
        page=PageState(page_size=state.page.page_size),
        query_params=DEFAULT_PARAMS,
        draft_params=DEFAULT_PARAMS,
        query_executed=False,
        error=None,
        **_invalidated(state),
    )


def _documents_requested(state: BrowserState, event: DocumentsRequested) -> BrowserState:
    return replace(
        state,
        page=replace(state.page, page=max(1, event.page)),
        query_params=event.params,
        documents_loading=True,
        error=None,
        fetch_seq=event.seq,
    )


def _documents_loaded(state: BrowserState, event: DocumentsLoaded) -> BrowserState:
    if event.seq != state.fetch_seq:
        return state
    return replace(
        state,
        documents=tuple(event.documents),
        page=state.page.with_total(event.total),
        documents_loading=False,
        query_executed=True,
    )


def _documents_failed(state: BrowserState, event: DocumentsFailed) -> BrowserState:
    if event.seq != state.fetch_seq:
        return state
    return replace(
        state,
        documents=(),
        page=state.page.with_total(0),
        documents_loading=False,
        error=event.message,
    )


def _documents_cleared(state: BrowserState, event: DocumentsCleared) -> BrowserState:
    return replace(state, documents=(), page=state.page.with_total(0))


def _page_size_changed(state: BrowserState, event: PageSizeChanged) -> BrowserState:
    return replace(state, page=state.page.with_page_size(event.page_size))


def _draft_changed(state: BrowserState, event: DraftChanged) -> BrowserState:
    return replace(state, draft_params=event.params)


def _error_reported(state: BrowserState, event: ErrorReported) -> BrowserState:
    return replace(state, error=event.message)


_HANDLERS: Dict[type, Callable[[BrowserState, Any], BrowserState]] = {
    DatabaseChanged: _database_changed,
    CollectionsRequested: _collections_requested,
    CollectionsLoaded: _collections_loaded,
    CollectionsFailed: _collections_failed,
    CollectionSelected: _collection_selected,
    DocumentsRequested: _documents_requested,
    DocumentsLoaded: _documents_loaded,
    DocumentsFailed: _documents_failed,
    DocumentsCleared: _documents_cleared,
    PageSizeChanged: _page_size_changed,
    DraftChanged: _draft_changed,
    ErrorReported: _error_reported,
}


def apply_event(state: BrowserState, event: Any) -> BrowserState:
    try:
        handler = _HANDLERS[type(event)]
    except KeyError:
        raise TypeError(f"Unknown browser event: {event!r}") from None
    return handler(state, event)
