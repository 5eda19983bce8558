import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Union

from ..config import Settings
from ..pagination import DEFAULT_PAGE_SIZE, ALLOWED_PAGE_SIZES, skip_for, validate_page_size
from ..query_helper import GenerationKind, GenerationResult, NoCollectionSelected, QueryHelper
from ..query_params import DEFAULT_PARAMS, NormalizedQuery, QueryFieldError, normalize_fields, prepare_execution
from ..render import DocumentRenderer
from ..schemas import QueryParams, RawQueryFields
from ..state import (
    BrowserState,
    CollectionSelected,
    CollectionsFailed,
    CollectionsLoaded,
    CollectionsRequested,
    DatabaseChanged,
    DocumentsCleared,
    DocumentsFailed,
    DocumentsLoaded,
    DocumentsRequested,
    DraftChanged,
    ErrorReported,
    PageSizeChanged,
    apply_event,
    initial_state,
)
from .contracts import DataSource, FileSaver, QueryGenerator

logger = logging.getLogger(__name__)

Listener = Callable[[BrowserState], None]


@dataclass(frozen=True)
class ExportResult:
    success: bool
    file_path: Optional[str] = None
    error: Optional[str] = None
    cancelled: bool = False


class BrowserSession:
    """
    Owns the browsing state of one connection: collection list, selection,
    current page of documents, query parameters, loading flags and errors.

    Every change goes through :func:`mongo_browser.state.apply_event` and is
    published to subscribers as an immutable :class:`BrowserState`.
    """

    def __init__(
        self,
        data_source: DataSource,
        generator: Optional[QueryGenerator] = None,
        settings: Optional[Settings] = None,
        on_error: Optional[Callable[[str], None]] = None,
        on_status: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.settings = settings or Settings.from_env()
        self.data_source = data_source
        self.on_error = on_error
        self.on_status = on_status
        self.query_helper = QueryHelper(generator, notify=self._status) if generator else None

        page_size = self.settings.page_size
        if page_size not in ALLOWED_PAGE_SIZES:
            logger.warning("Unsupported default page size %s, using %s", page_size, DEFAULT_PAGE_SIZE)
            page_size = DEFAULT_PAGE_SIZE

        self._lock = threading.Lock()
        self._state = initial_state(page_size)
        self._listeners: List[Listener] = []
        self._reload_timer: Optional[threading.Timer] = None

    # --- state / notifications ---

    @property
    def state(self) -> BrowserState:
        with self._lock:
            return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)
        return unsubscribe

    def _apply_locked(self, event: Any):
        previous = self._state
        self._state = apply_event(previous, event)
        changed = self._state is not previous
        return self._state, (list(self._listeners) if changed else [])

    def _notify(self, state: BrowserState, listeners: List[Listener]):
        for listener in listeners:
            try:
                listener(state)
            except Exception:
                logger.exception("Browser state listener failed")

    def _dispatch(self, event: Any) -> BrowserState:
        with self._lock:
            current, listeners = self._apply_locked(event)
        self._notify(current, listeners)
        return current

    def _error(self, message: str):
        logger.error(message)
        if self.on_error:
            self.on_error(message)

    def _status(self, message: str):
        if self.on_status:
            self.on_status(message)

    # --- collections ---

    def change_database(self, database: Optional[str]):
        """Switch database; the collection list reload is debounced."""
        self.data_source.set_active_database(database)
        self._dispatch(DatabaseChanged(database))
        with self._lock:
            if self._reload_timer:
                self._reload_timer.cancel()
                self._reload_timer = None
            if database is None:
                return
            timer = threading.Timer(self.settings.debounce_seconds, self.reload_collections)
            timer.daemon = True
            self._reload_timer = timer
        timer.start()

    def wait_for_reload(self, timeout: Optional[float] = None):
        with self._lock:
            timer = self._reload_timer
        if timer:
            timer.join(timeout)

    def reload_collections(self) -> BrowserState:
        with self._lock:
            database = self._state.database
            if database is not None:
                seq = self._state.list_seq + 1
                requested, listeners = self._apply_locked(CollectionsRequested(seq))
        if database is None:
            return self._dispatch(DatabaseChanged(None))
        self._notify(requested, listeners)
        try:
            collections = self.data_source.list_collections()
        except Exception as e:
            message = f"Failed to fetch collections: {e}"
            state = self._dispatch(CollectionsFailed(seq, message))
            if state.list_seq == seq:
                self._error(message)
            else:
                logger.info("Discarding stale collection list failure for %s", database)
            return state
        state = self._dispatch(CollectionsLoaded(seq, collections))
        if state.list_seq != seq:
            logger.info("Discarding stale collection list for %s", database)
        else:
            logger.info("Loaded %d collections from %s", len(collections), database)
        return state

    def select_collection(self, name: str) -> BrowserState:
        """Select a collection. Resets page and query; never fetches."""
        known = [c.name for c in self.state.collections]
        if name not in known:
            raise KeyError(f"Unknown collection: {name}")
        return self._dispatch(CollectionSelected(name))

    # --- documents ---

    def _fetch(self, page: int, params: QueryParams) -> BrowserState:
        with self._lock:
            collection = self._state.selected_collection
            if collection:
                seq = self._state.fetch_seq + 1
                page_size = self._state.page.page_size
                requested, listeners = self._apply_locked(DocumentsRequested(seq, page, params))
        if not collection:
            return self._dispatch(DocumentsCleared())
        self._notify(requested, listeners)
        skip = skip_for(page, page_size)
        try:
            response = self.data_source.fetch_documents(collection, page_size, skip, params)
        except Exception as e:
            message = f"Failed to fetch documents for {collection}: {e}"
            state = self._dispatch(DocumentsFailed(seq, message))
            if state.fetch_seq == seq:
                self._error(message)
            else:
                logger.info("Discarding stale failure for fetch #%d", seq)
            return state

        state = self._dispatch(DocumentsLoaded(seq, response.documents, response.total_documents))
        if state.fetch_seq != seq:
            logger.info("Discarding stale result for fetch #%d", seq)
        return state

    def execute_query(self, params: QueryParams) -> BrowserState:
        self._dispatch(DraftChanged(params))
        return self._fetch(1, params)

    def run_manual_query(self, raw: Union[RawQueryFields, Mapping[str, Any], None]) -> BrowserState:
        """Normalize form input and execute it. Raises ``QueryFieldError`` on bad fields."""
        try:
            params = prepare_execution(raw)
        except QueryFieldError as e:
            self._dispatch(ErrorReported(str(e)))
            self._error(str(e))
            raise
        return self.execute_query(params)

    def update_draft(self, raw: Union[RawQueryFields, Mapping[str, Any], None]) -> NormalizedQuery:
        result = normalize_fields(raw)
        self._dispatch(DraftChanged(result.params))
        return result

    def select_page(self, page: int, params: Optional[QueryParams] = None) -> BrowserState:
        current = self.state
        target = current.page.clamp_page(page)
        if target != page:
            logger.debug("Clamped page %s to %s", page, target)
        return self._fetch(target, params if params is not None else current.query_params)

    def change_page_size(self, page_size: int) -> BrowserState:
        validate_page_size(page_size)
        state = self._dispatch(PageSizeChanged(page_size))
        return self._fetch(1, state.query_params)

    # --- query helper ---

    def generate_query(self, prompt: str, share_samples: bool = False, auto_run: Optional[bool] = None) -> GenerationResult:
        if self.query_helper is None:
            raise RuntimeError("Query Helper is not configured")
        try:
            result = self.query_helper.generate(prompt, self.state.selected_collection, share_samples)
        except NoCollectionSelected as e:
            self._status(str(e))
            raise

        if result.kind is GenerationKind.SUCCESS:
            self._dispatch(DraftChanged(result.params))
            run = self.settings.auto_run if auto_run is None else auto_run
            if run:
                self.execute_query(result.params)
                self._status("Query Helper generated and executed query successfully!")
            else:
                self._status('Query Helper generated query successfully! Review and click "Run Query" to execute.')
            return result

        if result.kind is GenerationKind.INVALID_JSON:
            self._dispatch(DraftChanged(DEFAULT_PARAMS))
        self._dispatch(ErrorReported(result.message))
        self._error(result.message)
        return result

    # --- rendering / export ---

    def renderer(self) -> DocumentRenderer:
        state = self.state
        return DocumentRenderer(state.documents, state.page.page, state.page.page_size)

    def export_collection(self, saver: FileSaver) -> ExportResult:
        state = self.state
        collection = state.selected_collection
        if not collection:
            return ExportResult(False, error="No collection selected.")
        try:
            content = self.data_source.export_documents(collection, state.query_params)
            filename = f"{collection}_export_{int(time.time() * 1000)}.jsonl"
            saved = saver.save_file(filename, content)
        except Exception as e:
            message = f"Failed to export documents: {e}"
            self._error(message)
            return ExportResult(False, error=message)

        if saved.success and saved.file_path:
            self._status(f"Exported {collection} to {saved.file_path}")
            return ExportResult(True, file_path=saved.file_path)
        if not saved.success and saved.error:
            self._error(saved.error)
            return ExportResult(False, error=saved.error)
        self._status("File export cancelled.")
        return ExportResult(False, error="File export cancelled.", cancelled=True)

    def close(self):
        with self._lock:
            if self._reload_timer:
                self._reload_timer.cancel()
                self._reload_timer = None
