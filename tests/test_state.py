from mongo_browser.query_params import DEFAULT_PARAMS
from mongo_browser.schemas import CollectionInfo, QueryParams
from mongo_browser.state import (
    CollectionSelected,
    CollectionsFailed,
    CollectionsLoaded,
    CollectionsRequested,
    DatabaseChanged,
    DocumentsFailed,
    DocumentsLoaded,
    DocumentsRequested,
    PageSizeChanged,
    apply_event,
    initial_state,
)


def _loaded_state():
    state = apply_event(initial_state(), DatabaseChanged("shop"))
    state = apply_event(state, CollectionsRequested(1))
    return apply_event(state, CollectionsLoaded(1, [CollectionInfo(name="users"), CollectionInfo(name="Accounts")]))


def test_collections_sorted_and_first_selected():
    state = _loaded_state()
    assert [c.name for c in state.collections] == ["Accounts", "users"]
    assert state.selected_collection == "Accounts"
    assert state.documents == ()
    assert state.page.page == 1


def test_collections_failure_clears_everything():
    state = apply_event(_loaded_state(), CollectionsRequested(2))
    assert state.collections_loading
    state = apply_event(state, CollectionsFailed(2, "Failed to fetch collections: boom"))
    assert state.collections == ()
    assert state.selected_collection is None
    assert not state.collections_loading
    assert state.error == "Failed to fetch collections: boom"


def test_documents_result_applied_only_for_latest_fetch():
    params = QueryParams(query={})
    state = apply_event(_loaded_state(), DocumentsRequested(1, 1, params))
    state = apply_event(state, DocumentsRequested(2, 2, params))
    stale = apply_event(state, DocumentsLoaded(1, [{"_id": "old"}], 99))
    assert stale is state
    state = apply_event(state, DocumentsLoaded(2, [{"_id": "new"}], 30))
    assert state.documents == ({"_id": "new"},)
    assert state.page.total == 30
    assert state.page.page == 2
    assert not state.documents_loading
    assert apply_event(state, DocumentsFailed(1, "late")) is state


def test_documents_failure_resets_documents_and_total():
    state = apply_event(_loaded_state(), DocumentsRequested(1, 1, DEFAULT_PARAMS))
    state = apply_event(state, DocumentsLoaded(1, [{"_id": 1}], 1))
    state = apply_event(state, DocumentsRequested(2, 1, DEFAULT_PARAMS))
    state = apply_event(state, DocumentsFailed(2, "Failed to fetch documents for users: down"))
    assert state.documents == ()
    assert state.page.total == 0
    assert state.error.endswith("down")


def test_collection_selected_resets_page_and_params():
    params = QueryParams(query={"a": 1})
    state = apply_event(_loaded_state(), DocumentsRequested(1, 3, params))
    state = apply_event(state, DocumentsLoaded(1, [{"_id": 1}], 100))
    state = apply_event(state, CollectionSelected("users"))
    assert state.selected_collection == "users"
    assert state.documents == ()
    assert state.page.page == 1 and state.page.total == 0
    assert state.query_params == DEFAULT_PARAMS
    assert not state.query_executed


def test_page_size_change_resets_page():
    state = apply_event(_loaded_state(), DocumentsRequested(1, 3, DEFAULT_PARAMS))
    state = apply_event(state, PageSizeChanged(50))
    assert state.page.page == 1
    assert state.page.page_size == 50


def test_database_cleared_resets_state():
    state = apply_event(_loaded_state(), DatabaseChanged(None))
    assert state.database is None
    assert state.collections == ()
    assert state.selected_collection is None


def test_to_dict_omits_absent_params():
    data = _loaded_state().to_dict()
    assert data["queryParams"] == {"readPreference": "primary"}
    assert data["totalPages"] == 1
    assert data["selectedCollection"] == "Accounts"


def test_selection_invalidates_fetch_in_flight():
    state = apply_event(_loaded_state(), DocumentsRequested(5, 1, DEFAULT_PARAMS))
    state = apply_event(state, CollectionSelected("users"))
    assert state.fetch_seq > 5
    assert not state.documents_loading
    assert apply_event(state, DocumentsLoaded(5, [{"_id": "old"}], 47)) is state
    assert apply_event(state, DocumentsFailed(5, "late")) is state


def test_database_change_drops_pending_collection_list():
    state = apply_event(initial_state(), DatabaseChanged("a"))
    state = apply_event(state, CollectionsRequested(state.list_seq + 1))
    pending = state.list_seq
    state = apply_event(state, DatabaseChanged("b"))
    assert not state.collections_loading
    assert apply_event(state, CollectionsLoaded(pending, [CollectionInfo(name="a_coll")])) is state
    assert apply_event(state, CollectionsFailed(pending, "late")) is state
