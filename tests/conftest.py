"""Shared fakes and fixtures. No MongoDB server is needed."""
import os
import tempfile

os.environ.setdefault("MONGO_BROWSER_LOG_DIR", tempfile.mkdtemp(prefix="mongo-browser-logs-"))
os.environ.setdefault("GEMINI_API_KEY", "")

import pytest

from mongo_browser.config import Settings
from mongo_browser.schemas import CollectionInfo, DocumentsResponse, GeneratedQuery, SaveResult
from mongo_browser.services.browser import BrowserSession


class FakeDataSource:
    def __init__(self, collections=None, documents=None):
        self.collections = list(collections or [])
        self.documents = list(documents or [])
        self.database = None
        self.list_calls = 0
        self.fetch_calls = []
        self.export_calls = []
        self.fail_list = None
        self.fail_fetch = None

    def set_active_database(self, database):
        self.database = database

    def list_collections(self):
        self.list_calls += 1
        if self.fail_list:
            raise self.fail_list
        return list(self.collections)

    def fetch_documents(self, collection, limit, skip, query):
        self.fetch_calls.append({"collection": collection, "limit": limit, "skip": skip, "query": query})
        if self.fail_fetch:
            raise self.fail_fetch
        return DocumentsResponse(documents=self.documents[skip:skip + limit], totalDocuments=len(self.documents))

    def export_documents(self, collection, query):
        self.export_calls.append((collection, query))
        return "\n".join('{"_id": "%s"}' % d.get("_id") for d in self.documents)


class FakeGenerator:
    def __init__(self, generated_query=None, error=None, raises=None):
        self.generated_query = generated_query
        self.error = error
        self.raises = raises
        self.calls = []

    def generate_query(self, prompt, collection, share_samples):
        self.calls.append((prompt, collection, share_samples))
        if self.raises:
            raise self.raises
        return GeneratedQuery(generatedQuery=self.generated_query, error=self.error)


class FakeSaver:
    def __init__(self, result):
        self.result = result
        self.saved = []

    def save_file(self, default_filename, content):
        self.saved.append((default_filename, content))
        return self.result


@pytest.fixture
def settings():
    return Settings(debounce_ms=20, page_size=25, auto_run=True)


@pytest.fixture
def people():
    return [{"_id": str(i), "name": f"person-{i}", "age": 20 + i} for i in range(1, 48)]


@pytest.fixture
def data_source(people):
    return FakeDataSource(
        collections=[
            CollectionInfo(name="users", documentCount=47),
            CollectionInfo(name="Accounts", documentCount=3),
            CollectionInfo(name="orders", documentCount=0),
        ],
        documents=people,
    )


@pytest.fixture
def session(data_source, settings):
    s = BrowserSession(data_source, FakeGenerator('{"query": {"age": {"$gt": 30}}}'), settings)
    s.change_database("shop")
    s.wait_for_reload(2)
    yield s
    s.close()


@pytest.fixture
def saver_ok():
    return FakeSaver(SaveResult(success=True, filePath="/tmp/users.jsonl"))
