import os, tempfile

# settings are read at import time, so the database has to be chosen first
fd, TMP_DB_PATH = tempfile.mkstemp(suffix=".db")
os.close(fd)
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{TMP_DB_PATH}"
os.environ["CREATE_TABLES"] = "true"
os.environ["EXIT_ON_FATAL_ERROR"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event, func, select

from surveyco.main import app

HDR = {"X-User-Id": "owner-1"}

def textbox(description, required=False):
    return {"type": "textbox", "description": description, "required": required}

def choice(description, options=("Yes", "No"), type="multiple_choice", required=False):
    return {
        "type": type,
        "description": description,
        "required": required,
        "randomize": False,
        "options": [{"description": d, "number": i} for i, d in enumerate(options, start=1)],
    }

class SurveyBuilder:
    """Drives the HTTP api to lay out surveys and read their numbering back."""

    textbox = staticmethod(textbox)
    choice = staticmethod(choice)

    def __init__(self, client, headers=HDR):
        self.client = client
        self.headers = headers

    def survey(self, title="Survey"):
        r = self.client.post("/survey", json={"title": title}, headers=self.headers)
        assert r.status_code == 201, r.text
        return r.json()["id"]

    def page(self, sid):
        r = self.client.post(f"/survey/{sid}/page", headers=self.headers)
        assert r.status_code == 201, r.text
        return r.json()

    def question(self, sid, page_id, data):
        r = self.client.post(f"/survey/{sid}/question", json={"pageId": page_id, "data": data}, headers=self.headers)
        assert r.status_code == 201, r.text
        return r.json()

    def pages(self, sid):
        r = self.client.get(f"/survey/{sid}/pages", headers=self.headers)
        assert r.status_code == 200, r.text
        return r.json()

    def questions(self, sid, page_id=None):
        params = {"pageId": page_id} if page_id is not None else None
        r = self.client.get(f"/survey/{sid}/questions", params=params, headers=self.headers)
        assert r.status_code == 200, r.text
        return r.json()

    def build(self, *layout):
        """Create a survey whose pages hold textbox questions with the given descriptions.

        Returns the survey id, the page ids in page order and a description -> question id map.
        """
        sid = self.survey()
        page_ids = [self.pages(sid)[0]["id"]]
        for _ in layout[1:]:
            page_ids.append(self.page(sid)["id"])
        qids = {}
        for page_id, descriptions in zip(page_ids, layout):
            for d in descriptions:
                qids[d] = self.question(sid, page_id, textbox(d))["id"]
        return sid, page_ids, qids

    def layout(self, sid):
        """Question descriptions per page, both in number order."""
        by_page = {p["id"]: [] for p in self.pages(sid)}
        for q in self.questions(sid):
            by_page[q["page_id"]].append(q["description"])
        return list(by_page.values())

    def numbers(self, sid):
        return {q["description"]: q["number"] for q in self.questions(sid)}

    def assert_dense(self, sid):
        pages = self.pages(sid)
        assert [p["number"] for p in pages] == list(range(1, len(pages) + 1))
        questions = self.questions(sid)
        assert [q["number"] for q in questions] == list(range(1, len(questions) + 1))
        # questions follow page order survey-wide
        page_number = {p["id"]: p["number"] for p in pages}
        on_pages = [page_number[q["page_id"]] for q in questions]
        assert on_pages == sorted(on_pages)

@pytest.fixture(scope="session")
def test_engine():
    # plain sync view of the same file, for asserting on rows the api does not expose
    engine = create_engine(f"sqlite:///{TMP_DB_PATH}")

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    yield engine
    engine.dispose()

@pytest.fixture
def count_rows(test_engine):
    def _count(model, *where):
        with test_engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(model).where(*where)).scalar_one()
    return _count

@pytest.fixture(scope="session")
def client():
    with TestClient(app) as c:
        yield c
    os.remove(TMP_DB_PATH)

@pytest.fixture
def builder(client):
    return SurveyBuilder(client)
