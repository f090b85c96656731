import io
import json

import httpx
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from hv_maintenance.database import Base, build_engine, build_session_factory, get_db, get_session_factory
from hv_maintenance.dependencies import get_ai_bridge, get_edit_session
from hv_maintenance.main import app
from hv_maintenance.repository import RecordRepository
from hv_maintenance.services.ai_bridge import GeminiBridge
from hv_maintenance.services.edit_session import EditSession

AI_BASE_URL = "https://ai.test/v1beta"


def gemini_text(text):
    return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})


def gemini_error(status_code=503):
    return httpx.Response(status_code, json={"error": {"message": "unavailable"}})


def make_bridge(handler, api_key="test-key"):
    return GeminiBridge(
        api_key=api_key,
        base_url=AI_BASE_URL,
        text_model="text-model",
        image_model="image-model",
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


class AIServer:
    """Records the requests sent to the fake Gemini endpoint and answers with ``reply``."""

    def __init__(self):
        self.requests = []
        self.reply = lambda request: gemini_error()

    def __call__(self, request: httpx.Request):
        self.requests.append(request)
        return self.reply(request)

    def payload(self, index=-1):
        return json.loads(self.requests[index].content)


@pytest.fixture()
def png_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (16, 9), "orange").save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture()
def session_factory():
    # A fresh in-memory database per test
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    factory = build_session_factory(engine)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def repo(db):
    return RecordRepository(db)


@pytest.fixture()
def ai_server():
    return AIServer()


@pytest.fixture()
def edit_session():
    return EditSession()


@pytest.fixture()
def client(session_factory, ai_server, edit_session):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_edit_session] = lambda: edit_session
    app.dependency_overrides[get_ai_bridge] = lambda: make_bridge(ai_server)

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture()
def record_payload():
    return {
        "municipality_id": "m1",
        "title": "Serviço tipo 50A",
        "nature": "Manutenção Preventiva Programada",
        "description": "Limpeza dos isoladores",
        "date": "2024-05-15",
        "technician": "João Silva",
    }
