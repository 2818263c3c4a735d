"""Shared fixtures: an in-memory MongoDB and a TestClient wired to it."""

from typing import Any, Dict

import mongomock
import pytest
from fastapi.testclient import TestClient

from database import get_db
from main import app


@pytest.fixture
def db():
    return mongomock.MongoClient()["formbuilder-test"]


@pytest.fixture
def api(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def contact_form() -> Dict[str, Any]:
    return {
        "title": "Contact",
        "description": "Get in touch",
        "status": "published",
        "fields": [
            {
                "id": "name",
                "type": "text",
                "label": "Name",
                "required": True,
                "validation": {"minLength": 2, "maxLength": 40},
            },
            {"id": "email", "type": "email", "label": "Email"},
            {"id": "topics", "type": "checkbox", "label": "Topics", "options": ["a", "b", "c"]},
        ],
    }


@pytest.fixture
def published_form(api, contact_form) -> Dict[str, Any]:
    response = api.post("/api/forms", json=contact_form)
    assert response.status_code == 201
    return response.json()
