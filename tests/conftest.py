"""
Test configuration and fixtures.

Provides:
- Environment for Settings (no real Supabase project is contacted)
- Form definition factories
- An in-memory stand-in for the form store
- HTTPX AsyncClient over the ASGI app, with and without an author
"""
import os
import copy
from typing import Any, Dict, List, Optional

import pytest
from httpx import AsyncClient, ASGITransport

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-role-key")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("ENVIRONMENT", "test")

from quoteform.main import app
from quoteform.middleware.auth import get_current_user
from quoteform.models.forms import FormDefinition
from quoteform.services.form_store import (
    FormAccessError,
    FormNotFoundError,
    get_form_store,
)

AUTHOR_ID = "user-author"


# =============================================================================
# Form factories
# =============================================================================

def choice(qid: str, options: List[str], qtype: str = "single_choice", **extra) -> Dict[str, Any]:
    return {
        "id": qid,
        "text": f"Question {qid}",
        "type": qtype,
        "options": [{"id": o, "text": o} for o in options],
        **extra,
    }


def text(qid: str, **extra) -> Dict[str, Any]:
    return {"id": qid, "text": f"Question {qid}", "type": "text_input", **extra}


def cond(question_id: str, *values: str) -> Dict[str, Any]:
    return {"id": f"c-{question_id}-{'-'.join(values)}", "questionId": question_id, "values": list(values)}


def make_form(questions: List[Dict[str, Any]], **settings) -> FormDefinition:
    return FormDefinition.model_validate({
        "title": "Quote",
        "description": "Get a quote",
        "questions": questions,
        "settings": settings,
    })


@pytest.fixture
def yes_no_form() -> FormDefinition:
    """Q1 Yes/No; Q2 only after Yes"""
    return make_form([
        choice("Q1", ["Yes", "No"], required=True),
        text("Q2", conditions=[cond("Q1", "Yes")]),
    ])


@pytest.fixture
def quote_form() -> FormDefinition:
    """A representative form touching every question type and redirect rule"""
    return FormDefinition.model_validate({
        "title": "Boiler quote",
        "description": "Tell us about your home",
        "questions": [
            {
                "id": "3f1c-property",
                "text": "What type of property?",
                "type": "single_choice",
                "required": True,
                "options": [
                    {"id": "a1", "text": "House", "icon": "🏠", "description": "Detached or terraced"},
                    {"id": "a2", "text": "Flat"},
                ],
            },
            {
                "id": "9b2e-rooms",
                "text": "Which rooms need heating?",
                "type": "multiple_choice",
                "options": [
                    {"id": "r1", "text": "Kitchen"},
                    {"id": "r2", "text": "Bathroom"},
                    {"id": "r3", "text": "Loft"},
                ],
                "conditions": [{"id": "c1", "questionId": "3f1c-property", "values": ["a1"]}],
            },
            {
                "id": "77aa-notes",
                "text": "Anything else?",
                "type": "text_input",
                "placeholder": "Notes",
                "conditions": [
                    {"id": "c2", "questionId": "9b2e-rooms", "values": ["r3"]},
                    {"id": "c3", "questionId": "3f1c-property", "values": ["a2"]},
                ],
                "conditionLogic": "OR",
            },
            {
                "id": "d00d-address",
                "text": "Where do you live?",
                "type": "address",
                "required": True,
            },
            {
                "id": "beef-contact",
                "text": "How can we reach you?",
                "type": "contact_form",
                "required": True,
            },
        ],
        "settings": {
            "backgroundColor": "#fafafa",
            "buttonColor": "#1f77b4",
            "submitUrl": "https://example.com/thanks",
            "zapierWebhookUrl": "https://hooks.example.com/catch/1",
            "postcodeApiUrl": "https://lookup.example.com/addresses",
            "postcodeApiKey": "secret",
            "successPages": [
                {
                    "id": "sp-loft",
                    "name": "Loft",
                    "url": "https://example.com/loft",
                    "conditions": [{"id": "c4", "questionId": "9b2e-rooms", "values": ["r3"]}],
                },
                {
                    "id": "sp-flat",
                    "name": "Flat",
                    "url": "https://example.com/flat",
                    "conditions": [{"id": "c5", "questionId": "3f1c-property", "values": ["a2"]}],
                },
            ],
        },
    })


# =============================================================================
# Persistence stand-in
# =============================================================================

class InMemoryFormStore:
    """Mirrors FormStore's public surface over plain dicts"""

    def __init__(self):
        self.forms: Dict[str, Dict[str, Any]] = {}
        self.versions: List[Dict[str, Any]] = []

    def add_form(self, form_id: str, user_id: str, definition: Optional[Dict[str, Any]] = None, **row):
        self.forms[form_id] = {"id": form_id, "user_id": user_id, "title": row.get("title"), "description": row.get("description")}
        if definition is not None:
            self.versions.append({
                "id": f"{form_id}-v1",
                "form_id": form_id,
                "form_data": copy.deepcopy(definition),
                "version_number": 1,
                "created_by": user_id,
                "commit_message": None,
                "created_at": "2026-01-01T00:00:00+00:00",
            })

    def get_form(self, form_id, user_id=None):
        form = self.forms.get(form_id)
        if form is None:
            raise FormNotFoundError(f"Form {form_id} not found")
        if user_id is not None and form["user_id"] != user_id:
            raise FormAccessError(f"Form {form_id} does not belong to the current user")
        return form

    def _versions_of(self, form_id):
        return sorted(
            (v for v in self.versions if v["form_id"] == form_id),
            key=lambda v: v["version_number"],
            reverse=True,
        )

    def list_versions(self, form_id, user_id=None):
        self.get_form(form_id, user_id)
        return self._versions_of(form_id)

    def get_version(self, form_id, version_id, user_id=None):
        self.get_form(form_id, user_id)
        for version in self.versions:
            if version["id"] == version_id and version["form_id"] == form_id:
                return version
        raise FormNotFoundError(f"Version {version_id} of form {form_id} not found")

    def get_latest_version(self, form_id, user_id=None):
        self.get_form(form_id, user_id)
        versions = self._versions_of(form_id)
        if not versions:
            raise FormNotFoundError(f"Form {form_id} has no versions")
        return versions[0]

    def load_definition(self, form_id, version_id=None, user_id=None):
        form = self.get_form(form_id, user_id)
        if version_id:
            version = self.get_version(form_id, version_id)
        else:
            version = self.get_latest_version(form_id)
        return FormDefinition.from_stored(version["form_data"], title=form["title"], description=form["description"])

    def save_version(self, form_id, user_id, definition, commit_message=None):
        self.get_form(form_id, user_id)
        versions = self._versions_of(form_id)
        number = versions[0]["version_number"] + 1 if versions else 1
        version = {
            "id": f"{form_id}-v{number}",
            "form_id": form_id,
            "form_data": definition.to_wire(),
            "version_number": number,
            "created_by": user_id,
            "commit_message": commit_message,
            "created_at": "2026-01-02T00:00:00+00:00",
        }
        self.versions.append(version)
        self.forms[form_id].update(title=definition.title, description=definition.description)
        return version

    def restore_version(self, form_id, version_id, user_id):
        source = self.get_version(form_id, version_id, user_id)
        definition = FormDefinition.from_stored(source["form_data"])
        return self.save_version(
            form_id, user_id, definition,
            commit_message=f"Restored from version {source['version_number']}",
        )


@pytest.fixture
def store() -> InMemoryFormStore:
    return InMemoryFormStore()


# =============================================================================
# HTTP clients
# =============================================================================

@pytest.fixture
async def client(store):
    """Anonymous client (public and preview endpoints)"""
    app.dependency_overrides[get_form_store] = lambda: store
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def author_client(store):
    """Client authenticated as AUTHOR_ID"""
    app.dependency_overrides[get_form_store] = lambda: store
    app.dependency_overrides[get_current_user] = lambda: {"user_id": AUTHOR_ID, "email": "author@example.com"}
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
