"""
Form and version persistence over Supabase.

Tables:
    forms(id, user_id, title, description, updated_at)
    form_versions(id, form_id, form_data, version_number, created_by,
                  commit_message, created_at)

The service-role client bypasses RLS, so every user-scoped operation
checks ownership of the parent form row itself.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

from quoteform.database import get_supabase_admin
from quoteform.models.forms import FormDefinition
from quoteform.utils.retry import retry_supabase_query

logger = logging.getLogger(__name__)

VERSION_SUMMARY_COLUMNS = "id, form_id, version_number, commit_message, created_by, created_at"


class FormNotFoundError(Exception):
    """Form or version row does not exist"""


class FormAccessError(Exception):
    """Form exists but belongs to another user"""


class FormStore:
    """Read and write forms and their versions"""

    def __init__(self, client=None):
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = get_supabase_admin()
        return self._client

    # ------------------------------------------------------------------
    # Forms
    # ------------------------------------------------------------------

    def get_form(self, form_id: str, user_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Fetch a form row

        Args:
            form_id: Form UUID
            user_id: When given, the form must belong to this user

        Raises:
            FormNotFoundError: No such form
            FormAccessError: The form belongs to someone else
        """
        result = retry_supabase_query(
            lambda: self.client.table("forms").select("*").eq("id", form_id).limit(1).execute()
        )
        if not result.data:
            raise FormNotFoundError(f"Form {form_id} not found")

        form = result.data[0]
        if user_id is not None and form.get("user_id") != user_id:
            logger.warning(f"User {user_id} tried to access form {form_id}")
            raise FormAccessError(f"Form {form_id} does not belong to the current user")
        return form

    # ------------------------------------------------------------------
    # Versions
    # ------------------------------------------------------------------

    def list_versions(self, form_id: str, user_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Version summaries, newest first"""
        self.get_form(form_id, user_id)
        result = retry_supabase_query(
            lambda: self.client.table("form_versions")
            .select(VERSION_SUMMARY_COLUMNS)
            .eq("form_id", form_id)
            .order("version_number", desc=True)
            .execute()
        )
        return result.data or []

    def get_version(
        self,
        form_id: str,
        version_id: str,
        user_id: Optional[str] = None
    ) -> Dict[str, Any]:
        self.get_form(form_id, user_id)
        result = retry_supabase_query(
            lambda: self.client.table("form_versions")
            .select("*")
            .eq("id", version_id)
            .eq("form_id", form_id)
            .limit(1)
            .execute()
        )
        if not result.data:
            raise FormNotFoundError(f"Version {version_id} of form {form_id} not found")
        return result.data[0]

    def get_latest_version(self, form_id: str, user_id: Optional[str] = None) -> Dict[str, Any]:
        self.get_form(form_id, user_id)
        return self._latest_version(form_id)

    def _latest_version(self, form_id: str) -> Dict[str, Any]:
        result = retry_supabase_query(
            lambda: self.client.table("form_versions")
            .select("*")
            .eq("form_id", form_id)
            .order("version_number", desc=True)
            .limit(1)
            .execute()
        )
        if not result.data:
            raise FormNotFoundError(f"Form {form_id} has no versions")
        return result.data[0]

    def _next_version_number(self, form_id: str) -> int:
        try:
            latest = self._latest_version(form_id)
        except FormNotFoundError:
            return 1
        return int(latest.get("version_number") or 0) + 1

    def load_definition(
        self,
        form_id: str,
        version_id: Optional[str] = None,
        user_id: Optional[str] = None
    ) -> FormDefinition:
        """
        Load a stored version as a FormDefinition

        The latest version is used when no version id is given. The form
        row's title and description serve as fallbacks for the blob.
        """
        form = self.get_form(form_id, user_id)
        if version_id:
            version = self.get_version(form_id, version_id)
        else:
            version = self._latest_version(form_id)

        return FormDefinition.from_stored(
            version.get("form_data"),
            title=form.get("title"),
            description=form.get("description")
        )

    def save_version(
        self,
        form_id: str,
        user_id: str,
        definition: FormDefinition,
        commit_message: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Store a definition as the next version and sync the form row

        Returns:
            The inserted version row
        """
        self.get_form(form_id, user_id)
        version_number = self._next_version_number(form_id)

        result = retry_supabase_query(
            lambda: self.client.table("form_versions").insert({
                "form_id": form_id,
                "form_data": definition.to_wire(),
                "version_number": version_number,
                "created_by": user_id,
                "commit_message": commit_message,
            }).execute()
        )
        version = result.data[0]

        retry_supabase_query(
            lambda: self.client.table("forms").update({
                "title": definition.title,
                "description": definition.description,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            }).eq("id", form_id).execute()
        )

        logger.info(f"Saved version {version_number} of form {form_id}")
        return version

    def restore_version(self, form_id: str, version_id: str, user_id: str) -> Dict[str, Any]:
        """Copy an older version's data into a new version"""
        source = self.get_version(form_id, version_id, user_id)
        form = self.get_form(form_id)
        definition = FormDefinition.from_stored(
            source.get("form_data"),
            title=form.get("title"),
            description=form.get("description")
        )
        return self.save_version(
            form_id,
            user_id,
            definition,
            commit_message=f"Restored from version {source.get('version_number')}"
        )


_store: Optional[FormStore] = None


def get_form_store() -> FormStore:
    """Shared store instance (FastAPI dependency)"""
    global _store
    if _store is None:
        _store = FormStore()
    return _store
