"""Form version endpoints and public submission"""
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from typing import Dict, List
import logging

from quoteform.config import get_settings
from quoteform.middleware.auth import get_current_user
from quoteform.models.forms import FormDefinition, SaveVersionRequest, VersionResponse
from quoteform.models.preview import SubmitRequest, SubmitResponse
from quoteform.services.form_store import (
    FormAccessError,
    FormNotFoundError,
    FormStore,
    get_form_store,
)
from quoteform.services.resolver import resolve_for_form
from quoteform.services.submission_service import send_to_webhook, transform_answers

logger = logging.getLogger(__name__)
router = APIRouter()


def store_error(e: Exception) -> HTTPException:
    """Map persistence errors onto HTTP errors"""
    if isinstance(e, FormNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, FormAccessError):
        return HTTPException(status_code=403, detail="Access denied")
    return HTTPException(status_code=500, detail=str(e))


def version_response(version: Dict, form: Dict) -> VersionResponse:
    definition = FormDefinition.from_stored(
        version.get("form_data"),
        title=form.get("title"),
        description=form.get("description")
    )
    return VersionResponse(
        id=version["id"],
        form_id=version.get("form_id") or form["id"],
        version_number=version.get("version_number") or 0,
        commit_message=version.get("commit_message"),
        created_by=version.get("created_by"),
        created_at=version.get("created_at"),
        definition=definition.to_wire()
    )


@router.post("/submit", response_model=SubmitResponse)
async def submit_form(
    request: SubmitRequest,
    background_tasks: BackgroundTasks,
    store: FormStore = Depends(get_form_store)
):
    """
    Handle a respondent's submission (PUBLIC endpoint)

    Resolves the success redirect and schedules the webhook delivery; the
    response never waits for (or depends on) the webhook.
    """
    try:
        definition = request.definition
        if definition is None:
            definition = store.load_definition(request.form_id, request.version_id)

        redirect_url = resolve_for_form(definition, request.answers)

        webhook_url = definition.settings.zapier_webhook_url
        if webhook_url:
            payload = transform_answers(definition, request.answers)
            background_tasks.add_task(
                send_to_webhook,
                webhook_url,
                payload,
                get_settings().webhook_timeout_seconds
            )

        logger.info(f"Submission for '{definition.title}' -> {redirect_url or '(no redirect)'}")
        return SubmitResponse(
            success=True,
            redirect_url=redirect_url,
            webhook_scheduled=bool(webhook_url)
        )

    except HTTPException:
        raise
    except (FormNotFoundError, FormAccessError) as e:
        raise store_error(e)
    except Exception as e:
        logger.error(f"Form submission error: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{form_id}/versions")
async def list_versions(
    form_id: str,
    current_user: Dict = Depends(get_current_user),
    store: FormStore = Depends(get_form_store)
) -> List[Dict]:
    """Version history of a form, newest first"""
    try:
        return store.list_versions(form_id, current_user["user_id"])
    except HTTPException:
        raise
    except (FormNotFoundError, FormAccessError) as e:
        raise store_error(e)
    except Exception as e:
        logger.error(f"Error listing versions of form {form_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{form_id}/versions/latest", response_model=VersionResponse)
async def get_latest_version(
    form_id: str,
    current_user: Dict = Depends(get_current_user),
    store: FormStore = Depends(get_form_store)
):
    try:
        form = store.get_form(form_id, current_user["user_id"])
        version = store.get_latest_version(form_id)
        return version_response(version, form)
    except HTTPException:
        raise
    except (FormNotFoundError, FormAccessError) as e:
        raise store_error(e)
    except Exception as e:
        logger.error(f"Error loading latest version of form {form_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{form_id}/versions/{version_id}", response_model=VersionResponse)
async def get_version(
    form_id: str,
    version_id: str,
    current_user: Dict = Depends(get_current_user),
    store: FormStore = Depends(get_form_store)
):
    try:
        form = store.get_form(form_id, current_user["user_id"])
        version = store.get_version(form_id, version_id)
        return version_response(version, form)
    except HTTPException:
        raise
    except (FormNotFoundError, FormAccessError) as e:
        raise store_error(e)
    except Exception as e:
        logger.error(f"Error loading version {version_id} of form {form_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{form_id}/versions", response_model=VersionResponse)
async def save_version(
    form_id: str,
    request: SaveVersionRequest,
    current_user: Dict = Depends(get_current_user),
    store: FormStore = Depends(get_form_store)
):
    """Save the edited definition as a new version"""
    try:
        version = store.save_version(
            form_id,
            current_user["user_id"],
            request.definition,
            request.commit_message
        )
        form = {
            "id": form_id,
            "title": request.definition.title,
            "description": request.definition.description,
        }
        return version_response(version, form)
    except HTTPException:
        raise
    except (FormNotFoundError, FormAccessError) as e:
        raise store_error(e)
    except Exception as e:
        logger.error(f"Error saving version of form {form_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{form_id}/versions/{version_id}/restore", response_model=VersionResponse)
async def restore_version(
    form_id: str,
    version_id: str,
    current_user: Dict = Depends(get_current_user),
    store: FormStore = Depends(get_form_store)
):
    """Create a new version carrying an older version's data"""
    try:
        version = store.restore_version(form_id, version_id, current_user["user_id"])
        form = store.get_form(form_id)
        return version_response(version, form)
    except HTTPException:
        raise
    except (FormNotFoundError, FormAccessError) as e:
        raise store_error(e)
    except Exception as e:
        logger.error(f"Error restoring version {version_id} of form {form_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))
