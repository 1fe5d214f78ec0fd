"""Export endpoints: normalization and artifact compilation"""
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from typing import Dict
import logging

from quoteform.config import get_settings
from quoteform.middleware.auth import get_current_user
from quoteform.models.export import (
    BEHAVIOR_FILENAME,
    MARKUP_FILENAME,
    STYLESHEET_FILENAME,
    CompileRequest,
    CompileResponse,
    NormalizeResponse,
)
from quoteform.models.forms import FormDefinition
from quoteform.services.compiler import compile_form, render_single_file
from quoteform.services.form_store import (
    FormAccessError,
    FormNotFoundError,
    FormStore,
    get_form_store,
)
from quoteform.services.normalizer import NormalizationError, build_id_map, normalize

logger = logging.getLogger(__name__)
router = APIRouter()

MEDIA_TYPES = {
    MARKUP_FILENAME: "text/html; charset=utf-8",
    STYLESHEET_FILENAME: "text/css; charset=utf-8",
    BEHAVIOR_FILENAME: "application/javascript; charset=utf-8",
}


def compiler_options() -> Dict:
    settings = get_settings()
    return {
        "prefix": settings.artifact_prefix,
        "storage_key": settings.artifact_storage_key,
        "redirect_delay_ms": settings.redirect_delay_ms,
    }


@router.post("/normalize", response_model=NormalizeResponse)
async def normalize_definition(definition: FormDefinition):
    """Preview the positional ids an export would use"""
    try:
        id_map = build_id_map(definition)
        normalized = normalize(definition)
        return NormalizeResponse(
            definition=normalized.to_wire(),
            question_ids=id_map.questions,
            option_ids=id_map.options
        )
    except NormalizationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.error(f"Normalization error: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/compile", response_model=CompileResponse)
async def compile_definition(request: CompileRequest):
    """
    Compile an inline definition

    mode=separate returns the three files; mode=single returns one HTML
    document with stylesheet and behavior inlined.
    """
    try:
        form = normalize(request.definition) if request.normalize else request.definition
        options = compiler_options()

        if request.mode == "single":
            document = render_single_file(form, **options)
            return CompileResponse(
                mode="single",
                files={MARKUP_FILENAME: document},
                single_file=document,
                normalized_definition=form.to_wire()
            )

        artifact = compile_form(form, **options)
        return CompileResponse(
            mode="separate",
            files=artifact.files(),
            normalized_definition=form.to_wire()
        )

    except NormalizationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.error(f"Compile error: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{form_id}/{version_id}/{filename}")
async def download_artifact_file(
    form_id: str,
    version_id: str,
    filename: str,
    current_user: Dict = Depends(get_current_user),
    store: FormStore = Depends(get_form_store)
):
    """
    Download one compiled file of a stored version

    `version_id` may be "latest".
    """
    if filename not in MEDIA_TYPES:
        raise HTTPException(status_code=404, detail=f"Unknown artifact file {filename}")

    try:
        definition = store.load_definition(
            form_id,
            None if version_id == "latest" else version_id,
            current_user["user_id"]
        )
        artifact = compile_form(normalize(definition), **compiler_options())

        return Response(
            content=artifact.files()[filename],
            media_type=MEDIA_TYPES[filename],
            headers={"Content-Disposition": f'attachment; filename="{filename}"'}
        )

    except HTTPException:
        raise
    except FormNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except FormAccessError:
        raise HTTPException(status_code=403, detail="Access denied")
    except NormalizationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.error(f"Error exporting form {form_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))
