"""Live-preview endpoints (stateless; the client carries the session)"""
from fastapi import APIRouter, HTTPException
from pydantic import ValidationError
from typing import Any
import logging

from quoteform.config import get_settings
from quoteform.models.forms import AddressAnswer, ContactAnswer, Question
from quoteform.models.preview import (
    PostcodeLookupRequest,
    PostcodeLookupResponse,
    PreviewSessionRequest,
    PreviewSessionResponse,
    ResolveRequest,
    ResolveResponse,
)
from quoteform.services.navigation import AnswerStore, FormSession
from quoteform.services.postcode_service import PostcodeLookupError, lookup_postcode
from quoteform.services.resolver import resolve_for_form

logger = logging.getLogger(__name__)
router = APIRouter()


def coerce_answer(question: Question, value: Any) -> Any:
    """Give structured answers the exact shape the artifact produces"""
    if isinstance(value, dict):
        if question.type == "address":
            return AddressAnswer.model_validate(value).to_wire()
        if question.type == "contact_form":
            return ContactAnswer.model_validate(value).to_wire()
    return value


@router.post("/session", response_model=PreviewSessionResponse)
async def preview_session(request: PreviewSessionRequest):
    """Apply one navigation action to a preview session"""
    try:
        session = FormSession(
            request.definition,
            store=AnswerStore(request.answers),
            current_question_id=request.current_question_id,
            submitted=request.submitted
        )

        applied = True
        if request.action in ("answer", "toggle"):
            question = request.definition.question_by_id(request.question_id)
            if question is None:
                raise HTTPException(status_code=404, detail=f"Question {request.question_id} not found")
            if request.action == "answer":
                session.set_answer(question.id, coerce_answer(question, request.value))
            else:
                session.toggle_option(question.id, request.option_id)
        elif request.action == "next":
            applied = session.next()
        elif request.action == "back":
            applied = session.back()
        elif request.action == "reset":
            session.reset()

        return PreviewSessionResponse(**session.snapshot(), applied=applied)

    except HTTPException:
        raise
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.error(f"Preview session error: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/resolve", response_model=ResolveResponse)
async def preview_resolve(request: ResolveRequest):
    """Which success page a submission with these answers would land on"""
    try:
        return ResolveResponse(redirect_url=resolve_for_form(request.definition, request.answers))
    except Exception as e:
        logger.error(f"Resolve error: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/postcode", response_model=PostcodeLookupResponse)
async def preview_postcode(request: PostcodeLookupRequest):
    """
    Look up address candidates for a postcode

    Endpoint precedence: the question's own postcodeApi, then the form's
    postcodeApiUrl, then the service default.
    """
    settings = get_settings()
    api_url = settings.postcode_api_url
    api_key = settings.postcode_api_key

    if request.definition is not None:
        form_settings = request.definition.settings
        api_url = form_settings.postcode_api_url or api_url
        api_key = form_settings.postcode_api_key or api_key
        if request.question_id:
            question = request.definition.question_by_id(request.question_id)
            if question is not None and question.postcode_api:
                api_url = question.postcode_api

    try:
        candidates = await lookup_postcode(
            request.postcode,
            api_url,
            api_key or None,
            timeout=settings.postcode_timeout_seconds
        )
        return PostcodeLookupResponse(postcode=request.postcode.strip(), candidates=candidates)
    except PostcodeLookupError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Postcode lookup error: {e}")
        raise HTTPException(status_code=500, detail=str(e))
