"""Submission handling: human-readable answers and webhook delivery"""
from typing import Any, Dict, Optional, Sequence, Tuple
import logging

import httpx

from quoteform.models.forms import Answers, FormDefinition, Question
from quoteform.services.visibility import stringify

logger = logging.getLogger(__name__)

ADDRESS_LABELS: Sequence[Tuple[str, str]] = (
    ("fullAddress", "Full Address"),
    ("buildingNumber", "Building Number"),
    ("street", "Street"),
    ("town", "Town"),
    ("postcode", "Postcode"),
)

CONTACT_LABELS: Sequence[Tuple[str, str]] = (
    ("firstName", "First Name"),
    ("lastName", "Last Name"),
    ("phone", "Phone"),
    ("email", "Email"),
    ("termsAccepted", "Terms Accepted"),
)


def _option_text(question: Question, option_id: Any) -> Any:
    option = question.option_by_id(option_id) if isinstance(option_id, str) else None
    return option.text if option else option_id


def _labelled(answer: Any, labels: Sequence[Tuple[str, str]]) -> Dict[str, Any]:
    if not isinstance(answer, dict):
        return {}
    return {
        label: answer[key]
        for key, label in labels
        if answer.get(key) is not None
    }


def transform_answers(form: FormDefinition, answers: Answers) -> Dict[str, Any]:
    """
    Convert raw answers into the payload posted to the webhook

    Keys are question texts; option ids become option texts and structured
    answers get readable labels. Answers for unknown questions are skipped.

    Args:
        form: The form the answers belong to
        answers: Raw answers keyed by question id

    Returns:
        Dict mapping question text to a human-readable value
    """
    transformed: Dict[str, Any] = {}
    for question_id, answer in answers.items():
        question = form.question_by_id(question_id)
        if question is None or answer is None:
            continue

        if question.type == "single_choice":
            value = _option_text(question, answer)
        elif question.type == "multiple_choice":
            option_ids = answer if isinstance(answer, list) else [answer]
            value = ", ".join(stringify(_option_text(question, oid)) for oid in option_ids)
        elif question.type == "address":
            value = _labelled(answer, ADDRESS_LABELS)
        elif question.type == "contact_form":
            value = _labelled(answer, CONTACT_LABELS)
        else:
            value = answer

        transformed[question.text] = value
    return transformed


async def send_to_webhook(
    url: str,
    payload: Dict[str, Any],
    timeout: float = 10.0,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> bool:
    """
    POST the payload to the configured webhook, once

    Delivery is best effort: failures are logged and reported through the
    return value, never raised.

    Returns:
        True if the webhook answered with a 2xx status
    """
    if not url:
        return False

    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.post(url, json=payload)

        if response.is_success:
            logger.info(f"Webhook delivered to {url}")
            return True

        logger.error(f"Webhook {url} returned {response.status_code}: {response.text[:200]}")
        return False

    except httpx.HTTPError as e:
        logger.error(f"Webhook delivery to {url} failed: {e}")
        return False
    except Exception as e:
        logger.error(f"Unexpected webhook error for {url}: {e}")
        return False
