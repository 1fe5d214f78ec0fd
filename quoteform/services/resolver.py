"""Success-redirect resolution"""
from typing import Sequence
import logging

from quoteform.models.forms import Answers, FormDefinition, Question, SuccessPage
from quoteform.services.visibility import success_page_matches

logger = logging.getLogger(__name__)


def resolve(
    success_pages: Sequence[SuccessPage],
    answers: Answers,
    all_questions: Sequence[Question],
    default_url: str
) -> str:
    """
    Pick the redirect destination after submission

    Args:
        success_pages: Rules in priority order
        answers: Submitted answers keyed by question id
        all_questions: Every question of the form
        default_url: The form's submitUrl

    Returns:
        URL of the first matching page, otherwise default_url
    """
    for page in success_pages:
        if success_page_matches(page, answers, all_questions):
            logger.debug(f"Success page '{page.name or page.id}' matched")
            return page.url
    return default_url


def resolve_for_form(form: FormDefinition, answers: Answers) -> str:
    """resolve() with the pages, questions and default taken from the form"""
    return resolve(
        form.settings.success_pages,
        answers,
        form.questions,
        form.settings.submit_url
    )
