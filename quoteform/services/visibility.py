"""
Visibility evaluation for conditional questions and success pages.

The same rules are re-implemented in the compiled artifact's behavior
script (see artifact_runtime.py); any change here must be mirrored there.
"""
import json
import math
from decimal import Decimal
from typing import Any, Iterable, List, Optional, Sequence, Union

from quoteform.models.forms import (
    Answers,
    CHOICE_TYPES,
    CONTACT_FIELDS,
    Condition,
    Question,
    SuccessPage,
)


def find_question(questions: Sequence[Question], question_id: str) -> Optional[Question]:
    """First question carrying `question_id` (ids are expected to be unique)"""
    for question in questions:
        if question.id == question_id:
            return question
    return None


def _question_index(questions: Sequence[Question], question_id: str) -> int:
    for index, question in enumerate(questions):
        if question.id == question_id:
            return index
    return -1


def has_answer(answers: Answers, question_id: str) -> bool:
    """An answer that is missing or null is absent"""
    return answers.get(question_id) is not None


def combine_results(results: Iterable[bool], logic: str) -> bool:
    """AND unless the logic is explicitly OR"""
    if logic == "OR":
        return any(results)
    return all(results)


def evaluate_condition(
    condition: Condition,
    answers: Answers,
    all_questions: Sequence[Question]
) -> bool:
    """
    Strict per-condition check used for question visibility.

    Args:
        condition: The condition to test
        answers: Current answers keyed by question id
        all_questions: Every question of the form, in order

    Returns:
        True if the referenced answer satisfies the condition. Missing
        source questions or answers never satisfy a condition.
    """
    source = find_question(all_questions, condition.question_id)
    if source is None or not has_answer(answers, condition.question_id):
        return False

    answer = answers[condition.question_id]

    if source.type in CHOICE_TYPES:
        selected = answer if isinstance(answer, list) else [answer]
        return any(value in selected for value in condition.values)

    if source.type == "text_input":
        if not condition.values:
            return False
        return isinstance(answer, str) and condition.values[0] == answer

    # address / contact_form answers are not condition sources here
    return False


def is_visible(
    entity: Union[Question, SuccessPage],
    answers: Answers,
    all_questions: Sequence[Question]
) -> bool:
    """
    Decide whether a question (or success page) applies to the current answers.

    A question only ever depends on questions placed before it; conditions
    pointing at itself or at a later question are never satisfied.
    """
    conditions = entity.conditions or []
    if not conditions:
        return True

    own_index = -1
    if isinstance(entity, Question):
        # position of this very question, so a repeated id later in the list
        # is not mistaken for its first occurrence
        own_index = next((i for i, q in enumerate(all_questions) if q is entity), -1)
        if own_index == -1:
            own_index = _question_index(all_questions, entity.id)

    results = []
    for condition in conditions:
        if own_index != -1 and _question_index(all_questions, condition.question_id) >= own_index:
            results.append(False)
            continue
        results.append(evaluate_condition(condition, answers, all_questions))

    return combine_results(results, entity.condition_logic)


def _js_number(value: Union[int, float]) -> str:
    """Number text as the browser prints it (String(n) / JSON.stringify)"""
    if isinstance(value, int) and abs(value) < 10 ** 21:
        return str(value)
    value = float(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))

    text = repr(value)
    if abs(value) >= 1e21 or abs(value) < 1e-6:
        mantissa, exponent = text.split("e")
        exponent = int(exponent)
        return f"{mantissa}e{'+' if exponent > 0 else '-'}{abs(exponent)}"
    if "e" in text:
        return format(Decimal(text), "f")
    return text


def _to_json(value: Any) -> str:
    if isinstance(value, dict):
        return "{" + ",".join(
            f"{json.dumps(str(k), ensure_ascii=False)}:{_to_json(v)}" for k, v in value.items()
        ) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_to_json(item) for item in value) + "]"
    if isinstance(value, float) and not math.isfinite(value):
        return "null"
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return _js_number(value)
    return json.dumps(value, ensure_ascii=False)


def stringify(value: Any) -> str:
    """String form of an answer fragment, matching the artifact runtime"""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return _js_number(value)
    if isinstance(value, str):
        return value
    return _to_json(value)


def evaluate_success_condition(
    condition: Condition,
    answers: Answers,
    all_questions: Sequence[Question]
) -> bool:
    """
    Relaxed per-condition check used only for success-page redirects.

    Unlike evaluate_condition this ignores the source question's type:
    list answers match when any stringified element is listed, object
    answers when any stringified property value is listed, and scalar
    answers by plain membership. Kept separate on purpose; the two rules
    disagree for address/contact answers.
    """
    source = find_question(all_questions, condition.question_id)
    if source is None or not has_answer(answers, condition.question_id):
        return False

    answer = answers[condition.question_id]

    if isinstance(answer, list):
        candidates = [stringify(item) for item in answer]
    elif isinstance(answer, dict):
        candidates = [stringify(item) for item in answer.values()]
    else:
        return answer in condition.values

    return any(candidate in condition.values for candidate in candidates)


def success_page_matches(
    page: SuccessPage,
    answers: Answers,
    all_questions: Sequence[Question]
) -> bool:
    """Relaxed counterpart of is_visible for a success page"""
    if not page.conditions:
        return True
    results = [
        evaluate_success_condition(condition, answers, all_questions)
        for condition in page.conditions
    ]
    return combine_results(results, page.condition_logic)


def active_question_ids(questions: Sequence[Question], answers: Answers) -> List[str]:
    """Ordered ids of the questions visible for `answers`"""
    return [q.id for q in questions if is_visible(q, answers, questions)]


def is_truthy(value: Any) -> bool:
    """Truthiness as the artifact runtime sees it (objects and lists are truthy)"""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0 and not (isinstance(value, float) and math.isnan(value))
    if isinstance(value, str):
        return value != ""
    return True


def _filled(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def is_answered(question: Question, answer: Any) -> bool:
    """Required-satisfaction predicate for a single question"""
    if question.type == "multiple_choice":
        return isinstance(answer, list) and len(answer) > 0
    if question.type == "text_input":
        return _filled(answer)
    if question.type == "contact_form":
        if not isinstance(answer, dict):
            return False
        return all(_filled(answer.get(field)) for field in CONTACT_FIELDS) and answer.get("termsAccepted") is True
    return is_truthy(answer)
