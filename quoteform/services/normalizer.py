"""
Identifier normalization for export.

Editor ids are random UUIDs. Before compiling, every question, option,
condition and success page gets a positional id (q_1, q_1_opt_2, ...) and
every reference is rewritten in a second pass, so the compiled artifact
behaves exactly like the source form.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Set
import logging

from quoteform.models.forms import Answers, Condition, FormDefinition

logger = logging.getLogger(__name__)


class NormalizationError(Exception):
    """A reference cannot be carried over without changing form behavior"""


@dataclass
class IdMap:
    """Old -> new ids. Option ids are scoped by the *old* question id"""
    questions: Dict[str, str] = field(default_factory=dict)
    options: Dict[str, Dict[str, str]] = field(default_factory=dict)

    @property
    def new_question_ids(self) -> Set[str]:
        return set(self.questions.values())

    def option_map_for(self, old_question_id: str) -> Dict[str, str]:
        return self.options.get(old_question_id, {})


def question_id_for(position: int) -> str:
    return f"q_{position}"


def option_id_for(question_id: str, position: int) -> str:
    return f"{question_id}_opt_{position}"


def build_id_map(form: FormDefinition) -> IdMap:
    """
    First pass: assign positional ids

    Duplicate ids keep their first assignment, matching how the evaluator
    resolves a duplicated id to its first occurrence.
    """
    id_map = IdMap()
    for q_pos, question in enumerate(form.questions, start=1):
        new_question_id = question_id_for(q_pos)
        if question.id in id_map.questions:
            logger.warning(f"Duplicate question id {question.id!r}; keeping first occurrence")
            continue
        id_map.questions[question.id] = new_question_id

        option_map: Dict[str, str] = {}
        for o_pos, option in enumerate(question.options or [], start=1):
            if option.id in option_map:
                logger.warning(f"Duplicate option id {option.id!r} in question {question.id!r}")
                continue
            option_map[option.id] = option_id_for(new_question_id, o_pos)
        id_map.options[question.id] = option_map
    return id_map


def _rewrite_condition(condition: Condition, id_map: IdMap, new_id: str, owner: str) -> Condition:
    old_source = condition.question_id
    if old_source in id_map.questions:
        new_source = id_map.questions[old_source]
    else:
        # Dangling reference: keep it, unless it would now point at a real question
        if old_source in id_map.new_question_ids:
            raise NormalizationError(
                f"{owner} references missing question {old_source!r}, "
                f"which clashes with a generated question id"
            )
        new_source = old_source

    option_map = id_map.option_map_for(old_source)
    new_option_ids = set(option_map.values())
    values: List[str] = []
    for value in condition.values:
        if value in option_map:
            values.append(option_map[value])
        elif value in new_option_ids:
            raise NormalizationError(
                f"{owner} references unknown option {value!r}, "
                f"which clashes with a generated option id"
            )
        else:
            values.append(value)

    return Condition(id=new_id, question_id=new_source, values=values)


def normalize(form: FormDefinition) -> FormDefinition:
    """
    Produce a copy of the form with stable, positional identifiers

    Args:
        form: Form as edited by the author (left untouched)

    Returns:
        Normalized FormDefinition with identical visibility behavior

    Raises:
        NormalizationError: A dangling reference would collide with a
            generated id and could not be passed through unchanged
    """
    id_map = build_id_map(form)
    normalized = form.model_copy(deep=True)

    # Second pass: relabel nodes and rewrite every edge
    for q_pos, question in enumerate(normalized.questions, start=1):
        new_question_id = question_id_for(q_pos)
        owner = f"Question {q_pos}"

        if question.options is not None:
            for o_pos, option in enumerate(question.options, start=1):
                option.id = option_id_for(new_question_id, o_pos)

        if question.conditions is not None:
            question.conditions = [
                _rewrite_condition(c, id_map, f"{new_question_id}_cond_{c_pos}", owner)
                for c_pos, c in enumerate(question.conditions, start=1)
            ]

        question.id = new_question_id

    for p_pos, page in enumerate(normalized.settings.success_pages, start=1):
        new_page_id = f"success_{p_pos}"
        page.conditions = [
            _rewrite_condition(c, id_map, f"{new_page_id}_cond_{c_pos}", f"Success page {p_pos}")
            for c_pos, c in enumerate(page.conditions, start=1)
        ]
        page.id = new_page_id

    logger.info(f"Normalized form '{form.title}': {len(id_map.questions)} questions")
    return normalized


def rewrite_answers(answers: Answers, id_map: IdMap) -> Answers:
    """
    Rewrite an answer map into the normalized id space

    Keys go through the question map; option ids inside choice answers go
    through that question's option map. Everything else passes through.
    """
    rewritten: Dict[str, Any] = {}
    for old_question_id, value in answers.items():
        new_question_id = id_map.questions.get(old_question_id, old_question_id)
        option_map = id_map.option_map_for(old_question_id)
        rewritten[new_question_id] = _rewrite_answer_value(value, option_map)
    return rewritten


def _rewrite_answer_value(value: Any, option_map: Dict[str, str]) -> Any:
    if not option_map:
        return value
    if isinstance(value, list):
        return [option_map.get(item, item) if isinstance(item, str) else item for item in value]
    if isinstance(value, str):
        return option_map.get(value, value)
    return value
