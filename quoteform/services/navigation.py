"""
Navigation state machine for filling in a form.

A FormSession owns one AnswerStore and keeps the active question sequence
in step with it. States are "at question <index>" (index into the full
question list), "submitted", and the empty state when no question is
visible.
"""
import copy
import logging
from typing import Any, Dict, List, Optional

from quoteform.models.forms import Answers, FormDefinition, Question
from quoteform.services.resolver import resolve_for_form
from quoteform.services.visibility import active_question_ids, is_answered

logger = logging.getLogger(__name__)


class AnswerStore:
    """Answers of a single fill-in session, keyed by question id"""

    def __init__(self, answers: Optional[Answers] = None):
        self._answers: Dict[str, Any] = copy.deepcopy(dict(answers or {}))

    @property
    def answers(self) -> Answers:
        return self._answers

    def get(self, question_id: str, default: Any = None) -> Any:
        return self._answers.get(question_id, default)

    def set(self, question_id: str, value: Any) -> None:
        if value is None:
            self._answers.pop(question_id, None)
        else:
            self._answers[question_id] = value

    def toggle_option(self, question_id: str, option_id: str) -> List[str]:
        """Add or remove an option of a multiple choice answer, keeping order"""
        current = self._answers.get(question_id)
        selected = list(current) if isinstance(current, list) else []
        if option_id in selected:
            selected.remove(option_id)
        else:
            selected.append(option_id)
        self._answers[question_id] = selected
        return selected

    def clear(self) -> None:
        self._answers.clear()

    def snapshot(self) -> Answers:
        return copy.deepcopy(self._answers)


class FormSession:
    """Position, answers and submission state for one respondent"""

    def __init__(
        self,
        form: FormDefinition,
        store: Optional[AnswerStore] = None,
        current_question_id: Optional[str] = None,
        submitted: bool = False
    ):
        self.form = form
        self.store = store if store is not None else AnswerStore()
        self.submitted = submitted
        self.active_ids: List[str] = []
        self.current_index: Optional[int] = None

        self._recompute()
        if current_question_id is not None and current_question_id in self.active_ids:
            self.current_index = self._index_of(current_question_id)
        else:
            self.current_index = self._first_active_index()

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def questions(self) -> List[Question]:
        return self.form.questions

    @property
    def answers(self) -> Answers:
        return self.store.answers

    @property
    def current_question(self) -> Optional[Question]:
        if self.submitted or self.current_index is None:
            return None
        return self.questions[self.current_index]

    @property
    def current_question_id(self) -> Optional[str]:
        question = self.current_question
        return question.id if question else None

    @property
    def position(self) -> int:
        """Position of the current question in the active sequence, -1 if none"""
        question_id = self.current_question_id
        if question_id is None or question_id not in self.active_ids:
            return -1
        return self.active_ids.index(question_id)

    @property
    def progress(self) -> float:
        if self.submitted:
            return 1.0
        if not self.active_ids or self.position == -1:
            return 0.0
        return (self.position + 1) / len(self.active_ids)

    @property
    def is_last(self) -> bool:
        return self.position != -1 and self.position == len(self.active_ids) - 1

    @property
    def can_go_back(self) -> bool:
        return self.position > 0

    @property
    def can_advance(self) -> bool:
        question = self.current_question
        if self.submitted:
            return False
        if question is None or not question.required:
            return True
        return is_answered(question, self.store.get(question.id))

    @property
    def redirect_url(self) -> Optional[str]:
        if not self.submitted:
            return None
        return resolve_for_form(self.form, self.answers)

    # ------------------------------------------------------------------
    # Answer mutations (each one recomputes the active sequence)
    # ------------------------------------------------------------------

    def set_answer(self, question_id: str, value: Any) -> None:
        self.store.set(question_id, value)
        self._on_answers_changed()

    def toggle_option(self, question_id: str, option_id: str) -> List[str]:
        selected = self.store.toggle_option(question_id, option_id)
        self._on_answers_changed()
        return selected

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def next(self) -> bool:
        """
        Advance to the next active question or submit from the last one

        Returns:
            False when blocked (required question unanswered) or already
            submitted, True otherwise
        """
        if self.submitted:
            return False

        question = self.current_question
        if question is None:
            self.submitted = True
            return True

        if not self.can_advance:
            logger.debug(f"Next blocked on required question {question.id}")
            return False

        position = self.position
        if position < len(self.active_ids) - 1:
            self.current_index = self._index_of(self.active_ids[position + 1])
        else:
            self.submitted = True
        return True

    def back(self) -> bool:
        if self.submitted or self.position <= 0:
            return False
        self.current_index = self._index_of(self.active_ids[self.position - 1])
        return True

    def reset(self) -> None:
        self.store.clear()
        self.submitted = False
        self._recompute()
        self.current_index = self._first_active_index()

    def snapshot(self) -> Dict[str, Any]:
        """Serializable view of the session"""
        return {
            "current_question_id": self.current_question_id,
            "current_index": None if self.submitted else self.current_index,
            "active_question_ids": list(self.active_ids),
            "progress": self.progress,
            "submitted": self.submitted,
            "is_last": self.is_last,
            "can_go_back": self.can_go_back,
            "can_advance": self.can_advance,
            "redirect_url": self.redirect_url,
            "answers": self.store.snapshot(),
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _recompute(self) -> None:
        self.active_ids = active_question_ids(self.questions, self.answers)

    def _on_answers_changed(self) -> None:
        self._recompute()
        current_id = None
        if self.current_index is not None:
            current_id = self.questions[self.current_index].id
        if current_id not in self.active_ids:
            self.current_index = self._first_active_index()

    def _first_active_index(self) -> Optional[int]:
        if not self.active_ids:
            return None
        return self._index_of(self.active_ids[0])

    def _index_of(self, question_id: str) -> Optional[int]:
        for index, question in enumerate(self.questions):
            if question.id == question_id:
                return index
        return None
