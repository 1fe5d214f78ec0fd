"""Form definition Pydantic models"""
import logging
import math

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Optional, List, Dict, Any, Literal, get_args

logger = logging.getLogger(__name__)


QuestionType = Literal[
    "single_choice",
    "multiple_choice",
    "text_input",
    "address",
    "contact_form",
]
ConditionLogic = Literal["AND", "OR"]

QUESTION_TYPES = get_args(QuestionType)

CHOICE_TYPES = ("single_choice", "multiple_choice")

# Contact answer identity keys, as stored by the authoring UI and the compiled artifact
CONTACT_FIELDS = ("firstName", "lastName", "phone", "email")

# Answers map question id -> str | list[str] | dict (address / contact_form)
Answers = Dict[str, Any]

DEFAULT_FORM_TITLE = "Form Preview"


def _coerce_logic(value: Any) -> str:
    if isinstance(value, str) and value.upper() == "OR":
        return "OR"
    return "AND"


def _none_to_empty(value: Any) -> Any:
    return "" if value is None else value


def _id_text(value: Any) -> Any:
    # numeric ids show up in hand-edited blobs
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


def _scalar_text(value: Any) -> Optional[str]:
    """Text form of a stored condition value; None for values that cannot match"""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float) and math.isfinite(value):
        return str(int(value)) if value.is_integer() else repr(value)
    return None


def _keep_entries(items: Any, key: str, kind: str, field: Optional[str] = None) -> Any:
    """Drop stored list entries that are not objects or lack `key`"""
    if not isinstance(items, list):
        return items
    kept = []
    for index, item in enumerate(items):
        if isinstance(item, BaseModel):
            kept.append(item)
            continue
        if not isinstance(item, dict) or (item.get(key) is None and item.get(field or key) is None):
            logger.warning(f"Skipping malformed {kind} at position {index}: missing {key}")
            continue
        kept.append(item)
    return kept


class FormModel(BaseModel):
    """Base for wire models: camelCase on the wire, snake_case in Python"""
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        """Dump using the stored (camelCase) keys"""
        return self.model_dump(by_alias=True, exclude_none=True)


class Option(FormModel):
    """Selectable option of a choice question"""
    id: str
    text: str = ""
    icon: Optional[str] = None
    description: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def id_as_text(cls, v: Any) -> Any:
        return _id_text(v)

    @field_validator("text", mode="before")
    @classmethod
    def default_text(cls, v: Any) -> Any:
        return _none_to_empty(v)


class Condition(FormModel):
    """A single rule: the answer to `question_id` must match one of `values`"""
    id: Optional[str] = None
    question_id: str = Field(..., alias="questionId")
    values: List[str] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def id_as_text(cls, v: Any) -> Any:
        return _id_text(v)

    @model_validator(mode="before")
    @classmethod
    def lift_legacy_value(cls, data: Any) -> Any:
        # Older versions stored a single `value` per condition
        if isinstance(data, dict) and data.get("values") is None and "value" in data:
            data = dict(data)
            legacy = data.pop("value")
            data["values"] = [] if legacy is None else [legacy]
        return data

    @field_validator("question_id", mode="before")
    @classmethod
    def question_id_as_text(cls, v: Any) -> Any:
        return _id_text(v)

    @field_validator("values", mode="before")
    @classmethod
    def values_as_text(cls, v: Any) -> List[str]:
        if v is None:
            return []
        if not isinstance(v, list):
            v = [v]
        texts = [_scalar_text(item) for item in v]
        return [t for t in texts if t is not None]


class Question(FormModel):
    """One step of the questionnaire"""
    id: str
    text: str = ""
    description: Optional[str] = None
    type: QuestionType
    required: bool = False
    options: Optional[List[Option]] = None
    conditions: Optional[List[Condition]] = None
    condition_logic: ConditionLogic = Field("AND", alias="conditionLogic")
    placeholder: Optional[str] = None
    postcode_api: Optional[str] = Field(None, alias="postcodeApi")

    @field_validator("condition_logic", mode="before")
    @classmethod
    def default_logic(cls, v: Any) -> str:
        return _coerce_logic(v)

    @field_validator("id", mode="before")
    @classmethod
    def id_as_text(cls, v: Any) -> Any:
        return _id_text(v)

    @field_validator("text", mode="before")
    @classmethod
    def default_text(cls, v: Any) -> Any:
        return _none_to_empty(v)

    @field_validator("required", mode="before")
    @classmethod
    def default_required(cls, v: Any) -> Any:
        return False if v is None else v

    @field_validator("options", mode="before")
    @classmethod
    def drop_malformed_options(cls, v: Any) -> Any:
        return _keep_entries(v, "id", "option")

    @field_validator("conditions", mode="before")
    @classmethod
    def drop_malformed_conditions(cls, v: Any) -> Any:
        return _keep_entries(v, "questionId", "condition", "question_id")

    @model_validator(mode="after")
    def options_match_type(self) -> "Question":
        """`options` is present iff the question is a choice question"""
        if self.type in CHOICE_TYPES:
            if self.options is None:
                self.options = []
        else:
            self.options = None
        return self

    @property
    def is_choice(self) -> bool:
        return self.type in CHOICE_TYPES

    def option_by_id(self, option_id: str) -> Optional[Option]:
        for option in self.options or []:
            if option.id == option_id:
                return option
        return None


class SuccessPage(FormModel):
    """Conditional redirect target evaluated on submission"""
    id: str
    name: str = ""
    url: str = ""
    conditions: List[Condition] = Field(default_factory=list)
    condition_logic: ConditionLogic = Field("AND", alias="conditionLogic")

    @field_validator("condition_logic", mode="before")
    @classmethod
    def default_logic(cls, v: Any) -> str:
        return _coerce_logic(v)

    @field_validator("conditions", mode="before")
    @classmethod
    def default_conditions(cls, v: Any) -> Any:
        return [] if v is None else _keep_entries(v, "questionId", "condition", "question_id")

    @field_validator("id", mode="before")
    @classmethod
    def id_as_text(cls, v: Any) -> Any:
        return _id_text(v)

    @field_validator("name", "url", mode="before")
    @classmethod
    def default_text(cls, v: Any) -> Any:
        return _none_to_empty(v)


class FormSettings(FormModel):
    """Styling, submission and address-lookup settings"""
    background_color: str = Field("#ffffff", alias="backgroundColor")
    button_color: str = Field("#000000", alias="buttonColor")
    submit_url: str = Field("", alias="submitUrl")
    zapier_webhook_url: str = Field("", alias="zapierWebhookUrl")
    postcode_api_url: str = Field("", alias="postcodeApiUrl")
    postcode_api_key: str = Field("", alias="postcodeApiKey")
    success_pages: List[SuccessPage] = Field(default_factory=list, alias="successPages")

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        # Stored blobs sometimes carry explicit nulls; fall back to defaults
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data

    @field_validator("success_pages", mode="before")
    @classmethod
    def drop_malformed_pages(cls, v: Any) -> Any:
        return _keep_entries(v, "id", "success page")


class FormDefinition(FormModel):
    """The whole questionnaire as edited by the author"""
    title: str = ""
    description: str = ""
    questions: List[Question] = Field(default_factory=list)
    settings: FormSettings = Field(default_factory=FormSettings)

    @field_validator("questions", mode="before")
    @classmethod
    def default_questions(cls, v: Any) -> Any:
        if v is None:
            return []
        questions = _keep_entries(v, "id", "question")
        if not isinstance(questions, list):
            return questions
        kept = []
        for question in questions:
            if isinstance(question, dict) and question.get("type") not in QUESTION_TYPES:
                logger.warning(f"Skipping question {question.get('id')}: unknown type {question.get('type')!r}")
                continue
            kept.append(question)
        return kept

    @field_validator("settings", mode="before")
    @classmethod
    def default_settings(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("title", "description", mode="before")
    @classmethod
    def default_text(cls, v: Any) -> Any:
        return "" if v is None else v

    def question_by_id(self, question_id: str) -> Optional[Question]:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None

    @classmethod
    def from_stored(
        cls,
        blob: Any,
        title: Optional[str] = None,
        description: Optional[str] = None
    ) -> "FormDefinition":
        """
        Build a definition from a stored version blob

        Missing questions/settings are replaced with defaults instead of
        failing; title and description fall back to the supplied values
        (usually the form row) and then to generic defaults.

        Args:
            blob: The `form_data` column of a form version
            title: Fallback title
            description: Fallback description

        Returns:
            FormDefinition

        Raises:
            ValueError: If the blob is not a mapping at all
        """
        if blob is None:
            blob = {}
        if not isinstance(blob, dict):
            raise ValueError("Stored form data must be a JSON object")

        data = dict(blob)
        data["title"] = data.get("title") or title or DEFAULT_FORM_TITLE
        data["description"] = data.get("description") or description or ""
        return cls.model_validate(data)


class AddressAnswer(FormModel):
    """Answer shape of an `address` question"""
    full_address: str = Field("", alias="fullAddress")
    building_number: str = Field("", alias="buildingNumber")
    street: str = ""
    town: str = ""
    postcode: str = ""


class ContactAnswer(FormModel):
    """Answer shape of a `contact_form` question"""
    first_name: str = Field("", alias="firstName")
    last_name: str = Field("", alias="lastName")
    phone: str = ""
    email: str = ""
    terms_accepted: bool = Field(False, alias="termsAccepted")


class SaveVersionRequest(BaseModel):
    """Store the edited definition as a new version"""
    definition: FormDefinition
    commit_message: Optional[str] = None


class VersionResponse(BaseModel):
    """A stored version with its definition (loader defaults applied)"""
    id: str
    form_id: str
    version_number: int
    commit_message: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[str] = None
    definition: Dict[str, Any]
