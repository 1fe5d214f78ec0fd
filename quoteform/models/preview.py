"""Live-preview and submission Pydantic models"""
from pydantic import BaseModel, Field, model_validator
from typing import Optional, List, Dict, Any, Literal

from quoteform.models.forms import AddressAnswer, Answers, FormDefinition


PreviewAction = Literal["state", "answer", "toggle", "next", "back", "reset"]


class PreviewSessionRequest(BaseModel):
    """
    Stateless preview step: the session is rebuilt from the request,
    the action applied, and the new state returned
    """
    definition: FormDefinition
    answers: Answers = Field(default_factory=dict)
    current_question_id: Optional[str] = None
    submitted: bool = False
    action: PreviewAction = "state"
    question_id: Optional[str] = None
    value: Any = None
    option_id: Optional[str] = None

    @model_validator(mode="after")
    def check_action_arguments(self) -> "PreviewSessionRequest":
        if self.action in ("answer", "toggle") and not self.question_id:
            raise ValueError(f"question_id is required for action '{self.action}'")
        if self.action == "toggle" and not self.option_id:
            raise ValueError("option_id is required for action 'toggle'")
        return self


class PreviewSessionResponse(BaseModel):
    """Serializable session state after the action"""
    current_question_id: Optional[str] = None
    current_index: Optional[int] = None
    active_question_ids: List[str]
    progress: float
    submitted: bool
    is_last: bool
    can_go_back: bool
    can_advance: bool
    redirect_url: Optional[str] = None
    answers: Dict[str, Any]
    applied: bool = True


class ResolveRequest(BaseModel):
    definition: FormDefinition
    answers: Answers = Field(default_factory=dict)


class ResolveResponse(BaseModel):
    redirect_url: str


class PostcodeLookupRequest(BaseModel):
    """Address lookup, optionally scoped to a form's address question"""
    postcode: str
    definition: Optional[FormDefinition] = None
    question_id: Optional[str] = None


class PostcodeLookupResponse(BaseModel):
    postcode: str
    candidates: List[AddressAnswer]


class SubmitRequest(BaseModel):
    """Public submission: an inline definition or a stored form version"""
    definition: Optional[FormDefinition] = None
    form_id: Optional[str] = None
    version_id: Optional[str] = None
    answers: Answers = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_source(self) -> "SubmitRequest":
        if self.definition is None and not self.form_id:
            raise ValueError("Either definition or form_id is required")
        return self


class SubmitResponse(BaseModel):
    success: bool
    redirect_url: str
    webhook_scheduled: bool = False
