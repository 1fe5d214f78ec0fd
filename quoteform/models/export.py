"""Export-related Pydantic models"""
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, Literal

from quoteform.models.forms import FormDefinition


MARKUP_FILENAME = "quote-form.html"
STYLESHEET_FILENAME = "form-styles.css"
BEHAVIOR_FILENAME = "form-script.js"


class CompiledArtifact(BaseModel):
    """Standalone markup / stylesheet / behavior bundle"""
    markup: str
    stylesheet: str
    behavior: str

    def files(self) -> Dict[str, str]:
        """File name -> contents, for download or archive packaging"""
        return {
            MARKUP_FILENAME: self.markup,
            STYLESHEET_FILENAME: self.stylesheet,
            BEHAVIOR_FILENAME: self.behavior,
        }


class CompileRequest(BaseModel):
    """Compile a form definition supplied inline"""
    definition: FormDefinition
    mode: Literal["single", "separate"] = "separate"
    normalize: bool = Field(True, description="Rewrite ids before compiling")


class CompileResponse(BaseModel):
    """Compiled artifact; `single_file` is set in single mode"""
    mode: str
    files: Dict[str, str] = {}
    single_file: Optional[str] = None
    normalized_definition: Dict[str, Any]


class NormalizeResponse(BaseModel):
    """Normalized definition plus the id mapping used"""
    definition: Dict[str, Any]
    question_ids: Dict[str, str]
    option_ids: Dict[str, Dict[str, str]]
