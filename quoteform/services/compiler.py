"""
Artifact compiler: turns a normalized form into standalone markup,
stylesheet and behavior script.

Pure text transform; the same input always yields byte-identical output.
"""
import html
import json
import logging
import re
from typing import Optional

from quoteform.models.export import (
    CompiledArtifact,
    STYLESHEET_FILENAME,
    BEHAVIOR_FILENAME,
)
from quoteform.models.forms import CONTACT_FIELDS, FormDefinition, Question
from quoteform.services.artifact_runtime import DOM_SCRIPT, ENGINE_SCRIPT, EXPORTS_SCRIPT

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "qform-"
DEFAULT_STORAGE_KEY = "qform-answers"
DEFAULT_REDIRECT_DELAY_MS = 2000

_PREFIX_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9_-]*$")
_COLOR_PATTERN = re.compile(r"^[#a-zA-Z0-9(),.%\s-]+$")
_HEX_PATTERN = re.compile(r"^[0-9a-fA-F]{6}$")

CONTACT_LABELS = {
    "firstName": "First name",
    "lastName": "Last name",
    "phone": "Phone number",
    "email": "Email address",
}
CONTACT_INPUT_TYPES = {
    "firstName": "text",
    "lastName": "text",
    "phone": "tel",
    "email": "email",
}


def _e(value: Optional[str]) -> str:
    return html.escape(value or "", quote=True)


def hex_to_rgb(color: str) -> str:
    """'#1f77b4' -> '31, 119, 180'; anything unparseable becomes black"""
    value = (color or "").strip().lstrip("#")
    if len(value) == 3:
        value = "".join(ch * 2 for ch in value)
    if not _HEX_PATTERN.match(value):
        return "0, 0, 0"
    return f"{int(value[0:2], 16)}, {int(value[2:4], 16)}, {int(value[4:6], 16)}"


def css_color(value: str, default: str) -> str:
    """Keep a color only if it cannot break out of a CSS declaration"""
    value = (value or "").strip()
    if value and _COLOR_PATTERN.match(value):
        return value
    return default


class ArtifactCompiler:
    """Renders one normalized form into the three artifact files"""

    def __init__(
        self,
        form: FormDefinition,
        prefix: str = DEFAULT_PREFIX,
        storage_key: str = DEFAULT_STORAGE_KEY,
        redirect_delay_ms: int = DEFAULT_REDIRECT_DELAY_MS
    ):
        if not _PREFIX_PATTERN.match(prefix):
            raise ValueError(f"Invalid class prefix: {prefix!r}")
        self.form = form
        self.prefix = prefix
        self.storage_key = storage_key
        self.redirect_delay_ms = redirect_delay_ms
        self.button_color = css_color(form.settings.button_color, "#000000")
        self.background_color = css_color(form.settings.background_color, "#ffffff")

    def compile(self) -> CompiledArtifact:
        logger.info(f"Compiling form '{self.form.title}' ({len(self.form.questions)} questions)")
        return CompiledArtifact(
            markup=self.render_markup(),
            stylesheet=self.render_stylesheet(),
            behavior=self.render_behavior()
        )

    def render_single_file(self) -> str:
        """One HTML document with stylesheet and behavior inlined"""
        return self.render_markup(inline=True)

    # ------------------------------------------------------------------
    # Markup
    # ------------------------------------------------------------------

    def render_markup(self, inline: bool = False) -> str:
        p = self.prefix
        if inline:
            head_assets = f"<style>\n{self.render_stylesheet()}\n  </style>"
            body_assets = f"<script>\n{self.render_behavior()}\n  </script>"
        else:
            head_assets = f'<link rel="stylesheet" href="{STYLESHEET_FILENAME}">'
            body_assets = f'<script src="{BEHAVIOR_FILENAME}"></script>'

        questions_markup = "".join(
            self._render_question(question, index)
            for index, question in enumerate(self.form.questions)
        )

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{_e(self.form.title)}</title>
  {head_assets}
</head>
<body style="background-color: {self.background_color}">
  <div class="{p}container">
    <div class="{p}card">
      <div class="{p}progress-bar">
        <div class="{p}progress-bar-fill" id="{p}progress-bar"></div>
      </div>

      <div class="{p}form-content" id="{p}form-content">
        <div id="{p}questions-container">{questions_markup}
          <div class="{p}question" id="{p}empty-screen" style="display: none;">
            <div class="{p}thank-you-content">
              <h2>No questions available</h2>
              <button class="{p}next-button" id="{p}empty-submit-button">Submit <span class="{p}next-icon">&rarr;</span></button>
            </div>
          </div>

          <div class="{p}question" id="{p}thank-you-screen" style="display: none;">
            <div class="{p}thank-you-content">
              <div class="{p}thank-you-icon">&#10003;</div>
              <h2>Thank you for your response!</h2>
              <p>Your answers have been recorded. We appreciate your time.</p>
              <button class="{p}start-over-button" id="{p}start-over-button">
                <span class="{p}refresh-icon">&#8635;</span> Start Over
              </button>
            </div>
          </div>
        </div>

        <div class="{p}form-navigation" id="{p}form-navigation">
          <button class="{p}back-button" id="{p}back-button" disabled>
            <span class="{p}back-icon">&larr;</span> Back
          </button>
        </div>
      </div>
    </div>
  </div>

  {body_assets}
</body>
</html>
"""

    def _render_question(self, question: Question, index: int) -> str:
        p = self.prefix
        qid = _e(question.id)
        hidden = ' style="display: none;"' if index > 0 else ""
        required = f'<span class="{p}required">*</span>' if question.required else ""
        description = ""
        if question.description:
            description = f'\n              <p class="{p}question-description">{_e(question.description)}</p>'

        return f"""
          <div class="{p}question" id="{p}question-{qid}" data-question-type="{question.type}"{hidden}>
            <div class="{p}question-header">
              <h2 class="{p}question-text">{_e(question.text)}{required}</h2>{description}
            </div>
            {self._render_input(question)}
            <div class="{p}next-button-container">
              <button class="{p}next-button" id="{p}next-button-{qid}">
                Next <span class="{p}next-icon">&rarr;</span>
              </button>
            </div>
          </div>"""

    def _render_input(self, question: Question) -> str:
        if question.type in ("single_choice", "multiple_choice"):
            return self._render_options(question)
        if question.type == "text_input":
            return self._render_text_input(question)
        if question.type == "address":
            return self._render_address(question)
        return self._render_contact(question)

    def _render_options(self, question: Question) -> str:
        p = self.prefix
        qid = _e(question.id)
        multiple = question.type == "multiple_choice"
        kind = "multiple-option" if multiple else "single-option"
        checkbox = f'\n                <div class="{p}checkbox"><div class="{p}checkbox-inner"></div></div>' if multiple else ""

        tiles = []
        for option in question.options or []:
            oid = _e(option.id)
            info = ""
            if option.description:
                info = f"""
                <div class="{p}info-button" data-option-id="{oid}">
                  <span class="{p}info-icon">i</span>
                  <div class="{p}info-tooltip" id="{p}tooltip-{oid}">{_e(option.description)}</div>
                </div>"""
            icon = ""
            if option.icon:
                if option.icon.startswith(("http://", "https://", "/", "data:image/")):
                    icon = f'<div class="{p}option-icon"><img src="{_e(option.icon)}" alt="{_e(option.text)}" class="{p}option-image"></div>'
                else:
                    icon = f'<div class="{p}option-icon"><span class="{p}option-emoji">{_e(option.icon)}</span></div>'
            tiles.append(f"""
              <div class="{p}option {p}{kind}" data-option-id="{oid}" data-question-id="{qid}">{info}{checkbox}
                <div class="{p}option-content">
                  {icon}<span class="{p}option-text">{_e(option.text)}</span>
                </div>
              </div>""")

        return f"""<div class="{p}options-container">
              <div class="{p}options-grid">{"".join(tiles)}
              </div>
            </div>"""

    def _render_text_input(self, question: Question) -> str:
        p = self.prefix
        qid = _e(question.id)
        placeholder = _e(question.placeholder or "Type your answer here...")
        required = " required" if question.required else ""
        return f"""<div class="{p}text-input-container">
              <input type="text" class="{p}text-input" id="{p}input-{qid}" placeholder="{placeholder}"{required} />
            </div>"""

    def _render_address(self, question: Question) -> str:
        p = self.prefix
        qid = _e(question.id)
        placeholder = _e(question.placeholder or "Enter your postcode")
        return f"""<div class="{p}address-container">
              <div class="{p}postcode-row">
                <input type="text" class="{p}text-input {p}postcode-input" id="{p}postcode-{qid}" placeholder="{placeholder}" autocomplete="postal-code" />
                <button type="button" class="{p}lookup-button" id="{p}lookup-button-{qid}">Find address</button>
              </div>
              <p class="{p}lookup-error" id="{p}lookup-error-{qid}" role="alert"></p>
              <select class="{p}address-select" id="{p}address-select-{qid}" style="display: none;"></select>
              <p class="{p}address-selected" id="{p}address-selected-{qid}"></p>
            </div>"""

    def _render_contact(self, question: Question) -> str:
        p = self.prefix
        qid = _e(question.id)
        fields = "".join(
            f"""
              <label class="{p}contact-label" for="{p}contact-{field}-{qid}">{CONTACT_LABELS[field]}</label>
              <input type="{CONTACT_INPUT_TYPES[field]}" class="{p}text-input" id="{p}contact-{field}-{qid}" />"""
            for field in CONTACT_FIELDS
        )
        return f"""<div class="{p}contact-container">{fields}
              <label class="{p}terms-label">
                <input type="checkbox" id="{p}contact-terms-{qid}" /> I agree to be contacted about my quote
              </label>
            </div>"""

    # ------------------------------------------------------------------
    # Behavior
    # ------------------------------------------------------------------

    def render_behavior(self) -> str:
        config = {
            "prefix": self.prefix,
            "storageKey": self.storage_key,
            "redirectDelayMs": self.redirect_delay_ms,
            "definition": self.form.to_wire(),
        }
        # ensure_ascii + escaped "</" keep the literal safe inside a <script> tag
        config_json = json.dumps(config, indent=2, ensure_ascii=True).replace("</", "<\\/")
        return (
            "// Quote Form Script\n"
            "(function () {\n"
            "  'use strict';\n\n"
            f"  var CONFIG = {config_json};\n"
            f"{ENGINE_SCRIPT}{DOM_SCRIPT}{EXPORTS_SCRIPT}"
            "})();\n"
        )

    # ------------------------------------------------------------------
    # Stylesheet
    # ------------------------------------------------------------------

    def render_stylesheet(self) -> str:
        p = self.prefix
        button = self.button_color
        button_rgb = hex_to_rgb(button)

        return f"""/* Quote Form Styles */
* {{
  box-sizing: border-box;
}}

body {{
  margin: 0;
}}

.{p}container {{
  width: 100%;
  margin: 0 auto;
  flex: 1;
  display: flex;
  flex-direction: column;
  font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, "Helvetica Neue", Arial, sans-serif;
  line-height: 1.5;
  color: #333;
  min-height: 100vh;
}}

.{p}card {{
  background-color: #f3f4f6;
  overflow: hidden;
  flex: 1;
  display: flex;
  flex-direction: column;
}}

.{p}progress-bar {{
  width: 100%;
  height: 4px;
  background-color: #e9ecef;
}}

.{p}progress-bar-fill {{
  height: 100%;
  background-color: {button};
  width: 0;
  transition: width 0.5s ease-out;
}}

.{p}form-content {{
  flex: 1;
  display: flex;
  flex-direction: column;
  padding: 1.5rem;
}}

#{p}questions-container {{
  flex: 1;
  display: flex;
  flex-direction: column;
  justify-content: center;
  align-items: center;
}}

.{p}question {{
  width: 100%;
  max-width: 1000px;
  display: flex;
  flex-direction: column;
  align-items: center;
  animation: {p}fadeIn 0.3s ease-in-out;
}}

@keyframes {p}fadeIn {{
  from {{ opacity: 0; }}
  to {{ opacity: 1; }}
}}

.{p}question-header {{
  margin-bottom: 1rem;
  text-align: center;
}}

.{p}question-text {{
  font-size: 2rem;
  font-weight: 500;
  margin-bottom: 0.5rem;
}}

.{p}question-description {{
  color: #6c757d;
  margin-top: 0;
}}

.{p}required {{
  color: #e53e3e;
  margin-left: 3px;
}}

.{p}text-input-container,
.{p}address-container,
.{p}contact-container {{
  width: 100%;
  max-width: 400px;
  margin: 0 auto;
}}

.{p}contact-container {{
  display: flex;
  flex-direction: column;
  gap: 0.5rem;
}}

.{p}text-input {{
  width: 100%;
  padding: 0.75rem;
  border: 1px solid #ced4da;
  border-radius: 0.25rem;
  font-size: 1rem;
  transition: border-color 0.15s ease-in-out, box-shadow 0.15s ease-in-out;
}}

.{p}text-input:focus {{
  outline: none;
  border-color: {button};
  box-shadow: 0 0 0 2px rgba({button_rgb}, 0.25);
}}

.{p}postcode-row {{
  display: flex;
  gap: 0.5rem;
}}

.{p}lookup-button {{
  padding: 0.5rem 1rem;
  border: none;
  border-radius: 0.375rem;
  background-color: {button};
  color: white;
  cursor: pointer;
  white-space: nowrap;
}}

.{p}lookup-button:disabled {{
  opacity: 0.6;
  cursor: progress;
}}

.{p}lookup-error {{
  color: #e53e3e;
  font-size: 0.875rem;
  min-height: 1.25rem;
  margin: 0.25rem 0;
}}

.{p}address-select {{
  width: 100%;
  padding: 0.75rem;
  border: 1px solid #ced4da;
  border-radius: 0.25rem;
  font-size: 1rem;
}}

.{p}address-selected {{
  font-weight: 500;
}}

.{p}contact-label {{
  font-size: 0.875rem;
  color: #4b5563;
}}

.{p}terms-label {{
  display: flex;
  align-items: center;
  gap: 0.5rem;
  font-size: 0.875rem;
  margin-top: 0.5rem;
}}

.{p}options-container {{
  width: 100%;
  padding: 0 0.5rem;
}}

.{p}options-grid {{
  display: grid;
  grid-template-columns: repeat(1, 1fr);
  gap: 0.75rem;
  justify-content: center;
}}

@media (min-width: 640px) {{
  .{p}options-grid {{
    grid-template-columns: repeat(2, 1fr);
  }}
}}

@media (min-width: 768px) {{
  .{p}options-grid {{
    grid-template-columns: repeat(3, 1fr);
  }}
}}

@media (min-width: 1024px) {{
  .{p}options-grid {{
    grid-template-columns: repeat(4, 1fr);
  }}
}}

.{p}option {{
  position: relative;
  padding: 1rem;
  background-color: white;
  border-radius: 0.375rem;
  cursor: pointer;
  display: flex;
  flex-direction: row;
  align-items: center;
  justify-content: flex-start;
  transition: all 0.2s ease;
  height: 100%;
  text-align: left;
  gap: 1rem;
}}

.{p}option:hover {{
  transform: scale(1.05);
}}

.{p}option.selected {{
  border: 2px solid {button};
}}

.{p}option:not(.selected) {{
  border: 1px solid transparent;
}}

.{p}option-content {{
  display: flex;
  flex-direction: row;
  align-items: center;
  justify-content: flex-start;
  width: 100%;
  height: 100%;
  gap: 1rem;
}}

.{p}option-icon {{
  width: 3.5rem;
  flex-shrink: 0;
  display: flex;
  justify-content: center;
}}

.{p}option-image {{
  height: 3.5rem;
  width: auto;
  object-fit: contain;
}}

.{p}option-emoji {{
  font-size: 2rem;
}}

.{p}option-text {{
  text-align: left;
  font-weight: 500;
}}

@media (min-width: 640px) {{
  .{p}option {{
    flex-direction: column;
    justify-content: center;
    text-align: center;
    gap: 0;
  }}

  .{p}option-content {{
    flex-direction: column;
    justify-content: center;
    align-items: center;
    gap: 0;
  }}

  .{p}option-icon {{
    width: 100%;
    margin-bottom: 0.75rem;
  }}

  .{p}option-image {{
    height: 7rem;
  }}

  .{p}option-text {{
    text-align: center;
    font-size: 1.25rem;
  }}
}}

.{p}info-button {{
  position: absolute;
  top: 0.5rem;
  left: 0.5rem;
  z-index: 10;
}}

.{p}info-icon {{
  display: inline-flex;
  align-items: center;
  justify-content: center;
  width: 1.25rem;
  height: 1.25rem;
  border-radius: 50%;
  background-color: #e2e8f0;
  color: #64748b;
  font-size: 0.75rem;
  font-style: italic;
  cursor: pointer;
}}

.{p}info-tooltip {{
  display: none;
  position: absolute;
  left: 0;
  width: max-content;
  top: 100%;
  margin-top: 0.5rem;
  padding: 0.5rem;
  max-width: 200px;
  background-color: #f2f3f3;
  border-radius: 0.25rem;
  box-shadow: 0 2px 5px rgba(0, 0, 0, 0.1);
  z-index: 20;
  font-size: 0.75rem;
  color: #4b5563;
}}

.{p}info-button:hover .{p}info-tooltip {{
  display: block;
}}

.{p}checkbox {{
  position: absolute;
  top: 0.8rem;
  right: 0.8rem;
  width: 1.25rem;
  height: 1.25rem;
  border: 2px solid #cbd5e0;
  border-radius: 0.25rem;
  display: flex;
  align-items: center;
  justify-content: center;
}}

.{p}checkbox-inner {{
  display: none;
  width: 0.625rem;
  height: 0.625rem;
}}

.{p}multiple-option.selected .{p}checkbox-inner {{
  display: block;
}}

.{p}multiple-option.selected .{p}checkbox::after {{
  content: "\\2713";
  position: absolute;
  color: {button};
  font-size: 0.75rem;
}}

@media (max-width: 639px) {{
  .{p}option {{
    flex-direction: row;
    padding: 0.75rem;
  }}

  .{p}option-icon {{
    margin-bottom: 0;
    width: 4rem;
  }}

  .{p}question-text {{
    font-size: 1.5rem;
  }}

  .{p}form-content {{
    padding: 1rem;
  }}
}}

.{p}next-button-container {{
  display: flex;
  justify-content: center;
  margin-top: 2rem;
  width: 100%;
}}

.{p}form-navigation {{
  display: flex;
  justify-content: flex-start;
  padding-top: 1.5rem;
  border-top: 1px solid #e2e8f0;
  margin-top: 1.5rem;
}}

.{p}back-button, .{p}next-button {{
  padding: 0.5rem 1rem;
  border-radius: 0.375rem;
  font-size: 0.875rem;
  cursor: pointer;
  display: flex;
  align-items: center;
  gap: 0.25rem;
}}

.{p}back-button {{
  background-color: transparent;
  color: #6b7280;
  border: none;
}}

.{p}back-button:disabled {{
  opacity: 0.5;
  cursor: not-allowed;
  background-color: transparent;
}}

.{p}back-button:not(:disabled):hover {{
  background-color: {button};
  color: white;
}}

.{p}next-button {{
  background-color: {button} !important;
  color: white;
  border: none;
}}

.{p}next-button:disabled {{
  opacity: 0.7;
  cursor: not-allowed;
}}

.{p}thank-you-content {{
  text-align: center;
  padding: 2rem 0;
}}

.{p}thank-you-icon {{
  display: inline-flex;
  justify-content: center;
  align-items: center;
  width: 4rem;
  height: 4rem;
  border-radius: 50%;
  background-color: rgba({button_rgb}, 0.2);
  color: {button};
  font-size: 2rem;
  margin-bottom: 1.5rem;
}}

.{p}thank-you-content h2 {{
  font-size: 1.5rem;
  font-weight: 600;
  margin-bottom: 0.5rem;
}}

.{p}thank-you-content p {{
  color: #6c757d;
  max-width: 24rem;
  margin: 0 auto 1.5rem;
}}

.{p}start-over-button {{
  display: inline-flex;
  align-items: center;
  gap: 0.25rem;
  padding: 0.5rem 1rem;
  background-color: {button};
  color: white;
  border: none;
  border-radius: 0.375rem;
  cursor: pointer;
  font-size: 0.875rem;
}}

.{p}refresh-icon {{
  font-size: 1rem;
}}
"""


def compile_form(
    form: FormDefinition,
    prefix: str = DEFAULT_PREFIX,
    storage_key: str = DEFAULT_STORAGE_KEY,
    redirect_delay_ms: int = DEFAULT_REDIRECT_DELAY_MS
) -> CompiledArtifact:
    """Compile a normalized form into markup, stylesheet and behavior"""
    return ArtifactCompiler(form, prefix, storage_key, redirect_delay_ms).compile()


def render_single_file(
    form: FormDefinition,
    prefix: str = DEFAULT_PREFIX,
    storage_key: str = DEFAULT_STORAGE_KEY,
    redirect_delay_ms: int = DEFAULT_REDIRECT_DELAY_MS
) -> str:
    """Compile into one self-contained HTML document"""
    return ArtifactCompiler(form, prefix, storage_key, redirect_delay_ms).render_single_file()
