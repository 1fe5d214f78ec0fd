import json
import re

import pytest

from quoteform.models.export import BEHAVIOR_FILENAME, MARKUP_FILENAME, STYLESHEET_FILENAME
from quoteform.services.compiler import compile_form, css_color, hex_to_rgb, render_single_file
from quoteform.services.normalizer import normalize

from conftest import choice, make_form


@pytest.fixture
def artifact(quote_form):
    return compile_form(normalize(quote_form))


def test_output_is_deterministic(quote_form):
    first = compile_form(normalize(quote_form))
    second = compile_form(normalize(quote_form))
    assert first == second
    assert render_single_file(normalize(quote_form)) == render_single_file(normalize(quote_form))


def test_files(artifact):
    files = artifact.files()
    assert set(files) == {MARKUP_FILENAME, STYLESHEET_FILENAME, BEHAVIOR_FILENAME}
    assert f'href="{STYLESHEET_FILENAME}"' in artifact.markup
    assert f'src="{BEHAVIOR_FILENAME}"' in artifact.markup


def test_markup_has_one_block_per_question_first_visible(artifact):
    blocks = re.findall(r'<div class="qform-question" id="qform-question-(q_\d+)"[^>]*?(style="display: none;")?>', artifact.markup)
    assert [qid for qid, _ in blocks] == ["q_1", "q_2", "q_3", "q_4", "q_5"]
    assert blocks[0][1] == ""
    assert all(hidden for _, hidden in blocks[1:])


def test_markup_provides_elements_the_script_binds(artifact):
    markup = artifact.markup
    for element_id in (
        "qform-progress-bar",
        "qform-questions-container",
        "qform-form-navigation",
        "qform-back-button",
        "qform-thank-you-screen",
        "qform-start-over-button",
        "qform-empty-screen",
        "qform-empty-submit-button",
        "qform-next-button-q_1",
        "qform-input-q_3",
        "qform-postcode-q_4",
        "qform-lookup-button-q_4",
        "qform-address-select-q_4",
        "qform-lookup-error-q_4",
        "qform-address-selected-q_4",
        "qform-contact-firstName-q_5",
        "qform-contact-email-q_5",
        "qform-contact-terms-q_5",
        "qform-tooltip-q_1_opt_1",
    ):
        assert f'id="{element_id}"' in markup, element_id

    assert 'data-option-id="q_2_opt_3" data-question-id="q_2"' in markup
    assert "qform-multiple-option" in markup
    assert "qform-single-option" in markup


def test_author_text_is_escaped():
    form = make_form([
        choice("Q1", ["a"], text='<script>alert("x")</script>', description="Fish & chips"),
    ])
    form.title = "</title><b>"
    markup = compile_form(normalize(form)).markup
    assert "<script>alert" not in markup
    assert "&lt;script&gt;alert(&quot;x&quot;)&lt;/script&gt;" in markup
    assert "Fish &amp; chips" in markup
    assert "<title>&lt;/title&gt;&lt;b&gt;</title>" in markup


def test_behavior_embeds_definition_safely():
    form = make_form([choice("Q1", ["a"], text="</script><script>evil()")])
    behavior = compile_form(normalize(form)).behavior
    assert "</script>" not in behavior
    assert behavior.startswith("// Quote Form Script\n(function () {")
    assert behavior.rstrip().endswith("})();")


def test_behavior_config(artifact, quote_form):
    match = re.search(r"var CONFIG = (\{.*?\n\});", artifact.behavior, re.S)
    config = json.loads(match.group(1).replace("<\\/", "</"))
    assert config["prefix"] == "qform-"
    assert config["storageKey"] == "qform-answers"
    assert config["redirectDelayMs"] == 2000
    assert config["definition"] == normalize(quote_form).to_wire()


def test_stylesheet_uses_settings_colors(artifact):
    assert "background-color: #1f77b4" in artifact.stylesheet
    assert "rgba(31, 119, 180, 0.25)" in artifact.stylesheet
    assert ".qform-option.selected" in artifact.stylesheet
    assert 'background-color: #fafafa' in artifact.markup


def test_custom_prefix(quote_form):
    artifact = compile_form(normalize(quote_form), prefix="acme-")
    assert 'id="acme-question-q_1"' in artifact.markup
    assert ".acme-option" in artifact.stylesheet
    assert '"prefix": "acme-"' in artifact.behavior


def test_invalid_prefix_rejected(quote_form):
    with pytest.raises(ValueError):
        compile_form(quote_form, prefix='x"><script>')


def test_single_file_inlines_everything(quote_form):
    document = render_single_file(normalize(quote_form))
    assert "<style>" in document
    assert "var CONFIG = " in document
    assert STYLESHEET_FILENAME not in document
    assert f'src="{BEHAVIOR_FILENAME}"' not in document


@pytest.mark.parametrize(
    "color, expected",
    [
        ("#000000", "0, 0, 0"),
        ("#ffffff", "255, 255, 255"),
        ("#1f77b4", "31, 119, 180"),
        ("#abc", "170, 187, 204"),
        ("red", "0, 0, 0"),
        ("", "0, 0, 0"),
    ],
)
def test_hex_to_rgb(color, expected):
    assert hex_to_rgb(color) == expected


def test_css_color_rejects_declaration_breakout():
    assert css_color("#123456", "#000000") == "#123456"
    assert css_color("red; } body { display: none", "#000000") == "#000000"
    assert css_color("", "#ffffff") == "#ffffff"


def _function_body(behavior, name):
    start = behavior.index(f"function {name}(")
    end = behavior.index("\n    }\n", start)
    return behavior[start:end]


def test_raw_ids_are_escaped_in_markup_and_selectors():
    form = make_form([choice('say "hi"', ["a"])])
    artifact = compile_form(form)
    assert 'data-question-id="say &quot;hi&quot;"' in artifact.markup
    assert "CSS.escape" in artifact.behavior
    assert 'data-question-id="\' + question.id' not in artifact.behavior
    assert artifact.behavior.count("optionElements(question).forEach") == 2


def test_lookup_button_is_disabled_while_request_is_in_flight(artifact):
    behavior = artifact.behavior
    disable = behavior.index("button.disabled = true;")
    request = behavior.index("fetch(url)", disable)
    enable = behavior.index("button.disabled = false;", request)
    assert disable < request < enable
    # re-enabled after both outcomes
    assert behavior.index(".catch(function (err) {", request) < enable


def test_webhook_failure_does_not_block_redirect(artifact):
    body = _function_body(artifact.behavior, "submitted")
    webhook = body.index("fetch(settings.zapierWebhookUrl")
    assert "mode: 'no-cors'" in body
    assert body.index(".catch(", webhook) < body.index("} catch (err) {", webhook)
    redirect = body.index("setTimeout(")
    assert redirect > body.index("} catch (err) {", webhook)
    assert "config.redirectDelayMs" in body[redirect:]
    assert "window.location.href = url;" in body[redirect:]
