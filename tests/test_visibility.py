import pytest

from quoteform.models.forms import Condition, SuccessPage
from quoteform.services.visibility import (
    active_question_ids,
    evaluate_condition,
    evaluate_success_condition,
    is_answered,
    is_visible,
    stringify,
)

from conftest import choice, cond, make_form, text


def _condition(question_id, *values):
    return Condition.model_validate(cond(question_id, *values))


def test_no_conditions_is_always_visible():
    form = make_form([choice("Q1", ["a"]), text("Q2")])
    for answers in ({}, {"Q1": "a"}, {"Q2": None}):
        assert is_visible(form.questions[1], answers, form.questions) is True


def test_multiple_choice_any_match():
    form = make_form([choice("Q1", ["a", "b", "c"], qtype="multiple_choice")])
    answers = {"Q1": ["a", "b"]}
    assert evaluate_condition(_condition("Q1", "b", "c"), answers, form.questions) is True
    assert evaluate_condition(_condition("Q1", "x"), answers, form.questions) is False


def test_single_choice_scalar_is_wrapped():
    form = make_form([choice("Q1", ["a", "b"])])
    assert evaluate_condition(_condition("Q1", "b"), {"Q1": "b"}, form.questions) is True
    assert evaluate_condition(_condition("Q1", "a"), {"Q1": "b"}, form.questions) is False


def test_text_equality_is_exact():
    form = make_form([text("Q1")])
    answers = {"Q1": "Blue"}
    assert evaluate_condition(_condition("Q1", "Blue"), answers, form.questions) is True
    assert evaluate_condition(_condition("Q1", "blue"), answers, form.questions) is False
    assert evaluate_condition(_condition("Q1", "Blue "), answers, form.questions) is False
    assert evaluate_condition(_condition("Q1"), answers, form.questions) is False


def test_text_only_compares_first_value():
    form = make_form([text("Q1")])
    assert evaluate_condition(_condition("Q1", "x", "Blue"), {"Q1": "Blue"}, form.questions) is False


@pytest.mark.parametrize("answers", [{}, {"Q1": None}])
def test_absent_answer_is_false(answers):
    form = make_form([choice("Q1", ["a"])])
    assert evaluate_condition(_condition("Q1", "a"), answers, form.questions) is False


def test_missing_source_question_is_false():
    form = make_form([choice("Q1", ["a"])])
    assert evaluate_condition(_condition("ghost", "a"), {"ghost": "a"}, form.questions) is False


def test_address_and_contact_sources_never_match_strictly():
    form = make_form([
        {"id": "A", "text": "Address", "type": "address"},
        {"id": "C", "text": "Contact", "type": "contact_form"},
    ])
    answers = {"A": {"postcode": "SW1A 1AA"}, "C": {"email": "x@example.com"}}
    assert evaluate_condition(_condition("A", "SW1A 1AA"), answers, form.questions) is False
    assert evaluate_condition(_condition("C", "x@example.com"), answers, form.questions) is False


@pytest.mark.parametrize(
    "logic, first, second, expected",
    [
        ("AND", "a", "x", True),
        ("AND", "a", "y", False),
        ("AND", "b", "x", False),
        ("OR", "a", "y", True),
        ("OR", "b", "x", True),
        ("OR", "b", "y", False),
    ],
)
def test_and_or_combination(logic, first, second, expected):
    form = make_form([
        choice("Q1", ["a", "b"]),
        choice("Q2", ["x", "y"]),
        text("Q3", conditions=[cond("Q1", "a"), cond("Q2", "x")], conditionLogic=logic),
    ])
    answers = {"Q1": first, "Q2": second}
    assert is_visible(form.questions[2], answers, form.questions) is expected


def test_unknown_logic_defaults_to_and():
    form = make_form([
        choice("Q1", ["a"]),
        choice("Q2", ["x"]),
        text("Q3", conditions=[cond("Q1", "a"), cond("Q2", "x")], conditionLogic="XOR"),
    ])
    assert form.questions[2].condition_logic == "AND"
    assert is_visible(form.questions[2], {"Q1": "a"}, form.questions) is False


def test_forward_and_self_references_are_false():
    form = make_form([
        text("Q1", conditions=[cond("Q2", "x")]),
        choice("Q2", ["x"], conditions=[cond("Q2", "x")]),
    ])
    answers = {"Q2": "x"}
    assert is_visible(form.questions[0], answers, form.questions) is False
    assert is_visible(form.questions[1], answers, form.questions) is False


def test_relaxed_success_condition_matches_object_values():
    form = make_form([{"id": "A", "text": "Address", "type": "address"}])
    answers = {"A": {"fullAddress": "1 High St", "postcode": "AB1 2CD"}}
    assert evaluate_success_condition(_condition("A", "AB1 2CD"), answers, form.questions) is True
    assert evaluate_condition(_condition("A", "AB1 2CD"), answers, form.questions) is False


def test_relaxed_success_condition_scalars_and_lists():
    form = make_form([text("T"), choice("M", ["a", "b"], qtype="multiple_choice")])
    assert evaluate_success_condition(_condition("T", "blue"), {"T": "blue"}, form.questions) is True
    assert evaluate_success_condition(_condition("M", "b"), {"M": ["a", "b"]}, form.questions) is True
    assert evaluate_success_condition(_condition("M", "c"), {"M": ["a", "b"]}, form.questions) is False
    assert evaluate_success_condition(_condition("T", "blue"), {}, form.questions) is False


def test_success_page_without_conditions_matches():
    form = make_form([text("T")])
    page = SuccessPage(id="p", url="https://example.com")
    assert is_visible(page, {}, form.questions) is True


def test_contact_terms_flag_stringifies_like_javascript():
    form = make_form([{"id": "C", "text": "Contact", "type": "contact_form"}])
    answers = {"C": {"firstName": "Ada", "termsAccepted": True}}
    assert evaluate_success_condition(_condition("C", "true"), answers, form.questions) is True


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, ""),
        (True, "true"),
        (False, "false"),
        (3, "3"),
        (3.0, "3"),
        ("x", "x"),
        (["a", 1], '["a",1]'),
        ({"k": None}, '{"k":null}'),
        ([1.0, 2.5], "[1,2.5]"),
        ({"a": 1.0, "b": [True, None]}, '{"a":1,"b":[true,null]}'),
        (1e21, "1e+21"),
        (10 ** 21, "1e+21"),
        ([1e21], "[1e+21]"),
        (1.5e-05, "0.000015"),
        (1e-07, "1e-7"),
        (-2.5e-08, "-2.5e-8"),
        ({"x": float("nan")}, '{"x":null}'),
        ("é", "é"),
    ],
)
def test_stringify(value, expected):
    assert stringify(value) == expected


def test_active_question_ids_keeps_form_order():
    form = make_form([
        choice("Q1", ["Yes", "No"]),
        text("Q2", conditions=[cond("Q1", "Yes")]),
        text("Q3", conditions=[cond("Q1", "No")]),
        text("Q4"),
    ])
    assert active_question_ids(form.questions, {"Q1": "Yes"}) == ["Q1", "Q2", "Q4"]
    assert active_question_ids(form.questions, {"Q1": "No"}) == ["Q1", "Q3", "Q4"]
    assert active_question_ids(form.questions, {}) == ["Q1", "Q4"]


def test_is_answered_per_type():
    form = make_form([
        choice("S", ["a"]),
        choice("M", ["a"], qtype="multiple_choice"),
        text("T"),
        {"id": "A", "text": "Address", "type": "address"},
        {"id": "C", "text": "Contact", "type": "contact_form"},
    ])
    single, multiple, text_q, address, contact = form.questions

    assert is_answered(single, "a") is True
    assert is_answered(single, "") is False
    assert is_answered(multiple, []) is False
    assert is_answered(multiple, ["a"]) is True
    assert is_answered(text_q, "   ") is False
    assert is_answered(text_q, " hi ") is True
    assert is_answered(address, {}) is True
    assert is_answered(address, None) is False

    full = {"firstName": "Ada", "lastName": "Lovelace", "phone": "0123", "email": "ada@example.com"}
    assert is_answered(contact, {**full, "termsAccepted": True}) is True
    assert is_answered(contact, {**full, "termsAccepted": False}) is False
    assert is_answered(contact, {**full, "phone": " ", "termsAccepted": True}) is False
