import json

import httpx
import pytest

from quoteform.services.submission_service import send_to_webhook, transform_answers


def test_transform_answers(quote_form):
    answers = {
        "3f1c-property": "a1",
        "9b2e-rooms": ["r3", "r1"],
        "77aa-notes": "Combi please",
        "d00d-address": {"fullAddress": "1 High St", "postcode": "AB1 2CD", "town": None},
        "beef-contact": {
            "firstName": "Ada",
            "lastName": "Lovelace",
            "phone": "0123",
            "email": "ada@example.com",
            "termsAccepted": True,
        },
        "not-a-question": "dropped",
    }
    assert transform_answers(quote_form, answers) == {
        "What type of property?": "House",
        "Which rooms need heating?": "Loft, Kitchen",
        "Anything else?": "Combi please",
        "Where do you live?": {"Full Address": "1 High St", "Postcode": "AB1 2CD"},
        "How can we reach you?": {
            "First Name": "Ada",
            "Last Name": "Lovelace",
            "Phone": "0123",
            "Email": "ada@example.com",
            "Terms Accepted": True,
        },
    }


def test_transform_unknown_option_falls_back_to_id(quote_form):
    result = transform_answers(quote_form, {"3f1c-property": "gone", "9b2e-rooms": ["r2", "gone"]})
    assert result == {"What type of property?": "gone", "Which rooms need heating?": "Bathroom, gone"}


def test_transform_skips_null_answers(quote_form):
    assert transform_answers(quote_form, {"3f1c-property": None}) == {}


async def test_send_to_webhook_posts_json():
    received = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append((request.method, str(request.url), json.loads(request.content)))
        return httpx.Response(200, json={"status": "ok"})

    delivered = await send_to_webhook(
        "https://hooks.example.com/catch/1",
        {"Question": "Answer"},
        transport=httpx.MockTransport(handler),
    )
    assert delivered is True
    assert received == [("POST", "https://hooks.example.com/catch/1", {"Question": "Answer"})]


async def test_send_to_webhook_reports_error_status():
    transport = httpx.MockTransport(lambda request: httpx.Response(500, text="boom"))
    assert await send_to_webhook("https://hooks.example.com/x", {}, transport=transport) is False


async def test_send_to_webhook_never_raises_on_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    assert await send_to_webhook("https://hooks.example.com/x", {}, transport=httpx.MockTransport(handler)) is False


@pytest.mark.parametrize("url", ["", None])
async def test_send_to_webhook_without_url(url):
    assert await send_to_webhook(url, {}) is False
