import asyncio

import pytest

from conftest import FakeGroq, reply
from vibecheck.errors import MalformedResponse, ServiceError
from vibecheck.services.analyzer import FeedbackAnalyzer


def test_analyze_sends_one_system_and_user_message():
    groq = FakeGroq(reply())
    record = asyncio.run(FeedbackAnalyzer(groq).analyze("The product is great", "en"))

    assert record.sentiment == "Positive"
    assert len(groq.calls) == 1
    system, user = groq.calls[0]
    assert system["role"] == "system" and "JSON" in system["content"]
    assert user["role"] == "user" and '"The product is great"' in user["content"]


@pytest.mark.parametrize("text", ["", "   "])
def test_analyze_blank_text_is_a_no_op(text):
    groq = FakeGroq(reply())
    assert asyncio.run(FeedbackAnalyzer(groq).analyze(text, "en")) is None
    assert groq.calls == []


def test_analyze_uses_language_pack():
    groq = FakeGroq(reply({
        "summary": "Prix trop élevé",
        "sentiment": "Négatif",
        "score": 3,
        "category": "Prix",
        "action_item": "Revoir les tarifs",
    }))
    record = asyncio.run(FeedbackAnalyzer(groq).analyze("C'est trop cher", "fr"))
    assert "Tu es un expert API" in groq.calls[0][0]["content"]
    assert record.category == "Prix"


def test_analyze_propagates_service_error():
    groq = FakeGroq(error=ServiceError("status 503"))
    with pytest.raises(ServiceError):
        asyncio.run(FeedbackAnalyzer(groq).analyze("hello", "en"))


def test_analyze_without_json_is_malformed():
    groq = FakeGroq("I cannot help with that.")
    with pytest.raises(MalformedResponse):
        asyncio.run(FeedbackAnalyzer(groq).analyze("hello", "en"))
