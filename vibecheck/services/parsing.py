import json

from pydantic import ValidationError

from vibecheck.errors import MalformedResponse
from vibecheck.languages import LanguagePack, match_category, match_sentiment
from vibecheck.models import FeedbackRecord


def extract_json_object(content: str) -> str:
    """Return the slice from the first ``{`` to the last ``}``, inclusive.

    Assumes the reply embeds a single JSON object, optionally surrounded by
    prose.  Two separate objects in one reply are not supported: the slice
    then spans both and fails to parse.
    """
    first = content.find("{")
    last = content.rfind("}")
    if first == -1 or last == -1:
        raise MalformedResponse("no JSON object found in model reply")
    return content[first:last + 1]


def parse_feedback(content: str, pack: LanguagePack) -> FeedbackRecord:
    """Extract, decode and validate a :class:`FeedbackRecord` from *content*.

    Sentiment and category labels are accepted in any supported language
    (case and accents ignored) and rewritten to the labels of *pack*.
    """
    if not isinstance(content, str):
        raise MalformedResponse("model reply is not text")

    try:
        data = json.loads(extract_json_object(content))
    except json.JSONDecodeError as exc:
        raise MalformedResponse(f"model reply is not valid JSON: {exc.msg}") from exc
    if not isinstance(data, dict):
        raise MalformedResponse("model reply JSON is not an object")

    sentiment = match_sentiment(str(data.get("sentiment", "")))
    if sentiment is None:
        raise MalformedResponse(f"unknown sentiment {data.get('sentiment')!r}")
    category = match_category(str(data.get("category", "")))
    if category is None:
        raise MalformedResponse(f"unknown category {data.get('category')!r}")

    try:
        return FeedbackRecord(
            summary=data.get("summary", ""),
            sentiment=pack.sentiments[sentiment],
            score=data.get("score"),
            category=pack.categories[category],
            action_item=data.get("action_item", ""),
            voice_response=data.get("voice_response") or "",
        )
    except ValidationError as exc:
        fields = ", ".join(str(err["loc"][0]) for err in exc.errors() if err["loc"])
        raise MalformedResponse(f"invalid feedback record ({fields})") from exc
