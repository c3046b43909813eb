import logging

from vibecheck.clients import GroqClient
from vibecheck.config import settings
from vibecheck.languages import get_language_pack
from vibecheck.models import FeedbackRecord, Language
from vibecheck.services.parsing import parse_feedback

logger = logging.getLogger("vibecheck.analyzer")


class FeedbackAnalyzer:
    """Turn a spoken-feedback transcript into a :class:`FeedbackRecord` via Groq."""

    def __init__(
        self,
        groq: GroqClient | None = None,
        *,
        temperature: float | None = None,
    ) -> None:
        self.groq = groq or GroqClient()
        self.temperature = (
            temperature if temperature is not None else settings.analysis_temperature
        )

    @staticmethod
    def build_messages(text: str, language: Language | str) -> list[dict]:
        pack = get_language_pack(language)
        return [
            {"role": "system", "content": pack.system_prompt},
            {"role": "user", "content": pack.user_prompt(text)},
        ]

    async def analyze(self, text: str, language: Language | str) -> FeedbackRecord | None:
        """Analyze *text* in *language*.

        Returns ``None`` without calling the service when *text* is blank.
        Issues exactly one chat completion otherwise; raises ``ServiceError``
        or ``MalformedResponse`` on failure.  No retry.
        """
        if not text or not text.strip():
            return None

        pack = get_language_pack(language)
        logger.info("event=analysis_request language=%s chars=%d", pack.language.value, len(text))
        content = await self.groq.chat(
            self.build_messages(text, pack.language),
            temperature=self.temperature,
        )
        record = parse_feedback(content, pack)
        logger.info(
            "event=analysis_parsed sentiment=%s score=%d category=%s",
            record.sentiment,
            record.score,
            record.category,
        )
        return record
