import unicodedata
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from vibecheck.models import Category, Language, Sentiment


@dataclass(frozen=True)
class LanguagePack:
    """Everything that changes with the session language."""

    language: Language
    locale: str
    voice: str
    labels: dict[str, str]
    system_prompt: str
    user_prompt: Callable[[str], str]
    sentiments: dict[Sentiment, str]
    categories: dict[Category, str]


# ---------------------------------------------------------------------------
# Prompt templates
# ---------------------------------------------------------------------------


def _english_prompt(text: str) -> str:
    return f"""Analyze this feedback: "{text}".
Return a JSON object with the content strictly in ENGLISH:
{{
  "summary": "Short summary",
  "sentiment": "Positive" or "Neutral" or "Negative",
  "score": number (1-10),
  "category": "Service" or "Product" or "Pricing" or "Other",
  "action_item": "Recommended action",
  "voice_response": "A short, friendly spoken reply to the customer (15 words max)"
}}"""


def _french_prompt(text: str) -> str:
    return f"""Analyse ce feedback : "{text}".
Retourne un objet JSON avec le contenu strictement en FRANÇAIS :
{{
  "summary": "Résumé court",
  "sentiment": "Positif" ou "Neutre" ou "Négatif",
  "score": chiffre (1-10),
  "category": "Service" ou "Produit" ou "Prix" ou "Autre",
  "action_item": "Action recommandée",
  "voice_response": "Une courte réponse orale et amicale au client (15 mots maximum)"
}}"""


LANGUAGE_PACKS: dict[Language, LanguagePack] = {
    Language.EN: LanguagePack(
        language=Language.EN,
        locale="en-US",
        voice="en-US-JennyNeural",
        labels={
            "title": "VibeCheck",
            "subtitle": "The Future of Feedback (Powered by Groq)",
            "listening": "Listening...",
            "analyzing": "AI is thinking...",
            "click_to_speak": "Click to speak",
            "finished": "Analysis complete.",
            "score_title": "Sentiment Score",
            "summary_title": "AI Summary",
            "category_title": "Category Detected",
            "action_title": "Recommended Action",
            "sent_message": "Data successfully sent to the feedback webhook",
            "error_message": "Analysis failed. Please try again.",
        },
        system_prompt=(
            "You are an API expert. Reply ONLY in valid JSON. No text before or after."
        ),
        user_prompt=_english_prompt,
        sentiments={
            Sentiment.POSITIVE: "Positive",
            Sentiment.NEUTRAL: "Neutral",
            Sentiment.NEGATIVE: "Negative",
        },
        categories={
            Category.SERVICE: "Service",
            Category.PRODUCT: "Product",
            Category.PRICING: "Pricing",
            Category.OTHER: "Other",
        },
    ),
    Language.FR: LanguagePack(
        language=Language.FR,
        locale="fr-FR",
        voice="fr-FR-DeniseNeural",
        labels={
            "title": "VibeCheck",
            "subtitle": "Le futur du feedback (Propulsé par Groq)",
            "listening": "Je vous écoute...",
            "analyzing": "L'IA réfléchit...",
            "click_to_speak": "Cliquez pour parler",
            "finished": "Analyse terminée.",
            "score_title": "Score de Sentiment",
            "summary_title": "Résumé IA",
            "category_title": "Catégorie Détectée",
            "action_title": "Action Recommandée",
            "sent_message": "Données envoyées avec succès au webhook",
            "error_message": "L'analyse a échoué. Veuillez réessayer.",
        },
        system_prompt=(
            "Tu es un expert API. Réponds UNIQUEMENT en JSON valide. "
            "Pas de texte avant ni après."
        ),
        user_prompt=_french_prompt,
        sentiments={
            Sentiment.POSITIVE: "Positif",
            Sentiment.NEUTRAL: "Neutre",
            Sentiment.NEGATIVE: "Négatif",
        },
        categories={
            Category.SERVICE: "Service",
            Category.PRODUCT: "Produit",
            Category.PRICING: "Prix",
            Category.OTHER: "Autre",
        },
    ),
}


def get_language_pack(language: Language | str) -> LanguagePack:
    """Return the pack for *language*.  Raises ``ValueError`` for unknown codes."""
    return LANGUAGE_PACKS[Language(language)]


# ---------------------------------------------------------------------------
# Label normalization
# ---------------------------------------------------------------------------


def _fold(value: str) -> str:
    """Lowercase and strip accents so "NÉGATIF" and "negatif" compare equal."""
    no_accents = "".join(
        ch
        for ch in unicodedata.normalize("NFD", value.strip().casefold())
        if unicodedata.category(ch) != "Mn"
    )
    return " ".join(no_accents.split())


def _build_lookup(attr: str) -> dict[str, Enum]:
    lookup = {}
    for pack in LANGUAGE_PACKS.values():
        for member, label in getattr(pack, attr).items():
            lookup[_fold(label)] = member
            lookup[_fold(member.value)] = member
    return lookup


_SENTIMENT_LOOKUP = _build_lookup("sentiments")
_CATEGORY_LOOKUP = _build_lookup("categories")


def match_sentiment(label: str) -> Sentiment | None:
    """Map a sentiment label in any supported language to its enum member."""
    return _SENTIMENT_LOOKUP.get(_fold(label))


def match_category(label: str) -> Category | None:
    """Map a category label in any supported language to its enum member."""
    return _CATEGORY_LOOKUP.get(_fold(label))
