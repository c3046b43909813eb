from vibecheck.clients.groq_client import GroqClient
from vibecheck.clients.webhook import WebhookClient

__all__ = ["GroqClient", "WebhookClient"]
