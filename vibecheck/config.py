from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Groq
    groq_api_key: str = "gsk_placeholder"
    default_model: str = "llama-3.3-70b-versatile"
    analysis_temperature: float | None = None

    # Session
    default_language: str = "en"

    # Capture: "whisper" records the local microphone, "client" takes
    # recognition results streamed by the browser over the websocket.
    recognizer_backend: str = "whisper"
    whisper_model: str = "small"
    whisper_device: str = "cpu"
    whisper_compute_type: str = "int8"
    sample_rate: int = 16000
    interim_interval_seconds: float = 2.0
    min_final_seconds: float = 0.5

    # Speech synthesis (edge-tts)
    tts_rate: str = "+10%"
    tts_pitch: str = "+0Hz"
    tts_volume: str = "+0%"

    # Notification webhook
    webhook_url: str = "https://hooks.example.com/vibecheck/feedback"
    webhook_timeout_seconds: float = 5.0

    # Logging / error reporting
    log_level: str = "INFO"
    log_dir: str | None = None
    breadcrumb_limit: int = 50

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
