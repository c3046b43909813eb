from vibecheck.capture.recognizer import ClientRecognizer, Recognizer
from vibecheck.capture.whisper import WhisperRecognizer, WhisperService

__all__ = ["ClientRecognizer", "Recognizer", "WhisperRecognizer", "WhisperService"]
