from vibecheck.routes import session

__all__ = ["session"]
