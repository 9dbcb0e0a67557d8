from farmrelay.core.config import settings, Settings

__all__ = ["settings", "Settings"]
