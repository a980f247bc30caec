from magaza.config.settings import settings

__all__ = ["settings"]
