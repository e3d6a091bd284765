from arion_flow.config.settings import Settings, settings

__all__ = ["Settings", "settings"]
