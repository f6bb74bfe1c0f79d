from media_tracker.config.settings import ClientSettings, get_settings

__all__ = ["ClientSettings", "get_settings"]
