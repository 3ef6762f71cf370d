from sqlgate.config.settings import settings, validate_config

__all__ = ["settings", "validate_config"]
