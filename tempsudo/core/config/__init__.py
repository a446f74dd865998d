from tempsudo.core.config.manager import ConfigManager, get_config
from tempsudo.core.config.models import AppConfig

__all__ = ["AppConfig", "ConfigManager", "get_config"]
