# 設定レイヤー - 設定スキーマ、暗号化保存、クライアント生成

from .config_manager import ConfigManager, create_client, configure_logging
from .config_schema import AppConfig, TrackerConfig, LoggingConfig

__all__ = [
    'ConfigManager', 'create_client', 'configure_logging',
    'AppConfig', 'TrackerConfig', 'LoggingConfig'
]
