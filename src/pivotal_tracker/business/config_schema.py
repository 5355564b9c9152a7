"""
設定ファイル構造定義

Pivotal Tracker クライアントの設定ファイルの構造とスキーマを定義します。
"""

from typing import Any, Dict, Optional
from dataclasses import dataclass, asdict


DEFAULT_API_URL = "https://www.pivotaltracker.com/services/v5"
DEFAULT_TIMEOUT = 30
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class TrackerConfig:
    """Pivotal Tracker API 関連の設定"""
    api_token: str = ""
    project_id: str = ""
    base_url: str = DEFAULT_API_URL
    timeout: int = DEFAULT_TIMEOUT


@dataclass
class LoggingConfig:
    """ログ関連の設定"""
    level: str = "INFO"
    log_dir: Optional[str] = None
    debug_mode: bool = False


@dataclass
class AppConfig:
    """設定全体"""
    tracker: TrackerConfig = None
    logging: LoggingConfig = None

    def __post_init__(self):
        if self.tracker is None:
            self.tracker = TrackerConfig()
        if self.logging is None:
            self.logging = LoggingConfig()

    def to_dict(self) -> Dict[str, Any]:
        """辞書形式に変換"""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AppConfig':
        """
        辞書から設定オブジェクトを作成

        未知のキーは無視し、欠けているキーはデフォルト値で補う。
        """
        tracker_data = data.get('tracker', {}) or {}
        logging_data = data.get('logging', {}) or {}

        tracker = TrackerConfig(**{
            key: value for key, value in tracker_data.items()
            if key in TrackerConfig.__dataclass_fields__
        })
        # プロジェクト ID は数値で保存されていても文字列として扱う
        tracker.project_id = str(tracker.project_id) if tracker.project_id is not None else ""

        logging_config = LoggingConfig(**{
            key: value for key, value in logging_data.items()
            if key in LoggingConfig.__dataclass_fields__
        })

        return cls(tracker=tracker, logging=logging_config)
