"""
ログ設定とログ管理機能

ライブラリ本体はハンドラーを設定しない。アプリケーション側で
initialize_logging() を呼び出してコンソール・ファイル出力を有効にする。
"""
import logging
import logging.handlers
from pathlib import Path
from datetime import datetime
from typing import Optional, Dict


ROOT_LOGGER_NAME = 'pivotal_tracker'

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class LoggerConfig:
    """ログ設定管理クラス"""

    def __init__(self, log_dir: Optional[str] = None, debug_mode: bool = False,
                 max_file_size_mb: int = 10, backup_count: int = 5):
        """
        ログ設定を初期化

        Args:
            log_dir: ログファイル保存ディレクトリ（Noneの場合はコンソール出力のみ）
            debug_mode: デバッグモードの有効/無効
            max_file_size_mb: エラーログの最大サイズ（MB）
            backup_count: 保持するバックアップ数
        """
        self.log_dir = Path(log_dir) if log_dir else None
        self.debug_mode = debug_mode
        self.max_file_size_mb = max_file_size_mb
        self.backup_count = backup_count

        self.log_file = None
        self.error_log_file = None
        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            date_str = datetime.now().strftime('%Y%m%d')
            self.log_file = self.log_dir / f"pivotal_tracker_{date_str}.log"
            self.error_log_file = self.log_dir / f"pivotal_tracker_error_{date_str}.log"

    def setup_logging(self, level: str = "INFO") -> logging.Logger:
        """
        ログ設定をセットアップ

        Args:
            level: ログレベル（DEBUG, INFO, WARNING, ERROR, CRITICAL）

        Returns:
            設定済みのロガーインスタンス
        """
        if self.debug_mode:
            level = "DEBUG"
        log_level = getattr(logging, level.upper(), logging.INFO)

        logger = logging.getLogger(ROOT_LOGGER_NAME)
        logger.setLevel(log_level)

        # 既存のハンドラーをクリア
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

        detailed_formatter = logging.Formatter(DEFAULT_LOG_FORMAT, datefmt=DEFAULT_DATE_FORMAT)
        simple_formatter = logging.Formatter(
            '%(asctime)s - %(levelname)s - %(message)s',
            datefmt='%H:%M:%S'
        )

        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(simple_formatter)
        logger.addHandler(console_handler)

        if self.log_dir is not None:
            # メインログファイルハンドラー（日次ローテーション）
            main_file_handler = logging.handlers.TimedRotatingFileHandler(
                filename=self.log_file,
                when='midnight',
                interval=1,
                backupCount=self.backup_count,
                encoding='utf-8'
            )
            main_file_handler.setLevel(log_level)
            main_file_handler.setFormatter(detailed_formatter)
            logger.addHandler(main_file_handler)

            # エラーログファイルハンドラー（サイズローテーション）
            error_file_handler = logging.handlers.RotatingFileHandler(
                filename=self.error_log_file,
                maxBytes=self.max_file_size_mb * 1024 * 1024,
                backupCount=self.backup_count,
                encoding='utf-8'
            )
            error_file_handler.setLevel(logging.ERROR)
            error_file_handler.setFormatter(detailed_formatter)
            logger.addHandler(error_file_handler)

        logger.info(f"ログシステムが初期化されました - ログレベル: {level.upper()}")
        if self.log_file:
            logger.info(f"メインログファイル: {self.log_file}")

        return logger

    def get_log_files(self) -> Dict[str, str]:
        """ログファイルのパス一覧を取得"""
        if self.log_dir is None:
            return {}
        return {
            'main': str(self.log_file),
            'error': str(self.error_log_file)
        }


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    ロガーインスタンスを取得

    Args:
        name: ロガー名

    Returns:
        ロガーインスタンス
    """
    return logging.getLogger(name)


# グローバルログ設定インスタンス
_logger_config = None


def initialize_logging(log_dir: Optional[str] = None, level: str = "INFO",
                       debug_mode: bool = False) -> logging.Logger:
    """
    ライブラリ全体のログ設定を初期化

    Args:
        log_dir: ログディレクトリ
        level: ログレベル
        debug_mode: デバッグモードの有効/無効

    Returns:
        ライブラリのルートロガー
    """
    global _logger_config
    _logger_config = LoggerConfig(log_dir, debug_mode)
    return _logger_config.setup_logging(level)


def get_log_files() -> Dict[str, str]:
    """ログファイルのパス一覧を取得"""
    if _logger_config:
        return _logger_config.get_log_files()
    return {}


class PerformanceLogger:
    """パフォーマンス測定用クラス"""

    def __init__(self, operation_name: str, logger_name: str = 'pivotal_tracker.performance'):
        self.operation_name = operation_name
        self.logger = logging.getLogger(logger_name)
        self.start_time = None
        self.end_time = None

    def __enter__(self):
        self.start_time = datetime.now()
        self.logger.debug(f"開始: {self.operation_name}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.end_time = datetime.now()

        if exc_type is None:
            self.logger.debug(f"完了: {self.operation_name} - 実行時間: {self.duration:.3f}秒")
        else:
            self.logger.debug(f"エラー終了: {self.operation_name} - 実行時間: {self.duration:.3f}秒 - エラー: {exc_val}")

    @property
    def duration(self) -> float:
        """経過時間（秒）"""
        if self.start_time is None:
            return 0.0
        end_time = self.end_time or datetime.now()
        return (end_time - self.start_time).total_seconds()


def log_api_request(method: str, url: str, status_code: int, duration: float,
                    request_size: int = 0, response_size: int = 0):
    """API リクエスト情報をログに記録"""
    logger = get_logger('pivotal_tracker.api')
    logger.info(f"API: {method} {url} - {status_code} - {duration:.3f}s - "
                f"Req:{request_size}B Res:{response_size}B")
