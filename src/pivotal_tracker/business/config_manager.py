"""
設定管理システム - ConfigManager クラス

API トークンを暗号化して設定ファイルに保存・読み込みする機能と、
設定からクライアントを生成する機能を提供します。
"""

import json
import os
import copy
import base64
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from cryptography.fernet import Fernet, InvalidToken

from .config_schema import AppConfig, VALID_LOG_LEVELS
from ..data.tracker_client import PivotalTrackerClient
from ..utils.error_handler import ConfigurationError
from ..utils.logger import initialize_logging

logger = logging.getLogger(__name__)


class ConfigManager:
    """設定管理クラス

    設定情報の暗号化保存・読み込み、デフォルト設定の管理、
    設定値のバリデーション機能を提供します。
    """

    def __init__(self, config_dir: Optional[str] = None):
        """ConfigManager を初期化

        Args:
            config_dir: 設定ファイルを保存するディレクトリ。
                       None の場合はユーザーのホームディレクトリ下に作成
        """
        if config_dir is None:
            self.config_dir = Path.home() / ".pivotal_tracker_client"
        else:
            self.config_dir = Path(config_dir)

        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.config_file = self.config_dir / "config.json"
        self.key_file = self.config_dir / "key.key"

        self._fernet = self._create_fernet()

        logger.debug(f"ConfigManager initialized with config directory: {self.config_dir}")

    def _create_fernet(self) -> Fernet:
        """暗号化キーを読み込んで Fernet を生成

        Raises:
            ConfigurationError: キーファイルが壊れている場合
        """
        self._encryption_key = self._get_or_create_key()
        try:
            return Fernet(self._encryption_key)
        except ValueError as e:
            logger.error(f"Invalid encryption key file: {e}")
            raise ConfigurationError("暗号化キーファイルが無効です",
                                     config_key="key_file", original_error=e)

    def _get_or_create_key(self) -> bytes:
        """暗号化キーを取得または作成"""
        if self.key_file.exists():
            with open(self.key_file, 'rb') as f:
                return f.read()

        key = Fernet.generate_key()
        with open(self.key_file, 'wb') as f:
            f.write(key)
        try:
            os.chmod(self.key_file, 0o600)
        except OSError:
            logger.warning("Could not set restrictive permissions on key file")
        return key

    def encrypt_sensitive_data(self, data: str) -> str:
        """機密データを暗号化

        Args:
            data: 暗号化する文字列

        Returns:
            暗号化された文字列（base64エンコード済み）
        """
        if not data:
            return ""

        encrypted_data = self._fernet.encrypt(data.encode('utf-8'))
        return base64.b64encode(encrypted_data).decode('utf-8')

    def decrypt_sensitive_data(self, encrypted_data: str) -> str:
        """暗号化されたデータを復号化

        Raises:
            ConfigurationError: 復号化に失敗した場合
        """
        if not encrypted_data:
            return ""

        try:
            decoded_data = base64.b64decode(encrypted_data.encode('utf-8'))
            return self._fernet.decrypt(decoded_data).decode('utf-8')
        except (InvalidToken, ValueError) as e:
            logger.error(f"Failed to decrypt data: {e}")
            raise ConfigurationError("API トークンの復号化に失敗しました",
                                     config_key="tracker.api_token", original_error=e)

    def get_default_config(self) -> AppConfig:
        """デフォルト設定を取得"""
        return AppConfig()

    def validate_config(self, config: AppConfig) -> bool:
        """設定の妥当性を検証

        Args:
            config: 検証する設定

        Returns:
            設定が有効な場合 True

        Raises:
            ConfigurationError: 設定が無効な場合
        """
        tracker = config.tracker
        if not isinstance(tracker.api_token, str):
            raise ConfigurationError("api_token は文字列である必要があります", config_key="tracker.api_token")
        if not isinstance(tracker.project_id, (str, int)):
            raise ConfigurationError("project_id は文字列または整数である必要があります",
                                     config_key="tracker.project_id")
        if not isinstance(tracker.base_url, str) or not tracker.base_url.startswith(('http://', 'https://')):
            raise ConfigurationError("base_url は http(s) の URL である必要があります",
                                     config_key="tracker.base_url")
        if isinstance(tracker.timeout, bool) or not isinstance(tracker.timeout, (int, float)) \
                or tracker.timeout <= 0:
            raise ConfigurationError("timeout は正の数値である必要があります", config_key="tracker.timeout")

        if str(config.logging.level).upper() not in VALID_LOG_LEVELS:
            raise ConfigurationError(f"ログレベルが無効です: {config.logging.level}",
                                     config_key="logging.level")

        return True

    def load_config(self) -> AppConfig:
        """設定ファイルから設定を読み込み

        Returns:
            設定。ファイルが存在しない場合はデフォルト設定を返す

        Raises:
            ConfigurationError: 設定ファイルが壊れている場合
        """
        if not self.config_file.exists():
            logger.info("Config file not found, returning default config")
            return self.get_default_config()

        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in config file: {e}")
            raise ConfigurationError("設定ファイルの形式が無効です", original_error=e)

        if not isinstance(data, dict):
            raise ConfigurationError("設定ファイルの形式が無効です")

        for section in ("tracker", "logging"):
            if section in data and not isinstance(data[section], dict):
                raise ConfigurationError(f"セクション '{section}' はオブジェクトである必要があります",
                                         config_key=section)

        token = data.get("tracker", {}).get("api_token")
        if token:
            data["tracker"]["api_token"] = self.decrypt_sensitive_data(token)

        config = AppConfig.from_dict(data)
        self.validate_config(config)

        logger.info("Config loaded successfully")
        return config

    def save_config(self, config: AppConfig) -> None:
        """設定を暗号化してファイルに保存

        Args:
            config: 保存する設定

        Raises:
            ConfigurationError: 設定が無効、または保存に失敗した場合
        """
        self.validate_config(config)

        data: Dict[str, Any] = copy.deepcopy(config.to_dict())
        if data["tracker"].get("api_token"):
            data["tracker"]["api_token"] = self.encrypt_sensitive_data(data["tracker"]["api_token"])

        # 一時ファイルに書き込んでから移動（原子的操作）
        temp_file = self.config_file.with_suffix('.tmp')
        try:
            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            temp_file.replace(self.config_file)
            logger.info("Config saved successfully")
        except OSError as e:
            logger.error(f"Failed to save config: {e}")
            if temp_file.exists():
                temp_file.unlink()
            raise ConfigurationError(f"設定ファイルの保存に失敗しました: {e}", original_error=e)

    def reset_config(self) -> None:
        """設定をデフォルトにリセット

        設定ファイルと暗号化キーを削除し、新しいキーを生成します。
        """
        if self.config_file.exists():
            self.config_file.unlink()
            logger.info("Config file deleted")

        if self.key_file.exists():
            self.key_file.unlink()
            logger.info("Key file deleted")

        self._fernet = self._create_fernet()
        logger.info("Config reset completed")

    def get_config_path(self) -> str:
        """設定ファイルの絶対パスを取得"""
        return str(self.config_file.absolute())

    def config_exists(self) -> bool:
        """設定ファイルが存在するかチェック"""
        return self.config_file.exists()


def create_client(config: AppConfig) -> PivotalTrackerClient:
    """設定からクライアントを生成

    Args:
        config: 設定

    Returns:
        PivotalTrackerClient

    Raises:
        ConfigurationError: API トークンまたはプロジェクト ID が未設定の場合
    """
    tracker = config.tracker
    if not tracker.api_token:
        raise ConfigurationError("API トークンが設定されていません", config_key="tracker.api_token")
    if tracker.project_id in (None, ""):
        raise ConfigurationError("プロジェクト ID が設定されていません", config_key="tracker.project_id")

    return PivotalTrackerClient(
        tracker.api_token,
        tracker.project_id,
        base_url=tracker.base_url,
        timeout=tracker.timeout
    )


def configure_logging(config: AppConfig) -> logging.Logger:
    """設定のログセクションに従ってログを初期化

    Args:
        config: 設定

    Returns:
        ライブラリのルートロガー
    """
    logging_config = config.logging
    return initialize_logging(
        log_dir=logging_config.log_dir,
        level=str(logging_config.level),
        debug_mode=bool(logging_config.debug_mode)
    )
