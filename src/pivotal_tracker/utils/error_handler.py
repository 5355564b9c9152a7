"""
エラーハンドリング基盤

Pivotal Tracker クライアントの例外階層と、エラーのログ記録・
ユーザー向けメッセージ生成を提供する
"""
import logging
import traceback
from typing import Optional, Dict, Any, Callable
from enum import Enum


class ErrorType(Enum):
    """エラータイプ分類"""
    API_ERROR = "api_error"
    NETWORK_ERROR = "network_error"
    AUTHENTICATION_ERROR = "auth_error"
    CONFIGURATION_ERROR = "config_error"
    UNKNOWN_ERROR = "unknown_error"


class TrackerClientError(Exception):
    """ライブラリ基底例外クラス"""

    def __init__(self, message: str, error_type: ErrorType = ErrorType.UNKNOWN_ERROR,
                 details: Optional[Dict[str, Any]] = None, original_error: Optional[Exception] = None):
        """
        エラーを初期化

        Args:
            message: エラーメッセージ
            error_type: エラータイプ
            details: エラー詳細情報
            original_error: 元の例外
        """
        super().__init__(message)
        self.error_type = error_type
        self.details = details or {}
        self.original_error = original_error


class APIError(TrackerClientError):
    """API関連エラー"""

    def __init__(self, message: str, code: Optional[str] = None,
                 response_data: Optional[Any] = None, original_error: Optional[Exception] = None):
        details = {
            'code': code,
            'response_data': response_data
        }
        super().__init__(message, ErrorType.API_ERROR, details, original_error)


class NetworkError(TrackerClientError):
    """ネットワーク関連エラー"""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message, ErrorType.NETWORK_ERROR, original_error=original_error)


class AuthenticationError(TrackerClientError):
    """認証関連エラー"""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message, ErrorType.AUTHENTICATION_ERROR, original_error=original_error)


class ConfigurationError(TrackerClientError):
    """設定関連エラー"""

    def __init__(self, message: str, config_key: Optional[str] = None,
                 original_error: Optional[Exception] = None):
        details = {'config_key': config_key}
        super().__init__(message, ErrorType.CONFIGURATION_ERROR, details, original_error)


class ErrorHandler:
    """エラーハンドリング管理クラス"""

    def __init__(self):
        self.logger = logging.getLogger('pivotal_tracker.error_handler')

        self.user_messages = {
            ErrorType.API_ERROR: "Pivotal Tracker API との通信でエラーが発生しました。",
            ErrorType.NETWORK_ERROR: "ネットワーク接続でエラーが発生しました。インターネット接続を確認してください。",
            ErrorType.AUTHENTICATION_ERROR: "認証に失敗しました。API トークンを確認してください。",
            ErrorType.CONFIGURATION_ERROR: "設定に問題があります。",
            ErrorType.UNKNOWN_ERROR: "予期しないエラーが発生しました。"
        }

        # Tracker のエラーコード別メッセージ
        self.api_code_messages = {
            'unfound_resource': "指定されたリソースが見つかりません。",
            'unauthorized_operation': "この操作を行う権限がありません。",
            'invalid_parameter': "リクエストパラメータが無効です。",
            'capability_access_denied': "プロジェクトへのアクセス権限がありません。"
        }

        self.error_stats = {
            'total_errors': 0,
            'errors_by_type': {}
        }

    def handle_error(self, error: Exception, context: str = "") -> str:
        """
        エラーを処理してユーザーフレンドリーなメッセージを返す

        Args:
            error: 発生したエラー
            context: エラーが発生したコンテキスト

        Returns:
            ユーザー向けエラーメッセージ
        """
        self.log_error(error, context)

        if isinstance(error, TrackerClientError):
            return self._handle_application_error(error)
        return self._handle_unknown_error(error)

    def _handle_application_error(self, error: TrackerClientError) -> str:
        """ライブラリ定義エラーを処理"""
        base_message = self.user_messages.get(error.error_type, self.user_messages[ErrorType.UNKNOWN_ERROR])

        if error.error_type == ErrorType.API_ERROR and error.details.get('code'):
            code = error.details['code']
            if code in self.api_code_messages:
                return f"{base_message} {self.api_code_messages[code]}"
            return f"{base_message} (エラーコード: {code})"

        if error.error_type == ErrorType.CONFIGURATION_ERROR and error.details.get('config_key'):
            return f"{base_message} 設定項目 '{error.details['config_key']}' を確認してください。"

        return f"{base_message} {str(error)}"

    def _handle_unknown_error(self, error: Exception) -> str:
        """未知のエラーを処理"""
        return f"{self.user_messages[ErrorType.UNKNOWN_ERROR]} 詳細: {str(error)}"

    def log_error(self, error: Exception, context: str = ""):
        """
        エラーをログに記録

        Args:
            error: 発生したエラー
            context: エラーが発生したコンテキスト
        """
        error_info = {
            'error_type': type(error).__name__,
            'error_message': str(error),
            'context': context,
            'traceback': traceback.format_exc()
        }

        if isinstance(error, TrackerClientError):
            error_info.update({
                'application_error_type': error.error_type.value,
                'error_details': error.details
            })

        self.logger.error(f"エラーが発生しました: {error_info}")

    def record_error_stats(self, error: Exception):
        """エラー統計情報を記録"""
        self.error_stats['total_errors'] += 1

        if isinstance(error, TrackerClientError):
            error_type = error.error_type.value
        else:
            error_type = type(error).__name__

        self.error_stats['errors_by_type'][error_type] = (
            self.error_stats['errors_by_type'].get(error_type, 0) + 1
        )

    def get_error_stats(self) -> Dict[str, Any]:
        """エラー統計情報を取得"""
        stats = self.error_stats.copy()
        stats['errors_by_type'] = dict(self.error_stats['errors_by_type'])
        return stats

    def reset_error_stats(self):
        """エラー統計情報をリセット"""
        self.error_stats = {
            'total_errors': 0,
            'errors_by_type': {}
        }


# グローバルエラーハンドラーインスタンス
_error_handler = ErrorHandler()


def handle_error(error: Exception, context: str = "") -> str:
    """
    グローバルエラーハンドラーを使用してエラーを処理

    Args:
        error: 発生したエラー
        context: エラーコンテキスト

    Returns:
        ユーザー向けエラーメッセージ
    """
    return _error_handler.handle_error(error, context)


def log_error(error: Exception, context: str = ""):
    """グローバルエラーハンドラーを使用してエラーをログに記録"""
    _error_handler.log_error(error, context)


def get_error_stats() -> Dict[str, Any]:
    """エラー統計情報を取得"""
    return _error_handler.get_error_stats()


def reset_error_stats():
    """エラー統計情報をリセット"""
    _error_handler.reset_error_stats()


# エラーハンドリングデコレータ
def handle_errors(context: str = "", reraise: bool = True, default_return=None):
    """
    エラーハンドリングデコレータ

    Args:
        context: エラーコンテキスト
        reraise: エラーを再発生させるかどうか
        default_return: エラー時のデフォルト戻り値
    """
    def decorator(func):
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                _error_handler.record_error_stats(e)
                _error_handler.log_error(e, context or func.__name__)

                if reraise:
                    raise

                return default_return
        wrapper.__name__ = func.__name__
        wrapper.__doc__ = func.__doc__
        return wrapper
    return decorator


# エラーハンドリングコンテキストマネージャ
class ErrorContext:
    """エラーハンドリングコンテキストマネージャ"""

    def __init__(self, context: str, reraise: bool = True,
                 on_error: Optional[Callable[[Exception], None]] = None):
        """
        エラーコンテキストを初期化

        Args:
            context: エラーコンテキスト
            reraise: エラーを再発生させるかどうか
            on_error: エラー発生時のコールバック関数
        """
        self.context = context
        self.reraise = reraise
        self.on_error = on_error
        self.error: Optional[Exception] = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_val is not None:
            self.error = exc_val
            _error_handler.record_error_stats(exc_val)
            _error_handler.log_error(exc_val, self.context)

            if self.on_error:
                try:
                    self.on_error(exc_val)
                except Exception as callback_error:
                    _error_handler.log_error(callback_error, f"{self.context} - error callback")

            if not self.reraise:
                return True  # エラーを抑制

        return False
