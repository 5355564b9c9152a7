"""
REST トランスポート

ベース URL とデフォルトヘッダーを保持し、GET / POST / PUT を実行して
レスポンスボディをテキストのまま返す。HTTP ステータスコードは解釈しない。
"""

import logging
from typing import Any, Dict, Mapping, Optional

import requests

from ..utils.error_handler import NetworkError, ErrorContext
from ..utils.logger import PerformanceLogger, log_api_request


class RestClient:
    """
    汎用 REST クライアント

    接続処理は requests.Session に委譲する。再試行は行わない。
    """

    DEFAULT_TIMEOUT = 30

    def __init__(self, base_url: str, timeout: int = DEFAULT_TIMEOUT,
                 session: Optional[requests.Session] = None):
        """
        RestClient を初期化

        Args:
            base_url: API のベース URL
            timeout: リクエストタイムアウト（秒）
            session: 使用するセッション（テスト用に差し替え可能）
        """
        if not base_url or not isinstance(base_url, str):
            raise ValueError("base_url は空でない文字列である必要があります")

        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()
        self.headers: Dict[str, str] = {}
        self.logger = logging.getLogger(__name__)

    def close(self):
        """セッションを閉じてリソースを解放"""
        if self.session:
            self.session.close()
            self.logger.debug("REST セッションをクローズしました")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def add_header(self, name: str, value: str):
        """
        以降のすべてのリクエストに付与するヘッダーを追加

        Args:
            name: ヘッダー名
            value: ヘッダー値
        """
        self.headers[name] = value

    def get(self, path: str, params: Optional[Mapping[str, Any]] = None) -> str:
        """
        GET リクエストを実行

        Args:
            path: ベース URL からのパス
            params: クエリパラメータ（None の値は送信しない）

        Returns:
            レスポンスボディ（テキスト）
        """
        return self._make_request('GET', path, params=self._encode_params(params))

    def post(self, path: str, body: Optional[str] = None) -> str:
        """
        POST リクエストを実行

        Args:
            path: ベース URL からのパス
            body: リクエストボディ（JSON テキスト）

        Returns:
            レスポンスボディ（テキスト）
        """
        return self._make_request('POST', path, body=body)

    def put(self, path: str, body: Optional[str] = None) -> str:
        """PUT リクエストを実行し、レスポンスボディを返す"""
        return self._make_request('PUT', path, body=body)

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    @staticmethod
    def _encode_params(params: Optional[Mapping[str, Any]]) -> Optional[Dict[str, str]]:
        """
        クエリパラメータを文字列に変換

        リストはカンマ区切り、真偽値は true / false として送信する。
        """
        if not params:
            return None

        encoded = {}
        for key, value in params.items():
            if value is None:
                continue
            if isinstance(value, bool):
                encoded[key] = 'true' if value else 'false'
            elif isinstance(value, (list, tuple, set)):
                encoded[key] = ','.join(str(item) for item in value)
            else:
                encoded[key] = str(value)
        return encoded or None

    def _make_request(self, method: str, path: str, params: Optional[Dict[str, str]] = None,
                      body: Optional[str] = None) -> str:
        """
        HTTP リクエストを実行

        Args:
            method: HTTP メソッド
            path: API パス
            params: クエリパラメータ
            body: リクエストボディ

        Returns:
            レスポンスボディ（テキスト）

        Raises:
            NetworkError: 接続・プロトコルレベルのエラーが発生した場合
        """
        url = self._url(path)
        request_size = len(body.encode('utf-8')) if body else 0

        with ErrorContext(f"API リクエスト: {method} {path}", reraise=True):
            self.logger.debug(f"API リクエスト: {method} {url} パラメータ: {params}")

            try:
                with PerformanceLogger(f"{method} {path}") as perf:
                    response = self.session.request(
                        method=method,
                        url=url,
                        params=params,
                        data=body.encode('utf-8') if body is not None else None,
                        headers=self.headers,
                        timeout=self.timeout
                    )
            except requests.exceptions.Timeout as e:
                raise NetworkError("リクエストがタイムアウトしました", original_error=e)
            except requests.exceptions.ConnectionError as e:
                raise NetworkError(f"{self.base_url} への接続に失敗しました", original_error=e)
            except requests.exceptions.RequestException as e:
                raise NetworkError(f"リクエストエラーが発生しました: {e}", original_error=e)

            response_size = len(response.content) if response.content else 0
            log_api_request(
                method=method,
                url=path,  # フルURLではなくパスのみ
                status_code=response.status_code,
                duration=perf.duration,
                request_size=request_size,
                response_size=response_size
            )

            if not response.ok:
                self.logger.warning(f"API エラーレスポンス: {method} {path} - "
                                    f"HTTP {response.status_code} {response.reason}")

            return response.text
