"""
Pivotal Tracker API クライアント

Pivotal Tracker REST API (v5) の各エンドポイントを 1 メソッドずつ公開する
ファサード。HTTP 通信は RestClient に委譲する。
"""

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from .models import (
    JsonValue, Story, Epic, Project, Iteration, Notification, Membership,
    Comment, Task, Owner,
    PROJECTS_DEFAULT_PARAMETERS, PROJECT_DEFAULT_PARAMETERS,
    PROJECT_VELOCITY_PARAMETERS, CURRENT_ITERATION_PARAMETERS,
    ITERATIONS_DEFAULT_PARAMETERS, ITERATION_DEFAULT_PARAMETERS,
    MY_NOTIFICATIONS_DEFAULT_PARAMETERS, PERSON_NOTIFICATIONS_DEFAULT_PARAMETERS,
    ICEBOX_SEARCH_QUERY, merge_parameters
)
from .rest_client import RestClient
from ..utils.error_handler import APIError, AuthenticationError, handle_errors


ProjectId = Union[str, int]

# 認証失敗を表す Tracker のエラーコード
AUTHENTICATION_ERROR_CODES = frozenset({"invalid_authentication", "unauthenticated"})


class PivotalTrackerClient:
    """
    Pivotal Tracker API クライアント

    プロジェクト ID を保持し、明示的に別プロジェクトを指定する操作以外は
    すべてそのプロジェクトを対象にリクエストを行う。
    """

    API_URL = "https://www.pivotaltracker.com/services/v5"

    def __init__(self, api_token: str, project_id: ProjectId,
                 base_url: str = API_URL, timeout: int = RestClient.DEFAULT_TIMEOUT,
                 transport: Optional[RestClient] = None):
        """
        PivotalTrackerClient を初期化

        Args:
            api_token: Pivotal Tracker の API トークン
            project_id: 対象プロジェクト ID
            base_url: API のベース URL
            timeout: リクエストタイムアウト（秒）
            transport: 使用するトランスポート（None の場合は RestClient を生成）
        """
        if not isinstance(api_token, str) or not api_token.strip():
            raise ValueError("api_token は空でない文字列である必要があります")

        self.api_token = api_token.strip()
        self.project_id = project_id
        self.logger = logging.getLogger(__name__)

        self.client = transport if transport is not None else RestClient(base_url, timeout=timeout)
        self.client.add_header('Content-type', 'application/json')
        self.client.add_header('X-TrackerToken', self.api_token)

        self.logger.debug(f"PivotalTrackerClient初期化 - プロジェクト: {self.project_id}, "
                          f"トークン長: {len(self.api_token)}")

    def close(self):
        """トランスポートを閉じる"""
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def _decode(self, body: Optional[str]) -> JsonValue:
        """
        レスポンスボディを JSON として解析

        解析できない場合は例外を投げず None を返す。
        """
        if body is None:
            return None
        try:
            return json.loads(body)
        except ValueError as e:
            self.logger.warning(f"API レスポンスの JSON 解析に失敗しました: {e}")
            return None

    @staticmethod
    def _encode(data: Mapping[str, Any]) -> str:
        return json.dumps(data, separators=(',', ':'))

    def _stories_path(self) -> str:
        return f"/projects/{self.project_id}/stories"

    def _story_path(self, story_id: ProjectId) -> str:
        return f"{self._stories_path()}/{story_id}"

    # ストーリー・エピックの作成と更新

    def add_story(self, story: Mapping[str, Any]) -> Story:
        """
        ストーリーを作成し、作成されたストーリーを返す

        Args:
            story: ストーリーの属性

        Returns:
            作成されたストーリー
        """
        return self._decode(self.client.post(self._stories_path(), self._encode(story)))

    def add_epic(self, epic: Mapping[str, Any]) -> Epic:
        """エピックを作成し、作成されたエピックを返す"""
        return self._decode(self.client.post(
            f"/projects/{self.project_id}/epics",
            self._encode(epic)
        ))

    def update_story(self, story_id: ProjectId, story: Mapping[str, Any]) -> Story:
        """
        ストーリーを更新し、更新後のストーリーを返す

        Args:
            story_id: 更新するストーリー ID
            story: 更新する属性
        """
        return self._decode(self.client.put(self._story_path(story_id), self._encode(story)))

    def add_owner(self, story_id: ProjectId, user_id: ProjectId) -> Owner:
        """ストーリーにオーナーを追加し、追加された人物を返す"""
        return self._decode(self.client.post(
            f"{self._story_path(story_id)}/owners",
            self._encode({'id': user_id})
        ))

    def add_comment(self, story_id: ProjectId, comment: Mapping[str, Any]) -> Comment:
        """ストーリーにコメントを追加し、作成されたコメントを返す"""
        return self._decode(self.client.post(
            f"{self._story_path(story_id)}/comments",
            self._encode(comment)
        ))

    def add_task(self, story_id: ProjectId, description: str) -> Task:
        """
        ストーリーにタスクを追加する

        Args:
            story_id: 対象ストーリー ID
            description: タスクの説明

        Returns:
            作成されたタスク
        """
        return self._decode(self.client.post(
            f"{self._story_path(story_id)}/tasks",
            self._encode({'description': description})
        ))

    def add_labels(self, story_id: ProjectId, labels: Mapping[str, Any]) -> Story:
        """
        ストーリーにラベルを設定し、更新後のストーリーを返す

        Args:
            story_id: 対象ストーリー ID
            labels: ラベル属性（例: {'labels': [{'name': 'bug'}]}）
        """
        return self._decode(self.client.put(self._story_path(story_id), self._encode(labels)))

    # 参照系

    def get_stories(self, filter: Optional[str] = None) -> List[Story]:
        """
        プロジェクトのストーリー一覧を取得

        Args:
            filter: Tracker の検索フィルタ文字列（例: 'state:started'）
        """
        params = {'filter': filter} if filter else None
        return self._decode(self.client.get(self._stories_path(), params))

    def get_projects(self, parameters: Optional[Mapping[str, Any]] = None) -> List[Project]:
        """
        認証ユーザーが参加しているプロジェクト一覧を取得

        Args:
            parameters: account_ids, fields
        """
        params = merge_parameters(PROJECTS_DEFAULT_PARAMETERS, parameters)
        return self._decode(self.client.get("/projects", params))

    def get_memberships(self) -> List[Membership]:
        """プロジェクトメンバー一覧を取得"""
        return self._decode(self.client.get(f"/projects/{self.project_id}/memberships"))

    def get_project_velocity(self) -> Optional[int]:
        """
        プロジェクトの現在のベロシティを取得

        Returns:
            current_velocity の値。レスポンスに含まれない場合は None
        """
        response = self._decode(self.client.get(
            f"/projects/{self.project_id}",
            dict(PROJECT_VELOCITY_PARAMETERS)
        ))
        if not isinstance(response, dict) or 'current_velocity' not in response:
            self.logger.warning(f"ベロシティを取得できませんでした - レスポンス: {response}")
            return None
        return response['current_velocity']

    def get_project(self, project_id: ProjectId,
                    parameters: Optional[Mapping[str, Any]] = None) -> Project:
        """
        任意のプロジェクトの詳細を取得

        Args:
            project_id: プロジェクト ID（保持しているプロジェクトとは独立）
            parameters: fields
        """
        params = merge_parameters(PROJECT_DEFAULT_PARAMETERS, parameters)
        return self._decode(self.client.get(f"/projects/{project_id}", params))

    def search(self, query: str) -> Dict[str, Any]:
        """検索を実行し、生の検索結果を返す"""
        return self._decode(self.client.get(
            f"/projects/{self.project_id}/search",
            {'query': query}
        ))

    def get_icebox_count(self) -> Optional[int]:
        """
        Icebox（未スケジュール）のストーリー数を取得

        Returns:
            stories.total_hits の値。検索結果に含まれない場合は None
        """
        response = self.search(ICEBOX_SEARCH_QUERY)
        stories = response.get('stories') if isinstance(response, dict) else None
        if not isinstance(stories, dict) or 'total_hits' not in stories:
            self.logger.warning(f"Icebox の件数を取得できませんでした - レスポンス: {response}")
            return None
        return stories['total_hits']

    def get_current_iteration(self) -> Optional[Iteration]:
        """
        現在のイテレーションとそのストーリーを取得

        Returns:
            先頭のイテレーション。該当がない場合は None
        """
        response = self._decode(self.client.get(
            f"/projects/{self.project_id}/iterations",
            dict(CURRENT_ITERATION_PARAMETERS)
        ))
        if not isinstance(response, list) or not response:
            self.logger.warning(f"現在のイテレーションを取得できませんでした - レスポンス: {response}")
            return None
        return response[0]

    def get_project_iterations(self, parameters: Optional[Mapping[str, Any]] = None) -> List[Iteration]:
        """
        プロジェクトのイテレーション一覧を取得

        Args:
            parameters: scope, offset, limit, label, fields
        """
        params = merge_parameters(ITERATIONS_DEFAULT_PARAMETERS, parameters)
        return self._decode(self.client.get(f"/projects/{self.project_id}/iterations", params))

    def get_iteration(self, iteration_id: ProjectId,
                      parameters: Optional[Mapping[str, Any]] = None) -> Iteration:
        """指定したイテレーションの情報を取得"""
        params = merge_parameters(ITERATION_DEFAULT_PARAMETERS, parameters)
        return self._decode(self.client.get(
            f"/projects/{self.project_id}/iterations/{iteration_id}",
            params
        ))

    def get_my_notifications(self, parameters: Optional[Mapping[str, Any]] = None) -> List[Notification]:
        """
        認証ユーザーの通知一覧を取得

        Args:
            parameters: created_after, updated_after, notification_types, limit, fields
        """
        params = merge_parameters(MY_NOTIFICATIONS_DEFAULT_PARAMETERS, parameters)
        return self._decode(self.client.get("/my/notifications", params))

    def get_person_notifications_since(self, person_id: ProjectId, since: int,
                                       parameters: Optional[Mapping[str, Any]] = None) -> List[Notification]:
        """
        指定した人物の通知を、指定時刻以降について取得

        Args:
            person_id: 人物 ID
            since: UNIX エポックからのミリ秒
            parameters: notification_types, limit, format, fields
        """
        params = merge_parameters(PERSON_NOTIFICATIONS_DEFAULT_PARAMETERS, parameters)
        return self._decode(self.client.get(
            f"/people/{person_id}/notifications/since/{since}",
            params
        ))

    @staticmethod
    def raise_for_error(response: JsonValue) -> JsonValue:
        """
        解析済みレスポンスが Tracker のエラーオブジェクトであれば例外を発生させる

        トランスポートはステータスコードを解釈しないため、エラーとして
        扱いたい呼び出し側はこのメソッドで結果を検査する。

        Args:
            response: 解析済みレスポンス

        Returns:
            エラーでなければ response をそのまま返す

        Raises:
            AuthenticationError: 認証エラーの場合
            APIError: その他のエラーの場合
        """
        if not isinstance(response, dict) or response.get('kind') != 'error':
            return response

        code = response.get('code', '')
        message = response.get('error', 'Unknown error')
        if response.get('general_problem'):
            message += f" ({response['general_problem']})"

        if code in AUTHENTICATION_ERROR_CODES:
            raise AuthenticationError(f"認証エラー: {message}")
        raise APIError(f"API エラー: {message} [{code}]", code=code, response_data=response)

    @handle_errors("API接続テスト", reraise=True)
    def test_connection(self) -> bool:
        """
        API 接続をテスト

        Returns:
            /me が認証ユーザーを返した場合 True

        Raises:
            AuthenticationError: トークンが拒否された場合
            APIError: その他のエラーが返された場合
        """
        self.logger.info("API 接続をテストしています...")
        response = self.raise_for_error(self._decode(self.client.get("/me")))

        if isinstance(response, dict) and response.get('id') is not None:
            self.logger.info(f"API 接続テストが成功しました - ユーザー: {response.get('name', 'Unknown')}")
            return True

        self.logger.warning(f"予期しないレスポンス形式です: {response}")
        return False
