"""
データモデル定義

Pivotal Tracker API のレスポンスはスキーマ検証を行わず、JSON をそのまま
辞書・リスト・スカラー値として扱う。ここではその型と、各操作の
デフォルトクエリパラメータを定義する。
"""

from typing import Any, Dict, List, Mapping, Optional, Union


# JSON ドキュメントを表す汎用型
JsonScalar = Union[None, bool, int, float, str]
JsonValue = Union[JsonScalar, List[Any], Dict[str, Any]]

# 各リソースはスキーマを持たない JSON オブジェクト
Story = Dict[str, Any]
Epic = Dict[str, Any]
Project = Dict[str, Any]
Iteration = Dict[str, Any]
Notification = Dict[str, Any]
Membership = Dict[str, Any]
Comment = Dict[str, Any]
Task = Dict[str, Any]
Owner = Dict[str, Any]


# https://www.pivotaltracker.com/help/api/rest/v5#Projects
PROJECTS_DEFAULT_PARAMETERS = {
    'account_ids': None,
    'fields': None,
}

# https://www.pivotaltracker.com/help/api/rest/v5#Project
PROJECT_DEFAULT_PARAMETERS = {
    'fields': None,
}

PROJECT_VELOCITY_PARAMETERS = {
    'fields': 'current_velocity',
}

CURRENT_ITERATION_PARAMETERS = {
    'scope': 'current',
}

# https://www.pivotaltracker.com/help/api/rest/v5#Iterations
ITERATIONS_DEFAULT_PARAMETERS = {
    'scope': 'done',
    'offset': None,
    'limit': 10,
    'label': None,
    'fields': None,
}

ITERATION_DEFAULT_PARAMETERS = {
    'label': None,
    'fields': None,
}

# https://www.pivotaltracker.com/help/api/rest/v5#Notifications
MY_NOTIFICATIONS_DEFAULT_PARAMETERS = {
    'created_after': None,
    'updated_after': None,
    'notification_types': None,
    'limit': 1000,
    'fields': None,
}

PERSON_NOTIFICATIONS_DEFAULT_PARAMETERS = {
    'notification_types': None,
    'limit': 1000,
    'format': 'millis',
    'fields': None,
}

ICEBOX_SEARCH_QUERY = 'state:unscheduled'


def merge_parameters(defaults: Mapping[str, Any],
                     overrides: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """
    デフォルトパラメータに呼び出し側のパラメータを上書きマージする

    値が None のキーは結果から除外される（リクエストに含めない）。

    Args:
        defaults: デフォルトパラメータ
        overrides: 呼び出し側から渡されたパラメータ

    Returns:
        None を除外したマージ済みパラメータ
    """
    merged = dict(defaults)
    if overrides:
        merged.update(overrides)
    return {key: value for key, value in merged.items() if value is not None}
