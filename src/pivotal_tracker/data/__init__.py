"""
データレイヤーモジュール

Pivotal Tracker API との通信とデータ型を提供
"""

from .models import JsonValue, merge_parameters
from .rest_client import RestClient
from .tracker_client import PivotalTrackerClient

__all__ = [
    'JsonValue',
    'merge_parameters',
    'RestClient',
    'PivotalTrackerClient'
]
