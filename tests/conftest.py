"""テスト共通フィクスチャ - HTTP 通信を行わない記録用トランスポートを使用"""

import json
import logging

import pytest

from pivotal_tracker import PivotalTrackerClient
from pivotal_tracker.utils.error_handler import reset_error_stats


class RecordingTransport:
    """呼び出しを記録し、あらかじめ設定したボディを返すトランスポート"""

    def __init__(self):
        self.headers = {}
        self.calls = []
        self.response_body = "{}"
        self.closed = False

    def respond_with(self, data):
        self.response_body = json.dumps(data)

    def add_header(self, name, value):
        self.headers[name] = value

    def get(self, path, params=None):
        self.calls.append(('GET', path, params))
        return self.response_body

    def post(self, path, body=None):
        self.calls.append(('POST', path, body))
        return self.response_body

    def put(self, path, body=None):
        self.calls.append(('PUT', path, body))
        return self.response_body

    def close(self):
        self.closed = True

    @property
    def last_call(self):
        return self.calls[-1]


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def client(transport) -> PivotalTrackerClient:
    return PivotalTrackerClient("T1", "42", transport=transport)


@pytest.fixture(autouse=True)
def clean_error_stats():
    reset_error_stats()
    yield
    reset_error_stats()


@pytest.fixture
def reset_library_logger():
    yield
    logger = logging.getLogger('pivotal_tracker')
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
