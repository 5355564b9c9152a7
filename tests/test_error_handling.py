"""エラーハンドリングとログ設定のテスト"""

import logging
from pathlib import Path

import pytest

from pivotal_tracker.utils.error_handler import (
    APIError, AuthenticationError, ConfigurationError, ErrorContext, ErrorType,
    NetworkError, get_error_stats, handle_error, handle_errors
)
from pivotal_tracker.utils.logger import (
    PerformanceLogger, get_log_files, initialize_logging, log_api_request
)


def test_error_types():
    assert APIError("x", code="unfound_resource").details['code'] == "unfound_resource"
    assert APIError("x").error_type is ErrorType.API_ERROR
    assert NetworkError("x").error_type is ErrorType.NETWORK_ERROR
    assert AuthenticationError("x").error_type is ErrorType.AUTHENTICATION_ERROR
    assert ConfigurationError("x", config_key="k").details == {'config_key': 'k'}


def test_handle_error_messages():
    assert "リソースが見つかりません" in handle_error(APIError("x", code="unfound_resource"))
    assert "権限がありません" in handle_error(APIError("x", code="unauthorized_operation"))
    assert "エラーコード: cant_parse_json" in handle_error(APIError("x", code="cant_parse_json"))
    assert handle_error(APIError("x")).endswith(" x")
    assert "tracker.api_token" in handle_error(ConfigurationError("x", config_key="tracker.api_token"))
    assert "詳細: boom" in handle_error(RuntimeError("boom"))


def test_error_context_records_and_reraises():
    with pytest.raises(NetworkError):
        with ErrorContext("テスト"):
            raise NetworkError("down")

    assert get_error_stats() == {'total_errors': 1, 'errors_by_type': {'network_error': 1}}


def test_error_context_can_suppress_and_call_back():
    seen = []

    with ErrorContext("テスト", reraise=False, on_error=seen.append) as ctx:
        raise ValueError("bad")

    assert isinstance(ctx.error, ValueError)
    assert seen == [ctx.error]


def test_handle_errors_decorator():
    @handle_errors("計算", reraise=False, default_return=-1)
    def divide(a, b):
        return a / b

    assert divide(4, 2) == 2
    assert divide(1, 0) == -1
    assert divide.__name__ == "divide"
    assert get_error_stats()['errors_by_type'] == {'ZeroDivisionError': 1}


def test_initialize_logging_writes_files(tmp_path, reset_library_logger):
    logger = initialize_logging(log_dir=str(tmp_path), level="INFO")

    logging.getLogger('pivotal_tracker.data.rest_client').error("接続失敗")
    for handler in logger.handlers:
        handler.flush()

    files = get_log_files()
    assert set(files) == {'main', 'error'}
    assert "接続失敗" in Path(files['error']).read_text(encoding='utf-8')
    assert logger.level == logging.INFO


def test_initialize_logging_debug_mode_without_files(reset_library_logger):
    logger = initialize_logging(debug_mode=True)

    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1
    assert get_log_files() == {}


def test_performance_logger_measures_duration():
    with PerformanceLogger("テスト処理") as perf:
        pass

    assert perf.end_time is not None
    assert perf.duration >= 0


def test_log_api_request(caplog):
    with caplog.at_level(logging.INFO, logger='pivotal_tracker.api'):
        log_api_request('GET', '/projects', 200, 0.1234, request_size=0, response_size=52)

    assert "API: GET /projects - 200 - 0.123s - Req:0B Res:52B" in caplog.text


def test_performance_logger_reports_failure_at_debug(caplog):
    with caplog.at_level(logging.DEBUG, logger='pivotal_tracker.performance'):
        with pytest.raises(ValueError):
            with PerformanceLogger("失敗する処理"):
                raise ValueError("bad")

    records = [r for r in caplog.records if r.name == 'pivotal_tracker.performance']
    assert "エラー終了: 失敗する処理" in records[-1].getMessage()
    assert all(r.levelno == logging.DEBUG for r in records)
