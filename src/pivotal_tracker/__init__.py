"""
Pivotal Tracker API v5 クライアント

使用例:
    from pivotal_tracker import PivotalTrackerClient

    with PivotalTrackerClient("api-token", 12345) as client:
        story = client.add_story({"name": "新しいストーリー"})
"""

from .data.tracker_client import PivotalTrackerClient
from .data.rest_client import RestClient
from .data.models import JsonValue, merge_parameters
from .business.config_manager import ConfigManager, create_client, configure_logging
from .business.config_schema import AppConfig, TrackerConfig, LoggingConfig
from .utils.error_handler import (
    TrackerClientError, APIError, NetworkError, AuthenticationError,
    ConfigurationError, ErrorType
)
from .utils.logger import initialize_logging, get_logger

__version__ = "1.0.0"

__all__ = [
    'PivotalTrackerClient',
    'RestClient',
    'JsonValue',
    'merge_parameters',
    'ConfigManager',
    'create_client',
    'configure_logging',
    'AppConfig',
    'TrackerConfig',
    'LoggingConfig',
    'TrackerClientError',
    'APIError',
    'NetworkError',
    'AuthenticationError',
    'ConfigurationError',
    'ErrorType',
    'initialize_logging',
    'get_logger'
]
