"""
Logging Configuration Unit Tests
"""

from unittest.mock import patch

from kvstore.config import Settings
from kvstore.logging_config import setup_logging


def _captured_config(debug: bool) -> dict:
    with patch("logging.config.dictConfig") as dict_config:
        setup_logging(Settings(_env_file=None, DEBUG=debug))
    return dict_config.call_args.args[0]


def test_setup_logging_info_level():
    config = _captured_config(debug=False)
    assert config["loggers"]["kvstore"]["level"] == "INFO"
    assert config["loggers"]["sqlalchemy.engine"]["level"] == "WARNING"
    assert config["formatters"]["standard"]["format"].startswith("[%(asctime)s]")


def test_setup_logging_debug_level():
    config = _captured_config(debug=True)
    assert config["loggers"]["root"]["level"] == "DEBUG"
    assert config["loggers"]["kvstore"]["level"] == "DEBUG"


def test_setup_logging_defaults_to_global_settings():
    with patch("kvstore.logging_config.get_settings", return_value=Settings(_env_file=None, DEBUG=True)):
        with patch("logging.config.dictConfig") as dict_config:
            setup_logging()
    assert dict_config.call_args.args[0]["loggers"]["kvstore"]["level"] == "DEBUG"
