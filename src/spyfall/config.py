"""Default configuration.  Every value can be overridden from the environment
or by passing a dict to create_app.

"""
import os


def _env_list(name, default):
    value = os.environ.get(name)
    if not value:
        return default
    return [item.strip() for item in value.split(',') if item.strip()]


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-key-change-in-production'
    DEBUG = os.environ.get('SPYFALL_DEBUG', '0') == '1'
    LOG_LEVEL = os.environ.get('SPYFALL_LOG_LEVEL', 'INFO')
    CORS_ORIGINS = _env_list('SPYFALL_CORS_ORIGINS', '*')
    # Game rules
    MIN_PLAYERS = int(os.environ.get('SPYFALL_MIN_PLAYERS', '3'))
    DEFAULT_ROUND_DURATION = int(os.environ.get('SPYFALL_ROUND_DURATION', '480'))
    MAX_ROUND_DURATION = int(os.environ.get('SPYFALL_MAX_ROUND_DURATION', '3600'))
    ROOM_CODE_LENGTH = int(os.environ.get('SPYFALL_ROOM_CODE_LENGTH', '6'))
    # Input limits, matching the client forms
    NICKNAME_MAX_LENGTH = 20
    PASSWORD_MAX_LENGTH = 50
