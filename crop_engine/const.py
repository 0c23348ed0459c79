from __future__ import annotations

DATA_DIR_ENV = "CROP_ENGINE_DATA_DIR"
TEMPLATES_FILE = "crop_templates.json"

# Rolling look-ahead window for reminders
DEFAULT_HORIZON_DAYS = 7

CONF_BASE_URL = "base_url"
CONF_API_TOKEN = "api_token"
CONF_TIMEOUT = "timeout"

BASE_URL_ENV = "CROP_ENGINE_BASE_URL"
API_TOKEN_ENV = "CROP_ENGINE_API_TOKEN"
TIMEOUT_ENV = "CROP_ENGINE_TIMEOUT"

DEFAULT_TIMEOUT = 30
MIN_TIMEOUT = 1

SCHEDULES_PATH = "/crop-schedules"
