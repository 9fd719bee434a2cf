import os
from pathlib import Path

from appdirs import AppDirs

import taco

# Environment variables
TACO_ENVVAR_USER_LOG_DIR = "TACO_USER_LOG_DIR"
TACO_ENVVAR_LOG_LEVEL = "TACO_LOG_LEVEL"
TACO_ENVVAR_JSON_REQUEST_TIMEOUT = "TACO_JSON_REQUEST_TIMEOUT"
TACO_ENVVAR_MAX_CONDITION_LINGO_SIZE = "TACO_MAX_CONDITION_LINGO_SIZE"

# Base Filepaths
TACO_PACKAGE = Path(taco.__file__).parent.resolve()
STANDARD_ABIS_FILEPATH = TACO_PACKAGE / "conditions" / "abis.json"

# User Application Filepaths
APP_DIR = AppDirs(taco.__title__, taco.__author__)
USER_LOG_DIR = Path(os.getenv(TACO_ENVVAR_USER_LOG_DIR, default=APP_DIR.user_log_dir))
DEFAULT_LOG_FILENAME = "taco.log"
DEFAULT_JSON_LOG_FILENAME = "taco.json"
DEFAULT_LOG_LEVEL = os.getenv(TACO_ENVVAR_LOG_LEVEL, default="info")

# Condition Evaluation
JSON_REQUEST_TIMEOUT = int(os.getenv(TACO_ENVVAR_JSON_REQUEST_TIMEOUT, default=5))  # seconds

# Wire Format
MAX_CONDITION_LINGO_SIZE = int(
    os.getenv(TACO_ENVVAR_MAX_CONDITION_LINGO_SIZE, default=1024 * 250)
)  # 250kb
