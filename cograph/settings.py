"""Project settings."""

from pathlib import Path

# This is the location of the project configuration directory
CONF_SOURCE = "conf"

# The location of the project root directory.
PROJECT_ROOT = Path(__file__).parents[1]  # Going up from cograph to the project root

# Configuration environments
BASE_ENV = "base"
LOCAL_ENV = "local"
