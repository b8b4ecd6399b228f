"""Build metadata exposed at runtime.

APP_VERSION defaults to the installed distribution version and GIT_COMMIT to
"dev"; CI overrides both through environment variables.
"""

import os
from importlib import metadata

DISTRIBUTION_NAME = "puzzle-tracker"


def _installed_version() -> str:
    """Read the version of the installed distribution, or "dev" when running from a checkout."""
    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        return "dev"


APP_VERSION: str = os.environ.get("APP_VERSION") or _installed_version()
GIT_COMMIT: str = os.environ.get("GIT_COMMIT", "dev")
