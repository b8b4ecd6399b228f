"""Settings for the external identity provider."""

from pydantic import Field
from pydantic_settings import BaseSettings


class AuthSettings(BaseSettings):
    model_config = {"env_prefix": "AUTH_"}

    # Base URL of the identity provider -- required, no default.
    identity_url: str = Field(min_length=1)

    # Public API key sent alongside the bearer token
    identity_api_key: str = ""

    # Path of the "who am I" endpoint, relative to identity_url
    user_path: str = "/auth/v1/user"

    request_timeout_seconds: float = Field(default=5.0, gt=0)
