"""Connection settings for the Objective AI API."""

from __future__ import annotations

import os

from pydantic import BaseModel, ConfigDict, Field

from objective_query.errors import ConfigError

DEFAULT_BASE_URL = "https://api.objective-ai.io"
API_KEY_ENV = "OBJECTIVEAI_API_KEY"
BASE_URL_ENV = "OBJECTIVEAI_BASE_URL"


class Credentials(BaseModel):
    """API key and base URL used to authenticate requests."""

    model_config = ConfigDict(frozen=True)

    api_key: str = Field(repr=False)
    base_url: str = DEFAULT_BASE_URL

    @classmethod
    def from_env(cls) -> Credentials:
        api_key = os.environ.get(API_KEY_ENV)
        if not api_key:
            raise ConfigError(f"{API_KEY_ENV} is required.", field="api_key")
        return cls(api_key=api_key, base_url=os.environ.get(BASE_URL_ENV, DEFAULT_BASE_URL))
