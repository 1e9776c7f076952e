from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_BASE_URL = "http://127.0.0.1:15672/api/"
DEFAULT_USERNAME = "guest"
DEFAULT_PASSWORD = "guest"
DEFAULT_TIMEOUT_SECONDS = 10.0


class ClientConfig(BaseModel):
    """Connection settings fixed for the lifetime of one client"""
    model_config = ConfigDict(frozen=True)

    base_url: str = Field(description="Management API root, e.g. http://host:15672/api/")
    username: str = Field(min_length=1, description="HTTP Basic username")
    password: str = Field(repr=False, description="HTTP Basic password")
    timeout: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0, description="Request timeout in seconds")

    @field_validator("base_url")
    @classmethod
    def _normalise_base_url(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError("base_url must be an http:// or https:// URL")
        # relative resource paths are joined onto the base
        if not value.endswith("/"):
            value += "/"
        return value
