"""
Settings for the script agent, read from the environment (and an optional .env file).
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    PROJECT_NAME: str = "script-agent"

    # Comma-separated top-level module names exposed to scripts (e.g. "math,statistics")
    SCRIPT_EXTRA_MODULES: str = ""
    # Max compiled programs kept in the shared LRU cache
    SCRIPT_PROGRAM_CACHE_SIZE: int = 128
    # Max nesting depth accepted when converting script results back to values
    SCRIPT_MAX_VALUE_DEPTH: int = 256
    # On a failed recompilation, keep running the previous program instead of disabling the agent
    SCRIPT_KEEP_PROGRAM_ON_COMPILE_ERROR: bool = False


settings = Settings()  # type: ignore
