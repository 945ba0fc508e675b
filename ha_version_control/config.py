"""Runtime settings read from the add-on environment"""
import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_TIMEOUT = 30
DEFAULT_MAX_OUTPUT_BYTES = 10 * 1024 * 1024  # 10 MB


class Settings(BaseModel):
    """Configuration threaded into every GitManager instead of a process global"""
    model_config = ConfigDict(frozen=True)

    config_path: Path = Field(Path('/config'), description="Root of the managed working tree")
    git_timeout: float = Field(DEFAULT_TIMEOUT, gt=0, description="Seconds before a git command is killed")
    max_output_bytes: int = Field(DEFAULT_MAX_OUTPUT_BYTES, gt=0, description="Cap on stdout/stderr size")
    git_binary: str = 'git'
    git_user_name: str = 'HA Version Control'
    git_user_email: str = 'version-control@homeassistant.local'
    log_level: str = 'INFO'
    api_token: str = ''
    port: int = 8099

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables"""
        return cls(
            config_path=Path(os.getenv('CONFIG_PATH', '/config')),
            git_timeout=float(os.getenv('GIT_TIMEOUT', DEFAULT_TIMEOUT)),
            max_output_bytes=int(os.getenv('GIT_MAX_OUTPUT_BYTES', DEFAULT_MAX_OUTPUT_BYTES)),
            git_binary=os.getenv('GIT_BINARY', 'git'),
            git_user_name=os.getenv('GIT_USER_NAME', 'HA Version Control'),
            git_user_email=os.getenv('GIT_USER_EMAIL', 'version-control@homeassistant.local'),
            log_level=os.getenv('LOG_LEVEL', 'info').upper(),
            api_token=os.getenv('API_TOKEN', ''),
            port=int(os.getenv('PORT', 8099)),
        )
