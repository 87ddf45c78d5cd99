import os
from typing import Optional
import logging

from dotenv import load_dotenv


class EnvironmentHelper:
    """Helper class to manage environment configuration and loading."""

    def __init__(self):
        self.environment = self._detect_environment()
        self.env_file = self._load_environment_config()
        self._log_environment()

    def _detect_environment(self) -> str:
        """Use ENVIRONMENT inside a container, otherwise assume development."""
        if os.getenv("ECS_CONTAINER_METADATA_URI") or os.getenv("KUBERNETES_SERVICE_HOST"):
            return os.getenv("ENVIRONMENT", "staging").lower()
        return os.getenv("ENVIRONMENT", "development").lower()

    def _load_environment_config(self) -> str:
        """Load the .env file matching the detected environment."""
        if self.environment == "production":
            path = ".env.production"
        elif self.environment == "staging":
            path = ".env.staging"
        else:
            path = ".env"
        # Existing process variables always win over the file
        load_dotenv(dotenv_path=path, override=False)
        return path

    def _log_environment(self):
        logging.info(f"Environment: {self.environment} (env file: {self.env_file})")

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get an environment variable value."""
        return os.getenv(key, default)


# Create a global instance of the helper
env = EnvironmentHelper()
