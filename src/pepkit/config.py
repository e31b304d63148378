"""Configuration for reaching the Policy Decision Point."""

import os
from collections.abc import Mapping
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# ============================================
# PDP Endpoint
# ============================================
PEPKIT_PDP_HOST = 'PEPKIT_PDP_HOST'
DEFAULT_PEPKIT_PDP_HOST = 'localhost'
PEPKIT_PDP_PORT = 'PEPKIT_PDP_PORT'
DEFAULT_PEPKIT_PDP_PORT = 9094
PEPKIT_PDP_USE_TLS = 'PEPKIT_PDP_USE_TLS'
DEFAULT_PEPKIT_PDP_USE_TLS = False
PEPKIT_PDP_CHECK_PATH = 'PEPKIT_PDP_CHECK_PATH'
DEFAULT_PEPKIT_PDP_CHECK_PATH = '/v1/authorization/check'

# ============================================
# Client Behaviour
# ============================================
PEPKIT_PDP_TIMEOUT = 'PEPKIT_PDP_TIMEOUT'
DEFAULT_PEPKIT_PDP_TIMEOUT = 30.0


class AZConfig(BaseModel):
    """Where and how to reach the PDP."""

    model_config = ConfigDict(frozen=True)

    host: str = DEFAULT_PEPKIT_PDP_HOST
    port: int = Field(DEFAULT_PEPKIT_PDP_PORT, ge=1, le=65535)
    use_tls: bool = DEFAULT_PEPKIT_PDP_USE_TLS
    timeout: float = Field(DEFAULT_PEPKIT_PDP_TIMEOUT, gt=0)
    check_path: str = DEFAULT_PEPKIT_PDP_CHECK_PATH

    @property
    def base_url(self) -> str:
        scheme = "https" if self.use_tls else "http"
        return f"{scheme}://{self.host}:{self.port}"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AZConfig":
        """
        Build a config from environment variables.

        Unset variables fall back to the defaults above. Values are parsed by
        pydantic, so ``PEPKIT_PDP_USE_TLS=true`` or ``=1`` both enable TLS.

        Args:
            environ: Mapping to read instead of os.environ

        Raises:
            pydantic.ValidationError: a variable holds an invalid value
        """
        env = os.environ if environ is None else environ
        names = {
            "host": PEPKIT_PDP_HOST,
            "port": PEPKIT_PDP_PORT,
            "use_tls": PEPKIT_PDP_USE_TLS,
            "timeout": PEPKIT_PDP_TIMEOUT,
            "check_path": PEPKIT_PDP_CHECK_PATH,
        }
        values = {field: env[name] for field, name in names.items() if env.get(name)}
        return cls.model_validate(values)
