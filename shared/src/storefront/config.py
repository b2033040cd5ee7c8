"""Process configuration for the storefront backend.

Settings are resolved once at process start and passed to the services that
need them, so tests can build their own Settings without touching globals.

Secrets resolve from the environment first, then from SSM Parameter Store
under /storefront/<environment>/stripe/. A secret that cannot be resolved is
left as None; the endpoint that needs it answers with a ConfigurationError
until it is fixed, while the rest of the API keeps serving.
"""

import logging
import os
from typing import Mapping

from botocore.exceptions import BotoCoreError
from pydantic import BaseModel, ConfigDict, Field

from storefront.services.ssm_service import SSMService, SSMServiceError

logger = logging.getLogger(__name__)

DEFAULT_WEBHOOK_TOLERANCE_SECONDS = 300
DEFAULT_CORS_ORIGINS = ("http://localhost:3000", "http://127.0.0.1:3000")


def parse_cors_origins(value: str | None) -> tuple[str, ...]:
    """Split a comma separated CORS_ORIGINS value, falling back to local development origins."""
    if not value:
        return DEFAULT_CORS_ORIGINS
    return tuple(origin.strip() for origin in value.split(",") if origin.strip())


class Settings(BaseModel):
    """Resolved configuration for one process."""

    model_config = ConfigDict(frozen=True)

    environment: str = Field(default="dev")
    table_prefix: str = Field(default="storefront-dev")
    stripe_secret_key: str | None = Field(default=None, repr=False)
    stripe_webhook_secret: str | None = Field(default=None, repr=False)
    webhook_tolerance_seconds: int = Field(default=DEFAULT_WEBHOOK_TOLERANCE_SECONDS, gt=0)
    default_currency: str = Field(default="kes", min_length=3, max_length=3)
    cors_origins: tuple[str, ...] = Field(default=DEFAULT_CORS_ORIGINS)

    @classmethod
    def from_environment(
        cls,
        environ: Mapping[str, str] | None = None,
        ssm: SSMService | None = None,
    ) -> "Settings":
        """Build settings from environment variables, falling back to SSM for secrets.

        Args:
            environ: Mapping to read from (defaults to os.environ)
            ssm: SSM service used when a secret is absent from the environment.
                When None and a secret is missing, one is created lazily.

        Returns:
            Resolved Settings
        """
        env = os.environ if environ is None else environ
        environment = env.get("ENVIRONMENT", "dev")

        def secret(env_var: str, parameter: str) -> str | None:
            nonlocal ssm
            value = env.get(env_var)
            if value:
                return value
            if env.get("STOREFRONT_DISABLE_SSM") == "1":
                return None
            name = f"/storefront/{environment}/stripe/{parameter}"
            try:
                if ssm is None:
                    ssm = SSMService()
                return ssm.get_parameter(name)
            except (SSMServiceError, BotoCoreError) as e:
                logger.warning("Secret %s unavailable (%s); endpoint will report misconfiguration", name, e)
                return None

        return cls(
            environment=environment,
            table_prefix=env.get("DYNAMODB_TABLE_PREFIX", f"storefront-{environment}"),
            stripe_secret_key=secret("STRIPE_SECRET_KEY", "secret_key"),
            stripe_webhook_secret=secret("STRIPE_WEBHOOK_SECRET", "webhook_secret"),
            webhook_tolerance_seconds=int(
                env.get("STRIPE_WEBHOOK_TOLERANCE", DEFAULT_WEBHOOK_TOLERANCE_SECONDS)
            ),
            default_currency=env.get("STOREFRONT_CURRENCY", "kes").lower(),
            cors_origins=parse_cors_origins(env.get("CORS_ORIGINS")),
        )
