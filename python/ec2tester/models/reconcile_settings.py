# ec2tester/models/reconcile_settings.py

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ReconcileSettings(BaseSettings):
    """
    Pydantic settings for the aws-auth ConfigMap reconciliation loop.
    Fields map to environment variables prefixed with `EC2TESTER_RECONCILE_`,
    e.g. `EC2TESTER_RECONCILE_DEADLINE_SECONDS=600`.
    """

    # DNS for a new cluster endpoint can take several minutes to propagate.
    deadline_seconds: float = Field(default=300.0, gt=0)
    retry_interval_seconds: float = Field(default=5.0, ge=0)
    attempt_timeout_seconds: float = Field(default=15.0, gt=0)

    model_config = SettingsConfigDict(env_prefix="EC2TESTER_RECONCILE_")
