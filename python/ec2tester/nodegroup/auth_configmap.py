"""
ec2tester/nodegroup/auth_configmap.py

Creates the 'kube-system/aws-auth' ConfigMap that lets worker nodes with the
node instance role join the cluster.

The manifest is applied with kubectl in a retry loop because a freshly
created cluster endpoint may take minutes to become resolvable:

    Waiting --(interval elapsed)--> Attempting --(kubectl ok)--> Succeeded
       ^                                |
       +--------(kubectl failed)--------+
    Waiting/Attempting --(token fired)--> Aborted
    Waiting/Attempting --(deadline hit)--> TimedOut

Every failure is logged and recorded in the Config status. Use
create_auth_configmap() to also persist the Config afterwards, whatever the
outcome.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

import yaml

from ec2tester.config.store import sync_config
from ec2tester.errors import (
    ConfigValidationError,
    ReconcileAbortedError,
    ReconcileTimeoutError,
)
from ec2tester.models.ec2config import Config
from ec2tester.models.reconcile_settings import ReconcileSettings
from ec2tester.utils.async_command_runner import CommandError
from ec2tester.utils.cancel import CancelToken
from ec2tester.utils.ephemeral_file import ephemeral_file
from ec2tester.utils.k8s import kubectl_apply

logger = logging.getLogger(__name__)

AUTH_CONFIGMAP_NAME = "aws-auth"
AUTH_CONFIGMAP_NAMESPACE = "kube-system"
AUTH_CONFIGMAP_FILE = "aws-auth-configmap.yaml"

# Substituted by the EKS authenticator when a node joins, not by us.
NODE_USERNAME = "system:node:{{EC2PrivateDNSName}}"
NODE_GROUPS = ["system:bootstrappers", "system:nodes"]


class ReconcileState(str, Enum):
    WAITING = "waiting"
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    ABORTED = "aborted"
    TIMED_OUT = "timed-out"


def render_auth_configmap(role_arn: str) -> str:
    """Render the aws-auth ConfigMap manifest mapping `role_arn` to node groups.

    Args:
        role_arn (str): ARN of the node instance role.

    Returns:
        str: A YAML document.
    """
    map_roles = [
        {
            "rolearn": role_arn,
            "username": NODE_USERNAME,
            "groups": list(NODE_GROUPS),
        }
    ]
    manifest = {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {
            "name": AUTH_CONFIGMAP_NAME,
            "namespace": AUTH_CONFIGMAP_NAMESPACE,
        },
        "data": {
            "mapRoles": yaml.safe_dump(map_roles, sort_keys=False),
        },
    }
    return "---\n" + yaml.safe_dump(manifest, sort_keys=False)


async def apply_auth_configmap(
    cfg: Config,
    token: CancelToken,
    settings: Optional[ReconcileSettings] = None,
    *,
    clock: Optional[Callable[[], float]] = None,
) -> str:
    """
    Apply the aws-auth ConfigMap until kubectl succeeds, the deadline passes,
    or `token` fires.

    Each cycle first waits settings.retry_interval_seconds (cut short by the
    token or by the deadline), then runs one kubectl apply bounded by
    settings.attempt_timeout_seconds. Neither the wait nor the attempt is
    allowed to run past the overall deadline.

    Args:
        cfg (Config): Supplies kubectl/kubeconfig paths and the node role ARN;
            receives status updates and auth_configmap_created on success.
        token (CancelToken): Aborts the loop at the next wait point.
        settings (Optional[ReconcileSettings]): Timing; read from the
            environment if None.
        clock (Optional[Callable[[], float]]): Monotonic seconds; the event
            loop clock by default.

    Returns:
        str: kubectl output of the successful attempt.

    Raises:
        ConfigValidationError: If node_instance_role_arn is empty.
        ReconcileAbortedError: If the token fired before success.
        ReconcileTimeoutError: If the deadline passed; `last_error` holds the
            final attempt's error.
    """
    if not cfg.node_instance_role_arn:
        raise ConfigValidationError("empty node_instance_role_arn")

    opts = settings or ReconcileSettings()
    now = clock or asyncio.get_running_loop().time
    manifest = render_auth_configmap(cfg.node_instance_role_arn)
    logger.info(
        "writing aws-auth ConfigMap for instance role %s", cfg.node_instance_role_arn
    )

    async with ephemeral_file(AUTH_CONFIGMAP_FILE, manifest) as manifest_path:
        deadline = now() + opts.deadline_seconds
        last_error: Optional[CommandError] = None
        attempt = 0

        while now() < deadline:
            logger.debug("aws-auth ConfigMap: %s", ReconcileState.WAITING.value)
            wait_for = min(opts.retry_interval_seconds, max(deadline - now(), 0.0))
            if await token.sleep(wait_for):
                cfg.record_status(f"create ConfigMap aborted ({token.reason})")
                logger.warning(
                    "aws-auth ConfigMap: %s (%s)",
                    ReconcileState.ABORTED.value,
                    token.reason,
                )
                raise ReconcileAbortedError(
                    f"create ConfigMap aborted ({token.reason})"
                )

            remaining = deadline - now()
            if remaining <= 0:
                break

            attempt += 1
            logger.debug(
                "aws-auth ConfigMap: %s (attempt %d)",
                ReconcileState.ATTEMPTING.value,
                attempt,
            )
            try:
                output = await kubectl_apply(
                    cfg.kubectl_path,
                    cfg.kubeconfig_path,
                    manifest_path,
                    timeout=min(opts.attempt_timeout_seconds, remaining),
                )
            except CommandError as exc:
                last_error = exc
                logger.warning(
                    "create ConfigMap failed (attempt %d): %s (output %r)",
                    attempt,
                    exc,
                    exc.output,
                )
                cfg.record_status(f"create ConfigMap failed ({exc})")
                continue

            cfg.auth_configmap_created = True
            cfg.record_status("created ConfigMap")
            logger.info(
                "aws-auth ConfigMap: %s after %d attempt(s)\n%s",
                ReconcileState.SUCCEEDED.value,
                attempt,
                output,
            )
            return output

    message = (
        f"create ConfigMap timed out after {opts.deadline_seconds}s "
        f"({attempt} attempt(s))"
    )
    cfg.record_status(message)
    logger.warning("aws-auth ConfigMap: %s", ReconcileState.TIMED_OUT.value)
    raise ReconcileTimeoutError(message, last_error) from last_error


async def create_auth_configmap(
    cfg: Config,
    token: CancelToken,
    settings: Optional[ReconcileSettings] = None,
) -> str:
    """Run apply_auth_configmap() and persist the Config on every exit path.

    If the loop itself failed, a failure to persist is only logged so the
    caller still sees the loop's outcome (aborted, timed out, ...).
    """
    try:
        output = await apply_auth_configmap(cfg, token, settings)
    except BaseException:
        try:
            await sync_config(cfg)
        except Exception:
            logger.exception("failed to save config %r", cfg.config_path)
        raise
    await sync_config(cfg)
    return output
