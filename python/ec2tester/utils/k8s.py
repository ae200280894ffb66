"""
ec2tester/utils/k8s.py

Thin wrappers around the 'kubectl' CLI.
"""

from __future__ import annotations

from typing import List

from ec2tester.utils.async_command_runner import run_command


def build_kubectl_apply_command(
    kubectl_path: str, kubeconfig_path: str, manifest_path: str
) -> List[str]:
    """Command tokens for applying a manifest file against a cluster."""
    cmd = [kubectl_path]
    if kubeconfig_path:
        cmd.append(f"--kubeconfig={kubeconfig_path}")
    return cmd + ["apply", f"--filename={manifest_path}"]


async def kubectl_apply(
    kubectl_path: str,
    kubeconfig_path: str,
    manifest_path: str,
    timeout: float,
) -> str:
    """
    Run 'kubectl apply --filename=<manifest>' once, bounded by `timeout`.

    No retries here: callers such as apply_auth_configmap() own the retry
    policy and the overall deadline.

    Args:
        kubectl_path (str): The kubectl executable.
        kubeconfig_path (str): Passed as --kubeconfig when non-empty.
        manifest_path (str): The manifest file to apply.
        timeout (float): Seconds allowed before the process is killed.

    Returns:
        str: Combined stdout/stderr of kubectl.

    Raises:
        CommandTimeoutError: If kubectl does not finish in time.
        CommandError: If kubectl exits non-zero; `output` holds its output.
    """
    return await run_command(
        build_kubectl_apply_command(kubectl_path, kubeconfig_path, manifest_path),
        sensitive=False,
        retries=1,
        timeout=timeout,
        combine_output=True,
    )
