#!/usr/bin/env python3
"""
ec2tester/cli/ec2config.py

CLI for the EC2 test cluster configuration:

  1) "create-config": default template + environment overrides, finalized and
     written to disk.
  2) "show": print a stored configuration as YAML.
  3) "ssh-commands": print SSH/SCP commands for the recorded instances.
  4) "apply-auth": apply the aws-auth ConfigMap with retries, then save the
     updated status.

Usage:
    EC2TESTER_EC2_CLUSTER_SIZE=3 python -m ec2tester.cli.ec2config create-config --path ./ec2.yaml
    python -m ec2tester.cli.ec2config apply-auth --path ./ec2.yaml
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import List, Optional

from ec2tester.config.finalize import validate_and_set_defaults
from ec2tester.config.overlay import update_from_envs
from ec2tester.config.store import load_config, sync_config
from ec2tester.models.ec2config import new_default
from ec2tester.models.reconcile_settings import ReconcileSettings
from ec2tester.nodegroup.auth_configmap import create_auth_configmap
from ec2tester.utils.cancel import CancelToken
from ec2tester.utils.duration import format_duration
from ec2tester.utils.log_setup import setup_logging


async def _run_create_config(args: argparse.Namespace) -> None:
    """Handle 'create-config': defaults => env overrides => finalize => sync."""
    cfg = new_default()
    update_from_envs(cfg)
    if args.path:
        cfg.config_path = args.path
    validate_and_set_defaults(cfg)
    setup_logging(cfg.log_level, cfg.log_outputs)
    await sync_config(cfg)

    print(f"Cluster name: {cfg.cluster_name}")
    print(f"Destroy wait time: {format_duration(cfg.destroy_wait_time)}")
    print(f"Config written to {cfg.config_path}")


async def _run_show(args: argparse.Namespace) -> None:
    """Handle 'show': print the stored configuration."""
    cfg = await load_config(args.path)
    print(cfg.to_yaml(), end="")


async def _run_ssh_commands(args: argparse.Namespace) -> None:
    """Handle 'ssh-commands': print SSH helpers for every instance."""
    cfg = await load_config(args.path)
    if not cfg.instances:
        print("No instances recorded.")
        return
    print(cfg.ssh_commands(), end="")


async def _run_apply_auth(args: argparse.Namespace) -> None:
    """Handle 'apply-auth': reconcile the aws-auth ConfigMap, then sync."""
    cfg = await load_config(args.path)
    validate_and_set_defaults(cfg)
    setup_logging(cfg.log_level, cfg.log_outputs)

    if args.role_arn:
        cfg.node_instance_role_arn = args.role_arn

    overrides = {
        key: value
        for key, value in (
            ("deadline_seconds", args.deadline),
            ("retry_interval_seconds", args.interval),
            ("attempt_timeout_seconds", args.attempt_timeout),
        )
        if value is not None
    }
    settings = ReconcileSettings(**overrides)

    async with CancelToken() as token:
        token.install_signal_handlers()
        await create_auth_configmap(cfg, token, settings)

    print(f"aws-auth ConfigMap applied; status saved to {cfg.config_path}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ec2tester.cli.ec2config",
        description="Create, inspect and reconcile EC2 test cluster configurations.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    create_parser = subparsers.add_parser(
        "create-config",
        help="Write a finalized configuration from defaults and environment overrides.",
    )
    create_parser.add_argument(
        "--path",
        default=None,
        help="Where to write the config (default: a new temp file).",
    )
    create_parser.set_defaults(handler=_run_create_config)

    show_parser = subparsers.add_parser("show", help="Print a stored configuration.")
    show_parser.add_argument("--path", required=True, help="Config file path.")
    show_parser.set_defaults(handler=_run_show)

    ssh_parser = subparsers.add_parser(
        "ssh-commands", help="Print SSH/SCP commands for recorded instances."
    )
    ssh_parser.add_argument("--path", required=True, help="Config file path.")
    ssh_parser.set_defaults(handler=_run_ssh_commands)

    auth_parser = subparsers.add_parser(
        "apply-auth", help="Apply the aws-auth ConfigMap with bounded retries."
    )
    auth_parser.add_argument("--path", required=True, help="Config file path.")
    auth_parser.add_argument(
        "--role-arn",
        default=None,
        help="Node instance role ARN (overrides node-instance-role-arn).",
    )
    auth_parser.add_argument(
        "--deadline", type=float, default=None, help="Overall time budget in seconds."
    )
    auth_parser.add_argument(
        "--interval", type=float, default=None, help="Seconds to wait between attempts."
    )
    auth_parser.add_argument(
        "--attempt-timeout",
        type=float,
        default=None,
        help="Seconds allowed for each kubectl attempt.",
    )
    auth_parser.set_defaults(handler=_run_apply_auth)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point. Returns the process exit code."""
    args = build_parser().parse_args(argv)
    try:
        asyncio.run(args.handler(args))
    except Exception as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
