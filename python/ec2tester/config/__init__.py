"""
ec2tester.config

Overlay, finalization and persistence for the EC2 configuration:

    cfg = new_default()
    update_from_envs(cfg)
    validate_and_set_defaults(cfg)
    await sync_config(cfg)
"""

from ec2tester.config.overlay import update_from_envs
from ec2tester.config.finalize import validate_and_set_defaults
from ec2tester.config.store import load_config, sync_config

__all__ = [
    "update_from_envs",
    "validate_and_set_defaults",
    "load_config",
    "sync_config",
]
