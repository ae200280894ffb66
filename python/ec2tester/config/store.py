"""
ec2tester/config/store.py

Reads and writes a Config as YAML on local disk.

load_config() never applies defaults or validation beyond the schema; call
validate_and_set_defaults() afterwards so that a previously finalized file is
not silently re-defaulted. sync_config() writes the whole Config back with
owner-only permissions, replacing the previous contents.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone

import aiofiles

from ec2tester.models.ec2config import Config

logger = logging.getLogger(__name__)

CONFIG_FILE_MODE = 0o600


def _private_opener(path: str, flags: int) -> int:
    return os.open(path, flags, CONFIG_FILE_MODE)


async def load_config(path: str) -> Config:
    """Load a Config from the YAML file at `path`.

    The returned Config records the absolute form of `path` as its
    config_path, whatever the file itself says.

    Args:
        path (str): The YAML file to read.

    Returns:
        Config: The parsed configuration, with instances defaulting to {}.

    Raises:
        OSError: If the file cannot be read.
        pydantic.ValidationError: If the content does not match the schema.
    """
    async with aiofiles.open(path, mode="r", encoding="utf-8") as f:
        text = await f.read()

    cfg = Config.from_yaml(text)
    if cfg.instances is None:
        cfg.instances = {}
    cfg.config_path = os.path.abspath(path)
    logger.debug("loaded config from %s", cfg.config_path)
    return cfg


async def sync_config(cfg: Config) -> None:
    """Persist the Config to its config_path, stamping updated_at.

    Args:
        cfg (Config): The configuration to write. config_path must be set.

    Raises:
        ValueError: If config_path is empty.
        OSError: If the file cannot be written.
    """
    if not cfg.config_path:
        raise ValueError("config_path is empty; nothing to sync to")
    if not os.path.isabs(cfg.config_path):
        cfg.config_path = os.path.abspath(cfg.config_path)

    cfg.updated_at = datetime.now(timezone.utc)
    text = cfg.to_yaml()

    async with aiofiles.open(
        cfg.config_path, mode="w", encoding="utf-8", opener=_private_opener
    ) as f:
        await f.write(text)
    # an existing file keeps its old mode through open()
    os.chmod(cfg.config_path, CONFIG_FILE_MODE)
    logger.debug("synced config to %s", cfg.config_path)
