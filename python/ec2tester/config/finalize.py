"""
ec2tester/config/finalize.py

validate_and_set_defaults() checks a Config and fills in every derived field.

The pass is safe to repeat on an already-finalized Config: non-empty derived
values (tag, cluster name, key name, paths) are kept, the init script is only
built once, the log upload path is never added to log_outputs twice, and no
'*_created' flag is touched. Bucket keys and the log upload path are always
recomputed from the cluster name.
"""

from __future__ import annotations

import logging
import os
import posixpath
import random
import string
import tempfile
from datetime import datetime
from typing import Optional

from ec2tester.errors import ConfigValidationError
from ec2tester.models.ec2config import Config
from ec2tester.models.regions import region_to_airport
from ec2tester.plugins import create_init_script

logger = logging.getLogger(__name__)

CONFIG_BUCKET_NAME = "ec2config.yaml"
LOG_BUCKET_NAME = "ec2.log"
KEY_BUCKET_NAME = "ec2.key"
CLUSTER_SUFFIX_LENGTH = 5

_SUFFIX_ALPHABET = string.digits + string.ascii_lowercase

# Seeded once per process; tests pass their own random.Random instead.
_RANDOM = random.Random()


def gen_tag(now: Optional[datetime] = None) -> str:
    """Tag bucketed to the hour, e.g. 'ec2-24031715' for 2024-03-17 15:xx."""
    ts = now or datetime.now()
    return f"ec2-{ts.year - 2000:02d}{ts.month:02d}{ts.day:02d}{ts.hour:02d}"


def rand_string(length: int, rng: Optional[random.Random] = None) -> str:
    """Random lowercase alphanumeric string of the given length."""
    source = rng or _RANDOM
    return "".join(source.choice(_SUFFIX_ALPHABET) for _ in range(length))


def reserve_temp_path(tmp_dir: str, prefix: str, suffix: str = "") -> str:
    """Return a fresh absolute temp file path with nothing on disk behind it.

    The file is created to claim a unique name and removed immediately; the
    real content is written later by someone else.
    """
    fd, path = tempfile.mkstemp(prefix=prefix, suffix=suffix, dir=tmp_dir)
    os.close(fd)
    os.remove(path)
    return os.path.abspath(path)


def _check(cfg: Config) -> str:
    """Run the required checks in order, returning the region's airport label."""
    if not cfg.log_outputs:
        raise ConfigValidationError("EC2 log_outputs is not specified")
    if not cfg.aws_region:
        raise ConfigValidationError("empty aws_region")
    airport = region_to_airport(cfg.aws_region)
    if airport is None:
        raise ConfigValidationError(f"region {cfg.aws_region!r} not found")
    if not cfg.user_name:
        raise ConfigValidationError("empty user_name")
    if not cfg.image_id:
        raise ConfigValidationError("empty image_id")
    if not cfg.instance_type:
        raise ConfigValidationError("empty instance_type")
    if cfg.cluster_size < 1:
        raise ConfigValidationError(f"unexpected cluster_size {cfg.cluster_size}")
    return airport


def validate_and_set_defaults(
    cfg: Config,
    *,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
    tmp_dir: Optional[str] = None,
) -> None:
    """Validate a Config and populate its derived fields, in place.

    Args:
        cfg (Config): A fresh or previously finalized configuration.
        rng (Optional[random.Random]): Source for the cluster name suffix.
        now (Optional[datetime]): Clock for the generated tag.
        tmp_dir (Optional[str]): Directory for the log file and reserved temp
            paths. Defaults to the system temp directory.

    Raises:
        ConfigValidationError: If a required field is missing or invalid, or
            the instance profile file does not exist.
        PluginError: If a configured plugin is unknown.
        OSError: If a temp path cannot be reserved.
    """
    airport = _check(cfg)
    tmp_root = tmp_dir or tempfile.gettempdir()

    if cfg.plugins and not cfg.init_script_created:
        previous = cfg.init_script
        generated = create_init_script(cfg.user_name, cfg.custom_script, cfg.plugins)
        cfg.init_script = generated + "\n" + previous
        cfg.init_script_created = True

    if not cfg.tag:
        cfg.tag = gen_tag(now)
    if not cfg.cluster_name:
        cfg.cluster_name = "-".join(
            [
                cfg.tag,
                airport.lower(),
                cfg.aws_region,
                rand_string(CLUSTER_SUFFIX_LENGTH, rng),
            ]
        )
        logger.info("generated cluster name %s", cfg.cluster_name)

    if not cfg.config_path:
        cfg.config_path = reserve_temp_path(tmp_root, "ec2config", ".yaml")
    cfg.config_path_bucket = posixpath.join(cfg.cluster_name, CONFIG_BUCKET_NAME)

    cfg.log_output_to_upload_path = os.path.join(tmp_root, f"{cfg.cluster_name}.log")
    if cfg.log_output_to_upload_path not in cfg.log_outputs:
        cfg.log_outputs = cfg.log_outputs + [cfg.log_output_to_upload_path]
    cfg.log_output_to_upload_path_bucket = posixpath.join(
        cfg.cluster_name, LOG_BUCKET_NAME
    )

    if not cfg.key_name:
        cfg.key_name = cfg.cluster_name
    cfg.key_path_bucket = posixpath.join(cfg.cluster_name, KEY_BUCKET_NAME)
    if not cfg.key_path:
        cfg.key_path = reserve_temp_path(tmp_root, "ec2.key")

    if cfg.instance_profile_file_path:
        if not os.path.exists(cfg.instance_profile_file_path):
            raise ConfigValidationError(
                f"instance profile file {cfg.instance_profile_file_path!r} does not exist"
            )
        cfg.instance_profile_name = f"{cfg.cluster_name}-instance-profile"
        cfg.instance_profile_role_name = f"{cfg.instance_profile_name}-role"
        cfg.instance_profile_policy_name = f"{cfg.instance_profile_name}-policy"
