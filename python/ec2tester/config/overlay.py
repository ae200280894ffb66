"""
ec2tester/config/overlay.py

Applies environment variable overrides onto a Config.

Each Config field is read from '<env_prefix><FIELD_KEY>', where FIELD_KEY is
the field's serialization name with '-' replaced by '_' and upper-cased:

    EC2TESTER_EC2_CLUSTER_SIZE=3
    EC2TESTER_EC2_INGRESS_RULES_TCP=22=0.0.0.0/0,80=10.0.0.0/8
    EC2TESTER_EC2_DESTROY_WAIT_TIME=90s

How a value is parsed is declared once per field in FIELD_PARSERS. A set
override for a field that has no parser is an error, never silently dropped.
Overrides are applied in field declaration order; a failure stops the pass
and leaves earlier fields already overwritten.
"""

from __future__ import annotations

import logging
import math
import os
import re
from typing import Any, Callable, Dict, List, Mapping, Optional

from ec2tester.errors import OverlayError
from ec2tester.models.ec2config import Config, to_kebab
from ec2tester.utils.duration import parse_duration

logger = logging.getLogger(__name__)

FieldParser = Callable[[str], Any]

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_UINT64_MAX = 2**64 - 1

_INT_RE = re.compile(r"[+-]?[0-9]+")
_UINT_RE = re.compile(r"\+?[0-9]+")

_TRUE_LITERALS = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_LITERALS = {"0", "f", "F", "FALSE", "false", "False"}


def parse_text(value: str) -> str:
    return value


def parse_bool(value: str) -> bool:
    if value in _TRUE_LITERALS:
        return True
    if value in _FALSE_LITERALS:
        return False
    raise ValueError(f"invalid syntax for bool: {value!r}")


def parse_int(value: str) -> int:
    if not _INT_RE.fullmatch(value):
        raise ValueError(f"invalid syntax for int: {value!r}")
    parsed = int(value, 10)
    if not _INT64_MIN <= parsed <= _INT64_MAX:
        raise ValueError(f"value out of range: {value!r}")
    return parsed


def parse_uint(value: str) -> int:
    if not _UINT_RE.fullmatch(value):
        raise ValueError(f"invalid syntax for uint: {value!r}")
    parsed = int(value, 10)
    if parsed > _UINT64_MAX:
        raise ValueError(f"value out of range: {value!r}")
    return parsed


def parse_float(value: str) -> float:
    if "_" in value or not value.isascii() or value != value.strip():
        raise ValueError(f"invalid syntax for float: {value!r}")
    parsed = float(value)
    if not math.isfinite(parsed):
        raise ValueError(f"value out of range: {value!r}")
    return parsed


def parse_string_map(value: str) -> Dict[str, str]:
    """Parse 'a=b,c=d' into {'a': 'b', 'c': 'd'}."""
    result: Dict[str, str] = {}
    for pair in value.split(","):
        fields = pair.split("=")
        if len(fields) != 2:
            raise ValueError(
                f"map {value!r} has unexpected format (e.g. should be 'a=b,c=d')"
            )
        result[fields[0]] = fields[1]
    return result


def parse_string_list(value: str) -> List[str]:
    return value.split(",")


# Field name => parser. Fields missing here cannot be overridden.
FIELD_PARSERS: Dict[str, FieldParser] = {
    "env_prefix": parse_text,
    "aws_account_id": parse_text,
    "aws_region": parse_text,
    "log_level": parse_text,
    "log_output_to_upload_path": parse_text,
    "log_output_to_upload_path_bucket": parse_text,
    "log_output_to_upload_path_url": parse_text,
    "upload_tester_logs": parse_bool,
    "upload_bucket_expire_days": parse_int,
    "tag": parse_text,
    "tags": parse_string_map,
    "cluster_name": parse_text,
    "destroy_after_create": parse_bool,
    "destroy_wait_time": parse_duration,
    "config_path": parse_text,
    "config_path_bucket": parse_text,
    "config_path_url": parse_text,
    "image_id": parse_text,
    "user_name": parse_text,
    "plugins": parse_string_list,
    "init_script": parse_text,
    "init_script_created": parse_bool,
    "custom_script": parse_text,
    "instance_type": parse_text,
    "cluster_size": parse_int,
    "key_name": parse_text,
    "key_path": parse_text,
    "key_path_bucket": parse_text,
    "key_path_url": parse_text,
    "key_create_skip": parse_bool,
    "key_created": parse_bool,
    "vpc_cidr": parse_text,
    "vpc_id": parse_text,
    "vpc_created": parse_bool,
    "internet_gateway_id": parse_text,
    "subnet_ids": parse_string_list,
    "ingress_rules_tcp": parse_string_map,
    "security_group_ids": parse_string_list,
    "security_group_created": parse_bool,
    "associate_public_ip_address": parse_bool,
    "volume_size": parse_int,
    "wait": parse_bool,
    "instance_profile_file_path": parse_text,
    "instance_profile_name": parse_text,
    "instance_profile_created": parse_bool,
    "instance_profile_policy_name": parse_text,
    "instance_profile_policy_arn": parse_text,
    "instance_profile_policy": parse_text,
    "instance_profile_policy_created": parse_bool,
    "instance_profile_role_name": parse_text,
    "instance_profile_role_created": parse_bool,
    "kubectl_path": parse_text,
    "kubeconfig_path": parse_text,
    "node_instance_role_arn": parse_text,
    "auth_configmap_created": parse_bool,
    "status_current": parse_text,
}


def env_key_for(prefix: str, field_name: str) -> str:
    """Environment variable name for a Config field under the given prefix."""
    return prefix + to_kebab(field_name).replace("-", "_").upper()


def update_from_envs(
    cfg: Config,
    environ: Optional[Mapping[str, str]] = None,
) -> None:
    """Overwrite Config fields from environment variables, in place.

    The prefix is taken from cfg.env_prefix before any override is applied,
    so overriding the prefix itself only affects later calls.

    Args:
        cfg (Config): The configuration to update.
        environ (Optional[Mapping[str, str]]): Source of overrides. Defaults to
            os.environ.

    Raises:
        OverlayError: On a malformed literal, or an override for a field that
            cannot be parsed from text. Fields processed earlier in the pass
            stay overwritten; discard the Config in that case.
    """
    env = os.environ if environ is None else environ
    prefix = cfg.env_prefix

    for field_name in Config.model_fields:
        env_key = env_key_for(prefix, field_name)
        raw = env.get(env_key, "")
        if raw == "":
            continue

        parser = FIELD_PARSERS.get(field_name)
        if parser is None:
            raise OverlayError(
                f"parsing field name {field_name!r} not supported ({env_key!r})",
                env_key=env_key,
                value=raw,
            )

        try:
            parsed = parser(raw)
        except ValueError as exc:
            raise OverlayError(
                f"failed to parse {raw!r} ({env_key!r}, {exc})",
                env_key=env_key,
                value=raw,
            ) from exc

        setattr(cfg, field_name, parsed)
        logger.debug("applied override %s", env_key)
