"""Tests for validate_and_set_defaults."""

import os
import random
import re
from datetime import datetime

import pytest

from ec2tester.config.finalize import (
    gen_tag,
    rand_string,
    reserve_temp_path,
    validate_and_set_defaults,
)
from ec2tester.config.overlay import update_from_envs
from ec2tester.errors import ConfigValidationError, PluginError
from ec2tester.models.ec2config import new_default

NOW = datetime(2024, 3, 17, 15, 4, 5)


def _finalize(cfg, tmp_path, seed=1):
    validate_and_set_defaults(
        cfg, rng=random.Random(seed), now=NOW, tmp_dir=str(tmp_path)
    )


def test_gen_tag_is_hour_bucketed():
    assert gen_tag(datetime(2024, 3, 7, 5, 59)) == "ec2-24030705"
    assert gen_tag(datetime(2031, 12, 31, 23, 0)) == "ec2-31123123"


def test_rand_string_uses_injected_source():
    assert rand_string(5, random.Random(3)) == rand_string(5, random.Random(3))
    assert re.fullmatch(r"[0-9a-z]{8}", rand_string(8))


def test_reserve_temp_path_leaves_nothing_on_disk(tmp_path):
    path = reserve_temp_path(str(tmp_path), "ec2.key")

    assert os.path.isabs(path)
    assert os.path.dirname(path) == str(tmp_path)
    assert not os.path.exists(path)


def test_overlay_then_finalize_scenario(tmp_path):
    cfg = new_default()
    update_from_envs(cfg, {"EC2TESTER_EC2_CLUSTER_SIZE": "3"})

    _finalize(cfg, tmp_path)

    assert cfg.cluster_size == 3
    assert cfg.tag == "ec2-24031715"
    assert re.fullmatch(r"ec2-24031715-pdx-us-west-2-[0-9a-z]{5}", cfg.cluster_name)
    log_path = os.path.join(str(tmp_path), f"{cfg.cluster_name}.log")
    assert cfg.log_output_to_upload_path == log_path
    assert cfg.log_outputs.count(log_path) == 1
    assert cfg.log_outputs[0] == "stderr"


def test_derived_fields(tmp_path):
    cfg = new_default()

    _finalize(cfg, tmp_path)

    name = cfg.cluster_name
    assert cfg.config_path_bucket == f"{name}/ec2config.yaml"
    assert cfg.log_output_to_upload_path_bucket == f"{name}/ec2.log"
    assert cfg.key_path_bucket == f"{name}/ec2.key"
    assert cfg.key_name == name
    assert os.path.dirname(cfg.key_path) == str(tmp_path)
    assert not os.path.exists(cfg.key_path)
    assert os.path.isabs(cfg.config_path)
    assert cfg.instance_profile_name == ""


def test_user_values_are_kept(tmp_path):
    cfg = new_default()
    cfg.tag = "mytag"
    cfg.cluster_name = "my-cluster"
    cfg.key_name = "my-key"
    cfg.key_path = "/keys/my.pem"

    _finalize(cfg, tmp_path)

    assert cfg.tag == "mytag"
    assert cfg.cluster_name == "my-cluster"
    assert cfg.key_name == "my-key"
    assert cfg.key_path == "/keys/my.pem"
    assert cfg.key_path_bucket == "my-cluster/ec2.key"


def test_second_call_changes_nothing(tmp_path):
    cfg = new_default()
    cfg.init_script = "echo manual"
    _finalize(cfg, tmp_path, seed=1)
    first = cfg.model_dump()

    _finalize(cfg, tmp_path, seed=99)

    assert cfg.model_dump() == first
    assert cfg.init_script.count("# plugin: update-amazon-linux-2") == 1
    assert cfg.init_script.count("echo manual") == 1


def test_log_output_added_only_once_when_user_listed_it(tmp_path):
    cfg = new_default()
    cfg.cluster_name = "c1"
    expected = os.path.join(str(tmp_path), "c1.log")
    cfg.log_outputs = ["stderr", expected]

    _finalize(cfg, tmp_path)

    assert cfg.log_outputs == ["stderr", expected]


def test_log_output_restored_after_user_edit(tmp_path):
    cfg = new_default()
    _finalize(cfg, tmp_path)
    cfg.log_outputs = ["stdout"]

    _finalize(cfg, tmp_path)

    assert cfg.log_outputs == ["stdout", cfg.log_output_to_upload_path]


def test_init_script_generated_then_manual_text(tmp_path):
    cfg = new_default()
    cfg.init_script = "echo manual"
    cfg.custom_script = "echo custom"

    _finalize(cfg, tmp_path)

    assert cfg.init_script_created is True
    assert cfg.init_script.startswith("#!/usr/bin/env bash")
    assert cfg.init_script.index("echo custom") < cfg.init_script.index("echo manual")
    assert cfg.init_script.endswith("\necho manual")


def test_init_script_untouched_without_plugins(tmp_path):
    cfg = new_default()
    cfg.plugins = []
    cfg.init_script = "#!/usr/bin/env bash\necho only"

    _finalize(cfg, tmp_path)

    assert cfg.init_script == "#!/usr/bin/env bash\necho only"
    assert cfg.init_script_created is False


def test_init_script_not_rebuilt_when_flag_set(tmp_path):
    cfg = new_default()
    cfg.init_script = "already built"
    cfg.init_script_created = True

    _finalize(cfg, tmp_path)

    assert cfg.init_script == "already built"


def test_created_flags_survive(tmp_path):
    cfg = new_default()
    flags = [
        "init_script_created",
        "key_created",
        "vpc_created",
        "security_group_created",
        "instance_profile_created",
        "instance_profile_policy_created",
        "instance_profile_role_created",
    ]
    for flag in flags:
        setattr(cfg, flag, True)

    _finalize(cfg, tmp_path)
    _finalize(cfg, tmp_path)

    assert all(getattr(cfg, flag) for flag in flags)


@pytest.mark.parametrize(
    "field, value, message",
    [
        ("log_outputs", [], "log_outputs"),
        ("aws_region", "", "empty aws_region"),
        ("aws_region", "mars-north-1", "not found"),
        ("user_name", "", "empty user_name"),
        ("image_id", "", "empty image_id"),
        ("instance_type", "", "empty instance_type"),
        ("cluster_size", 0, "cluster_size"),
    ],
)
def test_validation_failures_do_not_mutate(tmp_path, field, value, message):
    cfg = new_default()
    setattr(cfg, field, value)
    before = cfg.model_dump()

    with pytest.raises(ConfigValidationError, match=message):
        _finalize(cfg, tmp_path)

    assert cfg.model_dump() == before
    assert cfg.cluster_name == ""
    assert cfg.tag == ""


def test_checks_run_in_order(tmp_path):
    cfg = new_default()
    cfg.aws_region = "nowhere"
    cfg.image_id = ""

    with pytest.raises(ConfigValidationError, match="region"):
        _finalize(cfg, tmp_path)


def test_unknown_plugin_fails_without_mutation(tmp_path):
    cfg = new_default()
    cfg.plugins = ["install-something-odd"]

    with pytest.raises(PluginError):
        _finalize(cfg, tmp_path)

    assert cfg.init_script_created is False
    assert cfg.cluster_name == ""


def test_instance_profile_names(tmp_path):
    policy = tmp_path / "profile.json"
    policy.write_text("{}")
    cfg = new_default()
    cfg.cluster_name = "c1"
    cfg.instance_profile_file_path = str(policy)

    _finalize(cfg, tmp_path)

    assert cfg.instance_profile_name == "c1-instance-profile"
    assert cfg.instance_profile_role_name == "c1-instance-profile-role"
    assert cfg.instance_profile_policy_name == "c1-instance-profile-policy"


def test_missing_instance_profile_file(tmp_path):
    cfg = new_default()
    cfg.instance_profile_file_path = str(tmp_path / "missing.json")

    with pytest.raises(ConfigValidationError, match="does not exist"):
        _finalize(cfg, tmp_path)
