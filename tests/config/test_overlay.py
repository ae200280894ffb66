"""Tests for the environment overlay."""

from datetime import timedelta

import pytest

from ec2tester.config.overlay import (
    FIELD_PARSERS,
    env_key_for,
    parse_bool,
    parse_float,
    parse_int,
    parse_string_map,
    parse_uint,
    update_from_envs,
)
from ec2tester.errors import OverlayError
from ec2tester.models.ec2config import Config

P = "EC2TESTER_EC2_"


def test_env_key_for_field():
    assert env_key_for(P, "cluster_size") == "EC2TESTER_EC2_CLUSTER_SIZE"
    assert env_key_for(P, "ingress_rules_tcp") == "EC2TESTER_EC2_INGRESS_RULES_TCP"


def test_every_parser_names_a_config_field():
    assert set(FIELD_PARSERS) <= set(Config.model_fields)


def test_overlay_overrides_defaults(default_config):
    update_from_envs(
        default_config,
        {
            P + "CLUSTER_SIZE": "3",
            P + "AWS_REGION": "us-east-1",
            P + "WAIT": "false",
            P + "IMAGE_ID": "ami-123",
            P + "DESTROY_WAIT_TIME": "90s",
            P + "VOLUME_SIZE": "-5",
        },
    )

    assert default_config.cluster_size == 3
    assert default_config.aws_region == "us-east-1"
    assert default_config.wait is False
    assert default_config.image_id == "ami-123"
    assert default_config.destroy_wait_time == timedelta(seconds=90)
    assert default_config.volume_size == -5


def test_map_field_replaced_wholesale(default_config):
    default_config.ingress_rules_tcp = {"443": "1.2.3.4/32"}

    update_from_envs(
        default_config, {P + "INGRESS_RULES_TCP": "22=0.0.0.0/0,80=10.0.0.0/8"}
    )

    assert default_config.ingress_rules_tcp == {
        "22": "0.0.0.0/0",
        "80": "10.0.0.0/8",
    }


def test_list_fields_split_verbatim(default_config):
    update_from_envs(
        default_config,
        {
            P + "PLUGINS": "update-ubuntu,install-start-docker-ubuntu",
            P + "SUBNET_IDS": "subnet-a, subnet-b",
            P + "SECURITY_GROUP_IDS": "sg-1",
        },
    )

    assert default_config.plugins == ["update-ubuntu", "install-start-docker-ubuntu"]
    assert default_config.subnet_ids == ["subnet-a", " subnet-b"]
    assert default_config.security_group_ids == ["sg-1"]


def test_empty_values_are_ignored(default_config):
    update_from_envs(default_config, {P + "CLUSTER_SIZE": "", P + "INSTANCES": ""})

    assert default_config.cluster_size == 1


def test_custom_prefix(default_config):
    default_config.env_prefix = "MY_"

    update_from_envs(default_config, {"MY_TAG": "custom", P + "TAG": "ignored"})

    assert default_config.tag == "custom"


def test_reads_os_environ_by_default(default_config, monkeypatch):
    monkeypatch.setenv(P + "KEY_NAME", "from-env")

    update_from_envs(default_config)

    assert default_config.key_name == "from-env"


@pytest.mark.parametrize(
    "key, value",
    [
        ("INGRESS_RULES_TCP", "22"),
        ("TAGS", "a=b=c"),
        ("TAGS", "a=b,,c=d"),
    ],
)
def test_malformed_map_is_error(default_config, key, value):
    with pytest.raises(OverlayError, match="unexpected format"):
        update_from_envs(default_config, {P + key: value})


@pytest.mark.parametrize(
    "key, value",
    [
        ("WAIT", "yes"),
        ("CLUSTER_SIZE", "3x"),
        ("CLUSTER_SIZE", "1_000"),
        ("CLUSTER_SIZE", "99999999999999999999"),
        ("DESTROY_WAIT_TIME", "5 minutes"),
        ("CLUSTER_SIZE", "\uff13"),
        ("CLUSTER_SIZE", " 3"),
        ("DESTROY_WAIT_TIME", " 90s"),
        ("DESTROY_WAIT_TIME", "99999999999999h"),
    ],
)
def test_malformed_literal_names_value_and_key(default_config, key, value):
    with pytest.raises(OverlayError) as excinfo:
        update_from_envs(default_config, {P + key: value})

    assert excinfo.value.env_key == P + key
    assert excinfo.value.value == value
    assert value in str(excinfo.value)
    assert P + key in str(excinfo.value)


@pytest.mark.parametrize(
    "key",
    [
        "INSTANCES",
        "UPDATED_AT",
        "STATUS",
        "ROUTE_TABLE_IDS",
        "SUBNET_ID_TO_AVAILABILITY_ZONE",
    ],
)
def test_unsupported_fields_are_errors(default_config, key):
    with pytest.raises(OverlayError, match="not supported"):
        update_from_envs(default_config, {P + key: "x"})


def test_failure_keeps_earlier_overrides(default_config):
    # aws_region is declared before cluster_size
    with pytest.raises(OverlayError):
        update_from_envs(
            default_config,
            {P + "AWS_REGION": "eu-west-1", P + "CLUSTER_SIZE": "three"},
        )

    assert default_config.aws_region == "eu-west-1"
    assert default_config.cluster_size == 1


def test_scalar_parsers():
    assert parse_bool("T") is True
    assert parse_bool("0") is False
    assert parse_int("+42") == 42
    assert parse_uint("18446744073709551615") == 2**64 - 1
    assert parse_float("1.5e3") == 1500.0
    assert parse_string_map("a=,b=c") == {"a": "", "b": "c"}

    with pytest.raises(ValueError):
        parse_uint("-1")
    with pytest.raises(ValueError):
        parse_uint("18446744073709551616")
    with pytest.raises(ValueError):
        parse_float("1_0")
    with pytest.raises(ValueError):
        parse_float("abc")
    with pytest.raises(ValueError):
        parse_float(" 1.5")
    with pytest.raises(ValueError):
        parse_float("1e999")
    with pytest.raises(ValueError):
        parse_float("\uff11.5")
    with pytest.raises(ValueError):
        parse_int("\uff13")
    with pytest.raises(ValueError):
        parse_uint("\u0663")
