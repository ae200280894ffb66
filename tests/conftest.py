"""Shared fixtures for the ec2tester test suite."""

import logging
import os
import random
import stat
import textwrap
from datetime import datetime
from pathlib import Path
from typing import Callable

import pytest

from ec2tester.config.finalize import validate_and_set_defaults
from ec2tester.models.ec2config import Config, new_default
from ec2tester.utils.log_setup import LOGGER_NAME

FIXED_NOW = datetime(2024, 3, 17, 15, 4, 5)


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo setup_logging() so caplog keeps seeing records in later tests."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def default_config() -> Config:
    """A fresh default template."""
    return new_default()


@pytest.fixture
def finalized_config(tmp_path: Path) -> Config:
    """A default template finalized deterministically under tmp_path."""
    cfg = new_default()
    cfg.config_path = str(tmp_path / "ec2config.yaml")
    validate_and_set_defaults(
        cfg, rng=random.Random(7), now=FIXED_NOW, tmp_dir=str(tmp_path)
    )
    return cfg


@pytest.fixture
def fake_kubectl(tmp_path: Path) -> Callable[..., Path]:
    """Write an executable kubectl stand-in.

    It fails (exit 1, message on stderr) for the first `fail_times` calls and
    succeeds afterwards. Each call bumps a counter in '<script>.count' and
    appends its arguments to '<script>.args'. `sleep` delays every call.
    """

    def _make(fail_times: int = 0, sleep: float = 0.0, name: str = "kubectl") -> Path:
        script = tmp_path / name
        count_file = f"{script}.count"
        args_file = f"{script}.args"
        script.write_text(
            textwrap.dedent(
                f"""\
                #!/usr/bin/env bash
                n=$(cat "{count_file}" 2>/dev/null || echo 0)
                n=$((n+1))
                echo "$n" > "{count_file}"
                echo "$@" >> "{args_file}"
                sleep {sleep}
                if [ "$n" -le {fail_times} ]; then
                  echo "Unable to connect to the server: dial tcp: lookup failed" >&2
                  exit 1
                fi
                echo "configmap/aws-auth created"
                """
            )
        )
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script

    return _make


@pytest.fixture
def kubectl_calls() -> Callable[[Path], int]:
    """Returns a function counting how often a fake_kubectl script ran."""

    def _count(script: Path) -> int:
        count_file = f"{script}.count"
        if not os.path.exists(count_file):
            return 0
        return int(Path(count_file).read_text().strip())

    return _count
