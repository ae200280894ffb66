"""
ec2tester/plugins.py

Builds an EC2 init script (UserData, plain text) from named plugin fragments
plus an optional custom script, e.g.:

    create_init_script(
        "ec2-user",
        "echo hello",
        ["update-amazon-linux-2", "install-start-docker-amazon-linux-2"],
    )

Fragments run in the order they are listed; the custom script runs last.
'install-go-<version>' takes its version from the plugin name.
"""

from __future__ import annotations

import re
import textwrap
from typing import Callable, Dict, List

from ec2tester.errors import PluginError

HEADER = textwrap.dedent(
    """\
    #!/usr/bin/env bash

    set -xeu
    """
)

_STATIC_PLUGINS: Dict[str, str] = {
    "update-amazon-linux-2": textwrap.dedent(
        """\
        sudo yum update -y \\
          && sudo yum install -y \\
          gcc \\
          zlib-devel \\
          openssl-devel \\
          ncurses-devel \\
          git \\
          wget \\
          jq \\
          tar \\
          curl \\
          unzip \\
          screen \\
          mercurial \\
          aws-cfn-bootstrap \\
          awscli \\
          chrony \\
          conntrack \\
          nfs-utils \\
          socat
        """
    ),
    "update-ubuntu": textwrap.dedent(
        """\
        export DEBIAN_FRONTEND=noninteractive
        sudo apt-get update -y \\
          && sudo apt-get upgrade -y \\
          && sudo apt-get install -y \\
          build-essential \\
          gcc \\
          jq \\
          file \\
          apt-utils \\
          pkg-config \\
          software-properties-common \\
          apt-transport-https \\
          ca-certificates \\
          libssl-dev \\
          gnupg2 \\
          sudo \\
          bash \\
          curl \\
          wget \\
          tar \\
          git \\
          unzip
        """
    ),
    "install-start-docker-amazon-linux-2": textwrap.dedent(
        """\
        sudo yum install -y docker
        sudo systemctl enable docker || true
        sudo systemctl start docker || true
        sudo systemctl status docker --full --no-pager || true
        sudo usermod -aG docker {user_name} || true
        """
    ),
    "install-start-docker-ubuntu": textwrap.dedent(
        """\
        curl -fsSL https://download.docker.com/linux/ubuntu/gpg | sudo apt-key add -
        sudo add-apt-repository \\
          "deb [arch=amd64] https://download.docker.com/linux/ubuntu $(lsb_release -cs) stable"
        sudo apt-get update -y
        sudo apt-get install -y docker-ce
        sudo systemctl enable docker || true
        sudo systemctl start docker || true
        sudo systemctl status docker --full --no-pager || true
        sudo usermod -aG docker {user_name} || true
        """
    ),
}

_GO_VERSION = re.compile(r"install-go-(\d+\.\d+(?:\.\d+)?)")


def _install_go(version: str, user_name: str) -> str:
    return textwrap.dedent(
        f"""\
        GO_VERSION={version}
        GOOGLE_URL=https://storage.googleapis.com/golang
        DOWNLOAD_URL=${{GOOGLE_URL}}
        sudo curl -s ${{DOWNLOAD_URL}}/go$GO_VERSION.linux-amd64.tar.gz | sudo tar -v -C /usr/local/ -xz
        echo 'export PATH=$PATH:/usr/local/go/bin:/home/{user_name}/go/bin' >> /home/{user_name}/.bashrc
        /usr/local/go/bin/go version
        """
    )


_DYNAMIC_PLUGINS: Dict["re.Pattern[str]", Callable[[str, str], str]] = {
    _GO_VERSION: _install_go,
}


def _render_plugin(name: str, user_name: str) -> str:
    if name in _STATIC_PLUGINS:
        return _STATIC_PLUGINS[name].format(user_name=user_name)

    for pattern, render in _DYNAMIC_PLUGINS.items():
        match = pattern.fullmatch(name)
        if match:
            return render(match.group(1), user_name)

    raise PluginError(f"plugin {name!r} not found")


def known_plugins() -> List[str]:
    """Names of the fixed plugins (parameterized ones are not listed)."""
    return sorted(_STATIC_PLUGINS)


def create_init_script(user_name: str, custom_script: str, plugins: List[str]) -> str:
    """Render the init script for the given plugins.

    Args:
        user_name (str): The login user, used for home directories and groups.
        custom_script (str): Shell text appended after all plugin fragments.
        plugins (List[str]): Plugin names, rendered in order.

    Returns:
        str: The full script, starting with a bash shebang.

    Raises:
        PluginError: If a plugin name is unknown.
    """
    sections = [HEADER]
    for name in plugins:
        sections.append(f"# plugin: {name}\n" + _render_plugin(name, user_name))
    if custom_script:
        sections.append("# custom script\n" + custom_script.rstrip("\n") + "\n")
    return "\n".join(sections)
