"""
ec2tester/models/ec2config.py

Defines the Pydantic models for an EC2 test cluster configuration:
 - Config: the root, persisted as YAML with kebab-case keys.
 - Instance (+ Placement, State, BlockDeviceMapping, EBS, SecurityGroup):
   snapshots of created EC2 instances, recorded under Config.instances.
 - StatusEntry: one timestamped line of the status history.

Use new_default() to get a fresh baseline configuration. There is no shared
module-level default object to mutate by accident.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_ENV_PREFIX = "EC2TESTER_EC2_"
MAX_STATUS_ENTRIES = 20


def to_kebab(name: str) -> str:
    """Serialization name for a field, e.g. 'aws_region' => 'aws-region'."""
    return name.replace("_", "-")


class _KebabModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_kebab,
        populate_by_name=True,
    )


class Placement(_KebabModel):
    model_config = ConfigDict(frozen=True)

    availability_zone: str = ""
    tenancy: str = ""


class State(_KebabModel):
    model_config = ConfigDict(frozen=True)

    code: int = 0
    name: str = ""


class EBS(_KebabModel):
    model_config = ConfigDict(frozen=True)

    delete_on_termination: bool = False
    status: str = ""
    volume_id: str = ""


class BlockDeviceMapping(_KebabModel):
    model_config = ConfigDict(frozen=True)

    device_name: str = ""
    ebs: EBS = Field(default_factory=EBS)


class SecurityGroup(_KebabModel):
    model_config = ConfigDict(frozen=True)

    group_name: str = ""
    group_id: str = ""


class Instance(_KebabModel):
    """A snapshot of one EC2 instance as observed after creation.

    Instances are replaced wholesale on refresh, never edited in place.
    """

    model_config = ConfigDict(frozen=True)

    image_id: str = ""
    instance_id: str = ""
    instance_type: str = ""
    key_name: str = ""
    placement: Placement = Field(default_factory=Placement)
    private_dns_name: str = ""
    private_ip: str = ""
    public_dns_name: str = ""
    public_ip: str = ""
    state: State = Field(default_factory=State)
    subnet_id: str = ""
    vpc_id: str = ""
    block_device_mappings: List[BlockDeviceMapping] = Field(default_factory=list)
    ebs_optimized: bool = False
    root_device_name: str = ""
    root_device_type: str = ""
    security_groups: List[SecurityGroup] = Field(default_factory=list)
    launch_time: Optional[datetime] = None


class StatusEntry(_KebabModel):
    time: datetime
    status: str


class Config(_KebabModel):
    """EC2 test cluster configuration.

    Attributes are grouped as:
      - user inputs (region, image, instance type, networking, plugins, ...),
      - derived fields filled by validate_and_set_defaults (tag, cluster name,
        bucket keys, log upload path, instance profile names),
      - '*_created' flags so re-runs do not create the same resource twice,
      - collected results (instances keyed by instance ID).

    'env_prefix' selects the namespace read by update_from_envs.
    """

    model_config = ConfigDict(validate_assignment=True)

    env_prefix: str = DEFAULT_ENV_PREFIX

    aws_account_id: str = ""
    aws_region: str = ""

    # debug, info, warn, error, panic or fatal
    log_level: str = "info"
    # 'default', 'stderr', 'stdout' or file paths; files are appended to.
    # The log upload path is added by the finalizer.
    log_outputs: List[str] = Field(default_factory=list)
    log_output_to_upload_path: str = ""
    log_output_to_upload_path_bucket: str = ""
    log_output_to_upload_path_url: str = ""
    upload_tester_logs: bool = False
    # 0 disables expiry
    upload_bucket_expire_days: int = 0

    tag: str = ""
    tags: Dict[str, str] = Field(default_factory=dict)
    cluster_name: str = ""

    destroy_after_create: bool = False
    destroy_wait_time: timedelta = timedelta(0)

    config_path: str = ""
    config_path_bucket: str = ""
    config_path_url: str = ""
    updated_at: Optional[datetime] = None

    image_id: str = ""
    user_name: str = ""
    plugins: List[str] = Field(default_factory=list)
    # Plain text, not base64. When plugins are set this text is appended
    # after the generated script.
    init_script: str = ""
    init_script_created: bool = False
    custom_script: str = ""

    instance_type: str = ""
    cluster_size: int = 0

    key_name: str = ""
    key_path: str = ""
    key_path_bucket: str = ""
    key_path_url: str = ""
    key_create_skip: bool = False
    key_created: bool = False

    vpc_cidr: str = ""
    vpc_id: str = ""
    vpc_created: bool = False
    internet_gateway_id: str = ""
    route_table_ids: List[str] = Field(default_factory=list)
    subnet_ids: List[str] = Field(default_factory=list)
    subnet_id_to_availability_zone: Dict[str, str] = Field(default_factory=dict)

    # TCP port range => CIDR
    ingress_rules_tcp: Dict[str, str] = Field(default_factory=dict)
    security_group_ids: List[str] = Field(default_factory=list)
    security_group_created: bool = False

    associate_public_ip_address: bool = False
    # GiB
    volume_size: int = 0

    instances: Optional[Dict[str, Instance]] = Field(default_factory=dict)
    wait: bool = False

    instance_profile_file_path: str = ""
    instance_profile_name: str = ""
    instance_profile_created: bool = False
    instance_profile_policy_name: str = ""
    instance_profile_policy_arn: str = ""
    instance_profile_policy: str = ""
    instance_profile_policy_created: bool = False
    instance_profile_role_name: str = ""
    instance_profile_role_created: bool = False

    kubectl_path: str = "kubectl"
    kubeconfig_path: str = ""
    node_instance_role_arn: str = ""
    auth_configmap_created: bool = False

    status_current: str = ""
    status: List[StatusEntry] = Field(default_factory=list)

    def record_status(self, message: str) -> None:
        """Record a status line, newest first, keeping the last few entries."""
        entry = StatusEntry(time=datetime.now(timezone.utc), status=message)
        self.status = [entry] + self.status[: MAX_STATUS_ENTRIES - 1]
        self.status_current = message

    def instance_ids(self) -> List[str]:
        return sorted(self.instances or {})

    def ssh_commands(self) -> str:
        """Return copy-pasteable SSH/SCP commands for every recorded instance."""
        lines = ["", "# change SSH key permission", f"chmod 400 {self.key_path}"]
        for instance_id in self.instance_ids():
            inst = (self.instances or {})[instance_id]
            target = f"{self.user_name}@{inst.public_dns_name}"
            lines += [
                f"# SSH into the remote machine (instance ID {inst.instance_id!r}, "
                f"public IP {inst.public_ip!r}, private IP {inst.private_ip!r}, "
                f"public DNS {inst.public_dns_name!r})",
                f'ssh -o "StrictHostKeyChecking no" -i {self.key_path} {target}',
                "# download to local machine",
                f"scp -i {self.key_path} {target}:REMOTE_FILE_PATH LOCAL_FILE_PATH",
                f"scp -i {self.key_path} -r {target}:REMOTE_DIRECTORY_PATH LOCAL_DIRECTORY_PATH",
                "# upload to remote machine",
                f"scp -i {self.key_path} LOCAL_FILE_PATH {target}:REMOTE_FILE_PATH",
                f"scp -i {self.key_path} -r LOCAL_DIRECTORY_PATH {target}:REMOTE_DIRECTORY_PATH",
                "",
            ]
        return "\n".join(lines) + "\n"

    def to_yaml(self) -> str:
        """Serialize this Config to YAML, keyed by the kebab-case field names."""
        return yaml.safe_dump(
            self.model_dump(mode="json", by_alias=True), sort_keys=False
        )

    @classmethod
    def from_yaml(cls, yaml_str: str) -> Config:
        """Deserialize a Config from YAML. Missing keys take the model defaults."""
        data = yaml.safe_load(yaml_str)
        return cls.model_validate(data or {})


def new_default() -> Config:
    """Return a fresh copy of the default configuration.

    Every call builds new lists and dicts, so callers may mutate the result
    freely.
    """
    return Config(
        env_prefix=DEFAULT_ENV_PREFIX,
        aws_region="us-west-2",
        destroy_after_create=False,
        destroy_wait_time=timedelta(minutes=1),
        log_level="info",
        log_outputs=["stderr"],
        upload_tester_logs=False,
        upload_bucket_expire_days=2,
        # Amazon Linux 2 AMI (HVM), SSD Volume Type, us-west-2
        image_id="ami-082b5a644766e0e6f",
        user_name="ec2-user",
        plugins=[
            "update-amazon-linux-2",
            "install-start-docker-amazon-linux-2",
        ],
        # 2 vCPU, 8 GB RAM
        instance_type="m5.large",
        cluster_size=1,
        associate_public_ip_address=True,
        key_create_skip=False,
        key_created=False,
        vpc_cidr="192.168.0.0/16",
        ingress_rules_tcp={"22": "0.0.0.0/0"},
        volume_size=40,
        wait=True,
    )


__all__ = [
    "Config",
    "Instance",
    "Placement",
    "State",
    "BlockDeviceMapping",
    "EBS",
    "SecurityGroup",
    "StatusEntry",
    "new_default",
    "to_kebab",
    "DEFAULT_ENV_PREFIX",
]
