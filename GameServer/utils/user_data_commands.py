"""
user_data_commands.py

Shell snippets for the instance's UserData (runs once, as root, on first boot).
Each function returns a list of lines, so they can be fed straight into
`ec2.UserData.add_commands(*lines)`.
"""

RCON_CLI_VERSION = "1.5.1"
RCON_CLI_URL = f"https://github.com/itzg/rcon-cli/releases/download/{RCON_CLI_VERSION}/rcon-cli_{RCON_CLI_VERSION}_linux_386.tar.gz"

## IMDSv2 is required on the launch template, so every metadata call needs a token first:
# https://docs.aws.amazon.com/AWSEC2/latest/UserGuide/configuring-instance-metadata-service.html
IMDS_TOKEN_CMD = 'TOKEN=$(curl -s -X PUT "http://169.254.169.254/latest/api/token" -H "X-aws-ec2-metadata-token-ttl-seconds: 300")'
IMDS_INSTANCE_ID_CMD = 'export INSTANCE_ID=$(curl -s -H "X-aws-ec2-metadata-token: $TOKEN" http://169.254.169.254/latest/meta-data/instance-id)'
IMDS_REGION_CMD = 'export AWS_DEFAULT_REGION=$(curl -s -H "X-aws-ec2-metadata-token: $TOKEN" http://169.254.169.254/latest/meta-data/placement/region)'


def install_aws_cli(cli_path: str) -> list[str]:
    """ AWS CLI v2, with the binary linked into `cli_path` """
    return [
        'curl "https://awscli.amazonaws.com/awscli-exe-linux-x86_64.zip" -o "awscliv2.zip"',
        "unzip -q awscliv2.zip",
        f"sudo ./aws/install -i /usr/local/aws-cli -b {cli_path}",
    ]

def install_yum_packages(packages: list[str]) -> list[str]:
    if not packages:
        return []
    return [f"sudo yum install -y {' '.join(packages)}"]

def attach_and_mount_ebs(volume_id: str, device_id: str, mount_dir: str, aws_cli_path: str) -> list[str]:
    """
    Attach the persistent EBS volume to THIS instance, and mount it.

    The volume only gets a filesystem the first time it's seen blank, so
    anything saved from a previous instance survives.
    """
    return [
        IMDS_TOKEN_CMD,
        IMDS_INSTANCE_ID_CMD,
        IMDS_REGION_CMD,
        f'mkdir -p "{mount_dir}"',
        f"{aws_cli_path}/aws ec2 attach-volume --volume-id {volume_id} --instance-id $INSTANCE_ID --device {device_id}",
        # The device shows up a few seconds after the attach call returns:
        f"while [[ ! -e {device_id} ]]; do sleep 2; done",
        f"blkid {device_id} || mkfs -t xfs {device_id}",
        f'mount {device_id} "{mount_dir}"',
    ]

def mount_efs(file_system_id: str, mount_dir: str) -> list[str]:
    """ Mount the EFS on the host too, for easy file inspecting and modifications """
    return [
        f'mkdir -p "{mount_dir}"',
        # Add the entry to fstab, so it mounts again on reboot:
        f'echo "{file_system_id}:/ {mount_dir} efs _netdev,tls,iam 0 0" >> /etc/fstab',
        f'mount -t efs -o tls,iam {file_system_id}:/ "{mount_dir}"',
    ]

def enable_ssm_agent() -> list[str]:
    """ Lets you shell into the host through the AWS console """
    return [
        "sudo systemctl enable amazon-ssm-agent",
        "sudo systemctl start amazon-ssm-agent",
    ]

def install_rcon_cli(rcon_port: int, rcon_password: str) -> list[str]:
    """ rcon-cli, plus an `rcon` alias already pointed at the container """
    return [
        f'wget -q "{RCON_CLI_URL}" -P /usr/tmp',
        f"tar -xf /usr/tmp/rcon-cli_{RCON_CLI_VERSION}_linux_386.tar.gz -C /usr/tmp",
        "sudo mv /usr/tmp/rcon-cli /usr/bin",
        "sudo chmod +x /usr/bin/rcon-cli",
        # UserData runs in its own shell, so persist the alias for login shells:
        f"echo \"alias rcon='rcon-cli --port {rcon_port} --password {rcon_password}'\" >> /etc/profile.d/rcon.sh",
    ]
