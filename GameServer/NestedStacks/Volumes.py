"""
This module contains the Volumes NestedStack class.
"""

from aws_cdk import (
    NestedStack,
    RemovalPolicy,
    Size,
    aws_ec2 as ec2,
    aws_ecs as ecs,
    aws_efs as efs,
    aws_iam as iam,
    aws_autoscaling as autoscaling,
)
from constructs import Construct

from GameServer.utils.user_data_commands import (
    attach_and_mount_ebs,
    install_aws_cli,
    mount_efs,
)

# Where the AWS CLI gets linked on the host (only needed for EBS):
AWS_CLI_PATH = "/usr/local/bin"
# Any free name works, AL2 links the nvme device back to it:
EBS_DEVICE_ID = "/dev/xvdf"


### Nested Stack info:
# https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.NestedStack.html
class Volumes(NestedStack):
    """
    This sets up the persistent storage for the game server.

    EFS: Lives in the isolated subnets, and can be reached from any AZ.
    EBS: One volume in ONE AZ. The ASG gets pinned to that AZ's subnet
         (see `self.instance_subnets`), and the instance attaches it on boot.
    """
    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        vpc: ec2.Vpc,
        task_definition: ecs.Ec2TaskDefinition,
        container: ecs.ContainerDefinition,
        volume_config: dict,
        sg_efs_traffic: ec2.SecurityGroup,
        **kwargs,
    ) -> None:
        super().__init__(scope, "VolumesNestedStack", **kwargs)
        self.volume_type = volume_config["Type"]
        volume_removal_policy = RemovalPolicy.RETAIN_ON_UPDATE_OR_DELETE \
                                if volume_config["KeepOnDelete"] else \
                                RemovalPolicy.DESTROY
        # Where the data lives on the HOST:
        self.host_mount_path = f"/opt/{construct_id.lower()}-{self.volume_type.lower()}"
        # Filled in below, and run by the instance on first boot:
        self.host_commands = []

        self.efs_file_system = None
        self.ebs_volume = None
        # Default: Any public subnet is fine:
        self.instance_subnets = ec2.SubnetSelection(subnet_type=ec2.SubnetType.PUBLIC)

        if self.volume_type == "EFS":
            # https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.aws_efs.FileSystem.html
            self.efs_file_system = efs.FileSystem(
                self,
                "Efs",
                vpc=vpc,
                vpc_subnets=ec2.SubnetSelection(subnet_type=ec2.SubnetType.PRIVATE_ISOLATED),
                removal_policy=volume_removal_policy,
                security_group=sg_efs_traffic,
                allow_anonymous_access=False,
                enable_automatic_backups=volume_config["EnableBackups"],
                encrypted=True,
            )
            ## Lock down in-transit encryption:
            # https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.aws_iam.PolicyStatement.html
            self.efs_file_system.add_to_resource_policy(
                iam.PolicyStatement(
                    effect=iam.Effect.DENY,
                    principals=[iam.AnyPrincipal()],
                    actions=["*"],
                    conditions={
                        "Bool": {"aws:SecureTransport": "false"},
                    },
                )
            )
            ## Tell the EFS side that the task can access it:
            self.efs_file_system.grant_read_write(task_definition.task_role)
            volume_config_kwargs = {
                # https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.aws_ecs.EfsVolumeConfiguration.html
                "efs_volume_configuration": ecs.EfsVolumeConfiguration(
                    file_system_id=self.efs_file_system.file_system_id,
                    # https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.aws_ecs.AuthorizationConfig.html
                    authorization_config=ecs.AuthorizationConfig(iam="ENABLED"),
                    transit_encryption="ENABLED",
                ),
            }
            ## Also mount it on the host, for easy file inspecting and modifications:
            self.host_commands.extend(mount_efs(
                file_system_id=self.efs_file_system.file_system_id,
                mount_dir=self.host_mount_path,
            ))

        elif self.volume_type == "EBS":
            data_subnet = vpc.public_subnets[0]
            self.instance_subnets = ec2.SubnetSelection(subnets=[data_subnet])
            # https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.aws_ec2.Volume.html
            self.ebs_volume = ec2.Volume(
                self,
                "Ebs",
                availability_zone=data_subnet.availability_zone,
                size=Size.gibibytes(volume_config["SizeGiB"]),
                volume_type=ec2.EbsDeviceVolumeType.GP3,
                encrypted=True,
                removal_policy=volume_removal_policy,
            )
            ## The container just sees a directory on the host:
            # https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.aws_ecs.Host.html
            volume_config_kwargs = {
                "host": ecs.Host(source_path=self.host_mount_path),
            }
            self.host_commands.extend(install_aws_cli(AWS_CLI_PATH))
            self.host_commands.extend(attach_and_mount_ebs(
                volume_id=self.ebs_volume.volume_id,
                device_id=EBS_DEVICE_ID,
                mount_dir=self.host_mount_path,
                aws_cli_path=AWS_CLI_PATH,
            ))

        else:
            raise ValueError(f"Unknown volume type: '{self.volume_type}'")

        ### Attach it into the CONTAINER:
        volume_name = f"{construct_id}-{self.volume_type.lower()}"
        # https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.aws_ecs.TaskDefinition.html#aws_cdk.aws_ecs.TaskDefinition.add_volume
        task_definition.add_volume(name=volume_name, **volume_config_kwargs)
        # https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.aws_ecs.ContainerDefinition.html#addwbrmountwbrpointsmountpoints
        container.add_mount_points(
            ecs.MountPoint(
                container_path=volume_config["MountPath"],
                source_volume=volume_name,
                read_only=False,
            )
        )

    def grant_host_access(self, role: iam.IRole, auto_scaling_group: autoscaling.AutoScalingGroup) -> None:
        """
        Let the instance reach the volume. (Lives here instead of EcsAsg.py,
        but needs the role/asg that EcsAsg creates.)
        """
        if self.efs_file_system is not None:
            self.efs_file_system.grant_read_write(role)
        if self.ebs_volume is not None:
            ## Only instances tagged by THIS asg can attach it:
            # https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.aws_ec2.Volume.html#grantwbrattachwbrvolumewbrbywbrresourcewbrtaggrantee-constructs-tagkeysuffix
            self.ebs_volume.grant_attach_volume_by_resource_tag(role, [auto_scaling_group])
