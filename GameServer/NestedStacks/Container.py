"""
This module contains the Container NestedStack class.
"""

from aws_cdk import (
    NestedStack,
    RemovalPolicy,
    aws_ecs as ecs,
    aws_logs as logs,
)
from constructs import Construct


### Nested Stack info:
# https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.NestedStack.html
class Container(NestedStack):
    """
    The task definition, and the game server container inside it.
    """
    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        container_config: dict,
        rcon_config: dict,
        **kwargs,
    ) -> None:
        super().__init__(scope, "ContainerNestedStack", **kwargs)

        ## The details of a task definition run on an EC2 cluster.
        # https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.aws_ecs.TaskDefinition.html
        self.task_definition = ecs.Ec2TaskDefinition(
            self,
            "TaskDefinition",
            # Ports are mapped straight onto the host:
            network_mode=ecs.NetworkMode.BRIDGE,
        )

        ## RCON is mapped on the host too, so `rcon` works from a SSM session:
        #    (It's never opened in the security group)
        self.port_mappings = [
            *container_config["Ports"],
            ecs.PortMapping(
                host_port=rcon_config["Port"],
                container_port=rcon_config["Port"],
                protocol=ecs.Protocol.TCP,
            ),
        ]

        ## Logs for the container:
        self.container_log_group = logs.LogGroup(
            self,
            "ContainerLogGroup",
            log_group_name=f"/aws/ec2/{construct_id}/{self.__class__.__name__}/ContainerLogs",
            retention=logs.RetentionDays.ONE_WEEK,
            removal_policy=RemovalPolicy.DESTROY,
        )
        ### Give the task write logging permissions:
        self.container_log_group.grant_write(self.task_definition.task_role)

        ## Details for add_container:
        # https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.aws_ecs.TaskDefinition.html#addwbrcontainerid-props
        ## And what it returns:
        # https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.aws_ecs.ContainerDefinition.html
        self.container = self.task_definition.add_container(
            "GameServerContainer",
            container_name=f"{construct_id.lower()}-server",
            image=ecs.ContainerImage.from_registry(f"{container_config['Image']}:{container_config['ImageTag']}"),
            port_mappings=self.port_mappings,
            ## Soft limit. Container will go down to this if under heavy load, but can go higher
            memory_reservation_mib=container_config["MemoryReservationMiB"],
            ## Add environment variables into the container here:
            #    (RCON always comes last, so the config can't get out of sync with the host)
            environment={
                "EULA": "TRUE",
                **container_config["Environment"],
                "RCON_PASSWORD": rcon_config["Password"],
                "RCON_PORT": str(rcon_config["Port"]),
            },
            ## Logging, straight from:
            # https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.aws_ecs.LogDriver.html
            logging=ecs.LogDrivers.aws_logs(
                stream_prefix="ContainerLogs",
                log_group=self.container_log_group,
            ),
        )
