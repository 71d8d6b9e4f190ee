"""
This module contains the Network NestedStack class.
"""

from aws_cdk import (
    NestedStack,
    Tags,
    aws_ec2 as ec2,
    aws_ecs as ecs,
)
from constructs import Construct


### Nested Stack info:
# https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.NestedStack.html
class Network(NestedStack):
    """
    The VPC, and the Security Groups for everything inside it.
    """
    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        vpc_config: dict,
        port_mappings: list[ecs.PortMapping],
        **kwargs,
    ) -> None:
        super().__init__(scope, "NetworkNestedStack", **kwargs)

        ### Public subnets for the instance, isolated ones for storage:
        # https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.aws_ec2.Vpc.html
        self.vpc = ec2.Vpc(
            self,
            "Vpc",
            enable_dns_hostnames=True,
            enable_dns_support=True,
            # NAT Gateways aren't cheap, and nothing here needs one:
            nat_gateways=0,
            max_azs=vpc_config["MaxAZs"],
            subnet_configuration=[
                ec2.SubnetConfiguration(
                    name="Public",
                    subnet_type=ec2.SubnetType.PUBLIC,
                    cidr_mask=23,
                ),
                ec2.SubnetConfiguration(
                    name="Private",
                    subnet_type=ec2.SubnetType.PRIVATE_ISOLATED,
                    cidr_mask=23,
                ),
            ],
            restrict_default_security_group=True,
        )

        ## Security Group for the game's traffic:
        # https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.aws_ec2.SecurityGroup.html
        self.sg_game_traffic = ec2.SecurityGroup(
            self,
            "SgGameTraffic",
            vpc=self.vpc,
            description=f"({construct_id}): Traffic for the game server",
            # Impossible to know what the container will need/want:
            allow_all_outbound=True,
        )
        # Create a name of `<StackName>/sg-game-traffic` to find it easier:
        Tags.of(self.sg_game_traffic).add("Name", f"{construct_id}/sg-game-traffic")

        # Loop over each port and open it to the world. (RCON isn't in here,
        # you only use it from the host itself):
        for port_mapping in port_mappings:
            protocol = "tcp" if port_mapping.protocol == ecs.Protocol.TCP else "udp"
            self.sg_game_traffic.connections.allow_from(
                ec2.Peer.any_ipv4(),
                getattr(ec2.Port, protocol)(port_mapping.host_port),
                description=f"Game port: allow {protocol} traffic IN on {port_mapping.host_port}",
            )

        ## Security Group for EFS instance's traffic:
        # https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.aws_ec2.SecurityGroup.html
        self.sg_efs_traffic = ec2.SecurityGroup(
            self,
            "SgEfsTraffic",
            vpc=self.vpc,
            description=f"({construct_id}): Traffic for the EFS instance",
            # Lock down to JUST talk with the host:
            allow_all_outbound=False,
        )
        Tags.of(self.sg_efs_traffic).add("Name", f"{construct_id}/sg-efs-traffic")

        ## Allow EFS to receive traffic from the host:
        #   (sg's are stateful, so it can reply too)
        self.sg_efs_traffic.connections.allow_from(
            self.sg_game_traffic,
            port_range=ec2.Port.tcp(2049),
            description="Allow EFS traffic IN - from game host",
        )
