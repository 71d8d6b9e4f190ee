"""
This module contains the GameServerStack class.
"""

from constructs import Construct
from aws_cdk import Stack

from GameServer.NestedStacks.Network import Network
from GameServer.NestedStacks.Container import Container
from GameServer.NestedStacks.Volumes import Volumes
from GameServer.NestedStacks.EcsAsg import EcsAsg
from GameServer.NestedStacks.LaunchHook import LaunchHook


class GameServerStack(Stack):
    """
    One game server: A spot instance (ASG of 0/1) running the container through
    ECS, with persistent storage, and optionally a DDNS update on every launch.
    """
    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        config: dict,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        ## The VPC, and what's allowed in/out of the instance:
        self.network_nested_stack = Network(
            self,
            construct_id=construct_id,
            description=f"Network for {construct_id}",
            vpc_config=config["Vpc"],
            port_mappings=config["Container"]["Ports"],
        )

        ## Task Definition and the game's container:
        self.container_nested_stack = Container(
            self,
            construct_id=construct_id,
            description=f"Container for {construct_id}",
            container_config=config["Container"],
            rcon_config=config["Rcon"],
        )

        ## Persistent storage, so the world survives the instance:
        self.volumes_nested_stack = Volumes(
            self,
            construct_id=construct_id,
            description=f"Persistent storage for {construct_id}",
            vpc=self.network_nested_stack.vpc,
            task_definition=self.container_nested_stack.task_definition,
            container=self.container_nested_stack.container,
            volume_config=config["Volume"],
            sg_efs_traffic=self.network_nested_stack.sg_efs_traffic,
        )

        ## The spot instance, and the ECS cluster/service running on it:
        self.ecs_asg_nested_stack = EcsAsg(
            self,
            construct_id=construct_id,
            description=f"Ec2 Service and ASG for {construct_id}",
            vpc=self.network_nested_stack.vpc,
            sg_game_traffic=self.network_nested_stack.sg_game_traffic,
            task_definition=self.container_nested_stack.task_definition,
            ec2_config=config["Ec2"],
            rcon_config=config["Rcon"],
            volumes=self.volumes_nested_stack,
        )

        ## Only keep a domain pointed at the server, if you gave one:
        self.launch_hook_nested_stack = None
        if config["Domain"]:
            self.launch_hook_nested_stack = LaunchHook(
                self,
                construct_id=construct_id,
                description=f"DDNS update on instance launch for {construct_id}",
                auto_scaling_group=self.ecs_asg_nested_stack.auto_scaling_group,
                domain_config=config["Domain"],
            )
