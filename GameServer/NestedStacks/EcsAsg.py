"""
This module contains the EcsAsg NestedStack class.
"""

import jsii
from aws_cdk import (
    NestedStack,
    Aspects,
    IAspect,
    aws_ec2 as ec2,
    aws_ecs as ecs,
    aws_iam as iam,
    aws_autoscaling as autoscaling,
)
from constructs import Construct, IConstruct

from cdk_nag import NagSuppressions

from GameServer.NestedStacks.Volumes import Volumes
from GameServer.utils.user_data_commands import (
    enable_ssm_agent,
    install_rcon_cli,
    install_yum_packages,
)

# Needed on the host by the user data below:
HOST_YUM_PACKAGES = ["wget", "unzip", "amazon-efs-utils"]

## Without this, `cdk destroy` hangs on the cluster, since the capacity provider is
## still "in use" by the service. Making the service/cluster depend on it directly
## is a circular dependency instead:
# https://github.com/aws/aws-cdk/issues/19275
@jsii.implements(IAspect)
class HotfixCapacityProviderDependencies:
    # Association depends on the cluster, and each service on the association:
    def visit(self, node: IConstruct) -> None:
        if type(node) is ecs.Ec2Service:
            for child in node.cluster.node.find_all():
                if type(child) is ecs.CfnClusterCapacityProviderAssociations:
                    child.node.add_dependency(node.cluster)
                    node.node.add_dependency(child)


class EcsAsg(NestedStack):
    """
    This sets up the "hardware" of the container (one spot instance),
    and the service to run on it.
    """
    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        vpc: ec2.Vpc,
        sg_game_traffic: ec2.SecurityGroup,
        task_definition: ecs.Ec2TaskDefinition,
        ec2_config: dict,
        rcon_config: dict,
        volumes: Volumes,
        **kwargs,
    ) -> None:
        super().__init__(scope, "EcsAsgNestedStack", **kwargs)
        Aspects.of(self).add(HotfixCapacityProviderDependencies())

        ## Cluster for the the container
        # https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.aws_ecs.Cluster.html
        self.ecs_cluster = ecs.Cluster(
            self,
            "EcsCluster",
            cluster_name=f"{construct_id}-ecs-cluster",
            vpc=vpc,
            container_insights=False,
        )

        ## Permissions for inside the instance/host of the container:
        self.ec2_role = iam.Role(
            self,
            "Ec2ExecutionRole",
            assumed_by=iam.ServicePrincipal("ec2.amazonaws.com"),
            description="The instance's permissions (HOST of the container)",
        )
        ## Let the instance register itself to a ecs cluster:
        # https://docs.aws.amazon.com/AmazonECS/latest/developerguide/security-iam-awsmanpol.html#instance-iam-role-permissions
        self.ec2_role.add_managed_policy(iam.ManagedPolicy.from_aws_managed_policy_name("service-role/AmazonEC2ContainerServiceforEC2Role"))
        ## For ssh'ing in through the AWS console (SSM Session Manager):
        self.ec2_role.add_managed_policy(iam.ManagedPolicy.from_aws_managed_policy_name("AmazonSSMManagedInstanceCore"))

        ### For Running Commands on the instance when it starts up:
        # https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.aws_ec2.UserData.html
        self.ec2_user_data = ec2.UserData.for_linux()
        self.ec2_user_data.add_commands(
            *enable_ssm_agent(),
            *install_yum_packages(HOST_YUM_PACKAGES),
            # Attach/Mount the persistent storage:
            *volumes.host_commands,
            # For running server commands straight from the host:
            *install_rcon_cli(rcon_port=rcon_config["Port"], rcon_password=rcon_config["Password"]),
        )

        ## Contains the configuration information to launch an instance, and stores launch parameters
        # https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.aws_ec2.LaunchTemplate.html
        asg_launch_template = ec2.LaunchTemplate(
            self,
            "AsgLaunchTemplate",
            instance_type=ec2.InstanceType(ec2_config["InstanceType"]),
            ## Needs to be an "EcsOptimized" image to register to the cluster
            # https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.aws_ecs.EcsOptimizedImage.html
            machine_image=ecs.EcsOptimizedImage.amazon_linux2(),
            # Lets Specific traffic to/from the instance:
            security_group=sg_game_traffic,
            # Players connect straight to the instance, and the launch hook looks this up:
            associate_public_ip_address=True,
            user_data=self.ec2_user_data,
            role=self.ec2_role,
            ## Console recommends to enable IMDSv2:
            http_tokens=ec2.LaunchTemplateHttpTokens.REQUIRED,
            require_imdsv2=True,
            ## Spot pricing, this is what keeps the server cheap:
            # https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.aws_ec2.LaunchTemplateSpotOptions.html
            spot_options=ec2.LaunchTemplateSpotOptions(
                max_price=ec2_config["SpotPrice"],
                request_type=ec2.SpotRequestType.ONE_TIME,
            ),
        )

        ## A Fleet represents a managed set of EC2 instances:
        # https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.aws_autoscaling.AutoScalingGroup.html
        self.auto_scaling_group = autoscaling.AutoScalingGroup(
            self,
            "Asg",
            vpc=vpc,
            vpc_subnets=volumes.instance_subnets,
            launch_template=asg_launch_template,
            # Change this to 0 to spin the server down:
            desired_capacity=1,
            min_capacity=0,
            max_capacity=1,
            new_instances_protected_from_scale_in=True,
        )
        volumes.grant_host_access(self.ec2_role, self.auto_scaling_group)

        ## This allows an ECS cluster to target a specific EC2 Auto Scaling Group for the placement of tasks.
        # https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.aws_ecs.AsgCapacityProvider.html
        self.capacity_provider = ecs.AsgCapacityProvider(
            self,
            "AsgCapacityProvider",
            auto_scaling_group=self.auto_scaling_group,
            target_capacity_percent=100,
            enable_managed_scaling=True,
            ## To let me delete the stack!! (The ASG itself still protects new instances):
            enable_managed_termination_protection=False,
        )
        self.ecs_cluster.add_asg_capacity_provider(self.capacity_provider)

        ## This creates a service using the EC2 launch type on an ECS cluster
        # https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.aws_ecs.Ec2Service.html
        self.ec2_service = ecs.Ec2Service(
            self,
            "Ec2Service",
            cluster=self.ecs_cluster,
            task_definition=task_definition,
            # Only one host, and the ports are bound on it. The old task HAS to stop first:
            min_healthy_percent=0,
            max_healthy_percent=100,
            capacity_provider_strategies=[
                ecs.CapacityProviderStrategy(
                    capacity_provider=self.capacity_provider.capacity_provider_name,
                    weight=1,
                ),
            ],
        )

        #####################
        ### cdk_nag stuff ###
        #####################
        # Do at very end, they have to "suppress" after everything's created to work.

        NagSuppressions.add_resource_suppressions(
            self.auto_scaling_group,
            [
                {
                    "id": "AwsSolutions-IAM4",
                    "reason": "The ECS and SSM managed policies are what AWS recommends for container hosts.",
                },
                {
                    "id": "AwsSolutions-IAM5",
                    "reason": "Only 'Describe' type actions, or locked down by the 'conditions' key.",
                    "appliesTo": ["Resource::*"],
                },
                {
                    "id": "AwsSolutions-AS3",
                    "reason": "One spot instance, nobody needs to be emailed on every scaling event.",
                },
                {
                    "id": "AwsSolutions-EC26",
                    "reason": "This is the default root EBS cdk creates for the ASG instances. Game data lives on the Volumes stack.",
                },
            ],
            apply_to_children=True,
        )
