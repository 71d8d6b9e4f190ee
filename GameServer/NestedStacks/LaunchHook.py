"""
This module contains the LaunchHook NestedStack class.
"""

import os

from aws_cdk import (
    NestedStack,
    Duration,
    RemovalPolicy,
    aws_lambda,
    aws_iam as iam,
    aws_logs as logs,
    aws_autoscaling as autoscaling,
    aws_autoscaling_hooktargets as hooktargets,
)
from constructs import Construct
from cdk_nag import NagSuppressions

LAMBDA_CODE_PATH = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
    "lambda_functions",
    "ddns_launch_hook",
)

class LaunchHook(NestedStack):
    """
    Points the dynamic-DNS domain at the instance, every time the ASG launches one.
    (Only created if the config has a `Domain` block)
    """
    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        auto_scaling_group: autoscaling.AutoScalingGroup,
        domain_config: dict,
        **kwargs,
    ) -> None:
        super().__init__(scope, "LaunchHookNestedStack", **kwargs)

        ## Log group for the lambda function:
        # https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.aws_logs.LogGroup.html
        self.log_group_launch_hook = logs.LogGroup(
            self,
            "LogGroupLaunchHook",
            retention=logs.RetentionDays.ONE_WEEK,
            removal_policy=RemovalPolicy.DESTROY,
            log_group_name=f"/aws/lambda/{construct_id}-ddns-launch-hook",
        )

        ## Policy/Role for lambda function:
        # https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.aws_iam.Role.html
        self.launch_hook_role = iam.Role(
            self,
            "LaunchHookRole",
            assumed_by=iam.ServicePrincipal("lambda.amazonaws.com"),
            description="Role for the DDNS LaunchHook lambda function.",
        )
        # https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.aws_iam.Policy.html
        self.launch_hook_policy = iam.Policy(
            self,
            "LaunchHookPolicy",
            roles=[self.launch_hook_role],
            statements=[
                iam.PolicyStatement(
                    # NOTE: This is on the list of actions that CANNOT be locked
                    #   down in ANY way. You *must* use a wild card.
                    effect=iam.Effect.ALLOW,
                    # To get the IP of a new instance:
                    actions=["ec2:DescribeInstances"],
                    resources=["*"],
                ),
            ],
        )

        ## Lambda function to update the DNS record:
        # https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.aws_lambda.Function.html
        self.lambda_launch_hook = aws_lambda.Function(
            self,
            "DdnsLaunchHook",
            description=f"{construct_id}-DDNS-LaunchHook: Triggered by the ASG launching an instance. Points '{domain_config['Name']}' at its public IP.",
            code=aws_lambda.Code.from_asset(LAMBDA_CODE_PATH),
            handler="main.lambda_handler",
            runtime=aws_lambda.Runtime.PYTHON_3_12,
            timeout=Duration.seconds(30),
            log_group=self.log_group_launch_hook,
            role=self.launch_hook_role,
            environment={
                "username": domain_config["Username"],
                "password": domain_config["Password"],
                "domain": domain_config["Name"],
                "provider": domain_config["Provider"],
            },
        )
        # Give it write to it's own log group:
        self.log_group_launch_hook.grant_write(self.lambda_launch_hook)

        ## The lifecycle hook is what actually ties the lambda to the ASG.
        #    The instance waits in 'Pending:Wait' until the heartbeat runs out, then CONTINUEs
        #    no matter what the lambda did.
        # https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.aws_autoscaling.LifecycleHook.html
        self.lifecycle_hook = autoscaling.LifecycleHook(
            self,
            "InstanceLaunchingHook",
            auto_scaling_group=auto_scaling_group,
            lifecycle_transition=autoscaling.LifecycleTransition.INSTANCE_LAUNCHING,
            # https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.aws_autoscaling_hooktargets.FunctionHook.html
            notification_target=hooktargets.FunctionHook(self.lambda_launch_hook),
            default_result=autoscaling.DefaultResult.CONTINUE,
            heartbeat_timeout=Duration.seconds(30),
        )

        #####################
        ### cdk_nag stuff ###
        #####################
        # Do at very end, they have to "suppress" after everything's created to work.

        NagSuppressions.add_resource_suppressions(
            self.launch_hook_policy,
            [
                {
                    "id": "AwsSolutions-IAM5",
                    "reason": "ec2:DescribeInstances requires the wildcard resource.",
                    "appliesTo": ["Resource::*"]
                }
            ],
            apply_to_children=True,
        )
        NagSuppressions.add_resource_suppressions(
            self.lifecycle_hook,
            [
                {
                    "id": "AwsSolutions-SNS2",
                    "reason": "This sns topic is controlled by cdk's FunctionHook, can't add server-side encryption.",
                },
                {
                    "id": "AwsSolutions-SNS3",
                    "reason": "This sns topic is controlled by cdk's FunctionHook, can't add ssl/tls encryption.",
                },
            ],
            apply_to_children=True,
        )
