import pytest
import aws_cdk as cdk
from aws_cdk.assertions import Template

from GameServer.game_server_stack import GameServerStack

from tests.configs import (
    ConfigInfo,
    MINIMAL,
    MINIMAL_DEVEL,
    MINECRAFT,
    WITH_DOMAIN,
    WITH_EBS,
)


class CdkApp():
    def __init__(self, config: ConfigInfo=MINIMAL) -> None:
        self.config = config.create_config()
        self.app = cdk.App()
        ## Stacks:
        self.stack = GameServerStack(
            self.app,
            "TestGameServer",
            config=self.config,
        )
        ## Templates:
        # You can't modify the stack after you create the template (It gets synthed),
        # So create them here:
        self.template = Template.from_stack(self.stack)
        # And it's nested stacks:
        self.network_template = Template.from_stack(self.stack.network_nested_stack)
        self.container_template = Template.from_stack(self.stack.container_nested_stack)
        self.volumes_template = Template.from_stack(self.stack.volumes_nested_stack)
        self.ecs_asg_template = Template.from_stack(self.stack.ecs_asg_nested_stack)
        self.launch_hook_template = None
        if self.stack.launch_hook_nested_stack is not None:
            self.launch_hook_template = Template.from_stack(self.stack.launch_hook_nested_stack)

@pytest.fixture(scope="session")
def minimal_app():
    return CdkApp(config=MINIMAL)

@pytest.fixture(scope="session")
def minimal_devel_app():
    return CdkApp(config=MINIMAL_DEVEL)

@pytest.fixture(scope="session")
def minecraft_app():
    return CdkApp(config=MINECRAFT)

@pytest.fixture(scope="session")
def domain_app():
    return CdkApp(config=WITH_DOMAIN)

@pytest.fixture(scope="session")
def ebs_app():
    return CdkApp(config=WITH_EBS)

@pytest.fixture(scope="session")
def cdk_app_factory():
    """ For one-off configs, that only one test needs """
    return CdkApp
