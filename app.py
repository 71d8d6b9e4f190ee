#!/usr/bin/env python3

"""
CDK Application for running a game server on a spot instance in AWS
"""

import os

from aws_cdk import (
    Aspects,
    App,
    Environment,
    Tags,
)
import cdk_nag

from GameServer.game_server_stack import GameServerStack
from GameServer.utils.config_loader import load_game_server_config
from GameServer.utils.maturity import Maturity


# https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.App.html
app = App()

### Fact-check the maturity. We want to fail-fast
# here, so throw if it doesn't exist:
maturity = app.node.get_context("maturity")
supported_maturities = [m.value for m in Maturity]
assert maturity in supported_maturities, f"ERROR: Unknown maturity. Must be in {supported_maturities}"

if app.node.try_get_context("cdk-nag"):
    Aspects.of(app).add(cdk_nag.AwsSolutionsChecks(verbose=True))

# Lets you reference self.account and self.region in your CDK code
# if you need to:
main_env = Environment(
    account=os.getenv('CDK_DEFAULT_ACCOUNT'),
    region=os.getenv('CDK_DEFAULT_REGION'),
)

### Create the application for ONE game server:
file_path = app.node.try_get_context("config-file") or "./configs/minecraft.yaml"
config = load_game_server_config(file_path, maturity=maturity)
# You can override the stack name if you need to:
server_id = app.node.try_get_context("server-id")
if not server_id:
    server_id = os.path.basename(os.path.splitext(file_path)[0])
# For stack names, turn "minecraft.paper" into "MinecraftPaper":
server_id_alpha = "".join(e for e in server_id.title() if e.isalnum())

game_server_stack = GameServerStack(
    app,
    server_id_alpha,
    description=f"Spot instance game server for '{server_id}'.",
    env=main_env,
    config=config,
)
Tags.of(game_server_stack).add("ServerId", server_id.lower())

app.synth()
