"""
config_loader.py

Parses a config file, and ensures that all required keys are present.
Also modifies data to a better format CDK can digest in places.

The docs for schema is at: https://github.com/keleshev/schema
"""

from schema import Schema, And, Or, Use, Optional, SchemaError

from aws_cdk import aws_ecs as ecs
## Using this config for management, so you can have BOTH yaml and Env Vars:
# https://github.com/mkaranasou/pyaml_env
from pyaml_env import parse_config

from .maturity import Maturity

# Only the one DDNS provider is supported by the launch hook lambda:
SUPPORTED_DNS_PROVIDERS = ("google",)
SUPPORTED_VOLUME_TYPES = ("EFS", "EBS")

####################
## HELPER METHODS ##
####################
def raise_missing_key_error(key: str) -> None:
    " Error telling user where to get help. "
    raise ValueError(f"Required key '{key}' missing from config. See `./configs/minecraft.yaml` for an example")

def _to_port_mapping(port_info: dict) -> ecs.PortMapping:
    """
    `{"TCP": 25565}` maps the same port on both sides,
    `{"TCP": "80:8123"}` is `host:container`, like docker's `-p`.
    """
    protocol, ports = list(port_info.items())[0]
    host_port, _, container_port = str(ports).partition(":")
    host_port = int(host_port)
    container_port = int(container_port) if container_port else host_port
    # https://docs.aws.amazon.com/cdk/api/v2/docs/aws-cdk-lib.aws_ecs.PortMapping.html
    return ecs.PortMapping(
        host_port=host_port,
        container_port=container_port,
        # This will create something like: ecs.Protocol.TCP
        protocol=getattr(ecs.Protocol, protocol),
    )

def _to_env_value(val) -> str:
    # All values must be strings. If it's a bool, also make it all-lowercase:
    return str(val).lower() if isinstance(val, bool) else str(val)


vpc_config = Schema({
    Optional("MaxAZs", default=1): And(int, lambda n: n >= 1),
})

ec2_config = Schema({
    Optional("InstanceType", default="t3.medium"): And(str, Use(str.lower)),
    # Max price you're willing to pay per hour, in USD:
    "SpotPrice": And(Use(str), Use(float), lambda price: price > 0),
})

rcon_config = Schema({
    Optional("Port", default=25575): Use(int),
    # Comes from `!ENV ${RCON_PASSWORD}` normally, so it could be blank:
    Optional("Password", default=""): Or(None, Use(str)),
})

domain_config = Schema({
    Optional("Provider", default="google"): And(str, Use(str.lower), lambda p: p in SUPPORTED_DNS_PROVIDERS),
    "Username": Use(str),
    "Password": Use(str),
    # The hostname to keep pointed at the instance:
    "Name": And(str, Use(str.lower)),
})

##############
## SCHEMAS  ##
##############
def volume_config_schema(maturity: Maturity) -> Schema:
    """ The persistent storage, defaults change with maturity """
    return Schema({
        Optional("Type", default="EFS"): And(
            str,
            Use(str.upper),
            lambda vol_type: vol_type in SUPPORTED_VOLUME_TYPES,
        ),
        Optional("KeepOnDelete", default=bool(maturity == Maturity.PROD)): bool,
        Optional("EnableBackups", default=bool(maturity == Maturity.PROD)): bool,
        # Only used with EBS, EFS grows on its own:
        Optional("SizeGiB", default=10): And(int, lambda size: size >= 1),
        # Where the game saves inside the container:
        Optional("MountPath", default="/data"): And(str, lambda path: path.startswith("/")),
    })

def game_server_config_schema(maturity: Maturity) -> Schema:
    """ Full config schema for the game server stack. """
    volume_config = volume_config_schema(maturity)
    return Schema({
        Optional("Vpc", default=vpc_config.validate({})): vpc_config,
        "Ec2": ec2_config,
        "Container": {
            Optional("Image", default="itzg/minecraft-server"): And(str, Use(str.lower)),
            Optional("ImageTag", default="latest"): Use(str),
            Optional("MemoryReservationMiB", default=1024): And(int, lambda mib: mib >= 128),
            # Defaults skip validation, so hand back the already-cast mapping:
            Optional("Ports", default=lambda: [_to_port_mapping({"TCP": 25565})]): [
                And(
                    # Cast the dict types to what you want:
                    {Use(str.upper): Or(int, str)},
                    # Assert the ONE key is either TCP or UDP:
                    {Or("TCP", "UDP", only_one=True): Or(int, str)},
                    Use(_to_port_mapping),
                ),
            ],
            # Key: Optional, but defaults value to empty dict if not declared:
            # Value: Either a empty dict, or a dict of strings. Make bools all lowercase.
            #        Some containers are case-insensitive, others expect all lower.
            Optional("Environment", default=lambda: {}): Or(
                {Use(str): Use(_to_env_value)},
                # You're allowed to set an empty dict here:
                {},
                # Empty `Environment:` in yaml is None:
                And(None, Use(lambda _: {})),
            ),
        },
        Optional("Rcon", default=rcon_config.validate({})): rcon_config,
        Optional("Volume", default=volume_config.validate({})): volume_config,
        # Without a domain, the launch-hook lambda isn't deployed at all:
        Optional("Domain", default=None): Or(None, domain_config),
    })

def load_game_server_config(path: str, maturity: Maturity | str) -> dict:
    " Parser/Loader for the game server stack "
    maturity = Maturity(maturity)
    # default_value: Anything `!ENV` that isn't set in your env ends up blank:
    config = parse_config(path, default_value="")
    if not config or "Ec2" not in config:
        raise_missing_key_error("Ec2")
    if "Container" not in config:
        config["Container"] = {}
    try:
        config = game_server_config_schema(maturity).validate(config)
    except SchemaError as e:
        raise ValueError(f"Invalid config '{path}': {e.code}") from e
    # Blank `!ENV` passwords shouldn't become the string "None":
    if config["Rcon"]["Password"] is None:
        config["Rcon"]["Password"] = ""
    return config
