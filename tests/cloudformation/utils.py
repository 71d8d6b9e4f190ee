from aws_cdk.assertions import Template


def get_only_resource(template: Template, resource_type: str) -> dict:
    """ Return the Properties of the ONE resource of that type """
    resources = template.find_resources(resource_type)
    assert len(resources) == 1, f"Expected exactly one {resource_type}, got {len(resources)}."
    return list(resources.values())[0]["Properties"]

def _flatten(value) -> str:
    """ Turn a (possibly Fn::Join'ed) CFN value into plain text. Refs become empty strings. """
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return "".join(_flatten(v) for v in value)
    if isinstance(value, dict):
        if "Fn::Join" in value:
            delimiter, parts = value["Fn::Join"]
            return delimiter.join(_flatten(p) for p in parts)
        if "Fn::Base64" in value:
            return _flatten(value["Fn::Base64"])
    return ""

def get_user_data(template: Template) -> str:
    """ The launch template's UserData, as one big script """
    launch_template = get_only_resource(template, "AWS::EC2::LaunchTemplate")
    return _flatten(launch_template["LaunchTemplateData"]["UserData"])
