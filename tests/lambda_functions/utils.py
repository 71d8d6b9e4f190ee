import json
from dataclasses import dataclass, field


def make_launch_event(message: dict | str) -> dict:
    """ What the ASG lifecycle hook hands the lambda, through SNS """
    if isinstance(message, dict):
        message = json.dumps(message)
    return {
        "Records": [{
            "EventSource": "aws:sns",
            "EventVersion": "1.0",
            "EventSubscriptionArn": "arn:aws:sns:us-west-2:123456789012:LaunchHookTopic:1234",
            "Sns": {
                "Type": "Notification",
                "MessageId": "95df01b4-ee98-5cb9-9903-4c221d41eb5e",
                "TopicArn": "arn:aws:sns:us-west-2:123456789012:LaunchHookTopic",
                "Subject": "Auto Scaling:  Lifecycle action 'LAUNCHING' for instance",
                "Message": message,
                "Timestamp": "2024-01-01T00:00:00.000Z",
                "MessageAttributes": {},
            },
        }],
    }

def launch_message(instance_id: str) -> dict:
    """ The body of a real INSTANCE_LAUNCHING notification """
    return {
        "Origin": "EC2",
        "LifecycleHookName": "InstanceLaunchingHook",
        "Service": "AWS Auto Scaling",
        "AccountId": "123456789012",
        "AutoScalingGroupName": "test-asg",
        "LifecycleActionToken": "71514b9d-6a40-4b26-8523-05e7ee35fa40",
        "LifecycleTransition": "autoscaling:EC2_INSTANCE_LAUNCHING",
        "EC2InstanceId": instance_id,
        "Time": "2024-01-01T00:00:00.000Z",
    }


@dataclass
class FakeResponse:
    status: int = 200
    data: bytes = b"good 203.0.113.5"

@dataclass
class FakeHttp:
    """ Stands in for the urllib3.PoolManager, and records every call """
    response: FakeResponse = field(default_factory=FakeResponse)
    error: Exception | None = None
    calls: list = field(default_factory=list)

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        if self.error is not None:
            raise self.error
        return self.response

class FakeEc2Client:
    """ Records describe_instances calls, and returns a canned response """
    def __init__(self, response: dict | None = None, error: Exception | None = None):
        self.response = response or {"Reservations": []}
        self.error = error
        self.calls = []

    def describe_instances(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response
