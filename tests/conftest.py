import os

def pytest_configure(config): # pylint: disable=unused-argument
    """ Runs at the very start of pytest execution. """

    # Make sure AWS is faked, so it's impossible to make real AWS calls during tests:
    os.environ["AWS_ACCESS_KEY_ID"] = "fake_access_key"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "fake_secret_key"
    os.environ["AWS_SECURITY_TOKEN"] = "fake_security_token"
    os.environ["AWS_SESSION_TOKEN"] = "fake_session_token"
    os.environ["AWS_DEFAULT_REGION"] = "us-west-2"
    os.environ.setdefault("AWS_SHARED_CREDENTIALS_FILE", "/tmp/does-not-exist/credentials")
    os.environ.pop("AWS_PROFILE", None)
    aws_creds_file = os.getenv("AWS_SHARED_CREDENTIALS_FILE")
    assert not os.path.isfile(aws_creds_file), "Don't have a real creds file, AWS calls should be mocked anyways."
