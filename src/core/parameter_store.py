"""
AWS Systems Manager Parameter Store helper.
Parameters live under /market-data-import/<environment>/ and are cached per process.
"""
import boto3
from functools import lru_cache

PARAMETER_PREFIX = "/market-data-import"


def parameter_name(environment: str, key: str) -> str:
    """Build the full parameter path for a key, e.g. /market-data-import/dev/jwt-secret."""
    return f"{PARAMETER_PREFIX}/{environment}/{key}"


@lru_cache(maxsize=10)
def get_parameter(name: str, region: str = "us-east-1") -> str:
    """
    Fetch a decrypted parameter value.

    Args:
        name: Full parameter name, see parameter_name
        region: AWS region

    Returns:
        Parameter value (decrypted if SecureString)

    Raises:
        botocore.exceptions.ClientError: If the parameter does not exist or cannot be read
    """
    ssm = boto3.client('ssm', region_name=region)
    response = ssm.get_parameter(Name=name, WithDecryption=True)
    return response['Parameter']['Value']
