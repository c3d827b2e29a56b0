import contextlib
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Generator, Iterable, Optional

from botocore.exceptions import BotoCoreError, ClientError

from bucketowner import settings
from bucketowner.core.lib import CredentialsError, ProbeTransportError
from bucketowner.core.policy import Policy, POLICY_VERSION

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssumeRoleDescriptor:
    role_arn: str
    session_name: str = settings.ROLE_SESSION_NAME
    duration_seconds: int = settings.SESSION_DURATION
    external_id: Optional[str] = None


def assume_role(sts_client: Any, identity: AssumeRoleDescriptor, policy: Optional[Policy] = None) -> dict:
    """Return the STS Credentials dict for identity, restricted by policy when one is given."""
    kwargs = {
        'RoleArn': identity.role_arn,
        'RoleSessionName': identity.session_name,
        'DurationSeconds': identity.duration_seconds,
    }
    if identity.external_id:
        kwargs['ExternalId'] = identity.external_id
    if policy is not None:
        kwargs['Policy'] = policy.to_json()

    try:
        response = sts_client.assume_role(**kwargs)
    except ClientError as error:
        raise CredentialsError('Could not assume {}: {}'.format(identity.role_arn, error)) from error
    except BotoCoreError as error:
        raise ProbeTransportError(str(error)) from error
    return response['Credentials']


def create_temp_role(iam_client: Any, principal_arn: str, buckets: Iterable[str]) -> str:
    """ Create a role that principal_arn can assume with full S3 access to buckets. """
    role_name = 'BucketOwnerSearchRole-{}'.format(int(time.time()))
    buckets = list(buckets)

    trust_policy = {
        'Version': POLICY_VERSION,
        'Statement': [
            {
                'Effect': 'Allow',
                'Principal': {
                    'AWS': principal_arn
                },
                'Action': 'sts:AssumeRole'
            }
        ]
    }
    bucket_policy = {
        'Version': POLICY_VERSION,
        'Statement': [
            {
                'Effect': 'Allow',
                'Action': 's3:*',
                'Resource': [arn for bucket in buckets
                             for arn in ('arn:aws:s3:::{}'.format(bucket), 'arn:aws:s3:::{}/*'.format(bucket))]
            }
        ]
    }

    try:
        response = iam_client.create_role(
            RoleName=role_name,
            AssumeRolePolicyDocument=json.dumps(trust_policy)
        )
    except (BotoCoreError, ClientError) as error:
        raise CredentialsError('Could not create a temporary role: {}'.format(error)) from error

    try:
        iam_client.put_role_policy(
            RoleName=role_name,
            PolicyName='S3Access',
            PolicyDocument=json.dumps(bucket_policy)
        )
    except (BotoCoreError, ClientError) as error:
        cleanup_temp_role(iam_client, response['Role']['Arn'])
        raise CredentialsError('Could not attach S3 access to the temporary role: {}'.format(error)) from error

    role_arn = response['Role']['Arn']
    logger.info('Created temporary role %s', role_arn)
    return role_arn


def cleanup_temp_role(iam_client: Any, role_arn: str) -> None:
    role_name = role_arn.split('/')[-1]
    try:
        for policy_name in iam_client.list_role_policies(RoleName=role_name)['PolicyNames']:
            iam_client.delete_role_policy(RoleName=role_name, PolicyName=policy_name)
        iam_client.delete_role(RoleName=role_name)
    except ClientError:
        logger.exception('Error cleaning up role %s, delete it manually', role_arn)
        return
    logger.info('Cleaned up temporary role %s', role_arn)


@contextlib.contextmanager
def temporary_role(
        iam_client: Any,
        sts_client: Any,
        buckets: Iterable[str],
        propagation_delay: float = settings.ROLE_PROPAGATION_DELAY) -> Generator[AssumeRoleDescriptor, None, None]:
    """ Yields a descriptor for a freshly created role and deletes the role on exit.

    New roles take a few seconds before STS accepts them, hence the delay. """
    try:
        principal_arn = sts_client.get_caller_identity()['Arn']
    except (BotoCoreError, ClientError) as error:
        raise CredentialsError('Could not identify the current credentials: {}'.format(error)) from error
    role_arn = create_temp_role(iam_client, principal_arn, buckets)
    try:
        try:
            iam_client.get_waiter('role_exists').wait(RoleName=role_arn.split('/')[-1])
        except BotoCoreError as error:
            raise CredentialsError('Temporary role {} never became available: {}'.format(role_arn, error)) from error
        if propagation_delay:
            time.sleep(propagation_delay)
        yield AssumeRoleDescriptor(role_arn=role_arn)
    finally:
        cleanup_temp_role(iam_client, role_arn)
