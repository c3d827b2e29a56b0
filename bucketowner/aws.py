from typing import Any, Optional

import boto3
import botocore
import botocore.config
import botocore.exceptions

from bucketowner import settings
from bucketowner.core.lib import CredentialsError


def get_boto3_config(user_agent: Optional[str] = None) -> botocore.config.Config:
    return botocore.config.Config(  # type: ignore[attr-defined]
        user_agent=user_agent,  # If user_agent=None, botocore will use the real UA which is what we want
        retries={'max_attempts': settings.MAX_ATTEMPTS, 'mode': 'adaptive'},
    )


def get_boto3_session(profile: Optional[str] = None, region: Optional[str] = None) -> boto3.session.Session:
    try:
        session = boto3.session.Session(profile_name=profile, region_name=region or settings.REGION)
    except botocore.exceptions.ProfileNotFound as error:
        raise CredentialsError(str(error)) from error

    if session.get_credentials() is None:
        raise CredentialsError('No AWS credentials were found. Configure a profile or set the AWS_* environment variables.')
    return session


def get_boto3_client(service: str,
                     region: Optional[str] = None,
                     credentials: Optional[dict] = None,
                     session: Optional[boto3.session.Session] = None,
                     user_agent: Optional[str] = None) -> Any:
    """ Build a client from either an STS Credentials dict or an existing
    session. A new boto3 Session is created per set of credentials because
    sessions are not safe to share between threads, clients are. """
    if credentials is not None:
        session = boto3.session.Session(
            aws_access_key_id=credentials['AccessKeyId'],
            aws_secret_access_key=credentials['SecretAccessKey'],
            aws_session_token=credentials.get('SessionToken'),
        )
    elif session is None:
        session = boto3.session.Session()

    return session.client(
        service,
        region_name=region,  # Whether region has a value or is None, it will work here
        config=get_boto3_config(user_agent)
    )
