import enum
import logging
import threading
from typing import Any, Callable, Optional

from botocore.exceptions import BotoCoreError, ClientError

from bucketowner import settings
from bucketowner.aws import get_boto3_client
from bucketowner.core.cache import BucketRegionCache
from bucketowner.core.lib import BucketRegionError, IndeterminateAccessError, ProbeTransportError
from bucketowner.core.policy import Policy
from bucketowner.core.target import Target
from bucketowner.identity import AssumeRoleDescriptor, assume_role

logger = logging.getLogger(__name__)

DENIED_ERROR_CODES = frozenset(['403', 'AccessDenied', 'Forbidden'])
NOT_FOUND_ERROR_CODES = frozenset(['404', 'NotFound', 'NoSuchKey'])
NO_SUCH_BUCKET_ERROR_CODES = frozenset(['404', 'NotFound', 'NoSuchBucket'])

BUCKET_REGION_HEADER = 'x-amz-bucket-region'


class AccessOutcome(enum.Enum):
    MATCH = 'match'
    NO_MATCH = 'no_match'
    INDETERMINATE = 'indeterminate'


def error_code(error: ClientError) -> str:
    return str(error.response.get('Error', {}).get('Code', ''))


def classify_error(error: ClientError) -> AccessOutcome:
    """ A denial means the session policy rejected the request. Not found means
    the request got past the policy and only failed on the resource, so the
    owner matched. """
    code = error_code(error)
    if code in DENIED_ERROR_CODES:
        return AccessOutcome.NO_MATCH
    if code in NOT_FOUND_ERROR_CODES:
        return AccessOutcome.MATCH
    return AccessOutcome.INDETERMINATE


def resolve_bucket_region(client: Any, bucket: str) -> str:
    """ S3 reports the bucket's region in a header of every HeadBucket response,
    including denials and redirects. """
    try:
        response = client.head_bucket(Bucket=bucket)
    except ClientError as error:
        if error_code(error) in NO_SUCH_BUCKET_ERROR_CODES:
            raise BucketRegionError('Bucket {} does not exist'.format(bucket)) from error
        response = error.response
    except BotoCoreError as error:
        raise ProbeTransportError('Failed to get bucket region: {}'.format(error)) from error

    headers = response.get('ResponseMetadata', {}).get('HTTPHeaders', {})
    region = response.get('BucketRegion') or headers.get(BUCKET_REGION_HEADER)
    if not region:
        raise BucketRegionError('Failed to get bucket region for {}'.format(bucket))
    return region


class AccessProber:
    """ Checks whether a role, restricted by a session policy, can reach a
    bucket or object. """

    def __init__(self,
                 session: Any = None,
                 region_cache: Optional[BucketRegionCache] = None,
                 client_factory: Callable[..., Any] = get_boto3_client,
                 lookup_region: str = settings.REGION,
                 sts_client: Any = None) -> None:
        self.region_cache = region_cache if region_cache is not None else BucketRegionCache()
        self.client_factory = client_factory
        self.lookup_region = lookup_region
        # Clients are thread safe, sessions are not: build the STS client once.
        if sts_client is None:
            sts_client = client_factory('sts', region=lookup_region, session=session)
        self.sts_client = sts_client
        self.calls = 0
        self._lock = threading.Lock()

    def probe(self, target: Target, identity: AssumeRoleDescriptor, policy: Optional[Policy] = None) -> AccessOutcome:
        with self._lock:
            self.calls += 1

        credentials = assume_role(self.sts_client, identity, policy)

        def resolve(bucket: str) -> str:
            return resolve_bucket_region(self.client_factory('s3', region=self.lookup_region, credentials=credentials),
                                         bucket)

        region = self.region_cache.get_or_resolve(target.bucket, resolve)
        s3 = self.client_factory('s3', region=region, credentials=credentials)

        try:
            if target.key:
                s3.head_object(Bucket=target.bucket, Key=target.key)
            else:
                s3.head_bucket(Bucket=target.bucket)
        except ClientError as error:
            outcome = classify_error(error)
            if outcome is AccessOutcome.INDETERMINATE:
                raise IndeterminateAccessError(
                    'Unexpected error code {}: {}'.format(error_code(error), error), error_code(error)
                ) from error
        except BotoCoreError as error:
            raise ProbeTransportError(str(error)) from error
        else:
            outcome = AccessOutcome.MATCH

        logger.debug('%s with %s: %s', target, policy.patterns if policy else 'no policy', outcome.value)
        return outcome
