from dataclasses import dataclass

from bucketowner.core.lib import InvalidTargetError

S3_SCHEME = 's3://'


@dataclass(frozen=True)
class Target:
    """A bucket, or an object inside it when key is not empty."""
    bucket: str
    key: str = ''

    def __post_init__(self) -> None:
        if not self.bucket:
            raise InvalidTargetError('No bucket name was supplied')

    def __str__(self) -> str:
        if self.key:
            return '{}{}/{}'.format(S3_SCHEME, self.bucket, self.key)
        return '{}{}'.format(S3_SCHEME, self.bucket)


def parse_target(path: str) -> Target:
    """ Split "bucket", "bucket/key" or "s3://bucket/key" into a Target.
    Everything after the first "/" is the key. """
    path = path.strip()
    if path.startswith(S3_SCHEME):
        path = path[len(S3_SCHEME):]

    bucket, _, key = path.partition('/')
    return Target(bucket=bucket, key=key)
