import os
from pathlib import Path
from typing import Optional

from bucketowner import settings


class BucketOwnerException(Exception):
    # Prefix of the account ID confirmed when the error was raised, if any.
    partial = ''


class InvalidTargetError(BucketOwnerException):
    pass


class CredentialsError(BucketOwnerException):
    pass


class BucketRegionError(BucketOwnerException):
    pass


class ProbeTransportError(BucketOwnerException):
    """ Raised when a probe could not reach the point of being classified,
    e.g. the endpoint was unreachable or the assumed credentials were
    rejected. """
    pass


class DiscoveryError(BucketOwnerException):
    """ Base class for errors that stop a search. partial is the prefix of the
    account ID confirmed before the failure. """

    def __init__(self, message: str, partial: str = '') -> None:
        super().__init__(message)
        self.partial = partial


class NoBaselineAccessError(DiscoveryError):
    pass


class IndeterminateAccessError(DiscoveryError):
    def __init__(self, message: str, error_code: str, partial: str = '') -> None:
        super().__init__(message, partial)
        self.error_code = error_code


class DigitNotFoundError(DiscoveryError):
    def __init__(self, position: int, partial: str = '') -> None:
        super().__init__('Could not find the digit at position {} (confirmed so far: "{}")'.format(position, partial),
                         partial)
        self.position = position


def strip_lines(text: str) -> str:
    out = []
    for line in text.splitlines():
        out.append(line.strip('\t '))
    return ' '.join(out)


def home_dir() -> Path:
    return settings.home_dir


def error_log_path(name: Optional[str] = None) -> Path:
    p = (home_dir()/(name or 'error_log.txt')).absolute()
    os.makedirs(p.parent, exist_ok=True)
    return p
