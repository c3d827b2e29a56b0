import fnmatch
import os
import tempfile
import threading
import time
from typing import Dict, Iterable, Optional

import pytest

os.environ.setdefault('BUCKETOWNER_HOME', tempfile.mkdtemp(prefix='bucketowner-tests-'))

from bucketowner import settings  # noqa: E402

settings.DATABASE_CONNECTION_PATH = "sqlite:///:memory:"

from sqlalchemy import create_engine, orm  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from bucketowner.core import base  # noqa: E402
from bucketowner.core.models import DiscoveryRun  # noqa: E402,F401
from bucketowner.core.policy import RESOURCE_ACCOUNT_KEY, Policy  # noqa: E402
from bucketowner.core.prober import AccessOutcome  # noqa: E402
from bucketowner.core.target import Target  # noqa: E402
from bucketowner.identity import AssumeRoleDescriptor  # noqa: E402

ROLE_ARN = 'arn:aws:iam::111111111111:role/s3-reader'


class SimulatedProber:
    """ Stands in for AccessProber. Evaluates the generated session policy
    against the simulated owners the way IAM evaluates StringLike. """

    def __init__(self,
                 owners: Iterable[str] = ('012345678901',),
                 accessible: bool = True,
                 delays: Optional[Dict[str, float]] = None,
                 blocked_after: Optional[int] = None) -> None:
        self.owners = list(owners)
        self.accessible = accessible
        self.delays = delays or {}
        self.blocked_after = blocked_after
        self.calls = 0
        self.policies = []
        self._lock = threading.Lock()

    def patterns(self, policy: Policy):
        return policy.document()['Statement'][0]['Condition']['StringLike'][RESOURCE_ACCOUNT_KEY]

    def probe(self, target: Target, identity: AssumeRoleDescriptor, policy: Optional[Policy] = None) -> AccessOutcome:
        with self._lock:
            self.calls += 1
            self.policies.append(policy)

        if policy is None:
            return AccessOutcome.MATCH if self.accessible else AccessOutcome.NO_MATCH

        prefix = policy.prefixes[0]
        if prefix in self.delays:
            time.sleep(self.delays[prefix])
        if self.blocked_after is not None and len(prefix) > self.blocked_after:
            return AccessOutcome.NO_MATCH

        for owner in self.owners:
            if any(fnmatch.fnmatchcase(owner, pattern) for pattern in self.patterns(policy)):
                return AccessOutcome.MATCH
        return AccessOutcome.NO_MATCH


@pytest.fixture
def simulated_prober():
    return SimulatedProber


@pytest.fixture
def identity() -> AssumeRoleDescriptor:
    return AssumeRoleDescriptor(role_arn=ROLE_ARN)


@pytest.fixture(scope="function")
def db() -> orm.session.Session:
    base.engine: Engine = create_engine(settings.DATABASE_CONNECTION_PATH)
    base.Session: sessionmaker = sessionmaker(bind=base.engine)
    base.Base.metadata.create_all(base.engine)
    yield base.Session()


@pytest.fixture(autouse=True)
def aws_credentials():
    """Mocked AWS Credentials for moto."""

    value = "testing"
    os.environ["AWS_ACCESS_KEY_ID"] = value
    os.environ["AWS_SECRET_ACCESS_KEY"] = value
    os.environ["AWS_SECURITY_TOKEN"] = value
    os.environ["AWS_SESSION_TOKEN"] = value
    os.environ["AWS_DEFAULT_REGION"] = settings.REGION
    yield value
