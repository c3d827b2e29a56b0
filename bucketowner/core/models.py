import copy
import datetime
from typing import List, Optional

from sqlalchemy import Column, DateTime, Integer, Text, orm
from sqlalchemy_utils import JSONType  # type: ignore

from bucketowner.core.base import Base
from bucketowner.core.mixins import ModelUpdateMixin


class DiscoveryRun(Base, ModelUpdateMixin):
    __tablename__ = 'discovery_run'

    STATUS_RUNNING = 'running'
    STATUS_COMPLETE = 'complete'
    STATUS_NO_ACCESS = 'no_access'
    STATUS_FAILED = 'failed'

    id = Column(Integer, primary_key=True)
    created = Column(DateTime, default=datetime.datetime.utcnow)

    bucket = Column(Text, nullable=False)
    key = Column(Text, nullable=False, default='')
    role_arn = Column(Text)
    status = Column(Text, nullable=False, default=STATUS_RUNNING)
    account_id = Column(Text, nullable=False, default='')
    probes = Column(Integer, nullable=False, default=0)
    # One entry per round: {'position': 0, 'digit': '0', 'probes': 10}
    rounds = Column(JSONType, nullable=False, default=list)
    error = Column(Text)

    def __repr__(self) -> str:
        return '<DiscoveryRun #{}: {} {}>'.format(self.id, self.path, self.status)

    @property
    def path(self) -> str:
        if self.key:
            return '{}/{}'.format(self.bucket, self.key)
        return self.bucket

    @property
    def is_complete(self) -> bool:
        return self.status == self.STATUS_COMPLETE and len(self.account_id or '') == 12

    def add_round(self, database: orm.session.Session, position: int, digit: str, probes: int) -> None:
        # JSONType is not mutation tracked, so a fresh list has to be assigned.
        rounds = list(self.rounds or [])
        rounds.append({'position': position, 'digit': digit, 'probes': probes})
        self.update(database, rounds=rounds, account_id=(self.account_id or '') + digit,
                    probes=(self.probes or 0) + probes)

    def get_fields_as_camel_case_dictionary(self) -> dict:
        return copy.deepcopy({
            'Id': self.id,
            'Created': self.created,
            'Bucket': self.bucket,
            'Key': self.key,
            'RoleArn': self.role_arn,
            'Status': self.status,
            'AccountId': self.account_id,
            'Probes': self.probes,
            'Rounds': self.rounds,
            'Error': self.error,
        })

    @classmethod
    def history(cls, database: orm.session.Session, bucket: Optional[str] = None) -> List['DiscoveryRun']:
        query = database.query(cls)
        if bucket:
            query = query.filter(cls.bucket == bucket)
        return query.order_by(cls.id).all()
