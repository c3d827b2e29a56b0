import json
from dataclasses import dataclass
from typing import Iterable, Tuple

ACCOUNT_ID_LENGTH = 12
DIGITS = '0123456789'

POLICY_VERSION = '2012-10-17'
RESOURCE_ACCOUNT_KEY = 's3:ResourceAccount'


class PrefixSet(tuple):
    """ Ordered, non-empty, duplicate free set of account ID prefixes.

    Each prefix is 1-12 digits. The wildcard is added by the policy, not here. """

    def __new__(cls, prefixes: Iterable[str]) -> 'PrefixSet':
        if isinstance(prefixes, str):
            raise TypeError('Expected an iterable of prefixes, not a single string: {!r}'.format(prefixes))
        seen = []
        for prefix in prefixes:
            if not (1 <= len(prefix) <= ACCOUNT_ID_LENGTH) or not all(c in DIGITS for c in prefix):
                raise ValueError('Invalid account ID prefix: {!r}'.format(prefix))
            if prefix not in seen:
                seen.append(prefix)
        if not seen:
            raise ValueError('A prefix set needs at least one prefix')
        return super().__new__(cls, seen)


@dataclass(frozen=True)
class Policy:
    """ Session policy that only allows S3 actions on resources owned by an
    account matching one of the prefixes. """
    prefixes: PrefixSet

    @property
    def patterns(self) -> Tuple[str, ...]:
        return tuple('{}*'.format(prefix) for prefix in self.prefixes)

    def document(self) -> dict:
        return {
            'Version': POLICY_VERSION,
            'Statement': [
                {
                    'Sid': 'AllowResourceAccount',
                    'Effect': 'Allow',
                    'Action': 's3:*',
                    'Resource': '*',
                    'Condition': {
                        'StringLike': {
                            RESOURCE_ACCOUNT_KEY: list(self.patterns)
                        }
                    }
                }
            ]
        }

    def to_json(self) -> str:
        return json.dumps(self.document(), separators=(',', ':'))


def build_policy(prefixes: Iterable[str]) -> Policy:
    if not isinstance(prefixes, PrefixSet):
        prefixes = PrefixSet(prefixes)
    return Policy(prefixes)
