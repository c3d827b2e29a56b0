import logging
import threading
from multiprocessing.dummy import Pool as ThreadPool
from typing import Callable, List, Optional, Tuple

from bucketowner import settings
from bucketowner.core.lib import BucketOwnerException, DigitNotFoundError, NoBaselineAccessError
from bucketowner.core.policy import ACCOUNT_ID_LENGTH, DIGITS, build_policy
from bucketowner.core.prober import AccessOutcome, AccessProber
from bucketowner.core.target import Target
from bucketowner.identity import AssumeRoleDescriptor

logger = logging.getLogger(__name__)

# (position, digit, account ID so far, probes issued in the round)
DigitCallback = Callable[[int, str, str, int], None]


class DiscoveryEngine:
    """ Finds the account ID owning a bucket one digit at a time.

    For every position the ten candidate digits are probed in parallel, each
    under a session policy that only allows access to buckets whose owner
    starts with the confirmed prefix plus that digit. Confirmed digits are
    never revisited. """

    def __init__(self,
                 prober: AccessProber,
                 max_threads: int = settings.MAX_THREADS,
                 round_retries: int = settings.ROUND_RETRIES,
                 on_digit: Optional[DigitCallback] = None) -> None:
        if round_retries < 0:
            raise ValueError('round_retries must be 0 or more, not {}'.format(round_retries))
        self.prober = prober
        self.max_threads = max_threads
        self.round_retries = round_retries
        self.on_digit = on_digit
        self.probes = 0
        self.rounds: List[dict] = []
        self.account_id = ''
        self._lock = threading.Lock()

    def discover(self, target: Target, identity: AssumeRoleDescriptor) -> str:
        self.probes = 0
        self.rounds = []
        self.account_id = ''

        if self.prober.probe(target, identity, None) is not AccessOutcome.MATCH:
            raise NoBaselineAccessError('{} cannot access {}'.format(identity.role_arn, target.bucket))

        for position in range(ACCOUNT_ID_LENGTH):
            digit, probes = self._find_digit_with_retries(target, identity, self.account_id, position)
            self.account_id += digit
            self.rounds.append({'position': position, 'digit': digit, 'probes': probes})
            logger.info('Found digits so far: %s', self.account_id)
            if self.on_digit is not None:
                self.on_digit(position, digit, self.account_id, probes)

        return self.account_id

    def _find_digit_with_retries(self, target: Target, identity: AssumeRoleDescriptor,
                                 prefix: str, position: int) -> Tuple[str, int]:
        probes = 0
        for attempt in range(self.round_retries + 1):
            if attempt:
                logger.warning('No digit matched at position %d, retrying (%d/%d)', position, attempt, self.round_retries)
            try:
                digit, issued = self.find_next_digit(target, identity, prefix)
            except BucketOwnerException as error:
                error.partial = prefix
                raise
            probes += issued
            if digit is not None:
                return digit, probes
        raise DigitNotFoundError(position, prefix)

    def find_next_digit(self, target: Target, identity: AssumeRoleDescriptor, prefix: str) -> Tuple[Optional[str], int]:
        """ Probe prefix+0 .. prefix+9 concurrently. Returns the matching digit, or
        None when nothing matched, and the number of probes issued.

        The lowest matching digit wins. Once a digit has matched, only the
        lower digits still running are waited for; the rest are abandoned.
        Probes already running finish on their own, queued ones never start. """
        issued = []

        def check(digit: str) -> Tuple[str, AccessOutcome]:
            with self._lock:
                issued.append(digit)
                self.probes += 1
            return digit, self.prober.probe(target, identity, build_policy([prefix + digit]))

        finished = set()
        matches = []
        with ThreadPool(self.max_threads) as pool:
            for digit, outcome in pool.imap_unordered(check, DIGITS):
                finished.add(digit)
                if outcome is AccessOutcome.MATCH:
                    matches.append(digit)
                    if len(matches) > 1:
                        logger.warning('More than one digit matched after %r: %s', prefix, ', '.join(sorted(matches)))
                if matches and all(d in finished for d in DIGITS if d < min(matches)):
                    break

        with self._lock:
            count = len(issued)
        if not matches:
            return None, count
        return min(matches), count
