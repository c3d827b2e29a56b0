import logging
import threading
from typing import Callable, Dict, Optional


class BucketRegionCache:
    """ Bucket name -> region, shared by every probe of a process.

    Resolution happens outside the lock, so two probes may both resolve an
    uncached bucket. The first stored value is kept; a bucket's region does not
    change while a search runs. Entries never expire. """

    def __init__(self) -> None:
        self._regions: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, bucket: str) -> Optional[str]:
        with self._lock:
            return self._regions.get(bucket)

    def get_or_resolve(self, bucket: str, resolver: Callable[[str], str]) -> str:
        region = self.get(bucket)
        if region is not None:
            return region

        region = resolver(bucket)
        with self._lock:
            region = self._regions.setdefault(bucket, region)
        logging.getLogger(__name__).debug('Bucket %s is in %s', bucket, region)
        return region

    def __contains__(self, bucket: str) -> bool:
        return self.get(bucket) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._regions)
