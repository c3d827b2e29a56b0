import os


# Meaningful values: 'minimal', 'low'
# 'Minimal' will only add tracebacks to error log files.
# 'Low' will also add the data recorded for the failed run (bucket, key, role,
# partial account ID and the per-round digit log). Credentials are never logged.
from pathlib import Path

ERROR_LOG_VERBOSITY = 'minimal'

_home_dir = Path(os.environ.get('BUCKETOWNER_HOME', '~/.local/share/bucketowner'))
home_dir = _home_dir.expanduser().absolute()

os.makedirs(home_dir, exist_ok=True, mode=0o700)

DATABASE_FILE_PATH = os.path.join(home_dir, 'sqlite.db')

if os.path.isabs(DATABASE_FILE_PATH):
    DATABASE_CONNECTION_PATH = 'sqlite:///' + DATABASE_FILE_PATH
else:
    DATABASE_CONNECTION_PATH = 'sqlite://' + DATABASE_FILE_PATH

# Region used to look up where a bucket lives before it is addressed directly.
REGION = 'us-east-1'

ROLE_SESSION_NAME = 'BucketOwnerSearch'

# Lifetime of each policy-scoped session, the minimum STS allows.
SESSION_DURATION = 900

# One worker per candidate digit.
MAX_THREADS = 10

# Retries for throttling and transient network errors are left to botocore.
MAX_ATTEMPTS = 10

# How many times a round with no matching digit is repeated before giving up.
ROUND_RETRIES = 0

# Seconds to wait after creating a temporary role before STS will accept it.
ROLE_PROPAGATION_DELAY = 10
