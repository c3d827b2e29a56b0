import json
import logging
import sys
import time
import traceback
from typing import Optional

from bucketowner import settings
from bucketowner.core.lib import error_log_path

NOISY_LOGGERS = ('boto3', 'botocore', 's3transfer', 'urllib3')


def configure_logging(verbosity: int = 0) -> None:
    """ 0: warnings only, 1: confirmed digits and role handling, 2: every probe. """
    level = {0: logging.WARNING, 1: logging.INFO}.get(verbosity, logging.DEBUG)
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(threadName)s - %(levelname)s - %(message)s',
    )
    logging.getLogger('bucketowner').setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def log_error(text: str, exception_info: Optional[BaseException] = None, run=None) -> None:
    """ Append an error to the error log in the home directory. With a
    verbosity of 'low' the recorded data of the failed run is added. """

    timestamp = time.strftime('%F %T', time.gmtime())
    log_file_path = error_log_path()

    print('\n[{}] The search failed. Check {} for technical details. [LOG LEVEL: {}]\n\n    {}\n'.format(
        timestamp, log_file_path, settings.ERROR_LOG_VERBOSITY.upper(), exception_info), file=sys.stderr)

    if run is not None:
        run_tag = '({})'.format(run.path)
    else:
        run_tag = '<No Run>'

    formatted_text = '[{}] {}: {}'.format(timestamp, run_tag, text)

    if exception_info is not None:
        formatted_text += ''.join(traceback.format_exception(type(exception_info), exception_info,
                                                             exception_info.__traceback__))

    if settings.ERROR_LOG_VERBOSITY.lower() == 'low' and run is not None:
        formatted_text += 'RUN DATA:\n    {}\n'.format(
            json.dumps(
                run.get_fields_as_camel_case_dictionary(),
                indent=4,
                default=str
            )
        )

    formatted_text += '\n'

    with open(log_file_path, 'a+') as log_file:
        log_file.write(formatted_text)
