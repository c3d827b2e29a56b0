#!/usr/bin/env python3
import argparse
import sys
from typing import List, Optional

from bucketowner import settings
from bucketowner.aws import get_boto3_client, get_boto3_session
from bucketowner.core.engine import DiscoveryEngine
from bucketowner.core.lib import BucketOwnerException, NoBaselineAccessError, strip_lines
from bucketowner.core.models import DiscoveryRun
from bucketowner.core.prober import AccessProber
from bucketowner.core.target import Target, parse_target
from bucketowner.identity import AssumeRoleDescriptor, temporary_role
from bucketowner.logging import configure_logging, log_error
from bucketowner.setup_database import setup_database_if_not_present
from bucketowner.utils import account_id_mask, get_database_connection, set_sigint_handler

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_NO_ACCESS = 3


def non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError('invalid int value: {!r}'.format(value))
    if number < 0:
        raise argparse.ArgumentTypeError('must be 0 or more, got {}'.format(number))
    return number


parser = argparse.ArgumentParser(
    prog='bucketowner',
    description=strip_lines('''
        Discovers the AWS account ID that owns an S3 bucket. The role is assumed with session policies
        that only allow access to buckets owned by accounts starting with a given prefix, and the
        account ID is found one digit at a time from which prefixes are allowed.
        ref: https://cloudar.be/awsblog/finding-the-account-id-of-any-public-s3-bucket/
    '''),
)
parser.add_argument('paths', nargs='*', metavar='PATH',
                    help='s3 bucket or bucket/key to test with, optionally prefixed with s3://')
role_group = parser.add_mutually_exclusive_group()
role_group.add_argument('--role-arn', default=None,
                        help='ARN of the role to assume. It needs s3:GetObject and/or s3:ListBucket on the target')
role_group.add_argument('--create-role', action='store_true',
                        help='Create a temporary role for the search and delete it afterwards (requires IAM write access)')
parser.add_argument('--external-id', default=None, help='External ID to pass when assuming the role')
parser.add_argument('--profile', default=None, help='AWS profile to use as the source credentials')
parser.add_argument('--region', default=settings.REGION, help='Region used to look up bucket locations')
parser.add_argument('--round-retries', type=non_negative_int, default=settings.ROUND_RETRIES,
                    help='Repeat a digit round this many times when no digit matched')
parser.add_argument('--threads', type=int, default=settings.MAX_THREADS, help=argparse.SUPPRESS)
parser.add_argument('--no-save', action='store_true', help='Do not record the search in the history database')
parser.add_argument('--history', action='store_true', help='List previous searches and exit')
parser.add_argument('-v', '--verbose', action='count', default=0, help='-v for progress logs, -vv for every probe')


def search_bucket(target: Target,
                  identity: AssumeRoleDescriptor,
                  prober: AccessProber,
                  round_retries: int = settings.ROUND_RETRIES,
                  max_threads: int = settings.MAX_THREADS,
                  database=None) -> DiscoveryRun:
    run = DiscoveryRun(bucket=target.bucket, key=target.key, role_arn=identity.role_arn,
                       status=DiscoveryRun.STATUS_RUNNING, account_id='', probes=0, rounds=[])
    if database is not None:
        database.add(run)
        database.commit()

    def on_digit(position: int, digit: str, account_id: str, probes: int) -> None:
        print('Found digits so far: {} {}'.format(account_id_mask(account_id), account_id))
        if database is not None:
            run.add_round(database, position, digit, probes)

    engine = DiscoveryEngine(prober, max_threads=max_threads, round_retries=round_retries, on_digit=on_digit)
    calls_before = prober.calls

    print('Starting search for {} (this can take a while)'.format(target))
    failure = None
    try:
        engine.discover(target, identity)
    except NoBaselineAccessError as error:
        print(str(error), file=sys.stderr)
        fields = {'status': DiscoveryRun.STATUS_NO_ACCESS, 'error': str(error)}
    except BucketOwnerException as error:
        failure = error
        fields = {'status': DiscoveryRun.STATUS_FAILED, 'error': str(error)}
        if error.partial:
            print('Partial account ID found: {}'.format(error.partial), file=sys.stderr)
    else:
        fields = {'status': DiscoveryRun.STATUS_COMPLETE}

    fields.update(account_id=engine.account_id, rounds=engine.rounds, probes=prober.calls - calls_before)
    if database is not None:
        run.update(database, **fields)
    else:
        for key, value in fields.items():
            setattr(run, key, value)

    if run.status == DiscoveryRun.STATUS_FAILED:
        log_error('Search for {} failed\n'.format(target), exception_info=failure, run=run)
    elif run.status == DiscoveryRun.STATUS_COMPLETE:
        print('Bucket owner account ID: {}'.format(run.account_id))
    return run


def search_all(targets: List[Target], identity: AssumeRoleDescriptor, prober: AccessProber,
               args: argparse.Namespace, database=None) -> List[DiscoveryRun]:
    runs = []
    for target in targets:
        runs.append(search_bucket(target, identity, prober, args.round_retries, args.threads, database))
    return runs


def summary(runs: List[DiscoveryRun]) -> str:
    """Summarize a list of runs for the terminal."""
    if not runs:
        return 'No buckets were searched.'

    found = [run for run in runs if run.is_complete]
    msg = '{} account IDs found from {} buckets.\n{} buckets failed.\n'.format(
        len(found), len(runs), len(runs) - len(found))

    for run in runs:
        if run.is_complete:
            msg += '\n  {}: {}'.format(run.path, run.account_id)
        elif run.status == DiscoveryRun.STATUS_NO_ACCESS:
            msg += '\n  {}: no access'.format(run.path)
        else:
            msg += '\n  {}: failed, partial account ID "{}"'.format(run.path, run.account_id or '')
    return msg


def format_history(runs: List[DiscoveryRun]) -> str:
    if not runs:
        return 'No searches have been recorded.'
    lines = []
    for run in runs:
        lines.append('  #{:<4} {}  {:<10} {:<12} {:>4} probes  {}'.format(
            run.id, run.created.strftime('%Y-%m-%d %H:%M:%S') if run.created else '', run.status,
            run.account_id or '-', run.probes or 0, run.path))
    return '\n'.join(lines)


def exit_code(runs: List[DiscoveryRun]) -> int:
    if any(run.status == DiscoveryRun.STATUS_FAILED for run in runs):
        return EXIT_FAILURE
    if any(run.status == DiscoveryRun.STATUS_NO_ACCESS for run in runs):
        return EXIT_NO_ACCESS
    return EXIT_SUCCESS


def main(args: Optional[List[str]] = None) -> int:
    if not isinstance(args, argparse.Namespace):
        args = parser.parse_args(args)

    configure_logging(args.verbose)
    set_sigint_handler(exit_text='\nSearch cancelled.', value=EXIT_FAILURE)

    database = None
    if args.history or not args.no_save:
        setup_database_if_not_present(settings.DATABASE_FILE_PATH)
        database = get_database_connection(settings.DATABASE_CONNECTION_PATH)

    if args.history:
        print(format_history(DiscoveryRun.history(database)))
        return EXIT_SUCCESS

    if not args.paths:
        parser.error('at least one PATH is required')
    if not args.role_arn and not args.create_role:
        parser.error('one of --role-arn or --create-role is required')

    try:
        targets = [parse_target(path) for path in args.paths]
        session = get_boto3_session(args.profile, args.region)
        prober = AccessProber(session=session, lookup_region=args.region)

        if args.create_role:
            iam = get_boto3_client('iam', session=session)
            with temporary_role(iam, prober.sts_client, [target.bucket for target in targets]) as identity:
                runs = search_all(targets, identity, prober, args, database)
        else:
            identity = AssumeRoleDescriptor(role_arn=args.role_arn, external_id=args.external_id)
            runs = search_all(targets, identity, prober, args, database)
    except BucketOwnerException as error:
        print('Error: {}'.format(error), file=sys.stderr)
        return EXIT_FAILURE

    print('\n' + summary(runs))
    return exit_code(runs)
