import argparse
from unittest.mock import MagicMock, patch

import pytest

from bucketowner import main as cli
from bucketowner.core.lib import CredentialsError, IndeterminateAccessError
from bucketowner.core.models import DiscoveryRun
from bucketowner.core.target import Target

OWNER = '999999999999'
ROLE = ['--role-arn', 'arn:aws:iam::111111111111:role/reader']


@pytest.fixture
def run_main(simulated_prober, tmp_path, monkeypatch):
    monkeypatch.setattr('bucketowner.settings.home_dir', tmp_path)

    def run(args, prober=None, database=None):
        prober = prober or simulated_prober([OWNER])
        with patch('bucketowner.main.get_boto3_session', return_value=MagicMock()), \
                patch('bucketowner.main.AccessProber', return_value=prober), \
                patch('bucketowner.main.setup_database_if_not_present'), \
                patch('bucketowner.main.get_database_connection', return_value=database), \
                patch('bucketowner.main.set_sigint_handler'):
            return cli.main(args)
    return run


def test_main_finds_owner(run_main, capsys):
    assert run_main(ROLE + ['--no-save', 's3://demo']) == cli.EXIT_SUCCESS

    out = capsys.readouterr().out
    assert 'Found digits so far: [*xxxxxxxxxxx] 9' in out
    assert 'Bucket owner account ID: {}'.format(OWNER) in out
    assert '1 account IDs found from 1 buckets.' in out


def test_main_no_access(run_main, simulated_prober, capsys):
    prober = simulated_prober([OWNER], accessible=False)

    assert run_main(ROLE + ['--no-save', 'demo/file.txt'], prober) == cli.EXIT_NO_ACCESS

    captured = capsys.readouterr()
    assert 'cannot access demo' in captured.err
    assert 'demo/file.txt: no access' in captured.out
    assert prober.calls == 1


def test_main_failure_reports_partial(run_main, simulated_prober, tmp_path, capsys):
    prober = simulated_prober([OWNER], blocked_after=4)

    assert run_main(ROLE + ['--no-save', 'demo'], prober) == cli.EXIT_FAILURE

    captured = capsys.readouterr()
    assert 'Partial account ID found: 9999' in captured.err
    assert 'failed, partial account ID "9999"' in captured.out
    assert 'Could not find the digit at position 4' in (tmp_path / 'error_log.txt').read_text()


def test_main_records_runs(run_main, db):
    assert run_main(ROLE + ['demo', 'other/key'], database=db) == cli.EXIT_SUCCESS

    runs = DiscoveryRun.history(db)
    assert [run.path for run in runs] == ['demo', 'other/key']
    assert all(run.account_id == OWNER and run.status == DiscoveryRun.STATUS_COMPLETE for run in runs)
    assert all(len(run.rounds) == 12 for run in runs)
    assert all(run.probes <= 121 for run in runs)


def test_main_history(run_main, db, capsys):
    DiscoveryRun(bucket='demo').update(db, status=DiscoveryRun.STATUS_COMPLETE, account_id=OWNER, probes=70)

    assert run_main(['--history'], database=db) == cli.EXIT_SUCCESS
    out = capsys.readouterr().out
    assert OWNER in out
    assert 'demo' in out


def test_main_requires_role(run_main):
    with pytest.raises(SystemExit) as excinfo:
        run_main(['--no-save', 'demo'])
    assert excinfo.value.code == 2


def test_main_requires_path(run_main):
    with pytest.raises(SystemExit):
        run_main(ROLE + ['--no-save'])


def test_main_bad_target(run_main, capsys):
    assert run_main(ROLE + ['--no-save', 's3://']) == cli.EXIT_FAILURE
    assert 'No bucket name was supplied' in capsys.readouterr().err


def test_main_credentials_error(run_main, capsys):
    with patch('bucketowner.main.get_boto3_session', side_effect=CredentialsError('No AWS credentials were found.')), \
            patch('bucketowner.main.set_sigint_handler'):
        assert cli.main(ROLE + ['--no-save', 'demo']) == cli.EXIT_FAILURE
    assert 'No AWS credentials were found.' in capsys.readouterr().err


def test_main_create_role(run_main, simulated_prober):
    prober = simulated_prober([OWNER])
    prober.sts_client = MagicMock()
    identity = MagicMock(role_arn='arn:aws:iam::111111111111:role/BucketOwnerSearchRole-1')
    role = MagicMock()
    role.__enter__.return_value = identity

    with patch('bucketowner.main.get_boto3_client'), \
            patch('bucketowner.main.temporary_role', return_value=role) as temporary_role:
        assert run_main(['--create-role', '--no-save', 'demo', 'other'], prober) == cli.EXIT_SUCCESS

    assert temporary_role.call_args.args[2] == ['demo', 'other']
    role.__exit__.assert_called_once()


def test_search_bucket_indeterminate(simulated_prober, identity, tmp_path, monkeypatch):
    monkeypatch.setattr('bucketowner.settings.home_dir', tmp_path)

    class Broken(simulated_prober):
        def probe(self, target, identity, policy=None):
            if policy is not None:
                raise IndeterminateAccessError('Unexpected error code SlowDown', 'SlowDown')
            return super().probe(target, identity, policy)

    run = cli.search_bucket(Target('demo'), identity, Broken([OWNER]))

    assert run.status == DiscoveryRun.STATUS_FAILED
    assert 'SlowDown' in run.error
    assert run.account_id == ''


def test_summary_and_exit_code():
    complete = DiscoveryRun(bucket='a', key='', status=DiscoveryRun.STATUS_COMPLETE, account_id=OWNER)
    no_access = DiscoveryRun(bucket='b', key='', status=DiscoveryRun.STATUS_NO_ACCESS, account_id='')
    failed = DiscoveryRun(bucket='c', key='k', status=DiscoveryRun.STATUS_FAILED, account_id='12')

    text = cli.summary([complete, no_access, failed])
    assert '1 account IDs found from 3 buckets.' in text
    assert 'a: {}'.format(OWNER) in text
    assert 'b: no access' in text
    assert 'c/k: failed, partial account ID "12"' in text

    assert cli.exit_code([complete]) == cli.EXIT_SUCCESS
    assert cli.exit_code([complete, no_access]) == cli.EXIT_NO_ACCESS
    assert cli.exit_code([no_access, failed]) == cli.EXIT_FAILURE
    assert cli.summary([]) == 'No buckets were searched.'


def test_main_rejects_negative_round_retries(run_main, capsys):
    with pytest.raises(SystemExit) as excinfo:
        run_main(ROLE + ['--no-save', '--round-retries', '-1', 'demo'])
    assert excinfo.value.code == 2
    assert 'must be 0 or more' in capsys.readouterr().err


def test_non_negative_int():
    assert cli.non_negative_int('0') == 0
    assert cli.non_negative_int('3') == 3
    for value in ('-1', 'two'):
        with pytest.raises(argparse.ArgumentTypeError):
            cli.non_negative_int(value)
