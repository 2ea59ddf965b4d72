import pytest
from click.testing import CliRunner

from ssrs_admin.cli.main import cli


@pytest.fixture
def run(proxy):
    runner = CliRunner()

    def invoke(*args, **kwargs):
        return runner.invoke(cli, list(args), obj={'proxy': proxy}, **kwargs)

    return invoke


def test_ls(run):
    result = run('ls', '/Sales')

    assert result.exit_code == 0
    assert '/Sales/Revenue' in result.output
    assert 'Folder' in result.output


def test_find_exact(run):
    result = run('find', 'revenue', '--folder', '/Sales', '--exact')

    assert result.exit_code == 0
    assert '/Sales/Revenue' in result.output
    assert 'by Region' not in result.output


def test_find_no_match(run):
    result = run('find', 'Budget')

    assert result.exit_code == 0
    assert "No items matching 'Budget'" in result.output


def test_exists_exit_codes(run):
    assert run('exists', 'Sales\\Revenue').exit_code == 0
    assert run('exists', '/Sales/Nope').exit_code == 1


def test_mkdir(run, proxy):
    result = run('mkdir', 'Quarterly', '--parent', '/Finance')

    assert result.exit_code == 0
    assert proxy.calls_to('create_folder') == [('Quarterly', '/Finance')]


def test_publish(run, proxy, rdl_file):
    result = run('publish', str(rdl_file), '/Finance')

    assert result.exit_code == 0
    assert 'Published /Finance/Quarterly' in result.output
    assert proxy.calls_to('create_report')[0][:3] == ('Quarterly', '/Finance', False)


def test_publish_existing_reports_error(run, proxy, rdl_file):
    proxy.add('/Finance/Quarterly', 'Report')

    result = run('publish', str(rdl_file), '/Finance')

    assert result.exit_code == 1
    assert 'already exists' in result.output


def test_publish_directory(run, proxy, tmp_path):
    local = tmp_path / 'rdl'
    local.mkdir()
    (local / 'A.rdl').write_bytes(b'<Report/>')

    result = run('publish', str(local), '/Finance', '--overwrite')

    assert result.exit_code == 0
    assert proxy.calls_to('create_report')[0][:3] == ('A', '/Finance', True)


def test_delete_requires_confirmation(run, proxy):
    result = run('delete', '/Sales/Revenue', input='n\n')

    assert result.exit_code == 1
    assert proxy.calls_to('delete_item') == []


def test_delete_confirmed(run, proxy):
    result = run('delete', '/Sales/Revenue', '--yes')

    assert result.exit_code == 0
    assert proxy.calls_to('delete_item') == [('/Sales/Revenue',)]


def test_delete_missing_item(run):
    result = run('delete', '/Sales/Nope', '--yes')

    assert result.exit_code == 1
    assert "Error: Item '/Sales/Nope' was not found." in result.output


def test_move(run, proxy):
    result = run('move', '/Sales/Revenue', '/Finance')

    assert result.exit_code == 0
    assert 'Moved to /Finance/Revenue' in result.output


def test_export(run, tmp_path):
    result = run('export', '/Sales/Revenue', str(tmp_path))

    assert result.exit_code == 0
    assert (tmp_path / 'Revenue.rdl').read_bytes() == b'<Report>revenue</Report>'


def test_export_folder(run, tmp_path):
    result = run('export', '/Sales', str(tmp_path / 'backup'), '--folder', '--recursive')

    assert result.exit_code == 0
    assert 'Exported 3 report(s)' in result.output
    assert (tmp_path / 'backup' / 'Archive' / 'Revenue 2019.rdl').exists()


def test_datasources(run):
    result = run('datasources', '/Sales/Revenue')

    assert result.exit_code == 0
    assert 'Main' in result.output
    assert '(embedded)' in result.output


def test_set_datasource(run, proxy):
    result = run('set-datasource', '/Sales/Revenue', 'Main', '/Data Sources/Warehouse')

    assert result.exit_code == 0
    assert proxy.calls_to('set_item_data_sources')[0][0] == '/Sales/Revenue'


def test_missing_configuration(monkeypatch):
    monkeypatch.delenv('SSRS_URL', raising=False)

    result = CliRunner().invoke(cli, ['ls'])

    assert result.exit_code == 1
    assert 'SSRS_URL' in result.output


def test_secrets_commands(tmp_path, monkeypatch):
    monkeypatch.setenv('SSRS_VAULT_MASTER_KEY', 'test-master-key')
    vault_dir = str(tmp_path / '.vault')
    runner = CliRunner()

    result = runner.invoke(cli, ['secrets', '--vault-dir', vault_dir, 'set', 'SSRS_PASSWORD',
                                 '--value', 'hunter2'])
    assert result.exit_code == 0

    result = runner.invoke(cli, ['secrets', '--vault-dir', vault_dir, 'list'])
    assert 'SSRS_PASSWORD' in result.output
    assert 'hunter2' not in result.output

    result = runner.invoke(cli, ['secrets', '--vault-dir', vault_dir, 'delete', 'SSRS_PASSWORD'])
    assert result.exit_code == 0
