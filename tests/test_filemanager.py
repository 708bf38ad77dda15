"""
Unit tests for FileManager
"""
import pytest

from galerainit.filemanager import FileManager


@pytest.fixture
def fm(tmp_path):
    config_dir = tmp_path / 'config'
    state_dir = tmp_path / 'state'
    state_dir.mkdir()
    return FileManager(config_dir, state_dir)


class TestConfigFiles:
    """Tests for config file access"""

    def test_write_creates_config_dir(self, fm):
        fm.write_config_file('0-galera.cnf', b'[galera]\n')
        assert (fm.config_dir / '0-galera.cnf').read_bytes() == b'[galera]\n'
        assert fm.config_file_exists('0-galera.cnf')

    def test_read_missing_file(self, fm):
        with pytest.raises(FileNotFoundError):
            fm.read_config_file('0-galera.cnf')

    def test_write_overwrites(self, fm):
        fm.write_config_file('1-bootstrap.cnf', b'old')
        fm.write_config_file('1-bootstrap.cnf', b'new')
        assert fm.read_config_file('1-bootstrap.cnf') == b'new'


class TestStateFiles:
    """Tests for state file access"""

    def test_exists(self, fm):
        assert not fm.state_file_exists('grastate.dat')
        (fm.state_dir / 'grastate.dat').write_text('seqno: -1\n')
        assert fm.state_file_exists('grastate.dat')

    def test_delete(self, fm):
        (fm.state_dir / 'sst_in_progress').touch()
        fm.delete_state_file('sst_in_progress')
        assert not fm.state_file_exists('sst_in_progress')

    def test_delete_missing_is_not_an_error(self, fm):
        fm.delete_state_file('wsrep_sst.pid')

    def test_delete_directory_fails(self, fm):
        (fm.state_dir / 'gvwstate.dat').mkdir()
        with pytest.raises(OSError):
            fm.delete_state_file('gvwstate.dat')
