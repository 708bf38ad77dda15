"""
Unit tests for StatefulSet naming helpers
"""
import pytest

from galerainit.exceptions import GaleraInitError, OrdinalParseError
from galerainit.statefulset import pod_index, pod_name


class TestPodIndex:
    """Tests for pod_index"""

    @pytest.mark.parametrize('name,expected', [
        ('mariadb-0', 0),
        ('mariadb-galera-2', 2),
        ('mariadb-galera-10', 10),
    ])
    def test_valid_names(self, name, expected):
        assert pod_index(name) == expected

    @pytest.mark.parametrize('name', [
        'mariadb',
        'mariadb-',
        'mariadb-galera-x',
        'mariadb-+1',
        'mariadb-1 ',
        '-1',
        '',
    ])
    def test_malformed_names(self, name):
        with pytest.raises(OrdinalParseError):
            pod_index(name)

    def test_parse_error_is_init_error_and_value_error(self):
        with pytest.raises(GaleraInitError):
            pod_index('mariadb')
        with pytest.raises(ValueError):
            pod_index('mariadb')


class TestPodName:
    """Tests for pod_name"""

    def test_builds_ordinal_name(self):
        assert pod_name('mariadb-galera', 1) == 'mariadb-galera-1'

    def test_round_trips_with_pod_index(self):
        assert pod_index(pod_name('mariadb-galera', 7)) == 7
