"""
Unit tests for Pod environment resolution
"""
import pytest

from galerainit.environment import PodEnvironment, get_pod_env
from galerainit.exceptions import EnvironmentResolutionError

BASE_ENV = {
    'POD_NAME': 'mariadb-galera-1',
    'POD_NAMESPACE': 'db',
    'MARIADB_NAME': 'mariadb-galera',
}


class TestGetPodEnv:
    """Tests for get_pod_env"""

    def test_required_values(self):
        env = get_pod_env(BASE_ENV)
        assert env.pod_name == 'mariadb-galera-1'
        assert env.pod_namespace == 'db'
        assert env.mariadb_name == 'mariadb-galera'

    def test_defaults(self):
        env = get_pod_env(BASE_ENV)
        assert env.pod_ip == ''
        assert env.cluster_name == 'cluster.local'
        assert env.mysql_tcp_port == 3306

    def test_optional_values(self):
        env = get_pod_env({
            **BASE_ENV,
            'POD_IP': '10.0.0.5',
            'CLUSTER_NAME': 'example.org',
            'MARIADB_ROOT_PASSWORD': 'secret',
            'MYSQL_TCP_PORT': '3307',
        })
        assert env.pod_ip == '10.0.0.5'
        assert env.cluster_name == 'example.org'
        assert env.mariadb_root_password == 'secret'
        assert env.mysql_tcp_port == 3307

    @pytest.mark.parametrize('missing', ['POD_NAME', 'POD_NAMESPACE', 'MARIADB_NAME'])
    def test_missing_required_value(self, missing):
        environ = {k: v for k, v in BASE_ENV.items() if k != missing}
        with pytest.raises(EnvironmentResolutionError, match=missing):
            get_pod_env(environ)

    def test_empty_required_value(self):
        with pytest.raises(EnvironmentResolutionError):
            get_pod_env({**BASE_ENV, 'POD_NAME': ''})

    def test_invalid_port(self):
        with pytest.raises(EnvironmentResolutionError, match='MYSQL_TCP_PORT'):
            get_pod_env({**BASE_ENV, 'MYSQL_TCP_PORT': 'abc'})

    def test_reads_os_environ_by_default(self, monkeypatch):
        for key, value in BASE_ENV.items():
            monkeypatch.setenv(key, value)
        assert get_pod_env().pod_name == 'mariadb-galera-1'


class TestPodEnvironment:
    """Tests for PodEnvironment"""

    def test_node_address_prefers_pod_ip(self):
        env = PodEnvironment('mariadb-galera-0', 'db', 'mariadb-galera', pod_ip='10.0.0.1')
        assert env.node_address == '10.0.0.1'

    def test_node_address_falls_back_to_fqdn(self):
        env = PodEnvironment('mariadb-galera-0', 'db', 'mariadb-galera')
        assert env.node_address == 'mariadb-galera-0.mariadb-galera-internal.db.svc.cluster.local'

    def test_is_immutable(self):
        env = PodEnvironment('mariadb-galera-0', 'db', 'mariadb-galera')
        with pytest.raises(AttributeError):
            env.pod_name = 'other'
