"""
Pytest configuration and shared fixtures

Django settings are configured here so the galerainit app and its
management command can be loaded without a project.
"""
import threading

import django
import pytest
from django.conf import settings
from kubernetes import client
from kubernetes.client.rest import ApiException

from galerainit.config import GaleraConfigGenerator
from galerainit.environment import PodEnvironment
from galerainit.kube import MariaDB
from galerainit.orchestrator import InitContext


def pytest_configure():
    if not settings.configured:
        settings.configure(
            INSTALLED_APPS=['galerainit'],
            USE_TZ=True,
            GALERA_INIT_POLL_INTERVAL=0.01,
            GALERA_INIT_LOCK_TIMEOUT=1,
        )
        django.setup()


# =============================================================================
# In-memory fakes
# =============================================================================

class FakeStore:
    """In-memory StateStore with per-file failure injection."""

    def __init__(self, config=None, state=None):
        self.config = dict(config or {})
        self.state = dict(state or {})
        self.fail_write = set()
        self.fail_delete = set()
        self.fail_exists = set()
        self.writes = []
        self.deletes = []

    def snapshot(self):
        return dict(self.config), dict(self.state)

    def config_file_exists(self, name):
        return name in self.config

    def read_config_file(self, name):
        if name not in self.config:
            raise FileNotFoundError(name)
        return self.config[name]

    def write_config_file(self, name, content):
        if name in self.fail_write:
            raise PermissionError(f'cannot write {name}')
        self.writes.append(name)
        self.config[name] = content

    def state_file_exists(self, name):
        if name in self.fail_exists:
            raise PermissionError(f'cannot stat {name}')
        return name in self.state

    def delete_state_file(self, name):
        if name in self.fail_delete:
            raise PermissionError(f'cannot delete {name}')
        self.deletes.append(name)
        self.state.pop(name, None)


class FakeClusterClient:
    """ClusterClient returning a fixed MariaDB and a scripted sequence of Pods.

    Each entry of pods is either a Pod object or an exception to raise.
    The last entry repeats once the sequence is exhausted.
    """

    def __init__(self, mdb=None, mdb_error=None, pods=None, on_get_pod=None):
        self.mdb = mdb
        self.mdb_error = mdb_error
        self.pods = list(pods or [])
        self.on_get_pod = on_get_pod
        self.mariadb_calls = []
        self.pod_calls = []

    def get_mariadb(self, namespace, name):
        self.mariadb_calls.append((namespace, name))
        if self.mdb_error is not None:
            raise self.mdb_error
        return self.mdb

    def get_pod(self, namespace, name):
        self.pod_calls.append((namespace, name))
        if self.on_get_pod is not None:
            self.on_get_pod(len(self.pod_calls))
        index = min(len(self.pod_calls), len(self.pods)) - 1
        item = self.pods[index]
        if isinstance(item, Exception):
            raise item
        return item


class RecordingEvent(threading.Event):
    """Event whose wait() records the timeout instead of sleeping."""

    def __init__(self):
        super().__init__()
        self.waits = []

    def wait(self, timeout=None):
        self.waits.append(timeout)
        return self.is_set()


def make_pod(name, ready):
    return client.V1Pod(
        metadata=client.V1ObjectMeta(name=name),
        status=client.V1PodStatus(
            conditions=[client.V1PodCondition(type='Ready', status='True' if ready else 'False')],
        ),
    )


def not_found():
    return ApiException(status=404, reason='Not Found')


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def pod_env():
    return PodEnvironment(
        pod_name='mariadb-galera-0',
        pod_namespace='default',
        mariadb_name='mariadb-galera',
        pod_ip='10.244.0.10',
        mariadb_root_password='MariaDB11!',
    )


@pytest.fixture
def mdb():
    return MariaDB(name='mariadb-galera', namespace='default', replicas=3)


@pytest.fixture
def make_ctx(store, pod_env):
    """Build an InitContext around the fake store."""

    def _make(env=None, cluster=None, **kwargs):
        env = env or pod_env
        kwargs.setdefault('cancel', RecordingEvent())
        return InitContext(
            store=store,
            get_env=lambda: env,
            client_factory=lambda: cluster,
            generator=GaleraConfigGenerator(),
            **kwargs,
        )

    return _make
