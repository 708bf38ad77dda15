"""Module: galerainit.interfaces

Purpose: Narrow capability interfaces consumed by the init orchestrator.

Key Components:
- EnvironmentProvider: Resolves the Pod environment
- ClusterClient: Fetches the MariaDB resource and Pods
- StateStore: Config and state files on the Pod volumes
- ConfigGenerator: Renders and patches the Galera config
- ReadinessCheck: Pod readiness predicate

Design:
The orchestrator depends only on these, so it can run against in-memory fakes.
Concrete implementations live in environment, kube, filemanager and config.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from galerainit.environment import PodEnvironment
    from galerainit.kube import MariaDB


class EnvironmentProvider(Protocol):
    def __call__(self) -> PodEnvironment: ...


class ClusterClient(Protocol):
    def get_mariadb(self, namespace: str, name: str) -> MariaDB: ...

    def get_pod(self, namespace: str, name: str) -> Any: ...


class StateStore(Protocol):
    def config_file_exists(self, name: str) -> bool: ...

    def read_config_file(self, name: str) -> bytes: ...

    def write_config_file(self, name: str, content: bytes) -> None: ...

    def state_file_exists(self, name: str) -> bool: ...

    def delete_state_file(self, name: str) -> None: ...


class ConfigGenerator(Protocol):
    def render(self, mdb: MariaDB, env: PodEnvironment) -> bytes: ...

    def patch(self, existing: bytes, env: PodEnvironment) -> bytes: ...


class ReadinessCheck(Protocol):
    def __call__(self, pod: Any) -> bool: ...
