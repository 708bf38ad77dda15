"""Module: galerainit.environment

Purpose: Resolve the Pod environment injected by the StatefulSet template.

Key Components:
- PodEnvironment: Immutable snapshot of the Pod identity
- get_pod_env: Build a PodEnvironment from os.environ
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from galerainit.exceptions import EnvironmentResolutionError

REQUIRED_VARS = ('POD_NAME', 'POD_NAMESPACE', 'MARIADB_NAME')


@dataclass(frozen=True)
class PodEnvironment:
    """Pod identity read once at process start.

    Key Behaviors:
    - pod_name, pod_namespace and mariadb_name are required
    - The remaining fields only feed the Galera config template
    """

    pod_name: str
    pod_namespace: str
    mariadb_name: str
    pod_ip: str = ''
    cluster_name: str = 'cluster.local'
    mariadb_root_password: str = ''
    mysql_tcp_port: int = 3306

    @property
    def node_address(self) -> str:
        """Address other nodes use to reach this Pod.

        Falls back to the Pod FQDN through the headless Service when POD_IP is unset.
        """
        if self.pod_ip:
            return self.pod_ip
        return f'{self.pod_name}.{self.mariadb_name}-internal.{self.pod_namespace}.svc.{self.cluster_name}'


def get_pod_env(environ: Mapping[str, str] | None = None) -> PodEnvironment:
    """Read the Pod environment.

    Args:
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        PodEnvironment snapshot

    Raises:
        EnvironmentResolutionError: If a required variable is missing or MYSQL_TCP_PORT is not a number
    """
    environ = os.environ if environ is None else environ

    missing = [name for name in REQUIRED_VARS if not environ.get(name)]
    if missing:
        raise EnvironmentResolutionError(
            f'missing required environment variables: {", ".join(missing)}'
        )

    port = environ.get('MYSQL_TCP_PORT') or '3306'
    try:
        mysql_tcp_port = int(port)
    except ValueError as e:
        raise EnvironmentResolutionError(f"invalid MYSQL_TCP_PORT '{port}'") from e

    return PodEnvironment(
        pod_name=environ['POD_NAME'],
        pod_namespace=environ['POD_NAMESPACE'],
        mariadb_name=environ['MARIADB_NAME'],
        pod_ip=environ.get('POD_IP', ''),
        cluster_name=environ.get('CLUSTER_NAME') or 'cluster.local',
        mariadb_root_password=environ.get('MARIADB_ROOT_PASSWORD', ''),
        mysql_tcp_port=mysql_tcp_port,
    )
