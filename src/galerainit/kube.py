"""Module: galerainit.kube

Purpose: Kubernetes access for the init sequence.

Key Components:
- MariaDB: Projection of the MariaDB custom resource consumed by the init logic
- KubernetesClusterClient: Fetches the MariaDB resource and Pods
- new_cluster_client: Build a client from in-cluster config or kubeconfig
- pod_ready: Pod readiness predicate

Related Modules:
- kubernetes: Official Kubernetes Python client
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException

from galerainit.exceptions import ClusterClientConstructionError

logger = logging.getLogger(__name__)

MARIADB_GROUP = 'k8s.mariadb.com'
MARIADB_VERSION = 'v1alpha1'
MARIADB_PLURAL = 'mariadbs'

CONDITION_GALERA_CONFIGURED = 'GaleraConfigured'
CONDITION_READY = 'Ready'


def _condition_true(conditions: list[Any] | None, condition_type: str) -> bool:
    """Check a Kubernetes condition list for type=condition_type, status=True.

    Accepts both plain dicts (custom objects) and typed client models (Pods).
    """
    for condition in conditions or []:
        if isinstance(condition, dict):
            ctype, status = condition.get('type'), condition.get('status')
        else:
            ctype, status = getattr(condition, 'type', None), getattr(condition, 'status', None)
        if ctype == condition_type:
            return status == 'True'
    return False


@dataclass(frozen=True)
class MariaDB:
    """Fields of the MariaDB resource the init container depends on.

    Key Behaviors:
    - name doubles as the StatefulSet name, so Pods are named '<name>-<ordinal>'
    - galera_configured is true once the cluster has bootstrapped at least once
    - volume_snapshot_ref is set when storage was provisioned from a VolumeSnapshot
    """

    name: str
    namespace: str
    galera_configured: bool = False
    volume_snapshot_ref: str | None = None
    replicas: int = 1
    sst: str = 'mariabackup'
    replica_threads: int = 1
    provider_options: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_object(cls, obj: dict[str, Any]) -> MariaDB:
        """Build the projection from a custom object as returned by CustomObjectsApi."""
        metadata = obj.get('metadata') or {}
        spec = obj.get('spec') or {}
        status = obj.get('status') or {}
        galera = spec.get('galera') or {}
        bootstrap_from = spec.get('bootstrapFrom') or {}
        snapshot_ref = bootstrap_from.get('volumeSnapshotRef') or {}

        return cls(
            name=metadata.get('name', ''),
            namespace=metadata.get('namespace', ''),
            galera_configured=_condition_true(status.get('conditions'), CONDITION_GALERA_CONFIGURED),
            volume_snapshot_ref=snapshot_ref.get('name') or None,
            replicas=int(spec.get('replicas') or 1),
            sst=galera.get('sst') or 'mariabackup',
            replica_threads=int(galera.get('replicaThreads') or 1),
            provider_options={str(k): str(v) for k, v in (galera.get('providerOptions') or {}).items()},
        )


def pod_ready(pod: Any) -> bool:
    """Return True if the Pod has condition Ready=True."""
    status = getattr(pod, 'status', None)
    return _condition_true(getattr(status, 'conditions', None), CONDITION_READY)


class KubernetesClusterClient:
    """Cluster resource client backed by the official Kubernetes client."""

    def __init__(self, custom_objects_api: client.CustomObjectsApi, core_api: client.CoreV1Api) -> None:
        self.custom_objects_api = custom_objects_api
        self.core_api = core_api

    def get_mariadb(self, namespace: str, name: str) -> MariaDB:
        """Fetch the MariaDB resource.

        Raises:
            ApiException: On lookup failure (404 when the resource is gone)
        """
        obj = self.custom_objects_api.get_namespaced_custom_object(
            group=MARIADB_GROUP,
            version=MARIADB_VERSION,
            namespace=namespace,
            plural=MARIADB_PLURAL,
            name=name,
        )
        return MariaDB.from_object(obj)

    def get_pod(self, namespace: str, name: str) -> client.V1Pod:
        return self.core_api.read_namespaced_pod(name=name, namespace=namespace)


def is_not_found(error: BaseException) -> bool:
    return isinstance(error, ApiException) and error.status == 404


def new_cluster_client() -> KubernetesClusterClient:
    """Build a KubernetesClusterClient.

    Key Behaviors:
    - Uses the in-cluster ServiceAccount config when available
    - Falls back to the local kubeconfig for development

    Raises:
        ClusterClientConstructionError: If no usable config is found
    """
    try:
        config.load_incluster_config()
    except ConfigException:
        logger.debug('galera-init: in-cluster config unavailable, trying kubeconfig')
        try:
            config.load_kube_config()
        except (ConfigException, OSError) as e:
            raise ClusterClientConstructionError(f'error getting Kubernetes config: {e}') from e

    api_client = client.ApiClient()
    return KubernetesClusterClient(client.CustomObjectsApi(api_client), client.CoreV1Api(api_client))
