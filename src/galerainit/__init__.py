"""Module: galerainit

Purpose: Init container logic for Galera MariaDB Pods managed by a StatefulSet.

Key Components:
- orchestrator: Bootstrap decision, predecessor wait, stale state cleanup
- config: Galera config rendering and environment-only patching
- kube: MariaDB resource and Pod access through the Kubernetes API
- Management command: galera_init (also exposed as the 'galera-init' script)

Architecture:
Pod 0 of a never-configured cluster bootstraps it; every other Pod waits for
its ordinal predecessor to be Ready before MariaDB starts, unless it already
holds Galera state. Stale state from snapshot restores and interrupted SSTs is
removed before MariaDB starts.

Related Modules:
- kubernetes: MariaDB resource and Pod readiness
- filelock: Serializes init runs on the same volume
"""

__version__ = '0.1.0'

from galerainit.exceptions import GaleraInitError

__all__ = ['GaleraInitError', '__version__']
