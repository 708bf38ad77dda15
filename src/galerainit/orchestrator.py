"""Module: galerainit.orchestrator

Purpose: Core Galera init sequence run once per Pod before MariaDB starts.

Key Components:
- InitContext: Collaborators and tunables for a single run
- configure_bootstrap: Write the bootstrap marker on the first Pod of a new cluster
- wait_for_previous_pod: Block until the ordinal predecessor is Ready
- cleanup_state_for_volume_snapshot / cleanup_previous_sst: Purge stale state files
- run_init: Sequence the steps above; run_init_locked wraps it in a file lock

Architecture:
Three sources of truth are reconciled: the MariaDB resource (GaleraConfigured
condition, bootstrapFrom.volumeSnapshotRef), the state files in the datadir
(grastate.dat, gvwstate.dat, SST markers) and the Pod ordinal.
Only Pod 0 of a never-configured cluster without local Galera state may
bootstrap. Every other fresh Pod waits for its predecessor, so Pods become
Ready in ascending ordinal order.

Related Modules:
- galerainit.interfaces: Collaborator interfaces
- filelock: Serializes runs against the same state dir
"""

from __future__ import annotations

import contextlib
import logging
import signal
import threading
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from django.conf import settings
from filelock import FileLock, Timeout

from galerainit.config import (
    BOOTSTRAP_FILE,
    BOOTSTRAP_FILE_NAME,
    CONFIG_FILE_NAME,
    GaleraConfigGenerator,
)
from galerainit.environment import PodEnvironment, get_pod_env
from galerainit.exceptions import (
    BootstrapMarkerWriteError,
    ConfigMaterializeError,
    GaleraInitError,
    InitLockTimeoutError,
    InvalidSettingError,
    PredecessorWaitError,
    SnapshotCleanupError,
    TransferCleanupError,
)
from galerainit.filemanager import FileManager
from galerainit.kube import MariaDB, is_not_found, new_cluster_client, pod_ready
from galerainit.statefulset import pod_index, pod_name

if TYPE_CHECKING:
    from galerainit.interfaces import (
        ClusterClient,
        ConfigGenerator,
        EnvironmentProvider,
        ReadinessCheck,
        StateStore,
    )

logger = logging.getLogger(__name__)

GALERA_STATE_FILE_NAME = 'grastate.dat'
GALERA_PRIMARY_COMPONENT_FILE_NAME = 'gvwstate.dat'
GALERA_STATE_FILES = (GALERA_STATE_FILE_NAME, GALERA_PRIMARY_COMPONENT_FILE_NAME)

WSREP_SST_PID_FILE_NAME = 'wsrep_sst.pid'
SST_IN_PROGRESS_FILE_NAME = 'sst_in_progress'
SST_FILES = (WSREP_SST_PID_FILE_NAME, SST_IN_PROGRESS_FILE_NAME)

LOCK_FILE_NAME = 'galera-init.lock'

# SIGKILL cannot be caught, so it is not part of the set.
CANCEL_SIGNALS = (signal.SIGINT, signal.SIGTERM, signal.SIGHUP, signal.SIGQUIT)

# Steps whose failure is logged and skipped instead of aborting the run.
# A failed bootstrap marker write leaves Pod 0 waiting to join a cluster that
# does not exist yet; it is retried on the next Pod restart.
CONTINUE_ON_ERROR = frozenset({'bootstrap'})


def _get_config_dir() -> str:
    """Get config dir from settings."""
    return getattr(settings, 'GALERA_INIT_CONFIG_DIR', '/etc/mysql/mariadb.conf.d')


def _get_state_dir() -> str:
    """Get state dir from settings."""
    return getattr(settings, 'GALERA_INIT_STATE_DIR', '/var/lib/mysql')


def _float_setting(name: str, default: float | None) -> float | None:
    """Read a numeric setting.

    Raises:
        InvalidSettingError: If the value is not a number
    """
    value = getattr(settings, name, default)
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise InvalidSettingError(f"invalid {name} '{value}': not a number") from e


def _get_poll_interval() -> float:
    """Get predecessor poll interval from settings."""
    return _float_setting('GALERA_INIT_POLL_INTERVAL', 1.0)


def _get_wait_timeout() -> float | None:
    """Get predecessor wait timeout from settings (None waits forever)."""
    timeout = _float_setting('GALERA_INIT_WAIT_TIMEOUT', None)
    if timeout is None or timeout <= 0:
        return None
    return timeout


def _get_lock_timeout() -> float:
    """Get init lock timeout from settings."""
    return _float_setting('GALERA_INIT_LOCK_TIMEOUT', 30)


@dataclass
class InitContext:
    """Everything a single init run needs, passed explicitly to every step.

    Key Behaviors:
    - get_env and client_factory are only called by run_init
    - cancel is set by the signal handlers and interrupts the predecessor wait
    """

    store: StateStore
    get_env: EnvironmentProvider = get_pod_env
    client_factory: Callable[[], ClusterClient] = new_cluster_client
    generator: ConfigGenerator = field(default_factory=GaleraConfigGenerator)
    is_pod_ready: ReadinessCheck = pod_ready
    cancel: threading.Event = field(default_factory=threading.Event)
    poll_interval: float = 1.0
    wait_timeout: float | None = None
    clock: Callable[[], float] = time.monotonic
    client: ClusterClient | None = None


@dataclass
class InitResult:
    """Outcome of a successful run."""

    ordinal: int
    fallback: bool = False
    bootstrapped: bool = False
    waited_for: str | None = None


def build_context(
    config_dir: str | None = None,
    state_dir: str | None = None,
    cancel: threading.Event | None = None,
) -> InitContext:
    """Build an InitContext wired to the real filesystem and Kubernetes.

    Args:
        config_dir: Config dir (defaults to GALERA_INIT_CONFIG_DIR)
        state_dir: State dir (defaults to GALERA_INIT_STATE_DIR)
        cancel: Cancellation event (a new one when omitted)
    """
    return InitContext(
        store=FileManager(config_dir or _get_config_dir(), state_dir or _get_state_dir()),
        get_env=get_pod_env,
        client_factory=new_cluster_client,
        cancel=cancel or threading.Event(),
        poll_interval=_get_poll_interval(),
        wait_timeout=_get_wait_timeout(),
    )


@contextlib.contextmanager
def cancel_on_signals(cancel: threading.Event) -> Iterator[threading.Event]:
    """Set the cancel event on SIGINT, SIGTERM, SIGHUP or SIGQUIT.

    Previous handlers are restored on exit. Must be used from the main thread.
    """

    def _handler(signum: int, frame: Any) -> None:
        name = signal.Signals(signum).name
        logger.info('galera-init: received %s, cancelling', name, extra={'signal': name})
        cancel.set()

    previous = {sig: signal.signal(sig, _handler) for sig in CANCEL_SIGNALS}
    try:
        yield cancel
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


def has_galera_state(store: StateStore) -> bool:
    """Check whether this node previously joined or formed a cluster.

    Raises:
        OSError: If a state file cannot be checked
    """
    return any(store.state_file_exists(name) for name in GALERA_STATE_FILES)


def cleanup_state_file(store: StateStore, name: str) -> bool:
    """Delete a state file if present.

    Returns:
        True if a file was deleted

    Raises:
        OSError: If the file exists but cannot be removed
    """
    if not store.state_file_exists(name):
        return False
    logger.info('galera-init: deleting state file %s', name, extra={'file': name})
    try:
        store.delete_state_file(name)
    except FileNotFoundError:
        return False
    return True


def should_bootstrap(configured: bool, has_state: bool, ordinal: int) -> bool:
    """Only Pod 0 of a never-configured cluster with no local Galera state bootstraps."""
    return ordinal == 0 and not configured and not has_state


def configure_bootstrap(ctx: InitContext, mdb: MariaDB, ordinal: int) -> bool:
    """Write the bootstrap marker when this Pod must start a new cluster.

    Key Behaviors:
    - Never deletes a marker written by a previous run
    - Writing the marker again is harmless

    Returns:
        True if the marker was written

    Raises:
        BootstrapMarkerWriteError: If local state cannot be checked or the marker cannot be written
    """
    if ordinal != 0 or mdb.galera_configured:
        return False
    try:
        has_state = has_galera_state(ctx.store)
    except OSError as e:
        raise BootstrapMarkerWriteError(f'error checking Galera state: {e}') from e
    if not should_bootstrap(mdb.galera_configured, has_state, ordinal):
        return False

    logger.info('galera-init: configuring Galera bootstrap (ordinal=%d)', ordinal, extra={'ordinal': ordinal})
    try:
        ctx.store.write_config_file(BOOTSTRAP_FILE_NAME, BOOTSTRAP_FILE)
    except OSError as e:
        raise BootstrapMarkerWriteError(f'error configuring Galera bootstrap: {e}') from e
    return True


def wait_for_pod_ready(ctx: InitContext, namespace: str, name: str) -> None:
    """Poll a Pod until it is Ready.

    Key Behaviors:
    - First attempt runs immediately, then one every ctx.poll_interval seconds
    - Lookup errors count as not ready
    - Unbounded unless ctx.wait_timeout is set or ctx.cancel fires

    Raises:
        PredecessorWaitError: On cancellation or timeout
    """
    start = ctx.clock()
    while True:
        try:
            pod = ctx.client.get_pod(namespace, name)
        except Exception as e:
            logger.debug('galera-init: error getting Pod %s: %s', name, e, extra={'pod': name, 'error': str(e)})
        else:
            if ctx.is_pod_ready(pod):
                logger.debug('galera-init: Pod %s ready', name, extra={'pod': name})
                return
            logger.debug('galera-init: Pod %s not ready', name, extra={'pod': name})

        elapsed = ctx.clock() - start
        if ctx.wait_timeout is not None and elapsed >= ctx.wait_timeout:
            raise PredecessorWaitError(name, f'timed out after {ctx.wait_timeout}s')
        if ctx.cancel.wait(ctx.poll_interval):
            raise PredecessorWaitError(name, 'context canceled')


def wait_for_previous_pod(ctx: InitContext, env: PodEnvironment, mdb: MariaDB, ordinal: int) -> str | None:
    """Wait for Pod '<mariadb>-<ordinal-1>' to be Ready.

    Skipped for Pod 0, once the cluster is configured, and when this node
    already has Galera state (it is resuming, not joining fresh).

    Returns:
        Name of the Pod waited for, None when skipped

    Raises:
        PredecessorWaitError: On cancellation, timeout or if local state cannot be checked
    """
    if ordinal == 0 or mdb.galera_configured:
        return None
    previous = pod_name(mdb.name, ordinal - 1)
    try:
        if has_galera_state(ctx.store):
            return None
    except OSError as e:
        raise PredecessorWaitError(previous, f'error checking Galera state: {e}') from e

    logger.info('galera-init: waiting for previous Pod %s to be ready', previous, extra={'pod': previous})
    wait_for_pod_ready(ctx, env.pod_namespace, previous)
    logger.info('galera-init: previous Pod %s ready', previous, extra={'pod': previous})
    return previous


def cleanup_state_for_volume_snapshot(ctx: InitContext, mdb: MariaDB) -> None:
    """Drop Galera state restored from another cluster's VolumeSnapshot.

    Raises:
        SnapshotCleanupError: If a state file cannot be deleted
    """
    if mdb.galera_configured or mdb.volume_snapshot_ref is None:
        return
    logger.info(
        'galera-init: cleaning up state for VolumeSnapshot %s', mdb.volume_snapshot_ref,
        extra={'snapshot': mdb.volume_snapshot_ref},
    )

    for name in GALERA_STATE_FILES:
        try:
            cleanup_state_file(ctx.store, name)
        except OSError as e:
            raise SnapshotCleanupError(f'error deleting {name} file: {e}') from e


def cleanup_previous_sst(ctx: InitContext) -> None:
    """Delete SST markers left behind by a previous incarnation.

    Raises:
        TransferCleanupError: If a marker cannot be deleted
    """
    for name in SST_FILES:
        try:
            cleanup_state_file(ctx.store, name)
        except OSError as e:
            raise TransferCleanupError(f'error deleting {name} file: {e}') from e


def configure_galera(ctx: InitContext, env: PodEnvironment, mdb: MariaDB) -> None:
    """Render the Galera config from the MariaDB resource and write it.

    Raises:
        ConfigMaterializeError: If rendering or writing fails
    """
    logger.info('galera-init: configuring Galera')
    content = ctx.generator.render(mdb, env)
    try:
        ctx.store.write_config_file(CONFIG_FILE_NAME, content)
    except OSError as e:
        raise ConfigMaterializeError(f'error writing Galera config: {e}') from e


def update_galera_config(ctx: InitContext, env: PodEnvironment) -> None:
    """Patch the environment fields of the existing Galera config.

    Raises:
        ConfigMaterializeError: If there is no existing config or it cannot be patched or written
    """
    logger.info('galera-init: updating existing Galera config')
    try:
        existing = ctx.store.read_config_file(CONFIG_FILE_NAME)
    except OSError as e:
        raise ConfigMaterializeError(f'error getting existing Galera config: {e}') from e

    updated = ctx.generator.patch(existing, env)
    try:
        ctx.store.write_config_file(CONFIG_FILE_NAME, updated)
    except OSError as e:
        raise ConfigMaterializeError(f'error writing existing Galera config: {e}') from e


def _run_step(step: str, func: Callable[..., Any], *args: Any) -> Any:
    """Run a step, applying the CONTINUE_ON_ERROR policy."""
    try:
        return func(*args)
    except GaleraInitError as e:
        if step in CONTINUE_ON_ERROR:
            logger.warning(
                'galera-init: step %s failed (non-fatal): %s', step, e,
                extra={'step': step, 'error': str(e)},
            )
            return None
        logger.error('galera-init: step %s failed: %s', step, e, extra={'step': step, 'error': str(e)})
        raise


def run_init(ctx: InitContext) -> InitResult:
    """Execute the init sequence.

    Purpose: Prepare config and state files so MariaDB either bootstraps,
    joins after its predecessor, or resumes.

    Key Behaviors:
    - Resolves the Pod environment and ordinal
    - If the MariaDB resource cannot be fetched, only patches the existing
      config and returns (fallback=True)
    - Otherwise: snapshot cleanup, config, bootstrap marker (non-fatal),
      predecessor wait, SST cleanup

    Args:
        ctx: Init context

    Returns:
        InitResult describing what was done

    Raises:
        GaleraInitError: On any fatal step failure
    """
    logger.info('galera-init: starting init')

    env = _run_step('environment', ctx.get_env)
    ordinal = _run_step('ordinal', pod_index, env.pod_name)
    if ctx.client is None:
        ctx.client = _run_step('client', ctx.client_factory)

    try:
        mdb = ctx.client.get_mariadb(env.pod_namespace, env.mariadb_name)
    except Exception as e:
        if is_not_found(e):
            logger.warning(
                'galera-init: MariaDB %s/%s not found: %s', env.pod_namespace, env.mariadb_name, e,
                extra={'namespace': env.pod_namespace, 'error': str(e)},
            )
        else:
            logger.error(
                'galera-init: error getting MariaDB %s/%s: %s', env.pod_namespace, env.mariadb_name, e,
                extra={'namespace': env.pod_namespace, 'error': str(e)},
            )

        _run_step('update-config', update_galera_config, ctx, env)
        logger.info('galera-init: updated Galera config')
        return InitResult(ordinal=ordinal, fallback=True)

    result = InitResult(ordinal=ordinal)
    _run_step('snapshot-cleanup', cleanup_state_for_volume_snapshot, ctx, mdb)
    _run_step('config', configure_galera, ctx, env, mdb)
    result.bootstrapped = bool(_run_step('bootstrap', configure_bootstrap, ctx, mdb, ordinal))
    result.waited_for = _run_step('wait', wait_for_previous_pod, ctx, env, mdb, ordinal)
    _run_step('sst-cleanup', cleanup_previous_sst, ctx)

    logger.info('galera-init: init done for %s', env.pod_name, extra={'pod': env.pod_name, 'ordinal': ordinal})
    return result


def run_init_locked(ctx: InitContext, lock_path: str | Path, timeout: float | None = None) -> InitResult:
    """Execute run_init while holding a file lock.

    Raises:
        InitLockTimeoutError: If the lock cannot be acquired within timeout
        GaleraInitError: On any fatal step failure
    """
    timeout = _get_lock_timeout() if timeout is None else timeout
    lock_path = Path(lock_path)
    lock_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with FileLock(lock_path, timeout=timeout):
            return run_init(ctx)
    except Timeout:
        raise InitLockTimeoutError(
            f'File lock acquisition timed out (timeout={timeout}s)'
        )
