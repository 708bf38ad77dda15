"""Management command: galera_init

Purpose: Init container entrypoint that prepares a Galera Pod before MariaDB starts.

Related:
- galerainit.orchestrator: Core implementation
- galerainit.cli: Standalone wrapper that configures Django itself
"""

from __future__ import annotations

import logging
import sys
import threading
from pathlib import Path

from django.core.management.base import BaseCommand

from galerainit.exceptions import GaleraInitError
from galerainit.orchestrator import (
    LOCK_FILE_NAME,
    build_context,
    cancel_on_signals,
    run_init_locked,
)

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Run the Galera init sequence for the current Pod.

    Key Behaviors:
    - Cleans up state restored from a VolumeSnapshot
    - Renders the Galera config (or patches it if the MariaDB resource is gone)
    - Writes the bootstrap marker on Pod 0 of a new cluster
    - Waits for the previous Pod to be ready
    - Removes stale SST markers
    - SIGINT, SIGTERM, SIGHUP and SIGQUIT cancel the wait and exit 1
    """

    help = 'Init container for Galera: bootstrap, predecessor wait and state cleanup'

    def add_arguments(self, parser) -> None:
        parser.add_argument(
            '--config-dir',
            type=str,
            default=None,
            help='Directory that contains MariaDB configuration files (defaults to GALERA_INIT_CONFIG_DIR)',
        )
        parser.add_argument(
            '--state-dir',
            type=str,
            default=None,
            help='Directory that contains MariaDB state files (defaults to GALERA_INIT_STATE_DIR)',
        )
        parser.add_argument(
            '--lock-timeout',
            type=float,
            default=None,
            help='Init lock timeout in seconds (defaults to GALERA_INIT_LOCK_TIMEOUT)',
        )

    def handle(self, *args, **options) -> None:
        cancel = threading.Event()

        try:
            ctx = build_context(
                config_dir=options.get('config_dir'),
                state_dir=options.get('state_dir'),
                cancel=cancel,
            )
            lock_path = Path(ctx.store.state_dir) / LOCK_FILE_NAME
            self.stdout.write(f'galera_init: starting ({ctx.store!r})')

            with cancel_on_signals(cancel):
                result = run_init_locked(ctx, lock_path, timeout=options.get('lock_timeout'))
        except GaleraInitError as e:
            logger.error('galera-init: init failed: %s', e, extra={'error': str(e)})
            self.stderr.write(self.style.ERROR(f'galera_init: FAILED - {e}'))
            sys.exit(1)

        if result.fallback:
            self.stdout.write(
                self.style.WARNING('galera_init: MariaDB not available, updated existing Galera config')
            )
        else:
            self.stdout.write(self.style.SUCCESS('galera_init: completed'))
