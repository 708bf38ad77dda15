"""Module: galerainit.cli

Purpose: Standalone 'galera-init' console script for the init container.

Key Behaviors:
- Configures minimal Django settings from GALERA_INIT_* environment variables
- Runs the galera_init management command with the given flags

Related:
- galerainit.management.commands.galera_init: Command implementation
"""

from __future__ import annotations

import os
import sys

from django.conf import settings
from django.core.management import execute_from_command_line


def _logging_config(level: str) -> dict:
    return {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'default': {
                'format': '%(asctime)s %(levelname)s %(name)s %(message)s',
            },
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'formatter': 'default',
            },
        },
        'loggers': {
            'galerainit': {
                'handlers': ['console'],
                'level': level,
                'propagate': False,
            },
        },
    }


def configure_settings(environ=None) -> None:
    """Configure Django settings for running outside a Django project.

    No-op when settings are already configured.
    """
    if settings.configured:
        return
    environ = os.environ if environ is None else environ

    options = {
        'INSTALLED_APPS': ['galerainit'],
        'USE_TZ': True,
        'LOGGING': _logging_config(environ.get('GALERA_INIT_LOG_LEVEL', 'INFO').upper()),
    }
    for name in (
        'GALERA_INIT_CONFIG_DIR',
        'GALERA_INIT_STATE_DIR',
        'GALERA_INIT_POLL_INTERVAL',
        'GALERA_INIT_WAIT_TIMEOUT',
        'GALERA_INIT_LOCK_TIMEOUT',
    ):
        if environ.get(name):
            options[name] = environ[name]
    settings.configure(**options)


def main(argv: list[str] | None = None) -> None:
    """Entry point for the 'galera-init' console script."""
    argv = sys.argv[1:] if argv is None else argv
    configure_settings()
    execute_from_command_line(['galera-init', 'galera_init', *argv])


if __name__ == '__main__':
    main()
