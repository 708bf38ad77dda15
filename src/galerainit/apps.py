"""Module: galerainit.apps

Purpose: Django app configuration for galera-init.

Key Components:
- GaleraInitConfig: Django AppConfig for the galerainit app
"""

from django.apps import AppConfig


class GaleraInitConfig(AppConfig):
    """Django app configuration for galerainit.

    Purpose: Register galerainit so the galera_init management command is discovered.

    Design:
    No models; all logic lives in the orchestrator and the management command.
    """

    name = 'galerainit'
    verbose_name = 'Galera Init'
