"""Module: galerainit.config

Purpose: Render and patch the Galera config file consumed by MariaDB.

Key Components:
- CONFIG_FILE_NAME / BOOTSTRAP_FILE_NAME / BOOTSTRAP_FILE: Config file contract
- GaleraConfigGenerator: render() full config, patch() environment fields only

Architecture:
The config is rendered with a standalone Django template Engine, so no
project TEMPLATES setting is required. patch() edits the existing file line by
line and only touches the keys derived from the Pod environment, keeping
everything that was rendered from the MariaDB resource.
"""

from __future__ import annotations

import re

from django.template import Context, Engine

from galerainit.environment import PodEnvironment
from galerainit.exceptions import ConfigMaterializeError
from galerainit.kube import MariaDB
from galerainit.statefulset import pod_name

CONFIG_FILE_NAME = '0-galera.cnf'
BOOTSTRAP_FILE_NAME = '1-bootstrap.cnf'
BOOTSTRAP_FILE = b'[galera]\nwsrep_new_cluster="ON"\n'

GALERA_SECTION = '[galera]'
GALERA_LIB_PATH = '/usr/lib/galera/libgalera_smm.so'

CONFIG_TEMPLATE = """[mariadb]
bind-address=*
default_storage_engine=InnoDB
binlog_format=row
innodb_autoinc_lock_mode=2

[galera]
# Cluster configuration
wsrep_on=ON
wsrep_provider={{ galera_lib_path }}
wsrep_cluster_address="gcomm://{{ cluster_address }}"
wsrep_cluster_name=mariadb-operator
wsrep_slave_threads={{ replica_threads }}

# Node configuration
wsrep_node_address="{{ node_address }}"
wsrep_node_name="{{ node_name }}"
wsrep_provider_options="{{ provider_options }}"

# SST
wsrep_sst_method="{{ sst }}"
{% if sst_auth %}wsrep_sst_auth="{{ sst_auth }}"
{% endif %}wsrep_sst_receive_address="{{ sst_receive_address }}"
"""

_KEY_RE = re.compile(r'^(?P<indent>\s*)(?P<key>[A-Za-z_][\w-]*)\s*=')
_IST_RECV_RE = re.compile(r'ist\.recv_addr=[^;"]*')
_IST_PORT_RE = re.compile(r'ist\.recv_addr=[^;"\s]*:(\d+)')
_SST_PORT_RE = re.compile(r'^\s*wsrep_sst_receive_address\s*=\s*"?[^"\n]*:(\d+)"?\s*$', re.MULTILINE)


def _host_port(host: str, port: int) -> str:
    if ':' in host and not host.startswith('['):
        host = f'[{host}]'
    return f'{host}:{port}'


def _sst_auth(mdb_sst: str, env: PodEnvironment) -> str:
    if mdb_sst == 'rsync' or not env.mariadb_root_password:
        return ''
    return f'root:{env.mariadb_root_password}'


def _existing_port(text: str, pattern: re.Pattern[str], default: int) -> int:
    """Port already rendered into the config, or default when absent."""
    match = pattern.search(text)
    return int(match.group(1)) if match else default


def _env_values(env: PodEnvironment, ist_port: int, sst_port: int) -> dict[str, str]:
    """Values derived only from the Pod environment."""
    return {
        'node_address': env.node_address,
        'node_name': env.pod_name,
        'ist_recv_addr': _host_port(env.node_address, ist_port),
        'sst_receive_address': _host_port(env.node_address, sst_port),
    }


class GaleraConfigGenerator:
    """Config generator for 0-galera.cnf.

    Key Behaviors:
    - render(): full config from the MariaDB resource and the Pod environment
    - patch(): rewrites wsrep_node_address, wsrep_node_name,
      wsrep_sst_receive_address and ist.recv_addr in an existing config,
      keeping the IST and SST ports it was rendered with
    """

    def __init__(self, galera_port: int = 4567, ist_port: int = 4568, sst_port: int = 4444) -> None:
        self.engine = Engine(autoescape=False)
        self.template = self.engine.from_string(CONFIG_TEMPLATE)
        self.galera_port = galera_port
        self.ist_port = ist_port
        self.sst_port = sst_port

    def cluster_address(self, mdb: MariaDB, env: PodEnvironment) -> str:
        service = f'{mdb.name}-internal.{mdb.namespace}.svc.{env.cluster_name}'
        return ','.join(f'{pod_name(mdb.name, i)}.{service}' for i in range(max(mdb.replicas, 1)))

    def provider_options(self, mdb: MariaDB, env: PodEnvironment) -> str:
        values = _env_values(env, self.ist_port, self.sst_port)
        options = {
            'gmcast.listen_addr': f'tcp://0.0.0.0:{self.galera_port}',
            'ist.recv_addr': values['ist_recv_addr'],
        }
        for key in sorted(mdb.provider_options):
            options[key] = mdb.provider_options[key]
        return ';'.join(f'{k}={v}' for k, v in options.items())

    def render(self, mdb: MariaDB, env: PodEnvironment) -> bytes:
        """Render the full Galera config.

        Raises:
            ConfigMaterializeError: If the template cannot be rendered
        """
        values = _env_values(env, self.ist_port, self.sst_port)
        context = Context({
            'galera_lib_path': GALERA_LIB_PATH,
            'cluster_address': self.cluster_address(mdb, env),
            'replica_threads': str(mdb.replica_threads),
            'node_address': values['node_address'],
            'node_name': values['node_name'],
            'provider_options': self.provider_options(mdb, env),
            'sst': mdb.sst,
            'sst_auth': _sst_auth(mdb.sst, env),
            'sst_receive_address': values['sst_receive_address'],
        }, autoescape=self.engine.autoescape)
        try:
            return self.template.render(context).encode()
        except Exception as e:
            raise ConfigMaterializeError(f'error rendering Galera config: {e}') from e

    def patch(self, existing: bytes, env: PodEnvironment) -> bytes:
        """Update the environment-derived fields of an existing config.

        Args:
            existing: Current 0-galera.cnf content
            env: Pod environment of this incarnation

        Returns:
            Updated config content; every other line is preserved byte for byte

        Raises:
            ConfigMaterializeError: If the content is not UTF-8 or has no [galera] section
        """
        try:
            text = existing.decode()
        except UnicodeDecodeError as e:
            raise ConfigMaterializeError(f'invalid Galera config encoding: {e}') from e

        lines = text.splitlines(keepends=True)
        if not any(line.strip() == GALERA_SECTION for line in lines):
            raise ConfigMaterializeError(f'Galera config has no {GALERA_SECTION} section')

        values = _env_values(
            env,
            _existing_port(text, _IST_PORT_RE, self.ist_port),
            _existing_port(text, _SST_PORT_RE, self.sst_port),
        )
        replacements = {
            'wsrep_node_address': values['node_address'],
            'wsrep_node_name': values['node_name'],
            'wsrep_sst_receive_address': values['sst_receive_address'],
        }

        updated = []
        for line in lines:
            match = _KEY_RE.match(line)
            if match is None:
                updated.append(line)
                continue
            key = match.group('key')
            ending = line[len(line.rstrip('\r\n')):]
            if key in replacements:
                line = f'{match.group("indent")}{key}="{replacements[key]}"{ending}'
            elif key == 'wsrep_provider_options':
                line = _IST_RECV_RE.sub(f'ist.recv_addr={values["ist_recv_addr"]}', line)
            updated.append(line)
        return ''.join(updated).encode()
