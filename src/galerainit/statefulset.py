"""Module: galerainit.statefulset

Purpose: StatefulSet naming convention (<group>-<ordinal>).
"""

from __future__ import annotations

from galerainit.exceptions import OrdinalParseError


def pod_index(pod_name: str) -> int:
    """Extract the ordinal from a StatefulSet Pod name.

    Args:
        pod_name: Pod name such as 'mariadb-galera-2'

    Returns:
        Non-negative ordinal

    Raises:
        OrdinalParseError: If the name has no '-<digits>' suffix
    """
    group, sep, suffix = pod_name.rpartition('-')
    if not sep or not group:
        raise OrdinalParseError(f"invalid Pod name '{pod_name}': missing ordinal suffix")
    if not suffix.isascii() or not suffix.isdigit():
        raise OrdinalParseError(f"invalid Pod name '{pod_name}': ordinal '{suffix}' is not a number")
    return int(suffix)


def pod_name(group: str, index: int) -> str:
    """Build the Pod name for the given ordinal within a StatefulSet."""
    return f'{group}-{index}'
