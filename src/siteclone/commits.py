"""Deployable-commit accounting for test and live."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace

from siteclone.models import LIVE, TEST, Environment
from siteclone.platform.base import PlatformClient

logger = logging.getLogger(__name__)

_COUNTED = (TEST, LIVE)


def deployable_commits(
    platform: PlatformClient,
    site: str,
    environments: Iterable[Environment],
) -> dict[str, int]:
    """Count commits waiting to be promoted into each initialized test/live env.

    Dev, multidev and uninitialized environments are left out of the result.
    """
    counts: dict[str, int] = {}
    for env in environments:
        if env.id not in _COUNTED or not env.initialized:
            continue
        counts[env.id] = platform.count_deployable_commits(site, env.id)
        logger.info("%s.%s has %d deployable commits", site, env.id, counts[env.id])
    return counts


def with_deployable_commits(
    environments: Iterable[Environment], counts: dict[str, int]
) -> list[Environment]:
    return [replace(env, deployable_commits=counts.get(env.id)) for env in environments]
