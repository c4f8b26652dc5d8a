"""Backup freshness validation.

Classifies the latest finished backup of every (environment, element) as ok,
stale or missing. This module never creates backups; the orchestrator decides
how to remediate.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from siteclone.models import DEFAULT_ENVIRONMENTS, Backup, Element, latest_backup

DEFAULT_MAX_AGE = timedelta(hours=48)

BackupsByEnvElement = Mapping[str, Mapping[Element, list[Backup]]]


@dataclass(slots=True)
class BackupAudit:
    missing: dict[str, list[Element]] = field(default_factory=dict)
    stale: dict[str, list[Element]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.missing and not self.stale

    def problems(self) -> Iterator[tuple[str, Element]]:
        """Yield (env, element) needing a fresh backup: env order, missing first."""
        ordered = [env for env in DEFAULT_ENVIRONMENTS if env in self.missing or env in self.stale]
        ordered += sorted(
            env for env in {*self.missing, *self.stale} if env not in DEFAULT_ENVIRONMENTS
        )
        for env in ordered:
            for element in self.missing.get(env, []):
                yield env, element
            for element in self.stale.get(env, []):
                yield env, element


def is_stale(
    backup: Backup,
    *,
    started_at: datetime,
    max_age: timedelta = DEFAULT_MAX_AGE,
) -> bool:
    return started_at - backup.finish_time > max_age


def audit_backups(
    backups: BackupsByEnvElement,
    filter_envs: Iterable[str] = DEFAULT_ENVIRONMENTS,
    *,
    started_at: datetime,
    max_age: timedelta = DEFAULT_MAX_AGE,
) -> BackupAudit:
    allowed = set(filter_envs)
    audit = BackupAudit()
    for env, elements in backups.items():
        if allowed and env not in allowed:
            continue
        for element, items in elements.items():
            newest = latest_backup(items)
            if newest is None:
                audit.missing.setdefault(env, []).append(element)
            elif is_stale(newest, started_at=started_at, max_age=max_age):
                audit.stale.setdefault(env, []).append(element)
    return audit
