"""Platform data models shared across the replication engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

DEV = "dev"
TEST = "test"
LIVE = "live"

# Fixed promotion order. Anything else is a multidev environment.
DEFAULT_ENVIRONMENTS: tuple[str, ...] = (DEV, TEST, LIVE)


class Element(str, Enum):
    CODE = "code"
    DATABASE = "database"
    FILES = "files"


# Code travels through git; only these are restored from backups.
CONTENT_ELEMENTS: tuple[Element, ...] = (Element.DATABASE, Element.FILES)


class ConnectionMode(str, Enum):
    GIT = "git"
    SFTP = "sftp"


@dataclass(frozen=True, slots=True)
class SiteInfo:
    id: str
    name: str
    organization: str = ""
    upstream: str = ""


@dataclass(frozen=True, slots=True)
class Environment:
    id: str
    initialized: bool
    # Only set for initialized test and live.
    deployable_commits: int | None = None


@dataclass(frozen=True, slots=True)
class Backup:
    site: str
    environment: str
    element: Element
    finish_time: datetime
    file: str = ""


def initialized_map(environments: list[Environment]) -> dict[str, bool]:
    return {env.id: env.initialized for env in environments}


def latest_backup(backups: list[Backup]) -> Backup | None:
    if not backups:
        return None
    return max(backups, key=lambda item: item.finish_time)
