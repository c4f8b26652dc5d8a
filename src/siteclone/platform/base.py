"""Hosting platform collaborator contract."""

from __future__ import annotations

from typing import Protocol

from siteclone.models import Backup, ConnectionMode, Element, Environment, SiteInfo
from siteclone.platform.workflow import Workflow


class PlatformClient(Protocol):
    """Everything the replication engine needs from the hosting platform.

    Long-running mutations return a Workflow; callers block on
    `await_completion()` before starting any dependent step.
    """

    def get_site(self, name: str) -> SiteInfo | None: ...

    def site_exists(self, name: str) -> bool: ...

    def create_site(self, name: str, *, org: str, upstream: str) -> Workflow: ...

    def list_environments(self, site: str) -> list[Environment]: ...

    def connection_git_command(self, site: str, env: str) -> str: ...

    def set_connection_mode(self, site: str, env: str, mode: ConnectionMode) -> Workflow: ...

    def count_deployable_commits(self, site: str, env: str) -> int: ...

    def list_backups(self, site: str, env: str, element: Element) -> list[Backup]: ...

    def backup_url(self, backup: Backup) -> str | None: ...

    def create_backup(self, site: str, env: str, element: Element | None = None) -> Workflow: ...

    def import_content(self, site: str, env: str, element: Element, url: str) -> int: ...

    def clear_cache(self, site: str, env: str) -> Workflow: ...

    def deploy(self, site: str, env: str, note: str) -> Workflow: ...

    def list_hostnames(self, site: str, env: str) -> list[str]: ...
