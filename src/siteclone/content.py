"""Content replication: restore database and files per environment from backups."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from siteclone.context import RunContext
from siteclone.errors import ContentImportError, PlatformError
from siteclone.hooks import TransformContext, TransformKind, TransformRegistry
from siteclone.models import (
    CONTENT_ELEMENTS,
    DEFAULT_ENVIRONMENTS,
    Element,
    Environment,
    latest_backup,
)
from siteclone.platform.base import PlatformClient

logger = logging.getLogger(__name__)


class ContentStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(slots=True)
class ContentResult:
    environment: str
    status: ContentStatus
    imported: list[Element] = field(default_factory=list)
    hooks: list[str] = field(default_factory=list)
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.status is ContentStatus.SUCCESS


class ContentReplicator:
    def __init__(
        self,
        platform: PlatformClient,
        registry: TransformRegistry,
        run: RunContext,
    ) -> None:
        self.platform = platform
        self.registry = registry
        self.run = run

    def replicate(self, environments: Iterable[Environment], target_site: str) -> list[ContentResult]:
        """Copy content env by env in promotion order; multidevs are ignored."""
        initialized = {env.id for env in environments if env.initialized}
        results: list[ContentResult] = []
        for env in DEFAULT_ENVIRONMENTS:
            if env not in initialized:
                logger.info("%s.%s is not initialized; no content to copy", self.run.source_site, env)
                continue
            try:
                results.append(self.replicate_environment(env, target_site))
            except ContentImportError as exc:
                logger.error("content replication failed for %s: %s", env, exc)
                results.append(ContentResult(env, ContentStatus.FAILED, error=str(exc)))
        return results

    def replicate_environment(self, env: str, target_site: str) -> ContentResult:
        urls = self._backup_urls(env)
        result = ContentResult(env, ContentStatus.SUCCESS)
        for element, url in urls.items():
            logger.info("importing %s into %s.%s", element.value, target_site, env)
            exit_code = self.platform.import_content(target_site, env, element, url)
            if exit_code != 0:
                raise ContentImportError(
                    f"importing {element.value} into {target_site}.{env} exited with {exit_code}",
                    context={"site": target_site, "environment": env, "element": element.value},
                )
            result.imported.append(element)

        result.hooks = self.registry.run(
            TransformKind.CONTENT,
            TransformContext(run=self.run, platform=self.platform, site=target_site, environment=env),
            self.run.skip_transforms,
        )

        outcome = self.platform.clear_cache(target_site, env).await_completion()
        if not outcome.ok:
            raise PlatformError(
                f"clearing cache on {target_site}.{env} failed: {outcome.message}",
                context={"site": target_site, "environment": env},
            )
        return result

    def _backup_urls(self, env: str) -> dict[Element, str]:
        """Resolve the latest backup URL of every content element, or fail the env."""
        urls: dict[Element, str] = {}
        source = self.run.source_site
        for element in CONTENT_ELEMENTS:
            try:
                backups = self.platform.list_backups(source, env, element)
            except PlatformError as exc:
                raise ContentImportError(
                    f"listing {element.value} backups of {source}.{env} failed: {exc}",
                    context={"site": source, "environment": env, "element": element.value},
                ) from exc
            latest = latest_backup(backups)
            url = self.platform.backup_url(latest) if latest is not None else None
            if not url:
                raise ContentImportError(
                    f"no {element.value} backup url for {source}.{env}",
                    context={"site": source, "environment": env, "element": element.value},
                )
            urls[element] = url
        return urls
