"""Clone orchestration: validate, back up, create, replicate code and content, clean up."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from siteclone.backups import audit_backups
from siteclone.commits import deployable_commits, with_deployable_commits
from siteclone.config import Settings, get_settings
from siteclone.content import ContentReplicator, ContentResult
from siteclone.context import RunContext
from siteclone.errors import (
    BackupError,
    DeployError,
    PlatformError,
    PrerequisiteError,
    ValidationError,
)
from siteclone.hooks import TransformContext, TransformKind, TransformRegistry
from siteclone.logging import bound_context
from siteclone.models import (
    CONTENT_ELEMENTS,
    DEFAULT_ENVIRONMENTS,
    DEV,
    LIVE,
    TEST,
    Backup,
    ConnectionMode,
    Element,
    Environment,
    SiteInfo,
    initialized_map,
)
from siteclone.plan import DeployPlan, build_deploy_plan
from siteclone.platform.base import PlatformClient
from siteclone.process import ProcessExecutor
from siteclone.replicator import GitReplicator
from siteclone.urls import site_urls

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CloneResult:
    source: SiteInfo
    target: SiteInfo
    plan: DeployPlan
    source_environments: list[Environment] = field(default_factory=list)
    content: list[ContentResult] = field(default_factory=list)
    backups_created: list[tuple[str, Element | None]] = field(default_factory=list)
    code_hooks: list[str] = field(default_factory=list)
    source_urls: dict[str, str] = field(default_factory=dict)
    target_urls: dict[str, str] = field(default_factory=dict)
    kept_paths: list[Path] = field(default_factory=list)

    @property
    def content_ok(self) -> bool:
        return all(item.ok for item in self.content)


@dataclass(frozen=True, slots=True)
class _Validated:
    source: SiteInfo
    environments: list[Environment]
    org: str
    upstream: str


class SiteCloner:
    """Runs one clone of `run.source_site` into a new `run.target_site`.

    Steps run strictly in sequence and every platform workflow is awaited
    before the next step starts. Any fatal error leaves already-created remote
    resources in place.
    """

    def __init__(
        self,
        platform: PlatformClient,
        executor: ProcessExecutor,
        registry: TransformRegistry,
        run: RunContext,
        *,
        settings: Settings | None = None,
    ) -> None:
        self.platform = platform
        self.executor = executor
        self.registry = registry
        self.run = run
        self.settings = settings or get_settings()

    def clone(self) -> CloneResult:
        run = self.run
        with bound_context(run_id=run.run_id, source_site=run.source_site, target_site=run.target_site):
            validated = self.validate()
            backups_created = self.ensure_backups(validated.environments)
            target = self.create_target(validated)

            source_repo = GitReplicator(self.executor, run.source_clone_path, branch=run.git_branch)
            target_repo = GitReplicator(self.executor, run.target_clone_path, branch=run.git_branch)
            seeded, code_hooks = self.replicate_dev_code(source_repo, target_repo)
            environments = self.count_pending(validated.environments)
            plan = self.replicate_environment_code(target_repo, environments, base=seeded)

            content = ContentReplicator(self.platform, self.registry, run).replicate(
                environments, run.target_site
            )

            kept = self.cleanup(source_repo, target_repo)
            result = CloneResult(
                source=validated.source,
                target=target,
                plan=plan,
                source_environments=environments,
                content=content,
                backups_created=backups_created,
                code_hooks=code_hooks,
                kept_paths=kept,
            )
            result.source_urls = site_urls(
                self.platform, validated.source, environments, self.settings
            )
            result.target_urls = site_urls(
                self.platform,
                target,
                self.platform.list_environments(run.target_site),
                self.settings,
            )
            logger.info("clone of %s into %s finished", run.source_site, run.target_site)
            return result

    # ----------------------------
    # 1. Validation (read-only)
    # ----------------------------
    def validate(self) -> _Validated:
        run = self.run
        source = self.platform.get_site(run.source_site)
        if source is None:
            raise ValidationError(
                f"The source site '{run.source_site}' doesn't exist. Please choose an existing site.",
                context={"site": run.source_site},
            )
        if self.platform.site_exists(run.target_site):
            raise ValidationError(
                f"The target site '{run.target_site}' already exists. Please choose another name.",
                context={"site": run.target_site},
            )
        if self.executor.which("git") is None:
            raise PrerequisiteError(
                "'git' was not found in your path. You must remedy this before using this command."
            )
        upstream = run.target_upstream or source.upstream
        if not upstream:
            raise ValidationError(
                "The upstream for this site is null.",
                context={"site": run.source_site},
            )
        environments = self.platform.list_environments(run.source_site)
        return _Validated(
            source=source,
            environments=environments,
            org=run.target_org or source.organization,
            upstream=upstream,
        )

    # ----------------------------
    # 2. Backups
    # ----------------------------
    def ensure_backups(self, environments: list[Environment]) -> list[tuple[str, Element | None]]:
        run = self.run
        states = initialized_map(environments)
        initialized = [env for env in DEFAULT_ENVIRONMENTS if states.get(env, False)]
        created: list[tuple[str, Element | None]] = []

        if run.force_backup:
            for env in initialized:
                logger.info("creating a new backup of %s.%s as requested", run.source_site, env)
                self._backup(env, None)
                created.append((env, None))
            return created

        found: dict[str, dict[Element, list[Backup]]] = {
            env: {
                element: self.platform.list_backups(run.source_site, env, element)
                for element in CONTENT_ELEMENTS
            }
            for env in initialized
        }
        audit = audit_backups(found, started_at=run.started_at, max_age=run.backup_max_age)
        for env, element in audit.problems():
            logger.info(
                "backup of %s.%s %s is missing or stale; creating a new one",
                run.source_site,
                env,
                element.value,
            )
            self._backup(env, element)
            created.append((env, element))
        return created

    def _backup(self, env: str, element: Element | None) -> None:
        site = self.run.source_site
        outcome = self.platform.create_backup(site, env, element).await_completion()
        if not outcome.ok:
            raise BackupError(
                f"backup of {site}.{env} failed: {outcome.message}",
                context={
                    "site": site,
                    "environment": env,
                    "element": element.value if element else "all",
                },
            )

    # ----------------------------
    # 3. Target site
    # ----------------------------
    def create_target(self, validated: _Validated) -> SiteInfo:
        name = self.run.target_site
        logger.info("creating target site %s (upstream %s)", name, validated.upstream)
        outcome = self.platform.create_site(
            name, org=validated.org, upstream=validated.upstream
        ).await_completion()
        if not outcome.ok:
            raise PlatformError(
                f"Failed to create target site: {outcome.message}",
                context={"site": name},
            )
        target = self.platform.get_site(name)
        if target is None:
            raise PlatformError(
                "target site was created but cannot be found",
                context={"site": name},
            )
        mode = self.platform.set_connection_mode(name, DEV, ConnectionMode.GIT).await_completion()
        if not mode.ok:
            raise PlatformError(
                f"switching {name}.dev to git mode failed: {mode.message}",
                context={"site": name, "environment": DEV},
            )
        return target

    # ----------------------------
    # 4. Code
    # ----------------------------
    def replicate_dev_code(
        self, source_repo: GitReplicator, target_repo: GitReplicator
    ) -> tuple[str, list[str]]:
        """Make target dev byte-identical to the source head, then run code hooks.

        Returns the seeded source sha and the names of the hooks that ran.
        """
        run = self.run
        source_repo.clone_or_pull(
            self.platform.connection_git_command(run.source_site, DEV), run.source_git_depth
        )
        target_repo.clone_or_pull(
            self.platform.connection_git_command(run.target_site, DEV), run.target_git_depth
        )
        sha = source_repo.latest_commit()
        logger.info("resetting %s to %s at %s", run.target_site, run.source_site, sha)
        target_repo.seed_from(source_repo.path, sha)
        target_repo.force_push()

        hooks = self.registry.run(
            TransformKind.CODE,
            TransformContext(
                run=run,
                platform=self.platform,
                site=run.target_site,
                environment=DEV,
                replicator=target_repo,
            ),
            run.skip_transforms,
        )
        return sha, hooks

    def count_pending(self, environments: list[Environment]) -> list[Environment]:
        counts = deployable_commits(self.platform, self.run.source_site, environments)
        return with_deployable_commits(environments, counts)

    def replicate_environment_code(
        self,
        target_repo: GitReplicator,
        environments: list[Environment],
        *,
        base: str = "HEAD",
    ) -> DeployPlan:
        by_id = {env.id: env for env in environments}
        live, test = by_id.get(LIVE), by_id.get(TEST)
        plan = build_deploy_plan(
            live_initialized=live is not None and live.initialized,
            test_initialized=test is not None and test.initialized,
            live_deployable=live.deployable_commits if live else None,
            test_deployable=test.deployable_commits if test else None,
        )
        # Code hooks may have committed on top of the seeded sha; boundaries
        # are measured on source history only.
        target_repo.apply_plan(plan, self._deploy, base=base)
        return plan

    def _deploy(self, env: str) -> None:
        site = self.run.target_site
        logger.info("deploying %s code to %s", site, env)
        outcome = self.platform.deploy(site, env, self.run.deploy_note).await_completion()
        if not outcome.ok:
            raise DeployError(
                f"Failed to deploy {site} to {env}: {outcome.message}",
                context={"site": site, "environment": env},
            )

    # ----------------------------
    # 6. Cleanup
    # ----------------------------
    def cleanup(self, *repos: GitReplicator) -> list[Path]:
        paths = [repo.path for repo in repos]
        if self.run.debug_git:
            logger.warning(
                "Debug mode. Git working directories not removed: %s",
                ", ".join(str(path) for path in paths),
            )
            return paths
        logger.info("cleaning up local git working directories")
        for repo in repos:
            repo.remove()
        return []
