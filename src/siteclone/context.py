"""Immutable per-run context, built once at entry and passed to every component."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path
from uuid import uuid4

from siteclone.config import Settings
from siteclone.errors import ValidationError


@dataclass(frozen=True, slots=True)
class RunContext:
    run_id: str
    source_site: str
    target_site: str
    clone_root: Path
    started_at: datetime
    target_org: str | None = None
    target_upstream: str | None = None
    source_git_depth: int | None = None
    target_git_depth: int | None = None
    force_backup: bool = False
    skip_transforms: frozenset[str] = field(default_factory=frozenset)
    debug_git: bool = False
    deploy_note: str = "Deployed by 'siteclone'"
    backup_max_age: timedelta = timedelta(hours=48)
    git_branch: str = "master"

    @property
    def source_clone_path(self) -> Path:
        return self.clone_root / self.source_site

    @property
    def target_clone_path(self) -> Path:
        return self.clone_root / self.target_site


def new_run_id() -> str:
    return f"run_{uuid4().hex}"


def resolve_target_site_name(
    source_site: str,
    *,
    target_site: str | None = None,
    prefix: str | None = None,
    suffix: str | None = None,
) -> str:
    """Explicit --target-site wins; otherwise build prefix-source-suffix."""
    if target_site:
        name = target_site
    elif prefix or suffix:
        name = source_site
        if prefix:
            name = f"{prefix}-{name}"
        if suffix:
            name = f"{name}-{suffix}"
    else:
        name = ""

    if not name or name == source_site:
        raise ValidationError(
            "At least one of --target-site, --target-site-prefix or --target-site-suffix "
            "is required, and the target site name must differ from the source site name.",
            context={"source_site": source_site, "target_site": name},
        )
    return name


def parse_skip_list(raw: str | None) -> frozenset[str]:
    if not raw:
        return frozenset()
    return frozenset(item.strip() for item in raw.split(",") if item.strip())


def build_run_context(
    settings: Settings,
    *,
    source_site: str,
    target_site: str,
    target_org: str | None = None,
    target_upstream: str | None = None,
    source_git_depth: int | None = None,
    target_git_depth: int | None = None,
    force_backup: bool = False,
    no_custom: str | None = None,
    debug_git: bool = False,
    started_at: datetime | None = None,
) -> RunContext:
    if not source_site.strip():
        raise ValidationError("The '--source-site' option is required.")
    for label, depth in (("source", source_git_depth), ("target", target_git_depth)):
        if depth is not None and depth <= 0:
            raise ValidationError(
                f"--{label}-site-git-depth must be a positive integer",
                context={"depth": depth},
            )
    return RunContext(
        run_id=new_run_id(),
        source_site=source_site,
        target_site=target_site,
        clone_root=Path(settings.clone_root),
        started_at=started_at or datetime.now(UTC),
        target_org=target_org or None,
        target_upstream=target_upstream or None,
        source_git_depth=source_git_depth,
        target_git_depth=target_git_depth,
        force_backup=force_backup,
        skip_transforms=parse_skip_list(no_custom),
        debug_git=debug_git,
        deploy_note=settings.deploy_note,
        backup_max_age=timedelta(hours=settings.backup_max_age_hours),
        git_branch=settings.git_branch,
    )
