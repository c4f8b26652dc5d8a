"""Click entry point: `siteclone --source-site ... --target-site ...`."""

from __future__ import annotations

import logging

import click

from siteclone import COMPATIBLE_TERMINUS_VERSION, __version__
from siteclone.config import get_settings, validate_settings
from siteclone.context import build_run_context, resolve_target_site_name
from siteclone.errors import PrerequisiteError, SiteCloneError
from siteclone.hooks import TransformRegistry, load_entry_point_transforms
from siteclone.logging import configure_logging
from siteclone.orchestrator import CloneResult, SiteCloner
from siteclone.platform.terminus import TerminusClient
from siteclone.process import ProcessExecutor
from siteclone.urls import format_urls

logger = logging.getLogger(__name__)


def _print_version(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
    if not value or ctx.resilient_parsing:
        return
    click.echo(f"siteclone version: {__version__}")
    click.echo(f"compatible terminus version: {COMPATIBLE_TERMINUS_VERSION}")
    ctx.exit()


@click.command(name="siteclone")
@click.option(
    "--version",
    is_flag=True,
    expose_value=False,
    is_eager=True,
    callback=_print_version,
    help="Print the siteclone and compatible terminus versions.",
)
@click.option("--source-site", type=str, default=None, help="Name of the site to clone.")
@click.option("--target-site", type=str, default=None, help="Name of the new site.")
@click.option("--target-site-prefix", type=str, default=None, help="Prefix: <prefix>-<source>.")
@click.option("--target-site-suffix", type=str, default=None, help="Suffix: <source>-<suffix>.")
@click.option("--target-site-org", type=str, default=None, help="Organization for the new site.")
@click.option(
    "--target-site-upstream",
    type=str,
    default=None,
    help="Upstream id for the new site (default: the source's upstream).",
)
@click.option("--source-site-git-depth", type=int, default=None, help="Shallow clone depth.")
@click.option("--target-site-git-depth", type=int, default=None, help="Shallow clone depth.")
@click.option(
    "--source-site-backup",
    is_flag=True,
    help="Back up every initialized source environment before cloning.",
)
@click.option(
    "--no-custom",
    type=str,
    default=None,
    help="Comma-separated transform names to skip, e.g. transformCode_002,transformContent_001.",
)
@click.option("--debug-git", is_flag=True, help="Keep the local git working directories.")
def cli(
    source_site: str | None,
    target_site: str | None,
    target_site_prefix: str | None,
    target_site_suffix: str | None,
    target_site_org: str | None,
    target_site_upstream: str | None,
    source_site_git_depth: int | None,
    target_site_git_depth: int | None,
    source_site_backup: bool,
    no_custom: str | None,
    debug_git: bool,
) -> None:
    """Clone a site's code and content across dev, test and live."""
    if not source_site:
        raise click.ClickException("The '--source-site' option is required.")

    settings = get_settings()
    try:
        validate_settings(settings)
        configure_logging(settings.log_level, json_output=settings.app_env == "prod")
        run = build_run_context(
            settings,
            source_site=source_site,
            target_site=resolve_target_site_name(
                source_site,
                target_site=target_site,
                prefix=target_site_prefix,
                suffix=target_site_suffix,
            ),
            target_org=target_site_org,
            target_upstream=target_site_upstream,
            source_git_depth=source_site_git_depth,
            target_git_depth=target_site_git_depth,
            force_backup=source_site_backup,
            no_custom=no_custom,
            debug_git=debug_git,
        )

        terminus_exec = ProcessExecutor(timeout_s=settings.terminus_timeout_seconds)
        if terminus_exec.which(settings.terminus_bin) is None:
            raise PrerequisiteError(f"'{settings.terminus_bin}' was not found in your path.")
        platform = TerminusClient(
            terminus_exec,
            binary=settings.terminus_bin,
            poll_interval_s=settings.workflow_poll_interval_seconds,
            workflow_timeout_s=settings.workflow_timeout_seconds,
        )

        registry = TransformRegistry()
        load_entry_point_transforms(registry)
        for name in registry.unknown(run.skip_transforms):
            logger.warning("no transform named %s is registered", name)

        cloner = SiteCloner(
            platform,
            ProcessExecutor(timeout_s=settings.git_timeout_seconds),
            registry,
            run,
            settings=settings,
        )
        result = cloner.clone()
    except SiteCloneError as exc:
        raise click.ClickException(str(exc)) from exc

    _report(result)


def _report(result: CloneResult) -> None:
    click.echo(f"plan ({result.plan.strategy.value}): {result.plan.describe()}")
    pending = [
        f"{env.id} {env.deployable_commits}"
        for env in result.source_environments
        if env.deployable_commits is not None
    ]
    if pending:
        click.echo(f"deployable commits: {', '.join(pending)}")
    for item in result.content:
        if not item.ok:
            click.echo(f"content for {item.environment} failed: {item.error}", err=True)
    click.echo("")
    for line in format_urls("SOURCE SITE URLs (for reference)", result.source_urls):
        click.echo(line)
    click.echo("")
    for line in format_urls("TARGET SITE URLs", result.target_urls):
        click.echo(line)
