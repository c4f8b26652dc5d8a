import pytest

from siteclone.content import ContentReplicator, ContentStatus
from siteclone.errors import PlatformError
from siteclone.hooks import TransformKind, TransformRegistry
from siteclone.models import Element, Environment

ALL_ENVS = [
    Environment("dev", True),
    Environment("test", True),
    Environment("live", True),
    Environment("feature-x", True),
]


def test_environments_replicated_in_order_with_hooks(fresh_source, make_run) -> None:
    platform = fresh_source
    order: list[str] = []
    registry = TransformRegistry()
    registry.register(
        TransformKind.CONTENT, "transformContent_001", lambda ctx: order.append(f"hook:{ctx.environment}")
    )
    platform.clear_cache = _recording(platform.clear_cache, order, "cache")

    results = ContentReplicator(platform, registry, make_run()).replicate(ALL_ENVS, "dst-site")

    assert [item.environment for item in results] == ["dev", "test", "live"]
    assert all(item.status is ContentStatus.SUCCESS for item in results)
    assert results[0].imported == [Element.DATABASE, Element.FILES]
    assert results[0].hooks == ["transformContent_001"]
    assert order == [
        "hook:dev",
        "cache:dev",
        "hook:test",
        "cache:test",
        "hook:live",
        "cache:live",
    ]
    imports = platform.called("import_content")
    assert imports[0] == (
        "import_content",
        "dst-site",
        "dev",
        Element.DATABASE,
        "https://backups.example/src-site/dev/dev_database.gz",
    )


def test_uninitialized_environments_are_skipped(fresh_source, make_run) -> None:
    envs = [Environment("dev", True), Environment("test", False), Environment("live", False)]
    results = ContentReplicator(fresh_source, TransformRegistry(), make_run()).replicate(envs, "dst-site")
    assert [item.environment for item in results] == ["dev"]
    assert {call[2] for call in fresh_source.called("import_content")} == {"dev"}


def test_missing_backup_url_fails_only_that_environment(fresh_source, make_run) -> None:
    platform = fresh_source
    platform.missing_urls.add(("src-site", "test", Element.FILES))
    registry = TransformRegistry()
    hooked: list[str] = []
    registry.register(TransformKind.CONTENT, "h", lambda ctx: hooked.append(ctx.environment))

    results = ContentReplicator(platform, registry, make_run()).replicate(ALL_ENVS, "dst-site")

    by_env = {item.environment: item for item in results}
    assert by_env["test"].status is ContentStatus.FAILED
    assert "files" in by_env["test"].error
    assert by_env["live"].ok
    assert hooked == ["dev", "live"]
    assert ("clear_cache", "dst-site", "test") not in platform.calls
    assert not [call for call in platform.called("import_content") if call[2] == "test"]


def test_failed_import_skips_hooks_and_cache(fresh_source, make_run) -> None:
    platform = fresh_source
    platform.import_codes[("dst-site", "dev", Element.DATABASE)] = 1

    results = ContentReplicator(platform, TransformRegistry(), make_run()).replicate(ALL_ENVS, "dst-site")

    assert results[0].status is ContentStatus.FAILED
    assert ("clear_cache", "dst-site", "dev") not in platform.calls
    assert results[1].ok and results[2].ok


def test_backup_listing_failure_fails_only_that_environment(fresh_source, make_run) -> None:
    platform = fresh_source
    list_backups = platform.list_backups

    def _flaky(site: str, env: str, element: Element):
        if env == "test":
            raise PlatformError("terminus backup:list failed: timeout")
        return list_backups(site, env, element)

    platform.list_backups = _flaky

    results = ContentReplicator(platform, TransformRegistry(), make_run()).replicate(ALL_ENVS, "dst-site")

    by_env = {item.environment: item for item in results}
    assert by_env["test"].status is ContentStatus.FAILED
    assert "backup:list failed" in by_env["test"].error
    assert by_env["dev"].ok and by_env["live"].ok
    assert ("clear_cache", "dst-site", "test") not in platform.calls


def test_skip_set_is_honored(fresh_source, make_run) -> None:
    registry = TransformRegistry()
    registry.register(TransformKind.CONTENT, "keep", lambda ctx: None)
    registry.register(TransformKind.CONTENT, "drop", lambda ctx: None)
    run = make_run(skip_transforms=frozenset({"drop"}))

    results = ContentReplicator(fresh_source, registry, run).replicate(
        [Environment("dev", True)], "dst-site"
    )

    assert results[0].hooks == ["keep"]


def test_cache_clear_failure_is_fatal(fresh_source, make_run) -> None:
    fresh_source.failing.add("clear_cache")
    with pytest.raises(PlatformError):
        ContentReplicator(fresh_source, TransformRegistry(), make_run()).replicate(
            [Environment("dev", True)], "dst-site"
        )


def _recording(func, order: list[str], label: str):
    def _wrapped(site: str, env: str):
        order.append(f"{label}:{env}")
        return func(site, env)

    return _wrapped
