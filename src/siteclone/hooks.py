"""Named transform hooks run after code is pushed or content is imported."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from importlib.metadata import entry_points
from typing import TYPE_CHECKING

from siteclone.errors import TransformError

if TYPE_CHECKING:
    from siteclone.context import RunContext
    from siteclone.platform.base import PlatformClient
    from siteclone.replicator import GitReplicator

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "siteclone.transforms"


class TransformKind(str, Enum):
    CODE = "transformCode"
    CONTENT = "transformContent"


@dataclass(frozen=True, slots=True)
class TransformContext:
    run: RunContext
    platform: PlatformClient
    site: str
    environment: str
    replicator: GitReplicator | None = None


Hook = Callable[[TransformContext], None]


def transform(kind: TransformKind | str) -> Callable[[Hook], Hook]:
    """Tag a function with its transform kind for entry-point registration."""
    resolved = TransformKind(kind)

    def decorator(func: Hook) -> Hook:
        func.kind = resolved  # type: ignore[attr-defined]
        return func

    return decorator


class TransformRegistry:
    def __init__(self) -> None:
        self._hooks: dict[TransformKind, dict[str, Hook]] = {kind: {} for kind in TransformKind}

    def register(self, kind: TransformKind | str, name: str, hook: Hook) -> None:
        resolved = TransformKind(kind)
        if not name:
            raise ValueError("transform name must not be empty")
        if name in self._hooks[resolved]:
            raise ValueError(f"transform already registered for {resolved.value}: {name}")
        self._hooks[resolved][name] = hook

    def names(self, kind: TransformKind | str | None = None) -> list[str]:
        kinds = list(TransformKind) if kind is None else [TransformKind(kind)]
        return sorted({name for item in kinds for name in self._hooks[item]})

    def hooks(self, kind: TransformKind | str) -> list[tuple[str, Hook]]:
        """Registered hooks of one kind, ordered by name."""
        return sorted(self._hooks[TransformKind(kind)].items())

    def unknown(self, skip: Iterable[str]) -> list[str]:
        known = set(self.names())
        return sorted(name for name in skip if name not in known)

    def run(
        self,
        kind: TransformKind | str,
        context: TransformContext,
        skip: Iterable[str] = (),
    ) -> list[str]:
        """Run hooks of `kind` in name order, skipping names in `skip`.

        Returns the names that ran. Any exception from a hook is re-raised as
        TransformError.
        """
        resolved = TransformKind(kind)
        skipped = set(skip)
        ran: list[str] = []
        for name, hook in self.hooks(resolved):
            if name in skipped:
                logger.info("skipping %s hook %s", resolved.value, name)
                continue
            logger.info(
                "running %s hook %s on %s.%s",
                resolved.value,
                name,
                context.site,
                context.environment,
            )
            try:
                hook(context)
            except Exception as exc:
                raise TransformError(
                    f"{resolved.value} hook {name} failed: {exc}",
                    context={
                        "hook": name,
                        "site": context.site,
                        "environment": context.environment,
                    },
                ) from exc
            ran.append(name)
        return ran


def load_entry_point_transforms(
    registry: TransformRegistry,
    group: str = ENTRY_POINT_GROUP,
) -> list[str]:
    """Register hooks advertised by installed packages. Returns registered names."""
    loaded: list[str] = []
    for ep in entry_points(group=group):
        try:
            hook = ep.load()
            kind = getattr(hook, "kind", None)
            if kind is None:
                logger.warning("transform entry point %s has no kind; ignored", ep.name)
                continue
            registry.register(kind, ep.name, hook)
        except Exception:
            logger.warning("Failed to load transform entry point: %s", ep.name, exc_info=True)
            continue
        loaded.append(ep.name)
    return loaded
