"""PlatformClient implementation driving the `terminus` CLI."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from siteclone.errors import PlatformError
from siteclone.models import DEV, LIVE, TEST, Backup, ConnectionMode, Element, Environment, SiteInfo
from siteclone.platform.workflow import CommandWorkflow, Workflow
from siteclone.process import ExecResult, ProcessExecutor

logger = logging.getLogger(__name__)

# Environment whose code log holds the commits a deploy would promote.
_PARENT_ENV = {TEST: DEV, LIVE: TEST}
_ELEMENT_FLAG = {Element.CODE: "code", Element.DATABASE: "db", Element.FILES: "files"}
_IMPORT_COMMAND = {Element.DATABASE: "import:database", Element.FILES: "import:files"}
_DATE_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%dT%H:%M:%S")
# site:info wording when the site is absent or not visible to the user.
_MISSING_SITE_MARKERS = ("could not locate a site", "could not find a site", "site does not exist")

RowT = TypeVar("RowT", bound="_Row")


class _Row(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class SiteRow(_Row):
    id: str
    name: str
    organization: str = ""
    upstream: str = ""

    @field_validator("organization", "upstream", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class EnvironmentRow(_Row):
    id: str
    initialized: bool = False


class BackupRow(_Row):
    file: str = ""
    finish_time: float | None = None
    date: str = ""


class CodeLogRow(_Row):
    hash: str = ""
    labels: list[str] = Field(default_factory=list)

    @field_validator("labels", mode="before")
    @classmethod
    def _split_labels(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value


class DomainRow(_Row):
    id: str = Field(default="", alias="domain")

    @field_validator("id", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class TerminusClient:
    """Talks to the platform through its own CLI.

    Read queries run to completion and parse `--format=json` output.
    Mutations are started in the background and returned as workflows.
    """

    def __init__(
        self,
        executor: ProcessExecutor,
        *,
        binary: str = "terminus",
        poll_interval_s: float = 3.0,
        workflow_timeout_s: float = 3600.0,
    ) -> None:
        self._executor = executor
        self._binary = binary
        self._poll_interval_s = poll_interval_s
        self._workflow_timeout_s = workflow_timeout_s

    # ----------------------------
    # Sites and environments
    # ----------------------------
    def get_site(self, name: str) -> SiteInfo | None:
        result = self._run("site:info", name, "--format=json")
        if not result.ok:
            if _is_missing_site(result):
                logger.debug("site %s not found: %s", name, result.detail)
                return None
            raise PlatformError(
                f"terminus site:info failed: {result.detail}",
                context={"site": name, "exit_code": result.exit_code},
            )
        row = self._parse(SiteRow, self._json(result), what=f"site:info {name}")
        return SiteInfo(
            id=row.id,
            name=row.name,
            organization=row.organization,
            upstream=_upstream_id(row.upstream),
        )

    def site_exists(self, name: str) -> bool:
        return self.get_site(name) is not None

    def create_site(self, name: str, *, org: str, upstream: str) -> Workflow:
        args = ["site:create", name, name, upstream]
        if org:
            args.append(f"--org={org}")
        return self._start(f"create site {name}", *args)

    def list_environments(self, site: str) -> list[Environment]:
        payload = self._json(self._require("env:list", site, "--format=json"))
        rows = payload.values() if isinstance(payload, dict) else payload
        return [
            Environment(id=row.id, initialized=row.initialized)
            for row in (self._parse(EnvironmentRow, item, what="env:list") for item in rows)
        ]

    def connection_git_command(self, site: str, env: str) -> str:
        result = self._require("connection:info", f"{site}.{env}", "--field=git_command")
        command = result.stdout.strip()
        if not command:
            raise PlatformError(
                "platform returned an empty git command",
                context={"site": site, "environment": env},
            )
        return command

    def set_connection_mode(self, site: str, env: str, mode: ConnectionMode) -> Workflow:
        return self._start(
            f"set {site}.{env} connection mode to {mode.value}",
            "connection:set",
            f"{site}.{env}",
            mode.value,
        )

    def count_deployable_commits(self, site: str, env: str) -> int:
        parent = _PARENT_ENV.get(env)
        if parent is None:
            raise PlatformError(
                "deployable commits are only defined for test and live",
                context={"site": site, "environment": env},
            )
        payload = self._json(self._require("env:code-log", f"{site}.{parent}", "--format=json"))
        rows = payload.values() if isinstance(payload, dict) else payload
        commits = [self._parse(CodeLogRow, item, what="env:code-log") for item in rows]
        return sum(1 for commit in commits if env not in commit.labels)

    # ----------------------------
    # Backups and content
    # ----------------------------
    def list_backups(self, site: str, env: str, element: Element) -> list[Backup]:
        payload = self._json(
            self._require(
                "backup:list",
                f"{site}.{env}",
                f"--element={_ELEMENT_FLAG[element]}",
                "--format=json",
            )
        )
        rows = payload.values() if isinstance(payload, dict) else payload
        backups: list[Backup] = []
        for item in rows:
            row = self._parse(BackupRow, item, what="backup:list")
            finished = _finish_time(row)
            if finished is None:
                continue
            backups.append(
                Backup(
                    site=site,
                    environment=env,
                    element=element,
                    finish_time=finished,
                    file=row.file,
                )
            )
        backups.sort(key=lambda item: item.finish_time, reverse=True)
        return backups

    def backup_url(self, backup: Backup) -> str | None:
        args = ["backup:get", f"{backup.site}.{backup.environment}"]
        if backup.file:
            args.append(f"--file={backup.file}")
        else:
            args.append(f"--element={_ELEMENT_FLAG[backup.element]}")
        result = self._run(*args)
        url = result.stdout.strip()
        if not result.ok or not url:
            return None
        return url

    def create_backup(self, site: str, env: str, element: Element | None = None) -> Workflow:
        args = ["backup:create", f"{site}.{env}"]
        label = "all"
        if element is not None:
            args.append(f"--element={_ELEMENT_FLAG[element]}")
            label = element.value
        return self._start(f"backup {site}.{env} {label}", *args)

    def import_content(self, site: str, env: str, element: Element, url: str) -> int:
        command = _IMPORT_COMMAND.get(element)
        if command is None:
            raise PlatformError(
                "only database and files can be imported",
                context={"site": site, "environment": env, "element": element.value},
            )
        return self._run(command, f"{site}.{env}", url, "--yes").exit_code

    def clear_cache(self, site: str, env: str) -> Workflow:
        return self._start(f"clear cache {site}.{env}", "env:clear-cache", f"{site}.{env}")

    def deploy(self, site: str, env: str, note: str) -> Workflow:
        return self._start(
            f"deploy {site} to {env}",
            "env:deploy",
            f"{site}.{env}",
            f"--note={note}",
        )

    def list_hostnames(self, site: str, env: str) -> list[str]:
        result = self._run("domain:list", f"{site}.{env}", "--format=json")
        if not result.ok:
            return []
        payload = self._json(result)
        if isinstance(payload, dict):
            rows = [{"domain": key, **value} if isinstance(value, dict) else {"domain": key}
                    for key, value in payload.items()]
        else:
            rows = payload
        hostnames = [self._parse(DomainRow, item, what="domain:list").id for item in rows]
        return [name for name in hostnames if name]

    # ----------------------------
    # Internals
    # ----------------------------
    def _command(self, *args: str) -> list[str]:
        return [self._binary, *args, "--no-interaction"]

    def _run(self, *args: str) -> ExecResult:
        return self._executor.run(self._command(*args))

    def _require(self, *args: str) -> ExecResult:
        result = self._run(*args)
        if not result.ok:
            raise PlatformError(
                f"terminus {args[0]} failed: {result.detail}",
                context={"command": " ".join(args)},
            )
        return result

    def _start(self, description: str, *args: str) -> Workflow:
        logger.info("starting workflow: %s", description)
        running = self._executor.start(self._command(*args))
        return CommandWorkflow(
            description,
            running,
            poll_interval_s=self._poll_interval_s,
            timeout_s=self._workflow_timeout_s,
        )

    @staticmethod
    def _json(result: ExecResult) -> Any:
        text = result.stdout.strip()
        if not text:
            return []
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise PlatformError(
                "terminus returned malformed JSON",
                context={"command": " ".join(result.args)},
            ) from exc

    @staticmethod
    def _parse(model: type[RowT], payload: Any, *, what: str) -> RowT:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise PlatformError(f"unexpected {what} payload: {exc}") from exc


def _is_missing_site(result: ExecResult) -> bool:
    text = f"{result.stderr}\n{result.stdout}".lower()
    return any(marker in text for marker in _MISSING_SITE_MARKERS)


def _upstream_id(raw: str) -> str:
    # site:info renders the upstream as "<id>: <url>".
    return raw.split(":", 1)[0].strip() if ": " in raw else raw.strip()


def _finish_time(row: BackupRow) -> datetime | None:
    if row.finish_time is not None:
        return datetime.fromtimestamp(row.finish_time, tz=UTC)
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(row.date.strip(), fmt).replace(tzinfo=UTC)
        except ValueError:
            continue
    return None
