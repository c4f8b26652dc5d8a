"""Dashboard and environment URLs printed at the end of a clone."""

from __future__ import annotations

from collections.abc import Iterable

from siteclone.config import Settings
from siteclone.models import DEFAULT_ENVIRONMENTS, DEV, Environment, SiteInfo
from siteclone.platform.base import PlatformClient


def dev_domain(platform: PlatformClient, site: SiteInfo, default_domain: str) -> str:
    """Base domain serving the site's environments.

    A site with a single dev hostname lives on the platform domain. When more
    exist, the first one outside the platform domain names a custom base
    domain (`dev-<site>.<domain>`).
    """
    hostnames = platform.list_hostnames(site.name, DEV)
    if len(hostnames) <= 1:
        return default_domain
    prefix = f"dev-{site.name}."
    for hostname in hostnames:
        if default_domain in hostname:
            continue
        return hostname.removeprefix(prefix)
    return default_domain


def site_urls(
    platform: PlatformClient,
    site: SiteInfo,
    environments: Iterable[Environment],
    settings: Settings,
) -> dict[str, str]:
    urls = {
        "dashboard": (
            f"{settings.dashboard_protocol}://{settings.dashboard_host}/sites/{site.id}#dev"
        )
    }
    initialized = {env.id for env in environments if env.initialized}
    domain = dev_domain(platform, site, settings.platform_default_domain)
    for env in DEFAULT_ENVIRONMENTS:
        if env in initialized:
            urls[env] = f"http://{env}-{site.name}.{domain}"
    return urls


def format_urls(label: str, urls: dict[str, str]) -> list[str]:
    lines = [f"{label}:"]
    width = max(len(key) for key in urls)
    lines += [f"  {key.ljust(width)}  {value}" for key, value in urls.items()]
    return lines
