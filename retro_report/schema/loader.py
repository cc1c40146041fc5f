"""Run configuration — YAML serialization and deserialization for ReportConfig.

Provides round-trip save/load so a deployment's settings (currencies,
fallback rate, region sheet, Confluence location) can be reviewed and
version-controlled as a human-readable YAML file.  Credentials are never
stored here; connectors read them from the environment.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ..errors import ConfigurationError


DEFAULT_FALLBACK_RATE = 0.74  # approximate USD->GBP, used when the rate API fails


@dataclass
class RateServiceConfig:
    """Where to fetch the exchange rate from."""
    base_url: str = "https://api.wise.com/v1"
    token_env: str = "RATE_API_TOKEN"
    timeout_seconds: float = 10.0

    def to_dict(self) -> dict:
        return {"base_url": self.base_url, "token_env": self.token_env,
                "timeout_seconds": self.timeout_seconds}

    @classmethod
    def from_dict(cls, d: dict) -> "RateServiceConfig":
        return cls(
            base_url=d.get("base_url", "https://api.wise.com/v1"),
            token_env=d.get("token_env", "RATE_API_TOKEN"),
            timeout_seconds=float(d.get("timeout_seconds", 10.0)),
        )


@dataclass
class RegionSheetConfig:
    """Spreadsheet tab holding the 2-ISO -> Region table."""
    spreadsheet_id: str = ""
    tab_name: str = "Regions"

    def to_dict(self) -> dict:
        return {"spreadsheet_id": self.spreadsheet_id, "tab_name": self.tab_name}

    @classmethod
    def from_dict(cls, d: dict) -> "RegionSheetConfig":
        return cls(
            spreadsheet_id=d.get("spreadsheet_id", ""),
            tab_name=d.get("tab_name", "Regions"),
        )


@dataclass
class ConfluenceConfig:
    """Confluence space and page tree the report is published into."""
    domain: str = ""
    space_key: str = ""
    parent_page_id: str = ""
    search_ancestor_id: str = ""

    def to_dict(self) -> dict:
        return {
            "domain": self.domain,
            "space_key": self.space_key,
            "parent_page_id": self.parent_page_id,
            "search_ancestor_id": self.search_ancestor_id,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "ConfluenceConfig":
        return cls(
            domain=d.get("domain", ""),
            space_key=d.get("space_key", ""),
            parent_page_id=str(d.get("parent_page_id", "")),
            search_ancestor_id=str(d.get("search_ancestor_id", "")),
        )


@dataclass
class ReportConfig:
    """Complete settings for one report run."""
    source_currency: str = "USD"
    target_currency: str = "GBP"
    source_symbol: str = "$"
    target_symbol: str = "£"
    fallback_rate: float = DEFAULT_FALLBACK_RATE
    vendor_keyword: str = "podscribe"
    title: str = "Podscribe Performance Data"
    raw_appendix_limit: int = 100_000
    rate_service: RateServiceConfig = field(default_factory=RateServiceConfig)
    region_sheet: RegionSheetConfig = field(default_factory=RegionSheetConfig)
    confluence: ConfluenceConfig = field(default_factory=ConfluenceConfig)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_currency": self.source_currency,
            "target_currency": self.target_currency,
            "source_symbol": self.source_symbol,
            "target_symbol": self.target_symbol,
            "fallback_rate": self.fallback_rate,
            "vendor_keyword": self.vendor_keyword,
            "title": self.title,
            "raw_appendix_limit": self.raw_appendix_limit,
            "rate_service": self.rate_service.to_dict(),
            "region_sheet": self.region_sheet.to_dict(),
            "confluence": self.confluence.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: dict | None) -> "ReportConfig":
        d = d or {}
        try:
            fallback = float(d.get("fallback_rate", DEFAULT_FALLBACK_RATE))
        except (TypeError, ValueError):
            raise ConfigurationError(
                f"fallback_rate must be a number, got {d.get('fallback_rate')!r}"
            ) from None
        if not fallback > 0:
            raise ConfigurationError(
                f"fallback_rate must be positive, got {fallback}"
            )
        return cls(
            source_currency=d.get("source_currency", "USD"),
            target_currency=d.get("target_currency", "GBP"),
            source_symbol=d.get("source_symbol", "$"),
            target_symbol=d.get("target_symbol", "£"),
            fallback_rate=fallback,
            vendor_keyword=str(d.get("vendor_keyword", "podscribe")).lower(),
            title=d.get("title", "Podscribe Performance Data"),
            raw_appendix_limit=int(d.get("raw_appendix_limit", 100_000)),
            rate_service=RateServiceConfig.from_dict(d.get("rate_service") or {}),
            region_sheet=RegionSheetConfig.from_dict(d.get("region_sheet") or {}),
            confluence=ConfluenceConfig.from_dict(d.get("confluence") or {}),
        )


def save_config(config: ReportConfig, path: str | Path) -> None:
    """Serialize a ReportConfig to a YAML file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.to_dict()
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False,
                  allow_unicode=True, width=120)


def load_config(path: str | Path | None = None) -> ReportConfig:
    """Deserialize a ReportConfig from a YAML file (defaults when *path* is None)."""
    if path is None:
        return ReportConfig()
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is not None and not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return ReportConfig.from_dict(data)
