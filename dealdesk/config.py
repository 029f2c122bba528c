"""Configuration management for DealDesk."""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_DIR = Path(__file__).parent.parent / "config"


class ValuationConfig(BaseModel):
    max_offer_pct_of_arv: float = 0.70  # the 70% rule
    as_is_pct_of_arv: float = 0.85
    # "none" aborts on an empty comp set, "market_estimate" falls back to
    # the third-party value estimate
    fallback: Literal["none", "market_estimate"] = "none"


class CompsConfig(BaseModel):
    min_comps_for_high_confidence: int = 5
    min_comps_for_medium_confidence: int = 3


class RehabEstimateConfig(BaseModel):
    # Default line items used when no operator estimate is supplied
    kitchen: float = 12_000.0
    bathrooms: float = 8_000.0
    flooring: float = 6_000.0
    paint: float = 3_000.0
    roof: float = 0.0
    hvac: float = 2_000.0
    plumbing: float = 1_500.0
    electrical: float = 1_000.0
    windows: float = 0.0
    exterior: float = 1_500.0
    other: float = 0.0


class WholesaleConfig(BaseModel):
    fee: float = 10_000.0


class RehabStrategyConfig(BaseModel):
    holding_cost_rate: float = 0.10  # of ARV


class BRRRRConfig(BaseModel):
    refinance_ltv: float = 0.75
    expense_ratio: float = 0.50  # the 50% rule
    # Rent used when the market snapshot has no rent estimate.
    # None marks BRRRR unavailable instead of guessing.
    default_monthly_rent: Optional[float] = None


class NovationConfig(BaseModel):
    split_factor: float = 0.50
    light_rehab_factor: float = 0.50
    timeframe_months: int = 6
    # Without a market estimate, "arv_share" values the property at
    # fallback_value_pct_of_arv of ARV; "none" marks novation unavailable.
    fallback: Literal["arv_share", "none"] = "arv_share"
    fallback_value_pct_of_arv: float = 0.90


class FundingChannelConfig(BaseModel):
    max_ltv: float
    estimated_rate: float
    terms: str


class FundingConfig(BaseModel):
    hard_money: FundingChannelConfig = FundingChannelConfig(
        max_ltv=0.75, estimated_rate=12.5, terms="6-12 months"
    )
    conventional: FundingChannelConfig = FundingChannelConfig(
        max_ltv=0.80, estimated_rate=7.5, terms="30 years"
    )
    portfolio: FundingChannelConfig = FundingChannelConfig(
        max_ltv=0.75, estimated_rate=8.5, terms="15-30 years"
    )
    conventional_ineligible_conditions: list[str] = ["poor", "needs_major_repair"]
    cash_recommended_below: float = 200_000.0
    cash_advantages: list[str] = [
        "Quick closing",
        "Stronger offers",
        "No financing contingencies",
    ]


class AnalysisConfig(BaseModel):
    valuation: ValuationConfig = ValuationConfig()
    comps: CompsConfig = CompsConfig()
    rehab_estimate: RehabEstimateConfig = RehabEstimateConfig()
    wholesale: WholesaleConfig = WholesaleConfig()
    rehab: RehabStrategyConfig = RehabStrategyConfig()
    brrrr: BRRRRConfig = BRRRRConfig()
    novation: NovationConfig = NovationConfig()
    funding: FundingConfig = FundingConfig()


class PipelineConfig(BaseModel):
    deal_id_prefix: str = "DEAL"
    # "permissive" allows any jump between non-terminal statuses,
    # "strict" only allows the next status in order (or passing on the deal)
    transition_policy: Literal["permissive", "strict"] = "permissive"


class WebhookConfig(BaseModel):
    urls: list[str] = []
    timeout_seconds: float = 10.0


class EventsConfig(BaseModel):
    channels: list[str] = []
    webhook: WebhookConfig = WebhookConfig()


class DatabaseConfig(BaseModel):
    url: str = "sqlite:///dealdesk.db"


class AppConfig(BaseModel):
    analysis: AnalysisConfig = AnalysisConfig()
    pipeline: PipelineConfig = PipelineConfig()
    events: EventsConfig = EventsConfig()
    database: DatabaseConfig = DatabaseConfig()


class Settings(BaseSettings):
    """Environment overrides (DEALDESK_CONFIG_PATH, DEALDESK_DATABASE_URL)."""

    model_config = SettingsConfigDict(env_prefix="DEALDESK_")

    config_path: Optional[Path] = None
    database_url: Optional[str] = None


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load configuration from TOML files.

    Loads default.toml first, then merges local.toml or a custom path on top.
    Environment settings win over both.
    """
    settings = Settings()
    default_path = CONFIG_DIR / "default.toml"
    data: dict[str, Any] = {}

    if default_path.exists():
        with open(default_path, "rb") as f:
            data = tomllib.load(f)

    local_path = config_path or settings.config_path or CONFIG_DIR / "local.toml"
    if local_path.exists():
        with open(local_path, "rb") as f:
            overrides = tomllib.load(f)
        data = _deep_merge(data, overrides)

    if settings.database_url:
        data = _deep_merge(data, {"database": {"url": settings.database_url}})

    return AppConfig(**data)
