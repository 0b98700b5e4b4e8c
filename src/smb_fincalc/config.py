# SMB FinCalc - Financial analytics engine for SMB accounting dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for SMB FinCalc.

This module is responsible for:
- loading the engine configuration from an optional TOML file,
- validating the table-driven parts of the engine (classification table,
  recommendation rules, custom ratio formulas) once, at load time,
- exposing a typed, frozen EngineConfig that callers pass explicitly to the
  calculators.

The engine never reads configuration implicitly: ``load_engine_config(None)``
returns DEFAULT_CONFIG, and nothing in the package consults a global.
"""

import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from .accounts import DEFAULT_CLASSIFICATION, ClassificationTable, load_classification_table
from .balance import BALANCE_TOLERANCE
from .cash_flow import (
    DEFAULT_ALERT_WINDOW,
    DEFAULT_RECOMMENDATION_RULES,
    AlertWindow,
    RecommendationRule,
)
from .errors import ClassificationError, ConfigError, ExpressionError
from .expressions import validate_expression
from .indicators import (
    DEFAULT_SCORE_COMPONENTS,
    DEFAULT_THRESHOLDS,
    LEVEL_ORDER,
    IndicatorThresholds,
    RatioDefinition,
    RiskBands,
    ScoreComponent,
)
from .investments import DEFAULT_CANDIDATE_LIMIT, DEFAULT_RISK_WEIGHTS, RiskLevel
from .log import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class EngineConfig:
    """
    Engine-wide configuration.

    This aggregates:
    - the balance equation tolerance,
    - the payment alert window and the recommendation rule table,
    - the investment candidate limit and risk weights,
    - the indicator score components, risk bands and custom ratios,
    - the classification table used to classify account codes,
    - the logging level applications may pass to ``configure_logging``.
    """

    balance_tolerance: float = BALANCE_TOLERANCE
    alert_window: AlertWindow = DEFAULT_ALERT_WINDOW
    recommendation_rules: tuple[RecommendationRule, ...] = DEFAULT_RECOMMENDATION_RULES
    candidate_limit: int = DEFAULT_CANDIDATE_LIMIT
    risk_weights: Mapping[RiskLevel, float] = field(
        default_factory=lambda: dict(DEFAULT_RISK_WEIGHTS)
    )
    indicator_thresholds: IndicatorThresholds = DEFAULT_THRESHOLDS
    custom_ratios: tuple[RatioDefinition, ...] = ()
    classification: ClassificationTable = DEFAULT_CLASSIFICATION
    log_level: str = "WARNING"


DEFAULT_CONFIG = EngineConfig()


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        ConfigError: if the file does not exist or cannot be parsed.
    """
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Failed to parse TOML config file: {path}") from exc

    return data


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"Config entry [{key}] must be a table.")
    return value


def _number(section: Mapping[str, Any], key: str, default: float, where: str) -> float:
    raw = section.get(key, default)
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(
            f"Invalid value for '{where}.{key}' in the configuration. Expected a number."
        ) from exc


# ---------------------------------------------------------------------------
# Section parsers
# ---------------------------------------------------------------------------


def _parse_alert_window(cash_flow: Mapping[str, Any]) -> AlertWindow:
    alerts = _section(cash_flow, "alerts")
    return AlertWindow(
        days_before=int(_number(alerts, "days_before", DEFAULT_ALERT_WINDOW.days_before, "cash_flow.alerts")),
        days_after=int(_number(alerts, "days_after", DEFAULT_ALERT_WINDOW.days_after, "cash_flow.alerts")),
    )


def _parse_recommendations(cash_flow: Mapping[str, Any]) -> tuple[RecommendationRule, ...]:
    """
    Merge configured recommendation rules with the default table.

    Rules sharing a key with a default rule replace it; other rules are
    appended. ``replace_default_rules = true`` discards the defaults.
    """
    raw_rules = cash_flow.get("recommendations") or []
    if not isinstance(raw_rules, list):
        raise ConfigError("[[cash_flow.recommendations]] must be an array of tables.")

    parsed: list[RecommendationRule] = []
    for raw in raw_rules:
        try:
            parsed.append(
                RecommendationRule(
                    key=str(raw["key"]),
                    condition=str(raw["condition"]),
                    message=str(raw["message"]),
                    priority=int(raw.get("priority", 100)),
                )
            )
        except KeyError as exc:
            raise ConfigError(
                f"Recommendation rule is missing required field {exc.args[0]!r}."
            ) from exc
        except ExpressionError as exc:
            raise ConfigError(f"Invalid recommendation rule {raw.get('key')!r}: {exc}") from exc

    if cash_flow.get("replace_default_rules", False):
        return tuple(parsed)

    overrides = {r.key: r for r in parsed}
    merged = [overrides.pop(r.key, r) for r in DEFAULT_RECOMMENDATION_RULES]
    merged.extend(r for r in parsed if r.key in overrides)
    return tuple(merged)


def _parse_risk_weights(investments: Mapping[str, Any]) -> dict[RiskLevel, float]:
    raw = _section(investments, "risk_weights")
    weights = dict(DEFAULT_RISK_WEIGHTS)
    for key, value in raw.items():
        try:
            level = RiskLevel(str(key))
        except ValueError as exc:
            raise ConfigError(f"Unknown risk level in [investments.risk_weights]: {key!r}") from exc
        weights[level] = _number(raw, key, weights[level], "investments.risk_weights")
    return weights


def _parse_thresholds(indicators: Mapping[str, Any]) -> IndicatorThresholds:
    """
    Apply [indicators.thresholds] (healthy values) and [indicators.weights]
    to the default score components.
    """
    thresholds = _section(indicators, "thresholds")
    weights = _section(indicators, "weights")
    known = {c.key for c in DEFAULT_SCORE_COMPONENTS}
    for key in (*thresholds, *weights):
        if key not in known:
            raise ConfigError(
                f"Unknown score component {key!r}. Expected one of: {', '.join(sorted(known))}."
            )

    components = tuple(
        ScoreComponent(
            key=c.key,
            weight=_number(weights, c.key, c.weight, "indicators.weights"),
            healthy=_number(thresholds, c.key, c.healthy, "indicators.thresholds"),
            higher_is_better=c.higher_is_better,
            worst=c.worst,
        )
        for c in DEFAULT_SCORE_COMPONENTS
    )

    bands_raw = _section(indicators, "risk_bands")
    default_bands = RiskBands()
    bands = RiskBands(
        bajo=_number(bands_raw, "bajo", default_bands.bajo, "indicators.risk_bands"),
        medio=_number(bands_raw, "medio", default_bands.medio, "indicators.risk_bands"),
        alto=_number(bands_raw, "alto", default_bands.alto, "indicators.risk_bands"),
    )
    if not bands.bajo >= bands.medio >= bands.alto:
        raise ConfigError("[indicators.risk_bands] must satisfy bajo >= medio >= alto.")

    period_days = int(
        _number(indicators, "period_days", DEFAULT_THRESHOLDS.period_days, "indicators")
    )
    return IndicatorThresholds(components=components, risk_bands=bands, period_days=period_days)


def _parse_custom_ratios(
    raw: Mapping[str, Any],
    where: str,
) -> list[RatioDefinition]:
    """
    Parse ratio definitions.

    Each table under ``raw`` is one ratio:

        [indicators.custom_ratios.cash_to_assets]
        label = "Cash to assets"
        formula = "cash / total_assets * 100"
        level = "advanced"
        unit = "%"
    """
    out: list[RatioDefinition] = []
    for key, entry in raw.items():
        if not isinstance(entry, Mapping):
            raise ConfigError(f"Ratio definition '{where}.{key}' must be a table.")
        formula = entry.get("formula")
        if not formula:
            raise ConfigError(f"Ratio '{where}.{key}' has no formula.")
        level = str(entry.get("level", "basic"))
        if level not in LEVEL_ORDER:
            raise ConfigError(f"Ratio '{where}.{key}' has an unknown level {level!r}.")
        try:
            validate_expression(str(formula))
        except ExpressionError as exc:
            raise ConfigError(f"Invalid formula for ratio '{where}.{key}': {exc}") from exc
        out.append(
            RatioDefinition(
                key=str(key),
                label=str(entry.get("label", key)),
                formula=str(formula),
                level=level,
                unit=entry.get("unit"),
                notes=entry.get("notes"),
            )
        )
    return out


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_engine_config(config_path: Optional[str] = None) -> EngineConfig:
    """
    Load the SMB FinCalc engine configuration from a TOML file.

    Every section is optional; missing sections and keys fall back to the
    engine defaults.

    Expected top-level sections in the TOML file
    --------------------------------------------
    [balance]
        ``tolerance`` of the accounting equation (default 0.01).

    [accounts]
        ``classification_file``: CSV classification table replacing the
        default simplified PUC ranges.

    [cash_flow]
        ``replace_default_rules`` and the [cash_flow.alerts] window
        (``days_before``, ``days_after``).

    [[cash_flow.recommendations]]
        Recommendation rules: ``key``, ``condition``, ``message``,
        ``priority``.

    [investments]
        ``candidate_limit`` and [investments.risk_weights].

    [indicators]
        ``period_days``, [indicators.thresholds], [indicators.weights],
        [indicators.risk_bands], [indicators.custom_ratios.<key>] and an
        optional ``custom_ratios_file`` holding more ratio tables.

    [logging]
        ``level`` suggested to ``configure_logging``.

    Notes
    -----
    All file paths in the TOML are resolved relative to the directory of
    the TOML file itself.

    Raises:
        ConfigError: if the file is missing, unparsable or invalid.
    """
    if config_path is None:
        return DEFAULT_CONFIG

    config_file = Path(config_path).resolve()
    raw = _load_toml(config_file)
    base_dir = config_file.parent

    # 1) Balance
    balance = _section(raw, "balance")
    tolerance = _number(balance, "tolerance", BALANCE_TOLERANCE, "balance")

    # 2) Classification table
    accounts = _section(raw, "accounts")
    classification = DEFAULT_CLASSIFICATION
    classification_raw = accounts.get("classification_file")
    if classification_raw:
        classification_path = (base_dir / str(classification_raw)).resolve()
        if not classification_path.is_file():
            raise ConfigError(f"Classification file not found: {classification_path}")
        try:
            classification = load_classification_table(str(classification_path))
        except ClassificationError as exc:
            raise ConfigError(f"Invalid classification file {classification_path}: {exc}") from exc

    # 3) Cash flow
    cash_flow = _section(raw, "cash_flow")
    alert_window = _parse_alert_window(cash_flow)
    rules = _parse_recommendations(cash_flow)

    # 4) Investments
    investments = _section(raw, "investments")
    candidate_limit = int(
        _number(investments, "candidate_limit", DEFAULT_CANDIDATE_LIMIT, "investments")
    )
    if candidate_limit <= 0:
        raise ConfigError("'investments.candidate_limit' must be positive.")
    risk_weights = _parse_risk_weights(investments)

    # 5) Indicators
    indicators = _section(raw, "indicators")
    thresholds = _parse_thresholds(indicators)
    custom_ratios = _parse_custom_ratios(
        _section(indicators, "custom_ratios"), "indicators.custom_ratios"
    )
    ratios_file_raw = indicators.get("custom_ratios_file")
    if ratios_file_raw:
        ratios_data = _load_toml((base_dir / str(ratios_file_raw)).resolve())
        custom_ratios += _parse_custom_ratios(_section(ratios_data, "ratios"), "ratios")

    # 6) Logging
    logging_section = _section(raw, "logging")
    log_level = str(logging_section.get("level", DEFAULT_CONFIG.log_level)).upper()

    logger.debug("Loaded engine configuration from %s", config_file)
    return EngineConfig(
        balance_tolerance=tolerance,
        alert_window=alert_window,
        recommendation_rules=rules,
        candidate_limit=candidate_limit,
        risk_weights=risk_weights,
        indicator_thresholds=thresholds,
        custom_ratios=tuple(custom_ratios),
        classification=classification,
        log_level=log_level,
    )
