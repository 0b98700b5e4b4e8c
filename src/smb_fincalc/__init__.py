# SMB FinCalc - Financial analytics engine for SMB accounting dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
SMB FinCalc
-----------

A pure financial analytics engine for Small and Medium-sized Businesses
(SMBs) accounting dashboards. The engine consumes plain records and returns
plain records: it has no database, no network transport and no UI.

Main capabilities:
- chart-of-accounts classification by explicit code ranges (simplified
  Colombian PUC by default) and account aggregation,
- balance-sheet snapshots with accounting-equation validation,
- income statement cascade,
- unit economics and break-even analysis,
- fixed-installment loan amortization with extra payments,
- cash-flow projection with recurring items, health score,
  recommendations and payment alerts,
- investment return projections and portfolio allocation,
- financial indicators, health score, risk level and trend,
- DataFrame views of every result for display and export.

Configuration is loaded from an optional TOML file (``config``) and always
passed explicitly. Logging is silent unless the host application calls
``log.configure_logging``.

Version: 0.1.0
"""

__all__ = [
    "accounts",
    "amortization",
    "balance",
    "cash_flow",
    "config",
    "cost_analysis",
    "income",
    "indicators",
    "investments",
    "views",
]

__version__ = "0.1.0"
