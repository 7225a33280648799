"""
Query intent detection.

Ordered regex buckets over the raw query; the first bucket with a matching
pattern wins, "general" otherwise.

Dependencies: None
System role: Selects the boost table row for a query
"""

import enum
import re


class QueryIntent(str, enum.Enum):
    """Financial question categories."""

    FILING_METADATA = "filing_metadata"
    BALANCE_SHEET_METRIC = "balance_sheet_metric"
    INCOME_STATEMENT_METRIC = "income_statement_metric"
    CASH_FLOW_METRIC = "cash_flow_metric"
    SEGMENT_ANALYSIS = "segment_analysis"
    GENERAL = "general"


def _patterns(*sources: str) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(source, re.IGNORECASE) for source in sources)


INTENT_PATTERNS: tuple[tuple[QueryIntent, tuple[re.Pattern, ...]], ...] = (
    (
        QueryIntent.FILING_METADATA,
        _patterns(
            r"\b(securities?\s+registered|exchange\s+listing|trading\s+symbol|ticker|cusip)\b",
            r"\b(auditor|independent\s+accountant|filing\s+date|form\s+(10-[kq]|8-k)|sec\s+filing)\b",
            r"\b(registrant|cover\s+page|exhibit\s+index|signatures?)\b",
            r"\b(debt\s+securities?\s+(registered|listed|traded))\b",
        ),
    ),
    (
        QueryIntent.BALANCE_SHEET_METRIC,
        _patterns(
            r"\b(quick\s+ratio|current\s+ratio|debt[- ]to[- ]equity|working\s+capital)\b",
            r"\b(total\s+(assets?|liabilities?|equity|debt)|book\s+value)\b",
            r"\b(roa|roe|return\s+on\s+(assets?|equity))\b",
            r"\b(accounts?\s+(receivable|payable)|inventory|cash\s+and\s+equivalents?)\b",
            r"\b(balance\s+sheet|financial\s+position)\b",
        ),
    ),
    (
        QueryIntent.INCOME_STATEMENT_METRIC,
        _patterns(
            r"\b(revenue|sales|net\s+income|gross\s+profit|operating\s+income)\b",
            r"\b(eps|earnings\s+per\s+share|diluted\s+eps)\b",
            r"\b(gross\s+margin|operating\s+margin|net\s+margin|profit\s+margin)\b",
            r"\b(income\s+statement|statement\s+of\s+operations?)\b",
            r"\b(cost\s+of\s+(goods\s+sold|revenue|sales)|cogs)\b",
        ),
    ),
    (
        QueryIntent.CASH_FLOW_METRIC,
        _patterns(
            r"\b(capex|capital\s+expenditure|property[,\s]+plant[,\s]+and\s+equipment)\b",
            r"\b(free\s+cash\s+flow|fcf|operating\s+cash\s+flow|cash\s+from\s+operations?)\b",
            r"\b(cash\s+flow\s+statement|statement\s+of\s+cash\s+flows?)\b",
            r"\b(depreciation|amortization|investing\s+activities?|financing\s+activities?)\b",
        ),
    ),
    (
        QueryIntent.SEGMENT_ANALYSIS,
        _patterns(
            r"\b(segment|geographic|regional|by\s+(region|country|product\s+line))\b",
            r"\b(business\s+unit|operating\s+segment|reportable\s+segment)\b",
        ),
    ),
)


def detect_intent(query: str) -> QueryIntent:
    """
    Classify a query.

    Args:
        query: Original user query (before expansion)

    Returns:
        QueryIntent: First matching bucket, GENERAL otherwise
    """
    for intent, patterns in INTENT_PATTERNS:
        if any(pattern.search(query) for pattern in patterns):
            return intent
    return QueryIntent.GENERAL
