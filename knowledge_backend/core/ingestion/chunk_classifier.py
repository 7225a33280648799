"""
Chunk type classification.

Ordered keyword rules over the lower-cased chunk text. The first matching
rule wins; structural fallbacks apply when no semantic rule matches.

Dependencies: knowledge_backend.boundary.extraction
System role: Assigns the chunk_type used by the intent boost table
"""

from typing import NamedTuple

from knowledge_backend.boundary.extraction.base_extractor import ElementType


class ClassificationRule(NamedTuple):
    """
    One semantic classification rule.

    Matches when every phrase of `all_of` occurs in the text, or when any
    phrase of `any_of` occurs. Empty groups never match on their own.
    """

    chunk_type: str
    any_of: tuple[str, ...] = ()
    all_of: tuple[str, ...] = ()
    alt_all_of: tuple[tuple[str, ...], ...] = ()

    def matches(self, text: str) -> bool:
        if self.all_of and all(phrase in text for phrase in self.all_of):
            return True
        if any(all(phrase in text for phrase in group) for group in self.alt_all_of):
            return True
        return any(phrase in text for phrase in self.any_of)


CLASSIFICATION_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule(
        "cover_page",
        any_of=(
            "securities registered pursuant",
            "commission file number",
            "exact name of registrant",
        ),
    ),
    ClassificationRule(
        "balance_sheet",
        any_of=("balance sheet",),
        all_of=("total assets", "total liabilities"),
    ),
    ClassificationRule(
        "income_statement",
        any_of=("statement of operations", "statements of operations", "income statement"),
        all_of=("net income", "revenue"),
        alt_all_of=(("net income", "net sales"),),
    ),
    ClassificationRule(
        "cash_flow_statement",
        any_of=("cash flows from operating activities", "statement of cash flows", "statements of cash flows"),
    ),
    ClassificationRule("exhibit", any_of=("exhibit index", "exhibit no")),
    ClassificationRule("notes_disclosure", any_of=("notes to consolidated financial statements",)),
    ClassificationRule("segment", any_of=("reportable segment", "segment information")),
)

STRUCTURAL_TYPES: dict[ElementType, str] = {
    ElementType.TABLE: "table",
    ElementType.HEADING: "header",
    ElementType.CODE_BLOCK: "code",
    ElementType.LIST: "list",
}


def classify_chunk(
    text: str,
    element_type: ElementType,
    rules: tuple[ClassificationRule, ...] = CLASSIFICATION_RULES,
) -> str:
    """
    Assign a chunk type.

    Args:
        text: Verbatim element text
        element_type: Parser element kind
        rules: Ordered semantic rules

    Returns:
        str: Chunk type label ("text" when nothing matches)
    """
    if element_type in (ElementType.IMAGE, ElementType.TABLE_IMAGE):
        return "visual"

    lowered = text.lower()
    for rule in rules:
        if rule.matches(lowered):
            return rule.chunk_type
    return STRUCTURAL_TYPES.get(element_type, "text")
