"""Ordered label -> ApplicationData attribute rules."""

import re
from dataclasses import dataclass, field

from autoapply.handlers.models import FieldKind

TEXT_LIKE = frozenset({FieldKind.TEXT, FieldKind.EMAIL, FieldKind.PHONE, FieldKind.TEXTAREA})
FREE_ENTRY = frozenset({FieldKind.TEXT, FieldKind.EMAIL, FieldKind.PHONE})


@dataclass(frozen=True)
class LabelRule:
    """Maps labels matching ``pattern`` on one of ``kinds`` to ``attribute``."""

    attribute: str
    pattern: re.Pattern[str]
    kinds: frozenset[FieldKind] = field(default=TEXT_LIKE)

    def matches(self, label: str, kind: FieldKind) -> bool:
        return kind in self.kinds and bool(self.pattern.search(label))


def _rule(attribute: str, pattern: str, kinds: frozenset[FieldKind] = TEXT_LIKE) -> LabelRule:
    return LabelRule(attribute=attribute, pattern=re.compile(pattern, re.IGNORECASE), kinds=kinds)


# First match wins. Choice-type experience, availability and referral
# questions stay unmapped and become custom questions.
LABEL_RULES: list[LabelRule] = [
    _rule("first_name", r"first\s*name|given\s*name|forename", FREE_ENTRY),
    _rule("last_name", r"last\s*name|sur\s*name|family\s*name", FREE_ENTRY),
    _rule("full_name", r"full\s*name|your\s*name|^name$", FREE_ENTRY),
    _rule("email", r"e-?mail", FREE_ENTRY),
    _rule("phone", r"phone|mobile|\bcell\b|telephone|contact\s*number", FREE_ENTRY),
    _rule("linkedin_url", r"linkedin", FREE_ENTRY),
    _rule("github_url", r"github", FREE_ENTRY),
    _rule("dribbble_url", r"dribbble", FREE_ENTRY),
    _rule("behance_url", r"behance", FREE_ENTRY),
    _rule("portfolio_url", r"portfolio|personal\s*site|work\s*samples", FREE_ENTRY),
    _rule("website_url", r"website|homepage|personal\s*url", FREE_ENTRY),
    _rule("location", r"location|\bcity\b|address|where.*located", FREE_ENTRY),
    _rule("current_company", r"current\s*(company|employer|organi[sz]ation)|employer", FREE_ENTRY),
    _rule("current_title", r"current\s*(title|position|role)|job\s*title", FREE_ENTRY),
    _rule(
        "years_of_experience",
        r"years.*experience|experience.*years",
        frozenset({FieldKind.TEXT, FieldKind.NUMBER}),
    ),
    _rule("cover_letter_text", r"cover\s*letter", frozenset({FieldKind.TEXTAREA})),
    _rule("salary", r"salary|compensation|desired\s*pay", frozenset({FieldKind.TEXT, FieldKind.NUMBER})),
    _rule(
        "start_date",
        r"start\s*date|available|availability|when can you start",
        frozenset({FieldKind.TEXT, FieldKind.DATE}),
    ),
    _rule("heard_about", r"how.*hear|hear about|\bsource\b|referral|where.*find", frozenset({FieldKind.TEXT})),
    _rule(
        "additional_info",
        r"additional\s*info|anything\s*else|comments|^notes?$",
        frozenset({FieldKind.TEXT, FieldKind.TEXTAREA}),
    ),
]


def normalize_label(label: str) -> str:
    """Collapse whitespace and drop required-field markers."""
    text = re.sub(r"\s+", " ", label or "").strip()
    return text.rstrip("*: ").strip()


def map_label(label: str, kind: FieldKind) -> str | None:
    """Map a field label to an ApplicationData attribute.

    Args:
        label: Human-readable label of the control
        kind: Kind of control the label belongs to

    Returns:
        Attribute name, or None when no rule matches
    """
    if kind == FieldKind.FILE:
        return None
    normalized = normalize_label(label)
    if not normalized:
        return None
    for rule in LABEL_RULES:
        if rule.matches(normalized, kind):
            return rule.attribute
    return None


def looks_like_question(label: str) -> bool:
    """Free text ending in a question mark."""
    return normalize_label(label).endswith("?")
