"""Helpers for picking among enumerated select/radio options."""

import re

PLACEHOLDER_OPTIONS = {"", "select", "select...", "select one", "choose", "choose...", "please select", "--", "-"}

AFFIRMATIVE_PATTERN = re.compile(r"^\s*(yes|true|i am|i do|i have|i will|authori[sz]ed)\b", re.IGNORECASE)
NEGATIVE_PATTERN = re.compile(r"^\s*(no|false|i am not|i do not|i don't|i will not|not required)\b", re.IGNORECASE)


def is_placeholder(option: str) -> bool:
    """Check if an option is a "Select..." style placeholder."""
    normalized = option.strip().lower()
    return normalized in PLACEHOLDER_OPTIONS or normalized.startswith(("select ", "please select", "-- "))


def usable_options(options: list[str]) -> list[str]:
    return [o for o in options if not is_placeholder(o)]


def first_usable_option(options: list[str]) -> str | None:
    """First non-empty, non-placeholder option."""
    usable = usable_options(options)
    return usable[0] if usable else None


def find_option(options: list[str], pattern: re.Pattern[str] | str) -> str | None:
    """First usable option matching a regex."""
    regex = re.compile(pattern, re.IGNORECASE) if isinstance(pattern, str) else pattern
    for option in usable_options(options):
        if regex.search(option):
            return option
    return None


def affirmative_option(options: list[str]) -> str | None:
    # "I am not ..." starts like "I am ..."
    for option in usable_options(options):
        if AFFIRMATIVE_PATTERN.search(option) and not NEGATIVE_PATTERN.search(option):
            return option
    return None


def negative_option(options: list[str]) -> str | None:
    return find_option(options, NEGATIVE_PATTERN)


def match_option(options: list[str], value: str) -> str | None:
    """Match a free value against option labels.

    Exact (case-insensitive) matches win over containment either way.
    """
    wanted = value.strip().lower()
    if not wanted:
        return None

    candidates = usable_options(options)
    for option in candidates:
        if option.strip().lower() == wanted:
            return option
    for option in candidates:
        label = option.strip().lower()
        if wanted in label or label in wanted:
            return option
    return None


def _years_lower_bound(option: str) -> int | None:
    text = option.lower()
    numbers = [int(n) for n in re.findall(r"\d+", text)]
    if not numbers:
        if re.search(r"\b(none|no experience)\b", text):
            return 0
        return None
    if re.search(r"less than|under|fewer than|below|<", text):
        return 0
    return numbers[0]


def pick_years_option(options: list[str], years: int | None) -> str | None:
    """Pick the highest experience bracket the applicant qualifies for.

    "3-5 years" qualifies from 3, "10+" from 10, "Less than 1 year" from 0.

    Args:
        options: Option labels
        years: Applicant's years of experience

    Returns:
        The qualifying option with the highest lower bound, or None
    """
    if years is None:
        return None

    best: str | None = None
    best_bound = -1
    for option in usable_options(options):
        bound = _years_lower_bound(option)
        if bound is not None and bound <= years and bound > best_bound:
            best = option
            best_bound = bound
    return best
