"""Word counting and length targeting for generated markdown."""

import re

CONTENT_BLOCK = re.compile(r"===CONTENT START===\s*([\s\S]*?)\s*===CONTENT END===")


def extract_content_block(text: str) -> str:
    """Article body between the content markers, or the whole text when unmarked."""
    match = CONTENT_BLOCK.search(text or "")
    return match.group(1) if match else (text or "")


def word_count(markdown: str) -> int:
    if not markdown or not markdown.strip():
        return 0

    text = re.sub(r"```[\s\S]*?```", "", markdown)
    text = re.sub(r"`[^`]*`", "", text)
    text = re.sub(r"!\[([^\]]*)\]\([^)]+\)", "", text)
    text = re.sub(r"\[([^\]]+)\]\([^)]+\)", r"\1", text)
    text = re.sub(r"^#{1,6}\s+", "", text, flags=re.MULTILINE)
    text = re.sub(r"(\*\*|__)(.*?)\1", r"\2", text)
    text = re.sub(r"(\*|_)(.*?)\1", r"\2", text)
    text = re.sub(r"<[^>]+>", "", text)
    text = re.sub(r"[^\w\s'-]", " ", text)

    return len([w for w in text.split() if re.search(r"[A-Za-z0-9]", w)])


def percent_off(current: int, target: int) -> float:
    if target <= 0:
        return 0.0
    return abs((current - target) / target * 100)


def within_tolerance(current: int, target: int, tolerance_percent: float = 5.0) -> bool:
    return percent_off(current, target) <= tolerance_percent


def length_note(current: int, target: int, tolerance_percent: float = 5.0) -> str:
    """Instruction for the model to expand or trim; empty when already on target."""
    if within_tolerance(current, target, tolerance_percent):
        return ""

    delta = current - target
    direction = "above" if delta > 0 else "below"
    action = "Reduce" if delta > 0 else "Expand"
    return (
        f"Current count {current} words which is {round(percent_off(current, target))} percent "
        f"{direction} target. {action} by about {abs(delta)} words with real site details only, no filler."
    )
