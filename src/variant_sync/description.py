import re

from bs4 import BeautifulSoup

MIN_AI_DESCRIPTION_CHARS = 100
EXPECTED_BULLETS = 8

WS_RE = re.compile(r"\s+")


def _soup(html):
    return BeautifulSoup(html or "", "lxml")


def has_ai_description(html: str, marker: str) -> bool:
    """True when the description carries our verification marker."""
    if not html or len(html) < MIN_AI_DESCRIPTION_CHARS:
        return False
    return marker in html


def extract_text(html: str) -> str:
    if not html:
        return ""
    text = _soup(html).get_text(" ", strip=True)
    return WS_RE.sub(" ", text).strip()


def count_words(html: str) -> int:
    return len(extract_text(html).split())


def validate_description(html: str, marker: str, min_bullets: int = EXPECTED_BULLETS):
    soup = _soup(html)
    errors = []

    if soup.find("h2") is None:
        errors.append("Missing H2 tag")
    if soup.find("ul") is None:
        errors.append("Missing UL tag")

    li_count = len(soup.find_all("li"))
    if li_count < min_bullets:
        errors.append(f"Expected {min_bullets} bullet points, found {li_count}")

    if marker and marker not in soup.get_text(" "):
        errors.append("Missing verification marker")

    return not errors, errors
