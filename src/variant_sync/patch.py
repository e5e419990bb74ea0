"""
In-place update of the "Available Variants" bullet inside a generated description.

The descriptions are written by our generator and share one skeleton
(``<h2>``, ``<p>``, a single ``<ul>`` of bullets), so the bullet is located with
a narrow pattern rather than by parsing the document. Only variant bullets and
the opening ``<ul>`` tag are ever touched; every other byte is kept.

After any update the document holds at most one variant bullet, whatever it
held before.
"""

import logging
import re

from variant_sync.formatting import STANDARD

logger = logging.getLogger(__name__)

LABEL = "Available Variants"

# <li> [ws/newline] <strong>Available Variants:</strong> ... </li>, never reaching into the next <li>
VARIANT_BULLET_RE = re.compile(
    r"<li(?:\s[^>]*)?>\s*<(strong|b)>\s*" + LABEL + r"\s*:?\s*</\1>(?:(?!<li[\s>]).)*?</li>(?P<trail>\s*)",
    re.IGNORECASE | re.DOTALL,
)
FIRST_UL_RE = re.compile(r"<ul(?:\s[^>]*)?>", re.IGNORECASE)


def build_variants_bullet(summary: str) -> str:
    return f"<li>\n<strong>{LABEL}:</strong> {summary}</li>"


def count_variant_bullets(html: str) -> int:
    return len(VARIANT_BULLET_RE.findall(html or ""))


def _is_empty_summary(summary) -> bool:
    return not summary or summary == STANDARD or not summary.strip()


def _remove_all(html: str) -> str:
    return VARIANT_BULLET_RE.sub("", html)


def _replace_with_one(html: str, bullet: str) -> str:
    seen = []

    def _sub(m):
        if seen:
            return ""
        seen.append(m)
        return bullet + m.group("trail")

    return VARIANT_BULLET_RE.sub(_sub, html)


def _insert_first(html: str, bullet: str) -> str:
    m = FIRST_UL_RE.search(html)
    if not m:
        raise ValueError("no <ul> in description to insert the variants bullet into")
    return html[: m.end()] + "\n  " + bullet + html[m.end():]


def update_variants_bullet(html: str, summary: str) -> str:
    """Return ``html`` with its variant bullet set to ``summary``.

    - ``"Standard"``, empty or blank summary: every variant bullet is removed.
    - otherwise: existing variant bullets collapse into one carrying the new
      summary; with none present, the bullet becomes the first item of the
      first ``<ul>``.

    On any failure the original ``html`` is returned unchanged.
    """
    try:
        if _is_empty_summary(summary):
            return _remove_all(html)

        bullet = build_variants_bullet(summary)
        if VARIANT_BULLET_RE.search(html):
            return _replace_with_one(html, bullet)
        return _insert_first(html, bullet)
    except Exception as e:
        logger.error("Error updating variants bullet point: %s", e)
        return html
