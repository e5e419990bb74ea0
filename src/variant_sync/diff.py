"""
Buyer-visible variant change detection between two snapshots of one product.

Checks run in a fixed order and stop at the first difference, so the
reported kind is deterministic when several things changed at once.
Options and variants are compared by list position, not by name or id:
inserting an entry mid-list shows up as a change at that index.
"""

import logging
from dataclasses import dataclass

from variant_sync.formatting import format_variants_for_description
from variant_sync.models import CatalogItemSnapshot, MAX_OPTION_SLOTS

logger = logging.getLogger(__name__)

VARIANT_COUNT = "variant_count"
OPTION_COUNT = "option_count"
OPTION_NAME = "option_name"
OPTION_VALUES_COUNT = "option_values_count"
OPTION_VALUE = "option_value"
VARIANT_OPTIONS = "variant_options"
VARIANT_TITLE = "variant_title"
ERROR = "error"


@dataclass(frozen=True)
class VariantChange:
    has_changes: bool
    kind: str = ""
    detail: str = ""

    def as_dict(self):
        return {"has_changes": self.has_changes, "kind": self.kind, "detail": self.detail}


NO_CHANGE = VariantChange(False)


def _changed(kind, detail):
    return VariantChange(True, kind, detail)


def _first_difference(old: CatalogItemSnapshot, new: CatalogItemSnapshot) -> VariantChange:
    if len(old.variants) != len(new.variants):
        return _changed(
            VARIANT_COUNT,
            f"Variant count changed: {len(old.variants)} -> {len(new.variants)} "
            f"(old: {format_variants_for_description(old.variants, old.options)}; "
            f"new: {format_variants_for_description(new.variants, new.options)})",
        )

    if len(old.options) != len(new.options):
        return _changed(
            OPTION_COUNT,
            f"Option count changed: {len(old.options)} -> {len(new.options)}",
        )

    for i, (o_old, o_new) in enumerate(zip(old.options, new.options)):
        if o_old.name != o_new.name:
            return _changed(
                OPTION_NAME,
                f"Option {i} name changed: {o_old.name!r} -> {o_new.name!r}",
            )

    for i, (o_old, o_new) in enumerate(zip(old.options, new.options)):
        if len(o_old.values) != len(o_new.values):
            return _changed(
                OPTION_VALUES_COUNT,
                f"Option {o_new.name!r} value count changed: "
                f"{len(o_old.values)} -> {len(o_new.values)}",
            )
        for j, (v_old, v_new) in enumerate(zip(o_old.values, o_new.values)):
            if v_old != v_new:
                return _changed(
                    OPTION_VALUE,
                    f"Option {o_new.name!r} value {j} changed: {v_old!r} -> {v_new!r}",
                )

    for i, (v_old, v_new) in enumerate(zip(old.variants, new.variants)):
        for k in range(MAX_OPTION_SLOTS):
            if v_old.slot(k) != v_new.slot(k):
                return _changed(
                    VARIANT_OPTIONS,
                    f"Variant {i} option{k + 1} changed: "
                    f"{v_old.slot(k)!r} -> {v_new.slot(k)!r}",
                )
        if v_old.title != v_new.title:
            return _changed(
                VARIANT_TITLE,
                f"Variant {i} title changed: {v_old.title!r} -> {v_new.title!r}",
            )

    return NO_CHANGE


def compare_snapshots(old: CatalogItemSnapshot, new: CatalogItemSnapshot) -> VariantChange:
    """Return whether the variant surface changed, with the first difference found.

    Never raises. A comparison that fails for any reason is reported as a
    change of kind ``"error"`` so that the description gets re-rendered.
    """
    try:
        change = _first_difference(old, new)
        if change.has_changes:
            logger.info("Variant change detected for product %s: %s", getattr(new, "id", None), change.detail)
        return change
    except Exception as e:
        logger.error("Error comparing variant snapshots: %s", e)
        return VariantChange(True, ERROR, f"Comparison failed: {e}")
