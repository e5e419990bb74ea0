import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from variant_sync.models import OptionDefinition, VariantRow

logger = logging.getLogger(__name__)

STANDARD = "Standard"

LOW_STOCK_THRESHOLD = 5
SUMMARY_MAX_LISTED_VALUES = 3


def format_variants_for_description(
    variants: Sequence[VariantRow], options: Sequence[OptionDefinition]
) -> str:
    """Render ``"Size: Small, Material: Gold; Size: Medium, Material: Gold"``.

    Returns ``"Standard"`` when there are no variants. A variant without any
    option value falls back to its own title (or ``"Standard"``).
    """
    try:
        if not variants:
            return STANDARD

        option_names = [o.name for o in (options or [])]

        rendered = []
        for v in variants:
            pairs = []
            for i, name in enumerate(option_names):
                value = v.slot(i)
                if value:
                    pairs.append(f"{name}: {value}")
            if pairs:
                rendered.append(", ".join(pairs))
            else:
                rendered.append(v.title or STANDARD)

        return "; ".join(rendered)
    except Exception as e:
        logger.error("Error formatting variants for description: %s", e)
        return STANDARD


@dataclass
class ParsedVariants:
    has_variants: bool
    option_names: List[str] = field(default_factory=list)
    variant_list: List[str] = field(default_factory=lambda: [STANDARD])
    option_values: Dict[str, List[str]] = field(default_factory=dict)
    variant_options: List[Dict[str, str]] = field(default_factory=list)
    error: str = ""

    @property
    def formatted(self) -> str:
        return ", ".join(self.variant_list)


def parse_variants(snapshot):
    """Map each variant's slots onto option names and collect unique values per option."""
    try:
        if not snapshot.variants:
            return ParsedVariants(has_variants=False)

        option_names = [o.name for o in snapshot.options]

        variant_options = []
        for v in snapshot.variants:
            mapped = {}
            for i, name in enumerate(option_names):
                value = v.slot(i)
                if value:
                    mapped[name] = value
            variant_options.append(mapped)

        option_values = {}
        for name in option_names:
            seen = []
            for mapped in variant_options:
                value = mapped.get(name)
                if value and value not in seen:
                    seen.append(value)
            option_values[name] = seen

        variant_list = [
            " - ".join(mapped[name] for name in option_names if mapped.get(name))
            for mapped in variant_options
        ]

        return ParsedVariants(
            has_variants=True,
            option_names=option_names,
            variant_list=variant_list,
            option_values=option_values,
            variant_options=variant_options,
        )
    except Exception as e:
        logger.error("Error parsing variants: %s", e)
        return ParsedVariants(has_variants=False, error=str(e))


def variant_info_for_prompt(snapshot):
    """Compact per-option listing used as context for description generation."""
    try:
        parsed = parse_variants(snapshot)
        if not parsed.has_variants:
            return {
                "variant_info": "Standard product with no variants",
                "variant_types": [],
                "variant_count": 1,
            }

        info = "; ".join(
            f"{name}: {', '.join(parsed.option_values[name])}" for name in parsed.option_names
        )
        return {
            "variant_info": info,
            "variant_types": parsed.option_names,
            "variant_count": len(parsed.variant_list),
        }
    except Exception as e:
        logger.error("Error extracting variant info for prompt: %s", e)
        return {"variant_info": "Standard product", "variant_types": [], "variant_count": 1}


def variant_summary(snapshot):
    """Short 'Available in ...' line for meta descriptions."""
    try:
        parsed = parse_variants(snapshot)
        if not parsed.has_variants:
            return "Available in standard version"

        parts = []
        for name in parsed.option_names:
            values = parsed.option_values[name]
            if len(values) <= SUMMARY_MAX_LISTED_VALUES:
                parts.append(f"{name}: {', '.join(values)}")
            else:
                parts.append(f"{name}: {len(values)} options")
        return f"Available in {'; '.join(parts)}"
    except Exception as e:
        logger.error("Error getting variant summary: %s", e)
        return "Available in multiple variants"


def validate_variants(snapshot):
    try:
        variants = snapshot.variants
        options = snapshot.options
        errors = []

        if variants and not options:
            errors.append("Product has variants but no option definitions")
        if options and not variants:
            errors.append("Product has option definitions but no variants")

        for idx, v in enumerate(variants):
            if not v.id:
                errors.append(f"Variant {idx} missing ID")
            if not v.title:
                errors.append(f"Variant {idx} missing title")
            for i, o in enumerate(options):
                if not v.slot(i):
                    errors.append(f"Variant {idx} missing option {o.name}")

        return not errors, errors
    except Exception as e:
        logger.error("Error validating variants: %s", e)
        return False, [str(e)]


def inventory_status(snapshot):
    counts = {"total": 0, "in_stock": 0, "out_of_stock": 0, "low_stock": 0}
    try:
        for v in snapshot.variants:
            qty = v.inventory_quantity or 0
            counts["total"] += 1
            if qty > LOW_STOCK_THRESHOLD:
                counts["in_stock"] += 1
            elif qty <= 0:
                counts["out_of_stock"] += 1
            else:
                counts["low_stock"] += 1
        return counts
    except Exception as e:
        logger.error("Error getting inventory status: %s", e)
        return {"total": 0, "in_stock": 0, "out_of_stock": 0, "low_stock": 0}
