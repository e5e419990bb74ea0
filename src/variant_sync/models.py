"""Immutable snapshots of a Shopify product; variant option values are positional."""

from dataclasses import dataclass, field
from typing import Optional, Tuple

MAX_OPTION_SLOTS = 3


@dataclass(frozen=True)
class OptionDefinition:
    name: str
    values: Tuple[str, ...] = ()


@dataclass(frozen=True)
class VariantRow:
    id: Optional[int] = None
    title: str = ""
    option1: Optional[str] = None
    option2: Optional[str] = None
    option3: Optional[str] = None
    sku: str = ""
    price: Optional[str] = None
    inventory_quantity: Optional[int] = None
    barcode: str = ""

    @property
    def slots(self) -> Tuple[Optional[str], ...]:
        return (self.option1, self.option2, self.option3)

    def slot(self, index: int) -> Optional[str]:
        """Value for the option at zero-based ``index``; None past the last slot."""
        if 0 <= index < MAX_OPTION_SLOTS:
            return self.slots[index]
        return None


@dataclass(frozen=True)
class CatalogItemSnapshot:
    id: Optional[int] = None
    title: str = ""
    options: Tuple[OptionDefinition, ...] = ()
    variants: Tuple[VariantRow, ...] = ()
    description_html: str = ""
    product_type: str = ""
    vendor: str = ""
    tags: Tuple[str, ...] = field(default_factory=tuple)


def _text(value) -> str:
    return "" if value is None else str(value).strip()


def _optional_text(value) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _int_or_none(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _variant_from_payload(v: dict) -> VariantRow:
    return VariantRow(
        id=v.get("id"),
        title=_text(v.get("title")),
        option1=_optional_text(v.get("option1")),
        option2=_optional_text(v.get("option2")),
        option3=_optional_text(v.get("option3")),
        sku=_text(v.get("sku")),
        price=_optional_text(v.get("price")),
        inventory_quantity=_int_or_none(v.get("inventory_quantity")),
        barcode=_text(v.get("barcode")),
    )


def _option_from_payload(o: dict) -> OptionDefinition:
    return OptionDefinition(
        name=_text(o.get("name")),
        values=tuple(str(x) for x in (o.get("values") or [])),
    )


def _split_tags(raw) -> Tuple[str, ...]:
    if isinstance(raw, (list, tuple)):
        return tuple(_text(t) for t in raw if _text(t))
    return tuple(t.strip() for t in _text(raw).split(",") if t.strip())


def snapshot_from_payload(p: dict) -> CatalogItemSnapshot:
    """Build a snapshot from a Shopify product dict (REST or webhook shape)."""
    p = p or {}
    return CatalogItemSnapshot(
        id=p.get("id"),
        title=_text(p.get("title")),
        options=tuple(_option_from_payload(o) for o in (p.get("options") or [])),
        variants=tuple(_variant_from_payload(v) for v in (p.get("variants") or [])),
        description_html=p.get("body_html") or "",
        product_type=_text(p.get("product_type")),
        vendor=_text(p.get("vendor")),
        tags=_split_tags(p.get("tags")),
    )
