import hashlib
import logging
import re

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "GEM"
HASH_CHARS = 8
PRODUCT_ID_WIDTH = 6
VARIANT_ID_WIDTH = 4
MAX_SUFFIX = 999

ALNUM_UPPER_RE = re.compile(r"^[A-Z0-9]+$")
NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9]")
EAN13_RE = re.compile(r"^\d{13}$")


def _short(text, n=10):
    return NON_ALNUM_RE.sub("", text or "")[:n]


def generate_barcode(product, variant, prefix=DEFAULT_PREFIX):
    """PREFIX + zero-padded product id + zero-padded variant id + 8 hash chars."""
    product_id = str(product.id or 0)
    variant_id = str(variant.id or 0)
    seed = f"{product_id}-{variant_id}-{_short(product.title)}-{_short(variant.title)}"
    digest = hashlib.md5(seed.encode("utf-8")).hexdigest()[:HASH_CHARS].upper()
    return f"{prefix}{product_id.zfill(PRODUCT_ID_WIDTH)}{variant_id.zfill(VARIANT_ID_WIDTH)}{digest}"


def validate_barcode(barcode, prefix=DEFAULT_PREFIX):
    if not barcode or not isinstance(barcode, str):
        return False
    if not barcode.startswith(prefix):
        return False
    if len(barcode) < len(prefix) + PRODUCT_ID_WIDTH + VARIANT_ID_WIDTH + HASH_CHARS:
        return False
    return bool(ALNUM_UPPER_RE.match(barcode))


def ean13_check_digit(base):
    if len(base) != 12 or not base.isdigit():
        raise ValueError(f"EAN-13 base must be 12 digits, got {base!r}")
    total = sum(int(d) * (1 if i % 2 == 0 else 3) for i, d in enumerate(base))
    return str((10 - total % 10) % 10)


def generate_ean13(product, variant, country_code="00"):
    # 2 country + 5 product + 5 variant + check digit
    product_part = str(product.id or 0).zfill(5)[:5]
    variant_part = str(variant.id or 0).zfill(5)[:5]
    base = f"{country_code}{product_part}{variant_part}"
    return base + ean13_check_digit(base)


def validate_ean13(barcode):
    if not barcode or not isinstance(barcode, str) or not EAN13_RE.match(barcode):
        return False
    return ean13_check_digit(barcode[:12]) == barcode[12]


def generate_unique_barcode(product, variant, existing, prefix=DEFAULT_PREFIX, ean13=False):
    """Barcode for ``variant`` that is not already in ``existing``.

    Collisions get a three-digit numeric suffix (custom format only; an EAN-13
    code has a fixed length, so a colliding one is returned with a warning).
    """
    taken = set(existing or ())
    barcode = generate_ean13(product, variant) if ean13 else generate_barcode(product, variant, prefix)
    if barcode not in taken:
        return barcode
    if ean13:
        logger.warning("EAN-13 barcode %s for variant %s already in use", barcode, variant.id)
        return barcode
    for n in range(1, MAX_SUFFIX + 1):
        candidate = f"{barcode}{n:03d}"
        if candidate not in taken:
            return candidate
    raise ValueError(f"no free barcode suffix for variant {variant.id}")


def missing_barcodes(product, prefix=DEFAULT_PREFIX, ean13=False):
    """Map variant id -> new barcode for every variant of ``product`` without one."""
    taken = {v.barcode for v in product.variants if v.barcode}
    assigned = {}
    for v in product.variants:
        if v.barcode or v.id is None:
            continue
        barcode = generate_unique_barcode(product, v, taken, prefix=prefix, ean13=ean13)
        taken.add(barcode)
        assigned[v.id] = barcode
    return assigned
