"""Shared snapshot and description fixtures."""

import pytest

from variant_sync.models import CatalogItemSnapshot, OptionDefinition, VariantRow

MARKER = "Verified by Gemmologist Reza Piroznia"

DESCRIPTION = """<h2>About Gold Ring</h2>
<p>A classic band shaped by hand and polished to a soft mirror finish.</p>
<ul>
  <li>
<strong>Available Variants:</strong> Size: Small, Material: Gold</li>
  <li>Exquisite design with premium materials and superior craftsmanship</li>
  <li>Handcrafted with attention to detail and exceptional quality standards</li>
  <li>Expertly crafted by skilled artisans using traditional techniques</li>
  <li>Made with the finest materials and genuine gemstones</li>
  <li>Timeless design that combines elegance with contemporary style</li>
  <li><strong>Verified by Gemmologist Reza Piroznia</strong></li>
  <li>This product has <a href="/refund-policy">10 days refund</a></li>
</ul>"""


@pytest.fixture
def marker():
    return MARKER


@pytest.fixture
def description():
    return DESCRIPTION


@pytest.fixture
def make_snapshot():
    def _make(variants=(), options=(), description=DESCRIPTION, product_id=101):
        return CatalogItemSnapshot(
            id=product_id,
            title="Gold Ring",
            options=tuple(options),
            variants=tuple(variants),
            description_html=description,
        )
    return _make


@pytest.fixture
def size_material_options():
    return (
        OptionDefinition("Size", ("Small", "Medium")),
        OptionDefinition("Material", ("Gold",)),
    )


@pytest.fixture
def two_variants():
    return (
        VariantRow(id=1, title="Small / Gold", option1="Small", option2="Gold"),
        VariantRow(id=2, title="Medium / Gold", option1="Medium", option2="Gold"),
    )


@pytest.fixture
def ring(make_snapshot, two_variants, size_material_options):
    return make_snapshot(two_variants, size_material_options)
