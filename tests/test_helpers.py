"""
Pure helper functions: contact normalisation, slugs, excerpts, pagination.

These are unit tests that do NOT require a database.
"""
import pytest
from pydantic import ValidationError as PydanticValidationError

from storefront.exceptions import ValidationError
from storefront.schemas import CustomerIn, AddressIn
from storefront.utils.helpers import (
    make_excerpt,
    normalize_phone,
    normalize_pincode,
    pagination_meta,
    reading_time_minutes,
    slugify,
)


class TestPhone:

    def test_country_code_and_separators_are_dropped(self):
        assert normalize_phone("+91 98765-43210") == "9876543210"

    def test_plain_ten_digits_unchanged(self):
        assert normalize_phone("9876543210") == "9876543210"

    def test_leading_zero_trunk_prefix(self):
        assert normalize_phone("09876543210") == "9876543210"

    def test_short_number_rejected(self):
        with pytest.raises(ValidationError) as exc:
            normalize_phone("98765 4321")
        assert exc.value.field == "phone"

    def test_empty_rejected(self):
        with pytest.raises(ValidationError):
            normalize_phone(None)

    def test_schema_normalises_phone(self):
        customer = CustomerIn(name="  Asha Rao ", email="Asha@Example.com", phone="+91 98765-43210")
        assert customer.phone == "9876543210"
        assert customer.name == "Asha Rao"
        assert customer.email == "asha@example.com"

    def test_schema_rejects_short_phone(self):
        with pytest.raises(PydanticValidationError):
            CustomerIn(name="Asha", email="asha@example.com", phone="12345")


class TestPincode:

    def test_six_digits(self):
        assert normalize_pincode("411 001") == "411001"

    @pytest.mark.parametrize("value", ["41100", "4110011", "", None])
    def test_wrong_length_rejected(self, value):
        with pytest.raises(ValidationError):
            normalize_pincode(value)

    def test_schema_rejects_bad_pincode(self):
        with pytest.raises(PydanticValidationError):
            AddressIn(street="12 MG Road", city="Pune", state="Maharashtra", pincode="4110")


class TestText:

    def test_slugify(self):
        assert slugify("  Getting Started: Arduino & Sensors!  ") == "getting-started-arduino-sensors"

    def test_slugify_collapses_hyphens(self):
        assert slugify("a -- b") == "a-b"

    def test_excerpt_strips_tags(self):
        content = "<p>" + "word " * 100 + "</p>"
        excerpt = make_excerpt(content)
        assert excerpt.endswith("...")
        assert "<p>" not in excerpt
        assert len(excerpt) == 153

    def test_reading_time_rounds_up(self):
        assert reading_time_minutes("word " * 201) == 2
        assert reading_time_minutes("") == 1


def test_pagination_meta():
    meta = pagination_meta(total=25, page=2, limit=10)
    assert meta == {
        "currentPage": 2,
        "totalPages": 3,
        "totalItems": 25,
        "itemsPerPage": 10,
        "hasNext": True,
        "hasPrev": True,
    }
