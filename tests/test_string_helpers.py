import pytest

from carwash.utils.string_helpers import (
    denormalize_keys,
    escape_like,
    fold_for_search,
    normalize_keys,
    sanitize_search_term,
    to_camel_case,
    to_snake_case,
)


@pytest.mark.parametrize(
    "camel, snake",
    [
        ("weekNumber", "week_number"),
        ("licensePlate", "license_plate"),
        ("loginImageUrl", "login_image_url"),
        ("manualOpenWeek", "manual_open_week"),
        ("id", "id"),
    ],
)
def test_case_conversion(camel, snake):
    assert to_snake_case(camel) == snake
    assert to_camel_case(snake) == camel


def test_nested_car_lists_are_converted():
    row = {
        "firstName": "Ana",
        "cars": [{"id": "c1", "licensePlate": "AA00BB"}],
    }
    assert normalize_keys(row) == {
        "first_name": "Ana",
        "cars": [{"id": "c1", "license_plate": "AA00BB"}],
    }
    assert denormalize_keys(normalize_keys(row)) == row


def test_sanitize_search_term():
    assert sanitize_search_term("  Seat\x00 IBIZA\n ") == "seat ibiza"
    assert sanitize_search_term("") == ""


def test_search_folding_ignores_accents():
    assert fold_for_search("João Conceição") == "joao conceicao"
    assert sanitize_search_term(" JOÃO ") == fold_for_search("joao")


def test_escape_like_makes_wildcards_literal():
    assert escape_like("ana_silva@empresa.pt") == r"ana\_silva@empresa.pt"
    assert escape_like("100%") == r"100\%"
    assert escape_like("a\\b") == r"a\\b"
    assert escape_like("ana.silva@empresa.pt") == "ana.silva@empresa.pt"
