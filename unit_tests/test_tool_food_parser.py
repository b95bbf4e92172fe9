import pytest
from tools.errors import ParseFailure
from tools.food_parser import format_meal_name, normalize_unit, parse_food_input, strip_accents


def test_grams_without_space():
    q = parse_food_input("200g arroz")
    assert (q.amount, q.unit, q.name) == (200.0, "g", "arroz")


def test_count_defaults_to_unidade():
    q = parse_food_input("1 banana")
    assert (q.amount, q.unit, q.name) == (1.0, "unidade", "banana")


def test_decimal_comma_and_connector():
    q = parse_food_input("1,5 xícara de aveia")
    assert q.amount == 1.5
    assert q.unit == "xicara"
    assert q.name == "aveia"


def test_unit_aliases():
    assert parse_food_input("2 fatias de pão").unit == "fatia"
    assert parse_food_input("1 litro de leite").unit == "l"
    assert parse_food_input("0.5 kg frango").unit == "kg"
    assert parse_food_input("300 ml suco").unit == "ml"
    assert normalize_unit("Colheres") == "colher"
    assert normalize_unit("banana") is None


def test_plural_food_is_not_a_unit():
    q = parse_food_input("2 ovos")
    assert q.unit == "unidade"
    assert q.name == "ovos"


def test_surrounding_whitespace():
    q = parse_food_input("   150 g   peito de frango  ")
    assert q.amount == 150.0
    assert q.name == "peito de frango"


@pytest.mark.parametrize("text", ["arroz", "", "   ", "banana 1", "g arroz"])
def test_missing_quantity_fails(text):
    with pytest.raises(ParseFailure) as exc:
        parse_food_input(text)
    assert "200g arroz" in str(exc.value)


def test_missing_name_fails():
    with pytest.raises(ParseFailure):
        parse_food_input("200g")
    with pytest.raises(ParseFailure):
        parse_food_input("2 colheres de")


def test_strip_accents():
    assert strip_accents("Feijão maçã") == "Feijao maca"


def test_format_meal_name():
    assert format_meal_name(parse_food_input("200g arroz")) == "200g arroz"
    assert format_meal_name(parse_food_input("1 banana")) == "1 unidade banana"
    assert format_meal_name(parse_food_input("1,5 xícara de aveia")) == "1.5 xicara aveia"


def test_container_measures_are_units():
    q = parse_food_input("1 tigela de aveia")
    assert (q.unit, q.name) == ("tigela", "aveia")
    assert parse_food_input("1 lata de atum").unit == "lata"
    assert parse_food_input("2 barras de cereal").name == "cereal"
