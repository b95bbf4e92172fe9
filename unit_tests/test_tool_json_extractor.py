import pytest
from tools.errors import MalformedResponse
from tools.json_extractor import extract_json, extract_json_object, first_balanced_object


def test_plain_json():
    assert extract_json('{"calories": 100}') == {"calories": 100}
    assert extract_json("[1, 2]") == [1, 2]


def test_fenced_block():
    text = 'Claro! Aqui está:\n```json\n{"calories": 250, "protein": 10}\n```\nBom apetite!'
    assert extract_json(text) == {"calories": 250, "protein": 10}


def test_object_inside_prose():
    text = 'The estimate is {"calories": 90, "note": "a {rough} value"} per serving.'
    assert extract_json(text)["note"] == "a {rough} value"


def test_first_balanced_ignores_trailing_braces():
    text = 'x {"a": 1} y {"b": 2}'
    assert first_balanced_object(text) == '{"a": 1}'


def test_array_in_prose():
    text = 'Plano:\n[{"name": "Treino A"}]\nFim.'
    assert extract_json(text) == [{"name": "Treino A"}]


@pytest.mark.parametrize("text", ["", "no json here", "{broken: json", "```json\n```"])
def test_malformed(text):
    with pytest.raises(MalformedResponse):
        extract_json(text)


def test_object_required():
    with pytest.raises(MalformedResponse):
        extract_json_object("[1, 2, 3]")
    assert extract_json_object('[{"calories": 1}] and {"calories": 2}') == {"calories": 1}


def test_array_of_objects_in_prose():
    text = 'Aqui está:\n[{"name": "A"}, {"name": "B"}]\nBons treinos!'
    assert extract_json(text) == [{"name": "A"}, {"name": "B"}]
    assert extract_json_object('Resposta: {"calories": 100} [fonte]') == {"calories": 100}
