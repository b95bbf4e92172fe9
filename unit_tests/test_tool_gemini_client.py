import threading

import pytest
from conftest import make_text_client
from tools.errors import GenerationFailed, LookupCancelled


def test_first_backend_answers():
    client = make_text_client("Olá! 🥗")
    assert client.generate_text("oi") == "Olá! 🥗"
    calls = client.client.models.calls
    assert len(calls) == 1
    assert calls[0]["model"] == "model-a"


def test_falls_back_on_error():
    client = make_text_client(RuntimeError("429 quota"), "segunda resposta")
    assert client.generate_text("oi") == "segunda resposta"
    assert [c["model"] for c in client.client.models.calls] == ["model-a", "model-b"]


def test_empty_text_counts_as_failure():
    client = make_text_client("   ", "ok")
    assert client.generate_text("oi") == "ok"


def test_all_backends_fail():
    client = make_text_client(RuntimeError("down"), RuntimeError("down"))
    with pytest.raises(GenerationFailed) as exc:
        client.generate_text("oi")
    assert len(exc.value.attempts) == 2


def test_json_mode_extracts_payload():
    client = make_text_client('```json\n{"calories": 120}\n```')
    assert client.generate_json("estimate") == {"calories": 120}
    config = client.client.models.calls[0]["config"]
    assert config.response_mime_type == "application/json"


def test_unparseable_json_tries_next_backend():
    client = make_text_client("desculpe, não sei", '{"calories": 5}')
    assert client.generate_json("estimate", expect_object=True) == {"calories": 5}


def test_expect_object_rejects_arrays():
    client = make_text_client("[1, 2]", "[3]")
    with pytest.raises(GenerationFailed):
        client.generate_json("estimate", expect_object=True)


def test_legacy_backend_gets_system_prompt_as_first_turn():
    client = make_text_client(RuntimeError("a"), RuntimeError("b"), "resposta", legacy_last=True)
    reply = client.generate_text("pergunta", system_instruction="Você é a Nutri Yasmin.",
                                 history=[("user", "oi"), ("assistant", "olá")])
    assert reply == "resposta"

    legacy_call = client.client.models.calls[-1]
    contents = legacy_call["contents"]
    assert contents[0].parts[0].text == "Você é a Nutri Yasmin."
    assert [c.role for c in contents] == ["user", "user", "model", "user"]
    assert contents[-1].parts[0].text == "pergunta"
    assert legacy_call["config"].system_instruction is None
    assert legacy_call["config"].response_mime_type is None


def test_modern_backend_uses_system_instruction():
    client = make_text_client("ok")
    client.generate_text("pergunta", system_instruction="Seja breve.")
    call = client.client.models.calls[0]
    assert call["config"].system_instruction is not None
    assert len(call["contents"]) == 1


def test_cancelled_before_request():
    client = make_text_client("never used")
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(LookupCancelled):
        client.generate_text("oi", cancel_event=cancel)
    assert client.client.models.calls == []


def test_unavailable_without_client():
    client = make_text_client("unused")
    client.client = None
    assert not client.available
    with pytest.raises(GenerationFailed):
        client.generate_text("oi")
