"""
VitaFlow — Coach Agent (Specialist Chat)
========================================
Persona chat on top of the Gemini text client.

Messages are shown before they are stored: the transcript holds a
tentative copy (status "pending", temporary id) which is then confirmed
with the stored id or marked "failed". Failed messages stay visible and
are kept in PENDING_MESSAGES, so the next load_transcript shows them
again until retry_unsaved_messages stores them.
"""

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from tools.errors import GenerationFailed, LookupCancelled, PersistenceFailure
from tools.gemini_client import GeminiTextClient
from tools.models import ChatMessage

print("🗣️ Coach Agent: ready")

# =============================================================================
# PERSONAS
# =============================================================================
@dataclass(frozen=True)
class Persona:
    id: str
    name: str
    role: str
    system_prompt: str
    welcome_message: str


PERSONAS: Dict[str, Persona] = {
    "nutri": Persona(
        id="nutri",
        name="Dra. Clara",
        role="Nutricionista Esportiva",
        system_prompt=(
            "Você é a Dra. Clara, nutricionista esportiva do app VitaFlow. "
            "Seja empática e carinhosa, mas firme nos objetivos. Use emojis de comida (🍎, 🥗, 🥑). "
            "Foque em reeducação alimentar e explique o porquê de cada alimento. "
            "Perguntas de treino: dê uma dica básica e indique o Coach Bruno. "
            "Relatos de dor: indique o Dr. André."
        ),
        welcome_message="Olá! Sou a Dra. Clara. Vamos ajustar sua alimentação para você ter mais energia? O que você comeu hoje?",
    ),
    "physio": Persona(
        id="physio",
        name="Dr. André",
        role="Fisioterapeuta",
        system_prompt=(
            "Você é o Dr. André, fisioterapeuta especialista em biomecânica e reabilitação. "
            "Seja técnico, preciso e tranquilizador. Use emojis de saúde (💪, 🦴, 🩺). "
            "Foque em postura, prevenção de lesões e mobilidade, e pergunte o nível de dor de 0 a 10. "
            "Assuntos de dieta: indique a Dra. Clara."
        ),
        welcome_message="Olá. Sou o Dr. André. Está sentindo algum desconforto muscular ou articular hoje?",
    ),
    "trainer": Persona(
        id="trainer",
        name="Coach Bruno",
        role="Personal Trainer",
        system_prompt=(
            "Você é o Coach Bruno, personal trainer de alta performance. "
            "Seja energético e motivador, com gírias de academia mas profissional. Use emojis (🔥, 🚀, 🏋️). "
            "Foque em execução correta, periodização, hipertrofia e emagrecimento. "
            "Se o aluno relatar dor aguda, pare e indique o Dr. André."
        ),
        welcome_message="E aí, campeão! Coach Bruno na área. Qual é o foco de hoje: crescer ou secar? 🚀",
    ),
    "nutri_yasmin": Persona(
        id="nutri_yasmin",
        name="Nutri Yasmin",
        role="Nutricionista Virtual",
        system_prompt=(
            "Você é a Nutri Yasmin, nutricionista virtual inteligente, empática e profissional do app VitaFlow. "
            "Ajude os usuários a atingirem seus objetivos de saúde. "
            "Responda sempre em Português do Brasil, de forma concisa e com emojis."
        ),
        welcome_message="Olá! Sou a Nutri Yasmin. Pergunte sobre dieta, macros ou saúde.",
    ),
}

DEFAULT_PERSONA = "nutri_yasmin"

# Messages of history sent along with each question
CHAT_HISTORY_LIMIT = 20


def get_persona(persona_id: Optional[str]) -> Persona:
    """Unknown ids raise KeyError; None selects the default persona."""
    return PERSONAS[persona_id or DEFAULT_PERSONA]


# =============================================================================
# OPTIMISTIC TRANSCRIPT
# =============================================================================
Persist = Callable[[ChatMessage], Dict[str, Any]]


@dataclass
class ChatTranscript:
    """In-memory conversation for one persona, with tentative entries."""
    persona: str = DEFAULT_PERSONA
    messages: List[ChatMessage] = field(default_factory=list)

    def _index(self, message_id: str) -> int:
        for i, message in enumerate(self.messages):
            if message.id == message_id:
                return i
        raise KeyError(message_id)

    def add_tentative(self, role: str, content: str) -> ChatMessage:
        message = ChatMessage(
            id=f"temp_{uuid.uuid4().hex[:8]}",
            role=role,
            content=content,
            persona=self.persona,
            status="pending",
            created_at=datetime.now(),
        )
        self.messages.append(message)
        return message

    def confirm(self, temp_id: str, stored: Dict[str, Any]) -> ChatMessage:
        """Replace the tentative entry with its stored id, keeping its position."""
        i = self._index(temp_id)
        created_at = stored.get("created_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        confirmed = self.messages[i].model_copy(update={
            "id": stored.get("id", temp_id),
            "created_at": created_at or self.messages[i].created_at,
            "status": "sent",
        })
        self.messages[i] = confirmed
        return confirmed

    def fail(self, temp_id: str) -> ChatMessage:
        i = self._index(temp_id)
        failed = self.messages[i].model_copy(update={"status": "failed"})
        self.messages[i] = failed
        return failed

    def persist(self, message: ChatMessage, save: Persist) -> ChatMessage:
        try:
            stored = save(message)
        except PersistenceFailure as e:
            print(f"⚠️ Chat message not saved: {e}")
            return self.fail(message.id)
        return self.confirm(message.id, stored)

    def retry_failed(self, save: Persist) -> List[ChatMessage]:
        """Try to store every failed message again; returns the ones still failed."""
        still_failed = []
        for message in [m for m in self.messages if m.status == "failed"]:
            result = self.persist(message, save)
            if result.status == "failed":
                still_failed.append(result)
        return still_failed

    def history(self, exclude_id: Optional[str] = None) -> List[Tuple[str, str]]:
        """(role, text) pairs for the model, failed messages included."""
        turns = [(m.role, m.content) for m in self.messages if m.id != exclude_id]
        return turns[-CHAT_HISTORY_LIMIT:]


# =============================================================================
# UNSAVED MESSAGES
# =============================================================================
class PendingChatBuffer:
    """
    Failed messages per (user, persona), kept in process memory.

    The store only returns what it saved, so a message whose write failed
    lives here until a retry stores it.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._failed: Dict[Tuple[str, str], List[ChatMessage]] = {}

    def get(self, user_id: str, persona: str) -> List[ChatMessage]:
        with self._lock:
            return list(self._failed.get((user_id, persona), []))

    def remember(self, user_id: str, transcript: "ChatTranscript"):
        """Replace the buffered set with the transcript's failed messages."""
        failed = [m for m in transcript.messages if m.status == "failed"]
        with self._lock:
            if failed:
                self._failed[(user_id, transcript.persona)] = failed
            else:
                self._failed.pop((user_id, transcript.persona), None)

    def clear(self):
        with self._lock:
            self._failed.clear()


PENDING_MESSAGES = PendingChatBuffer()


def store_saver(store: Any, user_id: str) -> Persist:
    def save(message: ChatMessage) -> Dict[str, Any]:
        return store.create("chat_messages", user_id, {
            "role": message.role,
            "content": message.content,
            "persona": message.persona,
        })
    return save


def load_transcript(store: Any, user_id: str, persona: Optional[str] = None) -> ChatTranscript:
    persona_id = get_persona(persona).id
    rows = store.read_by_owner("chat_messages", user_id)
    messages = [
        ChatMessage.model_validate({**row, "status": "sent"})
        for row in rows
        if (row.get("persona") or DEFAULT_PERSONA) == persona_id
    ]
    messages.extend(PENDING_MESSAGES.get(user_id, persona_id))
    messages.sort(key=lambda m: m.created_at or datetime.min)
    return ChatTranscript(persona=persona_id, messages=messages)


# =============================================================================
# MAIN TOOL FUNCTIONS
# =============================================================================
def chat_with_persona(
    store: Any,
    user_id: str,
    persona: Optional[str],
    message: str,
    transcript: Optional[ChatTranscript] = None,
    text_client: Optional[GeminiTextClient] = None,
    cancel_event: Optional[threading.Event] = None
) -> Dict[str, Any]:
    """
    Send one message to a specialist and store both sides of the exchange.

    Returns:
        Dictionary with:
        - status: "success" or "error"
        - persona: persona id and display name
        - reply: the assistant text (absent on error)
        - messages: the transcript after this exchange, tentative and failed
          entries included
    """
    try:
        selected = get_persona(persona)
    except KeyError:
        return {"status": "error", "error_type": "unknown_persona",
                "error_message": f"Unknown specialist: {persona}", "available": sorted(PERSONAS)}

    message = (message or "").strip()
    if not message:
        return {"status": "error", "error_type": "empty_message", "error_message": "Message is empty"}

    save = store_saver(store, user_id)
    if transcript is None:
        try:
            transcript = load_transcript(store, user_id, selected.id)
        except PersistenceFailure as e:
            print(f"⚠️ Chat history unavailable: {e}")
            transcript = ChatTranscript(persona=selected.id)

    print(f"🗣️ {selected.name}: '{message[:50]}'")
    user_msg = transcript.add_tentative("user", message)
    history = transcript.history(exclude_id=user_msg.id)
    user_msg = transcript.persist(user_msg, save)

    client = text_client or GeminiTextClient(temperature=0.7)
    try:
        reply = client.generate_text(message, system_instruction=selected.system_prompt,
                                     history=history, cancel_event=cancel_event)
    except (GenerationFailed, LookupCancelled) as e:
        print(f"❌ {selected.name} unavailable: {e}")
        PENDING_MESSAGES.remember(user_id, transcript)
        return {
            "status": "error",
            "error_type": e.error_type,
            "error_message": f"Erro ao conectar com {selected.name}.",
            "persona": {"id": selected.id, "name": selected.name},
            "messages": [m.model_dump(mode="json") for m in transcript.messages],
        }

    assistant_msg = transcript.persist(transcript.add_tentative("assistant", reply), save)
    PENDING_MESSAGES.remember(user_id, transcript)

    return {
        "status": "success",
        "persona": {"id": selected.id, "name": selected.name},
        "reply": reply,
        "user_message": user_msg.model_dump(mode="json"),
        "assistant_message": assistant_msg.model_dump(mode="json"),
        "messages": [m.model_dump(mode="json") for m in transcript.messages],
    }


def retry_unsaved_messages(store: Any, user_id: str, persona: Optional[str]) -> Dict[str, Any]:
    """Store again every failed message of one conversation."""
    try:
        selected = get_persona(persona)
    except KeyError:
        return {"status": "error", "error_type": "unknown_persona",
                "error_message": f"Unknown specialist: {persona}", "available": sorted(PERSONAS)}

    try:
        transcript = load_transcript(store, user_id, selected.id)
    except PersistenceFailure as e:
        return {"status": "error", "error_type": e.error_type, "error_message": str(e)}

    attempted = sum(1 for m in transcript.messages if m.status == "failed")
    still_failed = transcript.retry_failed(store_saver(store, user_id))
    PENDING_MESSAGES.remember(user_id, transcript)
    print(f"🔁 Chat retry ({selected.name}): {attempted - len(still_failed)}/{attempted} saved")

    return {
        "status": "success" if not still_failed else "partial",
        "persona": {"id": selected.id, "name": selected.name},
        "retried": attempted,
        "still_failed": len(still_failed),
        "messages": [m.model_dump(mode="json") for m in transcript.messages],
    }


def list_personas() -> List[Dict[str, str]]:
    return [
        {"id": p.id, "name": p.name, "role": p.role, "welcome_message": p.welcome_message}
        for p in PERSONAS.values()
    ]


__all__ = [
    "Persona",
    "PERSONAS",
    "DEFAULT_PERSONA",
    "get_persona",
    "ChatTranscript",
    "store_saver",
    "load_transcript",
    "chat_with_persona",
    "retry_unsaved_messages",
    "PendingChatBuffer",
    "PENDING_MESSAGES",
    "list_personas",
]
