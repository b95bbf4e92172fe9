# tools/gemini_client.py
"""
VitaFlow — Gemini Text Generation Adapter
=========================================
One request shape for every generative call (nutrition fallback, diet and
workout plans, persona chat), tried across an ordered list of backends.

  - A backend failure (exception, timeout, empty text, unparseable JSON)
    moves on to the next backend. Attempts are sequential.
  - Legacy backends (e.g. Gemma served through the Gemini API) have no
    system-instruction or JSON-mode support; the adapter folds the system
    instruction into the prompt for them so callers never branch.
  - Exhausting the list raises GenerationFailed.
"""

import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from google import genai
from google.genai import types as genai_types

import config
from tools.errors import GenerationFailed, LookupCancelled, MalformedResponse
from tools.json_extractor import extract_json, extract_json_object

# =============================================================================
# BACKENDS
# =============================================================================
@dataclass(frozen=True)
class GeminiBackend:
    """Descriptor of one model in the fallback chain."""
    model: str
    legacy: bool = False


DEFAULT_BACKENDS: Tuple[GeminiBackend, ...] = tuple(
    GeminiBackend(model=name, legacy=legacy) for name, legacy in config.GEMINI_MODELS
)

# =============================================================================
# CLIENT
# =============================================================================
GEMINI_AVAILABLE = False
CLIENT = None

if config.GOOGLE_API_KEY:
    CLIENT = genai.Client(
        api_key=config.GOOGLE_API_KEY,
        http_options=genai_types.HttpOptions(timeout=int(config.GEMINI_TIMEOUT_S * 1000)),
    )
    GEMINI_AVAILABLE = True
    print(f"✅ Gemini Client: ready ({', '.join(b.model for b in DEFAULT_BACKENDS)})")
else:
    print("⚠️ Gemini Client: No API key found")


# History items are (role, text) with role "user" or "assistant"
History = Sequence[Tuple[str, str]]


class GeminiTextClient:
    """Backend-agnostic text generation with ordered fallback."""

    def __init__(
        self,
        client: Any = None,
        backends: Optional[Sequence[GeminiBackend]] = None,
        temperature: float = 0.2
    ):
        self.client = client if client is not None else CLIENT
        self.backends = tuple(backends) if backends else DEFAULT_BACKENDS
        self.temperature = temperature

    @property
    def available(self) -> bool:
        return self.client is not None and len(self.backends) > 0

    # -------------------------------------------------------------------------
    # Request building
    # -------------------------------------------------------------------------
    def _build_request(
        self,
        backend: GeminiBackend,
        prompt: str,
        system_instruction: Optional[str],
        history: Optional[History],
        json_mode: bool
    ) -> Dict[str, Any]:
        contents: List[Any] = []
        if backend.legacy and system_instruction:
            contents.append(genai_types.Content(role="user", parts=[genai_types.Part(text=system_instruction)]))
        for role, text in history or ():
            contents.append(genai_types.Content(
                role="user" if role == "user" else "model",
                parts=[genai_types.Part(text=text)],
            ))
        contents.append(genai_types.Content(role="user", parts=[genai_types.Part(text=prompt)]))

        config_kwargs: Dict[str, Any] = {"temperature": self.temperature}
        if not backend.legacy:
            if system_instruction:
                config_kwargs["system_instruction"] = system_instruction
            if json_mode:
                config_kwargs["response_mime_type"] = "application/json"

        return {
            "model": backend.model,
            "contents": contents,
            "config": genai_types.GenerateContentConfig(**config_kwargs),
        }

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event]):
        if cancel_event is not None and cancel_event.is_set():
            raise LookupCancelled("Request abandoned by caller")

    # -------------------------------------------------------------------------
    # Generation
    # -------------------------------------------------------------------------
    def _run(
        self,
        prompt: str,
        system_instruction: Optional[str],
        history: Optional[History],
        json_mode: bool,
        cancel_event: Optional[threading.Event],
        expect_object: bool = False
    ) -> Tuple[Any, str]:
        if not self.available:
            raise GenerationFailed("Gemini API key not configured")

        attempts = []
        for backend in self.backends:
            self._check_cancelled(cancel_event)
            try:
                request = self._build_request(backend, prompt, system_instruction, history, json_mode)
                response = self.client.models.generate_content(**request)
                self._check_cancelled(cancel_event)

                text = getattr(response, "text", None)
                if not text or not text.strip():
                    raise MalformedResponse("")
                if not json_mode:
                    return text.strip(), backend.model
                payload = extract_json_object(text) if expect_object else extract_json(text)
                return payload, backend.model

            except LookupCancelled:
                raise
            except MalformedResponse as e:
                print(f"⚠️ Model {backend.model} returned unusable output: {e}")
                attempts.append((backend.model, str(e)))
            except Exception as e:
                print(f"⚠️ Model {backend.model} failed: {e}")
                attempts.append((backend.model, str(e)))

        raise GenerationFailed("Could not reach the AI right now", attempts=attempts)

    def generate_text(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        history: Optional[History] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> str:
        """Free-text generation. Raises GenerationFailed or LookupCancelled."""
        text, _ = self._run(prompt, system_instruction, history, False, cancel_event)
        return text

    def generate_json(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
        expect_object: bool = False
    ) -> Any:
        """
        JSON generation. A backend whose output cannot be extracted as JSON
        counts as failed and the next backend is tried; with expect_object
        the payload must also be a JSON object.
        """
        payload, _ = self._run(prompt, system_instruction, None, True, cancel_event, expect_object)
        return payload


__all__ = [
    "GeminiBackend",
    "GeminiTextClient",
    "DEFAULT_BACKENDS",
    "GEMINI_AVAILABLE",
    "CLIENT",
]
