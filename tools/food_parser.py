# tools/food_parser.py
"""
VitaFlow — Food Input Parser
============================
Parses one line of free text into (amount, unit, food name).

    "200g arroz"          -> 200.0, "g",       "arroz"
    "1 banana"            -> 1.0,   "unidade", "banana"
    "1,5 xícara de aveia" -> 1.5,   "xicara",  "aveia"

The line must start with a number. Anything else raises ParseFailure,
which callers treat as "ask the user to re-enter".
"""

import re
import unicodedata

from tools.errors import ParseFailure
from tools.models import FoodQuantity

# =============================================================================
# UNIT VOCABULARY
# =============================================================================
DEFAULT_UNIT = "unidade"

# alias -> canonical unit
UNIT_ALIASES = {
    # mass / volume
    "g": "g", "gr": "g", "grs": "g", "grama": "g", "gramas": "g",
    "kg": "kg", "quilo": "kg", "quilos": "kg",
    "ml": "ml", "mililitro": "ml", "mililitros": "ml",
    "l": "l", "litro": "l", "litros": "l",
    # household measures
    "unidade": "unidade", "unidades": "unidade", "un": "unidade", "und": "unidade",
    "fatia": "fatia", "fatias": "fatia",
    "colher": "colher", "colheres": "colher",
    "xicara": "xicara", "xicaras": "xicara",
    "copo": "copo", "copos": "copo",
    "concha": "concha", "conchas": "concha",
    "pote": "pote", "potes": "pote",
    "porcao": "porcao", "porcoes": "porcao",
    "prato": "prato", "pratos": "prato",
    "scoop": "scoop", "scoops": "scoop",
    "pedaco": "pedaco", "pedacos": "pedaco",
    "tigela": "tigela", "tigelas": "tigela",
    "lata": "lata", "latas": "lata",
    "barra": "barra", "barras": "barra",
    "caixa": "caixa", "caixinha": "caixa", "caixas": "caixa",
    "pacote": "pacote", "pacotes": "pacote",
    "garrafa": "garrafa", "garrafas": "garrafa",
    "punhado": "punhado", "punhados": "punhado",
}

_QUANTITY_RE = re.compile(r"^(\d+(?:[.,]\d+)?)\s*(.*)$", re.DOTALL)
_WORD_RE = re.compile(r"^([^\W\d_]+)(?:\s+|$)(.*)$", re.DOTALL)
_CONNECTOR_RE = re.compile(r"^de(?:\s+|$)", re.IGNORECASE)


def strip_accents(text: str) -> str:
    """'Feijão' -> 'Feijao'."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_unit(token: str):
    """Canonical unit for a token, or None if it is not a known unit."""
    return UNIT_ALIASES.get(strip_accents(token).lower())


def parse_food_input(text: str) -> FoodQuantity:
    """
    Parse '<number>[unit] [de] <food name>'.

    The number accepts comma or period as decimal separator. A word after
    the number that is not a known unit belongs to the food name and the
    unit defaults to 'unidade'.

    Raises:
        ParseFailure: no leading quantity, or nothing left for the name.
    """
    line = (text or "").strip()
    match = _QUANTITY_RE.match(line)
    if not match:
        raise ParseFailure(line, "Invalid format")

    amount = float(match.group(1).replace(",", "."))
    rest = match.group(2).strip()

    unit = DEFAULT_UNIT
    word = _WORD_RE.match(rest)
    if word:
        canonical = normalize_unit(word.group(1))
        if canonical is not None:
            unit = canonical
            rest = word.group(2).strip()

    name = _CONNECTOR_RE.sub("", rest).strip()
    if not name:
        raise ParseFailure(line, "Missing food name")

    return FoodQuantity(amount=amount, unit=unit, name=name)


def format_meal_name(quantity: FoodQuantity) -> str:
    """Stored meal label, e.g. '200g arroz' or '1 unidade banana'."""
    amount = quantity.amount
    amount_text = str(int(amount)) if float(amount).is_integer() else f"{amount:g}"
    if quantity.unit in ("g", "kg", "ml", "l"):
        return f"{amount_text}{quantity.unit} {quantity.name}"
    return f"{amount_text} {quantity.unit} {quantity.name}"


__all__ = [
    "DEFAULT_UNIT",
    "UNIT_ALIASES",
    "strip_accents",
    "normalize_unit",
    "parse_food_input",
    "format_meal_name",
]
