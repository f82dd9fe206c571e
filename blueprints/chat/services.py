# blueprints/chat/services.py
"""Keyword-based booking assistant.

Not a language model: a handful of independent extractors (date, time,
mechanic, client/service), each returning ``None`` when it finds nothing,
and a validator that turns the result into a reply.
"""
from __future__ import annotations
import logging
import re
import unicodedata
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional, Sequence, Tuple

from blueprints.agenda.scheduler import Payload, save_appointment_range
from blueprints.agenda.services import shop_today
from blueprints.agenda.store import AppointmentItem, AppointmentStore, MechanicItem
from blueprints.agenda.timegrid import is_excluded, slot_index
from blueprints.core.filters import fmt_day_month
from models import Priority

log = logging.getLogger(__name__)

TIME_RE = re.compile(r"(\d{1,2})[:h](\d{2})?", re.IGNORECASE)
DAY_MONTH_RE = re.compile(r"(\d{1,2})/(\d{1,2})")

# the chat refuses these two labels as lunch, independent of the grid exclusions
LUNCH_DISPLAY_TIMES = ("11:00", "12:00")

DEFAULT_CLIENT = "Cliente (Via Chat)"
DEFAULT_SERVICE = "Agendamento via Chat"

WEEKDAYS = [  # python weekday(): 0=Mon .. 6=Sun
    ("domingo", 6),
    ("segunda", 0),
    ("terça", 1), ("terca", 1),
    ("quarta", 2),
    ("quinta", 3),
    ("sexta", 4),
    ("sábado", 5), ("sabado", 5),
]
RELATIVE_DAYS = [("hoje", 0), ("amanhã", 1), ("amanha", 1)]

_DATE_WORDS = "|".join(re.escape(w) for w, _ in RELATIVE_DAYS + WEEKDAYS)
_DATE_WORDS_RE = re.compile(rf"\b(?:{_DATE_WORDS})(?:-feira)?\b", re.IGNORECASE)
_VERBS_RE = re.compile(r"\b(?:agendar|marcar)\b", re.IGNORECASE)
_CONNECTORS_RE = re.compile(r"\b(?:com|às|as|no|na|dia|o|a)\b", re.IGNORECASE)

MSG_GREETING = ('Olá! Sou seu assistente virtual. Posso agendar serviços para você. '
                'Tente algo como: "Agendar troca de óleo para Transportadora ABC amanhã às 14h com Jacir"')
MSG_MISSING = "Entendi que você quer agendar, mas preciso de mais informações. Não consegui identificar: {}."
MSG_OCCUPIED = "Horário já ocupado."
MSG_LUNCH = "Horário de almoço."
MSG_OFF_GRID = "Horário fora da grade."
MSG_FAILED = "Erro ao salvar o agendamento. Tente novamente."


# ----------------------- Extractors -----------------------
def extract_date(text: str, today: date) -> Optional[date]:
    low = text.lower()
    for word, offset in RELATIVE_DAYS:
        if word in low:
            return today + timedelta(days=offset)

    for word, weekday in WEEKDAYS:
        if word in low:
            # strictly after today: naming today's weekday means next week
            ahead = (weekday - today.weekday()) % 7 or 7
            return today + timedelta(days=ahead)

    m = DAY_MONTH_RE.search(text)
    if m:
        day, month = int(m.group(1)), int(m.group(2))
        try:
            found = date(today.year, month, day)
            if found < today:
                found = date(today.year + 1, month, day)
        except ValueError:
            return None
        return found
    return None


def extract_time(text: str) -> Optional[str]:
    m = TIME_RE.search(text)
    if not m:
        return None
    hour = int(m.group(1))
    minute = int(m.group(2)) if m.group(2) else 0
    if 0 <= hour <= 23 and 0 <= minute <= 59:
        return f"{hour:02d}:{minute:02d}"
    return None


def _first_name(name: str) -> str:
    parts = name.split()
    return parts[0] if parts else name


def find_mechanic(text: str, mechanics: Sequence[MechanicItem]) -> Optional[MechanicItem]:
    low = text.lower()
    ordered = sorted(mechanics, key=lambda m: len(m.name), reverse=True)
    for m in ordered:
        if m.name and m.name.lower() in low:
            return m
    for m in ordered:
        first = _first_name(m.name).lower()
        if first and re.search(rf"\b{re.escape(first)}\b", low):
            return m
    return None


def _strip_mechanic(text: str, mechanic: Optional[MechanicItem]) -> str:
    if mechanic is None:
        return text
    text = re.sub(re.escape(mechanic.name), " ", text, flags=re.IGNORECASE)
    first = _first_name(mechanic.name)
    if first:
        text = re.sub(rf"\b{re.escape(first)}\b", " ", text, flags=re.IGNORECASE)
    return text


def _strip_when(text: str) -> str:
    text = _DATE_WORDS_RE.sub(" ", text)
    text = DAY_MONTH_RE.sub(" ", text)
    return TIME_RE.sub(" ", text)


def _squash(text: str) -> str:
    return " ".join(text.split()).strip(" ,.;:-")


def extract_client_service(text: str, mechanic: Optional[MechanicItem]) -> Tuple[str, str]:
    """Split "<service> para <client> ..." into (client, service)."""
    parts = re.split(r" para ", text, maxsplit=1, flags=re.IGNORECASE)
    if len(parts) == 2:
        service = _squash(_VERBS_RE.sub(" ", parts[0]))
        client = _squash(_CONNECTORS_RE.sub(" ", _strip_when(_strip_mechanic(parts[1], mechanic))))
        return client or DEFAULT_CLIENT, service or DEFAULT_SERVICE

    rest = _strip_when(_strip_mechanic(text, mechanic))
    rest = _CONNECTORS_RE.sub(" ", _VERBS_RE.sub(" ", rest))
    return _squash(rest) or DEFAULT_CLIENT, DEFAULT_SERVICE


# ----------------------- Pipeline -----------------------
@dataclass
class ChatIntent:
    date: Optional[date] = None
    time: Optional[str] = None
    mechanic: Optional[MechanicItem] = None
    client_name: str = DEFAULT_CLIENT
    service_description: str = DEFAULT_SERVICE

    def missing(self) -> List[str]:
        out = []
        if self.date is None:
            out.append("data")
        if self.time is None:
            out.append("horário")
        if self.mechanic is None:
            out.append("mecânico")
        return out


@dataclass
class ChatReply:
    success: bool
    message: str
    appointment: Optional[AppointmentItem] = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "message": self.message,
            "appointment": self.appointment.to_dict() if self.appointment else None,
        }


def parse_message(text: str, mechanics: Sequence[MechanicItem], today: date) -> ChatIntent:
    text = unicodedata.normalize("NFC", text or "")
    intent = ChatIntent(
        date=extract_date(text, today),
        time=extract_time(text),
        mechanic=find_mechanic(text, mechanics),
    )
    if not intent.missing():
        intent.client_name, intent.service_description = extract_client_service(text, intent.mechanic)
    return intent


def schedule_from_chat(store: AppointmentStore, text: str, today: Optional[date] = None) -> ChatReply:
    intent = parse_message(text, store.mechanics, today or shop_today())
    missing = intent.missing()
    if missing:
        return ChatReply(False, MSG_MISSING.format(", ".join(missing)))

    if store.get_appointment(intent.date, intent.time, intent.mechanic.id) is not None:
        return ChatReply(False, f"❌ Não foi possível agendar: {MSG_OCCUPIED}")
    if intent.time in LUNCH_DISPLAY_TIMES or is_excluded(intent.time):
        return ChatReply(False, f"❌ Não foi possível agendar: {MSG_LUNCH}")
    if slot_index(intent.time) is None:
        return ChatReply(False, f"❌ Não foi possível agendar: {MSG_OFF_GRID}")

    payload = Payload(intent.client_name, intent.service_description, Priority.NORMAL)
    result = save_appointment_range(store, intent.date, intent.time, intent.time, intent.mechanic.id, payload)
    if not result.ok or not result.written:
        log.warning("chat booking failed for %s %s m=%s", intent.date, intent.time, intent.mechanic.id)
        return ChatReply(False, f"❌ Não foi possível agendar: {MSG_FAILED}")

    return ChatReply(
        True,
        f"✅ Agendado! {intent.service_description} para {intent.client_name} "
        f"no dia {fmt_day_month(intent.date)} às {intent.time} com {intent.mechanic.name}.",
        appointment=result.written[0],
    )
