# blueprints/chat/routes.py
from __future__ import annotations
from flask import Blueprint, jsonify, request
from pydantic import BaseModel, Field, ValidationError

from blueprints.agenda.services import get_store
from .services import MSG_GREETING, schedule_from_chat

api_bp = Blueprint("chat_api", __name__)

class ChatIn(BaseModel):
    message: str = Field(min_length=1, max_length=1000)

@api_bp.get("/chat")
def chat_greeting():
    return jsonify({"message": MSG_GREETING})

@api_bp.post("/chat")
def chat_send():
    try:
        data = ChatIn.model_validate(request.get_json(silent=True) or {})
    except ValidationError:
        return jsonify({"success": False, "message": "Digite seu agendamento."}), 400
    if not data.message.strip():
        return jsonify({"success": False, "message": "Digite seu agendamento."}), 400
    reply = schedule_from_chat(get_store(), data.message)
    # an unsuccessful reply is still a valid conversation turn
    return jsonify(reply.to_dict())
