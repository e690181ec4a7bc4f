from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from ..game import service
from ..game.errors import RoomNotFound

bp = Blueprint("rooms", __name__)


@bp.get("/rooms/<code>")
def get_room(code: str):
    store = current_app.extensions["room_store"]
    try:
        with store.locked(code) as room:
            return jsonify(service.public_state(room))
    except RoomNotFound:
        return jsonify({"error": "room_not_found"}), 404
