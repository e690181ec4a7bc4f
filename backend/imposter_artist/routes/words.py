from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..game.words import DEFAULT_WORDS_EN, pick_words

bp = Blueprint("words", __name__)

MAX_COUNT = 20


@bp.get("/words")
def get_words():
    try:
        count = int(request.args.get("count", "3"))
    except ValueError:
        count = 3
    count = max(1, min(count, MAX_COUNT))

    return jsonify({"words": pick_words(DEFAULT_WORDS_EN, count)})
