"""Best-effort answer generation for the current round.

``generate_answer()`` never raises: any failure becomes an unavailable
``AnswerResult`` so the caller decides whether a missing answer is fatal.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from suspects.engine.models import Answer
from suspects.engine.player import ensure_player
from suspects.engine.state import SlotStore
from suspects.utils.api_client import ApiClient

logger = logging.getLogger(__name__)


@dataclass
class AnswerResult:
    """Either an ``Answer`` or the reason it is unavailable."""
    answer: Optional[Answer] = None
    error: Optional[str] = None

    @property
    def available(self) -> bool:
        return self.answer is not None

    @property
    def text(self) -> str:
        return self.answer.text if self.answer is not None else ""

    @classmethod
    def unavailable(cls, reason: str) -> "AnswerResult":
        return cls(answer=None, error=reason)


class AnswerGenerator:
    """Asks the server to generate, or return the cached, answer for the player's round."""

    def __init__(self, api: ApiClient, store: SlotStore) -> None:
        self.api = api
        self.store = store

    async def generate_answer(self, round_uuid: str) -> AnswerResult:
        # The server resolves the round from the player's current game;
        # round_uuid is only used for diagnostics.
        logger.info("Answer requested for round %s", round_uuid)
        try:
            player = ensure_player(self.store)
            response = await self.api.get("get_or_generate_answer", player_uuid=player.uuid)
            if not response.is_success:
                reason = f"get_or_generate_answer returned HTTP {response.status_code}"
                logger.warning("Answer for round %s unavailable: %s", round_uuid, reason)
                return AnswerResult.unavailable(reason)
            answer = Answer.model_validate_json(response.content)
        except Exception as exc:
            logger.warning("Answer for round %s unavailable: %s", round_uuid, exc)
            return AnswerResult.unavailable(str(exc) or type(exc).__name__)

        logger.debug("Got answer for round %s: %r", round_uuid, answer.text)
        return AnswerResult(answer=answer)
