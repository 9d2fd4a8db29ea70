"""Game session client: drives the remote game server for one player.

Round-advancing calls are two sequential steps:
1. Ask the game server for the new state and publish it to the Game slot
   (observers see the round immediately, still without an answer).
2. Back-fill the last round's answer through ``AnswerGenerator`` and
   republish the enriched snapshot.

A failure in step 2 raises but never rolls back step 1. The back-fill is
written with compare-and-set, so it cannot overwrite a newer snapshot that
another call published in between.
"""
from __future__ import annotations

import logging
from typing import Any, List, Optional, Type

import httpx
from pydantic import TypeAdapter, ValidationError

from suspects.engine.answers import AnswerGenerator
from suspects.engine.errors import (
    AnswerMissingError,
    EliminationError,
    FetchError,
    InvestigationAdvanceError,
    ModelsFetchError,
    RoundAdvanceError,
    RoundMissingError,
    SchemaError,
    ScoreSaveError,
    ScoresFetchError,
    ServicesFetchError,
    SessionCreationError,
    SessionError,
)
from suspects.engine.models import FinalScore, Game, Model, Service
from suspects.engine.player import ensure_player
from suspects.engine.state import SlotStore
from suspects.utils.api_client import ApiClient

logger = logging.getLogger(__name__)


class GameSessionClient:
    """Owns the server protocol and decides what the Game slot may hold.

    The Game slot always holds either the last server response or that
    response with its last round's answer filled in.
    """

    def __init__(
        self,
        store: SlotStore,
        api: Optional[ApiClient] = None,
        answers: Optional[AnswerGenerator] = None,
    ) -> None:
        self.store = store
        self.api = api or ApiClient()
        self.answers = answers or AnswerGenerator(self.api, store)

    @property
    def player_uuid(self) -> str:
        return ensure_player(self.store).uuid

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def start_new_game(self, model_name: str) -> Game:
        """Create a game for the current player and back-fill its first answer.

        Returns the game with its answer filled in. If another call replaced
        the Game slot while the answer was generated, that newer snapshot
        stays in the store and the returned game is not what the store holds.
        """
        logger.info("New game requested (model=%s)", model_name)
        response = await self._call(
            SessionCreationError, "GET", "new_game",
            player_uuid=self.player_uuid, model=model_name,
        )
        game = self._parse(Game, response, "new_game")
        version = self.store.game.set(game)
        return await self._backfill_answer(game, version)

    async def fetch_current_game(self, publish: bool = False) -> Game:
        """Fetch the player's server-side game. The store is untouched unless ``publish``."""
        response = await self._call(FetchError, "GET", "get_game", player_uuid=self.player_uuid)
        game = self._parse(Game, response, "get_game")
        if publish:
            self.store.game.set(game)
        return game

    async def advance_round(self) -> None:
        response = await self._call(RoundAdvanceError, "GET", "next_round", player_uuid=self.player_uuid)
        game = self._parse(Game, response, "next_round")
        version = self.store.game.set(game)
        logger.info(
            "Round %d of investigation %s created",
            len(game.investigation.rounds), game.investigation.uuid,
        )
        await self._backfill_answer(game, version)

    async def advance_investigation(self) -> Game:
        """Open the next investigation.

        Unlike the calls above, nothing is published and no answer is
        back-filled; the caller decides what to do with the returned game.
        """
        response = await self._call(
            InvestigationAdvanceError, "GET", "next_investigation", player_uuid=self.player_uuid,
        )
        game = self._parse(Game, response, "next_investigation")
        logger.info("Investigation %s opened (level %d)", game.investigation.uuid, game.level)
        return game

    async def eliminate_suspect(self, suspect_uuid: str, round_uuid: str, investigation_uuid: str) -> None:
        # Outcome is observed on the next fetch/advance.
        await self._call(
            EliminationError, "POST", "eliminate_suspect",
            suspect_uuid=suspect_uuid, round_uuid=round_uuid, investigation_uuid=investigation_uuid,
        )
        logger.info("Suspect %s eliminated in round %s", suspect_uuid, round_uuid)

    # ------------------------------------------------------------------
    # Scores and reference data
    # ------------------------------------------------------------------

    async def fetch_scores(self) -> List[FinalScore]:
        response = await self._call(ScoresFetchError, "GET", "get_scores")
        return self._parse(Optional[List[FinalScore]], response, "get_scores") or []

    async def save_score(self, player_name: str, game_uuid: str) -> None:
        await self._call(ScoreSaveError, "POST", "save_score", player_name=player_name, game_uuid=game_uuid)
        logger.info("Score saved for game %s as %r", game_uuid, player_name)

    async def list_available_models(self, allowed_only: bool, order_by: str) -> List[Model]:
        response = await self._call(
            ModelsFetchError, "GET", "get_models", allowed_only=allowed_only, order_by=order_by,
        )
        return self._parse(Optional[List[Model]], response, "get_models") or []

    async def list_services(self) -> List[Service]:
        response = await self._call(ServicesFetchError, "GET", "get_services")
        return self._parse(Optional[List[Service]], response, "get_services") or []

    async def check_status(self) -> bool:
        """True when the server answers its health check. Never raises."""
        try:
            response = await self.api.get("status")
        except httpx.HTTPError as exc:
            logger.warning("Server status check failed: %s", exc)
            return False
        return response.is_success

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _backfill_answer(self, game: Game, version: int) -> Game:
        """Fill the last round's answer and republish ``game``.

        ``version`` is the Game slot version produced by publishing ``game``.
        The enriched game is returned even when a newer snapshot blocked
        the write.
        """
        last_round = game.investigation.last_round
        if last_round is None:
            logger.error("Game %s has no round to back-fill", game.uuid)
            raise RoundMissingError(operation="get_or_generate_answer")

        result = await self.answers.generate_answer(last_round.uuid)
        if not result.text:
            logger.error("No answer for round %s: %s", last_round.uuid, result.error or "empty text")
            raise AnswerMissingError(operation="get_or_generate_answer")

        enriched = game.model_copy(deep=True)
        enriched.investigation.rounds[-1].answer = result.text
        if self.store.game.compare_and_set(version, enriched):
            logger.info("Answer back-filled for round %s", last_round.uuid)
        else:
            logger.warning(
                "Game slot changed while answering round %s – back-fill not written",
                last_round.uuid,
            )
        return enriched

    async def _call(
        self,
        error_cls: Type[SessionError],
        method: str,
        endpoint: str,
        **params: Any,
    ) -> httpx.Response:
        """Send a request; raise ``error_cls`` on transport failure or non-success status."""
        try:
            response = await self.api.request(method, endpoint, **params)
        except httpx.HTTPError as exc:
            logger.error("%s /%s failed: %s", method, endpoint, exc)
            raise error_cls(operation=endpoint) from exc
        if not response.is_success:
            logger.error("%s /%s returned HTTP %d", method, endpoint, response.status_code)
            raise error_cls(operation=endpoint, status_code=response.status_code)
        return response

    @staticmethod
    def _parse(value_type: Any, response: httpx.Response, endpoint: str) -> Any:
        try:
            return TypeAdapter(value_type).validate_json(response.content)
        except ValidationError as exc:
            logger.error("/%s sent a malformed body: %s", endpoint, exc)
            raise SchemaError(
                f"Malformed response from {endpoint} ({exc.error_count()} errors)",
                operation=endpoint,
            ) from exc
