"""Tests for GameSessionClient against a fake game server (httpx.MockTransport)."""
import asyncio
import sys
from pathlib import Path

import httpx
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

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
    SessionCreationError,
)
from suspects.engine.game_session import GameSessionClient
from suspects.engine.models import Game, Model
from suspects.engine.state import MemoryBackend, SlotStore
from suspects.utils.api_client import ApiClient


# ── Shared fake-server helpers ──────────────────────────────────────

def _round(n: int, answer: str = "") -> dict:
    return {
        "uuid": f"r{n}",
        "InvestigationUUID": "i1",
        "Question": {"UUID": f"q{n}", "English": "Is the suspect tall?", "Czech": "", "Polish": "",
                     "Topic": "looks", "Level": 1},
        "AnswerUUID": "",
        "answer": answer,
        "Eliminations": None,
        "Timestamp": "2025-01-01T10:00:00Z",
    }


def _game(n_rounds: int = 1, game_uuid: str = "g1") -> dict:
    return {
        "uuid": game_uuid,
        "Score": 0,
        "Investigator": {"uuid": "p1", "name": ""},
        "Timestamp": "2025-01-01T10:00:00Z",
        "Model": "gpt-4",
        "level": 1,
        "GameOver": False,
        "investigation": {
            "uuid": "i1",
            "game_uuid": game_uuid,
            "suspects": [
                {"UUID": "s1", "Image": "s1.jpg", "Free": True, "Fled": False, "Timestamp": ""},
                {"UUID": "s2", "Image": "s2.jpg", "Free": True, "Fled": False, "Timestamp": ""},
            ],
            "rounds": [_round(i) for i in range(1, n_rounds + 1)],
            "InvestigationOver": False,
            "Timestamp": "2025-01-01T10:00:00Z",
        },
    }


def _answer(text: str = "It was misty.") -> httpx.Response:
    return httpx.Response(200, json={"UUID": "a1", "Text": text, "Timestamp": "2025-01-01T10:00:01Z"})


def _transport(routes: dict, calls: list) -> httpx.MockTransport:
    """Route by path; values are responses or callables taking the request."""
    def handler(request: httpx.Request) -> httpx.Response:
        endpoint = request.url.path.lstrip("/")
        calls.append(request)
        route = routes.get(endpoint)
        if route is None:
            return httpx.Response(404)
        if callable(route):
            return route(request)
        return route
    return httpx.MockTransport(handler)


def _endpoints(calls: list) -> list:
    return [r.url.path.lstrip("/") for r in calls]


@pytest.fixture
def store():
    return SlotStore(MemoryBackend())


@pytest.fixture
def calls():
    return []


@pytest.fixture
def make_session(store, calls):
    def factory(routes: dict) -> GameSessionClient:
        api = ApiClient(base_url="http://server.test", transport=_transport(routes, calls))
        return GameSessionClient(store, api=api)
    return factory


# ── start_new_game ──────────────────────────────────────────────────

class TestStartNewGame:
    def test_answer_is_backfilled_into_store(self, store, make_session, calls):
        session = make_session({
            "new_game": httpx.Response(200, json=_game(1)),
            "get_or_generate_answer": _answer("It was misty."),
        })
        game = asyncio.run(session.start_new_game("gpt-4"))

        assert game.investigation.rounds[0].answer == "It was misty."
        stored = store.game.get()
        assert stored.uuid == "g1"
        assert stored.investigation.rounds[0].uuid == "r1"
        assert stored.investigation.rounds[0].answer == "It was misty."
        assert _endpoints(calls) == ["new_game", "get_or_generate_answer"]

    def test_sends_player_and_model(self, store, make_session, calls):
        session = make_session({
            "new_game": httpx.Response(200, json=_game(1)),
            "get_or_generate_answer": _answer(),
        })
        asyncio.run(session.start_new_game("gpt-4"))

        player = store.player.get()
        assert player is not None
        new_game = calls[0]
        assert new_game.method == "GET"
        assert new_game.url.params["model"] == "gpt-4"
        assert new_game.url.params["player_uuid"] == player.uuid
        assert new_game.headers["Content-Type"] == "application/json"
        assert calls[1].url.params["player_uuid"] == player.uuid

    def test_empty_answer_raises_and_keeps_created_game(self, store, make_session):
        session = make_session({
            "new_game": httpx.Response(200, json=_game(1)),
            "get_or_generate_answer": _answer(""),
        })
        with pytest.raises(AnswerMissingError):
            asyncio.run(session.start_new_game("gpt-4"))

        stored = store.game.get()
        assert stored.uuid == "g1"
        assert stored.investigation.rounds[0].answer == ""

    def test_answer_service_failure_raises_answer_missing(self, store, make_session):
        session = make_session({
            "new_game": httpx.Response(200, json=_game(1)),
            "get_or_generate_answer": httpx.Response(418, text="model unavailable"),
        })
        with pytest.raises(AnswerMissingError):
            asyncio.run(session.start_new_game("gpt-4"))
        assert store.game.get().uuid == "g1"

    def test_no_rounds_is_an_answer_missing_error(self, store, make_session, calls):
        session = make_session({"new_game": httpx.Response(200, json=_game(0))})
        with pytest.raises(AnswerMissingError) as info:
            asyncio.run(session.start_new_game("gpt-4"))
        assert isinstance(info.value, RoundMissingError)
        assert "get_or_generate_answer" not in _endpoints(calls)
        assert store.game.get().uuid == "g1"

    def test_returns_enriched_game_even_when_store_moved_on(self, store, make_session):
        newer = Game.model_validate(_game(1, game_uuid="g-newer"))

        def answer_route(request):
            store.game.set(newer)
            return _answer("It was misty.")

        session = make_session({
            "new_game": httpx.Response(200, json=_game(1)),
            "get_or_generate_answer": answer_route,
        })
        game = asyncio.run(session.start_new_game("gpt-4"))

        assert game.uuid == "g1"
        assert game.investigation.rounds[0].answer == "It was misty."
        assert store.game.get() is newer

    def test_server_failure_raises_session_creation_error(self, store, make_session):
        session = make_session({"new_game": httpx.Response(400)})
        with pytest.raises(SessionCreationError) as info:
            asyncio.run(session.start_new_game(""))
        assert info.value.status_code == 400
        assert info.value.operation == "new_game"
        assert store.game.get().uuid == ""
        assert store.game.version == 0


# ── advance_round ───────────────────────────────────────────────────

class TestAdvanceRound:
    def test_round_published_before_answer(self, store, make_session):
        snapshots = []
        store.game.subscribe(lambda g: snapshots.append(g))
        session = make_session({
            "next_round": httpx.Response(200, json=_game(2)),
            "get_or_generate_answer": _answer("Yes, very tall."),
        })
        asyncio.run(session.advance_round())

        # initial value, round-created snapshot, back-filled snapshot
        assert len(snapshots) == 3
        assert [r.answer for r in snapshots[1].investigation.rounds] == ["", ""]
        assert snapshots[2].investigation.rounds[-1].answer == "Yes, very tall."
        assert snapshots[2].investigation.rounds[0].answer == ""

    def test_observer_sees_round_while_answer_pending(self, store, make_session):
        seen = {}

        def answer_route(request):
            seen["rounds"] = len(store.game.get().investigation.rounds)
            seen["answer"] = store.game.get().investigation.rounds[-1].answer
            return _answer()

        session = make_session({
            "next_round": httpx.Response(200, json=_game(3)),
            "get_or_generate_answer": answer_route,
        })
        asyncio.run(session.advance_round())
        assert seen == {"rounds": 3, "answer": ""}

    def test_zero_rounds_raises_round_missing_without_answer_write(self, store, make_session, calls):
        session = make_session({"next_round": httpx.Response(200, json=_game(0))})
        with pytest.raises(RoundMissingError):
            asyncio.run(session.advance_round())
        assert store.game.version == 1
        assert _endpoints(calls) == ["next_round"]

    def test_empty_answer_keeps_round_created_snapshot(self, store, make_session):
        session = make_session({
            "next_round": httpx.Response(200, json=_game(2)),
            "get_or_generate_answer": _answer(""),
        })
        with pytest.raises(AnswerMissingError):
            asyncio.run(session.advance_round())
        stored = store.game.get()
        assert len(stored.investigation.rounds) == 2
        assert stored.investigation.rounds[-1].answer == ""

    def test_http_failure_raises_round_advance_error(self, store, make_session):
        session = make_session({"next_round": httpx.Response(500)})
        with pytest.raises(RoundAdvanceError) as info:
            asyncio.run(session.advance_round())
        assert info.value.status_code == 500
        assert store.game.version == 0

    def test_transport_failure_raises_round_advance_error(self, store, make_session):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        session = make_session({"next_round": refuse})
        with pytest.raises(RoundAdvanceError) as info:
            asyncio.run(session.advance_round())
        assert info.value.status_code is None
        assert isinstance(info.value.__cause__, httpx.ConnectError)

    def test_stale_backfill_does_not_overwrite_newer_game(self, store, make_session):
        newer = Game.model_validate(_game(1, game_uuid="g-newer"))

        def answer_route(request):
            # another call publishes while the answer is being generated
            store.game.set(newer)
            return _answer("Too late.")

        session = make_session({
            "next_round": httpx.Response(200, json=_game(2)),
            "get_or_generate_answer": answer_route,
        })
        asyncio.run(session.advance_round())

        stored = store.game.get()
        assert stored.uuid == "g-newer"
        assert stored.investigation.rounds[-1].answer == ""

    def test_malformed_body_raises_schema_error_before_write(self, store, make_session):
        session = make_session({"next_round": httpx.Response(200, json={"uuid": "g1"})})
        with pytest.raises(SchemaError):
            asyncio.run(session.advance_round())
        assert store.game.version == 0


# ── advance_investigation / fetch_current_game ──────────────────────

class TestInvestigationAndFetch:
    def test_advance_investigation_returns_without_publishing(self, store, make_session, calls):
        payload = _game(0)
        payload["level"] = 2
        session = make_session({"next_investigation": httpx.Response(200, json=payload)})

        game = asyncio.run(session.advance_investigation())

        assert game.level == 2
        assert game.investigation.rounds == []
        assert store.game.version == 0
        assert _endpoints(calls) == ["next_investigation"]

    def test_advance_investigation_failure(self, make_session):
        session = make_session({"next_investigation": httpx.Response(500)})
        with pytest.raises(InvestigationAdvanceError):
            asyncio.run(session.advance_investigation())

    def test_fetch_current_game_leaves_store_alone(self, store, make_session):
        session = make_session({"get_game": httpx.Response(200, json=_game(2))})
        game = asyncio.run(session.fetch_current_game())
        assert len(game.investigation.rounds) == 2
        assert store.game.version == 0

    def test_fetch_current_game_publish(self, store, make_session):
        session = make_session({"get_game": httpx.Response(200, json=_game(2))})
        asyncio.run(session.fetch_current_game(publish=True))
        assert store.game.get().uuid == "g1"

    def test_fetch_current_game_failure(self, make_session):
        session = make_session({"get_game": httpx.Response(500)})
        with pytest.raises(FetchError):
            asyncio.run(session.fetch_current_game())


# ── eliminate_suspect ───────────────────────────────────────────────

class TestEliminateSuspect:
    def test_posts_identifiers(self, store, make_session, calls):
        session = make_session({"eliminate_suspect": httpx.Response(200)})
        asyncio.run(session.eliminate_suspect("s1", "r1", "i1"))

        request = calls[0]
        assert request.method == "POST"
        assert dict(request.url.params) == {
            "suspect_uuid": "s1", "round_uuid": "r1", "investigation_uuid": "i1",
        }
        assert store.game.version == 0

    def test_failure_raises_and_leaves_game_unchanged(self, store, make_session):
        store.game.set(Game.model_validate(_game(1)))
        before = store.game.get()
        session = make_session({"eliminate_suspect": httpx.Response(500)})

        with pytest.raises(EliminationError):
            asyncio.run(session.eliminate_suspect("s1", "r1", "i1"))

        assert store.game.get() is before
        assert store.game.version == 1


# ── Scores and reference data ───────────────────────────────────────

class TestScoresAndModels:
    def test_list_models_empty(self, make_session, calls):
        session = make_session({"get_models": httpx.Response(200, json=[])})
        models = asyncio.run(session.list_available_models(True, "name"))
        assert models == []
        assert calls[0].url.params["allowed_only"] == "true"
        assert calls[0].url.params["order_by"] == "name"

    def test_list_models_null_body_is_empty(self, make_session):
        session = make_session({"get_models": httpx.Response(200, content=b"null")})
        assert asyncio.run(session.list_available_models(False, "")) == []

    def test_list_models_parses(self, make_session):
        session = make_session({"get_models": httpx.Response(200, json=[
            {"Name": "gpt-4", "Service": "OpenAI", "Visual": True, "Allowed": True, "Historical": True},
        ])})
        models = asyncio.run(session.list_available_models(True, "name"))
        assert models == [Model(name="gpt-4", service="OpenAI", visual=True, allowed=True, historical=True)]

    def test_list_models_failure(self, make_session):
        session = make_session({"get_models": httpx.Response(500)})
        with pytest.raises(ModelsFetchError):
            asyncio.run(session.list_available_models(True, "name"))

    def test_fetch_scores(self, make_session):
        session = make_session({"get_scores": httpx.Response(200, json=[
            {"Score": 12, "Position": 1, "Investigator": "Marple", "GameUUID": "g1", "Timestamp": ""},
            {"Score": 7, "Position": 2, "Investigator": "Poirot", "GameUUID": "g2", "Timestamp": ""},
        ])})
        scores = asyncio.run(session.fetch_scores())
        assert [s.investigator for s in scores] == ["Marple", "Poirot"]
        assert scores[0].score == 12

    def test_fetch_scores_failure(self, make_session):
        session = make_session({"get_scores": httpx.Response(503)})
        with pytest.raises(ScoresFetchError):
            asyncio.run(session.fetch_scores())

    def test_save_score(self, make_session, calls):
        session = make_session({"save_score": httpx.Response(200)})
        asyncio.run(session.save_score("Marple", "g1"))
        assert calls[0].method == "POST"
        assert calls[0].url.params["player_name"] == "Marple"
        assert calls[0].url.params["game_uuid"] == "g1"

    def test_save_score_failure(self, make_session):
        session = make_session({"save_score": httpx.Response(500)})
        with pytest.raises(ScoreSaveError):
            asyncio.run(session.save_score("Marple", "g1"))

    def test_list_services_accepts_nullable_columns(self, make_session):
        session = make_session({"get_services": httpx.Response(200, json=[
            {"Name": "OpenAI", "API_style": {"String": "openai", "Valid": True}, "Type": "API",
             "URL": {"String": "", "Valid": False}, "Token": "", "Active": True},
        ])})
        services = asyncio.run(session.list_services())
        assert services[0].name == "OpenAI"
        assert services[0].active is True


# ── check_status ────────────────────────────────────────────────────

class TestCheckStatus:
    def test_ok(self, make_session):
        session = make_session({"status": httpx.Response(200, text="OK")})
        assert asyncio.run(session.check_status()) is True

    def test_down(self, make_session):
        def refuse(request):
            raise httpx.ConnectError("down", request=request)

        session = make_session({"status": refuse})
        assert asyncio.run(session.check_status()) is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
