"""Artificial Suspects – Gradio front end for the game session client.

Layout (gr.Blocks):
  Top row:            model dropdown  +  New Game / Resume
  Left column (3/5):  rounds (question + witness answer)  +  next round / investigation
  Right column (2/5): suspects  +  elimination  +  leaderboard
Errors from any action land in the ErrorMessage slot and are rendered above.
"""
from __future__ import annotations

import logging
import os
import sys
from typing import List, Optional

import gradio as gr

# Ensure project root is on the path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from config import settings
from suspects.engine.errors import to_error_message
from suspects.engine.game_session import GameSessionClient
from suspects.engine.models import ErrorMessage, Game
from suspects.engine.player import ensure_player, set_player_name
from suspects.engine.state import SlotStore

logger = logging.getLogger(__name__)

# ── Global client (lazy, one per process) ────────────────────────────────
_session: GameSessionClient | None = None


def _get_session() -> GameSessionClient:
    global _session
    if _session is None:
        store = SlotStore()
        ensure_player(store)
        _session = GameSessionClient(store)
    return _session


# ── Helpers ──────────────────────────────────────────────────────────────

def _format_error(msg: ErrorMessage) -> str:
    if msg.is_empty:
        return ""
    actions = " · ".join(msg.actions)
    return f"**{msg.title}**\n\n{msg.message}\n\n*{actions}*"


def _format_rounds(game: Game) -> str:
    rounds = game.investigation.rounds
    if not rounds:
        return "*No round yet.*"
    lines: List[str] = []
    for i, rnd in enumerate(rounds, start=1):
        question = rnd.question.english if rnd.question else ""
        answer = rnd.answer or "*…the witness is thinking…*"
        lines.append(f"**Round {i}.** {question}\n\n> {answer}")
    return "\n\n".join(lines)


def _free_suspects(game: Game) -> List[str]:
    return [s.uuid for s in game.investigation.suspects if s.free and not s.fled]


def _render(session: GameSessionClient):
    game = session.store.game.get()
    header = f"Level {game.level} · Score {game.score}" + (" · **GAME OVER**" if game.game_over else "")
    return (
        header,
        _format_rounds(game),
        gr.update(choices=_free_suspects(game), value=None),
        _format_error(session.store.error_message.get()),
    )


def _report(session: GameSessionClient, exc: Exception) -> None:
    logger.error("Action failed: %s", exc)
    session.store.error_message.set(to_error_message(exc))


# ── Callbacks ────────────────────────────────────────────────────────────

async def load_models() -> dict:
    session = _get_session()
    selected: Optional[str] = session.store.selected_model.get() or settings.DEFAULT_MODEL
    try:
        models = await session.list_available_models(True, settings.MODELS_ORDER_BY)
    except Exception as exc:
        _report(session, exc)
        return gr.update(choices=[selected], value=selected)
    names = [m.name for m in models] or [selected]
    return gr.update(choices=names, value=selected if selected in names else names[0])


async def new_game(model: str):
    session = _get_session()
    session.store.clear_error()
    session.store.selected_model.set(model)
    try:
        await session.start_new_game(model)
    except Exception as exc:
        _report(session, exc)
    return _render(session)


async def resume_game():
    session = _get_session()
    session.store.clear_error()
    try:
        await session.fetch_current_game(publish=True)
    except Exception as exc:
        _report(session, exc)
    return _render(session)


async def next_round():
    session = _get_session()
    session.store.clear_error()
    try:
        await session.advance_round()
    except Exception as exc:
        _report(session, exc)
    return _render(session)


async def next_investigation():
    session = _get_session()
    session.store.clear_error()
    try:
        game = await session.advance_investigation()
        session.store.game.set(game)
    except Exception as exc:
        _report(session, exc)
    return _render(session)


async def eliminate(suspect_uuid: Optional[str]):
    session = _get_session()
    session.store.clear_error()
    game = session.store.game.get()
    last_round = game.investigation.last_round
    if suspect_uuid and last_round is not None:
        try:
            await session.eliminate_suspect(suspect_uuid, last_round.uuid, game.investigation.uuid)
            await session.fetch_current_game(publish=True)
        except Exception as exc:
            _report(session, exc)
    return _render(session)


async def load_scores() -> List[List]:
    session = _get_session()
    try:
        scores = await session.fetch_scores()
    except Exception as exc:
        _report(session, exc)
        return []
    return [[s.position, s.investigator, s.score] for s in scores]


async def save_score(name: str) -> str:
    session = _get_session()
    name = (name or "").strip()
    if not name:
        return "Enter a name first."
    set_player_name(session.store, name)
    try:
        await session.save_score(name, session.store.game.get().uuid)
    except Exception as exc:
        _report(session, exc)
        return _format_error(session.store.error_message.get())
    return f"Saved as **{name}**."


# ── UI Layout ────────────────────────────────────────────────────────────

def build_ui() -> gr.Blocks:
    with gr.Blocks(title="Artificial Suspects", theme=gr.themes.Soft(primary_hue="slate")) as demo:
        gr.Markdown("# Artificial Suspects\n*Ask the AI witness. Eliminate the innocent.*")
        error_md = gr.Markdown("")

        with gr.Row():
            model_dd = gr.Dropdown(choices=[], label="Model", scale=2)
            new_btn = gr.Button("New Game", variant="primary", scale=1)
            resume_btn = gr.Button("Resume", scale=1)

        with gr.Row():
            # ── Left column ──
            with gr.Column(scale=3):
                status_md = gr.Markdown("")
                rounds_md = gr.Markdown("")
                with gr.Row():
                    round_btn = gr.Button("Next round")
                    inv_btn = gr.Button("Next investigation")

            # ── Right column ──
            with gr.Column(scale=2):
                suspect_radio = gr.Radio(choices=[], label="Free suspects", interactive=True)
                elim_btn = gr.Button("Eliminate", variant="stop")
                with gr.Accordion("Leaderboard", open=False):
                    scores_df = gr.Dataframe(headers=["#", "Investigator", "Score"], interactive=False)
                    refresh_btn = gr.Button("Refresh")
                    name_box = gr.Textbox(label="Your name")
                    save_btn = gr.Button("Save score")
                    save_md = gr.Markdown("")

        outputs = [status_md, rounds_md, suspect_radio, error_md]

        # ── Wiring ──
        demo.load(fn=load_models, outputs=model_dd)
        new_btn.click(fn=new_game, inputs=model_dd, outputs=outputs)
        resume_btn.click(fn=resume_game, outputs=outputs)
        round_btn.click(fn=next_round, outputs=outputs)
        inv_btn.click(fn=next_investigation, outputs=outputs)
        elim_btn.click(fn=eliminate, inputs=suspect_radio, outputs=outputs)
        refresh_btn.click(fn=load_scores, outputs=scores_df)
        save_btn.click(fn=save_score, inputs=name_box, outputs=save_md)

    return demo


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    demo = build_ui()
    demo.launch(server_name="0.0.0.0", server_port=settings.GRADIO_PORT, share=False)
