"""Wire entities exchanged with the game server and kept in the local store.

Attribute names are snake_case; aliases carry the exact JSON keys the server
emits, so ``to_json()`` writes back the same document that was received.
Go serialises nil slices as ``null``, hence the list coercion below.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class WireModel(BaseModel):
    """Base for every server/store entity."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def _none_to_list(value: Any) -> Any:
    return [] if value is None else value


class Question(WireModel):
    uuid: str = Field(default="", alias="UUID")
    english: str = Field(default="", alias="English")
    czech: str = Field(default="", alias="Czech")
    polish: str = Field(default="", alias="Polish")
    topic: str = Field(default="", alias="Topic")
    level: int = Field(default=0, alias="Level")


class Answer(WireModel):
    uuid: str = Field(default="", alias="UUID")
    text: str = Field(default="", alias="Text")
    timestamp: str = Field(default="", alias="Timestamp")


class Elimination(WireModel):
    uuid: str = Field(alias="UUID")
    round_uuid: str = Field(default="", alias="RoundUUID")
    suspect_uuid: str = Field(default="", alias="SuspectUUID")
    timestamp: str = Field(default="", alias="Timestamp")


class Suspect(WireModel):
    uuid: str = Field(alias="UUID")
    image: str = Field(default="", alias="Image")
    free: bool = Field(default=True, alias="Free")
    fled: bool = Field(default=False, alias="Fled")
    timestamp: str = Field(default="", alias="Timestamp")


class Round(WireModel):
    """One question/answer/elimination cycle.

    ``answer`` is the only field the client ever writes on a server object;
    it is back-filled after the round has been created.
    """

    uuid: str
    investigation_uuid: str = Field(default="", alias="InvestigationUUID")
    question: Optional[Question] = Field(default=None, alias="Question")
    answer_uuid: str = Field(default="", alias="AnswerUUID")
    answer: str = ""
    eliminations: List[Elimination] = Field(default_factory=list, alias="Eliminations")
    timestamp: str = Field(default="", alias="Timestamp")

    @field_validator("eliminations", mode="before")
    @classmethod
    def coerce_null_eliminations(cls, value: Any) -> Any:
        return _none_to_list(value)


class Investigation(WireModel):
    uuid: str = ""
    game_uuid: str = ""
    suspects: List[Suspect] = Field(default_factory=list)
    rounds: List[Round] = Field(default_factory=list)
    # The server withholds the criminal, so this is normally empty.
    criminal_uuid: str = Field(default="", alias="CriminalUUID")
    investigation_over: bool = Field(default=False, alias="InvestigationOver")
    timestamp: str = Field(default="", alias="Timestamp")

    @field_validator("suspects", "rounds", mode="before")
    @classmethod
    def coerce_null_lists(cls, value: Any) -> Any:
        return _none_to_list(value)

    @property
    def last_round(self) -> Optional[Round]:
        return self.rounds[-1] if self.rounds else None


class InvestigatorRecord(WireModel):
    """The server's ``{uuid, name}`` form of the investigating player."""

    uuid: str = ""
    name: str = ""


class Game(WireModel):
    """Top-level session aggregate. Exactly one is held client-side."""

    uuid: str
    investigation: Investigation
    level: int = 0
    score: int = Field(default=0, alias="Score")
    game_over: bool = Field(default=False, alias="GameOver")
    investigator: Union[InvestigatorRecord, str] = Field(default="", alias="Investigator")
    model: str = Field(default="", alias="Model")
    timestamp: str = Field(default="", alias="Timestamp")

    @classmethod
    def empty(cls) -> "Game":
        """The placeholder held before any game was started."""
        return cls(uuid="", investigation=Investigation())


class Player(WireModel):
    """Local player identity; ``uuid`` must be non-empty to be valid."""

    uuid: str = Field(alias="UUID", min_length=1)
    name: str = Field(default="", alias="Name")
    seen_intro: bool = Field(default=False, alias="SeenIntro")


class FinalScore(WireModel):
    game_uuid: str = Field(alias="GameUUID")
    score: int = Field(default=0, alias="Score")
    investigator: str = Field(default="", alias="Investigator")
    position: int = Field(default=0, alias="Position")
    timestamp: str = Field(default="", alias="Timestamp")


class Model(WireModel):
    """A selectable AI backend model."""

    name: str = Field(alias="Name")
    service: str = Field(default="", alias="Service")
    visual: bool = Field(default=False, alias="Visual")
    allowed: bool = Field(default=False, alias="Allowed")
    historical: bool = Field(default=False, alias="Historical")


class Service(WireModel):
    """A provider of models. Nullable columns may arrive as nested objects."""

    name: str = Field(alias="Name")
    api_style: Optional[Union[str, Dict[str, Any]]] = Field(default=None, alias="API_style")
    type: str = Field(default="", alias="Type")
    url: Optional[Union[str, Dict[str, Any]]] = Field(default=None, alias="URL")
    token: str = Field(default="", alias="Token")
    active: bool = Field(default=False, alias="Active")


class ErrorMessage(WireModel):
    """Transient UI message; an empty ``title`` means nothing to show."""

    severity: str = Field(default="", alias="Severity")
    title: str = Field(default="", alias="Title")
    message: str = Field(default="", alias="Message")
    actions: List[str] = Field(default_factory=list, alias="Actions")

    @property
    def is_empty(self) -> bool:
        return not (self.title or self.message)
