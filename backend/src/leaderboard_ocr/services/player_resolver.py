from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from .catalogs import PlayerCatalog
from .field_parsers import strip_ordinal

logger = logging.getLogger("leaderboard_ocr.players")

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class ContributionPlayer:
    name: str
    player_id: int | None = None

    def to_dict(self) -> dict[str, object]:
        return {"playerName": self.name, "playerId": self.player_id}


def normalize_player_name(raw: str | None) -> str | None:
    if raw is None:
        return None
    cleaned = _WHITESPACE.sub(" ", raw).strip()
    cleaned = strip_ordinal(cleaned).strip()
    return cleaned or None


class PlayerResolver:
    def __init__(self, catalog: PlayerCatalog) -> None:
        self.catalog = catalog

    def resolve(self, raw_name: str | None) -> ContributionPlayer | None:
        name = normalize_player_name(raw_name)
        if name is None:
            return None
        player_id = self.catalog.find_player_id(name)
        if player_id is None:
            logger.debug("player unresolved name=%r", name)
        return ContributionPlayer(name=name, player_id=player_id)

    def resolve_all(self, raw_names: list[str]) -> list[ContributionPlayer]:
        players: list[ContributionPlayer] = []
        for raw in raw_names:
            player = self.resolve(raw)
            if player is not None:
                players.append(player)
        return players
