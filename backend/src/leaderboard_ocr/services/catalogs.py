from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

DISPLAY_LOCALES = ("en", "fr", "de", "es", "esmx", "it", "pl", "pt")


class CatalogError(Exception):
    """Raised when a catalog file cannot be read or parsed."""


@dataclass(frozen=True)
class DungeonCandidate:
    id: int
    names: dict[str, str] = field(default_factory=dict)

    @property
    def name_variants(self) -> list[str]:
        return [name for name in self.names.values() if isinstance(name, str) and name.strip()]

    @property
    def display_name(self) -> str | None:
        for locale in DISPLAY_LOCALES:
            name = self.names.get(locale)
            if name and name.strip():
                return name.strip()
        variants = self.name_variants
        return variants[0].strip() if variants else None


class DungeonCatalog(Protocol):
    def list_dungeons(self) -> list[DungeonCandidate]:
        ...


class PlayerCatalog(Protocol):
    def find_player_id(self, name: str) -> int | None:
        ...


class StaticDungeonCatalog:
    def __init__(self, dungeons: list[DungeonCandidate]) -> None:
        self._dungeons = list(dungeons)

    def list_dungeons(self) -> list[DungeonCandidate]:
        return list(self._dungeons)


class InMemoryPlayerCatalog:
    """Exact, case-insensitive player name lookup."""

    def __init__(self, players: dict[str, int] | None = None) -> None:
        self._by_name: dict[str, int] = {}
        for name, player_id in (players or {}).items():
            self.add(name, player_id)

    def add(self, name: str, player_id: int) -> None:
        key = name.strip().casefold()
        if key:
            self._by_name.setdefault(key, int(player_id))

    def find_player_id(self, name: str) -> int | None:
        if not name:
            return None
        return self._by_name.get(name.strip().casefold())


def _parse_dungeon(raw: object) -> DungeonCandidate:
    if not isinstance(raw, dict):
        raise ValueError("dungeon entry is not an object")
    names = raw.get("names")
    if not isinstance(names, dict):
        raise ValueError("dungeon entry has no 'names' object")
    return DungeonCandidate(
        id=int(raw["id"]),
        names={str(locale): str(name) for locale, name in names.items() if name},
    )


def load_catalog_file(path: Path) -> tuple[StaticDungeonCatalog, InMemoryPlayerCatalog]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise CatalogError(f"failed to read catalog file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise CatalogError(f"failed to parse catalog file {path}: {exc}") from exc

    if not isinstance(payload, dict):
        raise CatalogError("unexpected catalog payload shape: expected object")

    dungeons: list[DungeonCandidate] = []
    for idx, item in enumerate(payload.get("dungeons") or []):
        try:
            dungeons.append(_parse_dungeon(item))
        except (KeyError, TypeError, ValueError) as exc:
            raise CatalogError(f"invalid dungeon at index {idx}: {exc}") from exc

    players = InMemoryPlayerCatalog()
    for idx, item in enumerate(payload.get("players") or []):
        try:
            players.add(str(item["name"]), int(item["id"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise CatalogError(f"invalid player at index {idx}: {exc}") from exc

    return StaticDungeonCatalog(dungeons), players
