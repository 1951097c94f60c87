from __future__ import annotations

import asyncio
import base64
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

import numpy as np

from ..config import (
    DUNGEON_MATCH_THRESHOLD,
    EXTRACT_KEEP_CROPS,
    EXTRACT_MAX_WORKERS,
    TIME_VALUE_WHITELIST,
)
from .catalogs import DungeonCatalog, PlayerCatalog
from .dungeon_matcher import DungeonMatch, best_dungeon_match
from .field_parsers import (
    RunMode,
    format_duration,
    interpret_mode,
    parse_player_lines,
    parse_score,
    parse_time,
    parse_week,
)
from .layout import LayoutSpec, Rect, RegionLayout, RowRegions
from .ocr_engine import OcrPort, PageSegMode, crop, encode_png
from .player_resolver import ContributionPlayer, PlayerResolver

logger = logging.getLogger("leaderboard_ocr.runs")


@dataclass(frozen=True)
class FieldExtraction:
    """What one region produced, kept so a reviewer can check the reading.

    ``crop_png`` holds the source pixels of the region, PNG encoded, when
    the assembler keeps crops.
    """

    raw_text: str | None = None
    normalized: str | None = None
    number: int | None = None
    entity_id: int | None = None
    crop_png: bytes | None = None

    @property
    def crop_data_url(self) -> str | None:
        if self.crop_png is None:
            return None
        return "data:image/png;base64," + base64.b64encode(self.crop_png).decode("ascii")

    def to_dict(self) -> dict[str, object]:
        return {
            "text": self.raw_text,
            "normalized": self.normalized,
            "number": self.number,
            "id": self.entity_id,
            "crop": self.crop_data_url,
        }


@dataclass(frozen=True)
class PageMetadata:
    mode: RunMode
    week: int | None
    dungeon: DungeonMatch | None
    mode_field: FieldExtraction = FieldExtraction()
    week_field: FieldExtraction = FieldExtraction()
    dungeon_field: FieldExtraction = FieldExtraction()

    @property
    def dungeon_id(self) -> int | None:
        return self.dungeon.dungeon_id if self.dungeon is not None else None

    def to_dict(self) -> dict[str, object]:
        return {
            "mode": self.mode_field.to_dict(),
            "week": self.week_field.to_dict(),
            "dungeon": self.dungeon_field.to_dict(),
        }


@dataclass(frozen=True)
class RowExtraction:
    index: int
    mode: RunMode
    player_names: list[str]
    score_value: int | None = None
    time_seconds: int | None = None
    players_field: FieldExtraction = FieldExtraction()
    player_fields: list[FieldExtraction] = field(default_factory=list)
    value_field: FieldExtraction = FieldExtraction()

    @property
    def value_text(self) -> str | None:
        return self.value_field.raw_text

    def to_dict(self) -> dict[str, object]:
        return {
            "row": self.index + 1,
            "mode": self.mode.value,
            "players": self.players_field.to_dict(),
            "playerSlots": [slot.to_dict() for slot in self.player_fields],
            "value": self.value_field.to_dict(),
        }


@dataclass(frozen=True)
class ContributionRun:
    week: int | None
    dungeon_id: int | None
    score: int | None
    time: int | None
    players: list[ContributionPlayer]

    def to_dict(self) -> dict[str, object]:
        return {
            "week": self.week,
            "dungeonId": self.dungeon_id,
            "score": self.score,
            "time": self.time,
            "timeText": format_duration(self.time),
            "players": [player.to_dict() for player in self.players],
        }


@dataclass
class PageExtraction:
    metadata: PageMetadata
    rows: list[RowExtraction] = field(default_factory=list)
    runs: list[ContributionRun] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "fields": self.metadata.to_dict(),
            "rows": [row.to_dict() for row in self.rows],
            "runs": [run.to_dict() for run in self.runs],
        }


def resolve_row_mode(page_mode: RunMode, score: int | None, time: int | None) -> RunMode:
    """Pick the metric of one row, or ``UNKNOWN`` when the row must be dropped.

    A declared page mode always wins. Without one, a positive duration is
    preferred over a positive score since a colon pattern is the stronger
    signal.
    """
    mode = page_mode
    if mode is RunMode.UNKNOWN:
        if time is not None and time > 0:
            mode = RunMode.TIME
        elif score is not None and score > 0:
            mode = RunMode.SCORE
    if mode is RunMode.SCORE and (score is None or score <= 0):
        return RunMode.UNKNOWN
    if mode is RunMode.TIME and (time is None or time <= 0):
        return RunMode.UNKNOWN
    return mode


class RunAssembler:
    def __init__(
        self,
        ocr: OcrPort,
        dungeons: DungeonCatalog,
        players: PlayerCatalog,
        *,
        layout_spec: LayoutSpec | None = None,
        dungeon_threshold: float = DUNGEON_MATCH_THRESHOLD,
        max_workers: int = EXTRACT_MAX_WORKERS,
        keep_crops: bool = EXTRACT_KEEP_CROPS,
    ) -> None:
        self.ocr = ocr
        self.dungeons = dungeons
        self.player_resolver = PlayerResolver(players)
        self.layout_spec = layout_spec
        self.dungeon_threshold = dungeon_threshold
        self.max_workers = max(1, int(max_workers))
        self.keep_crops = keep_crops

    def _crop_png(self, image: np.ndarray, rect: Rect) -> bytes | None:
        if not self.keep_crops:
            return None
        region = crop(image, rect)
        return encode_png(region) if region is not None else None

    def _read(
        self,
        image: np.ndarray,
        rect: Rect,
        mode: PageSegMode,
        label: str,
        char_whitelist: str | None = None,
    ) -> tuple[str | None, bytes | None]:
        text = self.ocr.recognize(image, rect, mode, char_whitelist)
        if text is None:
            logger.debug("%s unreadable rect=%s", label, rect)
        return text, self._crop_png(image, rect)

    def detect_metadata(self, image: np.ndarray, layout: RegionLayout) -> PageMetadata:
        mode_text, mode_png = self._read(
            image, layout.mode_banner(), PageSegMode.SINGLE_BLOCK, "mode banner"
        )
        week_text, week_png = self._read(
            image, layout.week_banner(), PageSegMode.SINGLE_LINE, "week banner"
        )
        dungeon_text, dungeon_png = self._read(
            image, layout.dungeon_banner(), PageSegMode.SINGLE_BLOCK, "dungeon banner"
        )

        mode = interpret_mode(mode_text)
        week = parse_week(week_text)
        dungeon = best_dungeon_match(
            dungeon_text,
            self.dungeons.list_dungeons(),
            threshold=self.dungeon_threshold,
        )
        return PageMetadata(
            mode=mode,
            week=week,
            dungeon=dungeon,
            mode_field=FieldExtraction(
                raw_text=mode_text,
                normalized=mode.value if mode is not RunMode.UNKNOWN else None,
                crop_png=mode_png,
            ),
            week_field=FieldExtraction(
                raw_text=week_text,
                normalized=str(week) if week is not None else None,
                number=week,
                crop_png=week_png,
            ),
            dungeon_field=FieldExtraction(
                raw_text=dungeon_text,
                normalized=dungeon.display_name if dungeon is not None else None,
                entity_id=dungeon.dungeon_id if dungeon is not None else None,
                crop_png=dungeon_png,
            ),
        )

    def extract_row(
        self,
        image: np.ndarray,
        row: RowRegions,
        page_mode: RunMode,
    ) -> RowExtraction | None:
        players_text = self.ocr.recognize(image, row.players, PageSegMode.SINGLE_BLOCK)
        names = parse_player_lines(players_text)
        if not names:
            logger.debug("row %d has no player names; skipped", row.index)
            return None

        whitelist = TIME_VALUE_WHITELIST if page_mode is RunMode.TIME else None
        value_text, value_png = self._read(
            image, row.value, PageSegMode.SINGLE_LINE, f"row {row.index} value cell", whitelist
        )
        score = None if page_mode is RunMode.TIME else parse_score(value_text)
        time = parse_time(value_text)

        value_mode = resolve_row_mode(page_mode, score, time)
        if value_mode is RunMode.SCORE:
            value_field = FieldExtraction(value_text, str(score), score, None, value_png)
        elif value_mode is RunMode.TIME:
            value_field = FieldExtraction(value_text, format_duration(time), time, None, value_png)
        else:
            value_field = FieldExtraction(raw_text=value_text, crop_png=value_png)

        player_fields: list[FieldExtraction] = []
        for line in (players_text or "").splitlines():
            player = self.player_resolver.resolve(line)
            if player is not None:
                player_fields.append(
                    FieldExtraction(
                        raw_text=line.strip(),
                        normalized=player.name,
                        entity_id=player.player_id,
                    )
                )

        return RowExtraction(
            index=row.index,
            mode=page_mode,
            player_names=names,
            score_value=score,
            time_seconds=time,
            players_field=FieldExtraction(
                raw_text=players_text,
                normalized="\n".join(names),
                crop_png=self._crop_png(image, row.players),
            ),
            player_fields=player_fields,
            value_field=value_field,
        )

    def build_run(self, metadata: PageMetadata, row: RowExtraction) -> ContributionRun | None:
        mode = resolve_row_mode(row.mode, row.score_value, row.time_seconds)
        if mode is RunMode.UNKNOWN:
            logger.debug("row %d rejected: no usable value text=%r", row.index, row.value_text)
            return None

        if row.player_fields:
            players = [
                ContributionPlayer(name=slot.normalized, player_id=slot.entity_id)
                for slot in row.player_fields
                if slot.normalized
            ]
        else:
            players = self.player_resolver.resolve_all(row.player_names)
        if not players:
            logger.debug("row %d rejected: no player names after normalization", row.index)
            return None

        return ContributionRun(
            week=metadata.week,
            dungeon_id=metadata.dungeon_id,
            score=row.score_value if mode is RunMode.SCORE else None,
            time=row.time_seconds if mode is RunMode.TIME else None,
            players=players,
        )

    def extract_page(self, image: np.ndarray) -> PageExtraction:
        layout = RegionLayout.for_image(image, spec=self.layout_spec)
        metadata = self.detect_metadata(image, layout)
        page = PageExtraction(metadata=metadata)

        for row_regions in layout.rows():
            row = self.extract_row(image, row_regions, metadata.mode)
            if row is None:
                continue
            page.rows.append(row)
            run = self.build_run(metadata, row)
            if run is not None:
                page.runs.append(run)

        logger.info(
            "page extracted mode=%s week=%s dungeon_id=%s rows=%d runs=%d",
            metadata.mode.value,
            metadata.week,
            metadata.dungeon_id,
            len(page.rows),
            len(page.runs),
        )
        return page

    def extract(self, image: np.ndarray) -> list[ContributionRun]:
        return self.extract_page(image).runs

    def extract_many(self, images: list[np.ndarray]) -> list[list[ContributionRun]]:
        if self.max_workers <= 1 or len(images) <= 1:
            return [self.extract(image) for image in images]
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            # map() yields results in input order.
            return list(pool.map(self.extract, images))


async def extract_runs_in_thread(
    assembler: RunAssembler,
    images: list[np.ndarray],
) -> list[list[ContributionRun]]:
    return await asyncio.to_thread(assembler.extract_many, images)
