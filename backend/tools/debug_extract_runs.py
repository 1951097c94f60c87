from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = BACKEND_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from leaderboard_ocr.services.catalogs import CatalogError, load_catalog_file  # noqa: E402
from leaderboard_ocr.services.errors import ExtractionError  # noqa: E402
from leaderboard_ocr.services.images import decode_image, validate_uploads  # noqa: E402
from leaderboard_ocr.services.layout import RegionLayout  # noqa: E402
from leaderboard_ocr.services.ocr_engine import (  # noqa: E402
    TesseractOcr,
    check_ocr_runtime,
    crop,
    preprocess_region,
    require_cv2,
)
from leaderboard_ocr.services.run_assembler import RunAssembler  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Extract provisional leaderboard runs from screenshots for review."
    )
    parser.add_argument("images", type=Path, nargs="+", help="Paths to leaderboard screenshots")
    parser.add_argument("--catalog", type=Path, required=True, help="JSON file with dungeons and players")
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Directory for region crops (layout calibration)",
    )
    parser.add_argument("--verbose", action="store_true", help="Log region and row decisions")
    parser.add_argument(
        "--review",
        action="store_true",
        help="Print per-field review records (raw text, normalized value, PNG crop) per page",
    )
    return parser.parse_args()


def _save_regions(output_dir: Path, stem: str, image: object) -> None:
    cv2 = require_cv2()
    layout = RegionLayout.for_image(image)
    regions = {
        "dungeon": layout.dungeon_banner(),
        "mode": layout.mode_banner(),
        "week": layout.week_banner(),
    }
    for row in layout.rows():
        regions[f"row{row.index + 1}_players"] = row.players
        regions[f"row{row.index + 1}_value"] = row.value

    output_dir.mkdir(parents=True, exist_ok=True)
    for name, rect in regions.items():
        region = crop(image, rect)  # type: ignore[arg-type]
        if region is None:
            continue
        cv2.imwrite(str(output_dir / f"{stem}_{name}.png"), region)
        cv2.imwrite(str(output_dir / f"{stem}_{name}_processed.png"), preprocess_region(region))


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    runtime = check_ocr_runtime()
    print(f"[OCR runtime] tesseract={runtime.tesseract_cmd or '-'} version={runtime.tesseract_version or '-'}")
    for error in runtime.errors:
        print(f"[OCR runtime] {error}")

    dungeons, players = load_catalog_file(args.catalog.resolve())

    paths = [path.resolve() for path in args.images]
    images = []
    for path in paths:
        if not path.exists():
            raise FileNotFoundError(f"image not found: {path}")
        images.append(decode_image(path.read_bytes(), name=path.name))
    validate_uploads(images)

    assembler = RunAssembler(TesseractOcr(), dungeons, players, keep_crops=args.review)
    output: list[dict[str, object]] = []
    for path, image in zip(paths, images):
        if args.output_dir is not None:
            _save_regions(args.output_dir.resolve(), path.stem, image)

        page = assembler.extract_page(image)
        meta = page.metadata
        print(f"[{path.name}]")
        print(f"- mode: {meta.mode.value} (raw={meta.mode_field.raw_text!r})")
        print(f"- week: {meta.week} (raw={meta.week_field.raw_text!r})")
        print(
            f"- dungeon: {meta.dungeon_id} {meta.dungeon_field.normalized}"
            f" (raw={meta.dungeon_field.raw_text!r})"
        )
        for row in page.rows:
            print(
                f"  row {row.index + 1}: players={[slot.normalized for slot in row.player_fields]}"
                f" value={row.value_field.normalized} (raw={row.value_field.raw_text!r})"
            )
        print(f"- rows read: {len(page.rows)}, runs accepted: {len(page.runs)}")
        if args.review:
            output.append({"image": path.name, **page.to_dict()})
        else:
            output.extend(run.to_dict() for run in page.runs)

    key = "pages" if args.review else "runs"
    print(json.dumps({key: output}, ensure_ascii=False, indent=2))


if __name__ == "__main__":
    try:
        main()
    except (ExtractionError, CatalogError) as exc:
        print(f"[ERROR] {exc}")
        raise SystemExit(1) from exc
