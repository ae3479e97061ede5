"""
One-shot import of the geographic reference units.

- regions / departments: GeoJSON FeatureCollection, properties ``nom`` / ``code``
- cities: JSON list (``nom``, ``code``, ``codeDepartement``, ``codeRegion``,
  ``codesPostaux``, ``population``) plus an optional GeoJSON with contours
- only metropolitan departments (code shorter than 3 characters)
- a loader does nothing when its table already has rows
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from immotep.core.errors import IngestError
from immotep.db.storage import count_where, insert_rows, iter_chunks
from immotep.models import City, Department, Region
from immotep.utils.normalize import none_if_blank, parse_int, upper_name

LOGGER = logging.getLogger(__name__)

CITY_BATCH_SIZE = 200


def _read_json(path: str | Path):
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except OSError as e:
        raise IngestError(f"cannot open {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise IngestError(f"cannot decode JSON file {path}: {e}") from e


def _features(path: str | Path) -> List[dict]:
    doc = _read_json(path)
    if not isinstance(doc, dict) or not isinstance(doc.get("features"), list):
        raise IngestError(f"{path} is not a GeoJSON FeatureCollection")
    return doc["features"]


def _props(feature: dict) -> dict:
    return feature.get("properties") or {}


def _already_loaded(session: Session, model, label: str) -> bool:
    if count_where(session, model) > 0:
        LOGGER.info("%s already loaded.", label)
        return True
    return False


def _insert_batches(session: Session, model, rows: List[dict], batch_size: int, label: str) -> int:
    written = 0
    for part in iter_chunks(rows, batch_size):
        try:
            written += insert_rows(session, model, part)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            LOGGER.error("%s: batch of %s rows failed: %s", label, len(part), e)
    return written


def load_regions(session_factory: sessionmaker, path: str | Path) -> int:
    with session_factory() as session:
        if _already_loaded(session, Region, "regions"):
            return 0
        LOGGER.info("load regions from %s...", path)

        rows: List[dict] = []
        for feature in _features(path):
            props = _props(feature)
            name, code = none_if_blank(props.get("nom")), none_if_blank(props.get("code"))
            if name is None or code is None:
                LOGGER.error("region feature without nom/code: %s", props)
                continue
            rows.append({"code": code, "name": name, "contour": json.dumps(feature)})

        written = _insert_batches(session, Region, rows, len(rows) or 1, "regions")
    LOGGER.info("...%s regions loaded.", written)
    return written


def load_departments(session_factory: sessionmaker, path: str | Path) -> int:
    with session_factory() as session:
        if _already_loaded(session, Department, "departments"):
            return 0
        LOGGER.info("load departments from %s...", path)

        rows: List[dict] = []
        for feature in _features(path):
            props = _props(feature)
            name, code = none_if_blank(props.get("nom")), none_if_blank(props.get("code"))
            if name is None or code is None:
                LOGGER.error("department feature without nom/code: %s", props)
                continue
            if len(code) >= 3:
                continue  # overseas
            rows.append({"code": code, "name": name, "contour": json.dumps(feature)})

        written = _insert_batches(session, Department, rows, 10, "departments")
    LOGGER.info("...%s departments loaded.", written)
    return written


def _contours_by_code(path: Optional[str | Path]) -> Optional[Dict[str, str]]:
    if not path:
        return None
    contours: Dict[str, str] = {}
    for feature in _features(path):
        code = none_if_blank(_props(feature).get("code"))
        if code:
            contours[code] = json.dumps(feature)
    return contours


def city_row(item: dict) -> Optional[dict]:
    """Cities JSON entry -> cities row, None when not metropolitan."""
    code = none_if_blank(item.get("code"))
    dep = none_if_blank(item.get("codeDepartement"))
    if code is None or dep is None or len(dep) >= 3:
        return None
    zips = item.get("codesPostaux") or []
    name = none_if_blank(item.get("nom"))
    return {
        "code": code,
        "name": name,
        "name_upper": upper_name(name),
        "zip_code": parse_int(zips[0]) if zips else None,
        "population": parse_int(item.get("population")),
        "code_department": dep,
        "code_region": none_if_blank(item.get("codeRegion")),
        "contour": None,
    }


def load_cities(session_factory: sessionmaker, path: str | Path, geo_path: Optional[str | Path] = None) -> int:
    with session_factory() as session:
        if _already_loaded(session, City, "cities"):
            return 0

        contours = _contours_by_code(geo_path)
        LOGGER.info("load cities from %s...", path)
        items = _read_json(path)
        if not isinstance(items, list):
            raise IngestError(f"{path}: expected a JSON list of cities")

        rows: List[dict] = []
        for item in items:
            row = city_row(item)
            if row is None:
                continue
            if contours is not None:
                contour = contours.get(row["code"])
                if contour is None:
                    LOGGER.error("no contour for city %s (%s)", row["name"], row["code"])
                    continue
                row["contour"] = contour
            rows.append(row)

        written = _insert_batches(session, City, rows, CITY_BATCH_SIZE, "cities")
    LOGGER.info("...%s cities loaded.", written)
    return written
