"""In-memory city reference used to resolve missing zip codes.

Built from the ``cities`` table (loaded by the reference loader) and,
optionally, from the official zipcode CSV file.
"""
from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from immotep.models import City, UNRESOLVED_ZIP
from immotep.utils.normalize import hyphen_name, none_if_blank, parse_int, upper_name

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class CityRef:
    code: str
    name: Optional[str]
    zip_code: Optional[int]


def read_zipcode_map(path: str | Path, encoding: str = "utf-8") -> Tuple[Dict[str, int], Dict[str, int]]:
    """
    Read the semicolon separated zipcode file:

        Code_commune_INSEE;Nom_de_la_commune;Code_postal;Libelle_d_acheminement;Ligne_5

    Returns ``(by_name, by_code)``. Names are also indexed with spaces
    replaced by hyphens. A missing or empty file gives empty maps.
    """
    by_name: Dict[str, int] = {}
    by_code: Dict[str, int] = {}
    try:
        f = open(path, newline="", encoding=encoding)
    except OSError as e:
        LOGGER.error("cannot open zipcode file %s: %s", path, e)
        return by_name, by_code

    with f:
        reader = csv.reader(f, delimiter=";", strict=False)
        header = next(reader, None)
        if header is None:
            LOGGER.error("zipcode file %s has no header", path)
            return by_name, by_code

        for row in reader:
            if len(row) < 3:
                continue
            zip_code = parse_int(row[2].lstrip("0"))
            if zip_code is None:
                continue
            code = none_if_blank(row[0])
            if code:
                by_code.setdefault(code, zip_code)
            name = upper_name(row[1])
            if name:
                by_name[name] = zip_code
                by_name[hyphen_name(name)] = zip_code

    return by_name, by_code


class ReferenceIndex:
    """city code -> CityRef, normalised city name -> zip code."""

    def __init__(self) -> None:
        self._by_code: Dict[str, CityRef] = {}
        self._zip_by_name: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._by_code)

    def add_city(self, ref: CityRef) -> None:
        self._by_code[ref.code] = ref
        key = upper_name(ref.name)
        if key and ref.zip_code:
            self._zip_by_name.setdefault(key, ref.zip_code)
            self._zip_by_name.setdefault(hyphen_name(key), ref.zip_code)

    @classmethod
    def from_session(cls, session: Session) -> "ReferenceIndex":
        index = cls()
        rows = session.execute(
            select(City.code, City.name, City.zip_code)
        )
        for code, name, zip_code in rows:
            index.add_city(CityRef(code=code, name=name, zip_code=zip_code))
        LOGGER.info("reference index: %s cities from storage", len(index))
        return index

    def merge_zipcode_file(self, path: str | Path, encoding: str = "utf-8") -> None:
        """Add zip codes from the official file; storage entries win."""
        by_name, by_code = read_zipcode_map(path, encoding=encoding)
        for name, zip_code in by_name.items():
            self._zip_by_name.setdefault(name, zip_code)
        for code, zip_code in by_code.items():
            if code not in self._by_code:
                self._by_code[code] = CityRef(code=code, name=None, zip_code=zip_code)
        LOGGER.info("reference index: merged %s names / %s codes from %s", len(by_name), len(by_code), path)

    def zip_for_code(self, code: str) -> Optional[int]:
        ref = self._by_code.get(code)
        if ref is None or not ref.zip_code:
            return None
        return ref.zip_code

    def zip_for_name(self, name: Optional[str]) -> Optional[int]:
        key = upper_name(name)
        if key is None:
            return None
        return self._zip_by_name.get(key) or self._zip_by_name.get(hyphen_name(key))

    def resolve_zip(self, city_code: str, city_name: Optional[str]) -> int:
        """city code first, then city name, else UNRESOLVED_ZIP."""
        zip_code = self.zip_for_code(city_code)
        if zip_code is None:
            zip_code = self.zip_for_name(city_name)
        return zip_code if zip_code is not None else UNRESOLVED_ZIP
