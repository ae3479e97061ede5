"""
Reading the geocoding service CSV answer.

The service echoes the request columns (trid, Address, ZipCode, City) and
appends its own result columns. Offsets below are a contract with the
current BAN answer shape; if that shape changes, only ``ResponseLayout``
has to move.
"""
from __future__ import annotations

import csv
import io
import logging
import math
from dataclasses import dataclass
from typing import Iterator, Optional, Union

from immotep.utils.normalize import none_if_blank, parse_float, parse_int

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResponseLayout:
    id: int = 0
    latitude: int = 4
    longitude: int = 5
    address: int = 12      # result_name (street, with house number)
    zip_code: int = 14     # result_postcode
    city: int = 15         # result_city
    city_code: int = 17    # result_citycode
    status: int = 21       # result_status

    @property
    def min_columns(self) -> int:
        return max(
            self.id, self.latitude, self.longitude, self.address,
            self.zip_code, self.city, self.city_code, self.status,
        ) + 1


BAN_LAYOUT = ResponseLayout()


@dataclass(frozen=True)
class GeocodedRow:
    tr_id: int
    lat: float
    lng: float
    address: Optional[str]
    zip_code: Optional[int]
    city: Optional[str]
    city_code: Optional[str]
    status: Optional[str]


@dataclass(frozen=True)
class RejectedRow:
    reason: str
    raw: list


ParsedRow = Union[GeocodedRow, RejectedRow]


def parse_row(row: list, layout: ResponseLayout = BAN_LAYOUT) -> ParsedRow:
    """
    One data row -> GeocodedRow, or RejectedRow when the row cannot be used:
    too short, bad id, non-numeric or non-finite coordinates, or (0, 0).
    """
    if len(row) < layout.min_columns:
        return RejectedRow("short row", row)

    tr_id = parse_int(row[layout.id])
    if tr_id is None:
        return RejectedRow("bad id", row)

    lat = parse_float(row[layout.latitude])
    lng = parse_float(row[layout.longitude])
    if lat is None or lng is None or not (math.isfinite(lat) and math.isfinite(lng)):
        return RejectedRow("no coordinates", row)
    if lat == 0 and lng == 0:
        return RejectedRow("zero coordinates", row)

    return GeocodedRow(
        tr_id=tr_id,
        lat=lat,
        lng=lng,
        address=none_if_blank(row[layout.address]),
        zip_code=parse_int(row[layout.zip_code]),
        city=none_if_blank(row[layout.city]),
        city_code=none_if_blank(row[layout.city_code]),
        status=none_if_blank(row[layout.status]),
    )


def parse_response(body: str, layout: ResponseLayout = BAN_LAYOUT) -> Iterator[ParsedRow]:
    """Skip the header and parse every non-empty data row."""
    reader = csv.reader(io.StringIO(body), strict=False)
    if next(reader, None) is None:
        return
    for row in reader:
        if not row:
            continue
        yield parse_row(row, layout)
