"""Client for the BAN batch geocoding endpoint (multipart CSV upload)."""
from __future__ import annotations

import csv
import io
import logging
from typing import Iterable, Optional, Sequence

import requests
from requests.adapters import HTTPAdapter

from immotep.core.errors import GeocodeError
from immotep.core.settings import BAN_CSV_URL

LOGGER = logging.getLogger(__name__)

REQUEST_HEADER = ("trid", "Address", "ZipCode", "City")
DEFAULT_COLUMNS = ("Address", "City", "ZipCode")


def make_http_session() -> requests.Session:
    """Connection reuse only; failed batches are left for the next run."""
    s = requests.Session()
    s.mount("https://", HTTPAdapter(max_retries=0))
    s.mount("http://", HTTPAdapter(max_retries=0))
    return s


def build_payload(rows: Iterable[Sequence]) -> str:
    """(tr_id, address, zip_code, city) tuples -> request CSV text."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(REQUEST_HEADER)
    for tr_id, address, zip_code, city in rows:
        zip_text = str(zip_code) if zip_code and zip_code > 0 else ""
        writer.writerow((tr_id, address or "", zip_text, city or ""))
    return buf.getvalue()


class BanClient:
    def __init__(
        self,
        url: str = BAN_CSV_URL,
        *,
        columns: Sequence[str] = DEFAULT_COLUMNS,
        timeout: float = 120.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.url = url
        self.columns = list(columns)
        self.timeout = timeout
        self.session = session or make_http_session()
        self.calls = 0

    def geocode_csv(self, payload: str) -> str:
        """
        POST the CSV payload and return the CSV answer.
        Raises GeocodeError on network failure or non-2xx status.
        """
        self.calls += 1
        files = {"data": ("address.csv", payload.encode("utf-8"), "text/csv")}
        try:
            resp = self.session.post(
                self.url,
                data={"columns": self.columns},
                files=files,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise GeocodeError(f"POST {self.url} failed: {e}") from e

        if not 200 <= resp.status_code < 300:
            raise GeocodeError(f"POST {self.url} -> HTTP {resp.status_code}", status_code=resp.status_code)

        resp.encoding = resp.encoding or "utf-8"
        return resp.text

    def close(self) -> None:
        self.session.close()
