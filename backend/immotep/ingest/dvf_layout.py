"""Column positions of the raw pipe-delimited DVF transaction file."""
from __future__ import annotations

DELIMITER = "|"

DATE_COL = 8               # Date mutation (dd/mm/YYYY)
SALE_TYPE_COL = 9          # Nature mutation
PRICE_COL = 10             # Valeur fonciere
STREET_NUMBER_COL = 11     # No voie
STREET_BIS_COL = 12        # B/T/Q
STREET_TYPE_COL = 13       # Type de voie
STREET_COL = 15            # Voie
ZIP_COL = 16               # Code postal
CITY_COL = 17              # Commune
DEP_COL = 18               # Code departement
CITY_CODE_COL = 19         # Code commune (local part)
SECTION_COL = 21           # Section
PARCEL_COL = 22            # No plan
PROPERTY_TYPE_COL = 36     # Type local
HOUSE_AREA_COL = 38        # Surface reelle bati
NB_ROOM_COL = 39           # Nombre pieces principales
FULL_AREA_COL = 42         # Surface terrain

MIN_COLUMNS = FULL_AREA_COL + 1

HOUSE = "Maison"
SALE = "Vente"

# key compared between two adjacent candidates
DUPLICATE_KEY_COLS = (DATE_COL, PRICE_COL, CITY_COL, SECTION_COL, PARCEL_COL)
