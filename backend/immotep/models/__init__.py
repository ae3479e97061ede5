from .geo_unit import City, Department, Region
from .transaction import UNRESOLVED_ZIP, Transaction
from .yearly_agg import CityYearlyAgg, DepartmentYearlyAgg, RegionYearlyAgg

__all__ = [
    "City",
    "CityYearlyAgg",
    "Department",
    "DepartmentYearlyAgg",
    "Region",
    "RegionYearlyAgg",
    "Transaction",
    "UNRESOLVED_ZIP",
]
