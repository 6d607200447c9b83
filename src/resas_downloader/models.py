"""Domain models for RESAS API data.

All public models use Pydantic v2 for validation and serialization.
API records accept the camelCase keys RESAS returns (``prefCode``) as well
as their snake_case field names.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class _ApiRecord(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


# ---------------------------------------------------------------------------
# Response envelope
# ---------------------------------------------------------------------------


class ResasResponse(BaseModel, Generic[T]):
    """The envelope every successful RESAS response is wrapped in.

    Example::

        {"message": null, "result": [{"prefCode": 1, "prefName": "北海道"}]}

    Attributes:
        message: Optional message from the API (usually ``None``).
        result: Records decoded into the requested schema type.
    """

    message: str | None = None
    result: list[T]

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Prefecture / City
# ---------------------------------------------------------------------------


class Prefecture(_ApiRecord):
    """A prefecture (都道府県) as returned by ``api/v1/prefectures``."""

    pref_code: int
    pref_name: str


class City(_ApiRecord):
    """A municipality (市区町村) as returned by ``api/v1/cities``.

    Attributes:
        pref_code: Code of the prefecture the city belongs to.
        city_code: Five-digit municipality code (kept as string, leading zeros matter).
        city_name: City name in Japanese.
        big_city_flag: ``"0"`` ordinary, ``"1"`` ward of a designated city,
            ``"2"`` designated city, ``"3"`` Tokyo special ward.
    """

    pref_code: int
    city_code: str
    city_name: str
    big_city_flag: str


# ---------------------------------------------------------------------------
# CityTable
# ---------------------------------------------------------------------------

# Output column name per CityRow field
_PARQUET_COLUMNS = {
    "prefecture_code": "prefecture_code",
    "prefecture_name": "prefecture_name",
    "city_code": "city_code",
    "city_name": "city_name",
    "big_city_flag": "big_city_flag_array",
}


class CityRow(BaseModel):
    """One flattened row of the city table, all values as strings."""

    prefecture_code: str
    prefecture_name: str
    city_code: str
    city_name: str
    big_city_flag: str

    model_config = {"frozen": True}

    @classmethod
    def from_city(cls, city: City, prefecture: Prefecture) -> CityRow:
        return cls(
            prefecture_code=str(city.pref_code),
            prefecture_name=prefecture.pref_name,
            city_code=city.city_code,
            city_name=city.city_name,
            big_city_flag=city.big_city_flag,
        )


class CityTable(BaseModel):
    """All cities joined with their prefecture names."""

    rows: list[CityRow] = Field(default_factory=list)

    model_config = {"frozen": True}

    def __len__(self) -> int:
        return len(self.rows)

    def to_dicts(self) -> list[dict[str, Any]]:
        """Convert rows to dictionaries keyed by output column name."""
        return [
            {column: getattr(row, field) for field, column in _PARQUET_COLUMNS.items()}
            for row in self.rows
        ]

    def to_polars(self) -> Any:
        """Convert to a Polars DataFrame.

        Requires polars to be installed (pip install resas-downloader[polars]).

        Every column is a non-null UTF-8 string; the column order follows
        the output file layout.

        Raises:
            ImportError: If polars is not installed.
        """
        try:
            import polars as pl
        except ImportError:
            raise ImportError(
                "polars is required for to_polars(). "
                "Install it with: pip install resas-downloader[polars]"
            ) from None

        schema = {column: pl.Utf8 for column in _PARQUET_COLUMNS.values()}
        return pl.DataFrame(self.to_dicts(), schema=schema)

    def write_parquet(self, path: str | Path) -> Path:
        """Write the table to a Parquet file and return its path."""
        path = Path(path)
        self.to_polars().write_parquet(path)
        return path
