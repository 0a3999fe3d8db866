from __future__ import annotations

import os
from pathlib import Path

import pandas as pd

_DEFAULT_CSV = Path(__file__).resolve().parent.parent / "data" / "places.csv"

PLACE_COLUMNS = [
    "id",
    "name",
    "description",
    "address",
    "area",
    "latitude",
    "longitude",
    "price",
    "tags",
    "is_halal",
    "cuisine_type",
    "opening_hours",
]

_df: pd.DataFrame | None = None


def _places_path() -> Path:
    return Path(os.getenv("PLACES_CSV", str(_DEFAULT_CSV)))


def _load(path: Path) -> pd.DataFrame:
    df = pd.read_csv(
        path,
        dtype={"id": str},
        true_values=["true", "True", "1"],
        false_values=["false", "False", "0"],
    )

    # Tags are pipe-separated in the CSV
    df["tags"] = (
        df["tags"]
        .fillna("")
        .apply(lambda s: [t.strip() for t in str(s).split("|") if t.strip()])
    )
    df["is_halal"] = df["is_halal"].fillna(False).astype(bool)

    # Lowercase copies for case-insensitive lookup
    df["area_lower"] = df["area"].fillna("").str.lower()
    df["cuisine_lower"] = df["cuisine_type"].fillna("").str.lower()

    return df


def get_dataframe() -> pd.DataFrame:
    """Return the in-memory place catalog, loading it on first call."""
    global _df
    if _df is None:
        _df = _load(_places_path())
    return _df


def set_dataframe(df: pd.DataFrame | None) -> None:
    """Replace the catalog (None forces a reload from disk on next access)."""
    global _df
    _df = df


def to_records(df: pd.DataFrame) -> list[dict]:
    """Catalog rows as plain dicts, with missing values as None."""
    columns = [c for c in [*PLACE_COLUMNS, "distance"] if c in df.columns]
    subset = df[columns].astype(object)
    return subset.where(subset.notna(), None).to_dict(orient="records")
