"""
Place queries over the in-memory catalog.

Every query is read-through cached; ``invalidate_places_cache`` drops all
place entries after the catalog changes.
"""
from __future__ import annotations

import hashlib
import json
import logging
from typing import Any

import numpy as np
import pandas as pd

from .cache import DEFAULT_TTL, forget_prefix, remember
from .data_store import get_dataframe, to_records
from .models import PlaceContext, PriceTier

logger = logging.getLogger(__name__)

CACHE_PREFIX = "places"
EARTH_RADIUS_KM = 6371.0


def _md5(value: str) -> str:
    return hashlib.md5(value.encode()).hexdigest()


def _price_value(price: PriceTier | str | None) -> str | None:
    if price is None or price == "":
        return None
    return PriceTier(price).value


def build_cache_key(
    halal_only: bool,
    price: str | None,
    area: str | None,
    tags: list[str] | None,
    cuisine: str | None = None,
) -> str:
    key = f"{CACHE_PREFIX}:filtered"
    key += f":halal_{1 if halal_only else 0}"
    key += f":price_{price or 'all'}"
    key += f":area_{_md5(area.lower()) if area else 'all'}"
    key += f":tags_{_md5(json.dumps(sorted(tags))) if tags else 'none'}"
    if cuisine:
        key += f":cuisine_{_md5(cuisine.lower())}"
    return key


def build_near_cache_key(
    latitude: float,
    longitude: float,
    radius_km: float,
    halal_only: bool,
    price: str | None,
) -> str:
    # ~11m precision keeps nearby lookups on one entry
    key = f"{CACHE_PREFIX}:near"
    key += f":lat_{round(latitude, 4)}"
    key += f":lng_{round(longitude, 4)}"
    key += f":radius_{radius_km}"
    key += f":halal_{1 if halal_only else 0}"
    key += f":price_{price or 'all'}"
    return key


def _filter_mask(
    df: pd.DataFrame,
    halal_only: bool = False,
    price: str | None = None,
    area: str | None = None,
    tags: list[str] | None = None,
    cuisine: str | None = None,
) -> pd.Series:
    mask = pd.Series(True, index=df.index)
    if halal_only:
        mask &= df["is_halal"]
    if price is not None:
        mask &= df["price"] == price
    if area:
        mask &= df["area_lower"].str.contains(area.strip().lower(), regex=False, na=False)
    if tags:
        wanted = set(tags)
        mask &= df["tags"].apply(lambda ts: bool(wanted & set(ts)))
    if cuisine:
        mask &= df["cuisine_lower"].str.contains(cuisine.strip().lower(), regex=False, na=False)
    return mask


def haversine_km(
    latitude: float,
    longitude: float,
    latitudes: np.ndarray,
    longitudes: np.ndarray,
) -> np.ndarray:
    lat1, lng1 = np.radians(latitude), np.radians(longitude)
    lat2, lng2 = np.radians(latitudes), np.radians(longitudes)
    cos_angle = np.cos(lat1) * np.cos(lat2) * np.cos(lng2 - lng1) + np.sin(lat1) * np.sin(lat2)
    return EARTH_RADIUS_KM * np.arccos(np.clip(cos_angle, -1.0, 1.0))


def get_places(
    halal_only: bool = False,
    price: PriceTier | str | None = None,
    area: str | None = None,
    tags: list[str] | None = None,
    cuisine: str | None = None,
    ttl: int = DEFAULT_TTL,
) -> list[dict[str, Any]]:
    price = _price_value(price)
    key = build_cache_key(halal_only, price, area, tags, cuisine)

    def _query() -> list[dict[str, Any]]:
        logger.info("Cache miss - querying place catalog", extra={"cache_key": key})
        df = get_dataframe()
        return to_records(df.loc[_filter_mask(df, halal_only, price, area, tags, cuisine)])

    return remember(key, ttl, _query)


def get_places_near(
    latitude: float,
    longitude: float,
    radius_km: float = 10,
    halal_only: bool = False,
    price: PriceTier | str | None = None,
    ttl: int = DEFAULT_TTL,
) -> list[dict[str, Any]]:
    """Places within ``radius_km`` of a point, nearest first, with a ``distance`` field."""
    price = _price_value(price)
    key = build_near_cache_key(latitude, longitude, radius_km, halal_only, price)

    def _query() -> list[dict[str, Any]]:
        logger.info("Cache miss - querying place catalog for nearby places", extra={"cache_key": key})
        df = get_dataframe()
        df = df.loc[_filter_mask(df, halal_only, price)].copy()
        df["distance"] = haversine_km(
            latitude,
            longitude,
            df["latitude"].to_numpy(dtype=float),
            df["longitude"].to_numpy(dtype=float),
        )
        nearby = df.loc[df["distance"] <= radius_km].sort_values("distance")
        return to_records(nearby)

    return remember(key, ttl, _query)


def invalidate_places_cache() -> int:
    dropped = forget_prefix(f"{CACHE_PREFIX}:")
    logger.info("Invalidated place caches", extra={"dropped": dropped})
    return dropped


def as_context(records: list[dict[str, Any]]) -> list[PlaceContext]:
    return [PlaceContext.from_record(r) for r in records]
