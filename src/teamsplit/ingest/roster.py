"""Helpers to load roster CSVs and emit canonical player records."""

from __future__ import annotations

import csv
import logging
import re
from pathlib import Path
from typing import List, Mapping, Optional, Sequence

from pydantic import BaseModel

from teamsplit.models import PlayerRecord


logger = logging.getLogger(__name__)

DEFAULT_ROSTER_MAPPING = {
    "player_id": "id",
    "name": "name",
    "age_group": "age_group",
    "position": "position",
    "strength": "strength",
    "active": "active",
}


class RosterRow(BaseModel):
    raw_id: Optional[str] = None
    raw_name: str
    raw_age_group: Optional[str] = None
    raw_position: Optional[str] = None
    raw_strength: Optional[str] = None
    raw_active: Optional[str] = None

    @classmethod
    def from_mapping(cls, row: Mapping[str, str], mapping: Mapping[str, str]) -> "RosterRow":
        def extract(spec: Optional[str | Sequence[str]], *, default: Optional[str] = None) -> Optional[str]:
            if spec is None:
                return default
            if isinstance(spec, str):
                value = row.get(spec)
                if value is None:
                    return default
                value = value.strip()
                return value if value else default
            parts = [row.get(col, "").strip() for col in spec if row.get(col)]
            return " ".join(parts) if parts else default

        def parse_spec(key: str) -> Optional[str | Sequence[str]]:
            spec = mapping.get(key, DEFAULT_ROSTER_MAPPING.get(key))
            if spec is None:
                return None
            if "|" in spec:
                return tuple(part.strip() for part in spec.split("|"))
            return spec

        return cls(
            raw_id=extract(parse_spec("player_id")),
            raw_name=extract(parse_spec("name"), default="") or "",
            raw_age_group=extract(parse_spec("age_group")),
            raw_position=extract(parse_spec("position")),
            raw_strength=extract(parse_spec("strength")),
            raw_active=extract(parse_spec("active")),
        )


def _slug(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def load_roster_csv(path: Path, *, mapping: Mapping[str, str] | None = None) -> List[RosterRow]:
    mapping = mapping or DEFAULT_ROSTER_MAPPING
    with path.open(newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        rows = [RosterRow.from_mapping(row, mapping) for row in reader]
    return rows


def rows_to_records(rows: Sequence[RosterRow]) -> List[PlayerRecord]:
    """Resolve rows into records; nameless rows are skipped, duplicate ids get a suffix."""

    records: List[PlayerRecord] = []
    seen: dict[str, int] = {}
    for idx, row in enumerate(rows, start=1):
        if not row.raw_name:
            logger.warning("Skipping roster row %s without a name", idx)
            continue
        player_id = row.raw_id or _slug(row.raw_name) or f"row-{idx}"
        if player_id in seen:
            seen[player_id] += 1
            logger.warning("Duplicate roster id %s; renaming occurrence %s", player_id, seen[player_id])
            player_id = f"{player_id}-{seen[player_id]}"
        else:
            seen[player_id] = 1
        records.append(
            PlayerRecord(
                player_id=player_id,
                name=row.raw_name,
                age_group=row.raw_age_group,
                position=row.raw_position,
                strength=row.raw_strength,
                active=row.raw_active,
            )
        )
    return records


def load_records_from_csv(path: Path, *, mapping: Mapping[str, str] | None = None) -> List[PlayerRecord]:
    return rows_to_records(load_roster_csv(path, mapping=mapping))
