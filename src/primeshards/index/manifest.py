"""Primary manifest describing the shard set."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from primeshards.models import ShardInfo
from primeshards.utils.files import read_json, write_json


class ManifestError(ValueError):
    """Raised when a manifest document is missing required fields."""


@dataclass(slots=True)
class PrimaryManifest:
    total_primes: int
    shard_size: int
    max_id: int | None
    generated_at: int
    shards: List[ShardInfo] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalPrimes": self.total_primes,
            "shardSize": self.shard_size,
            "maxId": self.max_id,
            "generatedAt": self.generated_at,
            "shards": [
                {
                    "sid": shard.sid,
                    "count": shard.count,
                    "idMin": shard.id_min,
                    "idMax": shard.id_max,
                    "tmin": shard.tmin,
                    "tmax": shard.tmax,
                }
                for shard in self.shards
            ],
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "PrimaryManifest":
        try:
            shards = [
                ShardInfo(
                    sid=int(entry["sid"]),
                    count=int(entry.get("count", 0)),
                    id_min=entry.get("idMin"),
                    id_max=entry.get("idMax"),
                    tmin=entry.get("tmin"),
                    tmax=entry.get("tmax"),
                )
                for entry in payload.get("shards") or []
            ]
            return cls(
                total_primes=int(payload["totalPrimes"]),
                shard_size=int(payload["shardSize"]),
                max_id=payload.get("maxId"),
                generated_at=int(payload.get("generatedAt", 0)),
                shards=shards,
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ManifestError(f"Invalid manifest: {exc}") from exc

    @property
    def shard_count(self) -> int:
        if self.shards:
            return len(self.shards)
        return -(-self.total_primes // self.shard_size)

    def shard_indices(self) -> List[int]:
        if self.shards:
            return [shard.sid for shard in self.shards]
        return list(range(self.shard_count))


def save_manifest(manifest: PrimaryManifest, path: Path) -> None:
    write_json(path, manifest.to_dict())


def load_manifest(path: Path) -> PrimaryManifest:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Manifest not found: {path}")
    payload = read_json(path)
    if not isinstance(payload, dict):
        raise ManifestError(f"Manifest {path} is not a JSON object")
    return PrimaryManifest.from_dict(payload)
