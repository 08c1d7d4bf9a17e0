from __future__ import annotations

import re
import time
import uuid
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from geoproof import __schema__
from geoproof.coordinates import validate_position

UINT256_MAX = 2**256 - 1

_HEX32 = re.compile(r"^0x[0-9a-fA-F]{64}$")


def now_utc() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


def new_id(prefix: str) -> str:
    """
    Time-ordered event ID: {prefix}_{timestamp_ms:013x}_{random:016x}
    """
    timestamp_ms = int(time.time() * 1000)
    random_bits = uuid.uuid4().hex[:16]
    return f"{prefix}_{timestamp_ms:013x}_{random_bits}"


def normalize_hex32(value: str) -> str:
    """Validate and lowercase a 0x-prefixed 32-byte hex string."""
    if not isinstance(value, str) or not _HEX32.match(value):
        raise ValueError("expected 0x-prefixed 32-byte hex value")
    return value.lower()


class Position(BaseModel):
    """Candidate point in micro-degrees."""

    latitude: int
    longitude: int

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_bounds(self):
        validate_position(self.latitude, self.longitude)
        return self


class GeoCoordinate(Position):
    """
    Geofence center plus radius.

    Radius bounds are enforced by ``coordinates.validate_radius`` so that
    callers get ``RadiusOutOfRange`` rather than a validation error.
    """

    radius_meters: int = Field(ge=0)

    def center(self) -> Position:
        return Position(latitude=self.latitude, longitude=self.longitude)


class LocationProof(BaseModel):
    witness_hash: str
    timestamp: int

    model_config = {"frozen": True}

    @field_validator("witness_hash")
    @classmethod
    def _hex32(cls, v: str) -> str:
        return normalize_hex32(v)


class MintClaim(BaseModel):
    """
    Payload the oracle signs. Field order mirrors the typed-data struct.
    """

    minter: str
    asset_id: int = Field(ge=0, le=UINT256_MAX)
    coordinate: GeoCoordinate
    nonce: int = Field(ge=0, le=UINT256_MAX)
    deadline: int = Field(ge=0, le=UINT256_MAX)

    model_config = {"frozen": True}


class PresenceResult(BaseModel):
    """Outcome of a verify-location request."""

    verified: bool
    reason: str = ""
    distance_meters: int
    proof: Optional[LocationProof] = None


# --- Audit events ---

class GeoMinted(BaseModel):
    kind: Literal["GeoMinted"] = "GeoMinted"
    schema_version: str = Field(default=__schema__, alias="schema")
    event_id: str = Field(default_factory=lambda: new_id("gm"))
    created_utc: str = Field(default_factory=now_utc)
    asset_id: int
    minter: str
    coordinate: GeoCoordinate

    model_config = {"populate_by_name": True}


class OracleUpdated(BaseModel):
    kind: Literal["OracleUpdated"] = "OracleUpdated"
    schema_version: str = Field(default=__schema__, alias="schema")
    event_id: str = Field(default_factory=lambda: new_id("ou"))
    created_utc: str = Field(default_factory=now_utc)
    signer: str

    model_config = {"populate_by_name": True}


class OracleRequirementChanged(BaseModel):
    kind: Literal["OracleRequirementChanged"] = "OracleRequirementChanged"
    schema_version: str = Field(default=__schema__, alias="schema")
    event_id: str = Field(default_factory=lambda: new_id("or"))
    created_utc: str = Field(default_factory=now_utc)
    required: bool

    model_config = {"populate_by_name": True}


class LocationVerified(BaseModel):
    kind: Literal["LocationVerified"] = "LocationVerified"
    schema_version: str = Field(default=__schema__, alias="schema")
    event_id: str = Field(default_factory=lambda: new_id("lv"))
    created_utc: str = Field(default_factory=now_utc)
    asset_id: int
    witness_hash: str

    model_config = {"populate_by_name": True}


class AssetErased(BaseModel):
    kind: Literal["AssetErased"] = "AssetErased"
    schema_version: str = Field(default=__schema__, alias="schema")
    event_id: str = Field(default_factory=lambda: new_id("ae"))
    created_utc: str = Field(default_factory=now_utc)
    asset_id: int

    model_config = {"populate_by_name": True}
