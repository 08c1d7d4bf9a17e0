"""
GeoProof HTTP API

FastAPI façade over GeoMintService:
- Oracle-attested minting
- Location proof submission
- Claim / proof / nonce reads
- Oracle administration
- Audit trail and metrics

Run:
    uvicorn api.server:create_app_from_env --factory --port 3000

Errors come back as {"status": "error", "message", "code", "details"};
``details`` is only filled when EXPOSE_ERROR_DETAILS is on.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from geoproof import __version__
from geoproof.errors import GeoProofError
from geoproof.models import GeoCoordinate, LocationProof, Position
from geoproof.service import GeoMintService, mask_address
from geoproof_eth.settings import Settings
from geoproof_eth.typed_data import to_hex32

logger = logging.getLogger(__name__)

STATUS_BY_CODE = {
    "RADIUS_OUT_OF_RANGE": 400,
    "EXPIRED": 400,
    "INVALID_SIGNATURE": 400,
    "ALREADY_BOUND": 409,
    "NOT_FOUND": 404,
    "UNAUTHORIZED": 403,
}


# --- Request / response models ---

class MintRequest(BaseModel):
    recipient: str
    metadata_ref: Optional[str] = None
    nft_type: Optional[str] = None
    latitude: int
    longitude: int
    radius_meters: int
    signature: str
    deadline: int


class MintResponse(BaseModel):
    status: str
    asset_id: int
    recipient: str
    metadata_ref: str


class VerifyLocationRequest(BaseModel):
    latitude: int
    longitude: int
    witness_hash: str


class VerifyLocationResponse(BaseModel):
    verified: bool
    reason: str
    distance_meters: int
    proof: Optional[LocationProof] = None


class OracleRequest(BaseModel):
    caller: str
    signer: str


class OracleRequiredRequest(BaseModel):
    caller: str
    required: bool


class AuditResponse(BaseModel):
    events: List[Dict[str, Any]]
    chain_root: str
    valid: bool
    total_events: int


def _bad_input(e: Exception) -> HTTPException:
    return HTTPException(status_code=422, detail=str(e))


def create_app(service: GeoMintService, settings: Settings) -> FastAPI:
    """Build the API around an existing service instance."""
    app = FastAPI(
        title="GeoProof API",
        description="Location-bound asset minting and presence proofs",
        version=__version__,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    catalog = settings.metadata_catalog()

    @app.exception_handler(GeoProofError)
    async def geoproof_error_handler(_req: Request, exc: GeoProofError) -> JSONResponse:
        logger.warning(f"Request failed: {exc.code}")
        return JSONResponse(
            status_code=STATUS_BY_CODE.get(exc.code, 400),
            content={
                "status": "error",
                "message": "Request failed",
                "code": exc.code,
                "details": str(exc) if settings.EXPOSE_ERROR_DETAILS else None,
            },
        )

    @app.get("/api/health")
    def health_check():
        return {
            "status": "healthy",
            "version": __version__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/api/domain")
    def domain_info():
        domain = service.verifier.domain
        return {**domain.as_dict(), "separator": to_hex32(domain.separator)}

    @app.post("/api/mint", response_model=MintResponse)
    def mint(req: MintRequest):
        if req.metadata_ref:
            metadata_ref = req.metadata_ref
        elif req.nft_type:
            if req.nft_type not in catalog:
                raise HTTPException(status_code=404, detail=f"NFT type {req.nft_type} not found")
            metadata_ref = catalog[req.nft_type]
        else:
            raise HTTPException(status_code=400, detail="metadata_ref or nft_type required")

        try:
            coordinate = GeoCoordinate(
                latitude=req.latitude,
                longitude=req.longitude,
                radius_meters=req.radius_meters,
            )
            asset_id = service.mint(
                req.recipient, metadata_ref, coordinate, req.signature, req.deadline
            )
        except ValueError as e:
            raise _bad_input(e) from e

        return MintResponse(
            status="success",
            asset_id=asset_id,
            recipient=mask_address(req.recipient),
            metadata_ref=metadata_ref,
        )

    @app.post("/api/assets/{asset_id}/verify-location", response_model=VerifyLocationResponse)
    def verify_location(asset_id: int, req: VerifyLocationRequest):
        try:
            candidate = Position(latitude=req.latitude, longitude=req.longitude)
            res = service.verify_location(asset_id, candidate, req.witness_hash)
        except ValueError as e:
            raise _bad_input(e) from e
        return VerifyLocationResponse(**res.model_dump())

    @app.get("/api/assets/{asset_id}/claim", response_model=GeoCoordinate)
    def get_claim(asset_id: int):
        return service.get_claim(asset_id)

    @app.get("/api/assets/{asset_id}/proof")
    def get_proof(asset_id: int):
        proof = service.get_proof(asset_id)
        return {"asset_id": asset_id, "proof": proof.model_dump() if proof else None}

    @app.get("/api/nonces/{address}")
    def get_nonce(address: str):
        try:
            return {"address": mask_address(address), "nonce": service.nonce_of(address)}
        except ValueError as e:
            raise _bad_input(e) from e

    @app.post("/api/oracle")
    def set_oracle(req: OracleRequest):
        try:
            signer = service.set_oracle(req.caller, req.signer)
        except ValueError as e:
            raise _bad_input(e) from e
        return {"status": "success", "signer": signer, "required": service.oracle.required}

    @app.post("/api/oracle/required")
    def set_oracle_required(req: OracleRequiredRequest):
        service.set_oracle_required(req.caller, req.required)
        return {"status": "success", "required": service.oracle.required}

    @app.get("/api/audit", response_model=AuditResponse)
    def audit_trail(kind: Optional[str] = None):
        events = service.audit.events(kind)
        return AuditResponse(
            events=events,
            chain_root=service.audit.tip_hash(),
            valid=service.audit.verify(),
            total_events=len(events),
        )

    @app.get("/api/metrics")
    def metrics():
        return service.metrics.snapshot()

    return app


def create_app_from_env() -> FastAPI:
    """Factory for uvicorn: reads .env and environment."""
    from dotenv import load_dotenv

    load_dotenv()
    settings = Settings.load()
    logging.basicConfig(level=settings.LOG_LEVEL.upper())
    service = GeoMintService.from_settings(settings)
    logger.info(
        f"GeoProof API on chain {settings.CHAIN_ID}, "
        f"registry {mask_address(service.verifier.domain.verifying_contract)}"
    )
    return create_app(service, settings)


if __name__ == "__main__":
    import os

    import uvicorn

    uvicorn.run(create_app_from_env(), host="0.0.0.0", port=int(os.getenv("PORT", "3000")))
