from __future__ import annotations

import argparse
import json
import os
import time
from typing import Optional, Tuple

from geoproof.coordinates import from_micro_degrees, to_micro_degrees, validate_radius
from geoproof.errors import GeoProofError
from geoproof.models import GeoCoordinate, MintClaim, Position
from geoproof.proximity import EquirectangularStrategy, HaversineStrategy, ProximityEngine
from geoproof_eth.settings import DEFAULT_RPC_URL, Settings
from geoproof_eth.signer import oracle_address, sign_claim
from geoproof_eth.typed_data import TypedDataDomain, claim_digest, to_hex32, typed_data_message


def parse_point(s: str) -> Tuple[int, int]:
    """'40.7128,-74.006' -> (40712800, -74006000)"""
    try:
        lat, lon = s.split(",")
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected LAT,LON but got {s!r}")
    try:
        return to_micro_degrees(lat.strip()), to_micro_degrees(lon.strip())
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def load_domain(args) -> TypedDataDomain:
    if args.chain_id and args.registry:
        return TypedDataDomain(chain_id=args.chain_id, verifying_contract=args.registry)
    s = Settings.load()
    return TypedDataDomain(
        chain_id=s.CHAIN_ID,
        verifying_contract=s.REGISTRY_ADDRESS,
        name=s.DOMAIN_NAME,
        version=s.DOMAIN_VERSION,
    )

def resolve_key(key: Optional[str]) -> str:
    key = key or os.getenv("ORACLE_PRIVATE_KEY") or os.getenv("PRIVATE_KEY")
    if not key:
        raise SystemExit("❌ No oracle key. Pass --key or set ORACLE_PRIVATE_KEY.")
    return key


def cmd_domain(args):
    domain = load_domain(args)
    print(json.dumps({**domain.as_dict(), "separator": to_hex32(domain.separator)}, indent=2))


def cmd_sign_claim(args):
    domain = load_domain(args)
    key = resolve_key(args.key)
    lat, lon = args.center
    try:
        validate_radius(args.radius)
    except GeoProofError as e:
        raise SystemExit(f"❌ {e}")
    claim = MintClaim(
        minter=args.minter,
        asset_id=args.asset_id,
        coordinate=GeoCoordinate(latitude=lat, longitude=lon, radius_meters=args.radius),
        nonce=args.nonce,
        deadline=args.deadline if args.deadline is not None else int(time.time()) + args.ttl,
    )
    sig = sign_claim(claim, key, domain)
    out = {
        "oracle": oracle_address(key),
        "claim": claim.model_dump(),
        "digest": to_hex32(claim_digest(domain, claim)),
        "signature": "0x" + sig.hex(),
    }
    if args.typed_data:
        out["typed_data"] = typed_data_message(domain, claim)
    print(json.dumps(out, indent=2))


def cmd_distance(args):
    strategy = EquirectangularStrategy() if args.flat else HaversineStrategy()
    engine = ProximityEngine(strategy)
    a = Position(latitude=args.src[0], longitude=args.src[1])
    b = Position(latitude=args.dst[0], longitude=args.dst[1])
    d = engine.distance_meters(a, b)
    print(f"from: {from_micro_degrees(a.latitude)},{from_micro_degrees(a.longitude)}")
    print(f"to:   {from_micro_degrees(b.latitude)},{from_micro_degrees(b.longitude)}")
    print(f"distance_m: {d}")
    if args.radius is not None:
        fence = GeoCoordinate(latitude=a.latitude, longitude=a.longitude, radius_meters=args.radius)
        inside = engine.within_fence(fence, b)
        print(f"within {args.radius}m: {'✅ yes' if inside else '❌ no'}")


def cmd_oracle_address(args):
    print(oracle_address(resolve_key(args.key)))


def cmd_chain_check(args):
    from geoproof_eth.chain import ChainClient

    domain = load_domain(args)
    rpc_url = args.rpc_url or os.getenv("RPC_URL") or DEFAULT_RPC_URL
    client = ChainClient.from_url(rpc_url, domain.verifying_contract)
    if not client.ping():
        raise SystemExit(f"❌ RPC unreachable: {rpc_url}")
    try:
        client.verify_deployment(domain, os.getenv("REGISTRY_CODEHASH", ""))
    except RuntimeError as e:
        raise SystemExit(f"❌ {e}")
    print(f"✅ registry {domain.verifying_contract} matches domain {to_hex32(domain.separator)}")
    print(f"total_supply: {client.total_supply()}")


def main(argv=None):
    from dotenv import load_dotenv

    load_dotenv()
    ap = argparse.ArgumentParser(prog="geoproof", description="GeoProof oracle tools")
    sub = ap.add_subparsers(dest="cmd", required=True)

    def domain_flags(p):
        p.add_argument("--chain-id", type=int, help="EIP-712 chainId (else CHAIN_ID env)")
        p.add_argument("--registry", help="verifyingContract (else REGISTRY_ADDRESS env)")

    p = sub.add_parser("domain", help="Print the EIP-712 domain and separator")
    domain_flags(p)
    p.set_defaults(func=cmd_domain)

    p = sub.add_parser("sign-claim", help="Sign a GeoMint claim as the oracle")
    domain_flags(p)
    p.add_argument("--key", help="Oracle private key (else ORACLE_PRIVATE_KEY env)")
    p.add_argument("--minter", required=True)
    p.add_argument("--asset-id", type=int, required=True)
    p.add_argument("--center", type=parse_point, required=True, help="LAT,LON in degrees")
    p.add_argument("--radius", type=int, required=True, help="meters")
    p.add_argument("--nonce", type=int, default=0)
    p.add_argument("--deadline", type=int, help="unix seconds (default: now + ttl)")
    p.add_argument("--ttl", type=int, default=3600)
    p.add_argument("--typed-data", action="store_true", help="include eth_signTypedData_v4 JSON")
    p.set_defaults(func=cmd_sign_claim)

    p = sub.add_parser("distance", help="Distance and geofence decision")
    p.add_argument("--from", dest="src", type=parse_point, required=True)
    p.add_argument("--to", dest="dst", type=parse_point, required=True)
    p.add_argument("--radius", type=int)
    p.add_argument("--flat", action="store_true", help="equirectangular approximation")
    p.set_defaults(func=cmd_distance)

    p = sub.add_parser("oracle-address", help="Address for an oracle key")
    p.add_argument("--key")
    p.set_defaults(func=cmd_oracle_address)

    p = sub.add_parser("chain-check", help="Verify the deployed registry against the local domain")
    domain_flags(p)
    p.add_argument("--rpc-url", help="JSON-RPC endpoint (else RPC_URL env)")
    p.set_defaults(func=cmd_chain_check)

    args = ap.parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()
