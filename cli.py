"""Small CLI for running and talking to remote guardians.

Usage examples:
    python cli.py serve --guardian-id g1 --x 1 --quorum 2 --port 5001
    python cli.py info --url http://127.0.0.1:5001
    python cli.py public-keys
    python cli.py joint-key
    python cli.py ceremony --quorum 2 --url http://127.0.0.1:5001 --url http://127.0.0.1:5002

`--url` defaults to $TRUSTEE_URL, or http://127.0.0.1:5000.
"""

import argparse
import logging
import os

import requests

from threshold_eg import Guardian, run_key_ceremony
from threshold_eg.group import to_hex
from threshold_eg.remote import RemoteTrusteeProxy


BASE = os.environ.get("TRUSTEE_URL", "http://127.0.0.1:5000")


def serve(guardian_id: str, x_coordinate: int, quorum: int, host: str, port: int):
    from threshold_eg.server import create_app

    guardian = Guardian(guardian_id, x_coordinate, quorum)
    create_app(guardian).run(host=host, port=port)


def info(url: str):
    r = requests.get(f"{url}/identity", timeout=5)
    print(r.json())


def public_keys(url: str):
    r = requests.get(f"{url}/public-keys", timeout=5)
    print(r.json())


def joint_key(url: str):
    r = requests.get(f"{url}/joint-key", timeout=5)
    print(r.json())


def ceremony(urls, quorum: int):
    trustees = [RemoteTrusteeProxy(u) for u in urls]
    result = run_key_ceremony(trustees, quorum)
    if result is None:
        print("key ceremony failed")
        return 1
    print("joint_public_key:", to_hex(result.joint_key.joint_public_key))
    print("commitment_hash:", to_hex(result.joint_key.commitment_hash))
    for record in result.guardian_records:
        print(f"  {record.guardian_id} (x={record.x_coordinate})")
    return 0


def main():
    p = argparse.ArgumentParser()
    p.add_argument("-v", "--verbose", action="store_true")
    sub = p.add_subparsers(dest="cmd")
    s = sub.add_parser("serve")
    s.add_argument("--guardian-id", required=True)
    s.add_argument("--x", type=int, required=True, help="x coordinate, unique per guardian")
    s.add_argument("--quorum", type=int, required=True)
    s.add_argument("--host", default="127.0.0.1")
    s.add_argument("--port", type=int, default=5000)
    for name in ("info", "public-keys", "joint-key"):
        q = sub.add_parser(name)
        q.add_argument("--url", default=BASE)
    c = sub.add_parser("ceremony")
    c.add_argument("--url", action="append", required=True)
    c.add_argument("--quorum", type=int, required=True)
    args = p.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    if args.cmd == "serve":
        serve(args.guardian_id, args.x, args.quorum, args.host, args.port)
    elif args.cmd == "info":
        info(args.url)
    elif args.cmd == "public-keys":
        public_keys(args.url)
    elif args.cmd == "joint-key":
        joint_key(args.url)
    elif args.cmd == "ceremony":
        return ceremony(args.url, args.quorum)
    else:
        p.print_help()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
