# -*- coding: utf-8 -*-
"""
ipfs-car command line.

Usage:
    ipfs-car pack photo.jpg [-o photo.jpg.car] [--content-codec 0x55] [--car-codec 0x0202]
    ipfs-car cid photo.jpg [--codec 0x55]
    ipfs-car inspect photo.jpg.car
    ipfs-car decode-cid bafkrei...
"""
import argparse
import json
import sys

import config
from car_library import HEADER_ENCODERS, verify_car, write_car
from cid_utils import cid_of_byte_source, parse_cid
from errors import CarError
from logger_setup import set_log_level, set_log_stream


def _codec(value: str) -> int:
    """argparse type for multicodec integers (hex or decimal)."""
    try:
        codec = int(value, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}") from None
    if codec < 0:
        raise argparse.ArgumentTypeError(f"codec must be non-negative: {value!r}")
    return codec


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ipfs-car",
        description="Pack a file into a single-block CARv1 archive and compute its CIDs",
    )
    parser.add_argument('--json', action='store_true',
                        help='Print results as a JSON object')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable debug logging')
    sub = parser.add_subparsers(dest="command", required=True)

    # --- pack ---
    pack_p = sub.add_parser("pack", help="Write a CAR file for INPUT")
    pack_p.add_argument("input", help="File to pack")
    pack_p.add_argument("-o", "--output",
                        help="CAR file to write (default: INPUT.car)")
    pack_p.add_argument("--content-codec", type=_codec, default=config.CAR_CONTENT_CODEC,
                        help=f"Multicodec of the content block (default: {config.CAR_CONTENT_CODEC:#x})")
    pack_p.add_argument("--car-codec", type=_codec, default=config.CAR_CID_CODEC,
                        help=f"Multicodec for the CAR file CID (default: {config.CAR_CID_CODEC:#x})")
    pack_p.add_argument("--header-encoding", choices=sorted(HEADER_ENCODERS),
                        default=config.CAR_HEADER_ENCODING,
                        help=f"CAR header byte form (default: {config.CAR_HEADER_ENCODING})")

    # --- cid ---
    cid_p = sub.add_parser("cid", help="Print the CID of a file's content")
    cid_p.add_argument("input", help="File to hash")
    cid_p.add_argument("--codec", type=_codec, default=config.CAR_CONTENT_CODEC,
                       help=f"Multicodec of the CID (default: {config.CAR_CONTENT_CODEC:#x})")

    # --- inspect ---
    inspect_p = sub.add_parser("inspect", help="Show and verify the layout of a CAR file")
    inspect_p.add_argument("car", help="CAR file to inspect")

    # --- decode-cid ---
    decode_p = sub.add_parser("decode-cid", help="Show the fields of a CID string")
    decode_p.add_argument("cid", help="Base32 CIDv1 string")

    return parser


def _pack(args) -> dict:
    output = args.output or f"{args.input}.car"
    result = write_car(
        args.input,
        output,
        content_codec=args.content_codec,
        car_cid_codec=args.car_codec,
        header_encoding=args.header_encoding,
    )
    return {
        "content_cid": result.content_cid,
        "car_cid": result.car_cid,
        "output_path": result.output_path,
        "content_length": result.content_length,
        "car_length": result.car_length,
    }


def _cid(args) -> dict:
    return {"cid": cid_of_byte_source(args.input, args.codec)}


def _inspect(args) -> dict:
    layout = verify_car(args.car)
    return {
        "content_cid": layout.content_cid,
        "header_length": layout.header_length,
        "block_offset": layout.block_offset,
        "block_length": layout.block_length,
        "payload_offset": layout.payload_offset,
        "payload_length": layout.payload_length,
        "verified": True,
    }


def _decode_cid(args) -> dict:
    info = parse_cid(args.cid)
    return {
        "version": info.version,
        "codec": info.codec,
        "hash_code": info.hash_code,
        "digest": info.digest.hex(),
    }


COMMANDS = {
    "pack": _pack,
    "cid": _cid,
    "inspect": _inspect,
    "decode-cid": _decode_cid,
}


def main(argv=None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        set_log_level("DEBUG")
    # stdout carries only command results
    previous_stream = set_log_stream(sys.stderr)
    try:
        output = COMMANDS[args.command](args)
    except CarError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        if previous_stream is not None:
            set_log_stream(previous_stream)

    if args.json:
        print(json.dumps(output, indent=2))
    else:
        for key, value in output.items():
            if key in ("codec", "hash_code"):
                value = f"{value:#x}"
            print(f"{key}: {value}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
