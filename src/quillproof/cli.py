"""
quillproof command-line tool.

Commands:
    quillproof verify <file>                 Verify every leaf of a saved tree
    quillproof status <file>                 Checkpoint status
    quillproof proof <file> <index>          Inclusion proof for one leaf
    quillproof history <file>                Leaf history
    quillproof content <file>                Current document content
    quillproof stamp <file> [--out PATH]     Anchor the current root with the calendar
    quillproof checkpoints <file> [--public-key PEM]
                                             Stored checkpoint records
    quillproof verify-anchors <file>         Re-verify stored anchors (leaves and checkpoints)
    quillproof pow <content> [--difficulty]  Run a proof-of-work search
    quillproof serve [--host] [--port]       Start the HTTP API
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any, Dict, List, Optional

from quillproof.anchoring.calendar import OpenTimestampsCalendar
from quillproof.core.settings import get_settings
from quillproof.ledger.pow import proof_of_work
from quillproof.ledger.signing import CheckpointSigner, CheckpointVerifier
from quillproof.protocol.errors import QuillproofError
from quillproof.storage import load_tree, save_tree
from quillproof.utils.logging import configure_logging


def _calendar() -> OpenTimestampsCalendar:
    anchoring = get_settings().anchoring
    return OpenTimestampsCalendar(anchoring.calendar_url, timeout=anchoring.timeout_seconds)


def _signer() -> Optional[CheckpointSigner]:
    key_path = get_settings().ledger.signing_key_path
    return CheckpointSigner.from_pem_file(key_path) if key_path else None


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _short(value: Optional[str], width: int = 16) -> str:
    if not value:
        return "-"
    return value[:width] + "..." if len(value) > width else value


# ===========================================================================
# Commands
# ===========================================================================


def cmd_verify(args) -> int:
    """Verify every leaf and every checkpoint root; exit 1 if any fails."""
    tree = load_tree(args.file, strict=True)
    results = tree.verify_all()
    checkpoint_roots = tree.verify_checkpoint_roots()
    ok = all(r.valid for r in results) and all(checkpoint_roots)

    if args.output == "json":
        _print_json({
            "valid": ok,
            "results": [r.to_dict() for r in results],
            "checkpointRoots": checkpoint_roots,
        })
    else:
        print(f"{'INDEX':<8} {'TYPE':<10} {'VALID':<7} {'STORED HASH':<22} {'ERROR'}")
        print("-" * 80)
        for i, r in enumerate(results):
            print(
                f"{i:<8} {r.verification_type.value:<10} {str(r.valid):<7} "
                f"{_short(r.stored_hash):<22} {r.error or ''}"
            )
        print(f"\nRoot: {tree.root_hash}")
        if checkpoint_roots:
            print(f"Checkpoints: {sum(checkpoint_roots)}/{len(checkpoint_roots)} roots match")
        print(f"Result: {'OK' if ok else 'TAMPERED'} ({len(results)} leaves)")
    return 0 if ok else 1


def cmd_status(args) -> int:
    tree = load_tree(args.file)
    status = tree.get_checkpoint_status().to_dict()
    status["rootHash"] = tree.root_hash

    if args.output == "json":
        _print_json(status)
    else:
        print("Provenance tree status")
        print("=" * 40)
        print(f"Root hash:           {status['rootHash']}")
        print(f"Total leaves:        {status['totalLeaves']}")
        print(f"Checkpoint interval: {status['checkpointInterval']}")
        print(f"Latest checkpoint:   {status['latestCheckpoint'] or '-'}")
        print(f"Next checkpoint:     {status['nextCheckpoint']}")
        print(f"Timestamped leaves:  {status['timestampedLeafCount']}")
        print(f"Checkpoints:         {status['checkpointCount']} ({status['anchoredCheckpointCount']} anchored)")
    return 0


def cmd_proof(args) -> int:
    tree = load_tree(args.file)
    proof = tree.get_proof(args.index).to_dict()

    if args.output == "json":
        _print_json(proof)
    else:
        print(f"Inclusion proof for leaf {args.index}")
        print(f"Root: {proof['rootHash']}")
        if not proof["proof"]:
            print("(empty proof)")
        for depth, step in enumerate(proof["proof"]):
            print(f"  {depth:<4} {step['position']:<6} {step['siblingHash']}")
    return 0


def cmd_history(args) -> int:
    tree = load_tree(args.file)
    history = tree.get_history()

    if args.output == "json":
        _print_json(history)
    else:
        if not history:
            print("No leaves recorded.")
            return 0
        print(f"{'INDEX':<8} {'HASH':<22} {'TIMESTAMP':<18} {'OPS'}")
        print("-" * 60)
        for i, entry in enumerate(history):
            ops = len((entry["delta"] or {}).get("ops", []))
            ts = entry["timestamp"]
            ts_str = f"{ts:.0f}" if ts is not None else "-"
            print(f"{i:<8} {_short(entry['hash']):<22} {ts_str:<18} {ops}")
        print(f"\nTotal: {len(history)} leaves")
    return 0


def cmd_content(args) -> int:
    tree = load_tree(args.file)
    content = tree.get_current_content().to_dict()

    if args.output == "json":
        _print_json(content)
    else:
        text = "".join(op["insert"] for op in content["ops"] if isinstance(op.get("insert"), str))
        print(text)
    return 0


def cmd_stamp(args) -> int:
    tree = load_tree(args.file, anchor_client=_calendar(), signer=_signer())
    anchor = asyncio.run(tree.manual_timestamp())
    if anchor is None:
        print("Error: timestamp could not be created", file=sys.stderr)
        return 1

    save_tree(tree, args.out or args.file)

    if args.output == "json":
        _print_json({"rootHash": tree.root_hash, "timestamp": anchor.to_dict()})
    else:
        print(f"Anchored root {tree.root_hash}")
        print(f"Calendar response: {len(anchor.timestamp)} chars")
    return 0


def cmd_checkpoints(args) -> int:
    """List checkpoint records; exit 1 if a root or (with --public-key) a signature does not check out."""
    tree = load_tree(args.file)

    verifier = None
    if args.public_key:
        verifier = CheckpointVerifier()
        with open(args.public_key, "rb") as f:
            pem = f.read()
        try:
            verifier.add_public_key_pem(pem)
        except (TypeError, ValueError) as e:
            print(f"Error: unusable public key: {e}", file=sys.stderr)
            return 1

    entries: List[Dict[str, Any]] = []
    for record, root_matches in zip(tree.checkpoints, tree.verify_checkpoint_roots()):
        entry = record.to_dict()
        entry["rootMatches"] = root_matches
        if verifier is not None:
            entry["signatureValid"] = verifier.verify_checkpoint(record)
        entries.append(entry)

    ok = all(e["rootMatches"] and e.get("signatureValid", True) for e in entries)

    if args.output == "json":
        _print_json(entries)
    else:
        if not entries:
            print("No checkpoint records.")
            return 0
        print(f"{'SIZE':<8} {'ROOT':<22} {'ANCHORED':<9} {'ROOT OK':<8} {'SIGNED':<8} {'CREATED'}")
        print("-" * 80)
        for e in entries:
            signed = "-" if e["signature"] is None else str(e.get("signatureValid", "yes"))
            print(
                f"{e['treeSize']:<8} {_short(e['rootHash']):<22} {str(e['anchor'] is not None):<9} "
                f"{str(e['rootMatches']):<8} {signed:<8} {e['createdAt']}"
            )
    return 0 if ok else 1


def cmd_verify_anchors(args) -> int:
    tree = load_tree(args.file, anchor_client=_calendar())
    results = asyncio.run(tree.verify_timestamps())
    ok = all(r["verified"] for r in results)

    if args.output == "json":
        _print_json(results)
    else:
        if not results:
            print("No stored anchors.")
        for r in results:
            status = "verified" if r["verified"] else "NOT VERIFIED"
            print(f"{r['source']:<12} {r['index']:<8} {_short(r['hash']):<22} {status}")
    return 0 if ok else 1


def cmd_pow(args) -> int:
    result = asyncio.run(proof_of_work(args.content, args.difficulty))

    if args.output == "json":
        _print_json(result.to_dict())
    else:
        print(f"Nonce:      {result.nonce}")
        print(f"Hash:       {result.hash}")
        print(f"Difficulty: {result.difficulty}")
        print(f"Elapsed:    {result.elapsed_time:.1f}ms")
    return 0


def cmd_serve(args) -> int:
    import uvicorn

    from quillproof.api.app import create_app

    runtime = get_settings().runtime
    uvicorn.run(
        create_app(),
        host=args.host or runtime.http_host,
        port=args.port or runtime.http_port,
    )
    return 0


# ===========================================================================
# Entry point
# ===========================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quillproof",
        description="Tamper-evident provenance for rich-text documents",
    )
    parser.add_argument(
        "--output",
        choices=["table", "json"],
        default="table",
        help="Output format",
    )
    parser.add_argument("--log-level", default=None, help="Log level (default from settings)")
    sub = parser.add_subparsers(dest="command")

    p_verify = sub.add_parser("verify", help="Verify every leaf of a saved tree")
    p_verify.add_argument("file")
    p_verify.set_defaults(func=cmd_verify)

    p_status = sub.add_parser("status", help="Show checkpoint status")
    p_status.add_argument("file")
    p_status.set_defaults(func=cmd_status)

    p_proof = sub.add_parser("proof", help="Print an inclusion proof")
    p_proof.add_argument("file")
    p_proof.add_argument("index", type=int)
    p_proof.set_defaults(func=cmd_proof)

    p_history = sub.add_parser("history", help="List leaves")
    p_history.add_argument("file")
    p_history.set_defaults(func=cmd_history)

    p_content = sub.add_parser("content", help="Print the current document")
    p_content.add_argument("file")
    p_content.set_defaults(func=cmd_content)

    p_stamp = sub.add_parser("stamp", help="Anchor the current root")
    p_stamp.add_argument("file")
    p_stamp.add_argument("--out", help="Write the stamped tree here (default: update FILE)")
    p_stamp.set_defaults(func=cmd_stamp)

    p_checkpoints = sub.add_parser("checkpoints", help="List stored checkpoint records")
    p_checkpoints.add_argument("file")
    p_checkpoints.add_argument("--public-key", help="PEM Ed25519 public key to check signatures with")
    p_checkpoints.set_defaults(func=cmd_checkpoints)

    p_anchors = sub.add_parser("verify-anchors", help="Re-verify stored anchors")
    p_anchors.add_argument("file")
    p_anchors.set_defaults(func=cmd_verify_anchors)

    p_pow = sub.add_parser("pow", help="Run a proof-of-work search")
    p_pow.add_argument("content")
    p_pow.add_argument("--difficulty", type=int, default=1)
    p_pow.set_defaults(func=cmd_pow)

    p_serve = sub.add_parser("serve", help="Start the HTTP API")
    p_serve.add_argument("--host", default=None)
    p_serve.add_argument("--port", type=int, default=None)
    p_serve.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    configure_logging(args.log_level or get_settings().runtime.log_level)

    try:
        return args.func(args)
    except (QuillproofError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
