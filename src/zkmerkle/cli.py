"""
Command-line entry point.

    zkmerkle save-proofs addresses.csv airdrop        # writes out/airdrop.json
    zkmerkle batch lists/ --out-dir proofs            # one file per lists/*.csv
    zkmerkle root addresses.csv --depth 10
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from zkmerkle.config import configure_logging, get_settings
from zkmerkle.core.ingest import IngestResult, read_addresses
from zkmerkle.core.proofs import build_tree
from zkmerkle.exceptions import ZKMerkleException
from zkmerkle.models.schemas import AddressProofRecord

logger = logging.getLogger(__name__)


def _report_errors(source: Path, result: IngestResult) -> None:
    for error in result.errors:
        print(f"{source}:{error.line}: skipped {error.value!r}: {error.reason}", file=sys.stderr)


def save_proofs(input_path: Path, out_name: str, depth: int, out_dir: Path) -> Path:
    """
    Build a tree from one address list and write its proofs as JSON.

    Returns:
        Path: The written file, `<out_dir>/<out_name>.json`
    """
    settings = get_settings()
    result = read_addresses(input_path)
    _report_errors(input_path, result)

    tree = build_tree(
        result.leaves,
        depth,
        zero_subtree_shortcut=settings.zero_subtree_shortcut,
        max_workers=settings.max_workers,
    )
    records = [
        AddressProofRecord.from_proof(tree.create_proof_at(i)).model_dump(by_alias=True)
        for i in range(len(result.leaves))
    ]

    # Create the out directory if it doesn't exist
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / f"{out_name}.json"
    out_path.write_text(json.dumps(records), encoding="utf-8")

    logger.info("Wrote %d proofs for root %s to %s", len(records), tree.root, out_path)
    return out_path


def _cmd_save_proofs(args: argparse.Namespace) -> int:
    out_path = save_proofs(Path(args.input), args.out_name, args.depth, Path(args.out_dir))
    print(out_path)
    return 0


def _cmd_batch(args: argparse.Namespace) -> int:
    input_dir = Path(args.input_dir)
    inputs = sorted(input_dir.glob("*.csv"))
    if not inputs:
        print(f"No .csv files in {input_dir}", file=sys.stderr)
        return 1

    failures = 0
    for input_path in inputs:
        try:
            out_path = save_proofs(input_path, input_path.stem, args.depth, Path(args.out_dir))
        except ZKMerkleException as e:
            failures += 1
            logger.error("Failed to build proofs for %s: %s", input_path, e)
            continue
        print(out_path)

    return 1 if failures else 0


def _cmd_root(args: argparse.Namespace) -> int:
    input_path = Path(args.input)
    result = read_addresses(input_path)
    _report_errors(input_path, result)

    settings = get_settings()
    tree = build_tree(
        result.leaves,
        args.depth,
        zero_subtree_shortcut=settings.zero_subtree_shortcut,
        max_workers=settings.max_workers,
    )
    print(tree.root)
    return 0


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="zkmerkle",
        description="Build Poseidon Merkle trees over address lists and export inclusion proofs.",
    )
    parser.add_argument("--log-level", default=None, help="Logging level (default from settings)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    save = subparsers.add_parser("save-proofs", help="Write proofs for one CSV address list")
    save.add_argument("input", help="CSV file with a header row and addresses in the first column")
    save.add_argument("out_name", help="Output file name, without extension")
    save.set_defaults(func=_cmd_save_proofs)

    batch = subparsers.add_parser("batch", help="Write proofs for every CSV in a directory")
    batch.add_argument("input_dir", help="Directory of CSV address lists")
    batch.set_defaults(func=_cmd_batch)

    root = subparsers.add_parser("root", help="Print the root for one CSV address list")
    root.add_argument("input", help="CSV file with a header row and addresses in the first column")
    root.set_defaults(func=_cmd_root)

    for sub in (save, batch, root):
        sub.add_argument("--depth", type=int, default=settings.tree_depth, help="Tree depth")
    for sub in (save, batch):
        sub.add_argument("--out-dir", default=settings.output_dir, help="Output directory")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        return args.func(args)
    except (ZKMerkleException, ValueError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
