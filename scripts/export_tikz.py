"""Print the TikZ code for a saved board.

Usage:
  python scripts/export_tikz.py board.json [--labels rearrange|identity|N] [--scale 1.5]

Reads a board file (the same JSON the editor saves), validates it and writes
a tikzpicture block to stdout, or to --out when given.
"""
import argparse
import logging
import sys
from pathlib import Path

from automata_board.data_manager import GraphLoadError, load_graph
from automata_board.tikz import IDENTITY, REARRANGE, get_tikz_from_automata

logger = logging.getLogger("export_tikz")


def parse_labeling(value: str):
    if value in (IDENTITY, REARRANGE):
        return value
    try:
        length = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected 'identity', 'rearrange' or a number, got {value!r}")
    if length <= 0:
        raise argparse.ArgumentTypeError("id length must be positive")
    return length


def main(argv=None):
    parser = argparse.ArgumentParser(description="Export a board file to TikZ.")
    parser.add_argument("board", type=Path, help="board JSON file")
    parser.add_argument("--labels", type=parse_labeling, default=REARRANGE,
                        help="node names: rearrange (q0, q1, ...), identity, or N id characters")
    parser.add_argument("--scale", type=float, default=1.0, help="coordinate scale factor")
    parser.add_argument("--out", type=Path, help="write to this file instead of stdout")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    try:
        states, transitions = load_graph(args.board)
    except GraphLoadError as e:
        logger.error(f"Cannot export {args.board}: {e}")
        return 1

    tikz = get_tikz_from_automata(states, transitions, args.labels, args.scale)
    if args.out:
        with open(args.out, 'w', encoding='utf-8') as f:
            f.write(tikz + "\n")
        logger.info(f"Wrote {len(states)} states to {args.out}")
    else:
        print(tikz)
    return 0


if __name__ == '__main__':
    sys.exit(main())
