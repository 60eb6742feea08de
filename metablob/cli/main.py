#!/usr/bin/env python
from __future__ import annotations

import argparse
import warnings

import numpy as np

from metablob.blob import Blob
from metablob.errors import BlobError
from metablob.models import ElementType


def _element_type_arg(value: str) -> ElementType:
    try:
        return ElementType.from_tag(value)
    except BlobError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def _add_encoding_arguments(sub: argparse.ArgumentParser, default_binary: bool | None) -> None:
    group = sub.add_mutually_exclusive_group()
    group.add_argument("--binary", dest="binary", action="store_true", help="Write binary records.")
    group.add_argument("--ascii", dest="binary", action="store_false", help="Write ASCII records.")
    sub.set_defaults(binary=default_binary)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="metablob", description="Blob point-set file tools")
    subparsers = parser.add_subparsers(dest="command", required=True)

    info_parser = subparsers.add_parser("info", help="Print a blob file's header summary.")
    info_parser.add_argument("path", help="Blob file path.")

    convert_parser = subparsers.add_parser("convert", help="Re-encode a blob file.")
    convert_parser.add_argument("input", help="Input blob file.")
    convert_parser.add_argument("output", help="Output blob file.")
    _add_encoding_arguments(convert_parser, default_binary=None)
    convert_parser.add_argument(
        "--element-type",
        type=_element_type_arg,
        default=None,
        help="Target element type tag (e.g. MET_DOUBLE). Defaults to the input's.",
    )

    ply_parser = subparsers.add_parser("ply", help="Export a blob file to PLY.")
    ply_parser.add_argument("input", help="Input blob file.")
    ply_parser.add_argument("output", help="Output PLY path.")

    from_ply_parser = subparsers.add_parser("from-ply", help="Import a PLY point cloud into a blob file.")
    from_ply_parser.add_argument("input", help="Input PLY path.")
    from_ply_parser.add_argument("output", help="Output blob file.")
    _add_encoding_arguments(from_ply_parser, default_binary=False)

    figure_parser = subparsers.add_parser("figure", help="Render a scatter overview of a blob file.")
    figure_parser.add_argument("input", help="Input blob file.")
    figure_parser.add_argument("output", help="Output figure path.")
    figure_parser.add_argument("--dpi", type=int, default=200, help="Figure DPI for raster outputs.")

    return parser


def convert_blob(blob: Blob, element_type: ElementType | None = None, binary: bool | None = None) -> Blob:
    """
    Copy of ``blob`` with a new element type and/or encoding.
    Warns when an integer target type drops fractional parts.
    """
    target = element_type or blob.element_type
    out = Blob(blob.dimension, blob.aux_fields)
    out.element_type = target
    out.identifier = blob.identifier
    out.binary = blob.binary if binary is None else binary
    out.parent_id = blob.parent_id
    out.name = blob.name
    out.comment = blob.comment
    out.color = blob.color

    truncated = False
    for record in blob.points:
        coords, aux = record.coordinates, record.aux
        if target.is_integer and not blob.element_type.is_integer:
            coords, aux = np.trunc(coords), np.trunc(aux)
            truncated = truncated or not (
                np.array_equal(coords, record.coordinates) and np.array_equal(aux, record.aux)
            )
        out.add_point(coords, aux)
    if truncated:
        warnings.warn(
            f"Converting to {target.tag} truncated non-integer values.",
            RuntimeWarning,
            stacklevel=2,
        )
    return out


def _run_info(args: argparse.Namespace) -> None:
    Blob.from_file(args.path).print_info()


def _run_convert(args: argparse.Namespace) -> None:
    blob = Blob.from_file(args.input)
    out = convert_blob(blob, element_type=args.element_type, binary=args.binary)
    out.write(args.output)
    print(f"[convert] wrote {args.output} ({out.point_count} points, {out.element_type.tag}, "
          f"{'binary' if out.binary else 'ascii'})")


def _run_ply(args: argparse.Namespace) -> None:
    from metablob.io.ply import export_ply

    export_ply(Blob.from_file(args.input), args.output)
    print(f"[ply] wrote {args.output}")


def _run_from_ply(args: argparse.Namespace) -> None:
    from metablob.io.ply import load_ply

    blob = load_ply(args.input)
    blob.binary = bool(args.binary)
    blob.write(args.output)
    print(f"[from-ply] wrote {args.output} ({blob.point_count} points)")


def _run_figure(args: argparse.Namespace) -> None:
    from metablob.figures.overview import make_blob_overview

    make_blob_overview(args.input, args.output, dpi=int(args.dpi))
    print(f"[figure] wrote {args.output}")


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    handlers = {
        "info": _run_info,
        "convert": _run_convert,
        "ply": _run_ply,
        "from-ply": _run_from_ply,
        "figure": _run_figure,
    }
    handler = handlers.get(args.command)
    if handler is None:
        parser.error(f"Unknown command: {args.command}")
    try:
        handler(args)
    except BlobError as e:
        parser.exit(1, f"[{args.command}] error: {e}\n")


if __name__ == "__main__":
    main()
