from __future__ import annotations

import argparse
import json
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from .codec import encode_layout
from .editor import LayoutEditor
from .generators import NumberDirection, RowDirection, SeatBlockConfig, TableConfig
from .legend import build_legend
from .logging_config import setup_logging
from .model import ItemType, LayoutError, TableShape
from .pricing import format_price
from .render import render_svg
from .storage import load_layout, maybe_init_layout, save_layout


DEFAULT_FILE = "venue_layout.json"


def _add_common_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--file",
        default=DEFAULT_FILE,
        help=f"Path to layout JSON file (default: {DEFAULT_FILE})",
    )


def _add_target_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--ids", help="Comma-separated item ids")
    p.add_argument("--type", choices=[t.value for t in ItemType], help="All items of this type")


def _targets(editor: LayoutEditor, args: argparse.Namespace) -> list[str]:
    if args.ids:
        return [i.strip() for i in args.ids.split(",") if i.strip()]
    if args.type:
        return [i.id for i in editor.layout.items if i.type.value == args.type]
    raise LayoutError("pass --ids or --type to choose items")


def _open(args: argparse.Namespace) -> LayoutEditor:
    return LayoutEditor(load_layout(args.file))


def cmd_init(args: argparse.Namespace) -> int:
    layout = maybe_init_layout(
        args.file, name=args.name, canvas_w=args.width, canvas_h=args.height, overwrite=args.overwrite
    )
    print(f"Initialized layout at {args.file} ({layout.canvas_w} x {layout.canvas_h})")
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    layout = load_layout(args.file)
    cats = layout.categories_by_id()
    print(f"{layout.name}  canvas {layout.canvas_w}x{layout.canvas_h}  items {len(layout.items)}")
    for item in layout.items:
        cat = cats.get(item.category_id) if item.category_id else None
        print(
            f"  {item.id:<24} {item.type.value:<8} {item.display_label or '-':<12} "
            f"({item.x:.0f},{item.y:.0f}) {item.w:.0f}x{item.h:.0f} rot {item.rotation:g}"
            f"{'  [' + cat.name + ']' if cat else ''}"
        )
    return 0


def cmd_add_category(args: argparse.Namespace) -> int:
    editor = _open(args)
    cat = editor.add_category(args.name, args.color, args.price, applies_to=args.applies_to)
    save_layout(editor.layout, args.file)
    print(f"Added category {cat.name!r} ({cat.id})")
    return 0


def cmd_remove_category(args: argparse.Namespace) -> int:
    editor = _open(args)
    if editor.layout.get_category(args.id) is None:
        print("Not found")
        return 1
    detached = editor.remove_category(args.id)
    save_layout(editor.layout, args.file)
    print(f"Removed category {args.id}; {detached} item(s) now have no category")
    return 0


def cmd_add_item(args: argparse.Namespace) -> int:
    editor = _open(args)
    item = editor.add_default_item(args.item_type, args.x, args.y)
    if args.label or args.price is not None:
        fields = {}
        if args.label:
            fields["label"] = args.label
        if args.price is not None:
            fields["metadata"] = {**item.metadata, "price": args.price}
        item = editor.update_item(item.id, **fields)
    save_layout(editor.layout, args.file)
    print(f"Added {item.type.value} {item.id}")
    return 0


def cmd_add_seat(args: argparse.Namespace) -> int:
    editor = _open(args)
    seat = editor.add_seat(args.x, args.y, args.category)
    save_layout(editor.layout, args.file)
    print(f"Added seat {seat.row_label}{seat.seat_number} ({seat.id})")
    return 0


def cmd_add_seats(args: argparse.Namespace) -> int:
    editor = _open(args)
    config = SeatBlockConfig(
        rows=args.rows,
        columns=args.columns,
        row_spacing=args.row_spacing,
        column_spacing=args.column_spacing,
        category_id=args.category,
        row_direction=args.row_direction,
        number_direction=args.number_direction,
        starting_row=args.starting_row,
    )
    seats = editor.add_seat_block(config, args.x, args.y)
    save_layout(editor.layout, args.file)
    rows = sorted({s.row_label for s in seats})
    print(f"Added {len(seats)} seats in rows {', '.join(rows)}")
    return 0


def cmd_add_table(args: argparse.Namespace) -> int:
    editor = _open(args)
    config = TableConfig(
        shape=args.shape,
        seat_count=args.seats,
        label=args.label,
        category_id=args.category,
        seat_category_id=args.seat_category,
        price=args.price,
    )
    items = editor.add_table(config, args.x, args.y)
    save_layout(editor.layout, args.file)
    print(f"Added {items[0].label} with {len(items) - 1} seats")
    return 0


def cmd_rotate(args: argparse.Namespace) -> int:
    editor = _open(args)
    n = editor.rotate(_targets(editor, args), args.degrees)
    save_layout(editor.layout, args.file)
    print(f"Rotated {n} item(s) by {args.degrees:g} degrees")
    return 0


def cmd_scale(args: argparse.Namespace) -> int:
    editor = _open(args)
    n = editor.scale(_targets(editor, args), args.factor)
    save_layout(editor.layout, args.file)
    print(f"Scaled {n} item(s) by {args.factor:g}")
    return 0


def cmd_curve(args: argparse.Namespace) -> int:
    editor = _open(args)
    n = editor.arrange_along_curve(_targets(editor, args), args.curvature, face_tangent=not args.keep_rotation)
    save_layout(editor.layout, args.file)
    print(f"Arranged {n} item(s) along a curve ({args.curvature:g})")
    return 0


def cmd_set_category(args: argparse.Namespace) -> int:
    editor = _open(args)
    updated = editor.bulk_update_category(_targets(editor, args), args.category)
    save_layout(editor.layout, args.file)
    print(f"Assigned category to {len(updated)} seat(s)")
    return 0


def cmd_remove(args: argparse.Namespace) -> int:
    editor = _open(args)
    n = editor.remove(_targets(editor, args))
    save_layout(editor.layout, args.file)
    print(f"Removed {n} item(s)")
    return 0


def cmd_overview(args: argparse.Namespace) -> int:
    overview = LayoutEditor(load_layout(args.file)).seat_overview()
    print(f"Seats: {overview.total_seats}  Rows: {overview.total_rows}  Next row: {overview.next_available_row}")
    for r in overview.rows:
        gaps = f"  gaps: {', '.join(map(str, r.gaps))}" if r.gaps else ""
        span = f"{r.min_seat}-{r.max_seat}" if r.min_seat is not None else "-"
        print(f"  Row {r.row:<8} {r.count:>4} seats  ({span}){gaps}")
    return 0


def cmd_prices(args: argparse.Namespace) -> int:
    overview = LayoutEditor(load_layout(args.file)).price_overview()
    for title, rows, missing in (
        ("Tables", overview.tables, overview.missing_tables),
        ("Booths", overview.booths, overview.missing_booths),
    ):
        print(f"{title} ({len(rows)}, {missing} without price)")
        for r in rows:
            print(f"  {r.label:<20} {format_price(r.price)}")
    return 0


def cmd_legend(args: argparse.Namespace) -> int:
    legend = build_legend(load_layout(args.file))
    print(json.dumps(legend.to_dict(), indent=2))
    return 0


def cmd_render(args: argparse.Namespace) -> int:
    layout = load_layout(args.file)
    out = Path(args.output)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(render_svg(layout), encoding="utf-8")
    print(f"Rendered {len(layout.items)} item(s) to {out}")
    return 0


def cmd_export_compact(args: argparse.Namespace) -> int:
    layout = load_layout(args.file)
    out = Path(args.output)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(encode_layout(layout), indent=2, sort_keys=True) + "\n", encoding="utf-8")
    print(f"Exported compact layout to {out}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="venue_layout", description="Venue seat-map layout designer (CLI).")
    p.add_argument("--log-level", default=None, help="Log level (default: $VENUE_LAYOUT_LOG_LEVEL or INFO)")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_init = sub.add_parser("init", help="Create a new layout JSON file")
    _add_common_args(p_init)
    p_init.add_argument("--name")
    p_init.add_argument("--width", type=int, help="Canvas width (default 1200)")
    p_init.add_argument("--height", type=int, help="Canvas height (default 800)")
    p_init.add_argument("--overwrite", action="store_true", help="Overwrite existing layout file")
    p_init.set_defaults(func=cmd_init)

    p_show = sub.add_parser("show", help="List layout items")
    _add_common_args(p_show)
    p_show.set_defaults(func=cmd_show)

    p_cat = sub.add_parser("add-category", help="Add a pricing category")
    _add_common_args(p_cat)
    p_cat.add_argument("--name", required=True)
    p_cat.add_argument("--color", default="#10b981")
    p_cat.add_argument("--price", required=True)
    p_cat.add_argument("--applies-to", default="seat", choices=["seat", "table", "booth"])
    p_cat.set_defaults(func=cmd_add_category)

    p_rmcat = sub.add_parser("remove-category", help="Delete a category and detach it from items")
    _add_common_args(p_rmcat)
    p_rmcat.add_argument("--id", required=True)
    p_rmcat.set_defaults(func=cmd_remove_category)

    p_item = sub.add_parser("add-item", help="Add a table, booth, stage, screen or marker")
    _add_common_args(p_item)
    p_item.add_argument("item_type", choices=[t.value for t in ItemType if t != ItemType.seat])
    p_item.add_argument("--x", type=float, required=True, help="Center x")
    p_item.add_argument("--y", type=float, required=True, help="Center y")
    p_item.add_argument("--label")
    p_item.add_argument("--price", type=float, help="Own price (tables and booths)")
    p_item.set_defaults(func=cmd_add_item)

    p_seat = sub.add_parser("add-seat", help="Add one seat, numbered after the existing ones")
    _add_common_args(p_seat)
    p_seat.add_argument("--x", type=float, required=True)
    p_seat.add_argument("--y", type=float, required=True)
    p_seat.add_argument("--category")
    p_seat.set_defaults(func=cmd_add_seat)

    p_seats = sub.add_parser("add-seats", help="Add a block of seats")
    _add_common_args(p_seats)
    p_seats.add_argument("--x", type=float, required=True, help="Block center x")
    p_seats.add_argument("--y", type=float, required=True, help="Block center y")
    p_seats.add_argument("--rows", type=int, default=5)
    p_seats.add_argument("--columns", type=int, default=10)
    p_seats.add_argument("--row-spacing", type=float, default=30)
    p_seats.add_argument("--column-spacing", type=float, default=30)
    p_seats.add_argument("--category")
    p_seats.add_argument("--row-direction", default="A-Z", choices=[d.value for d in RowDirection])
    p_seats.add_argument("--number-direction", default="1-N", choices=[d.value for d in NumberDirection])
    p_seats.add_argument("--starting-row")
    p_seats.set_defaults(func=cmd_add_seats)

    p_table = sub.add_parser("add-table", help="Add a table with seats around it")
    _add_common_args(p_table)
    p_table.add_argument("--x", type=float, required=True)
    p_table.add_argument("--y", type=float, required=True)
    p_table.add_argument("--shape", default="round", choices=[s.value for s in TableShape])
    p_table.add_argument("--seats", type=int, default=4)
    p_table.add_argument("--label")
    p_table.add_argument("--category", help="Category of the table itself")
    p_table.add_argument("--seat-category", help="Category of the seats around it")
    p_table.add_argument("--price", type=float)
    p_table.set_defaults(func=cmd_add_table)

    p_rot = sub.add_parser("rotate", help="Rotate items about their own centers")
    _add_common_args(p_rot)
    _add_target_args(p_rot)
    p_rot.add_argument("--degrees", type=float, required=True)
    p_rot.set_defaults(func=cmd_rotate)

    p_scale = sub.add_parser("scale", help="Scale items about their own centers")
    _add_common_args(p_scale)
    _add_target_args(p_scale)
    p_scale.add_argument("--factor", type=float, required=True)
    p_scale.set_defaults(func=cmd_scale)

    p_curve = sub.add_parser("curve", help="Arrange items along an arc between the first and last")
    _add_common_args(p_curve)
    _add_target_args(p_curve)
    p_curve.add_argument("--curvature", type=float, default=0.5, help="0 = straight, 1 = semicircle")
    p_curve.add_argument("--keep-rotation", action="store_true", help="Do not turn items to follow the curve")
    p_curve.set_defaults(func=cmd_curve)

    p_setcat = sub.add_parser("set-category", help="Assign a category to seats")
    _add_common_args(p_setcat)
    _add_target_args(p_setcat)
    p_setcat.add_argument("--category", required=True)
    p_setcat.set_defaults(func=cmd_set_category)

    p_rm = sub.add_parser("remove", help="Remove items")
    _add_common_args(p_rm)
    _add_target_args(p_rm)
    p_rm.set_defaults(func=cmd_remove)

    p_over = sub.add_parser("overview", help="Seat counts, row gaps and next free row")
    _add_common_args(p_over)
    p_over.set_defaults(func=cmd_overview)

    p_prices = sub.add_parser("prices", help="Table and booth prices")
    _add_common_args(p_prices)
    p_prices.set_defaults(func=cmd_prices)

    p_legend = sub.add_parser("legend", help="Print the viewer legend as JSON")
    _add_common_args(p_legend)
    p_legend.set_defaults(func=cmd_legend)

    p_render = sub.add_parser("render", help="Write the layout as SVG")
    _add_common_args(p_render)
    p_render.add_argument("--output", required=True)
    p_render.set_defaults(func=cmd_render)

    p_export = sub.add_parser("export-compact", help="Write the compact booking JSON")
    _add_common_args(p_export)
    p_export.add_argument("--output", required=True)
    p_export.set_defaults(func=cmd_export_compact)

    return p


def main(argv: list[str] | None = None) -> int:
    p = build_parser()
    args = p.parse_args(argv)
    setup_logging(args.log_level, component="cli")
    try:
        return int(args.func(args))
    except (LayoutError, ValidationError) as e:
        logger.debug("command {} failed: {}", args.cmd, e)
        print(f"Error: {e}")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
