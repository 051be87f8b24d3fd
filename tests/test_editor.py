import unittest

from venue_layout.curves import preset
from venue_layout.editor import LayoutEditor
from venue_layout.generators import SeatBlockConfig, TableConfig
from venue_layout.model import LayoutValidationError, VenueLayout


def _editor_with_items():
    ed = LayoutEditor(VenueLayout(name="Hall"))
    ed.add_items(
        [
            {"id": "s1", "type": "seat", "x": 100, "y": 100, "w": 24, "h": 24, "row_label": "A", "seat_number": 1},
            {"id": "s2", "type": "seat", "x": 140, "y": 100, "w": 24, "h": 24, "row_label": "A", "seat_number": 2},
            {"id": "t1", "type": "table", "x": 300, "y": 300, "w": 60, "h": 60},
            {"id": "st", "type": "stage", "x": 500, "y": 20, "w": 120, "h": 60},
        ]
    )
    return ed


class TestItems(unittest.TestCase):
    def test_add_assigns_fresh_ids(self):
        ed = LayoutEditor()
        a = ed.add_item({"type": "booth", "x": 10, "y": 10})
        b = ed.add_item({"type": "booth", "x": 10, "y": 10})
        self.assertNotEqual(a.id, b.id)
        self.assertTrue(a.id.startswith("booth_"))
        self.assertEqual((a.w, a.h), (80, 40))

    def test_add_rejects_bad_items(self):
        ed = _editor_with_items()
        with self.assertRaises(LayoutValidationError):
            ed.add_item({"id": "s1", "type": "seat", "x": 0, "y": 0})
        with self.assertRaises(LayoutValidationError):
            ed.add_item({"type": "seat", "x": 0, "y": 0, "w": 0, "h": 24})
        with self.assertRaises(LayoutValidationError):
            ed.add_item({"type": "balcony", "x": 0, "y": 0})
        self.assertEqual(len(ed.layout.items), 4)

    def test_default_item_is_centered_and_labelled(self):
        ed = LayoutEditor()
        st = ed.add_default_item("stage", 600, 100)
        self.assertEqual((st.x, st.y, st.label), (540, 70, "Stage"))

    def test_update_and_remove_unknown_are_noops(self):
        ed = _editor_with_items()
        self.assertIsNone(ed.update_item("nope", label="x"))
        self.assertEqual(ed.remove_items(["nope"]), 0)
        self.assertFalse(ed.remove_item("nope"))
        ed.undo()
        self.assertEqual(len(ed.layout.items), 0)

    def test_update_item_validates(self):
        ed = _editor_with_items()
        self.assertEqual(ed.update_item("t1", label="VIP 1").label, "VIP 1")
        with self.assertRaises(LayoutValidationError):
            ed.update_item("t1", w=-5)

    def test_move_clamps_to_canvas(self):
        ed = _editor_with_items()
        ed.move_items(["st"], 5000, -500)
        st = ed.layout.get_item("st")
        self.assertEqual((st.x, st.y), (1200 - 120, 0))


class TestCategories(unittest.TestCase):
    def test_add_validates(self):
        ed = LayoutEditor()
        for bad in (
            {"name": "  ", "color": "#fff", "price": 1},
            {"name": "A", "color": "", "price": 1},
            {"name": "A", "color": "#fff", "price": -1},
            {"name": "A", "color": "#fff", "price": "abc"},
            {"name": "A", "color": "#fff", "price": float("nan")},
        ):
            with self.assertRaises(LayoutValidationError):
                ed.add_category(**bad)
        self.assertEqual(ed.layout.categories, [])

    def test_add_defaults_to_seat_category(self):
        ed = LayoutEditor()
        cat = ed.add_category("VIP", "#f00", "50")
        self.assertEqual(cat.price, 50)
        self.assertEqual(cat.applies_to.value, "seat")

    def test_update_partial(self):
        ed = LayoutEditor()
        cat = ed.add_category("VIP", "#f00", 50)
        self.assertEqual(ed.update_category(cat.id, price=75).price, 75)
        self.assertEqual(ed.layout.categories[0].name, "VIP")
        with self.assertRaises(LayoutValidationError):
            ed.update_category(cat.id, name="")
        self.assertIsNone(ed.update_category("missing", price=1))

    def test_update_rejects_non_string_color(self):
        ed = LayoutEditor()
        cat = ed.add_category("VIP", "#f00", 50)
        with self.assertRaises(LayoutValidationError):
            ed.update_category(cat.id, color=123)
        self.assertEqual(ed.layout.categories[0].color, "#f00")

    def test_remove_detaches_items(self):
        ed = _editor_with_items()
        cat = ed.add_category("VIP", "#f00", 50)
        ed.bulk_update_category(["s1", "s2"], cat.id)
        ed.update_item("t1", category_id=cat.id)
        self.assertEqual(ed.remove_category(cat.id), 3)
        self.assertEqual(len(ed.layout.items), 4)
        self.assertTrue(all(i.category_id is None for i in ed.layout.items))

    def test_duplicate(self):
        ed = LayoutEditor()
        cat = ed.add_category("VIP", "#f00", 50)
        copy = ed.duplicate_category(cat.id)
        self.assertEqual(copy.name, "VIP Copy")
        self.assertNotEqual(copy.id, cat.id)


class TestEffectivePrice(unittest.TestCase):
    def test_seat_price_follows_category_edits(self):
        ed = LayoutEditor()
        cat = ed.add_category("VIP", "#f00", 100)
        seat = ed.add_seat(100, 100, cat.id)
        self.assertEqual(ed.effective_price(seat.id), 100)
        ed.update_category(cat.id, price=150)
        self.assertEqual(ed.effective_price(seat.id), 150)

    def test_table_own_price_overrides_category(self):
        ed = LayoutEditor()
        cat = ed.add_category("Gold", "#fc0", 75, applies_to="table")
        table = ed.add_item({"type": "table", "x": 200, "y": 200, "category_id": cat.id})
        self.assertEqual(ed.effective_price(table.id), 75)
        ed.update_item(table.id, metadata={"price": 40})
        self.assertEqual(ed.effective_price(table.id), 40)

    def test_removed_category_falls_back(self):
        ed = LayoutEditor()
        seats = ed.add_category("Floor", "#0a0", 30)
        items = ed.add_category("Gold", "#fc0", 75, applies_to="table")
        seat = ed.add_seat(100, 100, seats.id)
        table = ed.add_item({"type": "table", "x": 200, "y": 200, "category_id": items.id})
        booth = ed.add_item({"type": "booth", "x": 400, "y": 200, "category_id": items.id})
        ed.remove_category(seats.id)
        ed.remove_category(items.id)
        self.assertEqual(ed.effective_price(seat.id), 0)
        self.assertIsNone(ed.effective_price(table.id))
        self.assertIsNone(ed.effective_price(booth.id))


class TestBulkTransforms(unittest.TestCase):
    def test_rotate_wraps(self):
        ed = _editor_with_items()
        ed.rotate(["s1"], 350)
        ed.rotate(["s1"], 20)
        self.assertEqual(ed.layout.get_item("s1").rotation, 10)
        ed.rotate(["s1"], -30)
        self.assertEqual(ed.layout.get_item("s1").rotation, 340)

    def test_rotate_composes(self):
        a, b = _editor_with_items(), _editor_with_items()
        a.rotate(["t1", "st"], 130)
        a.rotate(["t1", "st"], 290)
        b.rotate(["t1", "st"], 420)
        self.assertEqual(a.snapshot()["items"], b.snapshot()["items"])

    def test_rotate_rejects_non_finite_angle_without_changes(self):
        ed = _editor_with_items()
        before = ed.snapshot()
        for bad in (float("nan"), float("inf"), "90"):
            with self.assertRaises(LayoutValidationError):
                ed.rotate(["s1", "t1"], bad)
        self.assertEqual(ed.snapshot(), before)
        ed.undo()
        self.assertEqual(len(ed.layout.items), 0)

    def test_scale_keeps_centers(self):
        ed = _editor_with_items()
        before = {i.id: i.center for i in ed.layout.items}
        ed.scale(["s1", "t1", "st"], 1.2)
        for i in ed.layout.items:
            self.assertAlmostEqual(i.center[0], before[i.id][0])
            self.assertAlmostEqual(i.center[1], before[i.id][1])
        self.assertAlmostEqual(ed.layout.get_item("t1").w, 72)

    def test_scale_rejects_bad_factor_without_changes(self):
        ed = _editor_with_items()
        before = ed.snapshot()
        with self.assertRaises(LayoutValidationError):
            ed.scale(["s1", "t1"], 0)
        self.assertEqual(ed.snapshot(), before)
        self.assertEqual(ed.scale(["gone"], 0), 0)

    def test_bulk_category_seats_only(self):
        ed = _editor_with_items()
        cat = ed.add_category("Gold", "#fc0", 30)
        updated = ed.bulk_update_category(["s1", "t1", "st"], cat.id)
        self.assertEqual(updated, ["s1"])
        self.assertIsNone(ed.layout.get_item("t1").category_id)
        self.assertEqual(ed.bulk_update_category(["s2"], "missing"), [])

    def test_curve_is_idempotent_and_keeps_endpoints(self):
        ed = LayoutEditor()
        ids = [ed.add_item({"type": "seat", "x": 100 + 30 * n, "y": 200, "w": 24, "h": 24}).id for n in range(5)]
        ed.arrange_along_curve(ids, 0.6)
        first = ed.snapshot()["items"]
        ed.arrange_along_curve(ids, 0.6)
        second = ed.snapshot()["items"]
        for a, b in zip(first, second):
            self.assertAlmostEqual(a["x"], b["x"])
            self.assertAlmostEqual(a["y"], b["y"])
            self.assertAlmostEqual(a["rotation"], b["rotation"])
        self.assertEqual((first[0]["x"], first[0]["y"]), (100, 200))
        self.assertEqual((first[-1]["x"], first[-1]["y"]), (220, 200))
        self.assertLess(first[2]["y"], 200)

    def test_curve_needs_two_items(self):
        ed = _editor_with_items()
        with self.assertRaises(LayoutValidationError):
            ed.arrange_along_curve(["s1"], 0.5)

    def test_arrange_in_preset_curve(self):
        ed = _editor_with_items()
        ed.arrange_in_curve(["s1", "s2"], preset("Semi Circle").at(600, 400))
        s1, s2 = ed.layout.get_item("s1"), ed.layout.get_item("s2")
        self.assertAlmostEqual(s1.center[0], 780)
        self.assertAlmostEqual(s2.center[0], 420)
        self.assertAlmostEqual(s1.rotation, 90)


class TestHistory(unittest.TestCase):
    def test_undo_redo(self):
        ed = _editor_with_items()
        before = ed.snapshot()
        ed.rotate(["t1"], 45)
        after = ed.snapshot()
        self.assertTrue(ed.undo())
        self.assertEqual(ed.snapshot(), before)
        self.assertTrue(ed.redo())
        self.assertEqual(ed.snapshot(), after)

    def test_new_edit_clears_redo(self):
        ed = _editor_with_items()
        ed.rotate(["t1"], 45)
        ed.undo()
        ed.rotate(["t1"], 10)
        self.assertFalse(ed.can_redo)

    def test_history_is_bounded(self):
        ed = LayoutEditor(history_limit=3)
        ed.add_item({"type": "seat", "x": 0, "y": 0})
        for _ in range(10):
            ed.rotate([ed.layout.items[0].id], 1)
        undone = 0
        while ed.undo():
            undone += 1
        self.assertEqual(undone, 3)


class TestSeatsAndTables(unittest.TestCase):
    def test_add_seat_numbers_smartly(self):
        ed = LayoutEditor()
        a = ed.add_seat(100, 100)
        b = ed.add_seat(130, 100)
        self.assertEqual((a.row_label, a.seat_number), ("A", 1))
        self.assertEqual((b.row_label, b.seat_number, b.label), ("A", 2, "A2"))

    def test_renumber_rejects_duplicates(self):
        ed = _editor_with_items()
        with self.assertRaises(LayoutValidationError):
            ed.renumber_seat("s2", "a", 1)
        seat = ed.renumber_seat("s2", "b", 7)
        self.assertEqual((seat.row_label, seat.seat_number, seat.label), ("B", 7, "B7"))
        self.assertIsNone(ed.renumber_seat("t1", "C", 1))

    def test_seat_block_continues_rows(self):
        ed = _editor_with_items()
        seats = ed.add_seat_block(SeatBlockConfig(rows=2, columns=3), 600, 400)
        self.assertEqual(len(seats), 6)
        self.assertEqual(sorted({s.row_label for s in seats}), ["B", "C"])
        self.assertEqual([s.seat_number for s in seats[:3]], [1, 2, 3])

    def test_seat_block_directions(self):
        ed = LayoutEditor()
        seats = ed.add_seat_block(
            SeatBlockConfig(rows=2, columns=3, row_direction="Z-A", number_direction="N-1"), 600, 400
        )
        self.assertEqual([s.row_label for s in seats[::3]], ["Z", "Y"])
        self.assertEqual([s.seat_number for s in seats[:3]], [3, 2, 1])
        numeric = ed.add_seat_block(SeatBlockConfig(rows=2, columns=1, row_direction="1-N", starting_row="5"), 100, 100)
        self.assertEqual([s.row_label for s in numeric], ["5", "6"])

    def test_seat_block_bad_starting_row(self):
        ed = LayoutEditor()
        with self.assertRaises(LayoutValidationError):
            ed.add_seat_block(SeatBlockConfig(rows=1, columns=1, starting_row="7!"), 100, 100)

    def test_seat_block_stays_on_canvas(self):
        ed = LayoutEditor()
        seats = ed.add_seat_block(SeatBlockConfig(rows=3, columns=3), 0, 0)
        self.assertTrue(all(s.x >= 0 and s.y >= 0 for s in seats))

    def test_table_with_seats(self):
        ed = LayoutEditor()
        items = ed.add_table(TableConfig(shape="round", seat_count=6, label="T1", price=120), 400, 300)
        table, seats = items[0], items[1:]
        self.assertEqual(table.type.value, "table")
        self.assertEqual(table.center, (400, 300))
        self.assertEqual(ed.effective_price(table.id), 120)
        self.assertEqual(len(seats), 6)
        self.assertEqual(seats[0].label, "T1-1")
        self.assertTrue(all(s.table_id == table.id for s in seats))


if __name__ == "__main__":
    unittest.main()
