import unittest

from venue_layout.client import LayoutNotFoundError
from venue_layout.decor import load_event_decor, normalize_decor, render_decor_overlay
from venue_layout.legend import build_legend
from venue_layout.model import LayoutItem, SeatCategory, VenueLayout
from venue_layout.render import item_fill, item_title, render_svg


def _layout():
    return VenueLayout(
        name="Hall",
        canvas_w=800,
        canvas_h=600,
        categories=[
            SeatCategory(id="vip", name="VIP", color="#aa0000", price=50, applies_to="seat"),
            SeatCategory(id="gold", name="Gold", color="#ffcc00", price=120, applies_to="table"),
            SeatCategory(id="legacy", name="Legacy", color="#00aa00", price=10),
            SeatCategory(id="unused", name="Unused", color="#000000", price=1),
        ],
        items=[
            LayoutItem(id="s1", type="seat", x=10, y=10, w=24, h=24, category_id="vip", row_label="A", seat_number=1),
            LayoutItem(id="s2", type="seat", x=40, y=10, w=24, h=24, row_label="A", seat_number=2),
            LayoutItem(id="s3", type="seat", x=70, y=10, w=24, h=24, category_id="legacy"),
            LayoutItem(id="t2", type="table", x=200, y=200, w=60, h=60, label="Table 2", category_id="gold"),
            LayoutItem(id="t1", type="table", x=300, y=200, w=60, h=60, label="Table 1", metadata={"price": 80}),
            LayoutItem(id="b1", type="booth", x=400, y=200, w=80, h=40, category_id="legacy"),
            LayoutItem(id="st", type="stage", x=300, y=20, w=200, h=60, rotation=90),
        ],
    )


class TestRenderSvg(unittest.TestCase):
    def test_document_shape(self):
        svg = render_svg(_layout())
        self.assertTrue(svg.startswith("<svg "))
        self.assertIn('viewBox="0 0 800 600"', svg)
        self.assertIn('preserveAspectRatio="xMidYMid meet"', svg)
        self.assertEqual(svg.count("<circle"), 3)
        self.assertEqual(svg.count("<g transform"), 7)
        self.assertIn('rotate(90 400 50)', svg)

    def test_fills_and_titles(self):
        layout = _layout()
        cats = layout.categories_by_id()
        self.assertEqual(item_fill(layout.get_item("s1"), cats), "#aa0000")
        self.assertEqual(item_fill(layout.get_item("s2"), cats), "#10b981")
        self.assertEqual(item_title(layout.get_item("s1"), cats), "A1 • VIP • KD 50")
        self.assertEqual(item_title(layout.get_item("s2"), cats), "A2")
        self.assertEqual(item_title(layout.get_item("t1"), cats), "Table 1 • KD 80")
        self.assertEqual(item_title(layout.get_item("t2"), cats), "Table 2 • Gold • KD 120")

    def test_labels_are_escaped(self):
        layout = VenueLayout(items=[LayoutItem(id="x", type="booth", x=0, y=0, w=80, h=40, label="A&B <1>")])
        svg = render_svg(layout)
        self.assertIn("A&amp;B &lt;1&gt;", svg)
        self.assertNotIn("A&B <1>", svg)

    def test_selected_items_are_outlined(self):
        svg = render_svg(_layout(), selected=["t1"])
        self.assertEqual(svg.count('stroke="#2563eb"'), 1)

    def test_decor_drawn_last(self):
        decor = normalize_decor([{"id": "d1", "type": "exit", "x": 5, "y": 5, "w": 40, "h": 30}])
        svg = render_svg(_layout(), decor=decor, decor_offset=(10, 20))
        self.assertGreater(svg.index('class="decor"'), svg.rindex("<g transform"))
        self.assertIn('x="15" y="25"', svg)
        self.assertIn(">EXIT<", svg)


class TestDecor(unittest.TestCase):
    def test_flat_and_nested_entries(self):
        items = normalize_decor(
            {
                "items": [
                    {"id": "a", "type": "stage", "x": 1, "y": 2, "w": 100, "h": 40, "label": "Main"},
                    {"_id": 7, "type": "washroom", "pos": {"x": 3, "y": 4}, "size": {"x": 30, "y": 30}, "lbl": "WC"},
                ]
            }
        )
        self.assertEqual([(d.id, d.x, d.y, d.w, d.h, d.label) for d in items], [
            ("a", 1, 2, 100, 40, "Main"),
            ("7", 3, 4, 30, 30, "WC"),
        ])

    def test_bad_entries_dropped(self):
        items = normalize_decor(
            [
                {"id": "a", "type": "fountain", "x": 0, "y": 0, "w": 10, "h": 10},
                {"id": "b", "type": "exit", "x": 0, "y": 0},
                "junk",
                {"id": "c", "type": "entry", "x": 0, "y": 0, "w": 10, "h": 10},
            ]
        )
        self.assertEqual([d.id for d in items], ["c"])
        self.assertEqual(normalize_decor(None), [])
        self.assertEqual(normalize_decor({"items": "nope"}), [])

    def test_overlay_uses_type_styles(self):
        out = render_decor_overlay(normalize_decor([{"id": "s", "type": "screen", "x": 0, "y": 0, "w": 90, "h": 30}]))
        self.assertIn('fill="#111827"', out)
        self.assertIn(">SCREEN<", out)

    def test_loader_fails_silently(self):
        class Client:
            def __init__(self):
                self.calls = 0

            def get_event_decor(self, event_id):
                self.calls += 1
                raise LayoutNotFoundError("no decor", status_code=404)

        client = Client()
        self.assertEqual(load_event_decor(client, "ev1"), [])
        self.assertEqual(client.calls, 1)
        self.assertEqual(load_event_decor(client, None), [])
        self.assertEqual(client.calls, 1)


class TestLegend(unittest.TestCase):
    def test_in_use_categories_split_by_target(self):
        legend = build_legend(_layout())
        self.assertEqual([c.id for c in legend.seat_categories], ["vip", "legacy"])
        self.assertEqual([c.id for c in legend.item_categories], ["gold", "legacy"])

    def test_tables_and_booths_sorted_with_prices(self):
        legend = build_legend(_layout())
        rows = [(p.label, p.price) for p in legend.tables_and_booths]
        self.assertEqual(rows, [("Booth", 10), ("Table 1", 80), ("Table 2", 120)])
        d = legend.to_dict()
        self.assertEqual(d["tablesAndBooths"][0]["priceText"], "KD 10")
        self.assertEqual(d["tablesAndBooths"][1]["color"], None)
        self.assertEqual(d["tablesAndBooths"][2]["color"], "#ffcc00")

    def test_empty_layout(self):
        self.assertEqual(build_legend(VenueLayout()).to_dict(), {
            "seatCategories": [],
            "itemCategories": [],
            "tablesAndBooths": [],
        })


if __name__ == "__main__":
    unittest.main()
