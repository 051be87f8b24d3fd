import contextlib
import io
import json
import os
import tempfile
import unittest

from venue_layout.__main__ import main
from venue_layout.storage import load_layout


class TestCli(unittest.TestCase):
    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self._tmpdir.name, "layout.json")

    def tearDown(self):
        self._tmpdir.cleanup()

    def run_cli(self, *argv):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            code = main([*argv[:1], "--file", self.path, *argv[1:]])
        return code, out.getvalue()

    def test_build_a_layout(self):
        self.assertEqual(self.run_cli("init", "--name", "Gala", "--width", "1000", "--height", "700")[0], 0)
        code, out = self.run_cli("add-category", "--name", "VIP", "--color", "#f00", "--price", "45")
        self.assertEqual(code, 0)
        cat_id = load_layout(self.path).categories[0].id

        self.assertEqual(self.run_cli("add-seats", "--x", "500", "--y", "400", "--rows", "2", "--columns", "4")[0], 0)
        self.assertEqual(self.run_cli("add-table", "--x", "200", "--y", "200", "--seats", "6", "--label", "T1",
                                      "--price", "150")[0], 0)
        self.assertEqual(self.run_cli("add-item", "stage", "--x", "500", "--y", "60")[0], 0)
        code, out = self.run_cli("set-category", "--type", "seat", "--category", cat_id)
        self.assertIn("14 seat(s)", out)

        layout = load_layout(self.path)
        self.assertEqual((layout.name, layout.canvas_w), ("Gala", 1000))
        self.assertEqual(len(layout.seats()), 14)
        self.assertTrue(all(s.category_id == cat_id for s in layout.seats()))

        code, out = self.run_cli("overview")
        self.assertIn("Seats: 14", out)
        code, out = self.run_cli("prices")
        self.assertIn("KD 150", out)

    def test_rotate_and_remove_by_ids(self):
        self.run_cli("init")
        self.run_cli("add-item", "booth", "--x", "100", "--y", "100", "--label", "B1")
        booth = load_layout(self.path).items[0]
        self.assertEqual(self.run_cli("rotate", "--ids", booth.id, "--degrees", "-90")[0], 0)
        self.assertEqual(load_layout(self.path).items[0].rotation, 270)
        code, out = self.run_cli("remove", "--ids", f"{booth.id},ghost")
        self.assertIn("Removed 1 item(s)", out)

    def test_render_and_export(self):
        self.run_cli("init")
        self.run_cli("add-table", "--x", "300", "--y", "300", "--seats", "2", "--price", "60")
        svg = os.path.join(self._tmpdir.name, "out", "layout.svg")
        compact = os.path.join(self._tmpdir.name, "out", "layout.compact.json")
        self.assertEqual(self.run_cli("render", "--output", svg)[0], 0)
        self.assertEqual(self.run_cli("export-compact", "--output", compact)[0], 0)
        with open(svg, encoding="utf-8") as f:
            self.assertIn("<svg", f.read())
        with open(compact, encoding="utf-8") as f:
            doc = json.load(f)
        self.assertEqual(len(doc["seats"]), 2)
        self.assertEqual(doc["items"][0]["price"], 60)

    def test_errors_exit_2(self):
        code, out = self.run_cli("show")
        self.assertEqual(code, 2)
        self.assertTrue(out.startswith("Error:"))

        self.run_cli("init")
        code, out = self.run_cli("add-category", "--name", "Bad", "--price", "-5")
        self.assertEqual(code, 2)
        code, out = self.run_cli("scale", "--type", "seat", "--factor", "1.5")
        self.assertEqual(code, 0)
        code, out = self.run_cli("curve", "--type", "seat")
        self.assertEqual(code, 2)
        code, out = self.run_cli("rotate", "--degrees", "10")
        self.assertEqual(code, 2)
        self.assertIn("--ids", out)

    def test_rotate_rejects_nan_degrees(self):
        self.run_cli("init")
        self.run_cli("add-item", "booth", "--x", "100", "--y", "100")
        booth = load_layout(self.path).items[0]
        code, out = self.run_cli("rotate", "--ids", booth.id, "--degrees", "nan")
        self.assertEqual(code, 2)
        self.assertTrue(out.startswith("Error:"))
        self.assertEqual(load_layout(self.path).items[0].rotation, 0)


if __name__ == "__main__":
    unittest.main()
