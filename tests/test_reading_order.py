import unittest

from domain.reading_order import (
    choose_full_text,
    compare_reading_order,
    position_annotations,
    reorder_text,
    sort_reading_order,
)
from domain.scan_models import PositionedAnnotation, TextAnnotation, Vertex


def box(text, x0, y0, x1, y1):
    return TextAnnotation(
        text=text,
        bounding_polygon=(Vertex(x0, y0), Vertex(x1, y0), Vertex(x1, y1), Vertex(x0, y1)),
    )


class PositionedAnnotationTestCase(unittest.TestCase):
    def test_geometry_from_polygon(self) -> None:
        item = PositionedAnnotation.from_annotation(box("Title", 10, 20, 110, 60))
        self.assertEqual(item.center_x, 60)
        self.assertEqual(item.center_y, 40)
        self.assertEqual(item.width, 100)
        self.assertEqual(item.font_size, 40)

    def test_zero_coordinates_are_ignored(self) -> None:
        item = PositionedAnnotation.from_annotation(box("Edge", 0, 0, 50, 30))
        self.assertEqual(item.min_x, 50)
        self.assertEqual(item.min_y, 30)

    def test_polygon_without_positive_coordinates_is_dropped(self) -> None:
        self.assertIsNone(PositionedAnnotation.from_annotation(TextAnnotation("x")))
        self.assertIsNone(PositionedAnnotation.from_annotation(box("x", 0, 0, 0, 0)))

    def test_blank_fragments_are_dropped(self) -> None:
        positioned = position_annotations([box("   ", 1, 1, 10, 10), box("ok", 1, 1, 10, 10)])
        self.assertEqual([p.text for p in positioned], ["ok"])


class ReadingOrderTestCase(unittest.TestCase):
    def test_same_row_sorted_left_to_right(self) -> None:
        right = PositionedAnnotation.from_annotation(box("Road", 200, 100, 300, 140))
        left = PositionedAnnotation.from_annotation(box("Fury", 50, 104, 150, 144))
        self.assertLess(compare_reading_order(left, right), 0)
        self.assertEqual([p.text for p in sort_reading_order([right, left])], ["Fury", "Road"])

    def test_rows_sorted_top_to_bottom(self) -> None:
        low = PositionedAnnotation.from_annotation(box("Bottom", 10, 400, 100, 430))
        high = PositionedAnnotation.from_annotation(box("Top", 300, 10, 400, 40))
        self.assertEqual([p.text for p in sort_reading_order([low, high])], ["Top", "Bottom"])

    def test_reorder_text_joins_lines(self) -> None:
        fragments = [
            box("KNIGHT", 200, 50, 300, 90),
            box("BATMAN", 50, 300, 150, 330),
            box("THE DARK", 20, 52, 180, 92),
        ]
        self.assertEqual(reorder_text(fragments), "THE DARK\nKNIGHT\nBATMAN")


class ChooseFullTextTestCase(unittest.TestCase):
    def test_reordered_text_adopted_when_first_line_differs(self) -> None:
        native = "BLU-RAY\nThe Dark Knight"
        reordered = "The Dark Knight\nBLU-RAY"
        self.assertEqual(choose_full_text(native, reordered), reordered)

    def test_native_kept_when_first_line_identical(self) -> None:
        native = "The Dark Knight\nBLU-RAY"
        self.assertEqual(choose_full_text(native, "the dark knight\nBLU-RAY"), native)

    def test_native_kept_when_reordered_is_degenerate(self) -> None:
        native = "A very long native transcription of the cover\nsecond line"
        self.assertEqual(choose_full_text(native, "short"), native)

    def test_native_kept_when_reordered_has_fewer_lines(self) -> None:
        native = "one\ntwo\nthree"
        self.assertEqual(choose_full_text(native, "three two one"), native)


if __name__ == "__main__":
    unittest.main()
